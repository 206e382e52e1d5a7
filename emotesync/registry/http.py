"""
HTTP Registry Client

Talks to a Discord-style application emoji API over httpx.

ENDPOINTS:
==========
GET    {api_base}/applications/{app}/emojis        -> {"items": [emoji, ...]}
POST   {api_base}/applications/{app}/emojis        <- {"name", "image": data URI}
DELETE {api_base}/applications/{app}/emojis/{id}   -> 204

PRINCIPLES:
===========
1. Every non-2xx response or unreadable success body becomes a RegistryError
2. Transport failures become RegistryError too, with the cause chained
3. Rate-limit retries are explicit: disabled unless max_rate_limit_retries > 0
4. Authentication is the caller's: pass headers or a configured AsyncClient
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Dict, List, Mapping, Optional, TypeVar
import asyncio
import base64
import logging
import os

import httpx

from ..contracts import CreatedResource, RemoteResource
from ..errors import RegistryError
from .base import RegistryClient

lib_logger = logging.getLogger("emotesync")

DEFAULT_API_BASE = "https://discord.com/api/v10"

T = TypeVar("T")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class HttpRegistryConfig:
    """
    Connection settings for HttpRegistryClient.

    Overridable from the environment via from_env():
    EMOTESYNC_API_BASE, EMOTESYNC_APPLICATION_ID, EMOTESYNC_TIMEOUT,
    EMOTESYNC_RATE_LIMIT_RETRIES
    """
    application_id: str
    api_base: str = DEFAULT_API_BASE
    timeout_seconds: float = 30.0
    user_agent: str = "emotesync/1.0"

    # Retry policy for 429 only - explicit, never hidden
    max_rate_limit_retries: int = 0
    max_retry_after_seconds: float = 60.0

    @property
    def emojis_url(self) -> str:
        return f"{self.api_base.rstrip('/')}/applications/{self.application_id}/emojis"

    @classmethod
    def from_env(cls, application_id: Optional[str] = None) -> 'HttpRegistryConfig':
        app_id = application_id or os.getenv("EMOTESYNC_APPLICATION_ID")
        if not app_id:
            raise ValueError("EMOTESYNC_APPLICATION_ID is not set")

        timeout = _env_number("EMOTESYNC_TIMEOUT", 30.0, float)
        retries = _env_number("EMOTESYNC_RATE_LIMIT_RETRIES", 0, int)
        if retries < 0:
            lib_logger.warning(
                f"Invalid EMOTESYNC_RATE_LIMIT_RETRIES {retries}. Must be >= 0."
            )
            retries = 0

        return cls(
            application_id=app_id,
            api_base=os.getenv("EMOTESYNC_API_BASE", DEFAULT_API_BASE),
            timeout_seconds=timeout,
            max_rate_limit_retries=retries,
        )


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        lib_logger.warning(f"Invalid {name} '{raw}'. Falling back to {default}.")
        return default


# =============================================================================
# CLIENT
# =============================================================================

class HttpRegistryClient(RegistryClient):
    """
    RegistryClient over the application emoji REST endpoints.

    Use as an async context manager, or call aclose() when done. A client
    passed in by the caller is never closed here.
    """

    def __init__(
        self,
        config: HttpRegistryConfig,
        client: Optional[httpx.AsyncClient] = None,
        headers: Optional[Mapping[str, str]] = None
    ):
        self._config = config
        self._owns_client = client is None
        request_headers = {'User-Agent': config.user_agent}
        request_headers.update(headers or {})
        self._headers = request_headers
        self._client = client or httpx.AsyncClient(timeout=config.timeout_seconds)

    @property
    def config(self) -> HttpRegistryConfig:
        return self._config

    async def __aenter__(self) -> 'HttpRegistryClient':
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    # =========================================================================
    # REGISTRY CLIENT
    # =========================================================================

    async def list_resources(self) -> List[RemoteResource]:
        url = self._config.emojis_url
        response = await self._request("GET", url)
        return self._decode("GET", url, response, self._parse_listing)

    async def create_resource(self, name: str, content: BinaryIO) -> CreatedResource:
        data = content.read()
        body = {"name": name, "image": to_data_uri(data)}

        url = self._config.emojis_url
        response = await self._request("POST", url, json=body)
        resource = self._decode("POST", url, response, self._parse_resource)
        return CreatedResource(id=resource.id, animated=resource.animated)

    async def delete_resource(self, resource_id: int) -> None:
        await self._request("DELETE", f"{self._config.emojis_url}/{resource_id}")

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._client.request(
                    method, url, headers=self._headers, **kwargs
                )
            except httpx.TimeoutException as e:
                raise RegistryError(f"{method} {url} timed out") from e
            except httpx.HTTPError as e:
                raise RegistryError(f"{method} {url} failed: {e}") from e

            if response.is_success:
                return response

            error = self._error_from(method, url, response)
            if (
                error.rate_limited
                and attempt < self._config.max_rate_limit_retries
                and (error.retry_after or 0.0) <= self._config.max_retry_after_seconds
            ):
                attempt += 1
                delay = error.retry_after if error.retry_after is not None else 1.0
                lib_logger.warning(
                    f"Rate limited on {method} {url}; retrying in {delay:.2f}s "
                    f"(attempt {attempt}/{self._config.max_rate_limit_retries})"
                )
                await asyncio.sleep(delay)
                continue

            raise error

    @staticmethod
    def _error_from(method: str, url: str, response: httpx.Response) -> RegistryError:
        retry_after = None
        message = response.text

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if isinstance(payload, dict):
            message = payload.get("message", message)
            try:
                retry_after = float(payload["retry_after"])
            except (KeyError, TypeError, ValueError):
                retry_after = None

        if retry_after is None and "Retry-After" in response.headers:
            try:
                retry_after = float(response.headers["Retry-After"])
            except ValueError:
                retry_after = None

        return RegistryError(
            f"{method} {url} returned HTTP {response.status_code}: {message}",
            status_code=response.status_code,
            retry_after=retry_after
        )

    @staticmethod
    def _decode(
        method: str,
        url: str,
        response: httpx.Response,
        parse: Callable[[Any], T]
    ) -> T:
        """Parse a success body; anything unreadable becomes a RegistryError."""
        try:
            return parse(response.json())
        except (ValueError, KeyError, TypeError) as e:
            raise RegistryError(
                f"{method} {url} returned an unreadable body "
                f"(HTTP {response.status_code}): {e!r}",
                status_code=response.status_code
            ) from e

    @classmethod
    def _parse_listing(cls, payload: Any) -> List[RemoteResource]:
        # The endpoint wraps the list in {"items": [...]}
        items = payload["items"] if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise TypeError(f"expected a list of emojis, got {type(items).__name__}")
        return [cls._parse_resource(item) for item in items]

    @staticmethod
    def _parse_resource(item: Dict[str, Any]) -> RemoteResource:
        return RemoteResource(
            id=int(item["id"]),
            name=item.get("name") or "",
            animated=bool(item.get("animated", False)),
        )


# =============================================================================
# IMAGE ENCODING
# =============================================================================

def sniff_image_type(data: bytes) -> str:
    """MIME type from magic bytes; png when unrecognized."""
    if data[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    if data[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return "image/webp"
    return "image/png"


def to_data_uri(data: bytes) -> str:
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{sniff_image_type(data)};base64,{encoded}"
