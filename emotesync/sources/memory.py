"""
In-Memory Content Source
========================

Deterministic content source backed by a dict of bytes.

GUARANTEES:
- Same bytes -> same fingerprint
- Content can be swapped between runs to simulate edits
- No filesystem access
"""

from __future__ import annotations
import hashlib
import io
from typing import BinaryIO, Dict, Mapping, Optional, Set

from ..errors import ContentNotFound
from .base import ContentSource


class InMemoryContentSource(ContentSource):
    """
    Content source for tests and for callers that already hold the bytes.

    Tracks how many streams are currently open so tests can assert that
    every stream was released.
    """

    def __init__(
        self,
        content: Optional[Mapping[str, bytes]] = None,
        algorithm: str = "sha256"
    ):
        self._content: Dict[str, bytes] = dict(content or {})
        self._algorithm = algorithm
        self.open_streams = 0
        self.opened: list = []

    def set(self, key: str, data: bytes):
        self._content[key] = data

    def remove(self, key: str):
        self._content.pop(key, None)

    def list_keys(self) -> Set[str]:
        return set(self._content)

    def open_content(self, key: str) -> BinaryIO:
        data = self._get(key)
        self.opened.append(key)
        return _TrackedStream(self, data)

    def fingerprint(self, key: str) -> bytes:
        return hashlib.new(self._algorithm, self._get(key)).digest()

    def _get(self, key: str) -> bytes:
        try:
            return self._content[key]
        except KeyError:
            raise ContentNotFound(key) from None


class _TrackedStream(io.BytesIO):
    """BytesIO that reports open/close back to its source."""

    def __init__(self, source: InMemoryContentSource, data: bytes):
        super().__init__(data)
        self._source = source
        source.open_streams += 1

    def close(self):
        if not self.closed:
            self._source.open_streams -= 1
        super().close()
