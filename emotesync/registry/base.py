"""
Registry Client Abstraction
===========================

Abstract interface for the remote emoji registry.

BOUNDARY ENFORCEMENT:
- The registry is ground truth for existence, never for desired state
- Every failed call raises RegistryError (never returns a sentinel)
- Timeouts and rate-limit handling belong to the client, not the engine

EXPLICIT FAILURE STATES:
- RegistryError.status_code carries the HTTP status where there is one
- RegistryError.retry_after is set when the registry asked us to back off
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import BinaryIO, List

from ..contracts import CreatedResource, RemoteResource


class RegistryClient(ABC):
    """List/create/delete of named remote emoji resources."""

    @abstractmethod
    async def list_resources(self) -> List[RemoteResource]:
        """Fetch a full snapshot of the registry."""
        pass

    @abstractmethod
    async def create_resource(self, name: str, content: BinaryIO) -> CreatedResource:
        """Upload content under name. The stream is read, not closed."""
        pass

    @abstractmethod
    async def delete_resource(self, resource_id: int) -> None:
        """Delete a resource by id."""
        pass
