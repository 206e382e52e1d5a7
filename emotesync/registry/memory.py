"""
In-Memory Registry
==================

Deterministic fake registry for testing.

GUARANTEES:
- Ids are allocated sequentially from a configurable start
- Names are unique, like the real registry: creating a taken name fails
- Every call is recorded in order in `calls`
- Failures can be injected per (operation, name)
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import BinaryIO, Dict, Iterable, List, Optional, Set, Tuple

from ..contracts import CreatedResource, RemoteResource
from ..errors import RegistryError
from .base import RegistryClient


@dataclass
class StoredResource:
    id: int
    name: str
    animated: bool
    data: bytes


class InMemoryRegistry(RegistryClient):
    """
    Fake registry with call recording and failure injection.

    Animated is inferred from a GIF header, as the real registry does.
    """

    def __init__(
        self,
        resources: Optional[Iterable[RemoteResource]] = None,
        first_id: int = 1000,
        fail_on: Optional[Iterable[Tuple[str, str]]] = None
    ):
        self._resources: Dict[int, StoredResource] = {}
        self._next_id = first_id
        self.calls: List[Tuple[str, object]] = []
        self.fail_on: Set[Tuple[str, str]] = set(fail_on or ())

        for resource in resources or ():
            self._resources[resource.id] = StoredResource(
                id=resource.id,
                name=resource.name,
                animated=resource.animated,
                data=b''
            )
            self._next_id = max(self._next_id, resource.id + 1)

    # =========================================================================
    # INSPECTION
    # =========================================================================

    @property
    def resources(self) -> List[RemoteResource]:
        return [
            RemoteResource(id=r.id, name=r.name, animated=r.animated)
            for r in self._resources.values()
        ]

    def data_for(self, resource_id: int) -> bytes:
        return self._resources[resource_id].data

    def find(self, name: str) -> Optional[RemoteResource]:
        for r in self._resources.values():
            if r.name == name:
                return RemoteResource(id=r.id, name=r.name, animated=r.animated)
        return None

    def calls_of(self, op: str) -> List[object]:
        return [arg for call_op, arg in self.calls if call_op == op]

    @property
    def mutation_count(self) -> int:
        return sum(1 for op, _ in self.calls if op != "list")

    def remove_out_of_band(self, resource_id: int):
        """Simulate a deletion made outside the engine."""
        self._resources.pop(resource_id, None)

    # =========================================================================
    # REGISTRY CLIENT
    # =========================================================================

    async def list_resources(self) -> List[RemoteResource]:
        self.calls.append(("list", None))
        self._check("list", "*")
        return self.resources

    async def create_resource(self, name: str, content: BinaryIO) -> CreatedResource:
        self.calls.append(("create", name))
        self._check("create", name)

        if any(r.name == name for r in self._resources.values()):
            raise RegistryError(f"Emoji name {name!r} already in use", status_code=400)

        data = content.read()
        resource = StoredResource(
            id=self._next_id,
            name=name,
            animated=data[:6] in (b'GIF87a', b'GIF89a'),
            data=data
        )
        self._next_id += 1
        self._resources[resource.id] = resource
        return CreatedResource(id=resource.id, animated=resource.animated)

    async def delete_resource(self, resource_id: int) -> None:
        self.calls.append(("delete", resource_id))
        existing = self._resources.get(resource_id)
        self._check("delete", existing.name if existing else str(resource_id))

        if existing is None:
            raise RegistryError(f"Unknown emoji {resource_id}", status_code=404)
        del self._resources[resource_id]

    def _check(self, op: str, name: str):
        if (op, name) in self.fail_on or (op, "*") in self.fail_on:
            raise RegistryError(f"Injected {op} failure for {name!r}", status_code=503)
