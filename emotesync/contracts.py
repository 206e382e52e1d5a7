"""
Emote Sync Contracts
====================

Data structures shared by discovery, reconciliation and binding.

BOUNDARY ENFORCEMENT:
=====================
- Specifications and Handles are frozen (value equality, hashable)
- LedgerEntry is the ONLY mutable type: Update rewrites it in place
- No behavior beyond construction and serialization lives here
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union


# =============================================================================
# DESIRED STATE (re-supplied on every run)
# =============================================================================

@dataclass(frozen=True)
class UnicodeEmote:
    """A standard unicode emoji. Resolved without touching the registry."""
    character: str


@dataclass(frozen=True)
class ExternalCustomEmote:
    """A custom emote hosted elsewhere; its id is already known."""
    name: str
    remote_id: int
    animated: bool = False


@dataclass(frozen=True)
class InternalCustomEmote:
    """
    A custom emote managed by the engine.

    The key is both the ContentSource lookup key and the remote display name.
    """
    key: str


EmoteSpecification = Union[UnicodeEmote, ExternalCustomEmote, InternalCustomEmote]


# =============================================================================
# RESOLVED HANDLES (recomputed every run, never persisted)
# =============================================================================

@dataclass(frozen=True)
class UnicodeHandle:
    character: str

    @property
    def mention(self) -> str:
        return self.character


@dataclass(frozen=True)
class CustomHandle:
    remote_id: int
    name: str
    animated: bool = False

    @property
    def mention(self) -> str:
        prefix = "a" if self.animated else ""
        return f"<{prefix}:{self.name}:{self.remote_id}>"


Handle = Union[UnicodeHandle, CustomHandle]

BindTarget = Callable[[Handle], None]


# =============================================================================
# SLOTS AND MAPPINGS
# =============================================================================

@dataclass(frozen=True)
class EmoteSlot:
    """
    One desired-state slot.

    target is optional: every resolved handle is also collected into
    SyncReport.handles keyed by slot_id.
    """
    slot_id: str
    specification: Optional[EmoteSpecification]
    target: Optional[BindTarget] = field(default=None, compare=False)


@dataclass(frozen=True)
class SlotTarget:
    """A sink registered for a slot."""
    slot_id: str
    target: Optional[BindTarget] = field(default=None, compare=False)


@dataclass(frozen=True)
class ResolvedBinding:
    """A slot whose handle is known without reconciliation."""
    slot_id: str
    handle: Handle
    target: Optional[BindTarget] = field(default=None, compare=False)


@dataclass
class InternalMapping:
    """
    All slots sharing one internal key.

    targets keep registration order; they all receive the same handle.
    """
    key: str
    targets: List[SlotTarget] = field(default_factory=list)

    @property
    def slot_ids(self) -> List[str]:
        return [t.slot_id for t in self.targets]


# =============================================================================
# LEDGER (caller-owned, persisted by the caller)
# =============================================================================

@dataclass
class LedgerEntry:
    """
    Durable mapping from an internal key to its remote resource.

    INVARIANT (after a successful run):
    - remote_id exists in the latest registry snapshot
    - content_identifier == ContentSource.fingerprint(key)
    """
    key: str
    remote_id: int
    animated: bool
    content_identifier: bytes

    def to_handle(self) -> CustomHandle:
        return CustomHandle(remote_id=self.remote_id, name=self.key, animated=self.animated)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "remote_id": self.remote_id,
            "animated": self.animated,
            "content_identifier": self.content_identifier.hex(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerEntry':
        identifier = data["content_identifier"]
        if isinstance(identifier, str):
            identifier = bytes.fromhex(identifier)
        return cls(
            key=data["key"],
            remote_id=int(data["remote_id"]),
            animated=bool(data.get("animated", False)),
            content_identifier=bytes(identifier),
        )


# =============================================================================
# REGISTRY VIEW (ephemeral)
# =============================================================================

@dataclass(frozen=True)
class RemoteResource:
    """One entry of a registry snapshot. name joins against LedgerEntry.key."""
    id: int
    name: str
    animated: bool = False


@dataclass(frozen=True)
class CreatedResource:
    """What the registry reports back after a create."""
    id: int
    animated: bool = False
