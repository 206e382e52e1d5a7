"""
Sync Audit & Reporting

RESPONSIBILITY: Record what a run did, and what it would do in a dry run
OUTPUTS: SyncEvent trail, SyncPlan, SyncReport

WHAT THIS MODULE MUST NOT DO:
============================
- Influence reconciliation decisions
- Drop or rewrite recorded events (append-only)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .contracts import Handle, RemoteResource
from .errors import PartialSyncError, RegistryOperationFailed


# =============================================================================
# AUDIT EVENTS
# =============================================================================

class SyncEventType(Enum):
    """Explicit audit event types."""
    SNAPSHOT = "snapshot"
    PRUNED = "pruned"
    REMOVED = "removed"
    ORPHAN_DELETED = "orphan_deleted"
    ADDED = "added"
    UPDATED = "updated"
    FAILED = "failed"
    BOUND = "bound"


@dataclass(frozen=True)
class SyncEvent:
    """Immutable audit entry for one step of a run."""
    event_type: SyncEventType
    timestamp: datetime
    key: Optional[str] = None
    remote_id: Optional[int] = None
    detail: Optional[str] = None


class SyncEventLog:
    """
    Append-only collector of SyncEvents for a single run.
    """

    def __init__(self):
        self._events: List[SyncEvent] = []

    def record(
        self,
        event_type: SyncEventType,
        key: Optional[str] = None,
        remote_id: Optional[int] = None,
        detail: Optional[str] = None
    ) -> SyncEvent:
        event = SyncEvent(
            event_type=event_type,
            timestamp=datetime.now(timezone.utc),
            key=key,
            remote_id=remote_id,
            detail=detail
        )
        self._events.append(event)
        return event

    @property
    def events(self) -> Tuple[SyncEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)


# =============================================================================
# PLAN (phase decisions, computed without mutation)
# =============================================================================

@dataclass(frozen=True)
class SyncPlan:
    """
    What each reconciliation phase decided (or would decide) to touch.

    Keys are listed in the order the phase processes them.
    """
    prune: Tuple[str, ...] = ()
    remove: Tuple[str, ...] = ()
    orphans: Tuple[str, ...] = ()
    add: Tuple[str, ...] = ()
    update: Tuple[str, ...] = ()
    untracked: Tuple[RemoteResource, ...] = ()

    @property
    def is_noop(self) -> bool:
        """True when no registry mutation is planned."""
        return not (self.remove or self.add or self.update)

    @property
    def mutation_count(self) -> int:
        # delete+create for update, optional delete+create for add
        return (
            len(self.remove)
            + len(self.add) + len(self.orphans)
            + 2 * len(self.update)
        )


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class SyncReport:
    """
    Outcome of one EmoteSyncEngine run.

    complete is True only when every desired slot was bound and no registry
    operation failed.
    """
    handles: Dict[str, Handle] = field(default_factory=dict)
    failures: List[RegistryOperationFailed] = field(default_factory=list)
    unbound_keys: List[str] = field(default_factory=list)
    plan: SyncPlan = field(default_factory=SyncPlan)
    events: Tuple[SyncEvent, ...] = ()
    dry_run: bool = False

    @property
    def complete(self) -> bool:
        return not self.failures and not self.unbound_keys and not self.dry_run

    @property
    def untracked_resources(self) -> Tuple[RemoteResource, ...]:
        return self.plan.untracked

    def failed_keys(self) -> List[str]:
        return [f.key for f in self.failures if f.key is not None]

    def raise_for_failures(self):
        """Raise PartialSyncError if any registry operation failed."""
        if self.failures:
            raise PartialSyncError(self.failures)
