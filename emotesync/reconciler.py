"""
Reconciler

Converges the ledger and the remote registry onto the desired internal keys.

PHASES (strict order, one pass per run):
========================================
1. Snapshot - list the registry; ground truth for existence
2. Prune    - drop entries whose remote id is gone (no remote call)
3. Remove   - delete resources for keys no longer desired
4. Add      - upload desired keys with no entry (deleting name orphans first)
5. Update   - re-upload entries whose content fingerprint changed

WHY THIS ORDER:
==============
- Prune runs before Add/Update so they never act on a stale remote id
- Remove runs before Add so an indirect rename never leaves two resources
  with the same name

FAILURE ISOLATION:
==================
Only RegistryError from the client is isolated, and only per key:
- failed Add    -> key stays absent, retried next run
- failed Remove -> entry kept, retried next run
- failed Update -> if the delete failed, entry and resource untouched;
                   if the create failed after the delete, the entry is
                   dropped (its resource is gone) and Add recovers it next run
- a local read failure during Update happens before the delete and
  propagates with the entry and resource untouched
Anything else propagates.

NOT SAFE FOR CONCURRENT RUNS against the same ledger/registry pair.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Awaitable, Dict, List, Optional, Sequence, Set, Tuple, TypeVar
import logging

from .contracts import CreatedResource, LedgerEntry, RemoteResource
from .errors import RegistryError, RegistryOperationFailed
from .ledger import Ledger
from .registry.base import RegistryClient
from .report import SyncEventLog, SyncEventType, SyncPlan
from .sources.base import ContentSource

lib_logger = logging.getLogger("emotesync")

T = TypeVar("T")


@dataclass
class ReconcileOutcome:
    """What a reconcile pass did."""
    plan: SyncPlan
    failures: List[RegistryOperationFailed] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def unresolved_keys(self) -> Set[str]:
        """Keys allowed to be missing from the ledger after this pass."""
        keys = {f.key for f in self.failures if f.key is not None}
        keys.update(self.skipped)
        return keys


class _Halt(Exception):
    """Internal: stop_on_failure tripped."""


class Reconciler:
    """
    Executes the prune -> remove -> add -> update pipeline.

    GUARANTEES:
    ===========
    1. Phases and entries run one at a time, in order
    2. Every content stream is closed before the next entry starts
    3. Every mutation and heal is logged and recorded as a SyncEvent
    """

    def __init__(
        self,
        content: ContentSource,
        registry: RegistryClient,
        events: Optional[SyncEventLog] = None,
        stop_on_failure: bool = False
    ):
        self._content = content
        self._registry = registry
        self._events = events if events is not None else SyncEventLog()
        self._stop_on_failure = stop_on_failure

    @property
    def events(self) -> SyncEventLog:
        return self._events

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def snapshot(self) -> List[RemoteResource]:
        """Fetch the registry state. Failure is fatal for the run."""
        resources = await self._call("list", None, self._registry.list_resources())
        self._events.record(SyncEventType.SNAPSHOT, detail=f"{len(resources)} resources")
        lib_logger.debug(f"Registry snapshot holds {len(resources)} resources")
        return resources

    # =========================================================================
    # PLANNING (no mutation)
    # =========================================================================

    def plan(
        self,
        ledger: Ledger,
        desired_keys: Sequence[str],
        snapshot: Sequence[RemoteResource]
    ) -> SyncPlan:
        """
        Decide what each phase would touch, without mutating anything.

        Reads fingerprints for tracked desired keys; never opens a remote call.
        """
        desired = list(dict.fromkeys(desired_keys))
        desired_set = set(desired)
        live_ids = {r.id for r in snapshot}

        prune = [e.key for e in ledger if e.remote_id not in live_ids]
        remaining = [e for e in ledger if e.remote_id in live_ids]
        remaining_keys = {e.key for e in remaining}
        tracked_ids = {e.remote_id for e in remaining}

        remove = [e.key for e in remaining if e.key not in desired_set]
        add = [k for k in desired if k not in remaining_keys]
        orphans = [k for k in add if self._orphan_ids(k, snapshot, tracked_ids)]
        update = [
            e.key for e in remaining
            if e.key in desired_set
            and self._content.fingerprint(e.key) != e.content_identifier
        ]
        untracked = [
            r for r in snapshot
            if r.id not in tracked_ids and r.name not in desired_set
        ]

        return SyncPlan(
            prune=tuple(prune),
            remove=tuple(remove),
            orphans=tuple(orphans),
            add=tuple(add),
            update=tuple(update),
            untracked=tuple(untracked)
        )

    # =========================================================================
    # RECONCILE
    # =========================================================================

    async def reconcile(
        self,
        ledger: Ledger,
        desired_keys: Sequence[str],
        snapshot: Optional[Sequence[RemoteResource]] = None
    ) -> ReconcileOutcome:
        """
        Run all phases against the ledger in place.

        desired_keys must already be validated against the content source.
        """
        if snapshot is None:
            snapshot = await self.snapshot()

        desired = list(dict.fromkeys(desired_keys))
        desired_set = set(desired)

        pruned = self._prune(ledger, snapshot)

        tracked_ids = {e.remote_id for e in ledger}
        untracked = tuple(
            r for r in snapshot
            if r.id not in tracked_ids and r.name not in desired_set
        )
        for resource in untracked:
            lib_logger.debug(
                f"Untracked remote emote {resource.name!r} ({resource.id}) left in place"
            )

        outcome = ReconcileOutcome(plan=SyncPlan(prune=tuple(pruned), untracked=untracked))
        removed: List[str] = []
        added: List[str] = []
        orphaned: List[str] = []
        updated: List[str] = []

        try:
            # REMOVE OBSOLETE
            for entry in [e for e in ledger if e.key not in desired_set]:
                if await self._guard(outcome, entry.key, self._remove(ledger, entry)):
                    removed.append(entry.key)

            # ADD MISSING
            tracked_ids = {e.remote_id for e in ledger}
            to_add = [k for k in desired if k not in ledger]
            for key in to_add:
                orphan_ids = self._orphan_ids(key, snapshot, tracked_ids)
                if await self._guard(outcome, key, self._add(ledger, key, orphan_ids, orphaned)):
                    added.append(key)

            # UPDATE CHANGED
            just_added = set(to_add)
            for entry in [e for e in ledger if e.key in desired_set and e.key not in just_added]:
                fingerprint = self._content.fingerprint(entry.key)
                if fingerprint == entry.content_identifier:
                    continue
                if await self._guard(outcome, entry.key, self._update(ledger, entry)):
                    updated.append(entry.key)

        except _Halt:
            failed = {f.key for f in outcome.failures}
            outcome.skipped = [k for k in desired if k not in ledger and k not in failed]
            lib_logger.warning(
                f"Stopping reconciliation after first failure; "
                f"{len(outcome.skipped)} key(s) left for the next run"
            )

        outcome.plan = SyncPlan(
            prune=tuple(pruned),
            remove=tuple(removed),
            orphans=tuple(orphaned),
            add=tuple(added),
            update=tuple(updated),
            untracked=untracked
        )
        return outcome

    # =========================================================================
    # PHASES
    # =========================================================================

    def _prune(self, ledger: Ledger, snapshot: Sequence[RemoteResource]) -> List[str]:
        live_ids = {r.id for r in snapshot}
        pruned = []

        for entry in ledger:
            if entry.remote_id in live_ids:
                continue
            ledger.remove(entry.key)
            pruned.append(entry.key)
            self._events.record(SyncEventType.PRUNED, key=entry.key, remote_id=entry.remote_id)
            lib_logger.warning(
                f"Emote {entry.key!r} ({entry.remote_id}) is gone from the registry; "
                f"dropping it from the ledger"
            )

        return pruned

    async def _remove(self, ledger: Ledger, entry: LedgerEntry):
        await self._call("delete", entry.key, self._registry.delete_resource(entry.remote_id))
        ledger.remove(entry.key)
        self._events.record(SyncEventType.REMOVED, key=entry.key, remote_id=entry.remote_id)
        lib_logger.info(f"Removed obsolete emote {entry.key!r} ({entry.remote_id})")

    async def _add(
        self,
        ledger: Ledger,
        key: str,
        orphan_ids: List[int],
        orphaned: List[str]
    ):
        for orphan_id in orphan_ids:
            await self._call("delete", key, self._registry.delete_resource(orphan_id))
            self._events.record(SyncEventType.ORPHAN_DELETED, key=key, remote_id=orphan_id)
            lib_logger.info(f"Deleted orphaned remote emote {key!r} ({orphan_id}) before upload")
            if key not in orphaned:
                orphaned.append(key)

        created, fingerprint = await self._upload(key)
        ledger.add(LedgerEntry(
            key=key,
            remote_id=created.id,
            animated=created.animated,
            content_identifier=fingerprint
        ))
        self._events.record(SyncEventType.ADDED, key=key, remote_id=created.id)
        lib_logger.info(f"Added emote {key!r} ({created.id})")

    async def _update(self, ledger: Ledger, entry: LedgerEntry):
        old_id = entry.remote_id

        # Read content before the delete: a local failure must leave the
        # entry and the old resource in place
        with self._content.open_content(entry.key) as stream:
            fingerprint = self._content.fingerprint(entry.key)
            await self._call("delete", entry.key, self._registry.delete_resource(old_id))

            try:
                created = await self._call(
                    "create", entry.key, self._registry.create_resource(entry.key, stream)
                )
            except Exception:
                # The old resource is already gone; keep the ledger truthful
                ledger.remove(entry.key)
                lib_logger.warning(
                    f"Re-upload of {entry.key!r} failed after deleting {old_id}; "
                    f"entry dropped until the next run"
                )
                raise

        ledger.overwrite(
            entry.key,
            remote_id=created.id,
            animated=created.animated,
            content_identifier=fingerprint
        )
        self._events.record(
            SyncEventType.UPDATED,
            key=entry.key,
            remote_id=created.id,
            detail=f"replaced {old_id}"
        )
        lib_logger.info(f"Updated emote {entry.key!r} ({old_id} -> {created.id})")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _upload(self, key: str) -> Tuple[CreatedResource, bytes]:
        with self._content.open_content(key) as stream:
            fingerprint = self._content.fingerprint(key)
            created = await self._call("create", key, self._registry.create_resource(key, stream))
        return created, fingerprint

    @staticmethod
    def _orphan_ids(
        key: str,
        snapshot: Sequence[RemoteResource],
        tracked_ids: Set[int]
    ) -> List[int]:
        return [r.id for r in snapshot if r.name == key and r.id not in tracked_ids]

    @staticmethod
    async def _call(op: str, key: Optional[str], pending: Awaitable[T]) -> T:
        try:
            return await pending
        except RegistryError as e:
            raise RegistryOperationFailed(op, key, e) from e

    async def _guard(self, outcome: ReconcileOutcome, key: str, pending: Awaitable[None]) -> bool:
        """Run one key's work; record a registry failure instead of raising."""
        try:
            await pending
            return True
        except RegistryOperationFailed as failure:
            outcome.failures.append(failure)
            self._events.record(
                SyncEventType.FAILED,
                key=key,
                detail=f"{failure.op}: {failure.cause}"
            )
            lib_logger.warning(f"Registry {failure.op} failed for {key!r}: {failure.cause}")
            if self._stop_on_failure:
                raise _Halt() from failure
            return False
