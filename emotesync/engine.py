"""
Emote Sync Engine

Single entry point: discover -> validate -> snapshot -> reconcile -> bind.

BOUNDARY ENFORCEMENT:
=====================
- Input errors and missing content abort BEFORE any registry call
- The ledger is mutated in place; persisting it is the caller's job
- One run at a time per ledger/registry pair (not enforced here)

WHY A SEPARATE ENGINE:
=====================
Discovery, reconciliation and binding are independent pieces.
The engine fixes their order and builds the SyncReport.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Union
import asyncio
import logging

from .binder import Binder
from .contracts import LedgerEntry
from .discovery import SlotInput, discover
from .errors import ContentNotFound
from .ledger import Ledger
from .reconciler import Reconciler
from .registry.base import RegistryClient
from .report import SyncEventLog, SyncReport
from .sources.base import ContentSource

lib_logger = logging.getLogger("emotesync")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class SyncConfig:
    """
    Configuration for a sync run.

    WHY FROZEN:
    Config must not change mid-run. Changes require a new instance.
    """
    # Compute the plan and stop before any mutation (ledger included)
    dry_run: bool = False

    # Abort remaining mutations after the first per-key registry failure
    stop_on_failure: bool = False


# =============================================================================
# ENGINE
# =============================================================================

class EmoteSyncEngine:
    """
    Reconciles desired emote slots against a content source and a registry.

    Usage:
        engine = EmoteSyncEngine(content, registry)
        report = await engine.run(slots, ledger_rows)
        save(ledger_rows)
    """

    def __init__(
        self,
        content: ContentSource,
        registry: RegistryClient,
        config: Optional[SyncConfig] = None
    ):
        self._content = content
        self._registry = registry
        self._config = config or SyncConfig()

    @property
    def config(self) -> SyncConfig:
        return self._config

    async def run(
        self,
        slots: Iterable[SlotInput],
        ledger: Union[Ledger, List[LedgerEntry]]
    ) -> SyncReport:
        """
        Run one full synchronization.

        Raises MissingSpecification / DuplicateSlot / UnsupportedSpecification /
        ContentNotFound before any mutation, RegistryOperationFailed if the
        snapshot cannot be fetched, and InvariantViolation on a binding defect.
        Per-key registry failures are reported, not raised.
        """
        if not isinstance(ledger, Ledger):
            ledger = Ledger(ledger)

        events = SyncEventLog()
        binder = Binder(events)

        discovery = discover(slots)
        binder.bind_resolved(discovery.resolved)

        desired_keys = discovery.internal_keys
        self.validate_content(desired_keys)

        if not desired_keys and len(ledger) == 0:
            lib_logger.debug("No internal emotes desired or tracked; skipping registry")
            return SyncReport(
                handles=binder.handles,
                events=events.events,
                dry_run=self._config.dry_run
            )

        reconciler = Reconciler(
            self._content,
            self._registry,
            events=events,
            stop_on_failure=self._config.stop_on_failure
        )
        snapshot = await reconciler.snapshot()

        if self._config.dry_run:
            plan = reconciler.plan(ledger, desired_keys, snapshot)
            lib_logger.info(
                f"Dry run: {len(plan.add)} to add, {len(plan.update)} to update, "
                f"{len(plan.remove)} to remove, {len(plan.prune)} to prune"
            )
            return SyncReport(
                handles=binder.handles,
                plan=plan,
                events=events.events,
                dry_run=True
            )

        outcome = await reconciler.reconcile(ledger, desired_keys, snapshot)
        unbound = binder.bind_internal(discovery.internal, ledger, outcome.unresolved_keys)

        report = SyncReport(
            handles=binder.handles,
            failures=outcome.failures,
            unbound_keys=unbound,
            plan=outcome.plan,
            events=events.events
        )

        if report.complete:
            lib_logger.info(
                f"Emote sync complete: {len(report.handles)} slot(s) bound, "
                f"{report.plan.mutation_count} registry mutation(s)"
            )
        else:
            lib_logger.warning(
                f"Emote sync partially complete: {len(report.failures)} failure(s), "
                f"unbound keys {report.unbound_keys}"
            )

        return report

    def run_sync(
        self,
        slots: Iterable[SlotInput],
        ledger: Union[Ledger, List[LedgerEntry]]
    ) -> SyncReport:
        """Synchronous version of run."""
        return asyncio.run(self.run(slots, ledger))

    def validate_content(self, keys: Sequence[str]):
        """Raise ContentNotFound for the first key the source cannot supply."""
        available = self._content.list_keys()
        for key in keys:
            if key not in available:
                raise ContentNotFound(key)
