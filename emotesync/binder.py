"""
Resolver / Binder

Turns discovery output plus the reconciled ledger into handles and delivers
them to every registered sink.

GUARANTEES:
===========
1. Simple (unicode/external) bindings are delivered as soon as they are known
2. Each internal key yields exactly ONE CustomHandle per run, and every
   fan-out sink for that key receives that same object, in registration order
3. A missing entry for a key reconciliation should have produced is a defect:
   InvariantViolation is raised, never skipped
"""

from __future__ import annotations
from typing import Collection, Dict, Iterable, List, Optional
import logging

from .contracts import Handle, InternalMapping, ResolvedBinding
from .errors import InvariantViolation
from .ledger import Ledger
from .report import SyncEventLog, SyncEventType

lib_logger = logging.getLogger("emotesync")


class Binder:
    """Delivers resolved handles to sinks and collects them by slot id."""

    def __init__(self, events: Optional[SyncEventLog] = None):
        self._events = events if events is not None else SyncEventLog()
        self._handles: Dict[str, Handle] = {}

    @property
    def handles(self) -> Dict[str, Handle]:
        return dict(self._handles)

    def bind_resolved(self, bindings: Iterable[ResolvedBinding]):
        """Deliver handles that needed no reconciliation."""
        for binding in bindings:
            self._deliver(binding.slot_id, binding.handle, binding.target)

    def bind_internal(
        self,
        mappings: Iterable[InternalMapping],
        ledger: Ledger,
        unresolved_keys: Collection[str] = ()
    ) -> List[str]:
        """
        Deliver one handle per internal key from the reconciled ledger.

        Keys in unresolved_keys (failed or skipped this run) may be absent;
        they are returned as unbound and their sinks are not invoked.
        """
        unbound: List[str] = []

        for mapping in mappings:
            entry = ledger.get(mapping.key)

            if entry is None:
                if mapping.key in unresolved_keys:
                    lib_logger.warning(
                        f"Emote {mapping.key!r} is unbound this run "
                        f"({len(mapping.targets)} slot(s) left unset)"
                    )
                    unbound.append(mapping.key)
                    continue
                raise InvariantViolation(mapping.key)

            handle = entry.to_handle()
            for slot in mapping.targets:
                self._deliver(slot.slot_id, handle, slot.target)
            self._events.record(
                SyncEventType.BOUND,
                key=mapping.key,
                remote_id=entry.remote_id,
                detail=f"{len(mapping.targets)} slot(s)"
            )

        return unbound

    def _deliver(self, slot_id: str, handle: Handle, target):
        self._handles[slot_id] = handle
        if target is not None:
            target(handle)
