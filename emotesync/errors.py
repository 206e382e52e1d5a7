"""
Sync Error Taxonomy
===================

Every failure the engine can surface is enumerated here.

FAILURE CLASSES:
================
1. Input errors (MissingSpecification, DuplicateSlot, UnsupportedSpecification)
   - Raised during discovery, before anything is mutated
2. ContentNotFound
   - A desired internal key has no content; raised before any registry call
3. RegistryOperationFailed
   - A list/create/delete call failed; isolated per key during reconciliation
4. InvariantViolation
   - Binding found no ledger entry for a key reconciliation should have produced
"""

from __future__ import annotations
from enum import Enum
from typing import Optional


class SyncErrorCode(Enum):
    """Explicit error codes for sync failures."""
    MISSING_SPECIFICATION = "missing_specification"
    DUPLICATE_SLOT = "duplicate_slot"
    UNSUPPORTED_SPECIFICATION = "unsupported_specification"
    CONTENT_NOT_FOUND = "content_not_found"
    REGISTRY_ERROR = "registry_error"
    REGISTRY_OPERATION_FAILED = "registry_operation_failed"
    INVARIANT_VIOLATION = "invariant_violation"
    INTERNAL_ERROR = "internal_error"


class SyncError(Exception):
    """Base class for every error raised by emotesync."""

    code: SyncErrorCode = SyncErrorCode.INTERNAL_ERROR


# =============================================================================
# INPUT ERRORS (fatal, pre-mutation)
# =============================================================================

class MissingSpecification(SyncError):
    """A slot was declared without a specification."""

    code = SyncErrorCode.MISSING_SPECIFICATION

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"No emote specification supplied for slot {slot_id!r}")


class DuplicateSlot(SyncError):
    """The same slot id was declared twice."""

    code = SyncErrorCode.DUPLICATE_SLOT

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Slot {slot_id!r} is declared more than once")


class UnsupportedSpecification(SyncError):
    """A slot's specification is not one of the known variants."""

    code = SyncErrorCode.UNSUPPORTED_SPECIFICATION

    def __init__(self, slot_id: str, specification: object, reason: Optional[str] = None):
        self.slot_id = slot_id
        self.specification = specification
        detail = reason or f"type {type(specification).__name__} is not supported"
        super().__init__(f"Unsupported emote specification for slot {slot_id!r}: {detail}")


class ContentNotFound(SyncError, LookupError):
    """No content exists for an internal emote key."""

    code = SyncErrorCode.CONTENT_NOT_FOUND

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Image data for emote key {key!r} was not found")


# =============================================================================
# REGISTRY ERRORS
# =============================================================================

class RegistryError(SyncError):
    """
    Raised by RegistryClient implementations when a remote call fails.

    The reconciler only isolates this type; anything else propagates.
    """

    code = SyncErrorCode.REGISTRY_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None
    ):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


class RegistryOperationFailed(SyncError):
    """A registry operation failed for a specific key (or for the snapshot)."""

    code = SyncErrorCode.REGISTRY_OPERATION_FAILED

    def __init__(self, op: str, key: Optional[str], cause: Optional[BaseException] = None):
        self.op = op
        self.key = key
        self.cause = cause
        target = f"key {key!r}" if key is not None else "snapshot"
        message = f"Registry {op} failed for {target}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class InvariantViolation(SyncError):
    """Reconciliation finished without producing an entry it should have."""

    code = SyncErrorCode.INVARIANT_VIOLATION

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(
            message or f"No ledger entry for desired key {key!r} after reconciliation"
        )


class PartialSyncError(SyncError):
    """Raised by SyncReport.raise_for_failures() when any key failed."""

    code = SyncErrorCode.REGISTRY_OPERATION_FAILED

    def __init__(self, failures):
        self.failures = list(failures)
        keys = ", ".join(sorted({f.key for f in self.failures if f.key is not None}))
        super().__init__(f"{len(self.failures)} registry operation(s) failed: {keys}")
