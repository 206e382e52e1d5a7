"""
emotesync
=========

Keeps a declared set of emotes in step with a remote emoji registry.

DIRECTION OF DEPENDENCY:
========================
engine -> discovery / reconciler / binder -> contracts, errors
reconciler -> sources (ContentSource), registry (RegistryClient)

Callers supply three things:
1. A ContentSource holding the image bytes
2. A RegistryClient for the remote registry
3. The ledger: a list of LedgerEntry rows they load and persist themselves

Runs must be serialized per ledger/registry pair.
"""

import logging

from .contracts import (
    UnicodeEmote,
    ExternalCustomEmote,
    InternalCustomEmote,
    EmoteSpecification,
    UnicodeHandle,
    CustomHandle,
    Handle,
    BindTarget,
    EmoteSlot,
    SlotTarget,
    ResolvedBinding,
    InternalMapping,
    LedgerEntry,
    RemoteResource,
    CreatedResource,
)

from .errors import (
    SyncErrorCode,
    SyncError,
    MissingSpecification,
    DuplicateSlot,
    UnsupportedSpecification,
    ContentNotFound,
    RegistryError,
    RegistryOperationFailed,
    InvariantViolation,
    PartialSyncError,
)

from .discovery import Discovery, discover
from .ledger import Ledger
from .reconciler import Reconciler, ReconcileOutcome
from .binder import Binder
from .report import SyncEvent, SyncEventType, SyncEventLog, SyncPlan, SyncReport
from .engine import EmoteSyncEngine, SyncConfig
from .sources import ContentSource, FileSystemContentSource, InMemoryContentSource
from .registry import RegistryClient, InMemoryRegistry

# Library logging is opt-in for the host application
logging.getLogger("emotesync").addHandler(logging.NullHandler())

__all__ = [
    # Contracts
    'UnicodeEmote', 'ExternalCustomEmote', 'InternalCustomEmote', 'EmoteSpecification',
    'UnicodeHandle', 'CustomHandle', 'Handle', 'BindTarget',
    'EmoteSlot', 'SlotTarget', 'ResolvedBinding', 'InternalMapping',
    'LedgerEntry', 'RemoteResource', 'CreatedResource',
    # Errors
    'SyncErrorCode', 'SyncError', 'MissingSpecification', 'DuplicateSlot',
    'UnsupportedSpecification', 'ContentNotFound', 'RegistryError',
    'RegistryOperationFailed', 'InvariantViolation', 'PartialSyncError',
    # Pipeline
    'Discovery', 'discover', 'Ledger', 'Reconciler', 'ReconcileOutcome', 'Binder',
    'SyncEvent', 'SyncEventType', 'SyncEventLog', 'SyncPlan', 'SyncReport',
    'EmoteSyncEngine', 'SyncConfig',
    # Collaborators
    'ContentSource', 'FileSystemContentSource', 'InMemoryContentSource',
    'RegistryClient', 'InMemoryRegistry',
]

__version__ = "1.0.0"
