"""
Sync Test Fixtures

Fixed image payloads and small builders for deterministic tests.
All fixtures are explicit - no random generation.
"""

import hashlib
from typing import Dict, List, Optional

from emotesync import (
    EmoteSyncEngine,
    InMemoryContentSource,
    InMemoryRegistry,
    LedgerEntry,
    RemoteResource,
    SyncConfig,
)


# =============================================================================
# IMAGE PAYLOADS
# =============================================================================

PNG_OKAY = b'\x89PNG\r\n\x1a\n' + b'okay-v1'
PNG_OKAY_V2 = b'\x89PNG\r\n\x1a\n' + b'okay-v2'
PNG_OTHER = b'\x89PNG\r\n\x1a\n' + b'other'
GIF_SPIN = b'GIF89a' + b'spin'

DEAD_BEEF = bytes([0xDE, 0xAD, 0xBE, 0xEF])
CAFE_DEAD = bytes([0xCA, 0xFE, 0xDE, 0xAD])


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


# =============================================================================
# SINKS
# =============================================================================

class Sink:
    """Records every handle delivered to it."""

    def __init__(self):
        self.received: List = []

    def __call__(self, handle):
        self.received.append(handle)

    @property
    def last(self):
        return self.received[-1]


# =============================================================================
# BUILDERS
# =============================================================================

def make_engine(
    content: Optional[Dict[str, bytes]] = None,
    resources: Optional[List[RemoteResource]] = None,
    config: Optional[SyncConfig] = None,
    fail_on=None,
    first_id: int = 1000
):
    source = InMemoryContentSource(content or {})
    registry = InMemoryRegistry(resources=resources, fail_on=fail_on, first_id=first_id)
    engine = EmoteSyncEngine(source, registry, config)
    return engine, source, registry


def tracked(key: str, remote_id: int, data: bytes, animated: bool = False) -> LedgerEntry:
    return LedgerEntry(
        key=key,
        remote_id=remote_id,
        animated=animated,
        content_identifier=sha256(data)
    )


class UnreadableContentSource(InMemoryContentSource):
    """Lists and fingerprints every key, but cannot open the ones in `unreadable`."""

    def __init__(self, content: Dict[str, bytes], unreadable=()):
        super().__init__(content)
        self.unreadable = set(unreadable)

    def open_content(self, key: str):
        if key in self.unreadable:
            raise OSError(f"{key} vanished from disk")
        return super().open_content(key)
