"""
Content Source Abstraction
==========================

Abstract interface for stores that supply raw emote image bytes.

GUARANTEES REQUIRED OF IMPLEMENTATIONS:
- list_keys() is the complete set of keys that open_content() accepts
- open_content() returns a fresh binary stream the caller closes
- fingerprint() is derived from the full content, so equal bytes give
  equal fingerprints and changed bytes give a different one
- Unknown keys raise ContentNotFound, never return empty data
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import BinaryIO, Set


class ContentSource(ABC):
    """Content-addressed store of emote bytes, keyed by string key."""

    @abstractmethod
    def list_keys(self) -> Set[str]:
        """All keys with content available."""
        pass

    @abstractmethod
    def open_content(self, key: str) -> BinaryIO:
        """Open a binary stream over the content for key."""
        pass

    @abstractmethod
    def fingerprint(self, key: str) -> bytes:
        """Opaque identifier of the current content for key."""
        pass

    def read_content(self, key: str) -> bytes:
        with self.open_content(key) as stream:
            return stream.read()
