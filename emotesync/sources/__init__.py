"""
Content Sources Package
=======================

Implementations of ContentSource.

Available sources:
- FileSystemContentSource: image files in prioritized directories
- InMemoryContentSource: bytes held in a dict (tests, embedding)
"""

from .base import ContentSource
from .filesystem import FileSystemContentSource
from .memory import InMemoryContentSource

__all__ = [
    'ContentSource',
    'FileSystemContentSource',
    'InMemoryContentSource',
]
