"""
Filesystem Content Source

Serves emote images from one or more directories.

PRINCIPLES:
===========
1. The key is the filename without its extension ("Logo.png" -> "Logo")
2. Directories are searched in priority order: the first one holding a key wins
3. Missing directories are created rather than treated as errors
4. The index is built once, on first use
"""

from __future__ import annotations
from typing import BinaryIO, Dict, Iterable, List, Optional, Set, Union
from pathlib import Path
import hashlib
import logging

from ..errors import ContentNotFound
from .base import ContentSource

lib_logger = logging.getLogger("emotesync")

_HASH_CHUNK_SIZE = 64 * 1024


class FileSystemContentSource(ContentSource):
    """
    Content source over image files on disk.

    Fingerprints are a hashlib digest (sha256 by default) of the full file.
    """

    def __init__(
        self,
        directories: Iterable[Union[str, Path]],
        algorithm: str = "sha256"
    ):
        self._directories: List[Path] = [Path(d) for d in directories]
        self._algorithm = algorithm
        self._index: Optional[Dict[str, Path]] = None

        # Fail on an unknown algorithm at construction, not mid-sync
        hashlib.new(algorithm)

    @property
    def directories(self) -> List[Path]:
        return list(self._directories)

    def _load_index(self) -> Dict[str, Path]:
        index: Dict[str, Path] = {}

        for directory in self._directories:
            if not directory.exists():
                lib_logger.info(f"Creating missing emote directory {directory}")
                directory.mkdir(parents=True, exist_ok=True)

            for path in sorted(directory.iterdir()):
                if not path.is_file():
                    continue
                key = path.stem
                if key in index:
                    lib_logger.debug(
                        f"Emote key {key!r} in {path} shadowed by {index[key]}"
                    )
                    continue
                index[key] = path

        return index

    def _paths(self) -> Dict[str, Path]:
        if self._index is None:
            self._index = self._load_index()
        return self._index

    def refresh(self):
        """Drop the cached index so the next call rescans the directories."""
        self._index = None

    def path_for(self, key: str) -> Path:
        try:
            return self._paths()[key]
        except KeyError:
            raise ContentNotFound(key) from None

    def list_keys(self) -> Set[str]:
        return set(self._paths())

    def open_content(self, key: str) -> BinaryIO:
        return open(self.path_for(key), 'rb')

    def fingerprint(self, key: str) -> bytes:
        digest = hashlib.new(self._algorithm)
        with self.open_content(key) as f:
            for chunk in iter(lambda: f.read(_HASH_CHUNK_SIZE), b''):
                digest.update(chunk)
        return digest.digest()
