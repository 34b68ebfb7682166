"""
Hasher - Content fingerprinting.

Hashes raw file bytes only. The fingerprint is the sole identity key for
"already indexed", so it must be deterministic: identical bytes always give
the same digest. MD5 is the default so fingerprints match indices written
by earlier crawls; xxHash (xxh64) is available when speed matters more.
"""

import asyncio
import hashlib
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

import xxhash

from .config import get_config, SearchConfig
from .models import FileInfo, HashedFile
from .errors import handle_error


logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536


class Hasher:
    """
    Content fingerprinter.

    Runs blocking reads in a thread pool so the walk keeps moving.
    """

    def __init__(self, config: SearchConfig | None = None):
        self.config = config or get_config()
        self._executor: ThreadPoolExecutor | None = None

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.config.hasher_concurrency,
                thread_name_prefix="hasher"
            )
        return self._executor

    def fingerprint(self, path: Path) -> str:
        """Compute the hex digest of a file's bytes."""
        if self.config.hash_algorithm == "xxh64":
            hasher = xxhash.xxh64()
        else:
            hasher = hashlib.new(self.config.hash_algorithm)

        with open(path, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                hasher.update(chunk)

        return hasher.hexdigest()

    async def hash_file(self, file_info: FileInfo) -> Optional[HashedFile]:
        """
        Fingerprint a single file.

        Returns:
            HashedFile, or None if the file could not be read
        """
        loop = asyncio.get_running_loop()
        try:
            fingerprint = await loop.run_in_executor(
                self._get_executor(), self.fingerprint, file_info.path
            )
        except OSError as e:
            handle_error(e, file_info.path, "fingerprint")
            return None

        return HashedFile(info=file_info, fingerprint=fingerprint)

    def close(self):
        """Shutdown the thread pool."""
        if self._executor:
            self._executor.shutdown(wait=False)
            self._executor = None


def fingerprint_file(path: Path, config: SearchConfig | None = None) -> str:
    """
    Convenience function to fingerprint one file synchronously.

    Usage:
        digest = fingerprint_file(Path("report.pdf"))
    """
    return Hasher(config).fingerprint(path)
