"""
Walker - Recursive file system traversal with admission filtering.

Yields FileInfo objects for every regular file that passes the admission
filter (lock-file prefix and file type allow-list). Directories are entered
through their canonical path, and each canonical directory is visited at
most once per walk so symlink loops terminate.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import AsyncGenerator, List, Optional, Set

from .config import get_config, SearchConfig
from .models import FileInfo, file_type_of
from .errors import handle_error, TraversalError


logger = logging.getLogger(__name__)


class Walker:
    """
    Depth-first directory walker.

    Sibling order is whatever the file system enumeration yields; nothing
    downstream depends on it.
    """

    def __init__(self, config: SearchConfig | None = None):
        self.config = config or get_config()
        self.skipped_count = 0
        self.error_count = 0

    async def walk(self, root: Path | str) -> AsyncGenerator[FileInfo, None]:
        """
        Iterate over admitted files under root.

        A missing root yields nothing. A root that is a regular file is
        admitted (or not) on its own.

        Raises:
            TraversalError: The root exists but cannot be canonicalized.
        """
        root = Path(root).expanduser()

        if not root.exists():
            logger.debug(f"Nothing to index, path does not exist: {root}")
            return

        try:
            canonical = root.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            raise TraversalError(root, str(e)) from e

        if canonical.is_dir():
            visited: Set[Path] = set()
            async for file_info in self._walk_directory(canonical, visited):
                yield file_info
        elif canonical.is_file():
            file_info = self._admit(canonical)
            if file_info:
                yield file_info

    async def _walk_directory(
        self,
        directory: Path,
        visited: Set[Path],
    ) -> AsyncGenerator[FileInfo, None]:
        """Recursively walk one canonical directory."""
        if directory in visited:
            logger.warning(f"Directory already visited (symlink loop?): {directory}")
            return
        visited.add(directory)

        loop = asyncio.get_running_loop()
        try:
            entries = await loop.run_in_executor(None, _list_directory, directory)
        except OSError as e:
            self.error_count += 1
            handle_error(TraversalError(directory, str(e)), directory, "walk")
            return

        for entry in entries:
            try:
                if entry.is_dir():
                    child = self._canonicalize(Path(entry.path))
                    if child is None:
                        continue
                    async for file_info in self._walk_directory(child, visited):
                        yield file_info

                elif entry.is_file():
                    file_info = self._admit(Path(entry.path))
                    if file_info:
                        yield file_info

            except OSError as e:
                self.error_count += 1
                handle_error(e, Path(entry.path), "walk_entry")
                continue

    def _canonicalize(self, path: Path) -> Optional[Path]:
        """Resolve a directory path, or None to skip its subtree."""
        try:
            return path.resolve(strict=True)
        except (OSError, RuntimeError) as e:
            self.error_count += 1
            handle_error(TraversalError(path, str(e)), path, "canonicalize")
            return None

    def _admit(self, path: Path) -> Optional[FileInfo]:
        """Apply the admission filter and stat the file."""
        if self.should_skip_file(path.name):
            self.skipped_count += 1
            logger.debug(f"Skipping {path}")
            return None

        try:
            stat = path.stat()
        except OSError as e:
            self.error_count += 1
            handle_error(e, path, "stat")
            return None

        return FileInfo.from_path(path=path, mtime=stat.st_mtime, size=stat.st_size)

    def should_skip_file(self, name: str) -> bool:
        """Check if a file name fails the admission filter."""
        # Office-suite lock files are never real content
        if name.startswith(self.config.lock_file_prefix):
            return True

        return file_type_of(name) not in self.config.allowed_types


def _list_directory(directory: Path) -> List[os.DirEntry]:
    with os.scandir(directory) as it:
        return list(it)


async def walk_path(
    root: Path | str,
    config: SearchConfig | None = None,
) -> List[FileInfo]:
    """
    Convenience function to collect every admitted file under root.

    Usage:
        files = await walk_path(Path.home() / "Documents")
        for file in files:
            print(file.path, file.file_type)
    """
    walker = Walker(config)
    return [file_info async for file_info in walker.walk(root)]
