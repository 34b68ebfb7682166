"""
Orchestrator - Main entry point for indexing and search.

Per-file pipeline:
    Walk → Fingerprint → Duplicate check → Extract → Submit

Files run concurrently up to `pipeline_concurrency`. The duplicate check
and the create that follows are not atomic in Elasticsearch, so at most one
check-then-create sequence per fingerprint runs at a time, and fingerprints
created earlier in the same walk count as indexed even before the index
refreshes.
"""

import asyncio
import contextlib
import functools
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Set

from elasticsearch import Elasticsearch

from .client import get_client
from .config import get_config, SearchConfig, set_config
from .models import FileInfo, IndexingStats, ProcessingResult, SearchHit
from .walker import Walker
from .hasher import Hasher
from .extractor import Extractor
from .indexer import Indexer
from .gateway import SearchGateway
from .errors import (
    handle_error, ErrorAction, DocSearchError, ExtractionError,
)


logger = logging.getLogger(__name__)


@dataclass
class _InFlight:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class Orchestrator:
    """
    Main orchestrator for indexing and search.

    Owns one Elasticsearch client shared by the indexer and the search
    gateway, unless a client is passed in.
    """

    def __init__(
        self,
        config: Optional[SearchConfig] = None,
        client: Optional[Elasticsearch] = None,
    ):
        self.config = config or get_config()
        if config:
            set_config(config)

        self._owns_client = client is None
        self._client = client if client is not None else get_client(self.config)

        # Initialize components
        self._hasher = Hasher(self.config)
        self._extractor = Extractor(self.config)
        self._indexer = Indexer(self.config, self._client)
        self._search = SearchGateway(self.config, self._client)
        self._inflight: Dict[str, _InFlight] = {}

    async def index_path(self, path: Path | str, index_name: str) -> IndexingStats:
        """
        Recursively index everything under path into index_name.

        A missing path is not an error. Per-file failures are logged and
        counted; they never stop the walk.

        Raises:
            TraversalError: The root path cannot be canonicalized
        """
        start_time = time.monotonic()
        stats = IndexingStats()
        walker = Walker(self.config)
        semaphore = asyncio.Semaphore(self.config.pipeline_concurrency)
        created: Set[str] = set()
        tasks: List[asyncio.Task] = []

        logger.info(f"Indexing {path} into {index_name}...")

        async def run(file_info: FileInfo) -> ProcessingResult:
            try:
                return await self._process_file(file_info, index_name, created)
            except Exception as e:
                action = handle_error(e, file_info.path, "pipeline")
                return ProcessingResult.failed(file_info.path, e, action)
            finally:
                semaphore.release()

        try:
            async for file_info in walker.walk(path):
                stats.files_scanned += 1
                await semaphore.acquire()
                tasks.append(asyncio.create_task(run(file_info)))
        finally:
            results = await asyncio.gather(*tasks)

        for result in results:
            stats.record(result)
        stats.errors += walker.error_count

        if stats.files_indexed:
            await self._run(self._indexer.refresh, index_name)

        stats.duration_seconds = time.monotonic() - start_time
        logger.info(f"Indexing of {path} complete: {stats}")
        return stats

    async def _process_file(
        self,
        file_info: FileInfo,
        index_name: str,
        created: Set[str],
    ) -> ProcessingResult:
        """Fingerprint, dedup, extract and submit one file."""
        path = file_info.path

        hashed = await self._hasher.hash_file(file_info)
        if hashed is None:
            return ProcessingResult.failed(path, None, ErrorAction.SKIP)
        fingerprint = hashed.fingerprint

        async with self._fingerprint_lock(fingerprint):
            hashed.is_known = fingerprint in created or await self._run(
                self._indexer.is_indexed, fingerprint, index_name, path
            )
            if hashed.is_known:
                logger.info(f"Already indexed, skipping: {path} ({fingerprint})")
                return ProcessingResult.duplicate(path)

            logger.info(
                f"Indexing {path} (type {file_info.file_type}, fingerprint {fingerprint})"
            )

            try:
                content = await self._extractor.extract_file(path, file_info.file_type)
            except ExtractionError as e:
                action = handle_error(e, path, "extract")
                if action is not ErrorAction.EMPTY_CONTENT:
                    return ProcessingResult.failed(path, e, action)
                content = ""

            result = await self._run(self._indexer.index_file, hashed, content, index_name)
            if result.success:
                created.add(fingerprint)
            return result

    @contextlib.asynccontextmanager
    async def _fingerprint_lock(self, fingerprint: str) -> AsyncIterator[None]:
        """Serialize work per fingerprint; the entry is dropped when unused."""
        entry = self._inflight.get(fingerprint)
        if entry is None:
            entry = self._inflight[fingerprint] = _InFlight()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._inflight[fingerprint]

    async def _run(self, func, *args):
        """Run a blocking Elasticsearch call off the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def search(
        self,
        keyword: str,
        index_name: Optional[str] = None,
        highlight: bool = False,
    ) -> List[SearchHit]:
        """
        Search for keyword, in index_name or in every index.

        Raises:
            SearchError: The query could not be executed
        """
        return self._search.search(keyword, index_name, highlight)

    def close(self):
        """Clean up resources."""
        self._hasher.close()
        self._extractor.close()
        if self._owns_client:
            self._client.close()


def index_path(
    path: Path | str,
    index_name: str,
    config: Optional[SearchConfig] = None,
    client: Optional[Elasticsearch] = None,
) -> IndexingStats:
    """
    Convenience function to index a path synchronously.

    Usage:
        stats = index_path("~/Documents", "docs")
        print(stats)
    """
    async def _index() -> IndexingStats:
        orchestrator = Orchestrator(config, client)
        try:
            return await orchestrator.index_path(path, index_name)
        finally:
            orchestrator.close()

    return asyncio.run(_index())


def search(
    keyword: str,
    index_name: Optional[str] = None,
    highlight: bool = False,
    config: Optional[SearchConfig] = None,
    client: Optional[Elasticsearch] = None,
) -> List[SearchHit]:
    """
    Convenience function to run one search.

    Usage:
        for hit in search("error", "docs", highlight=True):
            print(hit.document.path, hit.highlight)
    """
    gateway = SearchGateway(config, client)
    try:
        return gateway.search(keyword, index_name, highlight)
    finally:
        gateway.close()


def _print_hits(hits: List[SearchHit]) -> None:
    if not hits:
        print("No matches.")
        return

    for hit in hits:
        score = f"{hit.score:.2f}" if hit.score is not None else "-"
        print(f"{score}  [{hit.index}] {hit.document.path}")
        for field_name, fragments in (hit.highlight or {}).items():
            for fragment in fragments:
                print(f"      {field_name}: {fragment}")


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Crawl, index and search documents")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    commands = parser.add_subparsers(dest="command", required=True)

    index_cmd = commands.add_parser("index", help="Recursively index a path")
    index_cmd.add_argument("path", help="File or directory to index")
    index_cmd.add_argument("--index", "-i", required=True, help="Target index name")

    search_cmd = commands.add_parser("search", help="Search indexed documents")
    search_cmd.add_argument("keyword", help="Query string")
    search_cmd.add_argument("--index", "-i", default=None, help="Index name (default: all)")
    search_cmd.add_argument("--highlight", action="store_true", help="Show highlighted fragments")

    args = parser.parse_args(argv)

    # Configure logging
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s"
    )

    try:
        if args.command == "index":
            stats = index_path(args.path, args.index)
            print(f"\n{stats}")
        else:
            _print_hits(search(args.keyword, args.index, args.highlight))
    except DocSearchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nStopped.")
        return 130

    return 0


if __name__ == "__main__":
    sys.exit(main())
