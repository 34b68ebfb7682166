"""
Data Models - Type definitions for the indexing pipeline and search results.

These dataclasses represent the data flowing through the pipeline stages,
plus the Document record stored in Elasticsearch.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from .errors import ErrorAction


def file_type_of(name: str) -> str:
    """
    Return the lower-cased text after the last dot of a file name.

    A name without a dot yields the whole name, so "notes.TXT" -> "txt"
    and "README" -> "readme".
    """
    return name.rsplit(".", 1)[-1].lower()


@dataclass
class FileInfo:
    """
    Basic file information from the walker.

    Only what stat() gives us; no file content is read.
    """
    path: Path
    name: str
    file_type: str
    size: int
    mtime: datetime

    @classmethod
    def from_path(cls, path: Path, mtime: float, size: int) -> "FileInfo":
        """Create FileInfo from a path and stat result."""
        return cls(
            path=path,
            name=path.name,
            file_type=file_type_of(path.name),
            size=size,
            mtime=datetime.fromtimestamp(mtime),
        )


@dataclass
class HashedFile:
    """
    File with content identity.
    """
    info: FileInfo
    fingerprint: str           # Hex digest of the raw file bytes
    is_known: bool = False     # True if the fingerprint is already indexed


@dataclass(frozen=True)
class Document:
    """
    The unit stored in and retrieved from the search index.

    Immutable once built: a changed file produces a new Document.
    """
    author: str                # Containing directory (provenance, not a person)
    title: str                 # File base name
    path: str
    content: str
    file_fingerprint: str
    doc_type: str = "files"
    id: Optional[str] = None   # Assigned by Elasticsearch

    def to_source(self) -> Dict[str, str]:
        """Serialize to the Elasticsearch _source layout."""
        return {
            "author": self.author,
            "title": self.title,
            "path": self.path,
            "content": self.content,
            "fileFingerprint": self.file_fingerprint,
            "docType": self.doc_type,
        }

    @classmethod
    def from_hit(cls, hit: Dict[str, Any]) -> "Document":
        """Build a Document from a raw Elasticsearch hit."""
        source = hit.get("_source") or {}
        return cls(
            id=hit.get("_id"),
            author=source.get("author", ""),
            title=source.get("title", ""),
            path=source.get("path", ""),
            content=source.get("content") or "",
            file_fingerprint=source.get("fileFingerprint", ""),
            doc_type=source.get("docType", ""),
        )


@dataclass
class SearchHit:
    """One ranked search result."""
    document: Document
    score: Optional[float]
    index: str
    highlight: Optional[Dict[str, List[str]]] = None  # None unless requested

    @classmethod
    def from_hit(cls, hit: Dict[str, Any], highlighted: bool) -> "SearchHit":
        return cls(
            document=Document.from_hit(hit),
            score=hit.get("_score"),
            index=hit.get("_index", ""),
            highlight=hit.get("highlight", {}) if highlighted else None,
        )


class Outcome(Enum):
    """Per-file result of the indexing pipeline."""
    INDEXED = "indexed"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class ProcessingResult:
    """Result of processing a single file."""
    outcome: Outcome
    path: Optional[Path] = None
    document_id: Optional[str] = None
    empty_content: bool = False
    error: Optional[Exception] = None
    action_taken: Optional[ErrorAction] = None

    @property
    def success(self) -> bool:
        return self.outcome is not Outcome.FAILED

    @classmethod
    def indexed(cls, path: Path, document_id: str, empty_content: bool = False) -> "ProcessingResult":
        return cls(
            outcome=Outcome.INDEXED,
            path=path,
            document_id=document_id,
            empty_content=empty_content,
        )

    @classmethod
    def duplicate(cls, path: Path) -> "ProcessingResult":
        return cls(outcome=Outcome.DUPLICATE, path=path)

    @classmethod
    def failed(cls, path: Path, error: Optional[Exception], action: ErrorAction) -> "ProcessingResult":
        return cls(outcome=Outcome.FAILED, path=path, error=error, action_taken=action)


@dataclass
class IndexingStats:
    """Statistics from an index_path run."""
    files_scanned: int = 0
    files_indexed: int = 0
    files_deduplicated: int = 0  # Fingerprint already in the index
    empty_extractions: int = 0   # Indexed without content
    errors: int = 0
    duration_seconds: float = 0.0
    document_ids: List[str] = field(default_factory=list)

    def record(self, result: ProcessingResult) -> None:
        """Fold one per-file result into the counters."""
        if result.outcome is Outcome.INDEXED:
            self.files_indexed += 1
            if result.document_id:
                self.document_ids.append(result.document_id)
            if result.empty_content:
                self.empty_extractions += 1
        elif result.outcome is Outcome.DUPLICATE:
            self.files_deduplicated += 1
        else:
            self.errors += 1

    def __str__(self) -> str:
        return (
            f"Indexed {self.files_indexed} of {self.files_scanned} files "
            f"({self.files_deduplicated} already indexed, "
            f"{self.empty_extractions} without content, "
            f"{self.errors} errors) "
            f"in {self.duration_seconds:.1f}s"
        )
