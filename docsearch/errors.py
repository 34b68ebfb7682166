"""
Error Handling - Centralized error policies and custom exceptions.

Every per-file failure in the indexing pipeline is recoverable: this module
decides what "recover" means for each error type and logs it consistently,
so that a single bad file never halts the crawl.
"""

import logging
from enum import Enum, auto
from dataclasses import dataclass
from typing import Optional
from pathlib import Path


logger = logging.getLogger(__name__)


class ErrorAction(Enum):
    """What to do when an error occurs."""
    SKIP = auto()           # Skip this file or subtree, continue processing
    EMPTY_CONTENT = auto()  # Index the file with empty content
    ASSUME_NEW = auto()     # Treat the fingerprint as not yet indexed


class DocSearchError(Exception):
    """Base exception for the docsearch package."""
    pass


class IndexingError(DocSearchError):
    """Base exception for indexing errors."""
    pass


class TraversalError(IndexingError):
    """A path could not be canonicalized or listed."""
    def __init__(self, path: Path, reason: str):
        self.path = path
        super().__init__(f"Cannot traverse {path}: {reason}")


class ExtractionError(IndexingError):
    """Text could not be extracted from a document."""
    def __init__(self, path: Path, file_type: str, reason: str):
        self.path = path
        self.file_type = file_type
        super().__init__(f"Cannot extract {file_type} text from {path}: {reason}")


class DuplicateCheckError(IndexingError):
    """The fingerprint lookup against the index failed."""
    pass


class SubmissionError(IndexingError):
    """The index rejected a document or returned no id."""
    pass


class SearchError(DocSearchError):
    """A search query failed to execute."""
    def __init__(self, keyword: str, index_name: Optional[str], reason: str):
        self.keyword = keyword
        self.index_name = index_name
        target = index_name or "<all indices>"
        super().__init__(f"Search for {keyword!r} in {target} failed: {reason}")


@dataclass
class ErrorPolicy:
    """Policy for handling a specific error type."""
    action: ErrorAction
    log_level: int
    message_template: str = "{file}: {error}"


# Error type to policy mapping (first isinstance match wins)
ERROR_POLICIES: dict[type, ErrorPolicy] = {
    ExtractionError: ErrorPolicy(
        action=ErrorAction.EMPTY_CONTENT,
        log_level=logging.WARNING,
        message_template="Extraction failed, indexing without content: {file} - {error}"
    ),
    DuplicateCheckError: ErrorPolicy(
        action=ErrorAction.ASSUME_NEW,
        log_level=logging.WARNING,
        message_template="Duplicate check failed, treating as new: {file} - {error}"
    ),
    SubmissionError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.ERROR,
        message_template="Index submission failed: {file} - {error}"
    ),
    TraversalError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="Skipping subtree: {file} - {error}"
    ),
    PermissionError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="Permission denied: {file}"
    ),
    FileNotFoundError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.DEBUG,
        message_template="File not found (possibly deleted): {file}"
    ),
    IsADirectoryError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.DEBUG,
        message_template="Expected file, got directory: {file}"
    ),
    OSError: ErrorPolicy(
        action=ErrorAction.SKIP,
        log_level=logging.WARNING,
        message_template="OS error reading file: {file} - {error}"
    ),
}


def handle_error(
    error: Exception,
    file_path: Optional[Path] = None,
    context: str = ""
) -> ErrorAction:
    """
    Handle an error according to the defined policies.

    Args:
        error: The exception that occurred
        file_path: Path to the file being processed (if applicable)
        context: Pipeline stage, prefixed to the log line

    Returns:
        The action to take (SKIP, EMPTY_CONTENT, etc.)
    """
    policy = None
    for error_type, p in ERROR_POLICIES.items():
        if isinstance(error, error_type):
            policy = p
            break

    # Default policy for unknown errors
    if policy is None:
        policy = ErrorPolicy(
            action=ErrorAction.SKIP,
            log_level=logging.ERROR,
            message_template="Unexpected error: {file} - {error}"
        )

    file_str = str(file_path) if file_path else "<unknown>"
    message = policy.message_template.format(file=file_str, error=str(error))
    if context:
        message = f"[{context}] {message}"

    logger.log(policy.log_level, message)

    return policy.action
