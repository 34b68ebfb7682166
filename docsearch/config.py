"""
Search Configuration - Centralized settings for crawling, indexing and search.

Uses environment variables with sensible defaults. Type labels are stored
without the leading dot and lower-cased so they can be compared directly
against the suffix the walker derives from a file name.
"""

import hashlib
import os
from dataclasses import dataclass, field
from typing import List, Optional, Set


@dataclass
class SearchConfig:
    """
    Configuration for the document search system.

    Elasticsearch defaults to a local single node.
    Concurrency limits are tuned for typical desktop hardware.
    """

    # --- Elasticsearch ---
    es_hosts: List[str] = field(default_factory=lambda: ["http://localhost:9200"])
    es_username: Optional[str] = None
    es_password: Optional[str] = None
    es_api_key: Optional[str] = None
    request_timeout: float = 30.0   # Seconds, applied to every index call

    # --- Document layout ---
    doc_type: str = "files"                         # Fixed type label on every Document
    fingerprint_field: str = "fileFingerprint.keyword"
    doc_type_field: str = "docType.keyword"

    # --- Admission ---
    lock_file_prefix: str = "~$"    # Office-suite lock files
    text_types: Set[str] = field(default_factory=lambda: {
        "txt", "java", "c", "cpp",
    })
    document_types: Set[str] = field(default_factory=lambda: {
        "docx", "pdf",
    })

    # --- Fingerprinting ---
    hash_algorithm: str = "md5"     # Any hashlib name, or "xxh64"

    # --- Concurrency Limits ---
    pipeline_concurrency: int = 4   # Files in flight at once (1 = sequential)
    hasher_concurrency: int = 8
    extractor_concurrency: int = 4

    # --- Search ---
    search_size: int = 10
    highlight_fields: List[str] = field(default_factory=lambda: [
        "path", "title", "content",
    ])
    highlighter_type: str = "unified"

    def __post_init__(self):
        """Normalize type labels and validate limits."""
        self.text_types = {t.lower().lstrip(".") for t in self.text_types}
        self.document_types = {t.lower().lstrip(".") for t in self.document_types}
        self.hash_algorithm = self.hash_algorithm.lower()

        if self.hash_algorithm != "xxh64" and self.hash_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unknown hash algorithm: {self.hash_algorithm}")

        for name in ("pipeline_concurrency", "hasher_concurrency", "extractor_concurrency"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be at least 1")

    @property
    def allowed_types(self) -> Set[str]:
        """Every file type the pipeline will index."""
        return self.text_types | self.document_types

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """
        Create config from environment variables.

        Supported env vars:
            DOCSEARCH_ES_HOSTS: Comma-separated list of Elasticsearch URLs
            DOCSEARCH_ES_USERNAME / DOCSEARCH_ES_PASSWORD: Basic auth
            DOCSEARCH_ES_API_KEY: API key auth (wins over basic auth)
            DOCSEARCH_REQUEST_TIMEOUT: Seconds per Elasticsearch request
            DOCSEARCH_DOC_TYPE: Document type label
            DOCSEARCH_HASH_ALGORITHM: Fingerprint algorithm
            DOCSEARCH_CONCURRENCY: Files processed in parallel
            DOCSEARCH_SEARCH_SIZE: Maximum hits per search
        """
        config = cls()

        if hosts := os.environ.get("DOCSEARCH_ES_HOSTS"):
            config.es_hosts = [h.strip() for h in hosts.split(",") if h.strip()]

        if username := os.environ.get("DOCSEARCH_ES_USERNAME"):
            config.es_username = username

        if password := os.environ.get("DOCSEARCH_ES_PASSWORD"):
            config.es_password = password

        if api_key := os.environ.get("DOCSEARCH_ES_API_KEY"):
            config.es_api_key = api_key

        if timeout := os.environ.get("DOCSEARCH_REQUEST_TIMEOUT"):
            config.request_timeout = float(timeout)

        if doc_type := os.environ.get("DOCSEARCH_DOC_TYPE"):
            config.doc_type = doc_type

        if algorithm := os.environ.get("DOCSEARCH_HASH_ALGORITHM"):
            config.hash_algorithm = algorithm

        if concurrency := os.environ.get("DOCSEARCH_CONCURRENCY"):
            config.pipeline_concurrency = int(concurrency)

        if size := os.environ.get("DOCSEARCH_SEARCH_SIZE"):
            config.search_size = int(size)

        config.__post_init__()
        return config


# Singleton default config
_default_config: SearchConfig | None = None


def get_config() -> SearchConfig:
    """Get the default configuration (singleton)."""
    global _default_config
    if _default_config is None:
        _default_config = SearchConfig.from_env()
    return _default_config


def set_config(config: SearchConfig | None) -> None:
    """Override the default configuration (for testing)."""
    global _default_config
    _default_config = config
