"""
Docsearch Package - Crawl, extract and index documents into Elasticsearch.

Modules:
    - config: Centralized configuration
    - walker: Recursive traversal with lock-file and file type filtering
    - hasher: Content fingerprinting (deduplication key)
    - extractor: Text extraction (plain text, docx, pdf)
    - indexer: Duplicate check, document submission, refresh
    - gateway: Query-string search with highlighting
    - orchestrator: Main entry point

Indexing Flow:
    Walk → Fingerprint → Duplicate check → Extract → Submit

Usage:
    from docsearch import index_path, search

    index_path("~/Documents", "docs")
    hits = search("error", "docs", highlight=True)
"""

from .orchestrator import Orchestrator, index_path, search

__all__ = ["Orchestrator", "index_path", "search"]
