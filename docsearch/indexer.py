"""
Indexer - Duplicate detection and document submission.

Talks to Elasticsearch through the synchronous client. Lookups are
best-effort: when the fingerprint query fails, the file is treated as new,
favouring a redundant Document over silently dropping content.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from elasticsearch import ApiError, Elasticsearch, TransportError

from .client import get_client
from .config import get_config, SearchConfig
from .models import Document, FileInfo, HashedFile, ProcessingResult
from .errors import handle_error, ErrorAction, DuplicateCheckError, SubmissionError


logger = logging.getLogger(__name__)


def doc_type_filter(config: SearchConfig) -> Dict[str, Any]:
    """
    Match Documents carrying the configured docType label, or none at all.

    Documents written before the label existed have no docType field and
    stay visible to duplicate checks and searches.
    """
    return {
        "bool": {
            "should": [
                {"term": {config.doc_type_field: config.doc_type}},
                {"bool": {"must_not": [{"exists": {"field": config.doc_type_field}}]}},
            ],
            "minimum_should_match": 1,
        }
    }


class Indexer:
    """
    Elasticsearch document writer.

    Documents are created with an engine-assigned id and never updated;
    a changed file simply gets a new Document.
    """

    def __init__(
        self,
        config: SearchConfig | None = None,
        client: Elasticsearch | None = None,
    ):
        self.config = config or get_config()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> Elasticsearch:
        if self._client is None:
            self._client = get_client(self.config)
        return self._client

    def _fingerprint_query(self, fingerprint: str) -> Dict[str, Any]:
        return {
            "bool": {
                "filter": [
                    {"term": {self.config.fingerprint_field: fingerprint}},
                    doc_type_filter(self.config),
                ]
            }
        }

    def is_indexed(
        self,
        fingerprint: str,
        index_name: str,
        file_path: Optional[Path] = None,
    ) -> bool:
        """
        Check whether a Document with this fingerprint exists in index_name.

        A failed lookup (unreachable cluster, missing index, malformed
        response) is routed through the error policies: ASSUME_NEW answers
        False, any other action raises.

        Raises:
            DuplicateCheckError: The lookup failed and the policy is not ASSUME_NEW
        """
        try:
            response = self._get_client().count(
                index=index_name,
                query=self._fingerprint_query(fingerprint),
            )
            return response["count"] > 0
        except Exception as e:
            error = DuplicateCheckError(str(e))
            if handle_error(error, file_path, "duplicate_check") is ErrorAction.ASSUME_NEW:
                return False
            raise error from e

    def build_document(self, info: FileInfo, fingerprint: str, content: str) -> Document:
        """Assemble the Document for a file."""
        return Document(
            author=str(info.path.parent),
            title=info.name,
            path=str(info.path),
            content=content,
            file_fingerprint=fingerprint,
            doc_type=self.config.doc_type,
        )

    def submit(self, document: Document, index_name: str) -> str:
        """
        Create the Document in index_name.

        Returns:
            The id Elasticsearch assigned

        Raises:
            SubmissionError: The request failed or no id came back
        """
        try:
            response = self._get_client().index(
                index=index_name,
                document=document.to_source(),
            )
            document_id = response["_id"]
        except (ApiError, TransportError, KeyError) as e:
            raise SubmissionError(f"{document.path}: {e}") from e

        if not document_id:
            raise SubmissionError(f"{document.path}: index returned an empty id")

        logger.info(f"Indexed {document.path} into {index_name} as {document_id}")
        return document_id

    def index_file(self, hashed: HashedFile, content: str, index_name: str) -> ProcessingResult:
        """Build and submit the Document for a fingerprinted file."""
        path = hashed.info.path
        document = self.build_document(hashed.info, hashed.fingerprint, content)
        try:
            document_id = self.submit(document, index_name)
        except SubmissionError as e:
            action = handle_error(e, path, "submit")
            return ProcessingResult.failed(path, e, action)

        return ProcessingResult.indexed(path, document_id, empty_content=not content)

    def refresh(self, index_name: str) -> None:
        """
        Make recent writes visible to duplicate checks and searches.

        A failed refresh only delays visibility, so it is logged, not raised.
        """
        try:
            self._get_client().indices.refresh(index=index_name)
        except Exception as e:
            logger.warning(f"Refresh of {index_name} failed: {e}")

    def close(self):
        """Close the client if this indexer created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None


def get_indexer(
    config: SearchConfig | None = None,
    client: Elasticsearch | None = None,
) -> Indexer:
    """Create a new indexer instance."""
    return Indexer(config, client)
