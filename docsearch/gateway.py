"""
Gateway - Query-string search with optional highlighting.
"""

import logging
from typing import Any, Dict, List, Optional

from elasticsearch import Elasticsearch

from .client import get_client
from .config import get_config, SearchConfig
from .models import SearchHit
from .errors import SearchError
from .indexer import doc_type_filter


logger = logging.getLogger(__name__)


class SearchGateway:
    """
    Runs free-text searches against the index.

    The keyword is passed to Elasticsearch's query_string query verbatim, so
    its syntax (AND/OR, field:value, wildcards) is available and a syntax
    error surfaces as a SearchError.
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

    def build_query(self, keyword: str) -> Dict[str, Any]:
        return {
            "bool": {
                "must": [{"query_string": {"query": keyword}}],
                "filter": [doc_type_filter(self.config)],
            }
        }

    def build_highlight(self) -> Dict[str, Any]:
        return {
            "fields": {
                name: {"type": self.config.highlighter_type}
                for name in self.config.highlight_fields
            }
        }

    def search(
        self,
        keyword: str,
        index_name: Optional[str] = None,
        highlight: bool = False,
    ) -> List[SearchHit]:
        """
        Search one index, or every index when index_name is empty.

        Returns:
            Hits in relevance order; highlight is None unless requested

        Raises:
            SearchError: The query could not be executed
        """
        request: Dict[str, Any] = {
            "query": self.build_query(keyword),
            "size": self.config.search_size,
        }
        if index_name:
            request["index"] = index_name
        if highlight:
            request["highlight"] = self.build_highlight()

        try:
            response = self._get_client().search(**request)
            raw_hits = response["hits"]["hits"]
        except Exception as e:
            logger.error(f"Search for {keyword!r} failed: {e}")
            raise SearchError(keyword, index_name, str(e)) from e

        hits = [SearchHit.from_hit(hit, highlighted=highlight) for hit in raw_hits]
        logger.debug(f"Search for {keyword!r} in {index_name or '<all>'}: {len(hits)} hits")
        return hits

    def close(self):
        """Close the client if this gateway created it."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None
