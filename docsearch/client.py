"""
Elasticsearch client factory.

One client is shared by the indexer and the search gateway; the official
client is safe for concurrent use from multiple threads.
"""

import logging

from elasticsearch import Elasticsearch

from .config import get_config, SearchConfig


logger = logging.getLogger(__name__)


def get_client(config: SearchConfig | None = None) -> Elasticsearch:
    """Create an Elasticsearch client from the configuration."""
    config = config or get_config()

    options = {"request_timeout": config.request_timeout}
    if config.es_api_key:
        options["api_key"] = config.es_api_key
    elif config.es_username:
        options["basic_auth"] = (config.es_username, config.es_password or "")

    logger.debug(f"Connecting to Elasticsearch at {', '.join(config.es_hosts)}")
    return Elasticsearch(config.es_hosts, **options)
