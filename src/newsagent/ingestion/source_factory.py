"""
Source Factory - Creates ingestion adapters from configuration.
"""
import logging
from typing import List, Optional

import httpx

from newsagent.ingestion.base import SourceAdapter
from newsagent.ingestion.hackernews import HackerNewsAdapter
from newsagent.ingestion.github_trending import GitHubTrendingAdapter
from newsagent.ingestion.arxiv import ArxivAdapter
from newsagent.services.config import Config, SourceConfig, get_enabled_sources

logger = logging.getLogger(__name__)


def create_source_adapter(
    source_config: SourceConfig,
    config: Config,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SourceAdapter:
    """
    Create a source adapter from configuration.

    Args:
        source_config: Configuration for the source
        config: Full application config (timeouts, retry, tokens)
        transport: Optional httpx transport, shared by all adapters

    Returns:
        Configured SourceAdapter instance

    Raises:
        ValueError: If source type is unknown
    """
    source_type = source_config.type.lower()
    common = dict(
        limit=source_config.limit,
        timeout=config.FETCH_TIMEOUT,
        retry=config.retry,
        transport=transport,
    )

    if source_type == "hackernews":
        return HackerNewsAdapter(**common)

    elif source_type == "github_trending":
        return GitHubTrendingAdapter(token=config.GITHUB_TOKEN, **common)

    elif source_type == "arxiv":
        return ArxivAdapter(category=source_config.category or "cs.AI", **common)

    else:
        raise ValueError(f"Unknown source type: {source_type}")


def create_adapters_from_config(
    config: Config,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[SourceAdapter]:
    """
    Create all enabled source adapters, skipping any that fail to build.
    """
    adapters = []

    for source_config in get_enabled_sources(config):
        try:
            adapter = create_source_adapter(source_config, config, transport)
            adapters.append(adapter)
            logger.info(f"Created {source_config.type} adapter (limit={source_config.limit})")
        except Exception as e:
            logger.error(f"Failed to create adapter for {source_config.type}: {e}")

    return adapters
