"""
Base classes for Ingestion
"""
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx

from newsagent.core.entities import Item, Source
from newsagent.services.config import RetryConfig

USER_AGENT = "Mozilla/5.0 (compatible; NewsAgent/1.0)"


class SourceAdapter(ABC):
    """
    Base interface for all ingestion sources.
    """

    source: Source

    def __init__(
        self,
        *,
        limit: int = 5,
        timeout: float = 10.0,
        retry: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.limit = limit
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.transport = transport

    @property
    def name(self) -> str:
        return self.source.value

    def _client(self, **kwargs) -> httpx.AsyncClient:
        headers = {"User-Agent": USER_AGENT, **kwargs.pop("headers", {})}
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=headers,
            transport=self.transport,
            follow_redirects=True,
            **kwargs,
        )

    @abstractmethod
    async def fetch_items(self, run_date: str, limit: Optional[int] = None) -> List[Item]:
        """
        Fetch up to `limit` items in the source's native ranking order.
        Must NEVER raise; total source failure yields an empty list.
        """
        raise NotImplementedError
