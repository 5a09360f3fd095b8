"""
Reduce an article page to plain text for summarization
"""
import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from newsagent.core.entities import UNAVAILABLE
from newsagent.ingestion.base import USER_AGENT

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def html_to_text(html: str, max_chars: int = 4000) -> str:
    """
    Strip script/style blocks, then remaining markup, collapse whitespace
    and truncate to `max_chars`.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()

    text = soup.get_text(separator=" ")
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:max_chars]


class ContentExtractor:
    def __init__(
        self,
        *,
        max_chars: int = 4000,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.max_chars = max_chars
        self.timeout = timeout
        self.transport = transport

    async def extract(self, url: str) -> str:
        """
        Return plain text for `url`, or UNAVAILABLE on any failure.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
                transport=self.transport,
            ) as client:
                resp = await client.get(url)
                resp.raise_for_status()

            text = html_to_text(resp.text, self.max_chars)
            if not text:
                logger.warning(f"No text extracted from {url}")
                return UNAVAILABLE
            return text

        except Exception as e:
            logger.warning(f"Content extraction failed for {url}: {e}")
            return UNAVAILABLE
