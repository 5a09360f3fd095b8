"""
Ingestion of the newest arXiv submissions in a category
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

import feedparser

from newsagent.core.entities import Item, Source, make_item_id
from newsagent.ingestion.base import SourceAdapter
from newsagent.services.retry import retry_async

logger = logging.getLogger(__name__)


class ArxivAdapter(SourceAdapter):
    API_URL = "https://export.arxiv.org/api/query"
    source = Source.ARXIV

    def __init__(self, *, category: str = "cs.AI", **kwargs):
        super().__init__(**kwargs)
        self.category = category

    async def fetch_items(self, run_date: str, limit: Optional[int] = None) -> List[Item]:
        limit = self.limit if limit is None else limit
        if limit <= 0:
            return []

        params = {
            "search_query": f"cat:{self.category}",
            "sortBy": "submittedDate",
            "sortOrder": "descending",
            "max_results": limit,
        }

        try:
            async with self._client() as client:
                async def call():
                    resp = await client.get(self.API_URL, params=params)
                    resp.raise_for_status()
                    return resp.text

                body = await retry_async(
                    call,
                    max_attempts=self.retry.max_attempts,
                    base_delay=self.retry.base_delay,
                    description=f"arxiv:{self.category}",
                )
        except Exception as e:
            logger.error(f"arXiv fetch failed for {self.category}: {e}")
            return []

        feed = feedparser.parse(body)
        items: List[Item] = []

        for entry in feed.entries:
            if len(items) >= limit:
                break

            link = entry.get("link", "")
            if not link:
                continue

            published = ""
            if getattr(entry, "published_parsed", None):
                published = datetime(*entry.published_parsed[:6], tzinfo=timezone.utc).isoformat()

            authors = entry.get("authors") or []
            author = authors[0].get("name", "") if authors else entry.get("author", "")

            items.append(
                Item(
                    id=make_item_id(self.source, run_date, len(items)),
                    date=run_date,
                    source=self.source,
                    title=" ".join(entry.get("title", "").split()),
                    url=link,
                    score=0,
                    author=author,
                    secondary_count=len(authors),
                    published_at=published,
                )
            )

        logger.info(f"Fetched {len(items)} arXiv papers from {self.category}")
        return items
