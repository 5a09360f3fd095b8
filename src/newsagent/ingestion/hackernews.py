"""
Ingest top stories from Hacker News
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any

import httpx

from newsagent.core.entities import Item, Source, make_item_id
from newsagent.ingestion.base import SourceAdapter
from newsagent.services.retry import retry_async

logger = logging.getLogger(__name__)


class HackerNewsAdapter(SourceAdapter):
    BASE_URL = "https://hacker-news.firebaseio.com/v0"
    source = Source.HACKER_NEWS

    async def _get_json(self, client: httpx.AsyncClient, path: str) -> Any:
        async def call():
            resp = await client.get(f"{self.BASE_URL}/{path}")
            resp.raise_for_status()
            return resp.json()

        return await retry_async(
            call,
            max_attempts=self.retry.max_attempts,
            base_delay=self.retry.base_delay,
            description=f"hackernews:{path}",
        )

    async def fetch_items(self, run_date: str, limit: Optional[int] = None) -> List[Item]:
        limit = self.limit if limit is None else limit
        items: List[Item] = []
        if limit <= 0:
            return items

        try:
            async with self._client() as client:
                try:
                    story_ids = await self._get_json(client, "topstories.json") or []
                except Exception as e:
                    logger.error(f"Failed to fetch Hacker News top stories: {e}")
                    return []

                for sid in story_ids:
                    if len(items) >= limit:
                        break

                    try:
                        data = await self._get_json(client, f"item/{sid}.json")
                    except Exception as e:
                        logger.warning(f"Failed to fetch Hacker News story {sid}: {e}")
                        continue

                    if not data or data.get("type") != "story" or not data.get("url"):
                        continue

                    items.append(self._to_item(data, run_date, len(items)))

        except Exception as e:
            logger.error(f"Hacker News fetch failed: {e}")
            return []

        logger.info(f"Fetched {len(items)} Hacker News stories")
        return items

    def _to_item(self, data: Dict[str, Any], run_date: str, index: int) -> Item:
        published = datetime.fromtimestamp(data.get("time", 0), tz=timezone.utc)
        return Item(
            id=make_item_id(self.source, run_date, index),
            date=run_date,
            source=self.source,
            title=data.get("title", ""),
            url=data["url"],
            score=data.get("score", 0),
            author=data.get("by", ""),
            secondary_count=data.get("descendants", 0) or 0,
            published_at=published.isoformat(),
        )
