"""
Ingest trending repositories from the GitHub search API
"""
import logging
from datetime import date, timedelta
from typing import List, Optional, Dict, Any

from newsagent.core.entities import Item, Source, make_item_id
from newsagent.ingestion.base import SourceAdapter
from newsagent.services.retry import retry_async

logger = logging.getLogger(__name__)


class GitHubTrendingAdapter(SourceAdapter):
    SEARCH_URL = "https://api.github.com/search/repositories"
    WINDOW_DAYS = 7
    source = Source.GITHUB_TRENDING

    def __init__(self, *, token: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.token = token

    def search_params(self, run_date: str, limit: int) -> Dict[str, Any]:
        since = date.fromisoformat(run_date) - timedelta(days=self.WINDOW_DAYS)
        return {
            "q": f"created:>{since.isoformat()}",
            "sort": "stars",
            "order": "desc",
            "per_page": min(limit, 100),
        }

    async def fetch_items(self, run_date: str, limit: Optional[int] = None) -> List[Item]:
        limit = self.limit if limit is None else limit
        if limit <= 0:
            return []

        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            async with self._client(headers=headers) as client:
                async def call():
                    resp = await client.get(self.SEARCH_URL, params=self.search_params(run_date, limit))
                    resp.raise_for_status()
                    return resp.json()

                data = await retry_async(
                    call,
                    max_attempts=self.retry.max_attempts,
                    base_delay=self.retry.base_delay,
                    description="github:search",
                )
        except Exception as e:
            logger.error(f"GitHub trending fetch failed: {e}")
            return []

        repos = (data or {}).get("items", [])
        # The API already sorts by stars; re-sort so a partial page never breaks ranking.
        repos = sorted(repos, key=lambda r: r.get("stargazers_count", 0), reverse=True)[:limit]

        items = [self._to_item(repo, run_date, idx) for idx, repo in enumerate(repos)]
        logger.info(f"Fetched {len(items)} trending GitHub repositories")
        return items

    def _to_item(self, repo: Dict[str, Any], run_date: str, index: int) -> Item:
        description = (repo.get("description") or "").strip()
        title = repo.get("full_name", "")
        if description:
            title = f"{title}: {description}"

        return Item(
            id=make_item_id(self.source, run_date, index),
            date=run_date,
            source=self.source,
            title=title,
            url=repo.get("html_url", ""),
            score=repo.get("stargazers_count", 0),
            author=(repo.get("owner") or {}).get("login", ""),
            secondary_count=repo.get("open_issues_count", 0) or 0,
            published_at=repo.get("created_at", ""),
        )
