"""
Shared fakes and fixtures for NewsAgent tests
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from newsagent.audio.synthesizer import SpeechSynthesizer
from newsagent.core.entities import UNAVAILABLE, Item, Source, make_item_id
from newsagent.delivery.base import Mailer
from newsagent.ingestion.base import SourceAdapter
from newsagent.storage.database import Database, SqliteRecommendationStore
from newsagent.storage.object_store import ObjectStore

RUN_DATE = "2024-05-01"
FIXED_NOW = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)


def make_item(
    source: Source = Source.HACKER_NEWS,
    index: int = 0,
    title: str = "A story",
    url: Optional[str] = None,
    **kwargs,
) -> Item:
    return Item(
        id=make_item_id(source, RUN_DATE, index),
        date=RUN_DATE,
        source=source,
        title=title,
        url=url or f"https://example.com/{source.value}/{index}",
        **kwargs,
    )


class FakeSource(SourceAdapter):
    def __init__(self, source: Source, items: List[Item], fail: bool = False):
        super().__init__(limit=len(items))
        self.source = source
        self.items = items
        self.fail = fail
        self.requested_limits: List[Optional[int]] = []

    async def fetch_items(self, run_date: str, limit: Optional[int] = None) -> List[Item]:
        self.requested_limits.append(limit)
        if self.fail:
            raise RuntimeError(f"{self.source.value} is down")
        return list(self.items if limit is None else self.items[:limit])


class FakeExtractor:
    def __init__(self, unavailable: tuple = ()):
        self.unavailable = set(unavailable)
        self.calls: List[str] = []

    async def extract(self, url: str) -> str:
        self.calls.append(url)
        if url in self.unavailable:
            return UNAVAILABLE
        return f"Article text for {url}"


class FakeSummarizer:
    def __init__(self, unavailable: tuple = ()):
        self.unavailable = set(unavailable)
        self.calls: List[str] = []

    async def summarize(self, title: str, content: str) -> str:
        self.calls.append(title)
        if title in self.unavailable:
            return UNAVAILABLE
        return f"**Overview:** Summary of {title}.\n\n**Key insight:** It matters."


class RecordingSynthesizer(SpeechSynthesizer):
    """Returns the input text as bytes so tests can read the track back."""

    def __init__(self, ceiling: int = 3000, fail_on: tuple = (), silent: bool = False):
        self.ceiling = ceiling
        self.fail_on = fail_on
        self.silent = silent
        self.requests: List[str] = []

    async def synthesize(self, text: str) -> Optional[bytes]:
        self.check_length(text)
        self.requests.append(text)
        if any(marker in text for marker in self.fail_on):
            raise RuntimeError("synthesis service error")
        if self.silent:
            return None
        return f"[{text}]".encode()


class FakeObjectStore(ObjectStore):
    def __init__(self, fail_on: tuple = ()):
        self.objects: Dict[str, bytes] = {}
        self.fail_on = fail_on

    async def put(self, key: str, data: bytes, content_type: str = "audio/mpeg") -> str:
        if any(marker in key for marker in self.fail_on):
            raise RuntimeError(f"upload of {key} failed")
        self.objects[key] = data
        return f"https://audio.example.com/{key}"


class FakeMailer(Mailer):
    name = "fake"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Dict[str, str]] = []

    async def send(self, *, to: str, subject: str, html_body: str, text_body: str, sender: str) -> None:
        if self.fail:
            raise ConnectionError("SMTP unreachable")
        self.sent.append(
            {"to": to, "subject": subject, "html": html_body, "text": text_body, "sender": sender}
        )


@pytest.fixture
def sqlite_store(tmp_path):
    return SqliteRecommendationStore(Database(str(tmp_path / "recommendations.db")))
