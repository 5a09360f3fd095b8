from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Dict, Any


# Returned by the extractor and summarizer instead of raising.
UNAVAILABLE = "unavailable"

# Source tag carried by DigestRecord rows in the recommendation store.
DIGEST_SOURCE = "daily-digest"


class Source(str, Enum):
    """
    Enumerated content origins. Declaration order is the digest's
    section order.
    """
    HACKER_NEWS = "hacker-news"
    GITHUB_TRENDING = "github-trending"
    ARXIV = "arxiv"


class RunStage(str, Enum):
    FETCHING = "FETCHING"
    PROCESSING_ITEMS = "PROCESSING_ITEMS"
    ASSEMBLING_AUDIO = "ASSEMBLING_AUDIO"
    PERSISTING = "PERSISTING"
    RENDERING_AND_SENDING = "RENDERING_AND_SENDING"
    DONE = "DONE"
    FAILED = "FAILED"


class Trigger(str, Enum):
    SCHEDULED = "scheduled"
    DIRECT = "direct"

    @classmethod
    def from_event(cls, event: Optional[Dict[str, Any]]) -> "Trigger":
        """EventBridge schedules tag their events with source=aws.events."""
        if isinstance(event, dict) and event.get("source") == "aws.events":
            return cls.SCHEDULED
        return cls.DIRECT


@dataclass
class Item:
    """
    One normalized content entry. Enriched in place by a single owner
    per stage, then frozen once persisted.
    """
    id: str
    date: str
    source: Source
    title: str
    url: str
    score: float = 0
    author: str = ""
    secondary_count: int = 0
    published_at: str = ""
    summary: Optional[str] = None
    audio_url: Optional[str] = None

    @property
    def has_summary(self) -> bool:
        return bool(self.summary) and self.summary != UNAVAILABLE

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "date": self.date,
            "source": self.source.value,
            "title": self.title,
            "url": self.url,
            "score": self.score,
            "author": self.author,
            "secondaryCount": self.secondary_count,
            "publishedAt": self.published_at,
        }
        if self.summary is not None:
            data["summary"] = self.summary
        if self.audio_url is not None:
            data["audioUrl"] = self.audio_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Item":
        return cls(
            id=data["id"],
            date=data["date"],
            source=Source(data["source"]),
            title=data.get("title", ""),
            url=data.get("url", ""),
            score=data.get("score", 0),
            author=data.get("author", ""),
            secondary_count=int(data.get("secondaryCount", 0)),
            published_at=data.get("publishedAt", ""),
            summary=data.get("summary"),
            audio_url=data.get("audioUrl"),
        )


def make_item_id(source: Source, run_date: str, index: int) -> str:
    """Unique per run date, source and rank position."""
    return f"{source.value}-{run_date}-{index}"


@dataclass
class DigestRecord:
    """
    One record per run date. `email_sent` only ever moves false -> true.
    """
    date: str
    total_items: int
    generated_at: str
    combined_audio_url: Optional[str] = None
    email_sent: bool = False

    @property
    def id(self) -> str:
        return digest_id(self.date)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "date": self.date,
            "source": DIGEST_SOURCE,
            "totalItems": self.total_items,
            "generatedAt": self.generated_at,
            "emailSent": self.email_sent,
        }
        if self.combined_audio_url is not None:
            data["combinedAudioUrl"] = self.combined_audio_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DigestRecord":
        return cls(
            date=data["date"],
            total_items=int(data.get("totalItems", 0)),
            generated_at=data.get("generatedAt", ""),
            combined_audio_url=data.get("combinedAudioUrl"),
            email_sent=bool(data.get("emailSent", False)),
        )


def digest_id(run_date: str) -> str:
    return f"digest-{run_date}"


@dataclass(frozen=True)
class AudioChunk:
    """
    Transient unit of synthesis. Never persisted.
    """
    text: str
    ordinal: int


@dataclass
class RunResult:
    """
    Structured outcome of one pipeline run.
    """
    trigger: Trigger
    run_date: str
    timestamp: str
    stage: RunStage = RunStage.FETCHING
    items: List[Item] = field(default_factory=list)
    email_sent: bool = False
    combined_audio_url: Optional[str] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def item_count(self) -> int:
        return len(self.items)

    @property
    def succeeded(self) -> bool:
        return self.stage == RunStage.DONE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": "success" if self.succeeded else "failed",
            "stage": self.stage.value,
            "trigger": self.trigger.value,
            "date": self.run_date,
            "timestamp": self.timestamp,
            "itemCount": self.item_count,
            "items": [item.to_dict() for item in self.items],
            "emailSent": self.email_sent,
            "warnings": list(self.warnings),
        }
        if self.combined_audio_url is not None:
            data["combinedAudioUrl"] = self.combined_audio_url
        if self.error is not None:
            data["error"] = self.error
        return data


def utc_timestamp(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")

