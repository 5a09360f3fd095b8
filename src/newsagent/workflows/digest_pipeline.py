"""
Digest Pipeline - sequences fetching, enrichment, audio assembly,
persistence and delivery for one run.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from newsagent.audio.assembler import AudioAssembler
from newsagent.core.entities import (
    UNAVAILABLE,
    DigestRecord,
    Item,
    RunResult,
    RunStage,
    Trigger,
    utc_timestamp,
)
from newsagent.delivery.base import Mailer
from newsagent.delivery.renderer import DigestRenderer
from newsagent.ingestion.base import SourceAdapter
from newsagent.processing.extractor import ContentExtractor
from newsagent.processing.summarizer import Summarizer
from newsagent.storage.object_store import COMBINED_TRACK_NAME, ObjectStore, audio_key
from newsagent.storage.recommendations import RecommendationStore
from newsagent.storage.records import expiry_epoch
from newsagent.workflows.base import Pipeline

logger = logging.getLogger(__name__)

WARN_NO_COMBINED_AUDIO = "combined audio track abandoned: no audio synthesized"
WARN_COMBINED_UPLOAD = "combined audio track upload failed"


@dataclass
class ClientSet:
    """
    External collaborators, constructed once per process and injected.
    `assembler` and `mailer` are optional: without them the run skips
    audio or email.
    """
    sources: List[SourceAdapter]
    extractor: ContentExtractor
    summarizer: Summarizer
    object_store: ObjectStore
    store: RecommendationStore
    renderer: DigestRenderer = field(default_factory=DigestRenderer)
    assembler: Optional[AudioAssembler] = None
    mailer: Optional[Mailer] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DigestPipeline(Pipeline):
    name = "daily-digest"

    def __init__(
        self,
        clients: ClientSet,
        *,
        recipient: Optional[str] = None,
        sender: Optional[str] = None,
        retention_days: int = 30,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.clients = clients
        self.recipient = recipient
        self.sender = sender
        self.retention_days = retention_days
        self.clock = clock

    async def run(
        self,
        trigger: Trigger = Trigger.DIRECT,
        limits: Optional[Dict[str, int]] = None,
    ) -> RunResult:
        started = self.clock()
        run_date = started.date().isoformat()
        result = RunResult(trigger=trigger, run_date=run_date, timestamp=utc_timestamp(started))

        logger.info(f"Starting digest run for {run_date} (trigger={trigger.value})")

        try:
            self._enter(result, RunStage.FETCHING)
            result.items = await self.fetch_all(run_date, limits or {})

            self._enter(result, RunStage.PROCESSING_ITEMS)
            for idx, item in enumerate(result.items, 1):
                logger.info(f"Processing item {idx}/{len(result.items)}: {item.title}")
                await self.enrich_item(item)

            self._enter(result, RunStage.ASSEMBLING_AUDIO)
            result.combined_audio_url = await self.assemble_combined_track(result, run_date)

            self._enter(result, RunStage.PERSISTING)
            record = DigestRecord(
                date=run_date,
                total_items=len(result.items),
                generated_at=utc_timestamp(self.clock()),
                combined_audio_url=result.combined_audio_url,
            )
            await self.persist(result.items, record, started)

            self._enter(result, RunStage.RENDERING_AND_SENDING)
            result.email_sent = await self.send_digest(result.items, record)

            self._enter(result, RunStage.DONE)

        except Exception as e:
            logger.exception(f"Digest run failed during {result.stage.value}: {e}")
            result.error = str(e) or e.__class__.__name__
            result.timestamp = utc_timestamp(self.clock())
            result.stage = RunStage.FAILED
            return result

        elapsed = (self.clock() - started).total_seconds()
        logger.info(
            f"Digest run completed: {result.item_count} items, email_sent={result.email_sent}, "
            f"combined_audio={'yes' if result.combined_audio_url else 'no'} ({elapsed:.1f}s)"
        )
        return result

    def _enter(self, result: RunResult, stage: RunStage) -> None:
        result.stage = stage
        logger.info(f"Stage: {stage.value}")

    async def fetch_all(self, run_date: str, limits: Dict[str, int]) -> List[Item]:
        """
        Fetch every source concurrently; results keep configured source order.
        A failing source contributes no items.
        """
        sources = self.clients.sources

        async def fetch(adapter: SourceAdapter) -> List[Item]:
            try:
                return await adapter.fetch_items(run_date, limits.get(adapter.name))
            except Exception as e:
                logger.error(f"Source {adapter.name} failed: {e}")
                return []

        batches = await asyncio.gather(*(fetch(adapter) for adapter in sources))

        items: List[Item] = []
        for adapter, fetched in zip(sources, batches):
            logger.info(f"Source {adapter.name}: {len(fetched)} items")
            items.extend(fetched)

        logger.info(f"Fetched {len(items)} items from {len(sources)} sources")
        return items

    async def enrich_item(self, item: Item) -> None:
        """
        Extract, summarize and narrate one item. Any failure leaves the item
        with the fields it has reached so far.
        """
        try:
            content = await self.clients.extractor.extract(item.url)
            if content == UNAVAILABLE:
                logger.info(f"No content for {item.id}, skipping summary")
                return

            summary = await self.clients.summarizer.summarize(item.title, content)
            if summary == UNAVAILABLE:
                logger.info(f"No summary for {item.id}")
                return
            item.summary = summary

            if self.clients.assembler is None:
                return

            audio = await self.clients.assembler.synthesize_item(item)
            if not audio:
                logger.warning(f"No audio synthesized for {item.id}")
                return

            item.audio_url = await self.clients.object_store.put(audio_key(item.date, item.id), audio)
            logger.info(f"Item {item.id} audio at {item.audio_url}")

        except Exception as e:
            logger.error(f"Enrichment failed for {item.id}: {e}")

    async def assemble_combined_track(self, result: RunResult, run_date: str) -> Optional[str]:
        if self.clients.assembler is None:
            return None

        narrated = [item for item in result.items if item.has_summary]
        if not narrated:
            logger.info("No summarized items, skipping combined track")
            return None

        try:
            audio = await self.clients.assembler.build_combined_track(result.items, run_date)
        except Exception as e:
            logger.error(f"Combined track assembly failed: {e}")
            audio = None

        if not audio:
            logger.warning("Combined track produced zero audio buffers, abandoning it")
            result.warnings.append(WARN_NO_COMBINED_AUDIO)
            return None

        try:
            url = await self.clients.object_store.put(audio_key(run_date, COMBINED_TRACK_NAME), audio)
        except Exception as e:
            logger.error(f"Combined track upload failed: {e}")
            result.warnings.append(WARN_COMBINED_UPLOAD)
            return None

        logger.info(f"Combined track at {url}")
        return url

    async def persist(self, items: Sequence[Item], record: DigestRecord, started: datetime) -> None:
        """
        Write items then the digest record. Failures are logged and never
        block delivery.
        """
        store = self.clients.store
        ttl = expiry_epoch(started, self.retention_days)

        try:
            await store.purge_expired(int(started.timestamp()))
        except Exception as e:
            logger.warning(f"Purging expired records failed: {e}")

        try:
            written = await store.put_items(items, ttl)
            if written < len(items):
                logger.warning(f"Only {written}/{len(items)} items persisted")
        except Exception as e:
            logger.error(f"Persisting items failed: {e}")

        try:
            await store.put_digest(record, ttl)
        except Exception as e:
            logger.error(f"Persisting digest record {record.id} failed: {e}")

    async def send_digest(self, items: Sequence[Item], record: DigestRecord) -> bool:
        """
        Render and send the digest email; on success flip emailSent on the
        stored record. Returns whether the mail was delivered.
        """
        mailer = self.clients.mailer
        if mailer is None or not self.recipient or not self.sender:
            logger.info("Email delivery not configured, skipping")
            return False

        try:
            rendered = self.clients.renderer.render(items, record.date, record.combined_audio_url)
        except Exception as e:
            logger.error(f"Rendering digest for {record.date} failed: {e}")
            return False

        try:
            await mailer.send(
                to=self.recipient,
                subject=rendered.subject,
                html_body=rendered.html,
                text_body=rendered.text,
                sender=self.sender,
            )
        except Exception as e:
            logger.error(f"Email delivery via {mailer.name} failed: {e}")
            return False

        logger.info(f"Digest emailed to {self.recipient}")
        record.email_sent = True

        try:
            await self.clients.store.mark_email_sent(record.date)
        except Exception as e:
            logger.error(f"Recording emailSent for {record.id} failed: {e}")

        return True
