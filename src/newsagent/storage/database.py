import json
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Sequence

import aiosqlite

from newsagent.core.entities import DIGEST_SOURCE, DigestRecord, Item, Source, digest_id
from newsagent.services.config import MAX_BATCH_SIZE
from newsagent.storage.records import build_batches, digest_record, item_record
from newsagent.storage.recommendations import RecommendationStore, RecordNotFoundError

logger = logging.getLogger(__name__)


class Database:
    def __init__(self, path: str):
        # one connection per operation, so an in-memory database would not persist
        if path.strip() == ":memory:" or path.startswith("file::memory:"):
            raise ValueError("Database requires a file path, not an in-memory database")
        self.path = path

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        await conn.execute("PRAGMA journal_mode=WAL;")
        try:
            yield conn
        finally:
            await conn.close()

    async def fetchone(self, query: str, params: tuple = ()):
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchone()

    async def fetchall(self, query: str, params: tuple = ()):
        async with self.connect() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()

    async def init_tables(self) -> None:
        """Initialize the recommendations table."""
        async with self.connect() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS recommendations (
                    id TEXT PRIMARY KEY,
                    date TEXT NOT NULL,
                    source TEXT NOT NULL,
                    record TEXT NOT NULL,
                    ttl INTEGER NOT NULL
                )
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_recommendations_date_source
                ON recommendations(date, source)
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_recommendations_ttl ON recommendations(ttl)
            """)
            await conn.commit()
            logger.info("Database tables initialized")


class SqliteRecommendationStore(RecommendationStore):
    """
    Local recommendation store. Rows hold the same record shape the
    DynamoDB backend writes, as JSON, keyed by id.
    """

    def __init__(self, database: Database, batch_size: int = MAX_BATCH_SIZE):
        self.db = database
        self.batch_size = batch_size
        self._initialized = False

    async def initialize(self) -> None:
        if not self._initialized:
            await self.db.init_tables()
            self._initialized = True

    async def put_items(self, items: Sequence[Item], ttl: int) -> int:
        await self.initialize()
        batches = build_batches((item_record(item, ttl) for item in items), self.batch_size)
        written = 0

        for idx, batch in enumerate(batches, 1):
            try:
                async with self.db.connect() as conn:
                    await conn.executemany(
                        """
                        INSERT OR REPLACE INTO recommendations (id, date, source, record, ttl)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        [
                            (r.record["id"], r.record["date"], r.record["source"], json.dumps(r.record), ttl)
                            for r in batch.requests
                        ],
                    )
                    await conn.commit()
                written += len(batch)
            except Exception as e:
                logger.error(f"Batch {idx}/{len(batches)} failed ({len(batch)} records): {e}")

        logger.info(f"Persisted {written}/{len(items)} items to {self.db.path}")
        return written

    async def put_digest(self, record: DigestRecord, ttl: int) -> None:
        await self.initialize()
        data = digest_record(record, ttl)
        async with self.db.connect() as conn:
            await conn.execute(
                """
                INSERT OR REPLACE INTO recommendations (id, date, source, record, ttl)
                VALUES (?, ?, ?, ?, ?)
                """,
                (record.id, record.date, DIGEST_SOURCE, json.dumps(data), ttl),
            )
            await conn.commit()
        logger.info(f"Persisted digest record {record.id}")

    async def mark_email_sent(self, run_date: str) -> None:
        await self.initialize()
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "UPDATE recommendations SET record = json_set(record, '$.emailSent', json('true')) WHERE id = ?",
                (digest_id(run_date),),
            )
            await conn.commit()
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"No digest record for {run_date}")

    async def get_digest(self, run_date: str) -> Optional[DigestRecord]:
        await self.initialize()
        row = await self.db.fetchone(
            "SELECT record FROM recommendations WHERE id = ?",
            (digest_id(run_date),),
        )
        if row is None:
            return None
        return DigestRecord.from_dict(json.loads(row[0]))

    async def items_for_date(self, run_date: str, source: Optional[Source] = None) -> List[Item]:
        await self.initialize()
        if source is not None:
            rows = await self.db.fetchall(
                "SELECT record FROM recommendations WHERE date = ? AND source = ? ORDER BY id",
                (run_date, source.value),
            )
        else:
            rows = await self.db.fetchall(
                "SELECT record FROM recommendations WHERE date = ? AND source != ? ORDER BY id",
                (run_date, DIGEST_SOURCE),
            )
        return [Item.from_dict(json.loads(row[0])) for row in rows]

    async def purge_expired(self, now_epoch: int) -> int:
        await self.initialize()
        async with self.db.connect() as conn:
            cursor = await conn.execute(
                "DELETE FROM recommendations WHERE ttl < ?",
                (now_epoch,),
            )
            await conn.commit()
            count = cursor.rowcount
        if count:
            logger.info(f"Purged {count} expired records")
        return count
