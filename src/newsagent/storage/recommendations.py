"""
Recommendation Store - per-item and per-day digest records keyed by date.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError

from newsagent.core.entities import DIGEST_SOURCE, DigestRecord, Item, Source, digest_id
from newsagent.services.config import MAX_BATCH_SIZE, RetryConfig
from newsagent.services.retry import retry_async
from newsagent.storage.records import BatchWriteRequest, build_batches, digest_record, item_record

logger = logging.getLogger(__name__)

DATE_INDEX = "date-index"


class RecordNotFoundError(LookupError):
    """Raised when a conditional update targets a record that does not exist."""


class RecommendationStore(ABC):

    @abstractmethod
    async def put_items(self, items: Sequence[Item], ttl: int) -> int:
        """
        Persist items in sequential batches. Returns how many were written;
        a failed batch is logged and does not stop later batches.
        """
        raise NotImplementedError

    @abstractmethod
    async def put_digest(self, record: DigestRecord, ttl: int) -> None:
        """Write the digest record, overwriting any record with the same id."""
        raise NotImplementedError

    @abstractmethod
    async def mark_email_sent(self, run_date: str) -> None:
        """
        Set emailSent=true on an existing digest record.

        Raises:
            RecordNotFoundError: if no digest exists for `run_date`
        """
        raise NotImplementedError

    @abstractmethod
    async def get_digest(self, run_date: str) -> Optional[DigestRecord]:
        raise NotImplementedError

    @abstractmethod
    async def items_for_date(self, run_date: str, source: Optional[Source] = None) -> List[Item]:
        raise NotImplementedError

    async def purge_expired(self, now_epoch: int) -> int:
        """Remove records past their ttl. Stores with native expiry do nothing."""
        return 0


def _to_dynamo(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_dynamo(v) for v in value]
    return value


def _from_dynamo(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamo(v) for v in value]
    return value


class DynamoRecommendationStore(RecommendationStore):
    """
    DynamoDB table keyed by `id`, with a `date-index` GSI (date, source).
    Expiry uses the table's native TTL on the `ttl` attribute.
    """

    def __init__(
        self,
        dynamodb_resource: Any,
        *,
        table_name: str,
        batch_size: int = MAX_BATCH_SIZE,
        retry: Optional[RetryConfig] = None,
    ):
        self.resource = dynamodb_resource
        self.table_name = table_name
        self.table = dynamodb_resource.Table(table_name)
        self.batch_size = batch_size
        self.retry = retry or RetryConfig()

    async def _call(self, description: str, func, *args, **kwargs) -> Any:
        return await retry_async(
            lambda: asyncio.to_thread(func, *args, **kwargs),
            max_attempts=self.retry.max_attempts,
            base_delay=self.retry.base_delay,
            description=f"dynamodb:{description}",
        )

    async def _write_batch(self, batch: BatchWriteRequest) -> int:
        request_items = _to_dynamo(batch.to_request_items(self.table_name))
        pending = len(batch)

        for attempt in range(1, self.retry.max_attempts + 1):
            response = await self._call("batch_write_item", self.resource.batch_write_item, RequestItems=request_items)
            unprocessed = (response or {}).get("UnprocessedItems") or {}
            remaining = unprocessed.get(self.table_name, [])
            if not remaining:
                return len(batch)

            pending = len(remaining)
            logger.warning(f"{pending} records unprocessed (attempt {attempt}/{self.retry.max_attempts})")
            request_items = {self.table_name: remaining}
            if attempt < self.retry.max_attempts:
                await asyncio.sleep(self.retry.base_delay * (2 ** (attempt - 1)))

        return len(batch) - pending

    async def put_items(self, items: Sequence[Item], ttl: int) -> int:
        batches = build_batches((item_record(item, ttl) for item in items), self.batch_size)
        written = 0

        for idx, batch in enumerate(batches, 1):
            try:
                written += await self._write_batch(batch)
            except Exception as e:
                logger.error(f"Batch {idx}/{len(batches)} failed ({len(batch)} records): {e}")

        logger.info(f"Persisted {written}/{len(items)} items to {self.table_name}")
        return written

    async def put_digest(self, record: DigestRecord, ttl: int) -> None:
        await self._call("put_item", self.table.put_item, Item=_to_dynamo(digest_record(record, ttl)))
        logger.info(f"Persisted digest record {record.id}")

    async def mark_email_sent(self, run_date: str) -> None:
        try:
            await self._call(
                "update_item",
                self.table.update_item,
                Key={"id": digest_id(run_date)},
                UpdateExpression="SET emailSent = :sent",
                ConditionExpression="attribute_exists(id)",
                ExpressionAttributeValues={":sent": True},
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise RecordNotFoundError(f"No digest record for {run_date}") from e
            raise

    async def get_digest(self, run_date: str) -> Optional[DigestRecord]:
        response = await self._call("get_item", self.table.get_item, Key={"id": digest_id(run_date)})
        item = (response or {}).get("Item")
        if not item:
            return None
        return DigestRecord.from_dict(_from_dynamo(item))

    async def items_for_date(self, run_date: str, source: Optional[Source] = None) -> List[Item]:
        condition = Key("date").eq(run_date)
        if source is not None:
            condition = condition & Key("source").eq(source.value)

        response = await self._call(
            "query",
            self.table.query,
            IndexName=DATE_INDEX,
            KeyConditionExpression=condition,
        )
        rows = [_from_dynamo(row) for row in (response or {}).get("Items", [])]
        return [Item.from_dict(row) for row in rows if row.get("source") != DIGEST_SOURCE]
