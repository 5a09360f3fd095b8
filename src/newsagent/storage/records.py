"""
Fixed-shape records and batch requests for the recommendation store.
"""
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List

from newsagent.core.entities import DigestRecord, Item
from newsagent.services.config import MAX_BATCH_SIZE


class BatchTooLargeError(ValueError):
    """Raised when a batch request holds more records than the store accepts."""


def expiry_epoch(generated_at: datetime, retention_days: int) -> int:
    return int((generated_at + timedelta(days=retention_days)).timestamp())


def item_record(item: Item, ttl: int) -> Dict[str, Any]:
    return {**item.to_dict(), "ttl": ttl}


def digest_record(record: DigestRecord, ttl: int) -> Dict[str, Any]:
    return {**record.to_dict(), "ttl": ttl}


@dataclass(frozen=True)
class PutRequest:
    record: Dict[str, Any]
    kind: str = field(default="PutRequest", init=False)

    def to_request(self) -> Dict[str, Any]:
        return {self.kind: {"Item": self.record}}


@dataclass
class BatchWriteRequest:
    """
    One batch of put requests, validated against the store's batch limit.
    """
    requests: List[PutRequest]
    limit: int = MAX_BATCH_SIZE

    def __post_init__(self):
        if self.limit > MAX_BATCH_SIZE:
            raise BatchTooLargeError(f"Batch limit {self.limit} exceeds {MAX_BATCH_SIZE}")
        if len(self.requests) > self.limit:
            raise BatchTooLargeError(
                f"Batch holds {len(self.requests)} records, limit is {self.limit}"
            )

    def __len__(self) -> int:
        return len(self.requests)

    @property
    def ids(self) -> List[str]:
        return [req.record["id"] for req in self.requests]

    def to_request_items(self, table_name: str) -> Dict[str, List[Dict[str, Any]]]:
        return {table_name: [req.to_request() for req in self.requests]}


def build_batches(records: Iterable[Dict[str, Any]], batch_size: int = MAX_BATCH_SIZE) -> List[BatchWriteRequest]:
    """Split records into sequential batches of at most `batch_size`."""
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    if batch_size > MAX_BATCH_SIZE:
        raise BatchTooLargeError(f"batch_size {batch_size} exceeds {MAX_BATCH_SIZE}")

    requests = [PutRequest(record) for record in records]
    return [
        BatchWriteRequest(requests[start:start + batch_size], limit=batch_size)
        for start in range(0, len(requests), batch_size)
    ]
