"""
Object Store Writer - persists audio bytes and returns a retrievable URL
"""
import asyncio
import logging
import re
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from newsagent.services.config import RetryConfig
from newsagent.services.retry import retry_async

logger = logging.getLogger(__name__)

AUDIO_CONTENT_TYPE = "audio/mpeg"
COMBINED_TRACK_NAME = "daily-digest"

_UNSAFE = re.compile(r"[^a-zA-Z0-9._-]+")


def audio_key(run_date: str, name: str) -> str:
    """Key scheme: audio/<date>/<slug-or-id>.mp3"""
    slug = _UNSAFE.sub("-", name).strip("-") or "audio"
    return f"audio/{run_date}/{slug}.mp3"


class ObjectStore(ABC):

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        """
        Write `data` under `key` and return a stable retrieval URL.
        Raises on failure.
        """
        raise NotImplementedError


class S3ObjectStore(ObjectStore):
    def __init__(
        self,
        s3_client: Any,
        *,
        bucket: str,
        region: str,
        public_base_url: Optional[str] = None,
        retry: Optional[RetryConfig] = None,
    ):
        self.client = s3_client
        self.bucket = bucket
        self.region = region
        self.public_base_url = public_base_url.rstrip("/") if public_base_url else None
        self.retry = retry or RetryConfig()

    def url_for(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    async def put(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        await retry_async(
            lambda: asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                Metadata={"generated_at": datetime.now(timezone.utc).isoformat()},
            ),
            max_attempts=self.retry.max_attempts,
            base_delay=self.retry.base_delay,
            description=f"s3:put_object:{key}",
        )
        logger.info(f"Uploaded {len(data)} bytes to s3://{self.bucket}/{key}")
        return self.url_for(key)


class FileObjectStore(ObjectStore):
    """
    Local directory backend for development runs.
    """

    def __init__(self, output_dir: str = "output"):
        self.output_dir = Path(output_dir)

    async def put(self, key: str, data: bytes, content_type: str = AUDIO_CONTENT_TYPE) -> str:
        path = self.output_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, data)
        logger.info(f"Wrote {len(data)} bytes to {path}")
        return path.resolve().as_uri()
