"""
Speech synthesis backends
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from newsagent.services.config import RetryConfig
from newsagent.services.retry import retry_async

logger = logging.getLogger(__name__)


class TextTooLongError(ValueError):
    """Raised when synthesis input exceeds the per-request ceiling."""


class SpeechSynthesizer(ABC):
    """
    Base interface for text-to-speech services.
    """

    ceiling: int

    def check_length(self, text: str) -> None:
        if len(text) > self.ceiling:
            raise TextTooLongError(
                f"Synthesis input is {len(text)} characters, ceiling is {self.ceiling}"
            )

    @abstractmethod
    async def synthesize(self, text: str) -> Optional[bytes]:
        """
        Return encoded audio for `text`, or None when the service returned
        no audio stream. Raises on service failure.
        """
        raise NotImplementedError


class PollySynthesizer(SpeechSynthesizer):
    """
    Amazon Polly, mp3 output. boto3 is blocking, so each request runs
    in a worker thread.
    """

    def __init__(
        self,
        polly_client: Any,
        *,
        voice: str = "Joanna",
        engine: str = "neural",
        ceiling: int = 3000,
        retry: Optional[RetryConfig] = None,
    ):
        self.client = polly_client
        self.voice = voice
        self.engine = engine
        self.ceiling = ceiling
        self.retry = retry or RetryConfig()

    def _synthesize_sync(self, text: str) -> Optional[bytes]:
        response = self.client.synthesize_speech(
            Text=text,
            TextType="text",
            OutputFormat="mp3",
            VoiceId=self.voice,
            Engine=self.engine,
        )
        stream = response.get("AudioStream")
        if stream is None:
            return None
        try:
            return stream.read()
        finally:
            stream.close()

    async def synthesize(self, text: str) -> Optional[bytes]:
        self.check_length(text)
        return await retry_async(
            lambda: asyncio.to_thread(self._synthesize_sync, text),
            max_attempts=self.retry.max_attempts,
            base_delay=self.retry.base_delay,
            description="polly:synthesize_speech",
        )
