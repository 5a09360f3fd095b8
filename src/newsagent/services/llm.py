import time
import asyncio
import logging
from typing import Dict, Any, List

from langchain_ollama import ChatOllama
from langchain_core.messages import HumanMessage
import httpx

from newsagent.services.retry import retry_async

logger = logging.getLogger(__name__)


class OllamaClient:
    """
    LangChain-based Ollama client with bounded retry on connection failures.
    """

    def __init__(
        self,
        base_url: str,
        model: str,
        temperature: float = 0.2,
        max_retries: int = 1,
        retry_delay: float = 2.0,
        timeout: float = 60.0,
    ):
        # ChatOllama uses Ollama's native API, not OpenAI-compatible /v1 endpoint
        if base_url.endswith("/v1"):
            base_url = base_url[:-3]
        elif base_url.endswith("/v1/"):
            base_url = base_url[:-4]

        self.base_url = base_url.rstrip('/')
        self.model = model
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self.llm = ChatOllama(
            base_url=self.base_url,
            model=model,
            temperature=temperature,
            num_ctx=4096,
        )

    async def _invoke(self, messages: List[HumanMessage]) -> Any:
        return await asyncio.wait_for(
            self.llm.ainvoke(messages),
            timeout=self.timeout,
        )

    async def evaluate(self, prompt: str) -> Dict[str, Any]:
        """
        Evaluate a prompt and return the response with metadata.
        """
        start = time.time()

        response = await retry_async(
            lambda: self._invoke([HumanMessage(content=prompt)]),
            max_attempts=self.max_retries,
            base_delay=self.retry_delay,
            retry_on=(asyncio.TimeoutError, httpx.TransportError, ConnectionError),
            description=f"ollama:{self.model}",
        )

        latency_ms = int((time.time() - start) * 1000)

        return {
            "raw": response,
            "content": response.content,
            "latency_ms": latency_ms,
        }

    async def health_check(self) -> bool:
        """
        Check if the Ollama server is reachable by calling /api/tags.
        """
        url = f"{self.base_url}/api/tags"
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(url)
                if resp.status_code == 200:
                    return True
                logger.error(f"Ollama health check failed: {resp.status_code} {resp.text}")
                return False
        except Exception as e:
            logger.error(f"Ollama health check error: {e} (url={url})")
            return False
