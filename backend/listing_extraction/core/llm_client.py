"""
Chat completion client for OpenAI-compatible endpoints
"""
import asyncio
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from listing_extraction.core import metrics
from listing_extraction.core.config import ExtractionConfig
from listing_extraction.core.errors import TransportFailure
from listing_extraction.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


class CompletionResult(BaseModel):
    """Completion text plus usage counters"""
    content: str
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    elapsed_ms: int = 0


class CompletionClient:
    """
    Client for a chat completion endpoint.
    One non-streaming request per call; no retries (retry policy belongs to the caller).
    """

    def __init__(self, config: ExtractionConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                )
            )
        return self._client

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def build_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": messages,
            "stream": False,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }

    async def _post(self, messages: List[Dict[str, str]]) -> CompletionResult:
        start = time.perf_counter()
        try:
            result = await self._send(messages, start)
        except TransportFailure as e:
            metrics.record_completion_error(
                self.config.model, time.perf_counter() - start, e.metadata.get("reason", "unknown")
            )
            raise
        metrics.record_completion(
            result.model, result.elapsed_ms / 1000, result.prompt_tokens, result.completion_tokens
        )
        return result

    async def _send(self, messages: List[Dict[str, str]], start: float) -> CompletionResult:
        client = self._get_client()
        try:
            response = await client.post(
                "/chat/completions",
                json=self.build_payload(messages),
                headers=self._headers(),
                timeout=self.config.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise TransportFailure(
                "Completion request timed out",
                details=f"no response within {self.config.timeout_seconds}s ({type(e).__name__})",
                metadata={"reason": "timeout"},
            ) from e
        except httpx.HTTPStatusError as e:
            raise TransportFailure(
                "Completion API request failed",
                details=f"HTTP {e.response.status_code}: {e.response.text[:500]}",
                metadata={"reason": "http_status", "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise TransportFailure(
                "Completion API request failed",
                details=str(e) or type(e).__name__,
                metadata={"reason": "network"},
            ) from e
        except ValueError as e:
            raise TransportFailure(
                "Completion API returned a malformed body",
                details=str(e),
                metadata={"reason": "malformed_body"},
            ) from e
        elapsed_ms = int((time.perf_counter() - start) * 1000)

        return self._to_result(data, elapsed_ms)

    def _to_result(self, data: Any, elapsed_ms: int) -> CompletionResult:
        if not isinstance(data, dict):
            raise TransportFailure(
                "Completion API returned a malformed body",
                details="expected a JSON object",
                metadata={"reason": "malformed_body"},
            )

        choices = data.get("choices") or []
        message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise TransportFailure(
                "No content received from completion API",
                details="The API response was empty or malformed",
                metadata={"reason": "empty_content"},
            )

        usage = data.get("usage") or {}
        return CompletionResult(
            content=content,
            model=data.get("model") or self.config.model,
            prompt_tokens=usage.get("prompt_tokens") or 0,
            completion_tokens=usage.get("completion_tokens") or 0,
            total_tokens=usage.get("total_tokens") or 0,
            elapsed_ms=elapsed_ms,
        )

    async def complete(
        self,
        messages: List[Dict[str, str]],
        cancel_event: Optional[asyncio.Event] = None,
    ) -> CompletionResult:
        """
        Send one chat completion request

        Args:
            messages: system/user message pair
            cancel_event: when set by the caller, the in-flight request is aborted

        Returns:
            CompletionResult

        Raises:
            TransportFailure: network error, timeout, HTTP error, empty completion or cancellation
        """
        logger.debug(
            "Sending completion request",
            extra={"model": self.config.model, "max_tokens": self.config.max_tokens},
        )
        if cancel_event is None:
            return await self._post(messages)

        if cancel_event.is_set():
            raise TransportFailure(
                "Extraction cancelled by caller",
                details="cancelled before request was sent",
                metadata={"reason": "cancelled"},
            )

        request_task = asyncio.ensure_future(self._post(messages))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            request_task.cancel()
            raise
        finally:
            cancel_task.cancel()

        if request_task in done:
            return request_task.result()

        request_task.cancel()
        try:
            await request_task
        except asyncio.CancelledError:
            pass
        except TransportFailure:
            pass
        logger.info("Completion request cancelled by caller")
        raise TransportFailure(
            "Extraction cancelled by caller",
            details="in-flight request aborted",
            metadata={"reason": "cancelled"},
        )

    async def close(self):
        """Close the HTTP client if this instance created it"""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
