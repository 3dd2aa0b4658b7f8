"""
Client for the upstream chat completion gateway.

Requests a streaming completion and hands back the open response so the
caller can forward its bytes. Rate limiting (429) is retried with capped
exponential backoff; exhausted credits (402) fail immediately.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import httpx

from empathyconnect.core.config import (
    GATEWAY_API_KEY,
    GATEWAY_MAX_RETRIES,
    GATEWAY_MODEL,
    GATEWAY_RETRY_BASE_DELAY,
    GATEWAY_RETRY_MAX_DELAY,
    GATEWAY_TEMPERATURE,
    GATEWAY_URL,
    STREAM_IDLE_TIMEOUT,
)
from empathyconnect.schemas.chat import ChatMessage
from empathyconnect.services.chat.prompts import compose_messages
from empathyconnect.services.gateway.errors import (
    GatewayConnectionError,
    QuotaExhaustedError,
    RateLimitedError,
    UpstreamError,
)

logger = logging.getLogger(__name__)


class UpstreamStream:
    """An open streaming response from the provider."""

    def __init__(self, response: httpx.Response):
        self.response = response

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the provider's body chunks as they arrive."""
        async for chunk in self.response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        await self.response.aclose()


def extract_error_message(body: bytes) -> Optional[str]:
    """Pull a human-readable message out of a provider error body."""
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None

    if not isinstance(data, dict):
        return None

    error = data.get("error")
    if isinstance(error, dict):
        error = error.get("message")
    if isinstance(error, str) and error:
        return error
    return None


class GatewayClient:
    """Streaming chat completion client for the AI gateway."""

    def __init__(
        self,
        url: str = GATEWAY_URL,
        api_key: str = GATEWAY_API_KEY,
        model: str = GATEWAY_MODEL,
        temperature: float = GATEWAY_TEMPERATURE,
        max_retries: int = GATEWAY_MAX_RETRIES,
        retry_base_delay: float = GATEWAY_RETRY_BASE_DELAY,
        retry_max_delay: float = GATEWAY_RETRY_MAX_DELAY,
        idle_timeout: float = STREAM_IDLE_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        # The read timeout bounds how long a started stream may stay silent
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=idle_timeout)
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``."""
        return min(self.retry_base_delay * (2**attempt), self.retry_max_delay)

    def build_payload(self, messages: List[Dict[str, str]]) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": messages,
            "stream": True,
            "temperature": self.temperature,
        }

    async def open_stream(
        self,
        system_prompt: str,
        history: Sequence[ChatMessage],
        user_message: str,
        language: Optional[str] = None,
        risk_level: Optional[str] = None,
    ) -> UpstreamStream:
        """
        Request a streaming completion for one chat turn.

        Args:
            system_prompt: Base system prompt
            history: Prior conversation messages
            user_message: The new user message
            language: Selected language code, pins the reply language
            risk_level: Classified risk; ``high`` adds a gentleness note

        Returns:
            The open upstream stream; the caller must close it

        Raises:
            RateLimitedError: 429 persisted through every retry
            QuotaExhaustedError: The provider answered 402
            UpstreamError: Any other non-2xx answer
            GatewayConnectionError: The provider could not be reached
        """
        if not self.api_key:
            raise ValueError("GATEWAY_API_KEY is not configured")

        messages = compose_messages(
            system_prompt, history, user_message, language, risk_level
        )
        return await self.request_stream(self.build_payload(messages))

    async def request_stream(self, payload: Dict[str, Any]) -> UpstreamStream:
        """Send the completion request, retrying while rate limited."""
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(self.max_retries + 1):
            request = self.http_client.build_request(
                "POST", self.url, json=payload, headers=headers
            )
            try:
                response = await self.http_client.send(request, stream=True)
            except httpx.TransportError as e:
                logger.error(f"Gateway unreachable: {e}")
                raise GatewayConnectionError(
                    "Could not reach the AI provider. Please try again."
                ) from e

            if response.status_code == 429 and attempt < self.max_retries:
                await response.aclose()
                delay = self.backoff_delay(attempt)
                logger.warning(
                    f"Rate limited, retrying in {delay:.1f}s "
                    f"(attempt {attempt + 1}/{self.max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            if response.is_success:
                return UpstreamStream(response)

            await self._raise_for_status(response)

        raise RateLimitedError()

    async def _raise_for_status(self, response: httpx.Response) -> None:
        try:
            body = await response.aread()
        finally:
            await response.aclose()

        logger.error(
            f"Chat failed: {response.status_code} {body[:500].decode('utf-8', 'replace')}"
        )

        if response.status_code == 429:
            raise RateLimitedError()
        if response.status_code == 402:
            raise QuotaExhaustedError()

        message = extract_error_message(body) or f"Chat failed: {response.status_code}"
        raise UpstreamError(message, upstream_status=response.status_code)

    async def aclose(self) -> None:
        await self.http_client.aclose()
