"""
HTTP client for the chat endpoint.

Wraps one request/stream cycle with bounded retries. Rate limiting (429) and
failures to connect are retried with a linearly growing delay; once bytes
start flowing nothing is retried.
Every outcome is reported as a stream event; nothing here raises to the
caller.
"""

import asyncio
import enum
import logging
from typing import AsyncIterator, Dict, List, Optional, Sequence

import httpx

from empathyconnect.client.events import (
    DoneEvent,
    ErrorEvent,
    StreamCallbacks,
    StreamEvent,
)
from empathyconnect.client.stream_consumer import iter_events
from empathyconnect.core.config import (
    CHAT_API_KEY,
    CHAT_API_URL,
    CLIENT_MAX_RETRIES,
    CLIENT_RETRY_DELAY,
    STREAM_IDLE_TIMEOUT,
)
from empathyconnect.schemas.chat import ChatMessage

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
QUOTA_MESSAGE = "AI credits exhausted. Please add credits to continue."
CONNECTION_MESSAGE = "Connection error"
STALLED_MESSAGE = "The reply stalled. Please try again."
INTERRUPTED_MESSAGE = "The connection was lost while receiving the reply."


class TurnState(str, enum.Enum):
    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    RATE_LIMITED = "rate_limited"
    CONNECTION_ERROR = "connection_error"
    DONE = "done"
    ERROR = "error"


TURN_TRANSITIONS = {
    TurnState.IDLE: {TurnState.SENDING},
    TurnState.SENDING: {
        TurnState.STREAMING,
        TurnState.RATE_LIMITED,
        TurnState.CONNECTION_ERROR,
        TurnState.ERROR,
    },
    TurnState.STREAMING: {TurnState.DONE, TurnState.ERROR},
    TurnState.RATE_LIMITED: {TurnState.SENDING, TurnState.ERROR},
    TurnState.CONNECTION_ERROR: {TurnState.SENDING, TurnState.ERROR},
    TurnState.DONE: set(),
    TurnState.ERROR: set(),
}


class InvalidTurnTransitionError(ValueError):
    pass


class ChatTurn:
    """Tracks the state of a single chat turn."""

    def __init__(self):
        self.state = TurnState.IDLE
        self.states: List[TurnState] = [TurnState.IDLE]

    @property
    def finished(self) -> bool:
        return self.state in (TurnState.DONE, TurnState.ERROR)

    def advance(self, new_state: TurnState) -> None:
        if new_state not in TURN_TRANSITIONS[self.state]:
            raise InvalidTurnTransitionError(
                f"Cannot move turn from {self.state.value} to {new_state.value}"
            )
        self.state = new_state
        self.states.append(new_state)


def build_request_body(
    text: str,
    history: Sequence[ChatMessage],
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    language: Optional[str] = None,
) -> Dict:
    body = {
        "message": text,
        "conversationHistory": [message.model_dump() for message in history],
    }
    if session_id:
        body["sessionId"] = session_id
    if user_id:
        body["userId"] = user_id
    if language:
        body["language"] = language
    return body


def error_from_response(response: httpx.Response) -> str:
    """Message for a non-2xx answer, preferring the server's ``error`` field."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict) and isinstance(data.get("error"), str) and data["error"]:
        return data["error"]
    return f"Request failed with status {response.status_code}"


class ChatClient:
    """Streaming client for ``POST /api/chat``."""

    def __init__(
        self,
        url: str = CHAT_API_URL,
        api_key: str = CHAT_API_KEY,
        max_retries: int = CLIENT_MAX_RETRIES,
        retry_delay: float = CLIENT_RETRY_DELAY,
        idle_timeout: float = STREAM_IDLE_TIMEOUT,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.url = url
        self.api_key = api_key
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.http_client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(10.0, read=idle_timeout)
        )

    def retry_wait(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1``."""
        return self.retry_delay * (attempt + 1)

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def iter_turn(
        self,
        text: str,
        history: Sequence[ChatMessage],
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        language: Optional[str] = None,
        turn: Optional[ChatTurn] = None,
    ) -> AsyncIterator[StreamEvent]:
        """
        Send one message and yield the resulting events.

        The last event is always a ``DoneEvent`` or an ``ErrorEvent``.

        Args:
            text: The user's message
            history: Prior messages sent as context
            session_id: Chat session, enables crisis alerting server-side
            user_id: Optional authenticated user
            language: Reply language code
            turn: State tracker to advance; a fresh one is used if omitted
        """
        turn = turn or ChatTurn()
        body = build_request_body(text, history, session_id, user_id, language)

        for attempt in range(self.max_retries + 1):
            turn.advance(TurnState.SENDING)
            request = self.http_client.build_request(
                "POST", self.url, json=body, headers=self._headers()
            )
            try:
                response = await self.http_client.send(request, stream=True)
            except httpx.TransportError as e:
                turn.advance(TurnState.CONNECTION_ERROR)
                if attempt < self.max_retries:
                    delay = self.retry_wait(attempt)
                    logger.warning(f"Connection failed ({e}), retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue
                logger.error(f"Chat request failed after {attempt + 1} attempts: {e}")
                turn.advance(TurnState.ERROR)
                yield ErrorEvent(str(e) or CONNECTION_MESSAGE)
                return

            try:
                if response.status_code == 429:
                    turn.advance(TurnState.RATE_LIMITED)
                    if attempt < self.max_retries:
                        delay = self.retry_wait(attempt)
                        logger.warning(
                            f"Rate limited, retrying in {delay:.1f}s "
                            f"(attempt {attempt + 1}/{self.max_retries})"
                        )
                        await response.aclose()
                        await asyncio.sleep(delay)
                        continue
                    turn.advance(TurnState.ERROR)
                    yield ErrorEvent(RATE_LIMIT_MESSAGE)
                    return

                if not response.is_success:
                    await response.aread()
                    turn.advance(TurnState.ERROR)
                    if response.status_code == 402:
                        yield ErrorEvent(QUOTA_MESSAGE)
                    else:
                        yield ErrorEvent(error_from_response(response))
                    return

                turn.advance(TurnState.STREAMING)
                try:
                    async for event in iter_events(response.aiter_bytes()):
                        if isinstance(event, DoneEvent):
                            turn.advance(TurnState.DONE)
                        yield event
                except httpx.HTTPError as e:
                    logger.error(f"Chat stream broke off: {e!r}")
                    turn.advance(TurnState.ERROR)
                    if isinstance(e, httpx.TimeoutException):
                        yield ErrorEvent(STALLED_MESSAGE)
                    else:
                        yield ErrorEvent(INTERRUPTED_MESSAGE)
                return
            finally:
                await response.aclose()

    async def send_turn(
        self,
        text: str,
        history: Sequence[ChatMessage],
        callbacks: StreamCallbacks,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        language: Optional[str] = None,
    ) -> None:
        """Send one message and deliver its events to ``callbacks``."""
        finished = False
        try:
            async for event in self.iter_turn(
                text, history, session_id, user_id, language
            ):
                finished = isinstance(event, (DoneEvent, ErrorEvent))
                await callbacks.dispatch(event)
        except Exception as e:
            logger.error(f"Unexpected chat client failure: {e!r}")
            if not finished:
                await callbacks.dispatch(ErrorEvent(CONNECTION_MESSAGE))

    async def aclose(self) -> None:
        await self.http_client.aclose()


async def send_turn(
    text: str,
    history: Sequence[ChatMessage],
    callbacks: StreamCallbacks,
    session_id: Optional[str] = None,
    user_id: Optional[str] = None,
    language: Optional[str] = None,
    client: Optional[ChatClient] = None,
) -> None:
    """
    Send one chat message using ``client`` or a short-lived default client.

    Never raises; failures are delivered through ``callbacks.on_error``.
    """
    if client is not None:
        await client.send_turn(text, history, callbacks, session_id, user_id, language)
        return

    client = ChatClient()
    try:
        await client.send_turn(text, history, callbacks, session_id, user_id, language)
    finally:
        await client.aclose()
