"""
Incremental consumer for the chat event stream.

Bytes arrive in arbitrary chunks, so text is buffered and only complete lines
are interpreted. A ``data:`` line whose JSON does not parse is put back on
the buffer and retried once more data has arrived; if it still fails it is
dropped as protocol noise. Emotion events are reported once, provider events
are reduced to their ``choices[0].delta.content`` text, and ``[DONE]`` ends
the stream. A stream that closes without ``[DONE]`` is flushed and then
reported as done.
"""

import codecs
import json
import logging
from typing import AsyncIterable, AsyncIterator, List, Optional, Union

from pydantic import ValidationError

from empathyconnect.client.events import (
    DeltaEvent,
    DoneEvent,
    EmotionEvent,
    StreamCallbacks,
    StreamEvent,
)
from empathyconnect.schemas.chat import EmotionAnalysis

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_TOKEN = "[DONE]"


class _Unparsed:
    """Marker for a data line whose JSON could not be parsed yet."""


UNPARSED = _Unparsed()

LineResult = Union[StreamEvent, _Unparsed, None]


def extract_delta(envelope) -> Optional[str]:
    """Return ``choices[0].delta.content`` from a provider envelope, if any."""
    if not isinstance(envelope, dict):
        return None
    choices = envelope.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta")
    if not isinstance(delta, dict):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) and content else None


class EventStreamParser:
    """Turns raw response chunks into stream events."""

    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._held_line: Optional[str] = None
        self._emotion_seen = False
        self.finished = False

    def feed(self, chunk: bytes) -> List[StreamEvent]:
        """Add a chunk and return the events completed by it."""
        if self.finished:
            return []

        self._buffer += self._decoder.decode(chunk)
        events: List[StreamEvent] = []

        while not self.finished:
            newline = self._buffer.find("\n")
            if newline == -1:
                break

            line = self._buffer[:newline]
            self._buffer = self._buffer[newline + 1 :]
            if line.endswith("\r"):
                line = line[:-1]

            result = self._parse_line(line)
            if result is UNPARSED:
                if line == self._held_line:
                    logger.debug(f"Dropping malformed event line: {line[:80]!r}")
                    self._held_line = None
                    continue
                # Wait for more data before giving up on this line
                self._held_line = line
                self._buffer = line + "\n" + self._buffer
                break

            self._held_line = None
            if result is not None:
                events.append(result)
                if isinstance(result, DoneEvent):
                    self.finished = True

        return events

    def close(self) -> List[StreamEvent]:
        """
        Flush whatever is left after the input ended.

        Lines that still do not parse are dropped. Always ends with a done
        event unless the stream already finished.
        """
        if self.finished:
            return []

        self._buffer += self._decoder.decode(b"", final=True)
        remaining, self._buffer = self._buffer, ""
        events: List[StreamEvent] = []

        for raw in remaining.split("\n"):
            if raw.endswith("\r"):
                raw = raw[:-1]
            result = self._parse_line(raw)
            if isinstance(result, DoneEvent):
                break
            if result is not None and result is not UNPARSED:
                events.append(result)

        self.finished = True
        events.append(DoneEvent())
        return events

    def _parse_line(self, line: str) -> LineResult:
        if not line.strip() or line.startswith(":"):
            return None
        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_TOKEN:
            return DoneEvent()

        try:
            envelope = json.loads(payload)
        except ValueError:
            return UNPARSED

        if isinstance(envelope, dict) and envelope.get("type") == "emotion":
            return self._emotion_event(envelope.get("emotion"))

        text = extract_delta(envelope)
        return DeltaEvent(text) if text else None

    def _emotion_event(self, data) -> Optional[EmotionEvent]:
        if self._emotion_seen or not data:
            return None
        try:
            analysis = EmotionAnalysis.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring invalid emotion event: {e}")
            return None
        self._emotion_seen = True
        return EmotionEvent(analysis)


async def iter_events(chunks: AsyncIterable[bytes]) -> AsyncIterator[StreamEvent]:
    """
    Parse a byte stream into events.

    Ends after the first done event; a stream that closes without one still
    yields a final done event.
    """
    parser = EventStreamParser()

    async for chunk in chunks:
        for event in parser.feed(chunk):
            yield event
        if parser.finished:
            return

    for event in parser.close():
        yield event


async def consume(chunks: AsyncIterable[bytes], callbacks: StreamCallbacks) -> None:
    """Parse a byte stream and deliver every event to ``callbacks``."""
    async for event in iter_events(chunks):
        await callbacks.dispatch(event)
