"""
Outgoing event stream for a chat turn.

The stream uses the line-delimited event protocol the web client reads:
every event is ``data: <json>\\n\\n``, lines starting with ``:`` are comments,
and ``data: [DONE]`` ends the stream. The classification event always comes
first; the provider's own events follow byte for byte.
"""

import json
import logging
from typing import AsyncIterator, Protocol

from empathyconnect.schemas.chat import EmotionAnalysis

logger = logging.getLogger(__name__)

DONE_MARKER = b"data: [DONE]"
DONE_EVENT = DONE_MARKER + b"\n\n"


class ByteStream(Protocol):
    def iter_bytes(self) -> AsyncIterator[bytes]: ...

    async def aclose(self) -> None: ...


def format_event(payload: dict) -> bytes:
    """Encode one protocol event."""
    return f"data: {json.dumps(payload)}\n\n".encode("utf-8")


def emotion_event(analysis: EmotionAnalysis) -> bytes:
    return format_event({"type": "emotion", "emotion": analysis.model_dump()})


class DoneMarkerScanner:
    """Detects ``data: [DONE]`` in forwarded bytes, even across chunk boundaries."""

    def __init__(self):
        self._tail = b""
        self.seen = False

    def feed(self, chunk: bytes) -> None:
        if self.seen:
            return
        window = self._tail + chunk
        self.seen = DONE_MARKER in window
        self._tail = window[-(len(DONE_MARKER) - 1) :]


async def multiplex(
    analysis: EmotionAnalysis, upstream: ByteStream
) -> AsyncIterator[bytes]:
    """
    Yield the classification event, then the upstream stream unchanged.

    A terminating ``[DONE]`` is added when the upstream closes cleanly without
    sending one itself. If reading the upstream fails the stream just ends, so
    the client sees a response without a terminal event.
    """
    scanner = DoneMarkerScanner()
    try:
        yield emotion_event(analysis)
        async for chunk in upstream.iter_bytes():
            scanner.feed(chunk)
            yield chunk
    except Exception as e:
        logger.error(f"Stream read error: {e}")
        return
    finally:
        await upstream.aclose()

    if not scanner.seen:
        yield DONE_EVENT
