"""
Typed events produced by the streaming chat client.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from empathyconnect.schemas.chat import EmotionAnalysis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmotionEvent:
    analysis: EmotionAnalysis


@dataclass(frozen=True)
class DeltaEvent:
    text: str


@dataclass(frozen=True)
class DoneEvent:
    pass


@dataclass(frozen=True)
class ErrorEvent:
    message: str


StreamEvent = Union[EmotionEvent, DeltaEvent, DoneEvent, ErrorEvent]

TERMINAL_EVENTS = (DoneEvent, ErrorEvent)


@dataclass
class StreamCallbacks:
    """
    Optional handlers for each event kind.

    Handlers may be plain functions or coroutine functions.
    """

    on_emotion: Optional[Callable[[EmotionAnalysis], Any]] = None
    on_delta: Optional[Callable[[str], Any]] = None
    on_done: Optional[Callable[[], Any]] = None
    on_error: Optional[Callable[[str], Any]] = None

    async def dispatch(self, event: StreamEvent) -> None:
        """Invoke the handler matching ``event``, awaiting it if needed."""
        if isinstance(event, EmotionEvent):
            handler, args = self.on_emotion, (event.analysis,)
        elif isinstance(event, DeltaEvent):
            handler, args = self.on_delta, (event.text,)
        elif isinstance(event, DoneEvent):
            handler, args = self.on_done, ()
        else:
            handler, args = self.on_error, (event.message,)

        if handler is None:
            return

        result = handler(*args)
        if inspect.isawaitable(result):
            await result
