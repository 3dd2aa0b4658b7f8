"""
Python client for the EmpathyConnect chat endpoint.
"""

from empathyconnect.client.chat_api import (
    ChatClient,
    ChatTurn,
    InvalidTurnTransitionError,
    QUOTA_MESSAGE,
    RATE_LIMIT_MESSAGE,
    TurnState,
    send_turn,
)
from empathyconnect.client.conversation import (
    CRISIS_NOTICE,
    Conversation,
    TranscriptMessage,
)
from empathyconnect.client.events import (
    DeltaEvent,
    DoneEvent,
    EmotionEvent,
    ErrorEvent,
    StreamCallbacks,
    StreamEvent,
)
from empathyconnect.client.stream_consumer import EventStreamParser, consume, iter_events
from empathyconnect.client.voice_session import (
    SpeechRecognizer,
    SpeechSynthesizer,
    VoiceSession,
    VoiceState,
)

__all__ = [
    "ChatClient",
    "ChatTurn",
    "InvalidTurnTransitionError",
    "QUOTA_MESSAGE",
    "RATE_LIMIT_MESSAGE",
    "TurnState",
    "send_turn",
    "CRISIS_NOTICE",
    "Conversation",
    "TranscriptMessage",
    "DeltaEvent",
    "DoneEvent",
    "EmotionEvent",
    "ErrorEvent",
    "StreamCallbacks",
    "StreamEvent",
    "EventStreamParser",
    "consume",
    "iter_events",
    "SpeechRecognizer",
    "SpeechSynthesizer",
    "VoiceSession",
    "VoiceState",
]
