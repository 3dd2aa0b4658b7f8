"""
Client-side chat transcript.
"""

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Literal, Optional

from empathyconnect.client.chat_api import ChatClient
from empathyconnect.client.events import StreamCallbacks
from empathyconnect.core.config import HISTORY_WINDOW
from empathyconnect.schemas.chat import ChatMessage, EmotionAnalysis
from empathyconnect.services.chat.prompts import DEFAULT_LANGUAGE
from empathyconnect.utils.datetime_helper import utc_now

logger = logging.getLogger(__name__)

WELCOME_MESSAGE = "Hello! I'm here to listen and support you. How are you feeling today?"
WELCOME_EMOTION = EmotionAnalysis(
    emotion="neutral", intensity=5, risk_level="low", primary_feeling="welcoming"
)
CRISIS_NOTICE = "If you're in crisis, please reach out to a helpline. You're not alone."


@dataclass(frozen=True)
class TranscriptMessage:
    id: str
    role: Literal["user", "assistant"]
    content: str
    emotion: Optional[EmotionAnalysis] = None
    timestamp: datetime = field(default_factory=utc_now)

    def as_history(self) -> ChatMessage:
        return ChatMessage(role=self.role, content=self.content)


def welcome_message() -> TranscriptMessage:
    return TranscriptMessage(
        id="welcome", role="assistant", content=WELCOME_MESSAGE, emotion=WELCOME_EMOTION
    )


class Conversation:
    """
    The visible transcript of a text chat.

    Only one turn may be in flight at a time. The assistant reply grows as
    deltas arrive; if the turn fails the partial reply is removed while the
    user's message is kept.
    """

    def __init__(
        self,
        client: ChatClient,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
        history_window: int = HISTORY_WINDOW,
    ):
        self.client = client
        self.session_id = session_id
        self.user_id = user_id
        self.language = language
        self.history_window = history_window
        self.messages: List[TranscriptMessage] = [welcome_message()]
        self.is_typing = False
        self.last_emotion: Optional[EmotionAnalysis] = None
        self.crisis_notice: Optional[str] = None
        self.last_error: Optional[str] = None

    def set_language(self, language: str) -> None:
        self.language = language

    def history(self) -> List[ChatMessage]:
        if self.history_window <= 0:
            return []
        return [m.as_history() for m in self.messages[-self.history_window :]]

    async def send(self, text: str) -> bool:
        """
        Send ``text`` as the next user message.

        Returns False when the text is blank or a turn is already running.
        """
        text = text.strip()
        if not text or self.is_typing:
            return False

        history = self.history()
        self.messages.append(
            TranscriptMessage(id=uuid.uuid4().hex, role="user", content=text)
        )
        self.is_typing = True
        self.last_error = None

        reply_id = f"ai-{uuid.uuid4().hex}"
        emotion: Optional[EmotionAnalysis] = None
        content = ""

        def on_emotion(analysis: EmotionAnalysis) -> None:
            nonlocal emotion
            emotion = analysis
            self.last_emotion = analysis
            if analysis.risk_level == "high":
                self.crisis_notice = CRISIS_NOTICE

        def on_delta(text_delta: str) -> None:
            nonlocal content
            content += text_delta
            last = self.messages[-1]
            if last.id == reply_id:
                self.messages[-1] = dataclasses.replace(
                    last, content=content, emotion=emotion
                )
            else:
                self.messages.append(
                    TranscriptMessage(
                        id=reply_id, role="assistant", content=content, emotion=emotion
                    )
                )

        def on_done() -> None:
            self.is_typing = False

        def on_error(message: str) -> None:
            logger.error(f"Chat error: {message}")
            self.last_error = message
            self.is_typing = False
            if self.messages[-1].id == reply_id:
                self.messages.pop()

        callbacks = StreamCallbacks(
            on_emotion=on_emotion, on_delta=on_delta, on_done=on_done, on_error=on_error
        )
        try:
            await self.client.send_turn(
                text,
                history,
                callbacks,
                session_id=self.session_id,
                user_id=self.user_id,
                language=self.language,
            )
        finally:
            self.is_typing = False
        return True
