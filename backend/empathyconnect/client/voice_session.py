"""
Hands-free voice chat on top of the streaming chat client.

Speech recognition and synthesis are supplied by the host through the
``SpeechRecognizer`` and ``SpeechSynthesizer`` protocols. The session moves
through ``idle -> listening -> thinking -> speaking -> listening`` and only
sends one utterance at a time, ignoring anything heard within the debounce
window after the previous send.
"""

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Literal, Optional, Protocol

from empathyconnect.client.chat_api import ChatClient
from empathyconnect.client.events import DeltaEvent, ErrorEvent
from empathyconnect.core.config import HISTORY_WINDOW
from empathyconnect.schemas.chat import ChatMessage
from empathyconnect.services.chat.prompts import DEFAULT_LANGUAGE

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en-US"

RECOGNITION_LOCALES = {
    "en": "en-US",
    "en-gb": "en-GB",
    "en-au": "en-AU",
    "es": "es-ES",
    "fr": "fr-FR",
    "de": "de-DE",
    "pt": "pt-BR",
    "it": "it-IT",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "zh": "zh-CN",
    "hi": "hi-IN",
    "ar": "ar-SA",
    "ru": "ru-RU",
    "nl": "nl-NL",
    "pl": "pl-PL",
    "ta": "ta-IN",
}

_ENGLISH_GREETING = "Hi! I'm listening. How are you feeling today?"

GREETINGS = {
    "en": _ENGLISH_GREETING,
    "en-gb": _ENGLISH_GREETING,
    "en-au": _ENGLISH_GREETING,
    "es": "¡Hola! Estoy escuchando. ¿Cómo te sientes hoy?",
    "fr": "Bonjour ! Je vous écoute. Comment vous sentez-vous aujourd'hui ?",
    "de": "Hallo! Ich höre zu. Wie fühlen Sie sich heute?",
    "pt": "Olá! Estou ouvindo. Como você está se sentindo hoje?",
    "it": "Ciao! Ti ascolto. Come ti senti oggi?",
    "ja": "こんにちは！聞いていますよ。今日の調子はどうですか？",
    "ko": "안녕하세요! 듣고 있어요. 오늘 기분이 어떠세요?",
    "zh": "你好！我在听。你今天感觉怎么样？",
    "hi": "नमस्ते! मैं सुन रहा हूँ। आज आप कैसा महसूस कर रहे हैं?",
    "ar": "مرحبًا! أنا أستمع. كيف تشعر اليوم؟",
    "ru": "Привет! Я слушаю. Как вы себя чувствуете сегодня?",
    "nl": "Hallo! Ik luister. Hoe voel je je vandaag?",
    "pl": "Cześć! Słucham. Jak się dziś czujesz?",
    "ta": "வணக்கம்! நான் கேட்டுக்கொண்டிருக்கிறேன். இன்று நீங்கள் எப்படி உணர்கிறீர்கள்?",
}


def recognition_locale(language: str) -> str:
    return RECOGNITION_LOCALES.get(language, DEFAULT_LOCALE)


def greeting_for(language: str) -> str:
    return GREETINGS.get(language, _ENGLISH_GREETING)


class SpeechRecognizer(Protocol):
    def start(self, locale: str) -> None: ...

    def stop(self) -> None: ...


class SpeechSynthesizer(Protocol):
    async def speak(self, text: str, language: str) -> None: ...

    def cancel(self) -> None: ...


class VoiceState(str, enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"


VOICE_TRANSITIONS = {
    VoiceState.IDLE: {VoiceState.SPEAKING, VoiceState.LISTENING},
    VoiceState.LISTENING: {VoiceState.THINKING, VoiceState.IDLE},
    VoiceState.THINKING: {VoiceState.SPEAKING, VoiceState.LISTENING, VoiceState.IDLE},
    VoiceState.SPEAKING: {VoiceState.LISTENING, VoiceState.IDLE},
}


class InvalidVoiceTransitionError(ValueError):
    pass


@dataclass(frozen=True)
class TranscriptEntry:
    role: Literal["user", "ai"]
    text: str


class VoiceSession:
    """A single voice call."""

    def __init__(
        self,
        client: ChatClient,
        recognizer: SpeechRecognizer,
        synthesizer: SpeechSynthesizer,
        language: str = DEFAULT_LANGUAGE,
        debounce_seconds: float = 3.0,
        history_window: int = HISTORY_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.recognizer = recognizer
        self.synthesizer = synthesizer
        self.language = language
        self.debounce_seconds = debounce_seconds
        self.history_window = history_window
        self.clock = clock

        self.state = VoiceState.IDLE
        self.connected = False
        self.transcript: List[TranscriptEntry] = []
        self.history: List[ChatMessage] = []
        self.last_error: Optional[str] = None

        self._stopping = False
        self._processing = False
        self._last_send: Optional[float] = None
        self._turn_task: Optional[asyncio.Task] = None

    def _set_state(self, new_state: VoiceState) -> None:
        if new_state not in VOICE_TRANSITIONS[self.state]:
            raise InvalidVoiceTransitionError(
                f"Cannot move voice session from {self.state.value} to {new_state.value}"
            )
        self.state = new_state

    async def start_call(self) -> None:
        """Greet the user in the session language, then start listening."""
        if self.connected:
            return

        self._stopping = False
        self._processing = False
        self._last_send = None
        self.connected = True
        self.history = []
        self.last_error = None

        greeting = greeting_for(self.language)
        self.transcript = [TranscriptEntry("ai", greeting)]
        self._set_state(VoiceState.SPEAKING)
        await self._speak(greeting)

        if not self._stopping:
            self._listen()

    async def handle_transcript(self, text: str) -> bool:
        """
        Handle a final recognition result.

        Returns False when the text was ignored: blank, heard while the session
        is not listening, or within the debounce window.
        """
        text = text.strip()
        if not text or self._processing or self.state != VoiceState.LISTENING:
            return False

        now = self.clock()
        if self._last_send is not None and now - self._last_send < self.debounce_seconds:
            logger.debug("Voice input debounced, too soon since last message")
            return False

        self._last_send = now
        self._processing = True
        self.recognizer.stop()
        self._set_state(VoiceState.THINKING)
        self.transcript.append(TranscriptEntry("user", text))

        self._turn_task = asyncio.create_task(self._run_turn(text))
        try:
            await self._turn_task
        except asyncio.CancelledError:
            if not self._stopping:
                raise
        finally:
            self._turn_task = None
        return True

    async def _run_turn(self, text: str) -> None:
        history = self.history[-self.history_window :]
        reply = ""
        error: Optional[str] = None

        async for event in self.client.iter_turn(text, history, language=self.language):
            if isinstance(event, DeltaEvent):
                reply += event.text
            elif isinstance(event, ErrorEvent):
                error = event.message

        if self._stopping:
            return

        if error is not None:
            logger.error(f"Voice chat error: {error}")
            self.last_error = error
            self._processing = False
            self._listen()
            return

        self.history.append(ChatMessage(role="user", content=text))
        self.history.append(ChatMessage(role="assistant", content=reply))
        self.transcript.append(TranscriptEntry("ai", reply))

        self._set_state(VoiceState.SPEAKING)
        await self._speak(reply)
        self._processing = False

        if not self._stopping:
            self._listen()

    async def _speak(self, text: str) -> None:
        try:
            await self.synthesizer.speak(text, self.language)
        except Exception as e:
            # A failed utterance must not end the call
            logger.warning(f"Speech synthesis error: {e}")

    def _listen(self) -> None:
        self._set_state(VoiceState.LISTENING)
        self.recognizer.start(recognition_locale(self.language))

    def end_call(self) -> None:
        """Stop recognition, speech and any in-flight turn. Safe to call repeatedly."""
        if not self.connected and self.state == VoiceState.IDLE:
            return

        self._stopping = True
        self.connected = False
        self._processing = False

        try:
            self.synthesizer.cancel()
        except Exception as e:
            logger.debug(f"Speech output already released: {e}")
        try:
            self.recognizer.stop()
        except Exception as e:
            logger.debug(f"Recognizer already stopped: {e}")

        if self._turn_task is not None and not self._turn_task.done():
            self._turn_task.cancel()

        if self.state != VoiceState.IDLE:
            self._set_state(VoiceState.IDLE)
        logger.info("Voice call ended")
