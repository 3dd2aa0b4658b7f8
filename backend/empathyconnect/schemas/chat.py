"""
Pydantic models for chat-related schemas.
"""

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class EmotionAnalysis(BaseModel):
    """Emotion and risk verdict for a single user message."""

    model_config = ConfigDict(frozen=True)

    emotion: Literal["positive", "negative", "neutral"]
    intensity: int = Field(ge=1, le=10)
    risk_level: Literal["low", "medium", "high"]
    primary_feeling: str


class ChatMessage(BaseModel):
    """One entry of the conversation history."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of a chat turn request. Field aliases match the web client."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(min_length=1)
    conversation_history: List[ChatMessage] = Field(
        default_factory=list, alias="conversationHistory"
    )
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    user_id: Optional[str] = Field(default=None, alias="userId")
    language: Optional[str] = None


class ErrorResponse(BaseModel):
    """Body returned when a turn fails before streaming starts."""

    error: str
