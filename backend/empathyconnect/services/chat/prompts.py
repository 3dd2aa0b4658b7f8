"""
System prompt and message-list composition for chat turns.
"""

from typing import Dict, List, Optional, Sequence

from empathyconnect.core.config import HISTORY_WINDOW
from empathyconnect.schemas.chat import ChatMessage

SYSTEM_PROMPT = """You are EmpathyConnect, a compassionate and safe AI mental health assistant.

Your rules:
1. ALWAYS validate the user's emotions first before offering any suggestions
2. Provide short, supportive, and empathetic responses (2-4 sentences typically)
3. NEVER diagnose mental health conditions or prescribe medications
4. Use warm, gentle language that makes users feel heard and understood
5. When detecting signs of crisis, gently acknowledge their pain and encourage reaching out to crisis resources
6. Ask open-ended follow-up questions to encourage sharing
7. Focus on emotional support, not problem-solving unless explicitly asked
8. CRITICAL: You MUST respond in the SAME language the user speaks. If a language is specified, respond ONLY in that language. Never switch to English unless the user writes in English.

Remember: You are a supportive companion, not a replacement for professional therapy. Be present, be kind, and be safe."""

HIGH_RISK_NOTE = (
    "IMPORTANT: The user may be in crisis. Be extra gentle, validate their "
    "feelings, and encourage them to reach out to a crisis helpline."
)

DEFAULT_LANGUAGE = "en"

LANGUAGE_NAMES: Dict[str, str] = {
    "en": "English",
    "en-gb": "English",
    "en-au": "English",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "pt": "Portuguese",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "hi": "Hindi",
    "ar": "Arabic",
    "ru": "Russian",
    "nl": "Dutch",
    "pl": "Polish",
    "ta": "Tamil",
}


def language_instruction(language: Optional[str]) -> str:
    """
    Instruction pinning the whole reply to the selected language.

    Returns an empty string for the default language or when none is set.
    """
    if not language or language.lower() == DEFAULT_LANGUAGE:
        return ""

    name = LANGUAGE_NAMES.get(language.lower(), language)
    return (
        f"\n\nIMPORTANT: The user's selected language is {name}. "
        f"You MUST respond ONLY in {name}, from the first word to the last. "
        f"Do NOT respond in English and do NOT mix in any other language."
    )


def compose_messages(
    system_prompt: str,
    history: Sequence[ChatMessage],
    user_message: str,
    language: Optional[str] = None,
    risk_level: Optional[str] = None,
    history_window: int = HISTORY_WINDOW,
) -> List[Dict[str, str]]:
    """
    Build the provider message list for one turn.

    Args:
        system_prompt: Base system prompt
        history: Prior conversation; only the trailing window is sent
        user_message: The new user message
        language: Selected language code
        risk_level: Classified risk of the user message

    Returns:
        Messages in the provider's ``{"role", "content"}`` shape
    """
    messages = [
        {"role": "system", "content": system_prompt + language_instruction(language)}
    ]
    window = list(history)[-history_window:] if history_window > 0 else []
    messages.extend({"role": m.role, "content": m.content} for m in window)
    messages.append({"role": "user", "content": user_message})

    if risk_level == "high":
        messages.append({"role": "system", "content": HIGH_RISK_NOTE})

    return messages
