"""
Chat services package initialization.
"""

from empathyconnect.services.chat.multiplexer import multiplex
from empathyconnect.services.chat.prompts import SYSTEM_PROMPT, compose_messages

__all__ = [
    "SYSTEM_PROMPT",
    "compose_messages",
    "multiplex",
]
