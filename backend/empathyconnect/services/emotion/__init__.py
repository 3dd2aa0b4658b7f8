"""
Emotion services package initialization.
"""

from empathyconnect.services.emotion.classifier import (
    CRISIS_KEYWORDS,
    DEFAULT_RULES,
    NEGATIVE_WORDS,
    NEUTRAL_ANALYSIS,
    POSITIVE_WORDS,
    SEVERE_KEYWORDS,
    KeywordRule,
    classify,
)

__all__ = [
    "CRISIS_KEYWORDS",
    "DEFAULT_RULES",
    "NEGATIVE_WORDS",
    "NEUTRAL_ANALYSIS",
    "POSITIVE_WORDS",
    "SEVERE_KEYWORDS",
    "KeywordRule",
    "classify",
]
