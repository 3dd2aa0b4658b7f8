"""
Keyword-based emotion and risk classification.

Classification is an ordered rule table: each rule is a keyword list with the
verdict it produces, evaluated top to bottom, and the first rule with any
keyword present in the message wins. Within a rule, the first keyword in
table order that appears anywhere in the message becomes ``primary_feeling``.
"""

import logging
from dataclasses import dataclass, field
from typing import FrozenSet, List, Optional, Sequence, Tuple

from empathyconnect.schemas.chat import EmotionAnalysis

logger = logging.getLogger(__name__)


CRISIS_KEYWORDS: Tuple[str, ...] = (
    "hopeless",
    "no point",
    "give up",
    "can't go on",
    "end it",
    "suicide",
    "kill myself",
    "self-harm",
    "cutting",
    "die",
    "death",
    "alone forever",
    "tired of life",
    "no reason to live",
    "worthless",
    "burden",
    "nobody cares",
    "want to disappear",
    "can't take it",
    "better off without me",
    "no reason to continue",
)

# Crisis keywords that escalate the verdict to high risk
SEVERE_KEYWORDS: FrozenSet[str] = frozenset(
    {
        "suicide",
        "kill myself",
        "self-harm",
        "end it",
        "die",
        "no reason to live",
        "no reason to continue",
    }
)

NEGATIVE_WORDS: Tuple[str, ...] = (
    "anxious",
    "anxiety",
    "sad",
    "depressed",
    "angry",
    "scared",
    "lonely",
    "stressed",
    "worried",
    "hurt",
    "pain",
    "crying",
    "overwhelmed",
    "exhausted",
    "frustrated",
    "afraid",
    "panic",
    "miserable",
    "terrible",
    "awful",
)

POSITIVE_WORDS: Tuple[str, ...] = (
    "happy",
    "grateful",
    "excited",
    "good",
    "great",
    "wonderful",
    "better",
    "hopeful",
    "calm",
    "peaceful",
    "loved",
    "joy",
    "proud",
    "relaxed",
    "confident",
)

NEUTRAL_ANALYSIS = EmotionAnalysis(
    emotion="neutral", intensity=5, risk_level="low", primary_feeling="neutral"
)


@dataclass(frozen=True)
class KeywordRule:
    """A keyword list and the verdict it produces when any keyword matches."""

    name: str
    keywords: Tuple[str, ...]
    emotion: str
    intensity: int
    risk_level: str
    severe_keywords: FrozenSet[str] = field(default_factory=frozenset)
    severe_intensity: Optional[int] = None
    severe_risk_level: Optional[str] = None

    def matches(self, text: str) -> List[str]:
        """Return the rule's keywords found in ``text``, in table order."""
        return [keyword for keyword in self.keywords if keyword in text]

    def verdict(self, matched: Sequence[str]) -> EmotionAnalysis:
        if self.severe_keywords.intersection(matched):
            return EmotionAnalysis(
                emotion=self.emotion,
                intensity=self.severe_intensity or self.intensity,
                risk_level=self.severe_risk_level or self.risk_level,
                primary_feeling=matched[0],
            )
        return EmotionAnalysis(
            emotion=self.emotion,
            intensity=self.intensity,
            risk_level=self.risk_level,
            primary_feeling=matched[0],
        )


DEFAULT_RULES: Tuple[KeywordRule, ...] = (
    KeywordRule(
        name="crisis",
        keywords=CRISIS_KEYWORDS,
        emotion="negative",
        intensity=7,
        risk_level="medium",
        severe_keywords=SEVERE_KEYWORDS,
        severe_intensity=9,
        severe_risk_level="high",
    ),
    KeywordRule(
        name="negative",
        keywords=NEGATIVE_WORDS,
        emotion="negative",
        intensity=6,
        risk_level="low",
    ),
    KeywordRule(
        name="positive",
        keywords=POSITIVE_WORDS,
        emotion="positive",
        intensity=6,
        risk_level="low",
    ),
)


def normalize(message: str) -> str:
    """Lowercase and fold typographic apostrophes so "can’t" matches "can't"."""
    return message.lower().replace("’", "'").replace("‘", "'")


def classify(
    message: str, rules: Sequence[KeywordRule] = DEFAULT_RULES
) -> EmotionAnalysis:
    """
    Classify the emotional tone and crisis risk of a message.

    Args:
        message: Raw user message
        rules: Ordered rule table; the first rule with a match decides

    Returns:
        The emotion analysis for the message
    """
    text = normalize(message)

    for rule in rules:
        matched = rule.matches(text)
        if matched:
            analysis = rule.verdict(matched)
            logger.debug(
                f"Rule '{rule.name}' matched {matched}: "
                f"{analysis.emotion}/{analysis.risk_level}"
            )
            return analysis

    return NEUTRAL_ANALYSIS
