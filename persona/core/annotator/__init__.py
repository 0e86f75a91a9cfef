"""Annotator: text to intent, emotion and language labels.

Total and deterministic: any input, including the empty string, yields an
``Annotations`` value, and the same text always yields the same labels.
"""

import re

from ..types import Annotations
from . import tables
from .intent import classify_intent
from .emotion import detect_emotion, tone_hint
from .language import detect_language

_EMOJI = re.compile(tables.EMOJI_PATTERN)


def annotate(text: str) -> Annotations:
    """Annotate a message.

    Args:
        text: Effective message text

    Returns:
        Annotations for the text
    """
    text = text or ""
    intent, sub_intent, confidence, matched = classify_intent(text)
    emotion, intensity, scores = detect_emotion(text)
    stripped = text.strip()

    return Annotations(
        intent=intent,
        sub_intent=sub_intent,
        confidence=confidence,
        all_intents=matched,
        emotion=emotion,
        intensity=intensity,
        emotion_scores=scores,
        language=detect_language(text),
        is_short=len(stripped) < tables.SHORT_MESSAGE_LENGTH,
        is_long=len(stripped) > tables.LONG_MESSAGE_LENGTH,
        has_emoji=bool(_EMOJI.search(text)),
    )


__all__ = ["annotate", "classify_intent", "detect_emotion", "detect_language", "tone_hint"]
