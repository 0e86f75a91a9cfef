"""Weighted keyword/emoji emotion scoring."""

import re
from typing import Dict, Tuple

from . import tables

_FRUSTRATION = [(re.compile(p), bonus) for p, bonus in tables.FRUSTRATION_BONUSES]
_EXCITEMENT = [(re.compile(p), bonus) for p, bonus in tables.EXCITEMENT_BONUSES]
_SADNESS = [(re.compile(p), bonus) for p, bonus in tables.SADNESS_BONUSES]
_EXCITEMENT_EMOJI = re.compile(tables.EXCITEMENT_EMOJI_PATTERN)


def _frustration_bonus(original: str) -> float:
    score = sum(bonus for pattern, bonus in _FRUSTRATION if pattern.search(original))
    # Caps are judged on the original casing, lowercasing first would hide them
    caps_words = [
        w for w in original.split()
        if len(w) >= tables.CAPS_WORD_MIN_LENGTH and w.isupper()
    ]
    if len(caps_words) > 1:
        score += tables.CAPS_WORD_BONUS
    return score


def _excitement_bonus(msg: str, original: str) -> float:
    score = sum(bonus for pattern, bonus in _EXCITEMENT if pattern.search(msg))
    if "!!" in original:
        score += tables.EXCITEMENT_EXCLAMATION_BONUS
    if len(_EXCITEMENT_EMOJI.findall(original)) > tables.EXCITEMENT_EMOJI_THRESHOLD:
        score += tables.EXCITEMENT_EMOJI_BONUS
    return score


def score_emotions(text: str) -> Dict[str, float]:
    """Score every emotion label for ``text``."""
    original = text or ""
    msg = original.lower()
    scores: Dict[str, float] = {}

    for label, entry in tables.EMOTION_TABLE.items():
        score = 0.0
        for keyword in entry["keywords"]:
            if keyword in msg:
                score += entry["weight"]
        for emoji in entry["emojis"]:
            if emoji in original:
                score += entry["weight"] * 0.8
        scores[label] = score

    scores["frustrated"] += _frustration_bonus(original)
    scores["excited"] += _excitement_bonus(msg, original)
    scores["sad"] += sum(bonus for pattern, bonus in _SADNESS if pattern.search(msg))
    return scores


def detect_emotion(text: str) -> Tuple[str, str, Dict[str, float]]:
    """Detect the primary emotion and its intensity.

    Returns:
        Tuple of (emotion, intensity, scores). ``neutral`` is chosen only when
        no other label scored above zero.
    """
    scores = score_emotions(text)
    primary, top = "neutral", 0.0
    for label, score in scores.items():
        if label == "neutral":
            continue
        if score > top:
            primary, top = label, score

    if top > tables.INTENSITY_HIGH:
        intensity = "high"
    elif top > tables.INTENSITY_MEDIUM:
        intensity = "medium"
    else:
        intensity = "low"
    return primary, intensity, scores


def tone_hint(emotion: str) -> str:
    """Response-tone hint for the chat prompt."""
    return tables.TONE_GUIDANCE.get(emotion, tables.TONE_GUIDANCE["neutral"])
