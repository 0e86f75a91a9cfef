"""Communication-style and topic classifiers for person profiles."""

import re
from typing import List

# Ordered: first match wins
STYLE_RULES = [
    (r"bro|yaar|bhai|dude|\bman\b", "casual-friendly"),
    (r"\bsir\b|madam|please|kindly|would you", "formal"),
    (r"\blol\b|lmao|haha|😂|🤣", "humorous"),
    (r"\bkya\b|kaise|kyun|matlab|samjha", "hinglish"),
]

BRIEF_LENGTH = 20
DETAILED_LENGTH = 200

TOPIC_MAP = {
    "tech": r"tech|code|coding|programming|developer|software|\bapi\b|backend|frontend",
    "ai": r"\bai\b|artificial|machine learning|\bml\b|\bgpt|gemini|neural|deep learning",
    "bike": r"bike|\bride\b|riding|enfield|hunter|motorcycle|bullet",
    "chess": r"chess|rating|\belo\b|gambit|opening",
    "finance": r"invest|stock|market|money|crypto|trading|finance",
    "career": r"\bjob\b|\bwork\b|company|career|salary|promotion|interview",
    "music": r"music|song|singing|guitar|instrument|stream",
    "personal": r"\blife\b|\blove\b|relationship|feeling|emotion|mental",
    "youtube": r"youtube|video|content|channel|subscriber",
    "education": r"college|university|degree|study|exam|vjti",
}

MAX_TOPICS = 5
MAX_EMOTION_HISTORY = 10

_STYLE = [(re.compile(p, re.IGNORECASE), label) for p, label in STYLE_RULES]
_TOPICS = {topic: re.compile(p, re.IGNORECASE) for topic, p in TOPIC_MAP.items()}


def detect_style(text: str) -> str:
    """Classify raw text into exactly one communication-style label."""
    text = text or ""
    for pattern, label in _STYLE:
        if pattern.search(text):
            return label
    length = len(text.strip())
    if length < BRIEF_LENGTH:
        return "brief"
    if length > DETAILED_LENGTH:
        return "detailed"
    return "neutral"


def extract_topics(text: str) -> List[str]:
    """Topic tags mentioned in ``text``, in table order."""
    return [topic for topic, pattern in _TOPICS.items() if pattern.search(text or "")]


def merge_topics(existing: List[str], new: List[str], limit: int = MAX_TOPICS) -> List[str]:
    """Append new topics keeping the last ``limit`` distinct ones."""
    merged = [t for t in existing if t not in new] + [t for t in new]
    seen = []
    for topic in merged:
        if topic not in seen:
            seen.append(topic)
    return seen[-limit:]
