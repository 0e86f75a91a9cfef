"""Script and lexicon based language detection."""

import re

from . import tables

_DEVANAGARI = re.compile(tables.DEVANAGARI_PATTERN)
_HINGLISH = re.compile(tables.HINGLISH_PATTERN, re.IGNORECASE)


def detect_language(text: str) -> str:
    """Return ``hindi``, ``hinglish`` or ``english``."""
    text = text or ""
    if _DEVANAGARI.search(text):
        return "hindi"
    if _HINGLISH.search(text.lower()):
        return "hinglish"
    return "english"


def count_hinglish_words(text: str) -> int:
    return len(_HINGLISH.findall((text or "").lower()))
