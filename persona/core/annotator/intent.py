"""Rule-based intent and sub-intent classification."""

import re
from typing import List, Optional, Tuple

from . import tables

_COMPILED_INTENTS = [
    {
        "label": entry["label"],
        "patterns": [re.compile(p, re.IGNORECASE) for p in entry["patterns"]],
        "sub_intents": entry.get("sub_intents", []),
        "sub_rules": [(re.compile(p, re.IGNORECASE), sub) for p, sub in entry.get("sub_rules", [])],
    }
    for entry in tables.INTENT_TABLE
]


def _confidence(text: str, label: str, matches: int) -> float:
    score = tables.CONFIDENCE_BASE + tables.CONFIDENCE_PER_MATCH * matches
    if len(text) < tables.CONFIDENCE_SHORT_LENGTH:
        score += tables.CONFIDENCE_SHORT_BONUS
    if label in tables.BOOSTED_INTENTS:
        score += tables.CONFIDENCE_SPECIFIC_BONUS
    return min(score, 1.0)


def _sub_intent(text: str, entry: dict) -> Optional[str]:
    if not entry["sub_intents"]:
        return None
    for pattern, sub in entry["sub_rules"]:
        if pattern.search(text):
            return sub
    return entry["sub_intents"][0]


def classify_intent(text: str) -> Tuple[str, Optional[str], float, List[str]]:
    """Classify a message into its primary intent.

    Args:
        text: Raw message text

    Returns:
        Tuple of (intent, sub_intent, confidence, matched_labels). Ties on
        confidence keep the intent declared first in the table.
    """
    msg = (text or "").lower().strip()
    primary, primary_sub, primary_score = "unknown", None, 0.0
    matched: List[str] = []

    for entry in _COMPILED_INTENTS:
        hits = sum(1 for pattern in entry["patterns"] if pattern.search(msg))
        if not hits:
            continue
        matched.append(entry["label"])
        score = _confidence(msg, entry["label"], hits)
        if score > primary_score:
            primary, primary_score = entry["label"], score
            primary_sub = _sub_intent(msg, entry)

    return primary, primary_sub, primary_score, matched
