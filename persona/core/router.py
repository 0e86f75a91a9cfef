"""Handler routing.

Tools fire only on explicit lexical triggers; everything else goes to the
chat handler. Rules are checked in a fixed order and the first match wins.
"""

import re

from .types import Annotations, HandlerTag

TODO_PATTERN = re.compile(
    r"\b(todo|to-do|to do|task|tasklist|task list|add task|my tasks|show list|show tasks|done \d|complete \d|"
    r"delete task|remove task|clear completed|my progress|todo progress|mark done|check off)\b",
    re.IGNORECASE,
)
REMINDER_PATTERN = re.compile(r"\b(remind|reminder|reminders|yaad dila\w*|alert me|notify me)\b", re.IGNORECASE)
TRANSLATE_PATTERNS = [
    re.compile(r"\b(translate|translation)\b", re.IGNORECASE),
    re.compile(
        r"\b(hindi mein|english mein|in hindi|in english|in spanish|in french|in german|in japanese|in korean|"
        r"in chinese|in arabic|in marathi|in tamil|in telugu|in bengali|in gujarati|in punjabi|in urdu)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bko\s+\w+\s+(mein|me|main)\s+(translate|convert)", re.IGNORECASE),
]
SUMMARIZE_PATTERN = re.compile(
    r"\b(summarize|summary|summarise|recap|tldr|tl;dr|what did we talk about|chat summary|conversation summary|sum up)\b",
    re.IGNORECASE,
)
YOUTUBE_PATTERN = re.compile(r"\b(youtube|yt|video|videos|recommend|suggest)\b", re.IGNORECASE)
YOUTUBE_SELF_REFERENCE = re.compile(r"\b(my channel|my youtube|your channel|your youtube)\b", re.IGNORECASE)
URL_PATTERN = re.compile(r"https?://[^\s]+", re.IGNORECASE)
SEARCH_PATTERNS = [
    re.compile(r"^\s*(?:@?\w+[,:]?\s+)?(search|google|look up)\s+\S", re.IGNORECASE),
    re.compile(r"\b(search (for|about)|google (it|karo|kar)|look it up)\b", re.IGNORECASE),
]

SOCIAL_INTENTS = ("birthday", "festival")
KNOWLEDGE_INTENTS = ("about_inquiry", "work_inquiry", "tech_inquiry", "contact_inquiry")


def is_translate_request(text: str) -> bool:
    return any(p.search(text) for p in TRANSLATE_PATTERNS)


def is_youtube_request(text: str) -> bool:
    return bool(YOUTUBE_PATTERN.search(text)) and not YOUTUBE_SELF_REFERENCE.search(text)


def is_search_request(text: str) -> bool:
    return any(p.search(text) for p in SEARCH_PATTERNS)


def route(annotations: Annotations, text: str) -> HandlerTag:
    """Pick the handler for an annotated message.

    Args:
        annotations: Annotator output for ``text``
        text: Effective message text

    Returns:
        Handler tag; ``HandlerTag.CHAT`` when nothing explicit matched
    """
    text = text or ""
    if annotations.intent == "spam":
        return HandlerTag.SOCIAL
    if TODO_PATTERN.search(text):
        return HandlerTag.TODO
    if REMINDER_PATTERN.search(text):
        return HandlerTag.REMINDER
    if is_translate_request(text):
        return HandlerTag.TRANSLATE
    if SUMMARIZE_PATTERN.search(text):
        return HandlerTag.SUMMARIZE
    if is_youtube_request(text):
        return HandlerTag.YOUTUBE
    if URL_PATTERN.search(text):
        return HandlerTag.LINK
    if is_search_request(text):
        return HandlerTag.SEARCH
    if annotations.intent in SOCIAL_INTENTS:
        return HandlerTag.SOCIAL
    if annotations.intent in KNOWLEDGE_INTENTS:
        return HandlerTag.KNOWLEDGE
    return HandlerTag.CHAT
