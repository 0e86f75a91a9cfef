"""Handlers selected by the router, plus the registry and fallback chain."""

from .base import BaseHandler, TTLCache
from .registry import HandlerRegistry
from .fallback import FallbackChain, emergency_phrase
from .chat import ChatHandler
from .search import SearchHandler
from .youtube import YouTubeHandler
from .knowledge import KnowledgeHandler
from .link import LinkHandler
from .translate import TranslateHandler
from .todo import TodoHandler
from .reminder import ReminderBook, ReminderHandler
from .summarize import SummarizeHandler
from .social import SocialHandler
from .vision import VisionHandler

__all__ = [
    "BaseHandler",
    "TTLCache",
    "HandlerRegistry",
    "FallbackChain",
    "emergency_phrase",
    "ChatHandler",
    "SearchHandler",
    "YouTubeHandler",
    "KnowledgeHandler",
    "LinkHandler",
    "TranslateHandler",
    "TodoHandler",
    "ReminderBook",
    "ReminderHandler",
    "SummarizeHandler",
    "SocialHandler",
    "VisionHandler",
]
