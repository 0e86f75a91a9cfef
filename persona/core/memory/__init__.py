"""Person and conversation memory."""

from .store import MemoryStore
from .summarizer import Summarizer
from .style import detect_style, extract_topics

__all__ = ["MemoryStore", "Summarizer", "detect_style", "extract_topics"]
