"""Summarize handler: recap of the sender's recent chat."""

import sqlite3
import logging
from typing import Optional

from ..memory import MemoryStore, Summarizer
from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .base import BaseHandler

logger = logging.getLogger(__name__)

MAX_TURNS = 30
EMPTY_HISTORY = "not enough chat history to summarize yet 🤷‍♂️ chat a bit more and try again!"


class SummarizeHandler(BaseHandler):
    """Summarize the conversation with this sender."""

    tag = HandlerTag.SUMMARIZE
    description = "Chat summary of recent history"

    def __init__(self, memory: MemoryStore, summarizer: Summarizer):
        self.memory = memory
        self.summarizer = summarizer

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        try:
            turns = self.memory.recent_turns(bundle.sender_id, MAX_TURNS + 1)
        except sqlite3.Error as e:
            raise HandlerError(f"history unavailable: {e}") from e

        # The request itself is already recorded as the newest turn
        if turns and turns[-1].role == "user" and turns[-1].content == bundle.text:
            turns = turns[:-1]
        turns = turns[-MAX_TURNS:]
        if not turns:
            return self.result(EMPTY_HISTORY, is_quick_response=True)

        summary = await self.summarizer.summarize_or_local(turns)
        topics = ", ".join(summary.get("topics") or []) or "general"
        logger.info(f"📝 Summarized {len(turns)} turns for {bundle.sender_id}")
        return self.result(
            "📝 *Chat Summary*\n━━━━━━━━━━━━━━━━━━━━\n\n"
            f"{summary['summary']}\n\n"
            f"📊 _{len(turns)} messages analyzed_\n"
            f"🏷️ Topics: {topics}"
        )
