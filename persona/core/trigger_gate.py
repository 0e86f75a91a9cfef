"""Group trigger gate and effective-text selection."""

import re
import logging
from typing import List, Optional

from .types import Envelope

logger = logging.getLogger(__name__)

ANSWER_VERBS = r"(?:answer|reply|respond|explain|jawab|bata|samjha)\w*"
_LEADING_BOT = re.compile(r"^\s*@bot\s+", re.IGNORECASE)
_MENTION_TOKEN = re.compile(r"@\S+")
# Imperative: the verb leads what is left after dropping mentions and politeness
_IMPERATIVE = re.compile(
    rf"^(?:(?:pls|please|plz|bhai|bro|yaar|can you|could you)\s+)*{ANSWER_VERBS}\b",
    re.IGNORECASE,
)
MAX_REDIRECT_WORDS = 6


class TriggerGate:
    """Decides whether a message engages the pipeline and what text it carries."""

    def __init__(self, bot_id: Optional[str] = None, aliases: Optional[List[str]] = None):
        """Initialize gate.

        Args:
            bot_id: Transport identifier of the bot account
            aliases: Names that count as a mention, matched case-insensitively
        """
        self.bot_id = bot_id
        aliases = aliases or ["manthan", "@manthan", "@bot"]
        self.alias_pattern = re.compile("|".join(re.escape(a) for a in aliases), re.IGNORECASE)
        self.alias_strip = re.compile(
            r"(?:^|\s)(?:" + "|".join(re.escape(a) for a in sorted(aliases, key=len, reverse=True)) + r")\b[,:]?",
            re.IGNORECASE,
        )

    def is_triggered(self, envelope: Envelope) -> bool:
        """Group trigger: mention, quote of the bot, or a name tag in text/caption."""
        if not envelope.is_group:
            return True
        if self.bot_id and self.bot_id in envelope.mentioned_ids:
            return True
        if self.bot_id and envelope.quoted_author_id == self.bot_id:
            return True
        # Image captions arrive as the envelope text
        return bool(self.alias_pattern.search(envelope.text or ""))

    def _is_answer_this(self, envelope: Envelope) -> bool:
        if not envelope.quoted_text or not envelope.quoted_text.strip():
            return False
        if self.bot_id and envelope.quoted_author_id == self.bot_id:
            return False
        remainder = self.alias_strip.sub(" ", envelope.text or "")
        remainder = _MENTION_TOKEN.sub(" ", remainder).strip()
        if len(remainder.split()) > MAX_REDIRECT_WORDS:
            return False
        return bool(_IMPERATIVE.search(remainder))

    def effective_text(self, envelope: Envelope) -> Optional[str]:
        """Return the text the pipeline should work on, or None to drop.

        In groups an "answer this" reply to someone else's message swaps in
        the quoted text. A leading ``@bot`` is always removed.
        """
        if not self.is_triggered(envelope):
            logger.debug(f"Group message in {envelope.sender_id} without trigger, ignoring")
            return None

        text = envelope.text or ""
        if envelope.is_group and self._is_answer_this(envelope):
            logger.info(f"🔔 Answer-this redirect in {envelope.sender_id}")
            text = envelope.quoted_text

        return strip_bot_mention(text)


def strip_bot_mention(text: str) -> str:
    return _LEADING_BOT.sub("", text or "", count=1)
