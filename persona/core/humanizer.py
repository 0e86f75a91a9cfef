"""Humanizer: tone touch-ups and the typing-delay delivery plan."""

import re
import time
import random
import logging
from typing import Callable, List, Optional

from .types import DeliveryPart, DeliveryPlan, HandlerResult
from .timezone import USER_TZ, local_now, is_late_night

logger = logging.getLogger(__name__)

# Only the most obvious bot-speak openers
FORMAL_OPENERS = [
    re.compile(r"^(certainly|absolutely|sure thing|i'd be happy to|i'd love to|i would be glad to)[,!.]?\s*", re.IGNORECASE),
    re.compile(r"^(thank you for (asking|reaching out|your message))[,!.]?\s*", re.IGNORECASE),
    re.compile(r"^(that's a (great|wonderful|excellent) question)[,!.]?\s*", re.IGNORECASE),
]

# A line of dashes, or two blank lines in a row
PART_SPLIT = re.compile(r"^[ \t]*-{3,}[ \t]*$|\n[ \t]*\n[ \t]*\n", re.MULTILINE)
SENTENCE_END = re.compile(r"[.!?](?=\s|$)")
_URL = re.compile(r"https?://", re.IGNORECASE)

QUICK_INTENTS = ("greeting", "farewell", "thanks")
MIN_DELAY_MS = 600
MIN_FOLLOWUP_DELAY_MS = 800


class Humanizer:
    """Makes responses read like a person typed them."""

    def __init__(
        self,
        max_group_reply: int = 600,
        typing_base_ms: int = 800,
        typing_per_char_ms: int = 8,
        typing_max_ms: int = 5000,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        tz=USER_TZ,
    ):
        self.max_group_reply = max_group_reply
        self.typing_base_ms = typing_base_ms
        self.typing_per_char_ms = typing_per_char_ms
        self.typing_max_ms = typing_max_ms
        self.rng = rng or random.Random()
        self.clock = clock
        self.tz = tz

    def is_late_night(self) -> bool:
        return is_late_night(local_now(self.tz, self.clock()).hour)

    # ── Text ─────────────────────────────────────────────────────────

    @staticmethod
    def trim_formality(text: str) -> str:
        for pattern in FORMAL_OPENERS:
            text = pattern.sub("", text)
        return text.strip()

    def adjust_for_time(self, text: str, late_night: bool) -> str:
        """At night: fewer exclamation runs, sometimes a calmer full stop."""
        if not late_night or "!" not in text:
            return text
        text = re.sub(r"!{2,}", "!", text)
        if self.rng.random() < 0.5:
            text = re.sub(r"!$", ".", text)
        return text

    def truncate_for_group(self, text: str) -> str:
        """Cut group replies at the last sentence end that fits the budget."""
        limit = self.max_group_reply
        if len(text) <= limit:
            return text
        window = text[:limit]
        ends = [m.end() for m in SENTENCE_END.finditer(window)]
        if ends:
            return window[:ends[-1]].rstrip()
        return text[:limit - 1].rstrip() + "…"

    def random_imperfections(self, text: str) -> str:
        """Light texting habits: lowercase, dropped final period, shorter ellipses."""
        if len(text) < 200 and not _URL.search(text) and self.rng.random() < 0.3:
            text = text.lower()
        if text.endswith(".") and not text.endswith("..") and self.rng.random() < 0.5:
            text = text[:-1]
        if self.rng.random() < 0.2:
            text = text.replace("...", "..")
        return text

    def humanize(self, text: str, is_group: bool = False, casual: bool = True) -> str:
        """Humanize a response.

        Args:
            text: Filtered response
            is_group: Apply the group length budget
            casual: Allow texting imperfections (chat-style replies only)
        """
        text = self.trim_formality(text or "")
        text = self.adjust_for_time(text, self.is_late_night())
        if casual:
            text = self.random_imperfections(text)
        if is_group:
            text = self.truncate_for_group(text)
        return text

    # ── Delivery plan ────────────────────────────────────────────────

    @staticmethod
    def split_parts(text: str) -> List[str]:
        return [p.strip() for p in PART_SPLIT.split(text or "") if p and p.strip()]

    def typing_delay(
        self,
        text: str,
        is_group: bool = False,
        intent: Optional[str] = None,
        late_night: bool = False,
    ) -> int:
        """Typing delay in milliseconds for one message part."""
        delay = self.typing_base_ms + len(text) * self.typing_per_char_ms / 10
        if is_group:
            delay *= 0.6
        if intent in QUICK_INTENTS:
            delay *= 0.5
        if late_night:
            delay *= 1.3
        delay *= 0.8 + self.rng.random() * 0.4
        return int(min(max(delay, MIN_DELAY_MS), self.typing_max_ms))

    def plan(
        self,
        text: str,
        result: Optional[HandlerResult] = None,
        is_group: bool = False,
        intent: Optional[str] = None,
        elapsed_ms: float = 0.0,
    ) -> DeliveryPlan:
        """Split a response into parts with per-part typing delays.

        Args:
            text: Humanized response
            result: Handler result carrying attachments for part 0
            is_group: Group chat
            intent: Primary intent label
            elapsed_ms: Time already spent producing the response

        Returns:
            DeliveryPlan with attachments on part 0 only
        """
        late_night = self.is_late_night()
        parts = self.split_parts(text) or [(text or "").strip()]
        plan = DeliveryPlan()

        for index, part in enumerate(parts):
            delay = self.typing_delay(part, is_group, intent, late_night)
            if index == 0:
                # Handler time already felt like typing to the user
                delay = max(MIN_DELAY_MS, int(delay - elapsed_ms))
            else:
                delay = min(self.typing_max_ms, max(MIN_FOLLOWUP_DELAY_MS, int(0.5 * delay)))
            plan.parts.append(DeliveryPart(text=part, delay_ms=delay))

        if result is not None and plan.parts:
            first = plan.parts[0]
            first.image, first.image_mime = result.image, result.image_mime
            first.audio, first.audio_mime = result.audio, result.audio_mime
        return plan
