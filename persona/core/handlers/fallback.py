"""Fallback chain for failed handlers.

search (only when chat or knowledge failed) -> knowledge -> social -> emergency
phrase. Each step runs at most once and the handler that failed is skipped.
"""

import random
import logging
from dataclasses import replace
from typing import List, Optional

from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .registry import HandlerRegistry

logger = logging.getLogger(__name__)

EMERGENCY_PHRASES = [
    "hmm let me think about this for a sec",
    "acha wait, I'll get back on this properly",
    "sorry yaar, brain freeze 😅 text me again in a bit?",
    "one sec, processing... (my brain, not a computer lol)",
    "interesting question. let me check and get back to you",
]
SUPPORTIVE_PHRASE = "hey, I hear you. let me give you a proper response in a bit 🙏"
SUPPORTIVE_EMOTIONS = ("sad", "anxious")

SEARCH_RETRY_FOR = (HandlerTag.CHAT, HandlerTag.KNOWLEDGE)


def emergency_phrase(emotion: str, rng: Optional[random.Random] = None) -> str:
    if emotion in SUPPORTIVE_EMOTIONS:
        return SUPPORTIVE_PHRASE
    return (rng or random).choice(EMERGENCY_PHRASES)


class FallbackChain:
    """Walks fallback handlers after a failure until one produces a reply."""

    def __init__(self, registry: HandlerRegistry, rng: Optional[random.Random] = None):
        self.registry = registry
        self.rng = rng or random.Random()

    def steps(self, failed: HandlerTag) -> List[HandlerTag]:
        chain = []
        if failed in SEARCH_RETRY_FOR:
            chain.append(HandlerTag.SEARCH)
        chain.extend(tag for tag in (HandlerTag.KNOWLEDGE, HandlerTag.SOCIAL) if tag != failed)
        return chain

    async def run(self, failed: HandlerTag, bundle: ContextBundle) -> HandlerResult:
        """Recover from a failed handler.

        Args:
            failed: Handler that failed
            bundle: Context bundle of the failed call

        Returns:
            First usable fallback result, or an emergency phrase
        """
        # Findings from a failed compose must not leak into fallback handlers
        bundle = replace(bundle, external_findings=None)
        for tag in self.steps(failed):
            try:
                result = await self.registry.dispatch(tag, bundle)
                logger.info(f"🔁 Fallback {failed.value} -> {tag.value} succeeded")
                return result
            except HandlerError as e:
                logger.debug(f"Fallback {tag.value} failed: {e}")

        logger.warning(f"🚨 All fallbacks failed after {failed.value}, using emergency phrase")
        return HandlerResult(
            response=emergency_phrase(bundle.annotations.emotion, self.rng),
            source="emergency",
            is_quick_response=True,
        )
