"""Conversation summarizer bridge.

Compresses older conversation turns into a short recap for the chat prompt
and produces full chat summaries for the ``summarize`` handler.
"""

import re
import json
import logging
from collections import Counter
from typing import List, Dict, Any, Optional

from ..types import ConversationTurn, GenerationConfig, PersonaError

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = """Summarize this WhatsApp conversation in a brief, natural way.
Extract: 1) A 2-3 sentence summary, 2) Key topics discussed, 3) Overall sentiment.

Respond in JSON format:
{{"summary": "...", "topics": ["topic1", "topic2"], "sentiment": "positive/negative/neutral/mixed"}}

CONVERSATION:
{conversation}"""

SUMMARY_CONFIG = GenerationConfig(temperature=0.3, top_p=0.9, top_k=40, max_output_tokens=256)

_LOCAL_TOPICS = {
    "tech": r"tech|code|programming|software|\bapi\b|\bbug\b|deploy",
    "work": r"\bwork\b|\bjob\b|office|company|project|deadline",
    "personal": r"\blife\b|family|friend|relationship|health|\bfeel",
    "ai": r"\bai\b|machine learning|\bgpt|gemini|\bbot\b|neural",
    "finance": r"money|invest|stock|crypto|salary|payment",
    "education": r"college|study|exam|course|learn|degree",
}

_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)


class Summarizer:
    """LLM-backed conversation summarizer with a local fallback."""

    def __init__(self, llm=None, persona_name: str = "Manthan"):
        """Initialize summarizer.

        Args:
            llm: Object with an async ``generate(system, turns, config)``; may be None
            persona_name: Label used for assistant lines in the transcript
        """
        self.llm = llm
        self.persona_name = persona_name

    def format_turns(self, turns: List[ConversationTurn]) -> str:
        return "\n".join(
            f"{'User' if t.role == 'user' else self.persona_name}: {t.content}" for t in turns
        )

    @staticmethod
    def _parse(text: str) -> Dict[str, Any]:
        """Parse the model's JSON answer leniently."""
        match = _JSON_BLOCK.search(text or "")
        if match:
            try:
                data = json.loads(match.group(0))
                if isinstance(data, dict) and data.get("summary"):
                    topics = data.get("topics") or []
                    if not isinstance(topics, list):
                        topics = [str(topics)]
                    return {
                        "summary": str(data["summary"]).strip(),
                        "topics": [str(t) for t in topics],
                        "sentiment": str(data.get("sentiment") or "neutral"),
                    }
            except json.JSONDecodeError:
                pass
        return {"summary": (text or "").strip(), "topics": [], "sentiment": "neutral"}

    async def summarize_turns(self, turns: List[ConversationTurn]) -> Dict[str, Any]:
        """Summarize turns through the LLM.

        Raises:
            PersonaError: When no LLM is available or the call failed
        """
        if not turns:
            raise PersonaError("Nothing to summarize")
        if self.llm is None:
            raise PersonaError("Summarizer has no LLM")

        prompt = SUMMARY_PROMPT.format(conversation=self.format_turns(turns))
        text = await self.llm.generate(None, [{"role": "user", "content": prompt}], SUMMARY_CONFIG)
        result = self._parse(text)
        if not result["summary"]:
            raise PersonaError("Empty summary")
        return result

    def local_summary(self, turns: List[ConversationTurn]) -> Dict[str, Any]:
        """Offline summary: message counts and the topics that came up."""
        transcript = " ".join(t.content for t in turns).lower()
        topics = [name for name, pattern in _LOCAL_TOPICS.items() if re.search(pattern, transcript)]

        words = [w for w in re.findall(r"[a-z]{5,}", transcript)]
        common = [w for w, _ in Counter(words).most_common(3)]

        user_count = sum(1 for t in turns if t.role == "user")
        summary = (
            f"Conversation with {len(turns)} messages ({user_count} from you) covering "
            f"{', '.join(topics) if topics else 'general topics'}."
        )
        if common:
            summary += f" Words that came up most: {', '.join(common)}."
        return {"summary": summary, "topics": topics or ["general"], "sentiment": "neutral"}

    async def summarize_or_local(self, turns: List[ConversationTurn]) -> Dict[str, Any]:
        """Summary for display: LLM when possible, local otherwise."""
        try:
            return await self.summarize_turns(turns)
        except Exception as e:
            logger.warning(f"Summarizer falling back to local summary: {e}")
            return self.local_summary(turns)

    @staticmethod
    def format_recap(result: Dict[str, Any], message_count: int) -> str:
        """Recap block injected into the chat system prompt."""
        return (
            f"CONVERSATION RECAP ({message_count} messages):\n"
            f"{result['summary']}\n"
            f"Key Topics: {', '.join(result.get('topics') or [])}\n"
            f"Overall Mood: {result.get('sentiment') or 'neutral'}"
        )
