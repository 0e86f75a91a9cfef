"""Chat handler: persona replies through the LLM.

Also composes findings from search, youtube and knowledge into one natural
reply when ``external_findings`` is set on the bundle.
"""

import re
import logging
from typing import Dict, List, Optional

from ...integrations.model_router import generation_config
from ..persona import PersonaProfile
from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag, LLMError
from .base import BaseHandler

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://\S+", re.IGNORECASE)


def strip_urls(text: str) -> str:
    """Remove every http(s) URL and tidy the leftover spacing."""
    text = URL_PATTERN.sub("", text or "")
    text = re.sub(r"[ \t]{2,}", " ", text)
    text = re.sub(r"[ \t]+([.,!?])", r"\1", text)
    return re.sub(r"\n{3,}", "\n\n", text).strip()


class ChatHandler(BaseHandler):
    """Free-form persona conversation."""

    tag = HandlerTag.CHAT
    description = "LLM chat in the persona's voice"

    def __init__(self, llm, persona: PersonaProfile, safety_prompt=None, timeout: float = 15.0):
        """Initialize chat handler.

        Args:
            llm: LLMClient (or anything with the same ``generate``)
            persona: Persona profile that builds the system prompt
            safety_prompt: Callable returning the current safety-rules block
            timeout: Per-model LLM timeout in seconds
        """
        self.llm = llm
        self.persona = persona
        self.safety_prompt = safety_prompt
        self.timeout = timeout

    @staticmethod
    def build_turns(bundle: ContextBundle) -> List[Dict[str, str]]:
        turns = [{"role": t.role, "content": t.content} for t in bundle.history if t.content]
        # The current message closes the conversation
        if not turns or turns[-1]["role"] != "user" or turns[-1]["content"] != bundle.text:
            turns.append({"role": "user", "content": bundle.text})
        return turns

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        safety = self.safety_prompt() if self.safety_prompt else ""
        system = self.persona.build_system_prompt(bundle, safety)
        config = generation_config(bundle.annotations, bundle.is_group, bool(bundle.external_findings))

        try:
            text = await self.llm.generate(system, self.build_turns(bundle), config, timeout=self.timeout)
        except LLMError as e:
            raise HandlerError(f"chat failed: {e}") from e

        # No findings means no links in the reply
        if not bundle.external_findings:
            text = strip_urls(text)
        if not text:
            raise HandlerError("chat reply empty after URL removal")

        return self.result(
            text,
            intent=bundle.annotations.intent,
            emotion=bundle.annotations.emotion,
        )
