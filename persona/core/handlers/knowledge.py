"""Knowledge handler: offline persona facts as findings."""

import logging
from typing import Optional

from ..persona import PersonaProfile
from ..types import ContextBundle, HandlerResult, HandlerTag
from .base import BaseHandler

logger = logging.getLogger(__name__)


class KnowledgeHandler(BaseHandler):
    """Answer questions about the persona from configured facts."""

    tag = HandlerTag.KNOWLEDGE
    description = "Persona facts from the knowledge base and profile"

    def __init__(self, persona: PersonaProfile):
        self.persona = persona

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        # Keyword knowledge base first, only on two or more pattern hits
        answer = self.persona.match_knowledge(bundle.text)
        if answer:
            logger.info("📚 Knowledge base match")
            return self.result(f"Known fact: {answer}")

        fact = self.persona.profile_fact(bundle.annotations.intent)
        if fact:
            return self.result(f"Known fact: {fact}")
        return None
