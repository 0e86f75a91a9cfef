"""Social handler: help, spam, birthday, festival and human-request replies."""

import re
import random
import logging
from typing import List, Optional

from ..persona import PersonaProfile
from ..types import ContextBundle, HandlerResult, HandlerTag
from .base import BaseHandler

logger = logging.getLogger(__name__)

THIN_SEP = "─────────────────────"

HELP_PATTERN = re.compile(
    r"^\s*(help|commands|features|what can you do|what all can you do|how (do i|to) use (you|this))\s*\??\s*$",
    re.IGNORECASE,
)

SPAM_VARIANTS = ["nah I'm good yarr 😂", "lol pass", "not interested yarr", "sorry yarr, not clicking any links 😅"]
BIRTHDAY_VARIANTS = [
    "ayy thanks yarr! 🎂 means a lot!",
    "thanks yarr! 🎉 appreciate it!",
    "haha thanks a lot yarr! 🥳",
    "thank youu yarr! 🎂✨",
]
FESTIVAL_VARIANTS = ["same to you! ✨ enjoy the day!", "thanks! same to you too! 🎉", "happy celebrations! ✨🙏"]
HUMAN_REQUEST_VARIANTS = [
    "got it yarr! I'll check and get back when I'm free 📱",
    "noted yarr! will reply properly soon 🙏",
    "acha yarr, let me get back to you on this",
]


def help_message(persona_name: str) -> str:
    return (
        f"🤖 *Hey yarr! Here's what I can do:*\n{THIN_SEP}\n\n"
        "💬 *Chat* — Just text me anything\n\n"
        "🔍 *Search* — Say \"search <topic>\" or \"google <topic>\"\n\n"
        "📹 *YouTube* — Say \"youtube <topic>\" or \"yt <topic>\" to find videos\n\n"
        "🌐 *Translate* — Say \"translate <text> to <language>\"\n\n"
        "📝 *Todo* — Say \"add todo <task>\" or \"show my todos\"\n\n"
        "⏰ *Reminder* — Say \"remind me in <time> to <task>\"\n\n"
        "📋 *Summarize* — Say \"summarize our chat\"\n\n"
        "👁️ *Image Analysis* — Send an image (tag @bot in groups)\n\n"
        "🔗 *Link Preview* — Send any link for a quick preview\n\n"
        f"❓ *About Me* — Ask \"who is {persona_name}\" or \"what do you do\"\n\n"
        f"{THIN_SEP}\n💡 _In groups, tag me with @bot or reply to my message!_"
    )


class SocialHandler(BaseHandler):
    """Quick canned social replies; None for anything else."""

    tag = HandlerTag.SOCIAL
    description = "Help, spam, birthday, festival and human-request replies"

    def __init__(self, persona: PersonaProfile, rng: Optional[random.Random] = None):
        self.persona = persona
        self.rng = rng or random.Random()

    def _pick(self, variants: List[str]) -> str:
        return self.rng.choice(variants)

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        text = (bundle.text or "").strip()
        intent = bundle.annotations.intent

        if HELP_PATTERN.match(text):
            return self.result(help_message(self.persona.name))

        if intent == "spam":
            # Spam in groups gets no reply at all
            if bundle.is_group:
                return None
            return self.result(self._pick(SPAM_VARIANTS), is_quick_response=True)

        if intent == "birthday":
            return self.result(self._pick(BIRTHDAY_VARIANTS), is_quick_response=True)

        if intent == "festival":
            lowered = text.lower()
            for fest in self.persona.festivals:
                name = str(fest.get("name", "")).lower()
                if name and name in lowered and fest.get("greeting"):
                    return self.result(fest["greeting"], is_quick_response=True)
            return self.result(self._pick(FESTIVAL_VARIANTS), is_quick_response=True)

        if intent == "human_request":
            return self.result(self._pick(HUMAN_REQUEST_VARIANTS), is_quick_response=True)

        return None
