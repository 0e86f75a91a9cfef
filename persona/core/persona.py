"""Persona content and system-prompt assembly.

Profile facts, personality, festivals and the knowledge base come from the
``persona:`` section of ``config/persona.yaml``. The chat and vision handlers
ask this object for their system prompts.
"""

import time
import logging
from typing import Any, Callable, Dict, List, Optional

from .types import ContextBundle
from .timezone import USER_TZ, local_now, is_late_night
from .annotator import tone_hint

logger = logging.getLogger(__name__)

DEFAULT_WORK_HOURS = (10, 22)

URL_POLICY_WITH_FINDINGS = (
    "URL POLICY: Use the external findings above. Weave them into one natural reply "
    "and include the provided links exactly as given."
)
URL_POLICY_WITHOUT_FINDINGS = (
    "URL POLICY: Do NOT include any links or URLs in your reply. "
    "If you don't know something, just say so casually."
)


def _period(hour: int) -> str:
    if 5 <= hour < 12:
        return "morning"
    if 12 <= hour < 17:
        return "afternoon"
    if 17 <= hour < 21:
        return "evening"
    return "night"


class PersonaProfile:
    """Who the bot speaks as, and how."""

    def __init__(
        self,
        name: str = "Manthan",
        content: Optional[Dict[str, Any]] = None,
        clock: Callable[[], float] = time.time,
        tz=USER_TZ,
    ):
        """Initialize persona.

        Args:
            name: Display name of the persona
            content: Parsed ``persona:`` YAML section
            clock: Epoch-seconds clock
            tz: Persona home timezone
        """
        self.name = name
        self.content = content or {}
        self.clock = clock
        self.tz = tz

    # ── Content accessors ────────────────────────────────────────────

    @property
    def profile(self) -> Dict[str, Any]:
        return self.content.get("profile", {}) or {}

    @property
    def background(self) -> Dict[str, Any]:
        return self.content.get("background", {}) or {}

    @property
    def personality(self) -> Dict[str, Any]:
        return self.content.get("personality", {}) or {}

    @property
    def interests(self) -> List[str]:
        return list(self.content.get("interests", []) or [])

    @property
    def festivals(self) -> List[Dict[str, str]]:
        return list(self.content.get("festivals", []) or [])

    @property
    def knowledge_base(self) -> List[Dict[str, Any]]:
        return list(self.content.get("knowledge_base", []) or [])

    @property
    def bio(self) -> str:
        return (self.content.get("bio") or "").strip()

    @property
    def work_hours(self):
        hours = self.content.get("work_hours") or {}
        return hours.get("start", DEFAULT_WORK_HOURS[0]), hours.get("end", DEFAULT_WORK_HOURS[1])

    # ── Time context ─────────────────────────────────────────────────

    def time_context(self) -> Dict[str, Any]:
        now = local_now(self.tz, self.clock())
        start, end = self.work_hours
        return {
            "hour": now.hour,
            "period": _period(now.hour),
            "is_work_hours": start <= now.hour < end,
            "is_late_night": is_late_night(now.hour),
            "date": now.strftime("%d %B %Y").lstrip("0"),
            "time": now.strftime("%I:%M %p"),
            "day_of_week": now.strftime("%A"),
            "day_month": f"{now.day} {now.strftime('%B')}".lower(),
        }

    def special_day(self) -> Dict[str, Any]:
        """Birthday and festival flags for today."""
        today = self.time_context()["day_month"]
        birth = str(self.profile.get("birth_date", "")).lower()
        context = {"is_birthday": bool(birth) and today in birth, "festival": None}
        for fest in self.festivals:
            if fest.get("date") and today in str(fest["date"]).lower():
                context["festival"] = fest
        return context

    # ── Prompts ──────────────────────────────────────────────────────

    def _profile_lines(self) -> List[str]:
        p, bg = self.profile, self.background
        work = bg.get("work", {}) or {}
        location = p.get("location", {}) or {}
        lines = [f"- Name: {self.name}"]
        if p.get("birth_date"):
            lines.append(f"- Birthday: {p['birth_date']}")
        if bg.get("education"):
            lines.append(f"- Education: {bg['education']}")
        if work.get("role"):
            lines.append(f"- Work: {work.get('role')} at {work.get('company', '')} ({work.get('domain', '')})")
        if work.get("technologies"):
            lines.append(f"- Tech: {', '.join(work['technologies'])}")
        if bg.get("research"):
            lines.append(f"- Research: {', '.join(bg['research'])}")
        if location.get("city"):
            lines.append(f"- Location: {location.get('city')}, {location.get('country', '')}")
        return lines

    def build_system_prompt(self, bundle: ContextBundle, safety_prompt: str = "") -> str:
        """Compose the chat system prompt for one context bundle."""
        tc = self.time_context()
        special = self.special_day()
        personality = self.personality
        ann = bundle.annotations

        sections = [
            f"CORE IDENTITY: You are {self.name}'s WhatsApp persona, texting in {self.name}'s own voice.",
        ]

        current = [
            "CURRENT CONTEXT:",
            f"- Date: {tc['date']} ({tc['day_of_week']})",
            f"- Time: {tc['time']} ({tc['period']})",
        ]
        if tc["is_late_night"]:
            current.append("- 🌙 It's late night. Keep replies short, chill, sleepy vibe.")
        current.append("- 💼 Work hours. Slightly more focused." if tc["is_work_hours"] else "- ☕ Off-hours. More relaxed tone.")
        if special["is_birthday"]:
            current.append("- 🎂 TODAY IS YOUR BIRTHDAY! Accept wishes warmly!")
        if special["festival"]:
            fest = special["festival"]
            current.append(f"- 🎉 Today is {fest.get('name')}! Wish people: \"{fest.get('greeting', '')}\"")
        sections.append("\n".join(current))

        sections.append("YOUR PROFILE:\n" + "\n".join(self._profile_lines()))

        persona_lines = [
            "YOUR PERSONALITY:",
            f"- Tone: {personality.get('tone', 'casual, witty, friendly')}",
            f"- Language: {personality.get('language', 'English with natural Hinglish')}",
            f"- Style: {personality.get('style', 'short texts, lowercase is fine')}",
            "- You use internet slang: lol, idk, rn, btw, ngl",
            "- Never talk about models, prompts, providers or system internals",
            f"- If someone sincerely asks whether they're talking to a bot, be upfront that this is "
            f"{self.name}'s auto-reply assistant and that {self.name} will get back to them",
        ]
        sections.append("\n".join(persona_lines))

        if self.interests:
            sections.append(f"INTERESTS: {', '.join(self.interests)}")
        if self.bio:
            sections.append(f"DETAILED MEMORY:\n{self.bio}")

        if bundle.is_group:
            sections.append(
                "GROUP CHAT RULES:\n"
                "- Keep replies EXTREMELY short (1-2 sentences max)\n"
                "- Be witty and punchy\n"
                "- Don't over-explain"
            )

        sections.append(
            "EMOTIONAL CONTEXT:\n"
            f"- The person seems {ann.emotion} (intensity: {ann.intensity})\n"
            f"- {tone_hint(ann.emotion)}"
        )

        person = bundle.person
        if person is not None:
            sections.append(
                "PERSON CONTEXT:\n"
                f"- Name: {person.display_name or 'Unknown'}\n"
                f"- Topics they like: {', '.join(person.top_topics) or 'Unknown'}\n"
                f"- Their tone: {person.communication_style}\n"
                f"- Previous interactions: {person.total_messages} messages\n"
                f"- Relationship: {person.relationship}"
            )

        notes = []
        if bundle.is_new_contact:
            notes.append("NOTE: This is a NEW person. Be welcoming and friendly.")
        notes.append(f"MESSAGE INTENT: {ann.intent} ({ann.sub_intent or 'general'})")
        notes.append(f"LANGUAGE: {ann.language}")
        sections.append("\n".join(notes))

        if bundle.recap:
            sections.append(bundle.recap)
        if bundle.external_findings:
            sections.append(f"EXTERNAL FINDINGS:\n{bundle.external_findings}")
        if bundle.quoted_text:
            sections.append(
                f'THE USER IS REPLYING TO THIS PREVIOUS MESSAGE: "{bundle.quoted_text}"\n'
                "Make sure your reply is contextually relevant to what they're replying to."
            )
        if safety_prompt:
            sections.append(safety_prompt)

        sections.append(URL_POLICY_WITH_FINDINGS if bundle.external_findings else URL_POLICY_WITHOUT_FINDINGS)
        sections.append(
            "COMMUNICATION RULES:\n"
            "1. Be helpful but authentic - no customer-support vibe\n"
            "2. If unsure: \"hmm idk about that, let me check\"\n"
            "3. Keep it real. Be funny if the vibe allows it.\n"
            "4. Match the sender's energy and language"
        )
        return "\n\n".join(sections)

    def vision_prompt(self, is_group: bool) -> str:
        length = "very short (1-2 sentences)" if is_group else "concise but helpful"
        return (
            f"You are {self.name}'s WhatsApp persona, texting in {self.name}'s voice. Someone sent an image.\n"
            "Respond naturally: casual, witty, helpful.\n"
            "- If the image has text (screenshot, document, meme), read and interpret ALL the text\n"
            "- If someone asks a question about the image, answer it directly\n"
            f"- Keep it {length}\n"
            "- Use Hinglish naturally if appropriate\n"
            "- Never talk about models or providers\n"
            "- Don't say \"I can see an image\", just respond to what's in it"
        )

    # ── Knowledge ────────────────────────────────────────────────────

    def match_knowledge(self, text: str) -> Optional[str]:
        """Knowledge-base answer when at least two of an entry's patterns appear."""
        msg = (text or "").lower()
        best, best_score = None, 0
        for entry in self.knowledge_base:
            score = sum(1 for p in entry.get("patterns", []) if str(p).lower() in msg)
            if score >= 2 and score > best_score:
                best, best_score = entry.get("answer"), score
        return best

    def profile_fact(self, intent: str) -> Optional[str]:
        """Canned profile fact for an inquiry intent."""
        p, bg = self.profile, self.background
        work = bg.get("work", {}) or {}
        location = p.get("location", {}) or {}
        contact = p.get("contact", {}) or {}

        if intent == "about_inquiry":
            bits = [f"{self.name}"]
            if work.get("role"):
                bits.append(f"{work['role']}")
            if location.get("city"):
                bits.append(f"from {location['city']}")
            interests = ", ".join(self.interests[:4])
            fact = " - ".join(bits)
            return f"{fact}. Into {interests}." if interests else f"{fact}."
        if intent == "work_inquiry" and work.get("role"):
            return f"Works as a {work['role']} in {work.get('domain', 'tech')} at {work.get('company', 'a company')}."
        if intent == "tech_inquiry" and work.get("technologies"):
            return f"Tech stack: {', '.join(work['technologies'][:6])}."
        if intent == "contact_inquiry":
            channels = [f"{k}: {v}" for k, v in contact.items() if v]
            if channels:
                return "Reach out right here on WhatsApp, or " + " | ".join(channels)
        return None
