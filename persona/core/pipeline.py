"""Intent-and-context routing pipeline.

One envelope at a time: owner observations, trigger gate, owner takeover,
auto-reply mode, annotation, memory, routing, handler dispatch with the
fallback chain, safety filter, humanizer, delivery and memory commit.
"""

import asyncio
import re
import time
import uuid
import logging
from dataclasses import replace
from typing import Callable, Optional, Tuple

from .annotator import annotate
from .handlers.chat import strip_urls
from .router import route
from .types import (
    FINDINGS_HANDLERS,
    AutoReplyMode,
    ContextBundle,
    DeliveryPlan,
    Envelope,
    HandlerError,
    HandlerResult,
    HandlerTag,
    PersonaError,
)
from .voice import AUDIO_MIME, is_voice_request

logger = logging.getLogger(__name__)

_OWNER_BYPASS = re.compile(r"^\s*@bot\s+", re.IGNORECASE)
# Memory key for the owner when no owner id is configured
OWNER_MEMORY_KEY = "owner"
# Handlers whose own output is made of links
URL_SOURCES = {tag.value for tag in FINDINGS_HANDLERS} | {HandlerTag.LINK.value, HandlerTag.TRANSLATE.value}


class PersonaPipeline:
    """Turns inbound envelopes into delivered, remembered replies."""

    def __init__(
        self,
        memory,
        registry,
        fallback,
        trigger_gate,
        takeover,
        auto_reply,
        owner_commands,
        safety,
        humanizer,
        delivery,
        analytics,
        voice=None,
        owner_id: Optional[str] = None,
        history_limit_direct: int = 10,
        history_limit_group: int = 5,
        clock: Callable[[], float] = time.time,
    ):
        """Wire the pipeline.

        Args:
            memory: MemoryStore
            registry: HandlerRegistry with every handler registered
            fallback: FallbackChain over the same registry
            trigger_gate: TriggerGate for group chats
            takeover: OwnerTakeover silence windows
            auto_reply: AutoReplyState
            owner_commands: OwnerCommands
            safety: SafetyFilter
            humanizer: Humanizer
            delivery: Delivery bound to the transport
            analytics: Analytics sink
            voice: Optional VoiceEngine for voice-note replies
            owner_id: Transport id of the owner, for owner-authored inbounds
            history_limit_direct: Turns of history in direct chats
            history_limit_group: Turns of history in groups
            clock: Wall clock
        """
        self.memory = memory
        self.registry = registry
        self.fallback = fallback
        self.trigger_gate = trigger_gate
        self.takeover = takeover
        self.auto_reply = auto_reply
        self.owner_commands = owner_commands
        self.safety = safety
        self.humanizer = humanizer
        self.delivery = delivery
        self.analytics = analytics
        self.voice = voice
        self.owner_id = owner_id
        self.history_limit_direct = history_limit_direct
        self.history_limit_group = history_limit_group
        self.clock = clock
        self.queue: "asyncio.Queue[Envelope]" = asyncio.Queue()

    # ── Queue ────────────────────────────────────────────────────────

    async def submit(self, envelope: Envelope):
        """Queue an envelope behind everything already received."""
        await self.queue.put(envelope)

    async def run(self):
        """Worker loop: strictly one envelope in flight."""
        logger.info("✅ Pipeline worker started")
        while True:
            envelope = await self.queue.get()
            try:
                await self.process_envelope(envelope)
            except Exception as e:
                logger.error(f"Pipeline crashed on envelope from {envelope.sender_id}: {e}", exc_info=True)
            finally:
                self.queue.task_done()

    # ── Stages ───────────────────────────────────────────────────────

    def _is_owner(self, envelope: Envelope) -> bool:
        if envelope.from_me:
            return True
        author = envelope.author_id or envelope.sender_id
        return bool(self.owner_id) and author == self.owner_id

    async def _handle_owner(self, envelope: Envelope, trace: str) -> bool:
        """Process owner activity. Returns True when the pipeline must halt."""
        text = (envelope.text or "").strip()
        if text.startswith("/"):
            reply = self.owner_commands.handle(text, envelope.sender_id)
            if reply is not None:
                try:
                    await self.delivery.transport.send_text(envelope.sender_id, reply)
                except Exception as e:
                    logger.error(f"[{trace}] Owner command reply failed: {e}")
                return True

        if _OWNER_BYPASS.match(text):
            logger.info(f"[{trace}] 👤 Owner addressed the bot directly")
            return False

        if envelope.from_me:
            self.takeover.update(envelope.sender_id)
            return True
        # Owner writing to the bot's own number is a normal conversation
        return False

    async def _auto_reply(self, envelope: Envelope, trace: str) -> bool:
        """Apply the auto-reply mode. Returns True when the pipeline must halt."""
        mode = self.auto_reply.mode
        if mode == AutoReplyMode.DND:
            logger.info(f"[{trace}] 🔇 DND, ignoring {envelope.sender_id}")
            return True
        if mode in (AutoReplyMode.AWAY, AutoReplyMode.BUSY):
            canned = self.auto_reply.canned_reply()
            plan = self.humanizer.plan(canned, is_group=envelope.is_group)
            await self.delivery.deliver(envelope.sender_id, plan, envelope.is_group, trace)
            self.analytics.record(envelope.sender_id, None, "auto_reply", None)
            logger.info(f"[{trace}] 🌙 Auto-reply ({mode.value}) sent to {envelope.sender_id}")
            return True
        return False

    def _memory_key(self, envelope: Envelope, owner: bool) -> str:
        """Whose memory a message belongs to: the owner's own when they address the bot in a direct chat."""
        if owner and envelope.from_me and not envelope.is_group:
            return self.owner_id or OWNER_MEMORY_KEY
        return envelope.sender_id

    async def _build_bundle(self, envelope: Envelope, text: str, annotations, sender: str) -> ContextBundle:
        """Record the user turn under ``sender`` and assemble the handler input.

        ``sender`` is the memory key; the bundle keeps the chat id, which is
        where replies and reminders go.
        """
        own_chat = sender == envelope.sender_id
        self.memory.put_user_turn(
            sender,
            text,
            annotations,
            envelope.is_group,
            display_name=envelope.display_name if own_chat else None,
            phone=envelope.phone if own_chat else None,
        )
        self.memory.learn_style(sender, text)
        self.memory.record_emotion(sender, annotations.emotion)

        limit = self.history_limit_group if envelope.is_group else self.history_limit_direct
        return ContextBundle(
            sender_id=envelope.sender_id,
            text=text,
            annotations=annotations,
            is_group=envelope.is_group,
            person=self.memory.get_person(sender),
            is_new_contact=self.memory.is_new_contact(sender),
            recap=await self.memory.get_recap(sender),
            quoted_text=envelope.quoted_text,
            image=envelope.image,
            image_mime=envelope.image_mime,
            history=self.memory.recent_turns(sender, limit),
        )

    async def _invoke(self, tag: HandlerTag, bundle: ContextBundle, trace: str) -> Tuple[HandlerResult, bool]:
        """Run the routed handler, composing findings and falling back on failure.

        Returns:
            Tuple of (result, composed) where ``composed`` means the chat
            handler wrote the reply around external findings
        """
        try:
            result = await self.registry.dispatch(tag, bundle)
        except HandlerError as e:
            logger.warning(f"[{trace}] Handler {tag.value} failed: {e}")
            return await self.fallback.run(tag, bundle), False

        if tag not in FINDINGS_HANDLERS:
            return result, False

        findings = result.response
        try:
            composed = await self.registry.dispatch(HandlerTag.CHAT, replace(bundle, external_findings=findings))
            return composed, True
        except HandlerError as e:
            # The findings are still a useful answer on their own
            logger.warning(f"[{trace}] Compose after {tag.value} failed, sending findings: {e}")
            return result, False

    async def _attach_voice(self, plan: DeliveryPlan, result: HandlerResult, user_text: str, trace: str):
        if not self.voice or result.audio or not plan.parts or not is_voice_request(user_text):
            return
        try:
            audio = await self.voice.synthesize(plan.text)
        except PersonaError as e:
            logger.warning(f"[{trace}] Voice reply skipped: {e}")
            return
        plan.parts[0].audio = audio
        plan.parts[0].audio_mime = AUDIO_MIME

    # ── Entry point ──────────────────────────────────────────────────

    async def process_envelope(self, envelope: Envelope) -> Optional[DeliveryPlan]:
        """Run one envelope through every stage.

        Args:
            envelope: Inbound message or owner observation

        Returns:
            The delivered plan, or None when the pipeline halted silently
        """
        trace = uuid.uuid4().hex[:12]
        start = self.clock()
        sender = envelope.sender_id

        if not envelope.has_content():
            logger.debug(f"[{trace}] Empty envelope from {sender}, ignoring")
            return None

        owner = self._is_owner(envelope)
        if owner and await self._handle_owner(envelope, trace):
            return None

        text = self.trigger_gate.effective_text(envelope)
        if text is None:
            return None
        text = text.strip()
        if not text and not envelope.image:
            return None

        if not owner and self.takeover.is_owner_handling(sender):
            logger.info(f"[{trace}] 👤 Owner handling {sender}, staying silent")
            return None

        if await self._auto_reply(envelope, trace):
            return None

        annotations = annotate(text)
        logger.info(
            f"[{trace}] 📥 {sender}: intent={annotations.intent} emotion={annotations.emotion}/"
            f"{annotations.intensity} lang={annotations.language}"
        )
        memory_key = self._memory_key(envelope, owner)
        bundle = await self._build_bundle(envelope, text, annotations, memory_key)

        if envelope.image:
            tag = HandlerTag.VISION
        elif annotations.intent == "spam" and envelope.is_group:
            logger.info(f"[{trace}] Spam in group {sender}, no reply")
            self.analytics.record(memory_key, annotations.intent, HandlerTag.SOCIAL.value, (self.clock() - start) * 1000)
            return None
        else:
            tag = route(annotations, text)
        logger.info(f"[{trace}] 🧭 Routed to {tag.value}")

        result, composed = await self._invoke(tag, bundle, trace)

        response = result.response
        if not composed and result.source not in URL_SOURCES:
            # Links only ever come from findings or the link-type handlers
            response = strip_urls(response)
        response = self.safety.filter(response, text, annotations.intent, sender)
        response = self.humanizer.humanize(response, envelope.is_group, casual=result.source == HandlerTag.CHAT.value)
        elapsed_ms = (self.clock() - start) * 1000
        plan = self.humanizer.plan(response, result, envelope.is_group, annotations.intent, elapsed_ms)
        await self._attach_voice(plan, result, text, trace)

        sent = await self.delivery.deliver(sender, plan, envelope.is_group, trace)
        if sent:
            self.memory.put_assistant_turn(memory_key, "\n\n".join(p.text for p in sent if p.text), envelope.is_group)

        total_ms = (self.clock() - start) * 1000
        self.analytics.record(memory_key, annotations.intent, tag.value, total_ms)
        logger.info(f"[{trace}] ✅ Done in {total_ms:.0f}ms via {tag.value} (source={result.source})")
        return plan
