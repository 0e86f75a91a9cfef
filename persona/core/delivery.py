"""Delivery: play a DeliveryPlan onto the transport with typing presence."""

import asyncio
import logging
from typing import Awaitable, Callable, List

from .types import DeliveryPart, DeliveryPlan, Presence

logger = logging.getLogger(__name__)

GROUP_FAILURE_TEXT = "bruh my brain just crashed 😅"
DIRECT_FAILURE_TEXT = "hey sorry, had a brain freeze moment 😅 text me again?"


class Delivery:
    """Sends plan parts in order, with presence before each part and after the last."""

    def __init__(self, transport, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        """Initialize delivery.

        Args:
            transport: Transport implementation
            sleep: Awaitable sleep, swapped out in tests
        """
        self.transport = transport
        self.sleep = sleep

    async def _send_body(self, chat_id: str, part: DeliveryPart):
        if part.image:
            await self.transport.send_image(chat_id, part.image, caption=part.text or None, mime=part.image_mime or "image/jpeg")
        elif part.text:
            await self.transport.send_text(chat_id, part.text)

    async def deliver(self, chat_id: str, plan: DeliveryPlan, is_group: bool = False, trace: str = "") -> List[DeliveryPart]:
        """Deliver every part of ``plan``.

        A part counts as sent once its text or image went out. The fallback
        text is only used when nothing reached the user.

        Returns:
            The parts the user actually received, in order; empty when the
            fallback text was used or the envelope was abandoned
        """
        sent: List[DeliveryPart] = []
        try:
            for part in plan.parts:
                await self.transport.set_presence(chat_id, Presence.COMPOSING)
                await self.sleep(part.delay_ms / 1000)
                await self._send_body(chat_id, part)
                sent.append(part)
                if part.audio:
                    await self.transport.send_audio(chat_id, part.audio, mime=part.audio_mime or "audio/mpeg", ptt=True)
            await self.transport.set_presence(chat_id, Presence.PAUSED)
            logger.info(f"[{trace}] 📤 Delivered {len(plan.parts)} part(s) to {chat_id}")
            return sent
        except Exception as e:
            logger.error(f"[{trace}] Delivery to {chat_id} failed after {len(sent)} part(s): {e}")

        if sent:
            # Part of the answer is out, no failure notice
            try:
                await self.transport.set_presence(chat_id, Presence.PAUSED)
            except Exception as e:
                logger.debug(f"[{trace}] Presence reset failed: {e}")
            return sent

        fallback = GROUP_FAILURE_TEXT if is_group else DIRECT_FAILURE_TEXT
        try:
            await self.transport.send_text(chat_id, fallback)
        except Exception as e:
            logger.error(f"[{trace}] 🚨 Fallback delivery to {chat_id} failed, abandoning: {e}")
        return []
