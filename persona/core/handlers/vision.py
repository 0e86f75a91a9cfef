"""Vision handler: images (with optional caption) through the multimodal LLM."""

import logging
from typing import Optional

from ...integrations.model_router import vision_config
from ..persona import PersonaProfile
from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag, LLMError
from .base import BaseHandler

logger = logging.getLogger(__name__)

ANALYZE_PROMPT = (
    "Analyze this image thoroughly. If it contains text, read ALL the text (OCR). "
    "If it's a meme, explain the humor. If it's a screenshot, describe what's shown. "
    "If it's a photo, describe what you see. Be natural and conversational."
)
EMPTY_IMAGE = "couldn't read that image, try sending again? 🤔"


def sniff_mime(data: bytes) -> str:
    """Image MIME type from magic bytes, JPEG when unknown."""
    if data[:2] == b"\xff\xd8":
        return "image/jpeg"
    if data[:4] == b"\x89PNG":
        return "image/png"
    if data[:3] == b"GIF":
        return "image/gif"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"


class VisionHandler(BaseHandler):
    """Respond to an image in the persona's voice."""

    tag = HandlerTag.VISION
    description = "Image understanding (OCR, memes, screenshots, photos)"

    def __init__(self, llm, persona: PersonaProfile, timeout: float = 25.0):
        self.llm = llm
        self.persona = persona
        self.timeout = timeout

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        if not bundle.image:
            return self.result(EMPTY_IMAGE, is_quick_response=True)

        mime = bundle.image_mime or sniff_mime(bundle.image)
        prompt = (bundle.text or "").strip() or ANALYZE_PROMPT
        try:
            text = await self.llm.generate(
                self.persona.vision_prompt(bundle.is_group),
                [{"role": "user", "content": prompt}],
                vision_config(bundle.is_group),
                image=bundle.image,
                image_mime=mime,
                timeout=self.timeout,
            )
        except LLMError as e:
            raise HandlerError(f"vision failed: {e}") from e

        logger.info(f"👁️ Vision analyzed image ({len(bundle.image) / 1024:.1f}KB, {mime})")
        return self.result(text)
