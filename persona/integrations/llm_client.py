"""LLM client via LiteLLM for the persona handlers.

Used for:
- Chat replies (system prompt + recent turns)
- Vision replies (inline image)
- Translation and conversation summaries

Models are tried in order; rate limits are retried with exponential back-off
before moving on to the next model.
"""

import os
import base64
import asyncio
import logging
from typing import List, Dict, Any, Optional

from ..core.types import GenerationConfig, LLMError

logger = logging.getLogger(__name__)

# Errors that will not go away by retrying; logged once per process
_PERSISTENT_MARKERS = ("api key", "api_key", "permission", "unauthorized", "401", "403", "quota")


class LLMClient:
    """LiteLLM-based client with an ordered model fallback list."""

    def __init__(
        self,
        api_key: str,
        models: List[str],
        timeout: float = 15.0,
        max_retries: int = 2,
        base_delay: float = 2.0,
    ):
        """Initialize LiteLLM client.

        Args:
            api_key: Google AI API key
            models: LiteLLM model strings, tried in order
            timeout: Per-model timeout in seconds
            max_retries: Rate-limit retries per model
            base_delay: First back-off delay in seconds
        """
        self.api_key = api_key
        self.models = list(models)
        self.timeout = timeout
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.enabled = bool(api_key)
        self._reported: set = set()

        if self.enabled:
            os.environ["GEMINI_API_KEY"] = api_key
            logger.info(f"✨ LiteLLM client initialized ({', '.join(self.models)})")
        else:
            logger.info("LiteLLM client disabled (no GEMINI_API_KEY)")

    @staticmethod
    def build_messages(
        system: Optional[str],
        turns: List[Dict[str, str]],
        image: Optional[bytes] = None,
        image_mime: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Convert (system, turns, image) into OpenAI/LiteLLM messages.

        The image, when given, is attached inline to the last user turn.
        """
        messages: List[Dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})

        for turn in turns:
            role = "assistant" if turn.get("role") in ("assistant", "model") else "user"
            messages.append({"role": role, "content": turn.get("content", "")})

        if image:
            encoded = base64.b64encode(image).decode("ascii")
            mime = image_mime or "image/jpeg"
            caption = ""
            if messages and messages[-1]["role"] == "user":
                caption = messages.pop()["content"]
            messages.append({
                "role": "user",
                "content": [
                    {"type": "text", "text": caption or "What's in this image?"},
                    {"type": "image_url", "image_url": {"url": f"data:{mime};base64,{encoded}"}},
                ],
            })
        return messages

    def _report(self, model: str, error: Exception):
        """Log persistent provider errors once per process, everything else every time."""
        text = str(error).lower()
        if any(marker in text for marker in _PERSISTENT_MARKERS):
            key = (model, type(error).__name__)
            if key in self._reported:
                logger.debug(f"LLM persistent error again ({model}): {error}")
                return
            self._reported.add(key)
        logger.warning(f"LLM call failed ({model}): {error}")

    async def generate(
        self,
        system: Optional[str],
        turns: List[Dict[str, str]],
        config: Optional[GenerationConfig] = None,
        image: Optional[bytes] = None,
        image_mime: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Generate a completion, walking the model list.

        Args:
            system: System prompt
            turns: Ordered ``{"role", "content"}`` turns, oldest first
            config: Sampling parameters
            image: Optional inline image bytes
            image_mime: MIME type of ``image``
            timeout: Per-model timeout override

        Returns:
            Stripped completion text

        Raises:
            LLMError: When no key is configured or every model failed
        """
        if not self.enabled:
            raise LLMError("LLM not configured")

        import litellm
        litellm.suppress_debug_info = True
        from litellm.exceptions import RateLimitError

        config = config or GenerationConfig()
        timeout = timeout or self.timeout
        messages = self.build_messages(system, turns, image, image_mime)
        last_error: Optional[Exception] = None

        for model in self.models:
            call_kwargs = {
                "model": model,
                "messages": messages,
                "temperature": config.temperature,
                "top_p": config.top_p,
                "top_k": config.top_k,
                "max_tokens": config.max_output_tokens,
                "api_key": self.api_key,
                "timeout": timeout,
            }

            for attempt in range(self.max_retries + 1):
                try:
                    response = await asyncio.wait_for(litellm.acompletion(**call_kwargs), timeout=timeout)
                    text = (response.choices[0].message.content or "").strip()
                    if text:
                        logger.debug(f"LLM ({model}): {len(text)} chars")
                        return text
                    last_error = LLMError(f"{model} returned empty text")
                    break
                except asyncio.TimeoutError as e:
                    last_error = e
                    logger.warning(f"LLM timeout after {timeout}s ({model})")
                    break
                except Exception as e:
                    last_error = e
                    is_rate_limit = "429" in str(e) or "Resource exhausted" in str(e) or isinstance(e, RateLimitError)
                    if is_rate_limit and attempt < self.max_retries:
                        delay = self.base_delay * (2 ** attempt)
                        logger.warning(f"LLM rate limit ({model}). Retrying in {delay}s... (Attempt {attempt+1}/{self.max_retries})")
                        await asyncio.sleep(delay)
                        continue
                    self._report(model, e)
                    break

        raise LLMError(f"All models failed: {last_error}")
