"""Generation-config selection for chat replies.

Sampling parameters follow the conversation, not the task:
- Groups get shorter, slightly tamer replies
- Sad or anxious senders get calmer, steadier replies
- Profile questions get factual, lower-temperature replies
- Greetings and small talk get short, playful replies
"""

import logging
from typing import Optional

from ..core.types import Annotations, GenerationConfig

logger = logging.getLogger(__name__)

KNOWLEDGE_INTENTS = ("about_inquiry", "work_inquiry", "tech_inquiry", "contact_inquiry")
CASUAL_INTENTS = ("greeting", "casual")
CALM_EMOTIONS = ("sad", "anxious")

GROUP_MAX_TOKENS = 128
FINDINGS_MIN_TOKENS = 400
VISION_MAX_TOKENS_GROUP = 128
VISION_MAX_TOKENS_DIRECT = 512


def generation_config(
    annotations: Optional[Annotations],
    is_group: bool = False,
    has_findings: bool = False,
) -> GenerationConfig:
    """Pick sampling parameters for one chat call.

    Args:
        annotations: Annotations of the effective text
        is_group: Group chat
        has_findings: External findings are woven into the reply

    Returns:
        GenerationConfig for the LLM call
    """
    config = GenerationConfig()
    ann = annotations or Annotations()

    if is_group:
        config.temperature = 0.75
        config.max_output_tokens = min(config.max_output_tokens, GROUP_MAX_TOKENS)

    if ann.emotion in CALM_EMOTIONS:
        config.temperature = 0.6
        config.max_output_tokens = 200
    elif ann.intent in KNOWLEDGE_INTENTS:
        config.temperature = 0.5
        config.max_output_tokens = 300
    elif ann.intent in CASUAL_INTENTS:
        config.temperature = 0.9
        config.max_output_tokens = 128

    if is_group:
        config.max_output_tokens = min(config.max_output_tokens, GROUP_MAX_TOKENS)

    # Findings need room for titles and links
    if has_findings:
        config.max_output_tokens = max(config.max_output_tokens, FINDINGS_MIN_TOKENS)

    logger.debug(
        f"Generation config: temp={config.temperature} max={config.max_output_tokens} "
        f"(intent={ann.intent}, emotion={ann.emotion}, group={is_group})"
    )
    return config


def vision_config(is_group: bool) -> GenerationConfig:
    return GenerationConfig(
        temperature=0.7,
        top_p=0.9,
        max_output_tokens=VISION_MAX_TOKENS_GROUP if is_group else VISION_MAX_TOKENS_DIRECT,
    )


def translate_config() -> GenerationConfig:
    return GenerationConfig(temperature=0.1, top_p=0.9, max_output_tokens=512)
