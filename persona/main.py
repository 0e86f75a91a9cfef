"""Main entry point for the persona bot."""

import asyncio
import logging
import random
import sys
from pathlib import Path
from zoneinfo import ZoneInfo

from . import __version__
from .channels.meta_whatsapp_channel import MetaWhatsAppChannel
from .core.analytics import Analytics
from .core.config import load_config
from .core.delivery import Delivery
from .core.handlers import (
    ChatHandler,
    FallbackChain,
    HandlerRegistry,
    KnowledgeHandler,
    LinkHandler,
    ReminderBook,
    ReminderHandler,
    SearchHandler,
    SocialHandler,
    SummarizeHandler,
    TodoHandler,
    TranslateHandler,
    VisionHandler,
    YouTubeHandler,
)
from .core.humanizer import Humanizer
from .core.memory import MemoryStore, Summarizer
from .core.owner_control import AutoReplyState, OwnerCommands, OwnerTakeover
from .core.persona import PersonaProfile
from .core.pipeline import PersonaPipeline
from .core.scheduler import MaintenanceLoop, ReminderScheduler
from .core.security.audit_logger import AuditLogger
from .core.security.safety_filter import SafetyFilter
from .core.trigger_gate import TriggerGate
from .core.types import HandlerTag, PersonaConfig
from .core.voice import VoiceEngine
from .integrations.llm_client import LLMClient
from .utils.webhook_server import WebhookServer

logger = logging.getLogger(__name__)


def build_registry(config: PersonaConfig, llm, persona, memory, summarizer, book, rng) -> HandlerRegistry:
    registry = HandlerRegistry()
    registry.register(ChatHandler(llm, persona, safety_prompt=memory.get_safety_prompt, timeout=config.llm_timeout_seconds))
    registry.register(SearchHandler(timeout=config.search_timeout_seconds))
    registry.register(YouTubeHandler(api_key=config.youtube_api_key, timeout=config.search_timeout_seconds))
    registry.register(KnowledgeHandler(persona))
    registry.register(LinkHandler(timeout=config.link_timeout_seconds))
    registry.register(TranslateHandler(llm, timeout=config.llm_timeout_seconds))
    registry.register(TodoHandler(memory, rng))
    registry.register(ReminderHandler(book))
    registry.register(SummarizeHandler(memory, summarizer))
    registry.register(SocialHandler(persona, rng))
    registry.register(VisionHandler(llm, persona, timeout=config.vision_timeout_seconds))
    return registry


async def main():
    """Main entry point for the persona bot."""
    logger.info("Loading configuration...")
    config = load_config()
    logging.getLogger().setLevel(config.log_level.upper())

    logger.info(f"🤖 Persona bot v{__version__} as {config.persona_name}")
    tz = ZoneInfo(config.timezone)
    rng = random.Random()

    llm = LLMClient(config.gemini_api_key, config.chat_models, timeout=config.llm_timeout_seconds)
    persona = PersonaProfile(config.persona_name, config.persona, tz=tz)
    summarizer = Summarizer(llm, config.persona_name)

    logger.info("🧠 Opening memory...")
    memory = MemoryStore(
        config.memory_db_path,
        retention_days=config.retention_days,
        summarizer=summarizer,
        recap_threshold=config.recap_threshold,
        persona_name=config.persona_name,
    )

    audit_logger = AuditLogger(config.audit_log_path)
    analytics = Analytics(tz=tz)
    takeover = OwnerTakeover(config.silence_window_seconds, config.takeover_gc_seconds)
    auto_reply = AutoReplyState()
    book = ReminderBook(config.data_dir, tz=tz)
    voice = VoiceEngine(str(Path(config.data_dir) / "temp"), timeout=config.tts_timeout_seconds)

    channel = MetaWhatsAppChannel(
        api_token=config.whatsapp_api_token,
        phone_number_id=config.whatsapp_phone_number_id,
        verify_token=config.whatsapp_verify_token,
    )
    registry = build_registry(config, llm, persona, memory, summarizer, book, rng)

    pipeline = PersonaPipeline(
        memory=memory,
        registry=registry,
        fallback=FallbackChain(registry, rng),
        trigger_gate=TriggerGate(config.bot_id or channel.bot_id, config.bot_aliases),
        takeover=takeover,
        auto_reply=auto_reply,
        owner_commands=OwnerCommands(takeover, auto_reply, memory, analytics, audit_logger),
        safety=SafetyFilter(audit_logger),
        humanizer=Humanizer(
            config.max_group_reply,
            config.typing_base_ms,
            config.typing_per_char_ms,
            config.typing_max_ms,
            rng=rng,
            tz=tz,
        ),
        delivery=Delivery(channel),
        analytics=analytics,
        voice=voice,
        owner_id=config.owner_id,
        history_limit_direct=config.history_limit_direct,
        history_limit_group=config.history_limit_group,
    )
    channel.pipeline = pipeline

    maintenance = MaintenanceLoop(
        memory,
        takeover,
        voice=voice,
        caches=[registry.get_handler(HandlerTag.SEARCH).cache, registry.get_handler(HandlerTag.LINK).cache],
        flush_interval=config.flush_interval_seconds,
    )
    scheduler = ReminderScheduler(book, channel)
    server = WebhookServer(analytics, channel, config.server_host, config.server_port)

    logger.info(f"✅ Handlers: {', '.join(registry.list_handlers())}")
    if not llm.enabled:
        logger.warning("⚠️  GEMINI_API_KEY not set: chat, vision and translate will use fallbacks")

    tasks = [
        asyncio.create_task(pipeline.run()),
        asyncio.create_task(scheduler.start()),
        asyncio.create_task(maintenance.start()),
        asyncio.create_task(server.start()),
    ]
    try:
        # Server exit (signal) ends the process
        await tasks[-1]
    finally:
        logger.info("👋 Shutting down gracefully...")
        for task in tasks:
            task.cancel()
        maintenance.shutdown()
        memory.close()


def run():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    run()
