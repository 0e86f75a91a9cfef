"""Configuration loader for the persona bot."""

import os
import yaml
from pathlib import Path
from dotenv import load_dotenv
from .types import PersonaConfig


def _split_list(value, default):
    """Accept a YAML list or a comma-separated env string."""
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


def load_config(env_file: str = ".env", config_file: str = "config/persona.yaml") -> PersonaConfig:
    """Load configuration from environment and yaml files.

    Args:
        env_file: Path to .env file
        config_file: Path to persona.yaml config file

    Returns:
        PersonaConfig instance with all settings
    """
    # Load environment variables
    load_dotenv(env_file)

    # Load YAML config if exists
    yaml_config = {}
    if Path(config_file).exists():
        with open(config_file, 'r', encoding='utf-8') as f:
            try:
                yaml_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(yaml_config, dict):
        raise ValueError(f"{config_file} must contain a mapping at the top level")

    defaults = PersonaConfig()
    llm_config = yaml_config.get("llm", {})
    identity_config = yaml_config.get("identity", {})
    pipeline_config = yaml_config.get("pipeline", {})
    storage_config = yaml_config.get("storage", {})
    providers_config = yaml_config.get("providers", {})
    server_config = yaml_config.get("server", {})

    data_dir = os.getenv("DATA_DIR", storage_config.get("data_dir", defaults.data_dir))

    config = PersonaConfig(
        # LLM (Gemini via LiteLLM)
        gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
        chat_models=_split_list(os.getenv("CHAT_MODELS", llm_config.get("models")), defaults.chat_models),
        llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", llm_config.get("timeout_seconds", defaults.llm_timeout_seconds))),
        vision_timeout_seconds=float(os.getenv("VISION_TIMEOUT_SECONDS", llm_config.get("vision_timeout_seconds", defaults.vision_timeout_seconds))),

        # Identity
        persona_name=os.getenv("PERSONA_NAME", identity_config.get("name", defaults.persona_name)),
        bot_aliases=_split_list(os.getenv("BOT_ALIASES", identity_config.get("aliases")), defaults.bot_aliases),
        bot_id=os.getenv("BOT_ID", identity_config.get("bot_id")),
        owner_id=os.getenv("OWNER_ID", identity_config.get("owner_id")),
        timezone=os.getenv("PERSONA_TIMEZONE", identity_config.get("timezone", defaults.timezone)),

        # Pipeline
        silence_window_seconds=float(os.getenv("SILENCE_WINDOW_SECONDS", pipeline_config.get("silence_window_seconds", defaults.silence_window_seconds))),
        takeover_gc_seconds=float(pipeline_config.get("takeover_gc_seconds", defaults.takeover_gc_seconds)),
        max_group_reply=int(os.getenv("MAX_GROUP_REPLY", pipeline_config.get("max_group_reply", defaults.max_group_reply))),
        typing_base_ms=int(pipeline_config.get("typing_base_ms", defaults.typing_base_ms)),
        typing_per_char_ms=int(pipeline_config.get("typing_per_char_ms", defaults.typing_per_char_ms)),
        typing_max_ms=int(pipeline_config.get("typing_max_ms", defaults.typing_max_ms)),
        recap_threshold=int(pipeline_config.get("recap_threshold", defaults.recap_threshold)),
        history_limit_direct=int(pipeline_config.get("history_limit_direct", defaults.history_limit_direct)),
        history_limit_group=int(pipeline_config.get("history_limit_group", defaults.history_limit_group)),

        # Storage
        data_dir=data_dir,
        memory_db_path=os.getenv("MEMORY_DB_PATH", storage_config.get("memory_db_path", str(Path(data_dir) / "memory.db"))),
        flush_interval_seconds=int(storage_config.get("flush_interval_seconds", defaults.flush_interval_seconds)),
        retention_days=int(storage_config.get("retention_days", defaults.retention_days)),

        # Providers
        youtube_api_key=os.getenv("YOUTUBE_API_KEY", providers_config.get("youtube_api_key")),
        search_timeout_seconds=float(providers_config.get("search_timeout_seconds", defaults.search_timeout_seconds)),
        link_timeout_seconds=float(providers_config.get("link_timeout_seconds", defaults.link_timeout_seconds)),
        tts_timeout_seconds=float(providers_config.get("tts_timeout_seconds", defaults.tts_timeout_seconds)),

        # Meta WhatsApp
        whatsapp_api_token=os.getenv("WHATSAPP_API_TOKEN"),
        whatsapp_phone_number_id=os.getenv("WHATSAPP_PHONE_NUMBER_ID"),
        whatsapp_verify_token=os.getenv("WHATSAPP_VERIFY_TOKEN"),

        # Webhook server
        server_host=os.getenv("SERVER_HOST", server_config.get("host", defaults.server_host)),
        server_port=int(os.getenv("SERVER_PORT", server_config.get("port", defaults.server_port))),

        # Logging
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        audit_log_path=os.getenv("AUDIT_LOG_PATH", defaults.audit_log_path),

        # Persona content
        persona=yaml_config.get("persona", {}) or {},
    )

    if config.silence_window_seconds <= 0:
        raise ValueError("silence_window_seconds must be positive")

    return config
