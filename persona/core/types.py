"""Type definitions for the persona pipeline."""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Literal
from enum import Enum


class AutoReplyMode(Enum):
    """Process-wide auto-reply mode."""
    ONLINE = "online"
    AWAY = "away"
    DND = "dnd"
    BUSY = "busy"


class HandlerTag(Enum):
    """Handlers the router can select."""
    CHAT = "chat"
    SEARCH = "search"
    YOUTUBE = "youtube"
    KNOWLEDGE = "knowledge"
    LINK = "link"
    TRANSLATE = "translate"
    TODO = "todo"
    REMINDER = "reminder"
    SUMMARIZE = "summarize"
    SOCIAL = "social"
    VISION = "vision"


class Presence(Enum):
    """Typing presence states sent to the transport."""
    COMPOSING = "composing"
    PAUSED = "paused"


# Handlers whose output is findings for the chat handler rather than a reply
FINDINGS_HANDLERS = (HandlerTag.SEARCH, HandlerTag.YOUTUBE, HandlerTag.KNOWLEDGE)


class PersonaError(Exception):
    """Base error for the persona pipeline."""


class HandlerError(PersonaError):
    """A handler could not produce a usable result."""


class LLMError(HandlerError):
    """Every configured model failed for one LLM call."""


@dataclass
class Envelope:
    """A single inbound unit delivered by the transport.

    ``sender_id`` identifies the chat (the peer in direct chats, the group in
    group chats); ``author_id`` is the participant who wrote a group message.
    """
    sender_id: str
    text: str = ""
    is_group: bool = False
    display_name: Optional[str] = None
    phone: Optional[str] = None
    author_id: Optional[str] = None
    image: Optional[bytes] = None
    image_mime: Optional[str] = None
    quoted_text: Optional[str] = None
    quoted_author_id: Optional[str] = None
    mentioned_ids: List[str] = field(default_factory=list)
    from_me: bool = False
    message_id: Optional[str] = None
    timestamp: float = 0.0

    def has_content(self) -> bool:
        """At least one of non-empty text or image must be present."""
        return bool((self.text or "").strip()) or bool(self.image)


@dataclass
class Annotations:
    """Deterministic labels computed from the message text."""
    intent: str = "unknown"
    sub_intent: Optional[str] = None
    confidence: float = 0.0
    all_intents: List[str] = field(default_factory=list)
    emotion: str = "neutral"
    intensity: Literal["low", "medium", "high"] = "low"
    emotion_scores: Dict[str, float] = field(default_factory=dict)
    language: Literal["english", "hindi", "hinglish"] = "english"
    is_short: bool = False
    is_long: bool = False
    has_emoji: bool = False


@dataclass
class PersonProfile:
    """Per-sender memory row."""
    contact_id: str
    display_name: Optional[str] = None
    phone_number: Optional[str] = None
    communication_style: str = "neutral"
    relationship: str = "acquaintance"
    top_topics: List[str] = field(default_factory=list)
    emotion_history: List[Dict[str, Any]] = field(default_factory=list)
    total_messages: int = 0
    first_seen: Optional[str] = None
    last_seen: Optional[str] = None
    notes: Optional[str] = None
    is_important: bool = False


@dataclass
class ConversationTurn:
    """One recorded user or assistant turn."""
    contact_id: str
    role: Literal["user", "assistant"]
    content: str
    emotion: Optional[str] = None
    intent: Optional[str] = None
    timestamp: Optional[str] = None
    is_group: bool = False


@dataclass
class SafetyRule:
    """Row of the safety_rules table."""
    rule_type: str
    rule_text: str
    severity: str = "high"
    replacement: Optional[str] = None


@dataclass
class ContextBundle:
    """Immutable input passed to every handler."""
    sender_id: str
    text: str
    annotations: Annotations
    is_group: bool = False
    person: Optional[PersonProfile] = None
    is_new_contact: bool = False
    recap: str = ""
    quoted_text: Optional[str] = None
    image: Optional[bytes] = None
    image_mime: Optional[str] = None
    external_findings: Optional[str] = None
    history: List[ConversationTurn] = field(default_factory=list)


@dataclass
class HandlerResult:
    """Result from a handler invocation."""
    response: str
    source: str
    image: Optional[bytes] = None
    image_mime: Optional[str] = None
    audio: Optional[bytes] = None
    audio_mime: Optional[str] = None
    intent: Optional[str] = None
    emotion: Optional[str] = None
    is_quick_response: bool = False
    processing_ms: float = 0.0


@dataclass
class DeliveryPart:
    """One outbound message part and the typing delay before it."""
    text: str
    delay_ms: int
    image: Optional[bytes] = None
    image_mime: Optional[str] = None
    audio: Optional[bytes] = None
    audio_mime: Optional[str] = None


@dataclass
class DeliveryPlan:
    """Ordered parts; attachments ride on part 0 only."""
    parts: List[DeliveryPart] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n\n".join(p.text for p in self.parts)


@dataclass
class GenerationConfig:
    """Sampling parameters for one LLM call."""
    temperature: float = 0.8
    top_p: float = 0.9
    top_k: int = 40
    max_output_tokens: int = 256


@dataclass
class PersonaConfig:
    """Configuration for the persona bot."""
    # LLM (Gemini via LiteLLM)
    gemini_api_key: str = ""
    chat_models: List[str] = field(default_factory=lambda: [
        "gemini/gemini-2.5-flash",
        "gemini/gemini-2.0-flash",
        "gemini/gemini-1.5-flash",
    ])
    llm_timeout_seconds: float = 15.0
    vision_timeout_seconds: float = 25.0

    # Identity
    persona_name: str = "Manthan"
    bot_aliases: List[str] = field(default_factory=lambda: ["manthan", "@manthan", "@bot"])
    bot_id: Optional[str] = None
    owner_id: Optional[str] = None
    timezone: str = "Asia/Kolkata"

    # Pipeline tunables
    silence_window_seconds: float = 30.0
    takeover_gc_seconds: float = 300.0
    max_group_reply: int = 600
    typing_base_ms: int = 800
    typing_per_char_ms: int = 8
    typing_max_ms: int = 5000
    recap_threshold: int = 15
    history_limit_direct: int = 10
    history_limit_group: int = 5

    # Storage
    data_dir: str = "./data"
    memory_db_path: str = "./data/memory.db"
    flush_interval_seconds: int = 30
    retention_days: int = 7

    # Providers
    youtube_api_key: Optional[str] = None
    search_timeout_seconds: float = 10.0
    link_timeout_seconds: float = 8.0
    tts_timeout_seconds: float = 20.0

    # Meta WhatsApp transport
    whatsapp_api_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None
    whatsapp_verify_token: Optional[str] = None

    # Webhook server
    server_host: str = "0.0.0.0"
    server_port: int = 18789

    # Logging
    log_level: str = "INFO"
    audit_log_path: str = "./logs/safety_audit.jsonl"

    # Persona content (profile, knowledge base, festivals) from the YAML persona section
    persona: Dict[str, Any] = field(default_factory=dict)
