"""Shared fakes and fixtures."""

import random
from typing import Any, Callable, Dict, List, Optional

import pytest

from persona.channels.transport import Transport
from persona.core.analytics import Analytics
from persona.core.delivery import Delivery
from persona.core.handlers import (
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
from persona.core.humanizer import Humanizer
from persona.core.memory import MemoryStore, Summarizer
from persona.core.owner_control import AutoReplyState, OwnerCommands, OwnerTakeover
from persona.core.persona import PersonaProfile
from persona.core.pipeline import PersonaPipeline
from persona.core.security.safety_filter import SafetyFilter
from persona.core.trigger_gate import TriggerGate
from persona.core.types import LLMError

# 2024-06-12 14:00 IST, a Wednesday afternoon
NOON_EPOCH = 1718181000.0

PERSONA_CONTENT = {
    "profile": {
        "location": {"city": "Pune", "country": "India"},
        "contact": {"email": "manthan@example.com"},
    },
    "background": {
        "work": {
            "role": "Software Engineer",
            "company": "Acme",
            "domain": "AI/ML",
            "technologies": ["Python", "TypeScript", "React"],
        },
    },
    "interests": ["AI", "bikes", "chess"],
    "festivals": [
        {"name": "Diwali", "date": "1 November", "greeting": "Happy Diwali! 🪔"},
    ],
    "knowledge_base": [
        {"patterns": ["bike", "ride", "which"], "answer": "Rides a Royal Enfield Classic 350."},
    ],
}


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = NOON_EPOCH):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeLLM:
    """Records calls and answers from a responder or a fixed reply."""

    def __init__(self, reply: str = "haha nice, all good here", responder: Optional[Callable] = None, fail: bool = False):
        self.reply = reply
        self.responder = responder
        self.fail = fail
        self.enabled = True
        self.calls: List[Dict[str, Any]] = []

    async def generate(self, system, turns, config=None, image=None, image_mime=None, timeout=None):
        self.calls.append({
            "system": system,
            "turns": turns,
            "config": config,
            "image": image,
            "image_mime": image_mime,
        })
        if self.fail:
            raise LLMError("All models failed: boom")
        if self.responder is not None:
            return self.responder(system, turns)
        return self.reply


class FakeTransport(Transport):
    """Collects everything the pipeline sends."""

    def __init__(self, fail_sends: int = 0, fail_at: Optional[int] = None):
        self.sent: List[tuple] = []
        self.presence: List[tuple] = []
        self.fail_sends = fail_sends
        # Fail the send made once this many messages are out
        self.fail_at = fail_at

    def _maybe_fail(self):
        if self.fail_at is not None and len(self.sent) == self.fail_at:
            raise ConnectionError("socket closed")
        if self.fail_sends > 0:
            self.fail_sends -= 1
            raise ConnectionError("socket closed")

    async def send_text(self, chat_id, text):
        self._maybe_fail()
        self.sent.append(("text", chat_id, text))

    async def send_image(self, chat_id, image, caption=None, mime="image/jpeg"):
        self._maybe_fail()
        self.sent.append(("image", chat_id, caption))

    async def send_audio(self, chat_id, audio, mime="audio/mpeg", ptt=True):
        self._maybe_fail()
        self.sent.append(("audio", chat_id, len(audio)))

    async def set_presence(self, chat_id, presence):
        self.presence.append((chat_id, presence.value))

    def texts(self, chat_id: Optional[str] = None) -> List[str]:
        return [s[2] for s in self.sent if s[0] == "text" and (chat_id is None or s[1] == chat_id)]


def fake_search(results: Optional[List[Dict[str, str]]] = None, error: Optional[Exception] = None):
    """Blocking search stand-in with the ddgs_text signature."""
    calls = []

    def search(query: str, max_results: int):
        calls.append(query)
        if error is not None:
            raise error
        return list(results or [])[:max_results]

    search.calls = calls
    return search


async def no_sleep(seconds: float):
    return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(7)


@pytest.fixture
def persona(clock):
    return PersonaProfile("Manthan", PERSONA_CONTENT, clock=clock)


@pytest.fixture
def memory(tmp_path, clock):
    store = MemoryStore(str(tmp_path / "memory.db"), clock=clock)
    yield store
    store.close()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def make_pipeline(tmp_path, clock, rng, persona, memory, transport):
    """Build a fully wired pipeline around fakes; keyword overrides per test."""

    def build(llm=None, search_fn=None, link_transport=None, bot_id="bot-1", owner_id=None, summarizer=None):
        llm = llm or FakeLLM()
        summarizer = summarizer or Summarizer(llm, "Manthan")
        memory.summarizer = summarizer
        registry = HandlerRegistry()
        registry.register(ChatHandler(llm, persona, safety_prompt=memory.get_safety_prompt))
        registry.register(SearchHandler(search_fn=search_fn or fake_search(), clock=clock))
        registry.register(YouTubeHandler(clock=clock))
        registry.register(KnowledgeHandler(persona))
        registry.register(LinkHandler(clock=clock, transport=link_transport))
        registry.register(TranslateHandler(llm))
        registry.register(TodoHandler(memory, rng))
        registry.register(ReminderHandler(ReminderBook(str(tmp_path), clock=clock)))
        registry.register(SummarizeHandler(memory, summarizer))
        registry.register(SocialHandler(persona, rng))
        registry.register(VisionHandler(llm, persona))

        takeover = OwnerTakeover(silence_window=30, clock=clock)
        auto_reply = AutoReplyState(clock=clock)
        analytics = Analytics(clock=clock)
        pipeline = PersonaPipeline(
            memory=memory,
            registry=registry,
            fallback=FallbackChain(registry, rng),
            trigger_gate=TriggerGate(bot_id, ["manthan", "@manthan", "@bot"]),
            takeover=takeover,
            auto_reply=auto_reply,
            owner_commands=OwnerCommands(takeover, auto_reply, memory, analytics),
            safety=SafetyFilter(),
            humanizer=Humanizer(rng=rng, clock=clock),
            delivery=Delivery(transport, sleep=no_sleep),
            analytics=analytics,
            owner_id=owner_id,
            clock=clock,
        )
        pipeline.llm = llm
        return pipeline

    return build
