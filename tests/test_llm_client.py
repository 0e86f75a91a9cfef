import asyncio
from types import SimpleNamespace

import litellm
import pytest

from persona.core.types import Annotations, LLMError
from persona.integrations.llm_client import LLMClient
from persona.integrations.model_router import generation_config, translate_config, vision_config


def completion(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    return LLMClient("test-key", ["gemini/first", "gemini/second"], timeout=5, base_delay=0)


def scripted(monkeypatch, outcomes):
    """Patch litellm.acompletion to play ``outcomes`` in order."""
    calls = []

    async def fake_acompletion(**kwargs):
        calls.append(kwargs)
        outcome = outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return completion(outcome)

    monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
    return calls


def test_disabled_client_raises():
    with pytest.raises(LLMError, match="not configured"):
        asyncio.run(LLMClient("", ["gemini/first"]).generate("sys", [{"role": "user", "content": "hi"}]))


def test_first_model_answers(client, monkeypatch):
    calls = scripted(monkeypatch, ["  hey there  "])
    text = asyncio.run(client.generate("sys", [{"role": "user", "content": "hi"}]))
    assert text == "hey there"
    assert calls[0]["model"] == "gemini/first"
    assert calls[0]["messages"][0] == {"role": "system", "content": "sys"}


def test_rate_limit_is_retried_on_same_model(client, monkeypatch):
    calls = scripted(monkeypatch, [Exception("429 Too Many Requests"), "ok now"])
    assert asyncio.run(client.generate(None, [{"role": "user", "content": "hi"}])) == "ok now"
    assert [c["model"] for c in calls] == ["gemini/first", "gemini/first"]


def test_other_errors_move_to_next_model(client, monkeypatch):
    calls = scripted(monkeypatch, [Exception("500 internal"), "from second"])
    assert asyncio.run(client.generate(None, [{"role": "user", "content": "hi"}])) == "from second"
    assert [c["model"] for c in calls] == ["gemini/first", "gemini/second"]


def test_empty_text_counts_as_failure(client, monkeypatch):
    scripted(monkeypatch, ["", "   "])
    with pytest.raises(LLMError, match="All models failed"):
        asyncio.run(client.generate(None, [{"role": "user", "content": "hi"}]))


def test_image_attaches_to_last_user_turn():
    messages = LLMClient.build_messages(
        "sys",
        [{"role": "model", "content": "yo"}, {"role": "user", "content": "what is this"}],
        image=b"\x89PNG",
        image_mime="image/png",
    )
    assert messages[1] == {"role": "assistant", "content": "yo"}
    content = messages[-1]["content"]
    assert content[0] == {"type": "text", "text": "what is this"}
    assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")


def test_generation_config_follows_the_conversation():
    assert generation_config(Annotations(emotion="sad")).temperature == 0.6
    assert generation_config(Annotations(intent="work_inquiry")).max_output_tokens == 300
    assert generation_config(Annotations(intent="greeting"), is_group=True).max_output_tokens == 128
    assert generation_config(Annotations(intent="greeting"), has_findings=True).max_output_tokens == 400
    assert vision_config(True).max_output_tokens == 128
    assert translate_config().temperature == 0.1
