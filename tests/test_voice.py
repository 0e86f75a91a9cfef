import asyncio
import os

import httpx
import pytest

from persona.core.types import PersonaError
from persona.core.voice import (
    VoiceEngine,
    clean_for_tts,
    is_voice_request,
    split_text,
    tts_language,
)


def tts_transport(requests, payload=b"ID3audio"):
    def handler(request: httpx.Request):
        requests.append(request)
        return httpx.Response(200, content=payload, headers={"content-type": "audio/mpeg"})
    return httpx.MockTransport(handler)


def test_voice_request_detection():
    assert is_voice_request("send me a voice note pls")
    assert is_voice_request("bolo na")
    assert not is_voice_request("what's the weather")


def test_clean_for_tts():
    assert clean_for_tts("*Hey* there\nsee you 😄") == "Hey there. see you"
    assert clean_for_tts("link: https://example.org/x") == "link:"


def test_tts_language():
    assert tts_language("नमस्ते दोस्त") == "hi"
    assert tts_language("kya bhai sab theek hai") == "hi"
    assert tts_language("all good here") == "en"


def test_split_text_respects_budget():
    text = "This sentence is short. " * 30
    chunks = split_text(text, 200)
    assert len(chunks) > 1
    assert all(len(c) <= 200 for c in chunks)
    assert " ".join(chunks).split() == text.split()
    assert split_text("tiny") == ["tiny"]


def test_synthesize_writes_clip(tmp_path, clock):
    requests = []
    engine = VoiceEngine(str(tmp_path), clock=clock, transport=tts_transport(requests))
    audio = asyncio.run(engine.synthesize("hey, all good here"))
    assert audio == b"ID3audio"
    assert requests[0].url.params["tl"] == "en"
    assert requests[0].url.params["client"] == "tw-ob"
    assert requests[0].url.params["ttsspeed"] == "1"
    assert (tmp_path / f"voice_{int(clock() * 1000)}.mp3").read_bytes() == b"ID3audio"


def test_long_text_is_fetched_in_chunks(tmp_path, clock):
    requests = []
    engine = VoiceEngine(str(tmp_path), clock=clock, transport=tts_transport(requests, b"ab"))
    audio = asyncio.run(engine.synthesize("word " * 80, slow=True))
    assert len(requests) == 3
    assert audio == b"ababab"
    assert requests[0].url.params["ttsspeed"] == "0.24"


def test_synthesize_rejects_unspeakable_text(tmp_path, clock):
    engine = VoiceEngine(str(tmp_path), clock=clock, transport=tts_transport([]))
    with pytest.raises(PersonaError):
        asyncio.run(engine.synthesize("😄"))


def test_provider_failure_and_empty_audio(tmp_path, clock):
    failing = httpx.MockTransport(lambda request: httpx.Response(503))
    with pytest.raises(PersonaError):
        asyncio.run(VoiceEngine(str(tmp_path), clock=clock, transport=failing).synthesize("hello there"))

    with pytest.raises(PersonaError):
        asyncio.run(VoiceEngine(str(tmp_path), clock=clock, transport=tts_transport([], b"")).synthesize("hello there"))


def test_sweep_removes_only_old_files(tmp_path, clock):
    engine = VoiceEngine(str(tmp_path), clock=clock)
    old = tmp_path / "voice_old.mp3"
    fresh = tmp_path / "voice_new.mp3"
    old.write_bytes(b"x")
    fresh.write_bytes(b"x")
    os.utime(old, (clock() - 7200, clock() - 7200))
    os.utime(fresh, (clock() - 60, clock() - 60))

    assert engine.sweep() == 1
    assert not old.exists()
    assert fresh.exists()
