import asyncio

import httpx

from persona.core.delivery import DIRECT_FAILURE_TEXT
from persona.core.types import Envelope
from persona.core.voice import VoiceEngine

from conftest import FakeLLM, fake_search


def process(pipeline, envelope):
    return asyncio.run(pipeline.process_envelope(envelope))


def roles(memory, sender):
    return [t.role for t in memory.recent_turns(sender, 20)]


def test_direct_casual_message(make_pipeline, memory, transport):
    pipeline = make_pipeline()
    plan = process(pipeline, Envelope(sender_id="u1", text="yo what's up"))

    assert len(plan.parts) == 1
    assert 600 <= plan.parts[0].delay_ms <= 5000
    assert "http" not in plan.text
    assert transport.texts("u1") == [plan.text]
    assert roles(memory, "u1") == ["user", "assistant"]
    assert memory.get_person("u1").total_messages == 1
    assert pipeline.analytics.handlers["chat"] == 1


def test_search_findings_are_woven_into_chat_reply(make_pipeline, transport):
    def responder(system, turns):
        if "EXTERNAL FINDINGS" in (system or ""):
            return "this one's solid: https://kb.example/guide"
        return "no idea tbh"

    search = fake_search([{"title": "Keyboard Guide", "body": "Top boards.", "href": "https://kb.example/guide"}])
    pipeline = make_pipeline(llm=FakeLLM(responder=responder), search_fn=search)
    plan = process(pipeline, Envelope(sender_id="u1", text="search best ergonomic keyboards 2024"))

    assert "https://kb.example/guide" in plan.text
    assert search.calls == ["best ergonomic keyboards 2024"]
    assert pipeline.analytics.handlers["search"] == 1


def test_group_message_without_trigger_is_ignored(make_pipeline, memory, transport):
    pipeline = make_pipeline()
    env = Envelope(sender_id="g1", text="anyone up for coffee?", is_group=True, author_id="u1")
    assert process(pipeline, env) is None
    assert memory.recent_turns("g1") == []
    assert transport.sent == []
    assert pipeline.llm.calls == []


def test_answer_this_uses_the_quoted_question(make_pipeline, transport):
    def responder(system, turns):
        return "56 obviously" if "7*8" in turns[-1]["content"] else "huh?"

    pipeline = make_pipeline(llm=FakeLLM(responder=responder))
    env = Envelope(
        sender_id="g1", text="@bot answer this", is_group=True, author_id="u1",
        quoted_text="what is 7*8?", quoted_author_id="u2",
    )
    process(pipeline, env)
    assert "56" in transport.texts("g1")[0]


def test_owner_takeover_silences_then_expires(make_pipeline, clock, transport):
    pipeline = make_pipeline()
    assert process(pipeline, Envelope(sender_id="u1", text="on my way", from_me=True)) is None

    clock.advance(10)
    assert process(pipeline, Envelope(sender_id="u1", text="cool, where are you?")) is None
    assert transport.sent == []

    clock.advance(30)
    assert process(pipeline, Envelope(sender_id="u1", text="hello??")) is not None
    assert len(transport.texts("u1")) == 1


def test_dnd_sends_nothing(make_pipeline, memory, transport):
    pipeline = make_pipeline()
    process(pipeline, Envelope(sender_id="u9", text="/dnd", from_me=True))
    assert transport.texts("u9")[0].startswith("🔇 *DND mode ON*")

    assert process(pipeline, Envelope(sender_id="u1", text="hey there")) is None
    assert transport.texts("u1") == []
    assert "assistant" not in roles(memory, "u1")


def test_away_mode_sends_canned_reply_once(make_pipeline, memory, transport):
    pipeline = make_pipeline()
    process(pipeline, Envelope(sender_id="u9", text="/away brb, at the gym", from_me=True))
    process(pipeline, Envelope(sender_id="u1", text="hey there"))

    assert transport.texts("u1") == ["brb, at the gym"]
    assert memory.recent_turns("u1") == []
    assert pipeline.analytics.handlers["auto_reply"] == 1
    assert pipeline.llm.calls == []


def test_owner_command_reply_goes_to_the_chat(make_pipeline, transport):
    pipeline = make_pipeline()
    process(pipeline, Envelope(sender_id="u9", text="/status", from_me=True))
    assert transport.texts("u9") == ["🕒 *Bot Status:* ONLINE"]


def test_owner_can_address_the_bot_directly(make_pipeline, memory, transport):
    pipeline = make_pipeline(owner_id="15559990000")
    process(pipeline, Envelope(sender_id="u1", text="hey there", display_name="Riya"))
    before = memory.get_person("u1")

    plan = process(pipeline, Envelope(sender_id="u1", text="@bot I'm so stressed, tell me a joke", from_me=True))
    assert plan is not None
    assert transport.texts("u1")[-1] == plan.text
    assert not pipeline.takeover.is_owner_handling("u1")
    assert pipeline.llm.calls[-1]["turns"][-1]["content"] == "I'm so stressed, tell me a joke"

    # The owner's words land in the owner's memory, not the contact's
    after = memory.get_person("u1")
    assert after.total_messages == before.total_messages == 1
    assert after.communication_style == before.communication_style
    assert after.emotion_history == before.emotion_history
    assert roles(memory, "u1") == ["user", "assistant"]
    assert roles(memory, "15559990000") == ["user", "assistant"]
    assert pipeline.analytics.senders["15559990000"] == 1


def test_link_preview(make_pipeline, transport):
    page = '<html><head><title>Post Title</title><meta name="description" content="About things."></head></html>'
    link_transport = httpx.MockTransport(
        lambda request: httpx.Response(200, headers={"content-type": "text/html"}, text=page)
    )
    pipeline = make_pipeline(link_transport=link_transport)
    plan = process(pipeline, Envelope(sender_id="u1", text="check this https://example.org/post"))
    assert plan.text == "🔗 *Link Preview*\n📌 *Post Title*\n📝 About things.\n🌐 example.org"


def test_link_preview_falls_back_to_url(make_pipeline):
    def refuse(request):
        raise httpx.ConnectError("refused", request=request)

    pipeline = make_pipeline(link_transport=httpx.MockTransport(refuse))
    plan = process(pipeline, Envelope(sender_id="u1", text="https://example.org/my-trip-notes"))
    assert "📌 *My Trip Notes*" in plan.text


def test_identity_leak_is_stripped(make_pipeline, transport):
    pipeline = make_pipeline(llm=FakeLLM(reply="lol I am an AI but chess is life"))
    plan = process(pipeline, Envelope(sender_id="u1", text="hey how was your weekend"))
    assert "i am an ai" not in plan.text.lower()
    assert "chess is life" in plan.text.lower()


def test_chat_failure_falls_back_to_search(make_pipeline, transport):
    pipeline = make_pipeline(llm=FakeLLM(fail=True), search_fn=fake_search([]))
    plan = process(pipeline, Envelope(sender_id="u1", text="tell me something interesting"))
    assert "https://www.google.com/search?q=" in plan.text
    assert pipeline.analytics.handlers["chat"] == 1


def test_spam_in_group_gets_no_reply(make_pipeline, memory, transport):
    pipeline = make_pipeline()
    env = Envelope(sender_id="g1", text="@bot click here to win a free prize", is_group=True, author_id="u1")
    assert process(pipeline, env) is None
    assert transport.sent == []
    assert roles(memory, "g1") == ["user"]


def test_image_goes_to_vision(make_pipeline, transport):
    pipeline = make_pipeline(llm=FakeLLM(reply="that's a very judgy cat"))
    plan = process(pipeline, Envelope(sender_id="u1", image=b"\xff\xd8\xffdata"))
    assert plan.text == "that's a very judgy cat"
    assert pipeline.llm.calls[0]["image_mime"] == "image/jpeg"


def test_voice_request_attaches_audio(make_pipeline, tmp_path, clock, transport):
    pipeline = make_pipeline()
    tts = httpx.MockTransport(lambda request: httpx.Response(200, content=b"ID3voice"))
    pipeline.voice = VoiceEngine(str(tmp_path / "voice"), clock=clock, transport=tts)

    plan = process(pipeline, Envelope(sender_id="u1", text="can you send a voice note"))
    assert plan.parts[0].audio == b"ID3voice"
    assert [kind for kind, _, _ in transport.sent] == ["text", "audio"]


def test_failed_delivery_records_no_assistant_turn(make_pipeline, memory, transport):
    pipeline = make_pipeline()
    transport.fail_sends = 1
    process(pipeline, Envelope(sender_id="u1", text="yo what's up"))
    assert transport.texts("u1") == [DIRECT_FAILURE_TEXT]
    assert roles(memory, "u1") == ["user"]


def test_queue_processes_in_arrival_order(make_pipeline, transport):
    pipeline = make_pipeline()

    async def scenario():
        worker = asyncio.create_task(pipeline.run())
        await pipeline.submit(Envelope(sender_id="u1", text="hey"))
        await pipeline.submit(Envelope(sender_id="u2", text="yo"))
        await pipeline.queue.join()
        worker.cancel()

    asyncio.run(scenario())
    assert [chat for _, chat, _ in transport.sent] == ["u1", "u2"]


def test_empty_envelope_is_ignored(make_pipeline, transport):
    assert process(make_pipeline(), Envelope(sender_id="u1", text="   ")) is None
    assert transport.sent == []


def test_links_are_dropped_from_replies_without_findings(make_pipeline, transport):
    pipeline = make_pipeline(llm=FakeLLM(reply="lol that meme is from https://evil.example/x"))
    plan = process(pipeline, Envelope(sender_id="u1", image=b"\xff\xd8\xffdata"))
    assert plan.text == "lol that meme is from"
    assert "http" not in transport.texts("u1")[0]


def test_partial_delivery_records_what_the_user_got(make_pipeline, memory, transport):
    pipeline = make_pipeline(llm=FakeLLM(reply="first part here\n---\nsecond part here"))
    transport.fail_at = 1
    process(pipeline, Envelope(sender_id="u1", text="yo what's up"))

    assert transport.texts("u1") == ["first part here"]
    turns = memory.recent_turns("u1", 20)
    assert [t.role for t in turns] == ["user", "assistant"]
    assert turns[-1].content == "first part here"


def test_group_spam_is_still_counted(make_pipeline):
    pipeline = make_pipeline()
    env = Envelope(sender_id="g1", text="@bot click here to win a free prize", is_group=True, author_id="u1")
    process(pipeline, env)
    assert pipeline.analytics.handlers["social"] == 1
    assert pipeline.analytics.intents["spam"] == 1
