import asyncio

from persona.core.annotator import annotate
from persona.core.memory import MemoryStore, Summarizer

from conftest import FakeLLM


def test_turns_come_back_oldest_first(memory, clock):
    memory.put_user_turn("u1", "hey", annotate("hey"))
    clock.advance(1)
    memory.put_assistant_turn("u1", "yo!")
    clock.advance(1)
    memory.put_user_turn("u1", "how's the bike?")

    turns = memory.recent_turns("u1", 10)
    assert [t.role for t in turns] == ["user", "assistant", "user"]
    assert turns[0].intent == "greeting"
    assert memory.recent_turns("u1", 2)[0].content == "yo!"


def test_total_messages_counts_only_user_turns(memory):
    assert memory.is_new_contact("u1")
    memory.put_user_turn("u1", "hey", display_name="Riya")
    assert memory.is_new_contact("u1")
    memory.put_assistant_turn("u1", "hi Riya")
    memory.put_user_turn("u1", "how are you")

    person = memory.get_person("u1")
    assert person.total_messages == 2
    assert person.display_name == "Riya"
    assert not memory.is_new_contact("u1")


def test_update_person_ignores_unknown_fields(memory):
    memory.put_user_turn("u1", "hey")
    assert memory.update_person("u1", {"relationship": "friend", "total_messages": 999})
    assert not memory.update_person("u1", {"bogus": 1})
    person = memory.get_person("u1")
    assert person.relationship == "friend"
    assert person.total_messages == 1


def test_learn_style_and_topics(memory):
    memory.put_user_turn("u1", "bro my bike broke down")
    memory.learn_style("u1", "bro my bike broke down")
    person = memory.get_person("u1")
    assert person.communication_style == "casual-friendly"
    assert person.top_topics == ["bike"]


def test_emotion_history_skips_neutral(memory):
    memory.record_emotion("u1", "neutral")
    assert memory.get_person("u1") is None
    memory.record_emotion("u1", "sad")
    assert memory.get_person("u1").emotion_history[0]["emotion"] == "sad"


def test_prune_removes_rows_past_retention(tmp_path, clock):
    store = MemoryStore(str(tmp_path / "m.db"), clock=clock, retention_days=7)
    store.put_user_turn("u1", "old message")
    clock.advance(8 * 86400)
    store.put_user_turn("u1", "new message")
    assert store.prune() == 1
    assert [t.content for t in store.recent_turns("u1")] == ["new message"]
    store.close()


def test_safety_rules_seeded_once(tmp_path, clock):
    path = str(tmp_path / "m.db")
    first = MemoryStore(path, clock=clock, persona_name="Riya")
    count = len(first.get_safety_rules())
    first.close()
    second = MemoryStore(path, clock=clock)
    assert len(second.get_safety_rules()) == count == 7
    assert "Riya" in second.get_safety_prompt()
    second.close()


def test_todos_are_scoped_per_contact(memory):
    first = memory.add_todo("u1", "buy milk", "shopping", "low")
    memory.add_todo("u1", "file taxes", "finance", "high")
    memory.add_todo("u2", "not mine", "other", "medium")

    todos = memory.list_todos("u1")
    assert [t["task"] for t in todos] == ["file taxes", "buy milk"]
    assert memory.get_todo("u2", first) is None

    memory.set_todo_completed("u1", first, True)
    assert memory.clear_completed_todos("u1") == 1
    assert len(memory.list_todos("u1")) == 1


def test_recap_only_for_long_histories(tmp_path, clock):
    llm = FakeLLM(reply='{"summary": "Talked about bikes.", "topics": ["bike"], "sentiment": "positive"}')
    store = MemoryStore(str(tmp_path / "m.db"), clock=clock, summarizer=Summarizer(llm), recap_threshold=15)
    for i in range(14):
        store.put_user_turn("u1", f"message {i}")
        clock.advance(1)
    assert asyncio.run(store.get_recap("u1")) == ""
    assert llm.calls == []

    store.put_user_turn("u1", "one more")
    recap = asyncio.run(store.get_recap("u1"))
    assert recap.startswith("CONVERSATION RECAP (15 messages):")
    assert "Talked about bikes." in recap

    # Same history length reuses the cached recap
    asyncio.run(store.get_recap("u1"))
    assert len(llm.calls) == 1
    store.close()


def test_recap_failure_degrades_to_empty(tmp_path, clock):
    store = MemoryStore(str(tmp_path / "m.db"), clock=clock, summarizer=Summarizer(FakeLLM(fail=True)), recap_threshold=3)
    for i in range(8):
        store.put_user_turn("u1", f"message {i}")
    assert asyncio.run(store.get_recap("u1")) == ""
    store.close()


def test_stats_and_digest(memory):
    assert memory.daily_digest() == "No conversations today."
    memory.put_user_turn("u1", "hey there, long time", display_name="Riya")
    memory.put_assistant_turn("u1", "yo!")
    stats = memory.get_stats()
    assert stats == {"total_persons": 1, "total_messages": 2, "messages_today": 2}
    digest = memory.daily_digest()
    assert "*Riya*: 2 messages" in digest
    assert 'Last: "hey there, long time..."' in digest
