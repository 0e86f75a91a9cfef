import pytest

from persona.core.analytics import Analytics
from persona.core.security.audit_logger import AuditLogger
from persona.core.owner_control import (
    DEFAULT_AWAY_MESSAGE,
    AutoReplyState,
    OwnerCommands,
    OwnerTakeover,
    format_duration,
    parse_duration,
)
from persona.core.types import AutoReplyMode


@pytest.mark.parametrize("text,seconds", [
    ("2h", 7200),
    ("2 hours", 7200),
    ("1 hour 30 min", 5400),
    ("45", 2700),
    ("45 mins", 2700),
    ("half an hour", 1800),
    ("half hour", 1800),
])
def test_parse_duration(text, seconds):
    assert parse_duration(text) == seconds


@pytest.mark.parametrize("text", ["", "soon", "0", "later today"])
def test_parse_duration_rejects(text):
    assert parse_duration(text) is None


@pytest.mark.parametrize("seconds,expected", [
    (30, "30s"), (2700, "45m"), (7200, "2h"), (5400, "1h 30m"),
])
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_takeover_window_expires(clock):
    takeover = OwnerTakeover(silence_window=30, clock=clock)
    takeover.update("c1")
    assert takeover.is_owner_handling("c1")
    clock.advance(10)
    first = takeover.remaining("c1")
    clock.advance(5)
    assert takeover.remaining("c1") < first
    clock.advance(20)
    assert not takeover.is_owner_handling("c1")
    assert not takeover.is_owner_handling("other")


def test_takeover_gc_drops_idle_records(clock):
    takeover = OwnerTakeover(silence_window=30, gc_after=300, clock=clock)
    takeover.update("c1")
    clock.advance(200)
    takeover.update("c2")
    clock.advance(150)
    assert takeover.gc() == 1
    assert takeover.remaining("c1") == 0


def test_busy_reverts_to_online_on_read(clock):
    state = AutoReplyState(clock=clock)
    state.set_busy(600)
    assert state.mode == AutoReplyMode.BUSY
    assert state.canned_reply() == "I'm busy right now. Will be available in 10m 🙏"
    clock.advance(601)
    assert state.mode == AutoReplyMode.ONLINE
    assert state.canned_reply() is None


def test_away_without_message_uses_default(clock):
    state = AutoReplyState(clock=clock)
    state.set_away()
    assert state.canned_reply() == DEFAULT_AWAY_MESSAGE
    state.set_dnd()
    assert state.canned_reply() is None


@pytest.fixture
def commands(clock, memory):
    takeover = OwnerTakeover(clock=clock)
    auto_reply = AutoReplyState(clock=clock)
    return OwnerCommands(takeover, auto_reply, memory, Analytics(clock=clock))


def test_pause_and_resume(commands):
    assert commands.handle("/pause", "c1") == "⏸️ Bot paused for this chat"
    assert commands.takeover.is_owner_handling("c1")
    assert commands.handle("/bot on", "c1") == "▶️ Bot resumed for this chat"
    assert not commands.takeover.is_owner_handling("c1")


def test_mode_commands(commands):
    commands.handle("/away Out hiking, back Sunday", "c1")
    assert commands.auto_reply.mode == AutoReplyMode.AWAY
    assert commands.auto_reply.message == "Out hiking, back Sunday"

    commands.handle("/dnd", "c1")
    assert commands.auto_reply.mode == AutoReplyMode.DND

    reply = commands.handle("/busy 2 hours", "c1")
    assert "2h" in reply
    assert commands.auto_reply.mode == AutoReplyMode.BUSY

    commands.handle("/online", "c1")
    assert commands.auto_reply.mode == AutoReplyMode.ONLINE


def test_busy_with_bad_duration_keeps_mode(commands):
    assert commands.handle("/busy whenever", "c1").startswith("⚠️")
    assert commands.auto_reply.mode == AutoReplyMode.ONLINE


def test_auto_sets_away_message(commands):
    commands.handle("/auto In a meeting", "c1")
    assert commands.auto_reply.canned_reply() == "In a meeting"


def test_status_and_stats(commands, memory):
    memory.put_user_turn("u1", "hey")
    commands.handle("/busy 30", "c1")
    status = commands.handle("/status", "c1")
    assert "BUSY" in status and "30m" in status

    stats = commands.handle("/stats", "c1")
    assert "Contacts: 1" in stats
    assert "Messages: 1" in stats
    assert "Processed: 0" in stats


def test_unknown_slash_and_plain_text_are_not_commands(commands):
    assert commands.handle("/unknown thing", "c1") is None
    assert commands.handle("see you at 5", "c1") is None
    assert "/pause" in commands.handle("/help", "c1")


def test_commands_are_audited(tmp_path, clock):
    audit = AuditLogger(str(tmp_path / "audit.jsonl"))
    takeover = OwnerTakeover(silence_window=30, clock=clock)
    auto_reply = AutoReplyState(clock=clock)
    OwnerCommands(takeover, auto_reply, audit_logger=audit).handle("/dnd", "owner-chat")

    events = audit.get_recent_events(event_type="owner_command")
    assert events[0]["command"] == "/dnd"
    assert events[0]["result"] == "dnd"
    assert audit.get_safety_summary()["owner_commands"] == 1
