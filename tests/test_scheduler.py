import asyncio

from persona.core.handlers import ReminderBook, TTLCache
from persona.core.owner_control import OwnerTakeover
from persona.core.scheduler import MaintenanceLoop, ReminderScheduler

from conftest import FakeTransport


def test_due_reminders_fire_once(tmp_path, clock, transport):
    book = ReminderBook(str(tmp_path), clock=clock)
    book.add("u1", "call mom", 600)
    book.add("u2", "water plants", 7200)
    scheduler = ReminderScheduler(book, transport)

    assert asyncio.run(scheduler.check_and_fire()) == 0
    clock.advance(601)
    assert asyncio.run(scheduler.check_and_fire()) == 1
    assert transport.texts("u1") == [
        "⏰ *REMINDER!*\n\n📝 call mom\n\n_This reminder was set 10m ago_"
    ]
    assert asyncio.run(scheduler.check_and_fire()) == 0
    assert [r["task"] for r in book.pending()] == ["water plants"]


def test_failed_send_keeps_reminder_pending(tmp_path, clock):
    book = ReminderBook(str(tmp_path), clock=clock)
    book.add("u1", "call mom", 60)
    clock.advance(61)
    transport = FakeTransport(fail_sends=1)
    scheduler = ReminderScheduler(book, transport)

    assert asyncio.run(scheduler.check_and_fire()) == 0
    assert len(book.due()) == 1
    assert asyncio.run(scheduler.check_and_fire()) == 1


class CountingMemory:
    def __init__(self):
        self.flushes = 0
        self.prunes = 0

    def flush(self):
        self.flushes += 1

    def prune(self):
        self.prunes += 1
        return 0


def test_maintenance_runs_hourly_tasks_once_an_hour(clock):
    memory = CountingMemory()
    takeover = OwnerTakeover(gc_after=300, clock=clock)
    takeover.update("c1")
    cache = TTLCache(60, clock=clock)
    cache.set("q", "findings")
    loop = MaintenanceLoop(memory, takeover, caches=[cache], clock=clock)

    clock.advance(30)
    assert not loop.tick()
    assert memory.flushes == 1
    assert memory.prunes == 0

    clock.advance(3600)
    assert loop.tick()
    assert memory.prunes == 1
    assert takeover.gc() == 0
    assert len(cache) == 0

    loop.shutdown()
    assert memory.flushes == 3
