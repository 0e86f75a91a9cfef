"""Background loops: reminder firing and periodic maintenance."""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .owner_control import format_duration

logger = logging.getLogger(__name__)


class ReminderScheduler:
    """Background scheduler that checks for due reminders and fires them.

    Reads the same data/reminders.json that ReminderHandler writes to and
    sends each due reminder to the chat that set it.
    """

    CHECK_INTERVAL = 30  # seconds between checks
    CLEANUP_EVERY = 100  # loops between cleanups (~50 min)

    def __init__(self, book, transport):
        """Initialize reminder scheduler.

        Args:
            book: ReminderBook shared with the reminder handler
            transport: Transport used to send reminder messages
        """
        self.book = book
        self.transport = transport
        self._cleanup_counter = 0

    async def start(self):
        """Main loop: check every 30 seconds for due reminders."""
        logger.info("⏰ Reminder scheduler started")
        while True:
            try:
                await self.check_and_fire()

                self._cleanup_counter += 1
                if self._cleanup_counter >= self.CLEANUP_EVERY:
                    self.book.cleanup()
                    self._cleanup_counter = 0

            except Exception as e:
                logger.error(f"Reminder scheduler error: {e}", exc_info=True)

            await asyncio.sleep(self.CHECK_INTERVAL)

    async def check_and_fire(self) -> int:
        """Send every due reminder. Returns how many fired."""
        fired = 0
        for reminder in self.book.due():
            rid = reminder.get("id", "?")
            message = (
                f"⏰ *REMINDER!*\n\n📝 {reminder['task']}\n\n"
                f"_This reminder was set {format_duration(reminder.get('duration_seconds', 0))} ago_"
            )
            try:
                await self.transport.send_text(reminder["contact_id"], message)
            except Exception as e:
                # Stays pending, retried next check
                logger.error(f"Failed to fire reminder #{rid}: {e}")
                continue
            self.book.mark_fired(rid)
            fired += 1
            logger.info(f"⏰ Reminder #{rid} fired for {reminder['contact_id']}")
        return fired


class MaintenanceLoop:
    """Periodic memory flush plus hourly pruning and sweeps."""

    def __init__(
        self,
        memory,
        takeover,
        voice=None,
        caches: Optional[List] = None,
        flush_interval: float = 30.0,
        hourly_interval: float = 3600.0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize maintenance loop.

        Args:
            memory: MemoryStore (flush, prune)
            takeover: OwnerTakeover (gc)
            voice: VoiceEngine whose temp dir gets swept
            caches: TTLCache instances to drop expired entries from
            flush_interval: Seconds between memory commits
            hourly_interval: Seconds between the heavier hourly tasks
            clock: Wall clock
        """
        self.memory = memory
        self.takeover = takeover
        self.voice = voice
        self.caches = caches or []
        self.flush_interval = flush_interval
        self.hourly_interval = hourly_interval
        self.clock = clock
        self._last_hourly = clock()

    def tick(self) -> bool:
        """One maintenance pass. Returns True when the hourly tasks ran."""
        self.memory.flush()
        if self.clock() - self._last_hourly < self.hourly_interval:
            return False
        self._last_hourly = self.clock()
        self.hourly()
        return True

    def hourly(self):
        pruned = self.memory.prune()
        collected = self.takeover.gc()
        swept = self.voice.sweep() if self.voice else 0
        dropped = sum(cache.drop_expired() for cache in self.caches)
        logger.info(
            f"🧹 Maintenance: pruned {pruned} turns, {collected} takeover records, "
            f"{swept} temp files, {dropped} cache entries"
        )

    async def start(self):
        logger.info("🧹 Maintenance loop started")
        while True:
            await asyncio.sleep(self.flush_interval)
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Maintenance loop error: {e}", exc_info=True)

    def shutdown(self):
        """Final commit on graceful shutdown."""
        self.memory.flush()
        logger.info("💾 Memory flushed on shutdown")
