"""Reminder handler — set, list, and cancel reminders with persistent JSON storage.

Reminders live in ``data/reminders.json`` and are fired by the
ReminderScheduler background loop through the transport.
"""

import re
import json
import time
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..owner_control import format_duration
from ..timezone import USER_TZ
from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .base import BaseHandler

logger = logging.getLogger(__name__)

MIN_SECONDS = 5
MAX_SECONDS = 24 * 3600

USAGE = (
    "⏰ I couldn't understand the time. Try something like:\n"
    "• _remind me in 30 min to call mom_\n"
    "• _reminder in 2 hours: check email_\n"
    "• _remind me in 1 hour to take a break_"
)

_HOURS = re.compile(r"(\d+)\s*(?:hours|hour|hrs|hr|h)\b", re.IGNORECASE)
_MINUTES = re.compile(r"(\d+)\s*(?:minutes|minute|mins|min|m)\b", re.IGNORECASE)
_SECONDS = re.compile(r"(\d+)\s*(?:seconds|second|secs|sec|s)\b", re.IGNORECASE)
_HALF_HOUR = re.compile(r"half\s*(?:an?\s*)?hour", re.IGNORECASE)
_LEADING_NUMBER = re.compile(r"^\s*(\d+)")

_LIST = re.compile(r"\b(list|show|active|my)\s*(reminder|reminders)\b", re.IGNORECASE)
_CANCEL = re.compile(r"cancel\s+reminder\s+#?(\d+)", re.IGNORECASE)

# (pattern, duration group, task group) in priority order
_SET_PATTERNS = [
    re.compile(r"remind\s+(?:me\s+)?in\s+(.+?)\s+(?:to|about|that|:)\s+(.+)", re.IGNORECASE | re.DOTALL),
    re.compile(r"(?:set\s+(?:a\s+)?)?reminder\s+(?:in\s+)?(.+?)\s*(?::|\s(?:to|about|for)\s)\s*(.+)", re.IGNORECASE | re.DOTALL),
    re.compile(r"remind\s+(?:me\s+)?after\s+(.+?)\s+(?:to|about|that|:)\s+(.+)", re.IGNORECASE | re.DOTALL),
    re.compile(r"yaad\s+dila(?:na|o)\s+(.+?)\s+(?:mein|me|baad)\s+(.+)", re.IGNORECASE | re.DOTALL),
]
_BARE_REMIND = re.compile(
    r"remind\s+(?:me\s+)?(?:in\s+)?(\d+\s*(?:minutes|minute|mins|min|hours|hour|hrs|hr|seconds|second|secs|sec|h|m|s)\b)",
    re.IGNORECASE,
)


def parse_reminder_duration(text: str) -> Optional[float]:
    """Parse ``2 hours 30 min``, ``45 sec``, ``half an hour`` or a bare number (minutes)."""
    t = (text or "").strip()
    if _HALF_HOUR.search(t):
        return 1800.0
    seconds = 0
    for pattern, multiplier in ((_HOURS, 3600), (_MINUTES, 60), (_SECONDS, 1)):
        match = pattern.search(t)
        if match:
            seconds += int(match.group(1)) * multiplier
    if not seconds:
        match = _LEADING_NUMBER.match(t)
        if match:
            seconds = int(match.group(1)) * 60
    return float(seconds) if seconds > 0 else None


def parse_reminder(text: str) -> Tuple[Optional[float], Optional[str]]:
    """Split a reminder request into (seconds, task)."""
    for pattern in _SET_PATTERNS:
        match = pattern.search(text or "")
        if match:
            seconds = parse_reminder_duration(match.group(1))
            if seconds:
                return seconds, match.group(2).strip()
    match = _BARE_REMIND.search(text or "")
    if match:
        return parse_reminder_duration(match.group(1)), "your reminder!"
    return None, None


class ReminderBook:
    """JSON-file reminder storage shared by the handler and the scheduler."""

    def __init__(self, data_dir: str = "./data", clock: Callable[[], float] = time.time, tz=USER_TZ):
        self.reminders_file = Path(data_dir) / "reminders.json"
        self.clock = clock
        self.tz = tz

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self.clock(), self.tz).isoformat()

    def load(self) -> List[Dict[str, Any]]:
        """Load reminders from JSON file."""
        if not self.reminders_file.exists():
            return []
        try:
            with open(self.reminders_file, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"Failed to load reminders file: {e}")
            return []

    def save(self, reminders: List[Dict[str, Any]]):
        """Save reminders to JSON file."""
        self.reminders_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.reminders_file, "w", encoding="utf-8") as f:
            json.dump(reminders, f, indent=2, ensure_ascii=False, default=str)

    def add(self, contact_id: str, task: str, seconds: float) -> Dict[str, Any]:
        reminders = self.load()
        next_id = max((int(r.get("id", 0)) for r in reminders), default=0) + 1
        now = self.clock()
        reminder = {
            "id": next_id,
            "contact_id": contact_id,
            "task": task,
            "duration_seconds": seconds,
            "due_at": now + seconds,
            "remind_at": datetime.fromtimestamp(now + seconds, self.tz).isoformat(),
            "created_at": self._now_iso(),
            "status": "pending",
        }
        reminders.append(reminder)
        self.save(reminders)
        logger.info(f"⏰ Reminder #{next_id} set for {contact_id} in {format_duration(seconds)}")
        return reminder

    def pending(self, contact_id: Optional[str] = None) -> List[Dict[str, Any]]:
        items = [r for r in self.load() if r.get("status") == "pending"]
        if contact_id is not None:
            items = [r for r in items if r.get("contact_id") == contact_id]
        return sorted(items, key=lambda r: r.get("due_at", 0))

    def cancel(self, contact_id: str, reminder_id: int) -> Tuple[str, Optional[Dict[str, Any]]]:
        """Cancel a pending reminder.

        Returns:
            ("cancelled" | "not_found" | "forbidden", reminder)
        """
        reminders = self.load()
        for r in reminders:
            if int(r.get("id", 0)) == reminder_id and r.get("status") == "pending":
                if r.get("contact_id") != contact_id:
                    return "forbidden", r
                r["status"] = "cancelled"
                r["cancelled_at"] = self._now_iso()
                self.save(reminders)
                logger.info(f"Reminder cancelled: #{reminder_id}")
                return "cancelled", r
        return "not_found", None

    def due(self) -> List[Dict[str, Any]]:
        now = self.clock()
        return [r for r in self.pending() if r.get("due_at", 0) <= now]

    def mark_fired(self, reminder_id: int):
        reminders = self.load()
        for r in reminders:
            if int(r.get("id", 0)) == reminder_id:
                r["status"] = "fired"
                r["fired_at"] = self._now_iso()
        self.save(reminders)

    def cleanup(self, older_than_seconds: float = 30 * 86400) -> int:
        """Remove fired/cancelled reminders older than the cutoff."""
        reminders = self.load()
        cutoff = self.clock() - older_than_seconds
        kept = [r for r in reminders if r.get("status") == "pending" or r.get("due_at", 0) > cutoff]
        removed = len(reminders) - len(kept)
        if removed:
            self.save(kept)
            logger.info(f"Cleaned up {removed} old reminders")
        return removed


class ReminderHandler(BaseHandler):
    """Natural-language reminders."""

    tag = HandlerTag.REMINDER
    description = "Set, list and cancel reminders"

    def __init__(self, book: ReminderBook):
        self.book = book

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        try:
            return self.result(self.handle(bundle.text, bundle.sender_id), is_quick_response=True)
        except OSError as e:
            raise HandlerError(f"reminder storage failed: {e}") from e

    def handle(self, text: str, sender: str) -> str:
        text = (text or "").strip()
        if _LIST.search(text):
            return self.list_reminders(sender)

        match = _CANCEL.search(text)
        if match:
            return self.cancel_reminder(sender, int(match.group(1)))

        seconds, task = parse_reminder(text)
        if not seconds or seconds < MIN_SECONDS:
            return USAGE
        if seconds > MAX_SECONDS:
            return "⏰ Max reminder duration is 24 hours. Set a shorter reminder?"

        reminder = self.book.add(sender, task or "your reminder!", seconds)
        rid = reminder["id"]
        return (
            f"⏰ *Reminder set!*\n📝 {reminder['task']}\n⏳ In {format_duration(seconds)}\n🆔 #{rid}\n\n"
            f"_Send \"cancel reminder #{rid}\" to cancel_"
        )

    def list_reminders(self, sender: str) -> str:
        pending = self.book.pending(sender)
        if not pending:
            return "⏰ No active reminders! Set one with:\n_remind me in 30 min to take a break_"
        now = self.book.clock()
        lines = [
            f"#{r['id']}: {r['task']} (in {format_duration(max(0.0, r['due_at'] - now))})"
            for r in pending
        ]
        return "⏰ *Active Reminders:*\n\n" + "\n".join(lines) + "\n\n_Send \"cancel reminder #ID\" to cancel_"

    def cancel_reminder(self, sender: str, reminder_id: int) -> str:
        status, reminder = self.book.cancel(sender, reminder_id)
        if status == "not_found":
            return f"⏰ Reminder #{reminder_id} not found. Send \"list reminders\" to see active ones."
        if status == "forbidden":
            return "⏰ That reminder doesn't belong to you."
        return f"✅ Reminder #{reminder_id} cancelled: {reminder['task']}"
