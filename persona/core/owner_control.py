"""Owner control: per-chat takeover, auto-reply modes and owner commands.

When the account owner types in a chat the bot stays silent there for a
short window. Owner slash-commands switch the process-wide auto-reply mode
or report stats.
"""

import re
import time
import logging
from typing import Callable, Dict, Optional, Set

from .types import AutoReplyMode

logger = logging.getLogger(__name__)

DEFAULT_AWAY_MESSAGE = "Hey! I'm away right now. Will get back to you soon 🙏"

HELP_TEXT = (
    "🛠️ *Owner Commands*\n"
    "• /pause, /bot off — silence the bot in this chat\n"
    "• /resume, /bot on — let the bot reply again\n"
    "• /away [msg] — away mode with an auto-reply\n"
    "• /auto <msg> — auto-reply with a custom message\n"
    "• /busy <duration> — busy for a while, auto-resumes\n"
    "• /dnd — ignore everyone\n"
    "• /online — back to normal\n"
    "• /status — current mode\n"
    "• /stats — memory and analytics numbers\n"
    "• /digest — today's conversations"
)

_HOURS = re.compile(r"(\d+)\s*(?:hours|hour|hrs|hr|h)\b")
_MINUTES = re.compile(r"(\d+)\s*(?:minutes|minute|mins|min|m)\b")
_HALF_HOUR = re.compile(r"half\s*(?:an\s*)?hour")
_BARE_NUMBER = re.compile(r"^\s*(\d+)\s*$")


def parse_duration(text: str) -> Optional[float]:
    """Parse ``2h``, ``1 hour 30 min``, ``45`` (minutes) or ``half an hour``.

    Returns:
        Duration in seconds, or None when nothing parseable was found
    """
    t = (text or "").lower().strip()
    if _HALF_HOUR.search(t):
        return 1800.0

    seconds = 0
    hours = _HOURS.search(t)
    if hours:
        seconds += int(hours.group(1)) * 3600
    minutes = _MINUTES.search(t)
    if minutes:
        seconds += int(minutes.group(1)) * 60
    if not seconds:
        bare = _BARE_NUMBER.match(t)
        if bare:
            seconds = int(bare.group(1)) * 60
    return float(seconds) if seconds > 0 else None


def format_duration(seconds: float) -> str:
    """Format seconds as ``30s``, ``45m``, ``2h`` or ``1h 30m``."""
    seconds = max(0, int(round(seconds)))
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    hours, rest = divmod(seconds, 3600)
    minutes = round(rest / 60)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    return f"{hours}h {minutes}m" if minutes else f"{hours}h"


class OwnerTakeover:
    """Per-chat silence window opened by owner activity."""

    def __init__(
        self,
        silence_window: float = 30.0,
        gc_after: float = 300.0,
        clock: Callable[[], float] = time.time,
    ):
        self.silence_window = silence_window
        self.gc_after = gc_after
        self.clock = clock
        self._last_activity: Dict[str, float] = {}
        self._paused: Set[str] = set()

    def update(self, chat_id: str):
        """Open or refresh the silence window for ``chat_id``."""
        self._last_activity[chat_id] = self.clock()
        logger.info(f"👤 Owner active in {chat_id}, bot silent for {self.silence_window:.0f}s")

    def pause(self, chat_id: str):
        self._paused.add(chat_id)

    def release(self, chat_id: str):
        self._paused.discard(chat_id)
        self._last_activity.pop(chat_id, None)

    def is_paused(self, chat_id: str) -> bool:
        return chat_id in self._paused

    def remaining(self, chat_id: str) -> float:
        """Seconds left in the silence window (0 when not active)."""
        last = self._last_activity.get(chat_id)
        if last is None:
            return 0.0
        return max(0.0, self.silence_window - (self.clock() - last))

    def is_owner_handling(self, chat_id: str) -> bool:
        return chat_id in self._paused or self.remaining(chat_id) > 0

    def gc(self) -> int:
        """Drop takeover records idle longer than ``gc_after``."""
        now = self.clock()
        stale = [cid for cid, last in self._last_activity.items() if now - last > self.gc_after]
        for chat_id in stale:
            del self._last_activity[chat_id]
        return len(stale)


class AutoReplyState:
    """Process-wide auto-reply mode."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._mode = AutoReplyMode.ONLINE
        self.message: Optional[str] = None
        self.busy_until: Optional[float] = None

    @property
    def mode(self) -> AutoReplyMode:
        # Busy expires on read
        if self._mode == AutoReplyMode.BUSY and self.busy_until is not None and self.clock() > self.busy_until:
            logger.info("⏰ Busy period over, back online")
            self.set_online()
        return self._mode

    def set_online(self):
        self._mode = AutoReplyMode.ONLINE
        self.message = None
        self.busy_until = None

    def set_away(self, message: Optional[str] = None):
        self._mode = AutoReplyMode.AWAY
        self.message = message or DEFAULT_AWAY_MESSAGE
        self.busy_until = None

    def set_dnd(self):
        self._mode = AutoReplyMode.DND
        self.message = None
        self.busy_until = None

    def set_busy(self, seconds: float):
        self._mode = AutoReplyMode.BUSY
        self.busy_until = self.clock() + seconds
        self.message = f"I'm busy right now. Will be available in {format_duration(seconds)} 🙏"

    def canned_reply(self) -> Optional[str]:
        """Canned text for away/busy, None otherwise."""
        if self.mode in (AutoReplyMode.AWAY, AutoReplyMode.BUSY):
            return self.message or DEFAULT_AWAY_MESSAGE
        return None

    def status_text(self) -> str:
        mode = self.mode
        status = f"🕒 *Bot Status:* {mode.value.upper()}"
        if self.message:
            status += f'\n📝 Auto-reply: "{self.message}"'
        if mode == AutoReplyMode.BUSY and self.busy_until is not None:
            status += f"\n⏳ Busy for: {format_duration(self.busy_until - self.clock())}"
        return status


class OwnerCommands:
    """Slash-commands typed by the owner."""

    def __init__(self, takeover: OwnerTakeover, auto_reply: AutoReplyState, memory=None, analytics=None, audit_logger=None):
        self.takeover = takeover
        self.auto_reply = auto_reply
        self.memory = memory
        self.analytics = analytics
        self.audit_logger = audit_logger

    def handle(self, text: str, chat_id: str) -> Optional[str]:
        """Run an owner command.

        Args:
            text: Raw owner text starting with ``/``
            chat_id: Chat the command was typed in

        Returns:
            Reply text, or None when ``text`` is not a known command
        """
        raw = (text or "").strip()
        cmd = raw.lower()
        if not cmd.startswith("/"):
            return None

        reply = self._dispatch(cmd, raw, chat_id)
        if reply is not None:
            logger.info(f"🛠️ Owner command {cmd.split()[0]} in {chat_id}")
            if self.audit_logger:
                self.audit_logger.log_owner_command(cmd, chat_id, self.auto_reply.mode.value)
        return reply

    def _dispatch(self, cmd: str, raw: str, chat_id: str) -> Optional[str]:
        if cmd in ("/pause", "/bot off"):
            self.takeover.pause(chat_id)
            return "⏸️ Bot paused for this chat"
        if cmd in ("/resume", "/bot on"):
            self.takeover.release(chat_id)
            return "▶️ Bot resumed for this chat"
        if cmd == "/help":
            return HELP_TEXT
        if cmd == "/stats":
            return self._stats()
        if cmd == "/digest":
            return self.memory.daily_digest() if self.memory else "No conversations today."
        if cmd in ("/online", "/back", "/normal"):
            self.auto_reply.set_online()
            return "✅ Bot is back *online*! Responding normally."
        if cmd == "/dnd":
            self.auto_reply.set_dnd()
            return "🔇 *DND mode ON*. Bot will ignore all messages.\nSend /online to resume."
        if cmd == "/status":
            return self.auto_reply.status_text()

        # Keep the owner's casing for custom messages
        if cmd == "/away" or cmd.startswith("/away "):
            message = raw[len("/away"):].strip()
            self.auto_reply.set_away(message or None)
            if message:
                return f'🌙 *Away mode ON*\nAuto-reply: "{self.auto_reply.message}"\nSend /online to resume.'
            return "🌙 *Away mode ON*\nUsing default away message.\nSend /online to resume."
        if cmd.startswith("/auto "):
            message = raw[len("/auto"):].strip()
            self.auto_reply.set_away(message)
            return f'🤖 *Auto-reply ON*\nMessage: "{self.auto_reply.message}"\nSend /online to stop.'
        if cmd == "/busy" or cmd.startswith("/busy "):
            seconds = parse_duration(cmd[len("/busy"):])
            if not seconds:
                return "⚠️ Invalid duration. Try: /busy 2 hours"
            self.auto_reply.set_busy(seconds)
            return (
                f"⏰ *Busy mode ON* for {format_duration(seconds)}\n"
                "Auto-reply enabled. Will auto-resume.\nSend /online to resume early."
            )
        return None

    def _stats(self) -> str:
        lines = ["📊 *Persona Stats*"]
        if self.memory:
            stats = self.memory.get_stats()
            lines.append(f"• Contacts: {stats['total_persons']}")
            lines.append(f"• Messages: {stats['total_messages']}")
            lines.append(f"• Messages today: {stats['messages_today']}")
        if self.analytics:
            lines.append(self.analytics.summary_text())
        lines.append(f"• Mode: {self.auto_reply.mode.value}")
        return "\n".join(lines)
