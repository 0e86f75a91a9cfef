"""Analytics sink: in-process counters fed once per handled envelope."""

import time
import logging
from collections import Counter, deque
from typing import Any, Callable, Dict, List, Optional

from .timezone import USER_TZ, local_now

logger = logging.getLogger(__name__)

RESPONSE_WINDOW = 1000
DAILY_ROWS = 30


class Analytics:
    """Hourly histogram, per-sender/intent/handler counters and response times."""

    def __init__(self, clock: Callable[[], float] = time.time, tz=USER_TZ):
        self.clock = clock
        self.tz = tz
        self.start_time = clock()
        self.hourly = [0] * 24
        self.daily: deque = deque(maxlen=DAILY_ROWS)
        self.senders: Counter = Counter()
        self.intents: Counter = Counter()
        self.handlers: Counter = Counter()
        self.response_times: deque = deque(maxlen=RESPONSE_WINDOW)
        self.total_processed = 0
        self._current_day = local_now(tz, clock()).date()

    def _rotate(self, now) -> None:
        if now.date() != self._current_day:
            self.daily.append({"date": self._current_day.isoformat(), "count": sum(self.hourly)})
            self.hourly = [0] * 24
            self._current_day = now.date()

    def record(
        self,
        sender_id: Optional[str] = None,
        intent: Optional[str] = None,
        handler_tag: Optional[str] = None,
        response_ms: Optional[float] = None,
    ):
        """Record one processed inbound envelope."""
        now = local_now(self.tz, self.clock())
        self._rotate(now)
        self.hourly[now.hour] += 1
        self.total_processed += 1
        if sender_id:
            self.senders[sender_id] += 1
        if intent:
            self.intents[intent] += 1
        if handler_tag:
            self.handlers[handler_tag] += 1
        if response_ms is not None:
            self.response_times.append(response_ms)

    def average_response_ms(self) -> int:
        if not self.response_times:
            return 0
        return round(sum(self.response_times) / len(self.response_times))

    def snapshot(self) -> Dict[str, Any]:
        """Read-only copy of every counter."""
        self._rotate(local_now(self.tz, self.clock()))
        return {
            "uptime_seconds": round(self.clock() - self.start_time),
            "total_processed": self.total_processed,
            "avg_response_ms": self.average_response_ms(),
            "hourly_messages": list(self.hourly),
            "daily_messages": list(self.daily),
            "top_senders": [{"id": k, "count": v} for k, v in self.senders.most_common(10)],
            "top_intents": [{"intent": k, "count": v} for k, v in self.intents.most_common(10)],
            "handler_usage": [{"handler": k, "count": v} for k, v in self.handlers.most_common()],
            "current_hour": local_now(self.tz, self.clock()).hour,
        }

    def summary_text(self) -> str:
        """Short text block for the owner's /stats command."""
        top_intents: List[str] = [f"{k} ({v})" for k, v in self.intents.most_common(3)]
        handler_usage: List[str] = [f"{k} ({v})" for k, v in self.handlers.most_common(5)]
        return (
            f"• Processed: {self.total_processed}\n"
            f"• Top intents: {', '.join(top_intents) or 'none yet'}\n"
            f"• Handlers: {', '.join(handler_usage) or 'none yet'}\n"
            f"• Avg response: {self.average_response_ms()}ms"
        )
