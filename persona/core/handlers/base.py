"""Base handler interface."""

import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

from ..types import ContextBundle, HandlerResult, HandlerTag


class BaseHandler(ABC):
    """Abstract base class for all handlers."""

    tag: HandlerTag
    description: str = ""

    @abstractmethod
    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        """Turn a context bundle into a response.

        Args:
            bundle: Immutable per-message context

        Returns:
            HandlerResult, or None when there is no usable result

        Raises:
            HandlerError: Provider failure or timeout
        """
        pass

    def result(self, response: str, **kwargs) -> HandlerResult:
        return HandlerResult(response=response, source=self.tag.value, **kwargs)


class TTLCache:
    """Small time-bounded cache for provider results."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.time, max_entries: int = 100):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self.clock() - stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any):
        self._entries[key] = (self.clock(), value)
        if len(self._entries) > self.max_entries:
            # Oldest insertion goes first
            del self._entries[next(iter(self._entries))]

    def drop_expired(self) -> int:
        now = self.clock()
        stale = [k for k, (stored_at, _) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
