"""Handler registry and dispatcher."""

import time
import logging
from typing import Any, Dict, List, Optional

from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .base import BaseHandler

logger = logging.getLogger(__name__)


class HandlerRegistry:
    """Registry of handlers keyed by tag, with per-handler performance stats."""

    def __init__(self):
        self.handlers: Dict[HandlerTag, BaseHandler] = {}
        self._handler_stats: Dict[str, Dict[str, Any]] = {}

    def register(self, handler: BaseHandler):
        """Register a handler.

        Args:
            handler: Handler instance to register
        """
        self.handlers[handler.tag] = handler
        logger.info(f"Registered handler: {handler.tag.value}")

    def get_handler(self, tag: HandlerTag) -> Optional[BaseHandler]:
        return self.handlers.get(tag)

    def list_handlers(self) -> List[str]:
        return [tag.value for tag in self.handlers]

    async def dispatch(self, tag: HandlerTag, bundle: ContextBundle) -> HandlerResult:
        """Run one handler.

        Args:
            tag: Handler to run
            bundle: Context bundle

        Returns:
            Non-empty HandlerResult

        Raises:
            HandlerError: Unknown handler, provider failure, None or empty response
        """
        handler = self.get_handler(tag)
        if handler is None:
            raise HandlerError(f"No handler registered for {tag.value}")

        start = time.time()
        try:
            result = await handler.process(bundle)
        except HandlerError as e:
            self._record_handler_result(tag.value, False, time.time() - start, str(e))
            raise
        except Exception as e:
            self._record_handler_result(tag.value, False, time.time() - start, str(e))
            logger.error(f"Handler {tag.value} crashed: {e}", exc_info=True)
            raise HandlerError(f"{tag.value} failed: {e}") from e

        if result is None or not (result.response or "").strip():
            self._record_handler_result(tag.value, False, time.time() - start, "empty")
            raise HandlerError(f"{tag.value} returned no usable result")

        result.processing_ms = (time.time() - start) * 1000
        self._record_handler_result(tag.value, True, time.time() - start)
        return result

    def _record_handler_result(self, name: str, success: bool, latency: float, error: str = None):
        """Record handler execution result for performance tracking."""
        if name not in self._handler_stats:
            self._handler_stats[name] = {
                "total_calls": 0, "successes": 0, "failures": 0,
                "total_latency": 0.0, "consecutive_failures": 0, "last_error": None,
            }

        stats = self._handler_stats[name]
        stats["total_calls"] += 1
        stats["total_latency"] += latency

        if success:
            stats["successes"] += 1
            stats["consecutive_failures"] = 0
        else:
            stats["failures"] += 1
            stats["consecutive_failures"] += 1
            stats["last_error"] = error
            if stats["consecutive_failures"] >= 5:
                logger.warning(f"Handler {name} failed {stats['consecutive_failures']} times in a row")

    def get_handler_stats(self) -> Dict[str, Any]:
        summary = {}
        for name, stats in self._handler_stats.items():
            total = stats["total_calls"]
            if total == 0:
                continue
            summary[name] = {
                "success_rate": round(stats["successes"] / total * 100, 1),
                "avg_latency": round(stats["total_latency"] / total, 2),
                "total_calls": total,
                "last_error": stats["last_error"],
            }
        return summary
