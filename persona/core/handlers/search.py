"""Web search handler using DuckDuckGo (no API key required).

Produces findings (title, snippet, url) for the chat handler to weave into
a reply. When DuckDuckGo has nothing, the findings are a Google search link.
"""

import re
import time
import asyncio
import logging
from typing import Callable, Dict, List, Optional
from urllib.parse import quote_plus

from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .base import BaseHandler, TTLCache

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 600
MAX_RESULTS = 3

_ADDRESSING = re.compile(r"\b(manthan|bot|bro|dude|bhai|yaar)\b[,:]?\s*", re.IGNORECASE)
_COMMANDS = re.compile(r"\b(search(?: for| about)?|google(?: it| karo| kar)?|look(?: it)? up|find)\b", re.IGNORECASE)
_POLITENESS = re.compile(r"\b(please|pls|plz|can you|could you|will you)\b", re.IGNORECASE)
_PUNCTUATION = re.compile(r"[?!.@]+")


def clean_query(text: str) -> str:
    query = _ADDRESSING.sub("", text or "")
    query = _COMMANDS.sub("", query)
    query = _POLITENESS.sub("", query)
    query = _PUNCTUATION.sub("", query)
    return re.sub(r"\s+", " ", query).strip()


def google_link(query: str) -> str:
    return f"https://www.google.com/search?q={quote_plus(query)}"


def ddgs_text(query: str, max_results: int = MAX_RESULTS) -> List[Dict[str, str]]:
    """Blocking DuckDuckGo text search."""
    from duckduckgo_search import DDGS

    results = []
    with DDGS() as ddgs:
        for r in ddgs.text(query, max_results=max_results):
            results.append(r)
    return results


class SearchHandler(BaseHandler):
    """Search the web and hand the findings to the chat handler."""

    tag = HandlerTag.SEARCH
    description = "Web search via DuckDuckGo; returns findings with links"

    def __init__(
        self,
        timeout: float = 10.0,
        search_fn: Callable[[str, int], List[Dict[str, str]]] = ddgs_text,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize search handler.

        Args:
            timeout: Seconds allowed for one search
            search_fn: Blocking search function, run in a worker thread
            clock: Epoch-seconds clock for the result cache
        """
        self.timeout = timeout
        self.search_fn = search_fn
        self.cache = TTLCache(CACHE_TTL_SECONDS, clock=clock)

    @staticmethod
    def format_findings(query: str, results: List[Dict[str, str]]) -> str:
        lines = [f"Web results for \"{query}\":"]
        for i, r in enumerate(results[:MAX_RESULTS], 1):
            title = (r.get("title") or "No title").strip()
            snippet = (r.get("body") or "").strip()[:200]
            url = (r.get("href") or "").strip()
            line = f"{i}. {title}"
            if snippet:
                line += f" — {snippet}"
            if url:
                line += f" ({url})"
            lines.append(line)
        return "\n".join(lines)

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        query = clean_query(bundle.text)
        if len(query) < 3:
            return None

        cached = self.cache.get(query.lower())
        if cached:
            logger.info(f"🔍 Search cache hit for '{query}'")
            return self.result(cached)

        try:
            results = await asyncio.wait_for(
                asyncio.to_thread(self.search_fn, query, MAX_RESULTS),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise HandlerError(f"search timed out after {self.timeout}s") from e
        except Exception as e:
            raise HandlerError(f"search failed: {e}") from e

        if results:
            findings = self.format_findings(query, results)
            logger.info(f"🔍 Web search '{query}': {len(results)} results")
        else:
            findings = f"No direct results. Search link: {google_link(query)}"
            logger.info(f"🔍 Web search '{query}': no results, using search link")

        self.cache.set(query.lower(), findings)
        return self.result(findings)
