"""YouTube handler: video recommendations as findings.

Uses the YouTube Data API v3 when a key is configured; otherwise the
findings are a YouTube search-results link.
"""

import re
import time
import logging
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote_plus

import httpx

from ..types import ContextBundle, HandlerError, HandlerResult, HandlerTag
from .base import BaseHandler, TTLCache

logger = logging.getLogger(__name__)

YOUTUBE_API = "https://www.googleapis.com/youtube/v3/search"
CACHE_TTL_SECONDS = 1800
MAX_VIDEOS = 3

_ADDRESSING = re.compile(r"\b(manthan|bot|bro|bhai|yaar|dude)\b[,:]?\s*", re.IGNORECASE)
_COMMAND = re.compile(
    r"\b(search|find|show|recommend|suggest|play)\s*(me\s*)?(a\s*|some\s*)?(youtube\s*|yt\s*)?"
    r"(video|videos|vid)?\s*(on|for|about|of)?\s*",
    re.IGNORECASE,
)
_LEFTOVER = re.compile(r"\b(youtube|yt|videos?|on youtube)\b", re.IGNORECASE)
_POLITENESS = re.compile(r"\b(can you|could you|please|pls)\b\s*", re.IGNORECASE)


def clean_query(text: str) -> str:
    query = _ADDRESSING.sub("", text or "")
    query = _POLITENESS.sub("", query)
    query = _COMMAND.sub("", query)
    query = _LEFTOVER.sub("", query)
    query = re.sub(r"[?!.@]+", "", query)
    return re.sub(r"\s+", " ", query).strip()


def search_link(query: str) -> str:
    return f"https://www.youtube.com/results?search_query={quote_plus(query)}"


class YouTubeHandler(BaseHandler):
    """Find videos and hand them to the chat handler."""

    tag = HandlerTag.YOUTUBE
    description = "YouTube video recommendations"

    def __init__(self, api_key: Optional[str] = None, timeout: float = 8.0, clock: Callable[[], float] = time.time):
        self.api_key = api_key
        self.timeout = timeout
        self.cache = TTLCache(CACHE_TTL_SECONDS, clock=clock)
        logger.info(f"📹 YouTube handler initialized {'(API key)' if api_key else '(search links)'}")

    async def search_videos(self, query: str) -> List[Dict[str, Any]]:
        """YouTube Data API v3 search."""
        params = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": str(MAX_VIDEOS),
            "key": self.api_key,
            "safeSearch": "moderate",
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(YOUTUBE_API, params=params)
            response.raise_for_status()
            data = response.json()

        videos = []
        for item in data.get("items", []):
            video_id = (item.get("id") or {}).get("videoId")
            snippet = item.get("snippet") or {}
            if not video_id:
                continue
            videos.append({
                "title": snippet.get("title", ""),
                "channel": snippet.get("channelTitle", ""),
                "url": f"https://youtu.be/{video_id}",
            })
        return videos

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        query = clean_query(bundle.text)
        if len(query) < 2:
            return None

        cached = self.cache.get(query.lower())
        if cached:
            return self.result(cached)

        videos: List[Dict[str, Any]] = []
        if self.api_key:
            try:
                videos = await self.search_videos(query)
            except httpx.HTTPError as e:
                raise HandlerError(f"youtube search failed: {e}") from e

        if not videos:
            findings = f"YouTube search for \"{query}\": {search_link(query)}"
        else:
            lines = [f"YouTube videos for \"{query}\":"]
            for i, video in enumerate(videos, 1):
                lines.append(f"{i}. {video['title']} by {video['channel']} ({video['url']})")
            findings = "\n".join(lines)
            logger.info(f"📹 YouTube '{query}': {len(videos)} videos")

        self.cache.set(query.lower(), findings)
        return self.result(findings)
