"""Link preview handler.

Fetches the first URL in the message and replies with its title and
description. When the page can't be fetched, the preview is built from the
URL itself.
"""

import re
import html
import time
import logging
from typing import Callable, Dict, Optional
from urllib.parse import unquote, urlparse

import httpx

from ..types import ContextBundle, HandlerResult, HandlerTag
from .base import BaseHandler, TTLCache

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s]+", re.IGNORECASE)
CACHE_TTL_SECONDS = 3600
MAX_READ_BYTES = 200 * 1024
USER_AGENT = "Mozilla/5.0 (compatible; PersonaBot/1.0)"

_OG_TITLE = [
    re.compile(r"<meta[^>]*property=[\"']og:title[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*property=[\"']og:title[\"']", re.IGNORECASE),
]
_TITLE_TAG = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_DESCRIPTION = [
    re.compile(r"<meta[^>]*property=[\"']og:description[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*property=[\"']og:description[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*name=[\"']description[\"'][^>]*content=[\"']([^\"']+)[\"']", re.IGNORECASE),
    re.compile(r"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*name=[\"']description[\"']", re.IGNORECASE),
]


def domain_of(url: str) -> str:
    host = urlparse(url).hostname or "unknown"
    return host[4:] if host.startswith("www.") else host


def extract_title(page: str) -> Optional[str]:
    for pattern in _OG_TITLE:
        match = pattern.search(page)
        if match:
            return html.unescape(match.group(1)).strip()[:100]
    match = _TITLE_TAG.search(page)
    if match:
        return html.unescape(match.group(1)).strip()[:100]
    return None


def extract_description(page: str) -> Optional[str]:
    for pattern in _DESCRIPTION:
        match = pattern.search(page)
        if match:
            return html.unescape(match.group(1)).strip()[:200]
    return None


def preview_from_url(url: str) -> Dict[str, Optional[str]]:
    """Title from the last meaningful path segment, e.g. ``/blog/my-post`` -> ``My Post``."""
    parsed = urlparse(url)
    segments = [s for s in unquote(parsed.path).split("/") if s]
    title = None
    if segments:
        words = re.sub(r"\.[a-z0-9]{1,5}$", "", segments[-1], flags=re.IGNORECASE)
        words = re.sub(r"[-_+]+", " ", words).strip()
        if words:
            title = words.title()
    return {"title": title, "description": None, "domain": domain_of(url)}


def format_preview(preview: Dict[str, Optional[str]], is_group: bool) -> str:
    title = preview.get("title")
    description = preview.get("description")
    domain = preview.get("domain") or "unknown"
    if is_group:
        msg = f"🔗 *{title or domain}*"
        if description:
            msg += f"\n{description[:80]}..."
        return msg

    msg = "🔗 *Link Preview*\n"
    if title:
        msg += f"📌 *{title}*\n"
    if description:
        msg += f"📝 {description}\n"
    msg += f"🌐 {domain}"
    return msg


class LinkHandler(BaseHandler):
    """Preview the first link in a message."""

    tag = HandlerTag.LINK
    description = "Link preview from page metadata"

    def __init__(
        self,
        timeout: float = 8.0,
        clock: Callable[[], float] = time.time,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize link handler.

        Args:
            timeout: Seconds allowed for one fetch
            clock: Epoch-seconds clock for the preview cache
            transport: Optional httpx transport (tests mount a mock here)
        """
        self.timeout = timeout
        self.transport = transport
        self.cache = TTLCache(CACHE_TTL_SECONDS, clock=clock)

    async def fetch_preview(self, url: str) -> Optional[Dict[str, Optional[str]]]:
        """Fetch page metadata, reading at most ``MAX_READ_BYTES``."""
        headers = {"User-Agent": USER_AGENT, "Accept": "text/html"}
        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as client:
            async with client.stream("GET", url, headers=headers) as response:
                if response.status_code >= 400:
                    return None
                content_type = response.headers.get("content-type", "")
                if "text/html" not in content_type:
                    return {
                        "title": domain_of(url),
                        "description": f"📄 {content_type.split(';')[0] or 'unknown'} file",
                        "domain": domain_of(url),
                    }
                body = b""
                async for chunk in response.aiter_bytes():
                    body += chunk
                    if len(body) >= MAX_READ_BYTES:
                        break

        page = body[:MAX_READ_BYTES].decode("utf-8", errors="ignore")
        title, description = extract_title(page), extract_description(page)
        if not title and not description:
            return None
        return {"title": title, "description": description, "domain": domain_of(url)}

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        match = URL_PATTERN.search(bundle.text or "")
        if not match:
            return None
        url = match.group(0).rstrip(").,!?'\"")

        cached = self.cache.get(url)
        if cached:
            return self.result(cached, is_quick_response=True)

        try:
            preview = await self.fetch_preview(url)
        except httpx.HTTPError as e:
            logger.warning(f"🔗 Link fetch failed for {domain_of(url)}: {e}")
            preview = None

        if preview is None:
            preview = preview_from_url(url)
        response = format_preview(preview, bundle.is_group)
        self.cache.set(url, response)
        return self.result(response, is_quick_response=True)
