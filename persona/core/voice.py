"""Voice replies: text-to-speech through the Google Translate TTS endpoint."""

import re
import time
import logging
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from .annotator.language import count_hinglish_words
from .types import PersonaError

logger = logging.getLogger(__name__)

TTS_URL = "https://translate.google.com/translate_tts"
CHUNK_CHARS = 200
MAX_AUDIO_BYTES = 16 * 1024 * 1024
TEMP_MAX_AGE_SECONDS = 3600
AUDIO_MIME = "audio/mpeg"
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

VOICE_REQUEST = re.compile(
    r"\b(voice|audio|bol|bolo|sun|suna|speak|say it|read it|padhke suna|voice mein|voice me|record)\b",
    re.IGNORECASE,
)
_EMOJI = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF\U0001F1E0-\U0001F1FF"
    "☀-⛿✀-➿︀-️\U0001F900-\U0001F9FF‍⃣\U000E0020-\U000E007F]"
)
_DEVANAGARI = re.compile("[ऀ-ॿ]")


def is_voice_request(text: str) -> bool:
    return bool(VOICE_REQUEST.search(text or ""))


def clean_for_tts(text: str) -> str:
    text = _EMOJI.sub("", text or "")
    text = re.sub(r"[*_~`]+", "", text)
    text = re.sub(r"https?://\S+", "", text)
    text = re.sub(r"[\n\r]+", ". ", text)
    return re.sub(r"\s+", " ", text).strip()


def tts_language(text: str) -> str:
    if _DEVANAGARI.search(text or ""):
        return "hi"
    if count_hinglish_words(text) >= 3:
        return "hi"
    return "en"


def split_text(text: str, max_len: int = CHUNK_CHARS) -> List[str]:
    """Chunk at sentence, comma or space boundaries past half the budget."""
    chunks = []
    remaining = text.strip()
    while remaining:
        if len(remaining) <= max_len:
            chunks.append(remaining)
            break
        break_at = max_len
        for mark in (".", ",", " "):
            pos = remaining.rfind(mark, 0, max_len)
            if pos > max_len * 0.5:
                break_at = pos + 1
                break
        chunk = remaining[:break_at].strip()
        if chunk:
            chunks.append(chunk)
        remaining = remaining[break_at:].strip()
    return chunks


class VoiceEngine:
    """Synthesizes voice notes and keeps the temp directory tidy."""

    def __init__(
        self,
        temp_dir: str = "./data/temp",
        timeout: float = 20.0,
        clock: Callable[[], float] = time.time,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.temp_dir = Path(temp_dir)
        self.timeout = timeout
        self.clock = clock
        self.transport = transport
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        logger.info("🎤 Voice engine initialized (Google TTS)")

    async def _fetch_chunk(self, client: httpx.AsyncClient, chunk: str, language: str, slow: bool) -> bytes:
        params = {
            "ie": "UTF-8",
            "q": chunk,
            "tl": language,
            "total": "1",
            "idx": "0",
            "textlen": str(len(chunk)),
            "client": "tw-ob",
            "prev": "input",
            "ttsspeed": "0.24" if slow else "1",
        }
        response = await client.get(TTS_URL, params=params)
        response.raise_for_status()
        return response.content

    async def synthesize(self, text: str, language: Optional[str] = None, slow: bool = False) -> bytes:
        """Turn text into one MP3 buffer.

        Raises:
            PersonaError: Nothing speakable, provider failure or size cap exceeded
        """
        clean = clean_for_tts(text)
        if len(clean) < 2:
            raise PersonaError("Text too short for TTS")
        language = language or tts_language(clean)
        chunks = split_text(clean)

        audio = b""
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": USER_AGENT},
                transport=self.transport,
            ) as client:
                for chunk in chunks:
                    audio += await self._fetch_chunk(client, chunk, language, slow)
                    if len(audio) > MAX_AUDIO_BYTES:
                        raise PersonaError("Voice clip exceeds 16 MiB")
        except httpx.HTTPError as e:
            raise PersonaError(f"TTS request failed: {e}") from e

        if not audio:
            raise PersonaError("No audio generated")

        path = self.temp_dir / f"voice_{int(self.clock() * 1000)}.mp3"
        path.write_bytes(audio)
        logger.info(f"🎤 Voice clip ready ({len(chunks)} chunks, {len(audio)} bytes, {language})")
        return audio

    def sweep(self) -> int:
        """Delete temp audio files older than one hour."""
        removed = 0
        now = self.clock()
        for path in self.temp_dir.glob("*"):
            try:
                if path.is_file() and now - path.stat().st_mtime > TEMP_MAX_AGE_SECONDS:
                    path.unlink()
                    removed += 1
            except OSError as e:
                logger.debug(f"Temp sweep skipped {path.name}: {e}")
        if removed:
            logger.info(f"🧹 Removed {removed} old temp audio files")
        return removed
