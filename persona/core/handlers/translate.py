"""Translation handler backed by the LLM client."""

import re
import logging
from typing import Optional, Tuple
from urllib.parse import quote

from ...integrations.model_router import translate_config
from ..types import ContextBundle, HandlerResult, HandlerTag, LLMError
from .base import BaseHandler
from .chat import strip_urls

logger = logging.getLogger(__name__)

# name -> (display name, Google Translate code)
LANGUAGES = {
    "hindi": ("Hindi", "hi"), "english": ("English", "en"), "spanish": ("Spanish", "es"),
    "french": ("French", "fr"), "german": ("German", "de"), "japanese": ("Japanese", "ja"),
    "korean": ("Korean", "ko"), "chinese": ("Chinese (Simplified)", "zh-CN"), "arabic": ("Arabic", "ar"),
    "marathi": ("Marathi", "mr"), "tamil": ("Tamil", "ta"), "telugu": ("Telugu", "te"),
    "bengali": ("Bengali", "bn"), "gujarati": ("Gujarati", "gu"), "punjabi": ("Punjabi", "pa"),
    "urdu": ("Urdu", "ur"), "portuguese": ("Portuguese", "pt"), "russian": ("Russian", "ru"),
    "italian": ("Italian", "it"), "dutch": ("Dutch", "nl"), "turkish": ("Turkish", "tr"),
    "thai": ("Thai", "th"), "vietnamese": ("Vietnamese", "vi"), "indonesian": ("Indonesian", "id"),
    "malay": ("Malay", "ms"), "kannada": ("Kannada", "kn"), "malayalam": ("Malayalam", "ml"),
    "odia": ("Odia", "or"), "assamese": ("Assamese", "as"), "nepali": ("Nepali", "ne"),
    "sinhala": ("Sinhala", "si"), "swahili": ("Swahili", "sw"),
}

USAGE = (
    "🌐 I can translate! Try:\n"
    "• _translate hello to Hindi_\n"
    "• _translate namaste to English_\n"
    "• _translate bonjour to Japanese_"
)

_TO_LANG = re.compile(r"translate\s+(.+?)\s+(?:to|in|into)\s+(\w+)\s*[?.!]*$", re.IGNORECASE | re.DOTALL)
_KO_MEIN = re.compile(r"(.+?)\s+(?:ko|ka|ki)\s+(\w+)\s+(?:mein|me|main)\s+(?:translate|convert)", re.IGNORECASE | re.DOTALL)
_BARE = re.compile(r"translate\s+(.+)", re.IGNORECASE | re.DOTALL)
_IN_LANG = re.compile(r"(.+?)\s+in\s+(\w+)\s*[?.!]*$", re.IGNORECASE | re.DOTALL)
_DEVANAGARI = re.compile("[ऀ-ॿ]")
_ADDRESSING = re.compile(r"^\s*@?(manthan|bot)\b[,:]?\s*", re.IGNORECASE)

TRANSLATE_PROMPT = (
    "Translate the following text to {lang}. Return ONLY the translated text, nothing else. "
    "No explanation, no notes.\n\nText: \"{text}\""
)


def find_language(word: str) -> Optional[Tuple[str, str]]:
    return LANGUAGES.get((word or "").lower())


def parse_request(message: str) -> Optional[Tuple[str, Tuple[str, str]]]:
    """Split a request into (text, (language, code)); None when unparseable."""
    message = _ADDRESSING.sub("", (message or "").strip())

    match = _TO_LANG.search(message)
    if match and find_language(match.group(2)):
        return match.group(1).strip(), find_language(match.group(2))

    match = _KO_MEIN.search(message)
    if match and find_language(match.group(2)):
        return match.group(1).strip(), find_language(match.group(2))

    match = _BARE.search(message)
    if match:
        text = match.group(1).strip()
        # Devanagari goes to English, everything else to Hindi
        if _DEVANAGARI.search(text):
            return text, LANGUAGES["english"]
        return text, LANGUAGES["hindi"]

    match = _IN_LANG.search(message)
    if match and find_language(match.group(2)):
        return match.group(1).strip(), find_language(match.group(2))
    return None


def translate_link(text: str, code: str) -> str:
    return f"https://translate.google.com/?sl=auto&tl={code}&text={quote(text)}"


class TranslateHandler(BaseHandler):
    """Translate text to a named language."""

    tag = HandlerTag.TRANSLATE
    description = "Translation between 32 languages"

    def __init__(self, llm, timeout: float = 15.0):
        self.llm = llm
        self.timeout = timeout

    async def process(self, bundle: ContextBundle) -> Optional[HandlerResult]:
        parsed = parse_request(bundle.text)
        if not parsed:
            return self.result(USAGE, is_quick_response=True)

        text, (lang, code) = parsed
        prompt = TRANSLATE_PROMPT.format(lang=lang, text=text)
        try:
            translated = await self.llm.generate(
                None, [{"role": "user", "content": prompt}], translate_config(), timeout=self.timeout
            )
        except LLMError as e:
            logger.warning(f"🌐 Translation via LLM failed, sending link: {e}")
            return self.result(f"🌐 Translation link: {translate_link(text, code)}", is_quick_response=True)

        translated = strip_urls(translated).strip("\"'").strip()
        if bundle.is_group:
            response = f"🌐 *{lang}:* {translated}"
        else:
            response = f"🌐 *Translation to {lang}:*\n\n📝 Original: {text}\n✅ Translated: {translated}"
        return self.result(response, is_quick_response=True)
