"""Outbound safety filter.

Runs after a handler produced a response and before it is humanized:
- Identity leak redaction (AI self-references, provider names)
- Technical leak redaction (API/server error chatter)
- Personal data redaction (long digit runs, email addresses)
- Sensitive-commitment deferral
"""

import re
import logging
from typing import List, Optional, Tuple

from .audit_logger import AuditLogger

logger = logging.getLogger(__name__)

DEFERRAL_PHRASE = "hmm, I'd rather not get into that over text. hit me up later and we can talk properly 🙏"
PLACEHOLDER = "let me think about that and get back to you 🤔"
MIN_RESPONSE_LENGTH = 2

_URL = re.compile(r"https?://\S+", re.IGNORECASE)


class SafetyFilter:
    """Pure response filter: (response, user_text, intent) -> response."""

    # Blatant identity leaks, always removed
    IDENTITY_PATTERNS = [
        r"\bas an ai\b",
        r"\bi(?:'m| am) (?:a |an )?(?:ai|artificial intelligence|bot|language model|llm|chatbot)\b",
        r"\bi(?:'m| am) not (?:a |an )?(?:real|actual) (?:person|human)\b",
        r"\bas a (?:large )?language model\b",
        r"\bmy (?:training|programming|creators|developers)\b",
        r"\bi (?:was|am) (?:created|made|built|trained|programmed) (?:by|at)\b",
        r"\b(?:openai|anthropic|google ai|deepmind|meta ai)\b",
    ]

    # Provider internals leaking into the reply
    TECHNICAL_PATTERNS = [
        r"\bapi (?:key|limit|error|unavailable|exceeded)\b",
        r"\b(?:service|server) (?:unavailable|down|error)\b",
        r"\b(?:gemini|gpt|claude|openai) (?:api|error|failed)\b",
    ]

    # Personal data, never inside URLs
    PERSONAL_DATA_PATTERNS = [
        (r"\b\d{10,}\b", "[REDACTED]"),
        (r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", "[REDACTED]"),
    ]

    # User asked about something sensitive
    SENSITIVE_TOPIC_PATTERNS = [
        r"\b(?:bank account|credit card|debit card|pin|password|otp)\b",
        r"\b(?:salary|income|earnings|net worth|how much (?:do you|you) (?:earn|make))\b",
        r"\b(?:meeting|appointment|schedule|available (?:when|tomorrow|today))\b",
        r"\b(?:payment|transfer|send money|upi|gpay|paytm)\b",
        r"\b(?:contract|agreement|legal|lawyer|court)\b",
    ]

    # ...and the response commits to something
    COMMITMENT_PATTERNS = [
        r"\bi(?:'ll| will) (?:definitely|surely|meet|come|pay|send|transfer)\b",
        r"\b(?:i promise|i guarantee|confirmed|done deal)\b",
        r"\b(?:yes (?:i can|we can)|sure i(?:'ll| will))\b",
        r"\b(?:my account|my number is|here's my|sending you)\b",
    ]

    def __init__(self, audit_logger: Optional[AuditLogger] = None):
        """Initialize safety filter.

        Args:
            audit_logger: Optional audit logger for safety hits
        """
        flags = re.IGNORECASE | re.MULTILINE
        self.compiled_identity_patterns = [re.compile(p, flags) for p in self.IDENTITY_PATTERNS]
        self.compiled_technical_patterns = [re.compile(p, flags) for p in self.TECHNICAL_PATTERNS]
        self.compiled_personal_patterns = [
            (re.compile(p, flags), replacement) for p, replacement in self.PERSONAL_DATA_PATTERNS
        ]
        self.compiled_sensitive_patterns = [re.compile(p, flags) for p in self.SENSITIVE_TOPIC_PATTERNS]
        self.compiled_commitment_patterns = [re.compile(p, flags) for p in self.COMMITMENT_PATTERNS]
        self.audit_logger = audit_logger

    @staticmethod
    def _remove(patterns: List[re.Pattern], text: str) -> Tuple[str, List[str]]:
        matched = []
        for pattern in patterns:
            found = pattern.findall(text)
            if found:
                matched.extend(m if isinstance(m, str) else m[0] for m in found)
                text = pattern.sub("", text)
        return text, matched

    @staticmethod
    def _tidy(text: str) -> str:
        """Collapse the gaps a removal leaves behind."""
        text = re.sub(r"[ \t]{2,}", " ", text)
        text = re.sub(r" +([,.!?])", r"\1", text)
        return "\n".join(line.strip() for line in text.split("\n"))

    def _remove_all(self, patterns: List[re.Pattern], text: str) -> Tuple[str, List[str]]:
        """Remove until no pattern matches, since text around a removal can close into a new match."""
        matched: List[str] = []
        while True:
            text, found = self._remove(patterns, text)
            if not found:
                return text, matched
            matched.extend(found)
            text = self._tidy(text)

    def _redact_personal(self, text: str) -> Tuple[str, bool]:
        """Redact personal data outside of URL spans."""
        pieces = []
        changed = False
        last = 0
        for match in _URL.finditer(text):
            pieces.append((text[last:match.start()], True))
            pieces.append((match.group(0), False))
            last = match.end()
        pieces.append((text[last:], True))

        out = []
        for piece, redact in pieces:
            if redact:
                for pattern, replacement in self.compiled_personal_patterns:
                    piece, count = pattern.subn(replacement, piece)
                    changed = changed or count > 0
            out.append(piece)
        return "".join(out), changed

    def is_sensitive(self, user_text: str) -> bool:
        return any(p.search(user_text or "") for p in self.compiled_sensitive_patterns)

    def has_commitment(self, response: str) -> bool:
        return any(p.search(response or "") for p in self.compiled_commitment_patterns)

    def filter(
        self,
        response: str,
        user_text: str,
        intent: Optional[str] = None,
        sender_id: str = "unknown",
    ) -> str:
        """Filter a response for safety.

        Args:
            response: Handler output
            user_text: The effective user message
            intent: Detected intent label
            sender_id: Chat id, for the audit log only

        Returns:
            The filtered response; unchanged when no rule matched
        """
        original = response or ""
        filtered = original
        changed = False

        identity_hits: List[str] = []
        technical_hits: List[str] = []
        while True:
            filtered, found = self._remove_all(self.compiled_identity_patterns, filtered)
            identity_hits.extend(found)
            # A technical removal can close the gap around an identity phrase
            filtered, found = self._remove_all(self.compiled_technical_patterns, filtered)
            technical_hits.extend(found)
            if not found:
                break

        if identity_hits:
            changed = True
            logger.warning(f"🚨 Identity leak redacted for {sender_id}: {identity_hits}")
            self._audit("identity_redaction", sender_id, user_text, original, {"matched": identity_hits})

        if technical_hits:
            changed = True
            self._audit("technical_redaction", sender_id, user_text, original, {"matched": technical_hits})

        filtered, personal = self._redact_personal(filtered)
        if personal:
            changed = True
            self._audit("personal_data", sender_id, user_text, original, {})

        if self.is_sensitive(user_text) and self.has_commitment(filtered):
            logger.warning(f"🚨 Commitment on sensitive topic deferred for {sender_id} (intent={intent})")
            self._audit("commitment_deferral", sender_id, user_text, original, {"intent": intent})
            return DEFERRAL_PHRASE

        if changed:
            filtered = self._tidy(filtered)

        filtered = filtered.strip()
        if len(filtered) < MIN_RESPONSE_LENGTH:
            return PLACEHOLDER
        return filtered

    def _audit(self, hit_type: str, sender_id: str, user_text: str, response: str, details: dict):
        if self.audit_logger:
            self.audit_logger.log_safety_hit(hit_type, sender_id, user_text or "", response, details)
