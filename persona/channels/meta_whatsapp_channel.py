"""Meta Cloud API WhatsApp channel adapter.

Flow for each incoming message:
  1. Mark as read            → blue ticks appear on sender's phone
  2. Extract an Envelope     → text, caption, button/list titles, image bytes
  3. Queue for the pipeline  → replies go out through this same adapter

Webhook setup in Meta Developer Console:
  - Webhook URL:   https://<your-domain>/whatsapp/webhook
  - Verify token:  value of WHATSAPP_VERIFY_TOKEN env var
  - Subscribe to:  messages, message_echoes
"""

import logging
from collections import OrderedDict
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..core.types import Envelope, PersonaError, Presence
from .transport import Transport

logger = logging.getLogger(__name__)

_META_API_BASE = "https://graph.facebook.com/v21.0"
MEDIA_TIMEOUT_SECONDS = 60
MAX_MEDIA_BYTES = 16 * 1024 * 1024
QUOTE_CACHE_SIZE = 500


class MetaWhatsAppChannel(Transport):
    """Meta Cloud API WhatsApp channel adapter."""

    def __init__(
        self,
        api_token: str,
        phone_number_id: str,
        verify_token: str,
        pipeline=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_token = api_token
        self.phone_number_id = phone_number_id
        self.verify_token = verify_token
        self.pipeline = pipeline
        self.transport = transport
        # message id → (text, author) for resolving quoted replies
        self._recent: "OrderedDict[str, Tuple[str, str]]" = OrderedDict()
        self._last_inbound: Dict[str, str] = {}

        self.enabled = bool(api_token and phone_number_id and verify_token)

        if self.enabled:
            logger.info(f"✅ Meta WhatsApp channel initialized (phone_number_id={phone_number_id})")
        else:
            logger.info("Meta WhatsApp channel disabled (missing credentials)")

    @property
    def bot_id(self) -> str:
        return self.phone_number_id

    def _client(self, timeout: float = 30) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            headers={"Authorization": f"Bearer {self.api_token}"},
            transport=self.transport,
        )

    def _remember(self, message_id: str, text: str, author: str):
        if not message_id:
            return
        self._recent[message_id] = (text, author)
        self._recent.move_to_end(message_id)
        while len(self._recent) > QUOTE_CACHE_SIZE:
            self._recent.popitem(last=False)

    # ── Webhook verification ──────────────────────────────────────────────────

    def handle_verification(self, params: Dict[str, str]) -> Optional[str]:
        """Handle Meta webhook verification GET request.

        Returns the hub.challenge string on success, None on failure.
        """
        mode = params.get("hub.mode")
        token = params.get("hub.verify_token")
        challenge = params.get("hub.challenge")

        if mode == "subscribe" and token == self.verify_token:
            logger.info("Meta WhatsApp webhook verified successfully")
            return challenge

        logger.warning(f"Meta webhook verification failed (token mismatch or wrong mode='{mode}')")
        return None

    # ── Incoming messages ─────────────────────────────────────────────────────

    async def handle_webhook(self, body: Dict[str, Any]) -> List[Envelope]:
        """Handle incoming Meta Cloud API webhook POST.

        Envelopes are queued for the pipeline so the HTTP response returns to
        Meta without waiting for the reply.

        Returns:
            Envelopes extracted from the payload
        """
        if not self.enabled:
            return []

        envelopes = []
        for entry in body.get("entry", []):
            for change in entry.get("changes", []):
                value = change.get("value", {})
                contacts = {c.get("wa_id"): c.get("profile", {}).get("name") for c in value.get("contacts", [])}

                for msg in value.get("messages", []):
                    envelope = await self.extract_envelope(msg, contacts)
                    if envelope is not None:
                        envelopes.append(envelope)

                for echo in value.get("message_echoes", []):
                    envelope = self.extract_echo(echo)
                    if envelope is not None:
                        envelopes.append(envelope)

        for envelope in envelopes:
            if self.pipeline is not None:
                await self.pipeline.submit(envelope)
        return envelopes

    @staticmethod
    def message_text(msg: Dict[str, Any]) -> Optional[str]:
        """Text carried by a Meta message, None for unsupported types."""
        msg_type = msg.get("type", "")
        if msg_type == "text":
            return msg.get("text", {}).get("body", "")
        if msg_type in ("image", "document", "video"):
            return msg.get(msg_type, {}).get("caption", "")
        if msg_type == "button":
            return msg.get("button", {}).get("text", "")
        if msg_type == "interactive":
            interactive = msg.get("interactive", {})
            reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
            return reply.get("title", "")
        return None

    async def extract_envelope(self, msg: Dict[str, Any], contacts: Optional[Dict[str, str]] = None) -> Optional[Envelope]:
        msg_id = msg.get("id", "")
        from_number = msg.get("from", "")  # plain digits, no +
        msg_type = msg.get("type", "")

        text = self.message_text(msg)
        if text is None:
            logger.debug(f"Ignoring unsupported message type='{msg_type}' from {from_number}")
            return None

        image = image_mime = None
        if msg_type == "image":
            media = msg.get("image", {})
            try:
                image = await self.download_media(media.get("id", ""))
                image_mime = media.get("mime_type")
            except (httpx.HTTPError, PersonaError) as e:
                logger.warning(f"Image download failed for {msg_id}: {e}")
                if not text:
                    return None

        quoted_text = quoted_author = None
        context = msg.get("context") or {}
        if context.get("id"):
            quoted_text, quoted_author = self._recent.get(context["id"], (None, None))
            quoted_author = context.get("from") or quoted_author

        self._remember(msg_id, text, from_number)
        self._last_inbound[from_number] = msg_id
        logger.info(f"💬 Meta WhatsApp {msg_type} from {from_number}: {text[:60]}")

        return Envelope(
            sender_id=from_number,
            text=text.strip(),
            display_name=(contacts or {}).get(from_number),
            phone=from_number,
            author_id=from_number,
            image=image,
            image_mime=image_mime,
            quoted_text=quoted_text,
            quoted_author_id=quoted_author,
            message_id=msg_id,
            timestamp=float(msg.get("timestamp", 0) or 0),
        )

    def extract_echo(self, echo: Dict[str, Any]) -> Optional[Envelope]:
        """A message the owner typed on the phone, seen as outbound-from-owner."""
        text = self.message_text(echo)
        if text is None:
            return None
        chat_id = echo.get("to", "")
        self._remember(echo.get("id", ""), text, self.bot_id)
        return Envelope(
            sender_id=chat_id,
            text=text.strip(),
            from_me=True,
            message_id=echo.get("id"),
            timestamp=float(echo.get("timestamp", 0) or 0),
        )

    async def download_media(self, media_id: str) -> bytes:
        """Fetch media bytes through the Graph API (60 s timeout, 16 MiB cap)."""
        if not media_id:
            raise PersonaError("Missing media id")
        async with self._client(timeout=MEDIA_TIMEOUT_SECONDS) as client:
            meta = await client.get(f"{_META_API_BASE}/{media_id}")
            meta.raise_for_status()
            info = meta.json()
            if int(info.get("file_size", 0) or 0) > MAX_MEDIA_BYTES:
                raise PersonaError("Media exceeds 16 MiB")

            data = b""
            async with client.stream("GET", info["url"]) as resp:
                resp.raise_for_status()
                async for chunk in resp.aiter_bytes():
                    data += chunk
                    if len(data) > MAX_MEDIA_BYTES:
                        raise PersonaError("Media exceeds 16 MiB")
        return data

    # ── Outbound (Transport) ──────────────────────────────────────────────────

    async def _post_message(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.enabled:
            raise PersonaError("Meta WhatsApp channel disabled")
        url = f"{_META_API_BASE}/{self.phone_number_id}/messages"
        async with self._client() as client:
            resp = await client.post(url, json={"messaging_product": "whatsapp", **payload})
            if resp.status_code != 200:
                logger.error(f"Meta WhatsApp send failed ({resp.status_code}): {resp.text[:300]}")
            resp.raise_for_status()
            return resp.json()

    async def _upload_media(self, data: bytes, mime: str) -> str:
        url = f"{_META_API_BASE}/{self.phone_number_id}/media"
        async with self._client(timeout=MEDIA_TIMEOUT_SECONDS) as client:
            resp = await client.post(
                url,
                data={"messaging_product": "whatsapp", "type": mime},
                files={"file": ("upload", data, mime)},
            )
            resp.raise_for_status()
            return resp.json()["id"]

    async def send_text(self, chat_id: str, text: str) -> None:
        """Send a WhatsApp text message via Meta Cloud API."""
        to_clean = chat_id.lstrip("+")
        result = await self._post_message({
            "recipient_type": "individual",
            "to": to_clean,
            "type": "text",
            "text": {"body": text},
        })
        for sent in result.get("messages", []):
            self._remember(sent.get("id", ""), text, self.bot_id)
        logger.info(f"✅ Meta WhatsApp message sent to {to_clean}")

    async def send_image(self, chat_id: str, image: bytes, caption: Optional[str] = None, mime: str = "image/jpeg") -> None:
        media_id = await self._upload_media(image, mime)
        body = {"id": media_id}
        if caption:
            body["caption"] = caption
        await self._post_message({"to": chat_id.lstrip("+"), "type": "image", "image": body})

    async def send_audio(self, chat_id: str, audio: bytes, mime: str = "audio/mpeg", ptt: bool = True) -> None:
        # Cloud API has no push-to-talk flag; audio messages render as voice notes
        media_id = await self._upload_media(audio, mime)
        await self._post_message({"to": chat_id.lstrip("+"), "type": "audio", "audio": {"id": media_id}})

    async def set_presence(self, chat_id: str, presence: Presence) -> None:
        """Read receipt plus typing indicator; ``paused`` is a no-op on Meta."""
        if presence != Presence.COMPOSING:
            return
        message_id = self._last_inbound.get(chat_id.lstrip("+"))
        if not message_id:
            return
        try:
            await self._post_message({
                "status": "read",
                "message_id": message_id,
                "typing_indicator": {"type": "text"},
            })
        except (httpx.HTTPError, PersonaError) as e:
            logger.warning(f"Failed to send typing indicator: {e}")
