"""Outbound transport contract used by delivery and the reminder scheduler."""

from abc import ABC, abstractmethod
from typing import Optional

from ..core.types import Presence


class Transport(ABC):
    """Anything that can put text, images, audio and typing presence on a chat."""

    @abstractmethod
    async def send_text(self, chat_id: str, text: str) -> None:
        """Send a text message. Raises on failure."""
        pass

    @abstractmethod
    async def send_image(self, chat_id: str, image: bytes, caption: Optional[str] = None, mime: str = "image/jpeg") -> None:
        pass

    @abstractmethod
    async def send_audio(self, chat_id: str, audio: bytes, mime: str = "audio/mpeg", ptt: bool = True) -> None:
        pass

    @abstractmethod
    async def set_presence(self, chat_id: str, presence: Presence) -> None:
        pass
