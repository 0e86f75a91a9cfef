"""Transport adapters."""

from .transport import Transport
from .meta_whatsapp_channel import MetaWhatsAppChannel

__all__ = ["Transport", "MetaWhatsAppChannel"]
