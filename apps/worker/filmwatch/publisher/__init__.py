"""
Outbound film announcements
"""
from .telegram import Publisher, TelegramPublisher

__all__ = ["Publisher", "TelegramPublisher"]
