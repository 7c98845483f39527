"""
Telegram bot command surface
"""
from .commands import CommandHandler, parse_command

__all__ = ["CommandHandler", "parse_command"]
