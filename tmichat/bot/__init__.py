"""Bot variants and the multi-bot registry."""

from .models import Bot, BotBase, DefaultBot, PublishingBot, ReactiveBot
from .registry import BotRegistry

__all__ = [
    "Bot",
    "BotBase",
    "BotRegistry",
    "DefaultBot",
    "PublishingBot",
    "ReactiveBot",
]
