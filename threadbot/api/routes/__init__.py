# API Routes Module
from threadbot.api.routes import (
    chats,
    telegram,
    triggers,
)

__all__ = [
    "chats",
    "telegram",
    "triggers",
]
