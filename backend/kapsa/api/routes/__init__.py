"""API routes package."""

from kapsa.api.routes import (
    account,
    assistant,
    capture,
    chat,
    flashcards,
    quiz,
)

__all__ = [
    "account",
    "assistant",
    "capture",
    "chat",
    "flashcards",
    "quiz",
]
