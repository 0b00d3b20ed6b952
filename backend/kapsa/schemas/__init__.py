"""Pydantic schemas for API request/response validation."""

from kapsa.schemas.account import AccountDeletedResponse
from kapsa.schemas.assistant import (
    AssistantChatRequest,
    AssistantChatResponse,
    AssistantRequest,
    CalendarEventRead,
    CalendarSuggestionsRequest,
    CalendarSuggestionsResponse,
    InsightResponse,
    InsightsRequest,
)
from kapsa.schemas.capture import CaptureRequest, CourseMaterialRead
from kapsa.schemas.chat import ChatMessageRead, ChatRequest, HistoryEntry
from kapsa.schemas.flashcards import FlashcardDeckRead, FlashcardGenerateRequest, FlashcardRead
from kapsa.schemas.quiz import (
    QuizEvaluateRequest,
    QuizGenerateRequest,
    QuizRequest,
    QuizResponse,
    SubmittedAnswer,
    TestQuestionRead,
    TestRead,
)

__all__ = [
    # Account
    "AccountDeletedResponse",
    # Assistant
    "AssistantChatRequest",
    "AssistantChatResponse",
    "AssistantRequest",
    "CalendarEventRead",
    "CalendarSuggestionsRequest",
    "CalendarSuggestionsResponse",
    "InsightResponse",
    "InsightsRequest",
    # Capture
    "CaptureRequest",
    "CourseMaterialRead",
    # Chat
    "ChatMessageRead",
    "ChatRequest",
    "HistoryEntry",
    # Flashcards
    "FlashcardDeckRead",
    "FlashcardGenerateRequest",
    "FlashcardRead",
    # Quiz
    "QuizEvaluateRequest",
    "QuizGenerateRequest",
    "QuizRequest",
    "QuizResponse",
    "SubmittedAnswer",
    "TestQuestionRead",
    "TestRead",
]
