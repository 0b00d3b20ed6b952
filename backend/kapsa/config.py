"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Kapsa"
    environment: Literal["development", "staging", "production"] = "production"
    debug: bool = False

    # Database
    # If database_url_override is set (e.g., a Supabase pooler URL), it takes precedence
    database_url_override: str | None = None
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "kapsa"
    postgres_password: str = ""
    postgres_db: str = "kapsa"

    @computed_field
    @property
    def database_url(self) -> str:
        """Get async database URL. Uses override if provided, otherwise constructs from parts."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql+asyncpg://", 1)
            # asyncpg rejects libpq query params; SSL goes through connect_args in session.py
            if "?" in url:
                url = url.split("?")[0]
            return url
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    @computed_field
    @property
    def database_requires_ssl(self) -> bool:
        """Check if the database connection requires SSL (hosted Postgres)."""
        if self.database_url_override:
            return "sslmode=require" in self.database_url_override or "ssl=require" in self.database_url_override
        return False

    @computed_field
    @property
    def database_url_sync(self) -> str:
        """Get sync database URL (for Alembic)."""
        if self.database_url_override:
            url = self.database_url_override
            if url.startswith("postgres://"):
                url = url.replace("postgres://", "postgresql://", 1)
            elif url.startswith("postgresql+asyncpg://"):
                url = url.replace("postgresql+asyncpg://", "postgresql://", 1)
            return url
        return f"postgresql://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Auth / JWT issued by the identity provider
    jwt_secret_key: str  # Required - the provider's JWT signing secret
    jwt_algorithm: str = "HS256"
    jwt_audience: str = "authenticated"

    # CORS
    cors_origins: list[str] = ["*"]

    # Replicate inference API
    replicate_api_token: str  # Required
    replicate_base_url: str = "https://api.replicate.com/v1"
    replicate_request_timeout: float = 30.0

    # Model identifiers: a version hash, or "owner/name" for official models
    text_model: str = "5a6809ca6288247d06daf6365557e5e429063f32a21146b2a807c682652136b8"
    text_prompt_template: str = (
        "<|begin_of_text|><|start_header_id|>system<|end_header_id|>\n\n{system_prompt}<|eot_id|>"
        "<|start_header_id|>user<|end_header_id|>\n\n{prompt}<|eot_id|>"
        "<|start_header_id|>assistant<|end_header_id|>\n\n"
    )
    chat_model: str = "c0f0aebe8e578c15a7531e08a62cf01206f5870e9d0a67804b8152822db58c54"
    ocr_model: str = "google-deepmind/gemma-3-27b-it"
    transcription_model: str = "vaibhavs10/incredibly-fast-whisper"

    # Polling
    inference_poll_interval: float = 1.0
    inference_max_attempts: int = 120
    ocr_poll_interval: float = 1.5
    transcription_poll_interval: float = 2.0

    # Generation parameters
    llm_temperature: float = 0.7
    llm_top_p: float = 0.9
    llm_max_tokens: int = 2048
    chat_max_tokens: int = 1024
    insight_max_tokens: int = 256
    ocr_max_tokens: int = 4096

    # Input limits
    max_flashcards: int = 30
    default_flashcards: int = 10
    max_quiz_questions: int = 20
    default_quiz_questions: int = 5
    max_title_chars: int = 200
    max_message_chars: int = 5000
    max_history_entry_chars: int = 2000
    max_topic_chars: int = 200
    max_answer_chars: int = 2000

    # Context limits (characters / rows)
    material_context_max_chars: int = 2000
    flashcard_material_max_chars: int = 3000
    materials_per_prompt: int = 5
    chat_history_window: int = 8
    citations_per_message: int = 3
    max_calendar_suggestions: int = 5


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def sanitize_error(error: Exception | None, *, generic_message: str = "An internal error occurred. Please try again.") -> str:
    """
    Return a user-safe error message.

    In development, returns the full exception string for debugging.
    In staging/production, returns a generic message to avoid leaking internals.
    """
    settings = get_settings()
    if settings.environment == "development" and error is not None:
        return str(error)
    return generic_message
