"""
Kapsa FastAPI Application Entry Point.

Run with: uvicorn kapsa.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from kapsa.api.routes import account, assistant, capture, chat, flashcards, quiz
from kapsa.config import get_settings, sanitize_error
from kapsa.db.session import engine
from kapsa.errors import KapsaError, ValidationError

logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="AI study features: tutor chat, flashcards, quizzes, capture and assistant",
    version="0.1.0",
    lifespan=lifespan,
)


# Sits inside the CORS layer, so generic 500s still carry Access-Control-Allow-Origin.
@app.middleware("http")
async def unhandled_error_middleware(request: Request, call_next) -> Response:
    try:
        return await call_next(request)
    except Exception as exc:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": sanitize_error(exc)},
        )


# CORS middleware. The credential travels in the Authorization header, so
# cookies are not needed and any origin may call.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR HANDLERS (every error body is {"error": "<message>"})
# =============================================================================


def _validation_message(errors: list[dict[str, Any]]) -> str:
    """Turn the first Pydantic error into a short field-specific message."""
    if not errors:
        return "Invalid request"
    error = errors[0]
    error_type = error.get("type", "")

    if error_type in ("union_tag_invalid", "union_tag_not_found"):
        discriminator = str(error.get("ctx", {}).get("discriminator", "")).strip("'\"")
        return f"Invalid {discriminator}" if discriminator else "Invalid request"
    if error_type == "value_error":
        return str(error.get("msg", "")).removeprefix("Value error, ")
    if error_type == "json_invalid":
        return "Invalid JSON body"

    fields = [str(part) for part in error.get("loc", ()) if part != "body" and not isinstance(part, int)]
    if not fields:
        return "Request body is required" if error_type == "missing" else "Invalid request body"
    return f"{fields[-1]}: {error.get('msg', 'invalid value')}"


@app.exception_handler(KapsaError)
async def kapsa_error_handler(request: Request, exc: KapsaError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return await kapsa_error_handler(request, ValidationError(_validation_message(exc.errors())))


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


# Include routers
app.include_router(chat.router)
app.include_router(flashcards.router)
app.include_router(quiz.router)
app.include_router(capture.router)
app.include_router(assistant.router)
app.include_router(account.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
