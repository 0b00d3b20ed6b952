"""
Replicate inference client.

Every model call follows the same create-then-poll protocol:

1. POST the input to the predictions endpoint (by version hash or by
   ``owner/name`` for official models).
2. Poll the prediction's ``urls.get`` on a fixed interval until it reaches a
   terminal status or the attempt budget runs out.
3. Normalize the output (list of chunks, string, or ``{"text": ...}``) into
   a single string.

The polling state lives in an explicit ``Prediction`` object rather than a
loop-local variable, so callers and tests can inspect attempts and status.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from kapsa.config import get_settings
from kapsa.errors import InferenceFailed, InferenceTimeout, ServiceUnavailable

logger = logging.getLogger(__name__)

SUCCEEDED = "succeeded"
FAILED = "failed"
CANCELED = "canceled"
TERMINAL_STATUSES = frozenset({SUCCEEDED, FAILED, CANCELED})

OCR_PROMPT = (
    "Extract ALL text from this image. Preserve the original formatting, paragraphs, "
    "and structure. Return only the extracted text, nothing else. If the text is in a "
    "language other than English, keep it in the original language."
)


@dataclass(frozen=True)
class ModelRef:
    """A model addressed either by version hash or by ``owner/name``."""

    identifier: str

    @property
    def is_version(self) -> bool:
        return "/" not in self.identifier

    def create_path(self) -> str:
        if self.is_version:
            return "/predictions"
        owner, name = self.identifier.split("/", 1)
        return f"/models/{owner}/{name}/predictions"

    def create_payload(self, model_input: dict[str, Any]) -> dict[str, Any]:
        if self.is_version:
            return {"version": self.identifier, "input": model_input}
        return {"input": model_input}


@dataclass
class Prediction:
    """Last observed state of one inference job."""

    id: str
    status: str
    output: Any = None
    error: str | None = None
    get_url: str | None = None
    attempts: int = 0

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Prediction":
        prediction = cls(id=str(payload.get("id", "")), status=str(payload.get("status", "starting")))
        prediction.update(payload)
        return prediction

    def update(self, payload: dict[str, Any]) -> None:
        self.status = str(payload.get("status", self.status))
        self.output = payload.get("output")
        self.error = payload.get("error")
        urls = payload.get("urls") or {}
        if isinstance(urls, dict) and urls.get("get"):
            self.get_url = urls["get"]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def normalize_output(output: Any) -> str:
    """Collapse the model's output into a single string."""
    if output is None:
        return ""
    if isinstance(output, str):
        return output
    if isinstance(output, list):
        return "".join(str(chunk) for chunk in output if chunk is not None)
    if isinstance(output, dict) and isinstance(output.get("text"), str):
        return output["text"]
    return str(output)


class InferenceClient:
    """Async client for the Replicate predictions API."""

    def __init__(
        self,
        api_token: str | None = None,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.api_token = api_token or settings.replicate_api_token
        self.base_url = (base_url or settings.replicate_base_url).rstrip("/")
        self.timeout = timeout or settings.replicate_request_timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self.transport,
        )

    async def create_prediction(
        self, client: httpx.AsyncClient, model: ModelRef, model_input: dict[str, Any]
    ) -> Prediction:
        """Submit a job. Any transport error or non-2xx response is ServiceUnavailable."""
        try:
            response = await client.post(model.create_path(), json=model.create_payload(model_input))
        except httpx.HTTPError as e:
            logger.error("Inference create request failed for %s: %s", model.identifier, e)
            raise ServiceUnavailable() from e

        if not response.is_success:
            logger.error(
                "Inference create rejected for %s (status %d): %s",
                model.identifier, response.status_code, response.text[:500],
            )
            raise ServiceUnavailable()

        prediction = Prediction.from_payload(response.json())
        if prediction.get_url is None and prediction.id:
            prediction.get_url = f"{self.base_url}/predictions/{prediction.id}"
        if prediction.get_url is None and not prediction.is_terminal:
            logger.error("Inference create for %s returned no prediction handle", model.identifier)
            raise ServiceUnavailable()
        return prediction

    async def wait(
        self,
        client: httpx.AsyncClient,
        prediction: Prediction,
        *,
        max_attempts: int,
        poll_interval: float,
    ) -> Prediction:
        """Poll until the prediction is terminal or ``max_attempts`` polls have been made."""
        while not prediction.is_terminal and prediction.attempts < max_attempts:
            await asyncio.sleep(poll_interval)
            try:
                response = await client.get(prediction.get_url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.error("Inference poll failed for prediction %s: %s", prediction.id, e)
                raise ServiceUnavailable() from e
            prediction.update(response.json())
            prediction.attempts += 1
        return prediction

    async def run(
        self,
        model: ModelRef | str,
        model_input: dict[str, Any],
        *,
        max_attempts: int | None = None,
        poll_interval: float | None = None,
    ) -> str:
        """
        Run a model to completion and return its output as text.

        Raises:
            ServiceUnavailable: The job could not be submitted or polled.
            InferenceFailed: The job reached ``failed`` or ``canceled``.
            InferenceTimeout: No terminal status within ``max_attempts`` polls.
        """
        settings = get_settings()
        if isinstance(model, str):
            model = ModelRef(model)
        if max_attempts is None:
            max_attempts = settings.inference_max_attempts
        if poll_interval is None:
            poll_interval = settings.inference_poll_interval

        async with self._client() as client:
            prediction = await self.create_prediction(client, model, model_input)
            prediction = await self.wait(
                client, prediction, max_attempts=max_attempts, poll_interval=poll_interval
            )

        if prediction.status in (FAILED, CANCELED):
            logger.warning(
                "Prediction %s for %s ended %s: %s",
                prediction.id, model.identifier, prediction.status, prediction.error,
            )
            raise InferenceFailed()
        if prediction.status != SUCCEEDED:
            logger.warning(
                "Prediction %s for %s timed out after %d attempts",
                prediction.id, model.identifier, prediction.attempts,
            )
            raise InferenceTimeout()

        logger.info(
            "Prediction %s for %s succeeded after %d polls",
            prediction.id, model.identifier, prediction.attempts,
        )
        return normalize_output(prediction.output)

    # =========================================================================
    # MODEL-SPECIFIC HELPERS
    # =========================================================================

    async def generate_text(
        self, prompt: str, *, system_prompt: str, max_tokens: int | None = None
    ) -> str:
        """Instruction-tuned text model (structured JSON generation)."""
        settings = get_settings()
        return await self.run(
            settings.text_model,
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "prompt_template": settings.text_prompt_template,
                "max_tokens": max_tokens or settings.llm_max_tokens,
                "temperature": settings.llm_temperature,
                "top_p": settings.llm_top_p,
            },
        )

    async def chat(self, prompt: str, *, system_prompt: str, max_tokens: int | None = None) -> str:
        """Conversational model used by the tutor and the assistant."""
        settings = get_settings()
        return await self.run(
            settings.chat_model,
            {
                "prompt": prompt,
                "system_prompt": system_prompt,
                "max_new_tokens": max_tokens or settings.chat_max_tokens,
                "temperature": settings.llm_temperature,
                "top_p": settings.llm_top_p,
            },
        )

    async def extract_text_from_image(self, image_url: str) -> str:
        settings = get_settings()
        return await self.run(
            settings.ocr_model,
            {
                "image": image_url,
                "prompt": OCR_PROMPT,
                "max_new_tokens": settings.ocr_max_tokens,
                "temperature": 0.1,
            },
            poll_interval=settings.ocr_poll_interval,
        )

    async def transcribe_audio(self, audio_url: str) -> str:
        settings = get_settings()
        return await self.run(
            settings.transcription_model,
            {"audio": audio_url, "task": "transcribe", "batch_size": 64},
            poll_interval=settings.transcription_poll_interval,
        )


# Singleton instance
inference_client = InferenceClient()
