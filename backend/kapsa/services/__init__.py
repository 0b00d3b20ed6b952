"""Services for inference, prompt context and persistence."""

from kapsa.services.assistant import assistant_service
from kapsa.services.inference import inference_client

__all__ = ["assistant_service", "inference_client"]
