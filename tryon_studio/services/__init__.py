"""External services used by the studio."""

from ..config import StudioConfig
from .base import ImageSynthesisService
from .gemini_client import GeminiImageClient
from .mock import MockSynthesisService


def get_synthesis_service(config: StudioConfig) -> ImageSynthesisService:
    """Build the image service named by ``config.synthesis_provider``."""
    name = (config.synthesis_provider or "gemini").lower()
    if name == "mock":
        return MockSynthesisService()
    if name in ("gemini", "nano-banana", "nanobanana"):
        return GeminiImageClient(
            config=config.gemini,
            api_key=config.gemini_api_key,
            timeout=config.synthesis_timeout_seconds,
        )
    raise ValueError(f"Unknown synthesis provider: {config.synthesis_provider}")


__all__ = [
    "ImageSynthesisService",
    "GeminiImageClient",
    "MockSynthesisService",
    "get_synthesis_service",
]
