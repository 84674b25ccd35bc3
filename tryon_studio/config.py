"""Configuration management for the Try-On Studio."""

from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class GeminiConfig(BaseModel):
    """Gemini image-editing endpoint settings."""
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash-image-preview"

    @property
    def generate_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/models/{self.model}:generateContent"


class StudioConfig(BaseSettings):
    """Main studio configuration."""

    # Image synthesis
    synthesis_provider: str = "gemini"  # "gemini" or "mock"
    synthesis_timeout_seconds: float = 120.0
    gemini: GeminiConfig = Field(default_factory=GeminiConfig)

    # Gemini API key (loaded from .env)
    gemini_api_key: str | None = None

    # Saved outfits
    storage_dir: Path = Path("output/storage")

    default_background_id: str = "studio"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    class Config:
        env_file = ".env"
        env_prefix = ""
        extra = "ignore"


def load_config() -> StudioConfig:
    """Load configuration from environment and defaults."""
    return StudioConfig()
