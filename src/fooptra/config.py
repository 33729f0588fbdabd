"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_anon_key: str | None = None
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    classifier_model_path: str = "models/food_classifier.onnx"
    classifier_labels_path: str = "models/labels.txt"
    max_image_bytes: int = 10 * 1024 * 1024
    leaderboard_limit: int = 100
    allowed_origins: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def realtime_key(self) -> str:
        """Key used by the realtime client."""
        return self.supabase_anon_key or self.supabase_service_key


def parse_allowed_origins(raw: str | None) -> list[str] | None:
    """Parse the comma-separated CORS origin list; None means any origin."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if cleaned in {"", "*"}:
        return None
    origins = [chunk.strip().rstrip("/") for chunk in cleaned.split(",")]
    return [origin for origin in origins if origin] or None
