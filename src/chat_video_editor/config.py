"""Configuration management for Chat Video Editor."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Google Cloud / Gemini API
    google_cloud_project: Optional[str] = None
    google_cloud_location: str = "us-central1"
    google_genai_use_vertexai: bool = False
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    # Language model behaviour
    llm_timeout: float = 30.0  # seconds, applies to every completion call
    intent_temperature: float = 0.3
    response_temperature: float = 0.7
    intent_max_tokens: int = 500
    response_max_tokens: int = 400

    # Storage configuration (filesystem only)
    storage_path: str = "./data"
    output_dir: str = "./data/outputs"
    persist_state: bool = False  # JSON files for operations/versions instead of memory

    # Transformation toolchain
    toolchain_timeout: float = 600.0  # seconds per transformation
    default_video_codec: str = "libx264"
    default_audio_codec: str = "aac"

    # Dispatch policy
    min_dispatch_confidence: float = 0.5
    max_context_turns: int = 10

    # Development
    debug: bool = False
    log_level: str = "INFO"

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra fields in .env file
    )

    def get_gemini_model_name(self) -> str:
        """Get the Gemini model name based on configuration."""
        return self.gemini_model

    def validate_api_keys(self) -> bool:
        """Check if required API keys are configured."""
        if self.google_genai_use_vertexai:
            return bool(self.google_cloud_project)
        else:
            return bool(self.gemini_api_key)


# Global settings instance
settings = Settings()
