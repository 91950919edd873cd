"""Configuration management for turnloop."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from turnloop.errors import ApiKeyNotConfiguredError, InvalidModelFormatError, ModelNotConfiguredError

MODEL_NOT_CONFIGURED_ERROR = "Model not configured. Set TURNLOOP_MODEL (e.g., 'openai:gpt-4o-mini')."
# Providers served from a local endpoint that accepts requests without a key.
KEYLESS_PROVIDERS = frozenset({"ollama", "lmstudio"})


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="TURNLOOP_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # API Configuration
    model: str | None = Field(default=None, description="Model in provider:model format")
    api_key: str | None = Field(default=None, description="API key for the LLM provider")
    api_base: str | None = Field(default=None, description="Optional API base URL")
    max_tokens: int = Field(default=4096, ge=1, description="Maximum tokens for responses")
    model_timeout_seconds: int | None = Field(default=120, description="Timeout for one model call")

    # Loop Configuration
    max_turns: int = Field(default=50, ge=1, description="Maximum number of turns in one run")
    system_prompt: str = Field(default="", description="System prompt for the model")
    shell_timeout_seconds: float | None = Field(default=None, description="Timeout for one shell command")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    @property
    def provider(self) -> str:
        provider, _, _ = (self.model or "").partition(":")
        return provider

    def validate_model(self) -> None:
        """Check that a usable model and credentials are configured."""
        if not self.model:
            raise ModelNotConfiguredError(MODEL_NOT_CONFIGURED_ERROR)
        provider, separator, name = self.model.partition(":")
        if not separator or not provider or not name:
            raise InvalidModelFormatError(f"Model must be in provider:model format, got {self.model!r}.")
        if not self.api_key and provider.casefold() not in KEYLESS_PROVIDERS:
            raise ApiKeyNotConfiguredError("API key not configured. Set TURNLOOP_API_KEY in your environment or .env file.")


def load_settings(workspace: Path | None = None) -> Settings:
    """Load settings from the environment and the workspace ``.env`` file."""
    if workspace is None:
        return Settings()
    return Settings(_env_file=workspace / ".env")  # type: ignore[call-arg]
