"""
Application Configuration

Pydantic-based settings management using environment variables.
Covers the relay's upstream credentials, the terminal client and logging.

Usage:
    from paichat.config import get_settings

    settings = get_settings()
    print(settings.gemini.chat_model)
    print(settings.client.relay_url)
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_STORAGE_KEY = "aiChatHistory"


class GeminiSettings(BaseSettings):
    """Upstream generative-AI configuration consumed by the relay."""

    api_key: str | None = Field(
        None,
        description="Gemini API credential injected into every upstream call",
        validation_alias="GEMINI_API_KEY",
    )
    project_id: str | None = Field(
        None,
        description="Google Cloud project id (required for image generation only)",
        validation_alias="GOOGLE_CLOUD_PROJECT_ID",
    )
    api_base: str = Field(
        default="https://generativelanguage.googleapis.com",
        description="Base URL of the text-generation API",
    )
    chat_model: str = Field(default="gemini-2.5-pro", description="Text generation model")
    image_model: str = Field(
        default="imagegeneration@006", description="Vertex AI image generation model"
    )
    location: str = Field(default="us-central1", description="Vertex AI region")
    image_auth: Literal["query", "bearer", "header"] = Field(
        default="query",
        description=(
            "Credential placement for the image endpoint: ?key= query parameter, "
            "Authorization bearer token, or X-Goog-Api-Key header."
        ),
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Upstream request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("api_key", "project_id", mode="before")
    @classmethod
    def normalize_blank(cls, v: str | None) -> str | None:
        """Treat empty strings as missing."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("api_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ClientSettings(BaseSettings):
    """Terminal client configuration."""

    relay_url: str = Field(
        default="http://localhost:8000/api/proxy",
        description="Relay endpoint the client posts chat and image requests to",
    )
    history_path: Path = Field(
        default=Path.home() / ".paichat" / "history.json",
        description="Local file backing the conversation history store",
    )
    storage_key: str = Field(
        default=DEFAULT_STORAGE_KEY,
        min_length=1,
        description="Key under which the whole conversation set is stored",
    )
    images_dir: Path = Field(
        default=Path.home() / ".paichat" / "images",
        description="Directory where generated images are written",
    )
    timeout: float = Field(
        default=120.0,
        gt=0,
        description="Relay request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAICHAT_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("history_path", "images_dir")
    @classmethod
    def expand_user(cls, v: Path) -> Path:
        return v.expanduser()


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Application log level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format",
    )
    date_format: str = Field(
        default="%Y-%m-%d %H:%M:%S",
        description="Log timestamp format",
    )
    file: Path | None = Field(
        default=None,
        description="Optional log file path (None = stdout only)",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore",
    )

    def configure(self) -> None:
        """Configure Python logging with these settings."""
        handlers: list[logging.Handler] = [logging.StreamHandler()]

        if self.file:
            self.file.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(self.file))

        logging.basicConfig(
            level=getattr(logging, self.level),
            format=self.format,
            datefmt=self.date_format,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    Settings are nested by domain (gemini, client, logging).

    Environment Variables:
        ENVIRONMENT: Deployment environment (development, staging, production)
        APP_NAME: Application name for logging
        DEBUG: Enable debug mode
        API_HOST: Relay server host
        API_PORT: Relay server port
        CORS_ORIGINS: Comma-separated list of allowed browser origins
        GEMINI_API_KEY / GOOGLE_CLOUD_PROJECT_ID / GEMINI_*: see GeminiSettings
        PAICHAT_*: Terminal client configuration (see ClientSettings)
        LOG_*: Logging configuration (see LoggingSettings)

    Example:
        >>> settings = get_settings()
        >>> settings.gemini.chat_model
        'gemini-2.5-pro'
        >>> settings.is_production
        False
    """

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    app_name: str = Field(
        default="PAI Chat",
        description="Application name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    api_host: str = Field(
        default="0.0.0.0",
        description="Relay server host",
    )
    api_port: int = Field(
        default=8000,
        gt=0,
        le=65535,
        description="Relay server port",
    )
    cors_origins: str = Field(
        default="*",
        description="Comma-separated origins allowed to call the relay",
    )

    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def model_post_init(self, __context) -> None:
        """Log configuration on initialization."""
        logger = logging.getLogger(__name__)
        logger.info(
            f"Settings loaded for {self.app_name} ({self.environment})",
            extra={
                "environment": self.environment,
                "debug": self.debug,
                "chat_model": self.gemini.chat_model,
                "image_auth": self.gemini.image_auth,
                "credential_configured": self.gemini.api_key is not None,
            },
        )


_DOTENV_PATH = Path(__file__).resolve().parents[1] / ".env"


def _apply_dotenv_precedence() -> None:
    env_source = os.getenv("PAICHAT_ENV_SOURCE", "dotenv").lower()
    if env_source not in {"dotenv", "envfile", "file"}:
        return
    if _DOTENV_PATH.exists():
        load_dotenv(_DOTENV_PATH, override=True)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses functools.lru_cache so settings are loaded only once per process.

    Returns:
        Settings: Singleton settings instance
    """
    _apply_dotenv_precedence()
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache.

    Useful for testing when you need to reload settings with different
    environment variables.
    """
    get_settings.cache_clear()
