"""
Signature Relay — Application Configuration
============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Read by the route dependency that builds the ServiceM8 client, and by
       the app lifespan for logging and startup checks.
When:  Loaded once at module import time.

The ServiceM8 API key is a secret and must come from the environment
(SERVICEM8_API_KEY). It is never logged.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


DEFAULT_SERVICEM8_BASE_URL = "https://api.servicem8.com/api_1.0"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── ServiceM8 ─────────────────────────────────────────────────────────
    # What: API key sent as the X-Api-Key header on every vendor call
    # Required: YES — relaying is impossible without it
    servicem8_api_key: str = Field(
        default="",
        description="ServiceM8 API key used to authenticate attachment calls"
    )

    # What: Root of the ServiceM8 REST API; Attachment endpoints hang off it
    servicem8_base_url: str = Field(default=DEFAULT_SERVICEM8_BASE_URL)

    # What: Per-call timeout in seconds for both vendor calls
    # A timeout surfaces to the client as a NetworkFailure error
    servicem8_timeout: float = Field(default=30.0, ge=1.0, le=300.0)

    @field_validator("servicem8_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Endpoint paths are joined with '/', so the base must not end in one."""
        return v.rstrip("/")

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # What: Controls verbosity of application logging
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # SERVICEM8_API_KEY and servicem8_api_key both work
    }

    @property
    def servicem8_configured(self) -> bool:
        """True when an API key is present and is not the placeholder value."""
        return bool(self.servicem8_api_key) and self.servicem8_api_key != "your_servicem8_api_key_here"

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Checks each required field and raises ValueError with guidance.
        """
        errors = []
        if not self.servicem8_configured:
            errors.append(
                "SERVICEM8_API_KEY is not set. "
                "Create an API key in ServiceM8 under Settings > API Keys."
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance — imported throughout the application
settings = Settings()
