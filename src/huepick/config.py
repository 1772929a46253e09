"""Configuration management for huepick."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .color import sanitize_hex
from .errors import ConfigurationError
from .logging_utils import configure_logging


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="HUEPICK_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Prompt defaults
    default_color: str = Field(default="#000000", description="Color preselected when a caller gives none")
    timeout_seconds: float = Field(default=0, ge=0, description="Timeout for synchronous prompts, 0 disables it")
    async_timeout_seconds: float = Field(default=60, ge=0, description="Timeout for callback prompts, 0 disables it")
    autofocus: bool = Field(default=True, description="Whether prompt windows steal focus")

    # UI sync
    progress_lead_seconds: float = Field(
        default=1.0, ge=0, description="How early the client countdown reaches zero before expiry"
    )
    refresh_interval_seconds: float = Field(default=1.0, gt=0, description="Refresh period for autoupdate windows")
    interface_name: str = Field(default="ColorPickerModal", description="Client-side interface to render")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level")

    @field_validator("default_color")
    @classmethod
    def _canonical_color(cls, value: str) -> str:
        canonical = sanitize_hex(value)
        if canonical is None:
            raise ValueError(f"not a hex color: {value!r}")
        return canonical


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        Settings instance

    Raises:
        ConfigurationError: a value from the environment or overrides is invalid
    """
    try:
        settings = Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc

    configure_logging(level=settings.log_level)

    return settings
