from __future__ import annotations

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load .env once at module import; all BaseSettings subclasses will see the env vars
load_dotenv()

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}


class ResolutionSettings(BaseSettings):
    """Resolution execution settings. Env vars prefixed with FACTKIT_RESOLUTION_."""

    model_config = SettingsConfigDict(env_prefix="FACTKIT_RESOLUTION_")

    default_timeout_seconds: float = Field(0.0, ge=0)  # 0 = wait indefinitely
    command_locale: str = "C"
    reap_orphans: bool = True
    extra_search_paths: str = "/sbin:/usr/sbin"  # colon-separated

    @field_validator("command_locale")
    @classmethod
    def _validate_command_locale(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("FACTKIT_RESOLUTION_COMMAND_LOCALE must not be empty")
        return v.strip()

    @property
    def search_paths(self) -> list[str]:
        return [p for p in self.extra_search_paths.split(":") if p]


class LoggingSettings(BaseSettings):
    """Logging settings. Env vars prefixed with FACTKIT_LOG_."""

    model_config = SettingsConfigDict(env_prefix="FACTKIT_LOG_")

    json_output: bool = True
    level: str = "INFO"

    @field_validator("level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            msg = f"FACTKIT_LOG_LEVEL must be one of {sorted(_LOG_LEVELS)} (got '{v}')"
            raise ValueError(msg)
        return level


class Settings(BaseSettings):
    """Root settings composing all sub-configurations."""

    model_config = SettingsConfigDict(extra="ignore")

    resolution: ResolutionSettings = Field(default_factory=ResolutionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def get_settings() -> Settings:
    """Load and validate settings. Raises ValidationError on invalid values."""
    return Settings()
