"""
Engine settings

Uses pydantic-settings so defaults can be tuned from the environment.
All settings use the PROTOGRAM_ prefix (e.g., PROTOGRAM_MAX_STEPS=100000).

Per-call arguments to the engine always win over these values.
"""

from typing import Optional

import regex
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """
    Parser engine configuration via environment variables.

    Examples:
        PROTOGRAM_MAX_STEPS=50000
        PROTOGRAM_TRACE=true
        PROTOGRAM_WHITESPACE=[ \\t]*
    """

    model_config = SettingsConfigDict(
        env_prefix="PROTOGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    max_steps: Optional[int] = Field(
        default=None,
        ge=1,
        description="Rule applications allowed per parse call; None means unbounded",
    )

    whitespace: str = Field(
        default=r"\s*",
        description="Pattern skipped between items of whitespace-insensitive rules",
    )

    trace: bool = Field(
        default=False,
        description="Log every rule attempt at TRACE level",
    )

    memoize_failures: bool = Field(
        default=True,
        description="Remember (rule, offset) pairs that failed during one parse call",
    )

    default_start: str = Field(
        default="TOP",
        description="Start rule used when a grammar names none and defines this rule",
    )

    @field_validator("whitespace")
    @classmethod
    def _whitespace_compiles(cls, v: str) -> str:
        try:
            regex.compile(v)
        except regex.error as e:
            raise ValueError(f"invalid whitespace pattern {v!r}: {e}") from e
        return v


# Singleton instance - import this in your code
settings = EngineSettings()
