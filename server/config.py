"""Server settings read from ``BINOKEL_*`` environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "BINOKEL_"


class Settings(BaseModel):
    target_score: int = Field(1000, gt=0)
    ai_delay_ms: int = Field(500, ge=0, description="Minimum pause before an automated move.")
    ai_jitter_ms: int = Field(500, ge=0, description="Random extra pause on top of the delay.")
    trick_pause_ms: int = Field(3000, ge=0, description="Extra pause after a trick so it stays visible.")
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value!r}")
        return normalized

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def ai_delay(self) -> float:
        return self.ai_delay_ms / 1000

    @property
    def ai_jitter(self) -> float:
        return self.ai_jitter_ms / 1000

    @property
    def trick_pause(self) -> float:
        return self.trick_pause_ms / 1000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = ENV_PREFIX + name.upper()
            if key in environ:
                values[name] = environ[key]
        return cls(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
