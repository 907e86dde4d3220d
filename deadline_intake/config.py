"""
Deadline Intake — Centralized configuration.

Loads all settings from .env. Core validation and store logic never reads
settings directly; only the service defaults and the LLM adapter do.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (one level up from deadline_intake/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # LLM: provider-agnostic (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "gemini"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str = ""        # required only when an LLM call is made

    # Extraction defaults
    TIMEZONE: str = "America/New_York"
    EXTRACTION_MAX_TOKENS: int = 2000
    EXTRACTION_TEMPERATURE: float = 0.1
    EXTRACTION_TIMEOUT_SECONDS: float = 30.0

    # Course ids recognised in provenance text at confirmation time
    KNOWN_COURSES: list[str] = ["6.1040"]

    @field_validator("KNOWN_COURSES", mode="before")
    @classmethod
    def parse_courses(cls, v: str | list[str]) -> list[str]:
        if isinstance(v, list):
            return v
        if isinstance(v, str) and v.strip():
            return [c.strip() for c in v.split(",") if c.strip()]
        return []

    @field_validator("EXTRACTION_MAX_TOKENS", mode="before")
    @classmethod
    def parse_max_tokens(cls, v: str | int) -> int:
        return int(v)

    @field_validator("EXTRACTION_TEMPERATURE", "EXTRACTION_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def parse_float(cls, v: str | float) -> float:
        return float(v)


def _load_settings() -> Settings:
    """Load settings from environment."""
    return Settings(
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "gemini"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=os.getenv("LLM_API_KEY", ""),
        TIMEZONE=os.getenv("TIMEZONE", "America/New_York"),
        EXTRACTION_MAX_TOKENS=os.getenv("EXTRACTION_MAX_TOKENS", "2000"),
        EXTRACTION_TEMPERATURE=os.getenv("EXTRACTION_TEMPERATURE", "0.1"),
        EXTRACTION_TIMEOUT_SECONDS=os.getenv("EXTRACTION_TIMEOUT_SECONDS", "30"),
        KNOWN_COURSES=os.getenv("KNOWN_COURSES", "6.1040"),
    )


# Singleton, imported as:
#   from deadline_intake.config import settings
settings = _load_settings()
