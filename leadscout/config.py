"""Configuration management for leadscout.

Loads environment variables (and an optional ``.env`` file) and provides
validated configuration objects.

API KEY REQUIRED:
- GEMINI_API_KEY (or API_KEY): From https://aistudio.google.com/app/apikey
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import API_KEY_MISSING, ConfigError

logger = logging.getLogger(__name__)

DEFAULT_DISCOVERY_MODEL = "gemini-2.5-flash-lite"
DEFAULT_AUDIT_MODEL = "gemini-2.5-flash"
DEFAULT_PITCH_MODEL = "gemini-2.5-flash"
DEFAULT_LEAD_COUNT = 12
DEFAULT_CATEGORY = "Dentist"
DEFAULT_LOCATION = "Austin, TX"
DEFAULT_TIMEOUT_MS = 30_000

_PLACEHOLDER_KEY = "your_gemini_api_key_here"


def is_valid_api_key(api_key: Optional[str]) -> bool:
    """True for a non-blank key that is not a template placeholder."""
    return bool(api_key and api_key.strip() and not api_key.startswith("your_"))


@dataclass
class GeminiConfig:
    """Google Gemini API configuration."""
    api_key: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    @property
    def is_valid(self) -> bool:
        """Check if config has real credentials."""
        return is_valid_api_key(self.api_key)

    def validate(self) -> None:
        if not self.is_valid:
            raise ConfigError(API_KEY_MISSING)


@dataclass
class StageModels:
    """Model name used by each pipeline stage."""
    discovery: str = DEFAULT_DISCOVERY_MODEL
    audit: str = DEFAULT_AUDIT_MODEL
    pitch: str = DEFAULT_PITCH_MODEL


@dataclass
class Config:
    """Main application configuration."""
    gemini: GeminiConfig
    models: StageModels = field(default_factory=StageModels)
    lead_count: int = DEFAULT_LEAD_COUNT
    default_category: str = DEFAULT_CATEGORY
    default_location: str = DEFAULT_LOCATION

    def log_status(self) -> None:
        """Log the configuration status for debugging."""
        logger.info("=== leadscout configuration ===")
        logger.info(
            "Gemini API: %s",
            "configured" if self.gemini.is_valid else "PLACEHOLDER - add GEMINI_API_KEY to .env",
        )
        logger.info(
            "Models: discovery=%s audit=%s pitch=%s",
            self.models.discovery,
            self.models.audit,
            self.models.pitch,
        )
        logger.info("Lead count: %d", self.lead_count)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %d", name, raw, default)
        return default
    if value < 1:
        logger.warning("Ignoring non-positive %s=%r, using %d", name, raw, default)
        return default
    return value


def load_config(env_path: Optional[Path] = None) -> Config:
    """Load configuration from environment variables.

    Args:
        env_path: Optional path to .env file. Defaults to looking in current directory.

    Returns:
        Config object. Call ``config.gemini.validate()`` before making API calls.
    """
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()

    api_key = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or _PLACEHOLDER_KEY
    gemini = GeminiConfig(
        api_key=api_key,
        timeout_ms=_int_env("LEADSCOUT_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
    )

    models = StageModels(
        discovery=os.getenv("LEADSCOUT_DISCOVERY_MODEL", DEFAULT_DISCOVERY_MODEL),
        audit=os.getenv("LEADSCOUT_AUDIT_MODEL", DEFAULT_AUDIT_MODEL),
        pitch=os.getenv("LEADSCOUT_PITCH_MODEL", DEFAULT_PITCH_MODEL),
    )

    return Config(
        gemini=gemini,
        models=models,
        lead_count=_int_env("LEADSCOUT_LEAD_COUNT", DEFAULT_LEAD_COUNT),
        default_category=os.getenv("LEADSCOUT_DEFAULT_CATEGORY", DEFAULT_CATEGORY),
        default_location=os.getenv("LEADSCOUT_DEFAULT_LOCATION", DEFAULT_LOCATION),
    )
