"""Error taxonomy for the pipeline.

Provider failures surface as a stage-specific ``StageError`` carrying a
human-readable message. Parse failures never raise (see ``coercion``), and
stale results are dropped by the orchestrator without an error.
"""

from __future__ import annotations

LEAD_FETCH_FAILED = "Failed to fetch leads. Check your connection."
AUDIT_FAILED = "Audit failed. Please try refreshing or selecting another lead."
PITCH_GENERATION_FAILED = "Pitch generation failed."
API_KEY_MISSING = "GEMINI_API_KEY is not configured. Please check your environment variables."


class LeadScoutError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(LeadScoutError):
    """Raised when required configuration is missing or invalid."""


class ProviderError(LeadScoutError):
    """Raised when a call to the generative AI provider fails."""


class StageError(LeadScoutError):
    """A provider failure attributed to one pipeline stage."""

    stage = "pipeline"
    default_message = "Pipeline step failed."

    def __init__(self, user_message: str | None = None) -> None:
        self.user_message = user_message or self.default_message
        super().__init__(self.user_message)


class DiscoveryError(StageError):
    stage = "discovery"
    default_message = LEAD_FETCH_FAILED


class AuditError(StageError):
    stage = "audit"
    default_message = AUDIT_FAILED


class PitchError(StageError):
    stage = "pitch"
    default_message = PITCH_GENERATION_FAILED
