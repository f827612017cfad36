# Local-business lead discovery, digital-presence audit and pitch drafting
# Three-stage Gemini pipeline with grounding tools and stale-result guarding

from .auditor import Auditor
from .classifier import LeadThresholds, generate_lead_id, identify_opportunities
from .coercion import coerce_json
from .config import Config, load_config
from .drafter import PitchDrafter
from .errors import (
    AuditError,
    ConfigError,
    DiscoveryError,
    LeadScoutError,
    PitchError,
    ProviderError,
    StageError,
)
from .finder import LeadFinder
from .models import (
    BusinessAudit,
    BusinessLead,
    OpportunityType,
    PitchFocus,
    PitchLength,
    PitchRequest,
    PitchTone,
    SearchState,
    Source,
)
from .orchestrator import PipelineOrchestrator, StageState, StageStatus, build_pipeline
from .provider import AIProvider, Completion, GeminiProvider, Tool

__all__ = [
    "AIProvider",
    "AuditError",
    "Auditor",
    "BusinessAudit",
    "BusinessLead",
    "Completion",
    "Config",
    "ConfigError",
    "DiscoveryError",
    "GeminiProvider",
    "LeadFinder",
    "LeadScoutError",
    "LeadThresholds",
    "OpportunityType",
    "PipelineOrchestrator",
    "PitchDrafter",
    "PitchError",
    "PitchFocus",
    "PitchLength",
    "PitchRequest",
    "PitchTone",
    "ProviderError",
    "SearchState",
    "Source",
    "StageError",
    "StageState",
    "StageStatus",
    "Tool",
    "build_pipeline",
    "coerce_json",
    "generate_lead_id",
    "identify_opportunities",
    "load_config",
]
