"""Pipeline orchestrator: owns lead/audit/pitch state and per-stage status.

Every stage invocation takes a fresh token from one monotonically increasing
counter. A result is applied only if its token is still the stage's current
token, so a slow response to an older request can never overwrite the
outcome of a newer one. The underlying provider call is not cancelled; its
result is simply dropped.

All state changes happen on the event loop thread, and no ``await`` sits
between a token check and the write it guards.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from enum import Enum

from .auditor import Auditor
from .config import Config
from .drafter import PitchDrafter
from .errors import StageError
from .finder import LeadFinder
from .models import BusinessAudit, BusinessLead, PitchFocus, PitchLength, PitchRequest, PitchTone, SearchState
from .provider import AIProvider, GeminiProvider

logger = logging.getLogger(__name__)


class StageStatus(str, Enum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass
class StageState:
    """Display state of one stage plus the token of its latest request."""

    name: str
    status: StageStatus = StageStatus.IDLE
    error: str | None = None
    token: int = 0

    @property
    def loading(self) -> bool:
        return self.status is StageStatus.IN_FLIGHT


class PipelineOrchestrator:
    """Sequences discovery → audit → pitch for one interactive session."""

    def __init__(self, finder: LeadFinder, auditor: Auditor, drafter: PitchDrafter) -> None:
        self._finder = finder
        self._auditor = auditor
        self._drafter = drafter
        self._tokens = itertools.count(1)

        self.leads: list[BusinessLead] = []
        self.selected_lead: BusinessLead | None = None
        self.audit: BusinessAudit | None = None
        self.pitch: str | None = None
        self.last_search: SearchState | None = None
        self.last_pitch_request: PitchRequest | None = None
        self.error: str | None = None

        self.discovery_state = StageState("discovery")
        self.audit_state = StageState("audit")
        self.pitch_state = StageState("pitch")

    # ------------------------------------------------------------------
    # Token bookkeeping
    # ------------------------------------------------------------------
    def _begin(self, state: StageState) -> int:
        state.token = next(self._tokens)
        state.status = StageStatus.IN_FLIGHT
        state.error = None
        self.error = None
        return state.token

    def _invalidate(self, state: StageState) -> None:
        """Orphan any in-flight request of ``state`` and reset it to idle."""
        state.token = next(self._tokens)
        state.status = StageStatus.IDLE
        state.error = None

    def _is_current(self, state: StageState, token: int) -> bool:
        if state.token != token:
            logger.debug("Discarding stale %s result (token %d, current %d)", state.name, token, state.token)
            return False
        return True

    def _fail(self, state: StageState, exc: StageError) -> None:
        state.status = StageStatus.FAILED
        state.error = exc.user_message
        self.error = exc.user_message

    def _clear_downstream_of_discovery(self) -> None:
        self.selected_lead = None
        self.audit = None
        self._clear_pitch()
        self._invalidate(self.audit_state)

    def _drop_unlisted_selection(self, leads: list[BusinessLead]) -> None:
        """Clear a selection made mid-search that the applied batch does not list."""
        if self.selected_lead is not None and self.selected_lead not in leads:
            logger.debug("Dropping selection %s absent from new results", self.selected_lead.id)
            self._clear_downstream_of_discovery()

    def _clear_pitch(self) -> None:
        self.pitch = None
        self.last_pitch_request = None
        self._invalidate(self.pitch_state)

    @property
    def loading(self) -> dict[str, bool]:
        return {
            "leads": self.discovery_state.loading,
            "audit": self.audit_state.loading,
            "pitch": self.pitch_state.loading,
        }

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------
    async def search(self, category: str, location: str) -> list[BusinessLead] | None:
        """Run a new search, superseding every downstream result.

        Returns the applied leads, or None if the search was a no-op, failed,
        or was superseded by a newer search.
        """
        if not category or not category.strip() or not location or not location.strip():
            return None

        self.last_search = SearchState(category=category.strip(), location=location.strip())
        token = self._begin(self.discovery_state)
        self.leads = []
        self._clear_downstream_of_discovery()

        try:
            leads = await self._finder.discover(category, location)
        except StageError as exc:
            if self._is_current(self.discovery_state, token):
                self._drop_unlisted_selection([])
                self._fail(self.discovery_state, exc)
            return None

        if not self._is_current(self.discovery_state, token):
            return None
        self._drop_unlisted_selection(leads)
        self.leads = leads
        self.discovery_state.status = StageStatus.SUCCESS
        return leads

    # ------------------------------------------------------------------
    # Audit
    # ------------------------------------------------------------------
    async def select_lead(self, lead: BusinessLead) -> BusinessAudit | None:
        """Select ``lead`` and audit it; returns the audit if it was applied."""
        self.selected_lead = lead
        self.audit = None
        self._clear_pitch()
        token = self._begin(self.audit_state)

        try:
            audit = await self._auditor.audit(lead)
        except StageError as exc:
            if self._is_current(self.audit_state, token):
                self._fail(self.audit_state, exc)
            return None

        if not self._is_current(self.audit_state, token):
            return None
        self.audit = audit
        self.audit_state.status = StageStatus.SUCCESS
        return audit

    async def refresh_audit(self) -> BusinessAudit | None:
        if self.selected_lead is None:
            return None
        return await self.select_lead(self.selected_lead)

    # ------------------------------------------------------------------
    # Pitch
    # ------------------------------------------------------------------
    async def create_pitch(
        self,
        focus: PitchFocus | str = PitchFocus.AUTOMATION,
        tone: PitchTone | str = PitchTone.PROFESSIONAL,
        length: PitchLength | str = PitchLength.MEDIUM,
    ) -> str | None:
        """Draft a pitch for the selected lead + audit.

        No-op (None) until both exist. The result is dropped if the selection
        changes or a newer pitch is requested before it resolves.
        """
        lead, audit = self.selected_lead, self.audit
        if lead is None or audit is None:
            return None

        request = PitchRequest(lead_id=lead.id, focus=focus, tone=tone, length=length)
        self.last_pitch_request = request
        token = self._begin(self.pitch_state)

        try:
            pitch = await self._drafter.generate_pitch(
                lead, audit, request.focus, request.tone, request.length
            )
        except StageError as exc:
            if self._is_current(self.pitch_state, token):
                self._fail(self.pitch_state, exc)
            return None

        if not self._is_current(self.pitch_state, token):
            return None
        if self.selected_lead is None or self.selected_lead.id != request.lead_id:
            logger.debug("Discarding pitch for deselected lead %s", request.lead_id)
            return None
        self.pitch = pitch
        self.pitch_state.status = StageStatus.SUCCESS
        return pitch

    async def regenerate_pitch(self) -> str | None:
        """Re-run the last pitch request with the same parameters."""
        request = self.last_pitch_request
        if request is None:
            return None
        return await self.create_pitch(request.focus, request.tone, request.length)

    # ------------------------------------------------------------------
    # Selection / errors
    # ------------------------------------------------------------------
    def clear_selected_lead(self) -> None:
        self.selected_lead = None
        self.audit = None
        self.error = None
        self._clear_pitch()
        self._invalidate(self.audit_state)

    def dismiss_error(self) -> None:
        self.error = None


def build_pipeline(config: Config, provider: AIProvider | None = None) -> PipelineOrchestrator:
    """Wire the provider, the three stages and the orchestrator from ``config``."""
    provider = provider or GeminiProvider(config.gemini, default_model=config.models.audit)
    return PipelineOrchestrator(
        finder=LeadFinder(provider, model=config.models.discovery, lead_count=config.lead_count),
        auditor=Auditor(provider, model=config.models.audit),
        drafter=PitchDrafter(provider, model=config.models.pitch),
    )
