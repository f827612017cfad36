"""Digital-presence audit: web-grounded research, then gap extraction."""

from __future__ import annotations

import logging

from .coercion import coerce_json
from .config import DEFAULT_AUDIT_MODEL
from .errors import AuditError, ProviderError
from .models import BusinessAudit, BusinessLead
from .provider import AIProvider, Tool

logger = logging.getLogger(__name__)

NO_AUDIT_DATA = "No audit data available."

GAPS_SCHEMA = {"type": "ARRAY", "items": {"type": "STRING"}}


def build_audit_prompt(lead: BusinessLead) -> str:
    website_hint = f" Their listed website is {lead.website}." if lead.has_website else ""
    return (
        f'Conduct a digital presence audit for "{lead.name}" located at "{lead.address}".{website_hint}\n'
        "Search for their official website, social media (Facebook, Instagram, LinkedIn), and check for:\n"
        "1. Does the website have an online booking/scheduling system?\n"
        "2. Is there an AI chatbot visible?\n"
        "3. What is the copyright year in the footer?\n"
        "4. Are they active on social media?\n\n"
        "Provide a detailed summary and explicitly list missing digital assets (Gaps)."
    )


def build_gaps_prompt(content: str) -> str:
    return (
        f'Based on this audit text: "{content}", list the specific digital gaps or '
        "missing features as a short JSON array of strings "
        '(e.g., ["No AI Chatbot", "Outdated Website", "No Online Booking"]). '
        "Return only the JSON array."
    )


def clean_gaps(data: list) -> list[str]:
    """Keep non-blank string entries, stripped, in order."""
    return [item.strip() for item in data if isinstance(item, str) and item.strip()]


class Auditor:
    """Researches one lead's online presence and distils it into gaps.

    Phase 1 uses Google Search grounding and must succeed. Phase 2 asks for
    a structured array of gaps and degrades to an empty list on any failure.
    """

    def __init__(self, provider: AIProvider, model: str = DEFAULT_AUDIT_MODEL) -> None:
        self._provider = provider
        self._model = model

    async def _extract_gaps(self, lead: BusinessLead, content: str) -> list[str]:
        try:
            completion = await self._provider.complete(
                build_gaps_prompt(content),
                model=self._model,
                response_schema=GAPS_SCHEMA,
            )
        except ProviderError as exc:
            logger.warning("Gap extraction failed for '%s': %s", lead.name, exc)
            return []
        return clean_gaps(coerce_json(completion.text, [], expected_type=list))

    async def audit(self, lead: BusinessLead) -> BusinessAudit:
        """Run both phases. Raises ``AuditError`` if the research call fails."""
        logger.info("Auditing '%s' (%s)", lead.name, lead.id)
        try:
            research = await self._provider.complete(
                build_audit_prompt(lead),
                model=self._model,
                tools=[Tool.WEB_SEARCH],
            )
        except ProviderError as exc:
            logger.error("Audit research failed for '%s': %s", lead.name, exc)
            raise AuditError() from exc

        content = research.text or NO_AUDIT_DATA
        gaps = await self._extract_gaps(lead, content)
        logger.info(
            "Audited '%s': %d sources, %d gaps",
            lead.name,
            len(research.citations),
            len(gaps),
        )
        return BusinessAudit(content=content, sources=research.citations, gaps=gaps)

    run_audit = audit
