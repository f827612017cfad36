"""Gemini-powered pitch drafter: personalised cold pitch from lead + audit."""

from __future__ import annotations

import logging

from .config import DEFAULT_PITCH_MODEL
from .errors import PitchError, ProviderError
from .models import BusinessAudit, BusinessLead, PitchFocus, PitchLength, PitchTone
from .provider import AIProvider

logger = logging.getLogger(__name__)

PITCH_FALLBACK = "Failed to generate pitch."

TONE_INSTRUCTIONS: dict[PitchTone, str] = {
    PitchTone.FORMAL: "Formal: polished, respectful and businesslike; no slang.",
    PitchTone.FRIENDLY: "Friendly: warm and conversational, like a helpful neighbour.",
    PitchTone.URGENT: "Urgent: direct, stress what they lose every week they wait.",
    PitchTone.PROFESSIONAL: "Professional: confident and concise, credible but not stiff.",
}

# (min words, max words)
LENGTH_BANDS: dict[PitchLength, tuple[int, int]] = {
    PitchLength.SHORT: (60, 100),
    PitchLength.MEDIUM: (120, 180),
    PitchLength.LONG: (220, 300),
}

_WEBSITE_FRAMING = """PRIMARY FOCUS: Website Launchpad.
MESSAGE: I noticed you don't have an official website yet. In today's market, you're losing customers to competitors who are easier to find online. I want to build you a high-performance "digital storefront" that captures leads 24/7.
VALUE: Social proof, SEO visibility, and a professional brand image."""

_AUTOMATION_FRAMING = """PRIMARY FOCUS: AI Automation.
MESSAGE: I noticed several manual gaps in your digital workflow (e.g., {gaps}). We implement AI solutions like automated booking and 24/7 chatbots that act as a full-time employee for a fraction of the cost.
VALUE: Scalability, efficiency, and instant response times."""


def tone_instruction(tone: PitchTone | str) -> str:
    """Instruction fragment for a tone. Unknown free-text tones pass through."""
    if not isinstance(tone, PitchTone):
        try:
            tone = PitchTone(tone)
        except ValueError:
            return str(tone).strip() or TONE_INSTRUCTIONS[PitchTone.PROFESSIONAL]
    return TONE_INSTRUCTIONS[tone]


def length_instruction(length: PitchLength | str) -> str:
    low, high = LENGTH_BANDS[PitchLength(length)]
    return f"roughly {low}-{high} words"


def build_pitch_prompt(
    lead: BusinessLead,
    audit: BusinessAudit,
    focus: PitchFocus | str = PitchFocus.AUTOMATION,
    tone: PitchTone | str = PitchTone.PROFESSIONAL,
    length: PitchLength | str = PitchLength.MEDIUM,
) -> str:
    focus = PitchFocus(focus)
    gaps = ", ".join(audit.gaps) if audit.gaps else "none identified"
    if focus is PitchFocus.WEBSITE_PRESENCE:
        specialty = "Website Design and Digital Authority"
        framing = _WEBSITE_FRAMING
    else:
        specialty = "AI-Driven Business Automation"
        framing = _AUTOMATION_FRAMING.format(gaps=gaps)

    return f"""You are a world-class sales copywriter for an agency specializing in {specialty}.
Write a high-converting, personalized cold pitch to the business owner of "{lead.name}".

STRICT CONSTRAINTS:
- TONE: {tone_instruction(tone)}
- LENGTH: {length_instruction(length)}
- Mention "{lead.name}" by name.

{framing}

Context from Audit:
- Rating: {lead.rating} stars with {lead.reviews} reviews.
- Audit Data: {audit.content}
- Identified Missing Assets: {gaps}

GOAL: Get them to reply or book a quick 10-minute audit call.
Make it clear you've researched them specifically.
"""


class PitchDrafter:
    """Generates a cold pitch from already-gathered context. No grounding tools."""

    def __init__(self, provider: AIProvider, model: str = DEFAULT_PITCH_MODEL) -> None:
        self._provider = provider
        self._model = model

    async def generate_pitch(
        self,
        lead: BusinessLead,
        audit: BusinessAudit,
        focus: PitchFocus | str = PitchFocus.AUTOMATION,
        tone: PitchTone | str = PitchTone.PROFESSIONAL,
        length: PitchLength | str = PitchLength.MEDIUM,
    ) -> str:
        """Return the pitch text. Raises ``PitchError`` if the provider call fails."""
        prompt = build_pitch_prompt(lead, audit, focus, tone, length)
        try:
            completion = await self._provider.complete(prompt, model=self._model)
        except ProviderError as exc:
            logger.error("Pitch generation failed for '%s': %s", lead.name, exc)
            raise PitchError() from exc

        pitch = completion.text.strip()
        if not pitch:
            logger.warning("Empty pitch returned for '%s'", lead.name)
            return PITCH_FALLBACK
        logger.info("Drafted pitch for '%s' (%d words).", lead.name, len(pitch.split()))
        return pitch
