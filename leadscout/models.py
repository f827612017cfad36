"""Pydantic data models for the lead discovery, audit and pitch pipeline."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OpportunityType(str, Enum):
    """Sales angle derived from a lead's rating, reviews and website."""

    LOW_REPUTATION = "Low Reputation"
    UNDERVALUED = "Undervalued"
    MISSING_INFO = "Missing Info"


class PitchFocus(str, Enum):
    """Which of the two message framings the pitch uses."""

    AUTOMATION = "automation"
    WEBSITE_PRESENCE = "website-presence"

    @classmethod
    def _missing_(cls, value):
        # Older callers sent the bare "website" value.
        if isinstance(value, str) and value.strip().lower() == "website":
            return cls.WEBSITE_PRESENCE
        return None


class _CaseInsensitiveEnum(str, Enum):
    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class PitchTone(_CaseInsensitiveEnum):
    FORMAL = "Formal"
    FRIENDLY = "Friendly"
    URGENT = "Urgent"
    PROFESSIONAL = "Professional"


class PitchLength(_CaseInsensitiveEnum):
    SHORT = "Short"
    MEDIUM = "Medium"
    LONG = "Long"


class BusinessLead(BaseModel):
    """A single business discovered for a category + location search.

    Leads are immutable once created; a new search replaces them wholesale.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    address: str = ""
    rating: float = 0.0
    reviews: int = Field(default=0, ge=0)
    website: str | None = None
    opportunities: tuple[OpportunityType, ...] = ()

    @property
    def has_website(self) -> bool:
        return bool(self.website)


class Source(BaseModel):
    """A grounding citation returned alongside a model answer."""

    title: str
    uri: str


class BusinessAudit(BaseModel):
    """Digital-presence audit for one lead."""

    content: str
    sources: list[Source] = Field(default_factory=list)
    gaps: list[str] = Field(default_factory=list)


class SearchState(BaseModel):
    """Category + location pair submitted by the user."""

    category: str = Field(..., description="Business niche, e.g. 'Dentist'")
    location: str = Field(..., description="City or area, e.g. 'Austin, TX'")


class PitchRequest(BaseModel):
    """Parameters of a pitch request, remembered so it can be regenerated."""

    lead_id: str
    focus: PitchFocus = PitchFocus.AUTOMATION
    tone: PitchTone | str = PitchTone.PROFESSIONAL
    length: PitchLength = PitchLength.MEDIUM

    @field_validator("tone", mode="before")
    @classmethod
    def known_tone(cls, v):
        """Map known tone names onto the enum; keep free text as-is."""
        if isinstance(v, str) and not isinstance(v, PitchTone):
            try:
                return PitchTone(v)
            except ValueError:
                return v.strip()
        return v
