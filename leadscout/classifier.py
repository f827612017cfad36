"""Business lead analysis: opportunity classification and id generation."""

from __future__ import annotations

import time
from dataclasses import dataclass

from .models import OpportunityType


@dataclass(frozen=True)
class LeadThresholds:
    """Cut-offs for the opportunity rules. All comparisons are strict."""

    low_reputation_rating: float = 4.0
    undervalued_rating: float = 4.5
    undervalued_max_reviews: int = 20


DEFAULT_THRESHOLDS = LeadThresholds()


def identify_opportunities(
    rating: float,
    reviews: int,
    has_website: bool,
    thresholds: LeadThresholds = DEFAULT_THRESHOLDS,
) -> list[OpportunityType]:
    """Return the opportunity tags for a business.

    Rules are evaluated independently, always in the order LOW_REPUTATION,
    UNDERVALUED, MISSING_INFO.
    """
    opportunities: list[OpportunityType] = []

    if rating < thresholds.low_reputation_rating:
        opportunities.append(OpportunityType.LOW_REPUTATION)

    if rating > thresholds.undervalued_rating and reviews < thresholds.undervalued_max_reviews:
        opportunities.append(OpportunityType.UNDERVALUED)

    if not has_website:
        opportunities.append(OpportunityType.MISSING_INFO)

    return opportunities


def generate_lead_id(index: int) -> str:
    """Id unique within one discovery batch: ``lead-<index>-<epoch ms>``."""
    return f"lead-{index}-{int(time.time() * 1000)}"
