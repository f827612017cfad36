"""Lead discovery: Gemini with Google Maps grounding finds local businesses."""

from __future__ import annotations

import logging
from typing import Any

from .classifier import DEFAULT_THRESHOLDS, LeadThresholds, generate_lead_id, identify_opportunities
from .coercion import coerce_json
from .config import DEFAULT_DISCOVERY_MODEL, DEFAULT_LEAD_COUNT
from .errors import DiscoveryError, ProviderError
from .models import BusinessLead
from .provider import AIProvider, Tool

logger = logging.getLogger(__name__)


def build_discovery_prompt(category: str, location: str, count: int) -> str:
    return (
        f'Find {count} local businesses for the niche "{category}" in "{location}". '
        "Return the results as a JSON array of objects with the following keys: "
        "name, address, rating, reviews, website (if available). "
        "Provide only the JSON data."
    )


def _number(value: Any, cast: type, default: float | int) -> Any:
    if isinstance(value, bool) or value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default


def _records(data: Any) -> list[Any]:
    """Accept a bare array or an object wrapping one, e.g. ``{"businesses": [...]}``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for value in data.values():
            if isinstance(value, list):
                return value
    return []


def to_lead(item: dict[str, Any], index: int, thresholds: LeadThresholds = DEFAULT_THRESHOLDS) -> BusinessLead | None:
    """Map one raw record to a classified ``BusinessLead``; None if it has no name."""
    name = str(item.get("name") or "").strip()
    if not name:
        return None

    rating = _number(item.get("rating"), float, 0.0)
    reviews = max(0, _number(item.get("reviews"), int, 0))
    website = str(item.get("website") or "").strip() or None

    return BusinessLead(
        id=generate_lead_id(index),
        name=name,
        address=str(item.get("address") or "").strip(),
        rating=rating,
        reviews=reviews,
        website=website,
        opportunities=identify_opportunities(rating, reviews, website is not None, thresholds),
    )


class LeadFinder:
    """Discovers businesses for a category + location via map-grounded Gemini."""

    def __init__(
        self,
        provider: AIProvider,
        model: str = DEFAULT_DISCOVERY_MODEL,
        lead_count: int = DEFAULT_LEAD_COUNT,
        thresholds: LeadThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self._provider = provider
        self._model = model
        self._lead_count = lead_count
        self._thresholds = thresholds

    async def discover(self, category: str, location: str) -> list[BusinessLead]:
        """Return up to ``lead_count`` classified leads.

        Raises ``DiscoveryError`` if the provider call fails. Unparseable
        output yields an empty list.
        """
        category, location = category.strip(), location.strip()
        if not category or not location:
            raise ValueError("category and location are required")

        prompt = build_discovery_prompt(category, location, self._lead_count)
        logger.info("Discovering '%s' in '%s' (count=%d)", category, location, self._lead_count)

        try:
            completion = await self._provider.complete(
                prompt,
                model=self._model,
                tools=[Tool.MAP_LOOKUP],
            )
        except ProviderError as exc:
            logger.error("Discovery failed for '%s' in '%s': %s", category, location, exc)
            raise DiscoveryError() from exc

        data = coerce_json(completion.text, [])
        leads: list[BusinessLead] = []
        for item in _records(data):
            if len(leads) >= self._lead_count:
                break
            if not isinstance(item, dict):
                continue
            lead = to_lead(item, len(leads), self._thresholds)
            if lead is not None:
                leads.append(lead)

        logger.info("Found %d leads for '%s' in '%s'.", len(leads), category, location)
        return leads
