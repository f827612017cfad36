"""Best-effort extraction of a JSON value from free-form model output.

Model responses may be pure JSON, JSON wrapped in a ```json fence, or JSON
embedded in prose. ``coerce_json`` tries each shape in turn and falls back
to a caller-supplied default instead of raising.

Known limitation: the bracket scan returns the first candidate that decodes,
so an unrelated JSON-looking fragment earlier in the prose wins over the
intended payload.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterator, TypeVar

from .utils import preview

logger = logging.getLogger(__name__)

T = TypeVar("T")

_FENCED_JSON = re.compile(r"```[ \t]*json[ \t]*\r?\n?(.*?)```", re.IGNORECASE | re.DOTALL)
_decoder = json.JSONDecoder()


_PARSE_ERRORS = (ValueError, RecursionError)


def _whole_text(text: str) -> Iterator[Any]:
    try:
        yield json.loads(text)
    except _PARSE_ERRORS:
        return


def _fenced_blocks(text: str) -> Iterator[Any]:
    for match in _FENCED_JSON.finditer(text):
        try:
            value = json.loads(match.group(1))
        except _PARSE_ERRORS as exc:
            logger.debug("Skipping unparseable fenced block: %s", exc)
            continue
        yield value


def _embedded(text: str, opener: str, kind: type) -> Iterator[Any]:
    """Decode a value at each ``opener`` position, yielding those of ``kind``."""
    pos = text.find(opener)
    while pos != -1:
        try:
            value, _ = _decoder.raw_decode(text, pos)
        except _PARSE_ERRORS:
            value = None
        if isinstance(value, kind):
            yield value
        pos = text.find(opener, pos + 1)


def _candidates(text: str) -> Iterator[Any]:
    yield from _whole_text(text)
    yield from _fenced_blocks(text)
    yield from _embedded(text, "[", list)
    yield from _embedded(text, "{", dict)


def coerce_json(raw_text: str | None, fallback: T, expected_type: type | None = None) -> T:
    """Parse ``raw_text`` into a JSON value, or return ``fallback``.

    Strategies, first success wins: the whole text, fenced ``json`` blocks,
    the first decodable array, the first decodable object. A candidate that
    fails to decode is skipped. When ``expected_type`` is given, parsed
    values of another type are skipped too. Never raises.
    """
    if not raw_text or not raw_text.strip():
        logger.warning("Empty model response, using fallback")
        return fallback

    text = raw_text.strip()
    for value in _candidates(text):
        if expected_type is None or isinstance(value, expected_type):
            return value

    logger.warning("No JSON found in model response: %s", preview(text))
    return fallback
