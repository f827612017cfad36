"""Generative AI provider: one ``complete`` call with optional grounding tools.

The pipeline stages depend only on the ``AIProvider`` protocol. ``GeminiProvider``
implements it on top of the google-genai async client.

API KEY REQUIRED:
- GEMINI_API_KEY from https://aistudio.google.com/app/apikey
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Protocol, Sequence

from google import genai
from google.genai import errors, types
from pydantic import BaseModel, Field

from .config import GeminiConfig
from .errors import ProviderError
from .models import Source
from .utils import preview, retry

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


class Tool(str, Enum):
    """Grounding tools a completion may use."""

    MAP_LOOKUP = "map_lookup"
    WEB_SEARCH = "web_search"


class Completion(BaseModel):
    """Text answer plus any grounding citations."""

    text: str = ""
    citations: list[Source] = Field(default_factory=list)


class AIProvider(Protocol):
    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        tools: Sequence[Tool] = (),
        response_schema: dict[str, Any] | None = None,
    ) -> Completion: ...


def _to_genai_tool(tool: Tool) -> types.Tool:
    if tool is Tool.MAP_LOOKUP:
        return types.Tool(google_maps=types.GoogleMaps())
    return types.Tool(google_search=types.GoogleSearch())


def extract_citations(response: Any) -> list[Source]:
    """Pull ``{title, uri}`` pairs from the first candidate's grounding metadata.

    Web and maps chunks are both accepted; chunks without a URI are skipped
    and duplicate URIs keep their first position.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    meta = getattr(candidates[0], "grounding_metadata", None)
    if meta is None:
        return []

    sources: list[Source] = []
    seen: set[str] = set()
    for chunk in getattr(meta, "grounding_chunks", None) or []:
        ref = getattr(chunk, "web", None) or getattr(chunk, "maps", None)
        uri = getattr(ref, "uri", None) if ref else None
        if not uri or uri in seen:
            continue
        seen.add(uri)
        sources.append(Source(title=getattr(ref, "title", None) or "Source", uri=uri))
    return sources


class GeminiProvider:
    """``AIProvider`` backed by Google Gemini.

    API KEY REQUIRED:
        Set GEMINI_API_KEY in your .env file.
    """

    def __init__(self, config: GeminiConfig, default_model: str = DEFAULT_MODEL) -> None:
        self.config = config
        self.default_model = default_model
        self._client: genai.Client | None = None

        if not config.is_valid:
            logger.warning(
                "Gemini API key is a placeholder. "
                "Add real GEMINI_API_KEY to .env to enable the pipeline."
            )

    @property
    def client(self) -> genai.Client:
        """Lazy initialization of Gemini client."""
        if self._client is None:
            self.config.validate()
            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options=types.HttpOptions(timeout=self.config.timeout_ms),
            )
            logger.info("Gemini client initialized")
        return self._client

    @staticmethod
    def build_request_config(
        tools: Sequence[Tool] = (),
        response_schema: dict[str, Any] | None = None,
    ) -> types.GenerateContentConfig | None:
        """Translate tool and schema options into a google-genai config."""
        if not tools and response_schema is None:
            return None
        kwargs: dict[str, Any] = {}
        if tools:
            kwargs["tools"] = [_to_genai_tool(t) for t in tools]
        if response_schema is not None:
            kwargs["response_mime_type"] = "application/json"
            kwargs["response_schema"] = response_schema
        return types.GenerateContentConfig(**kwargs)

    @retry(max_retries=3, backoff_factor=1.5, retryable_exceptions=(errors.ServerError,))
    async def _generate(self, model: str, prompt: str, config: types.GenerateContentConfig | None):
        return await self.client.aio.models.generate_content(
            model=model,
            contents=prompt,
            config=config,
        )

    async def complete(
        self,
        prompt: str,
        *,
        model: str | None = None,
        tools: Sequence[Tool] = (),
        response_schema: dict[str, Any] | None = None,
    ) -> Completion:
        model = model or self.default_model
        config = self.build_request_config(tools, response_schema)
        logger.debug("Gemini request model=%s tools=%s", model, [t.value for t in tools])
        try:
            response = await self._generate(model, prompt, config)
        except errors.APIError as exc:
            logger.error("Gemini API error (%s): %s", model, exc)
            raise ProviderError(f"Gemini API error: {exc}") from exc
        except Exception as exc:
            logger.error("Gemini request failed (%s): %s", model, exc)
            raise ProviderError(f"Gemini request failed: {exc}") from exc

        text = (response.text or "").strip()
        citations = extract_citations(response)
        logger.debug(
            "Gemini response model=%s citations=%d text=%s",
            model,
            len(citations),
            preview(text),
        )
        return Completion(text=text, citations=citations)
