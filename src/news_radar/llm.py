"""OpenAI-backed collaborators for query classification and summaries.

Both capabilities are optional. When no API key is configured the builders
return ``None`` and callers rely on their deterministic fallbacks. Calls are
made without retries and with a hard timeout; every failure surfaces as an
exception for the caller to absorb.
"""

from __future__ import annotations

from typing import Optional, Protocol

from openai import OpenAI

from .config import Settings, get_settings

INTENT_SYSTEM_PROMPT = "You are a query analysis assistant. Return only valid JSON."

INTENT_PROMPT_TEMPLATE = """Analyze the following news query and extract:
1. Intent: Choose ONE from [category, source, search, nearby, score]
2. Entities: Key people, organizations, locations, events
3. Concepts: Main topics or themes

Query: "{query}"
User Location Context: {location}

Return JSON only in this exact format:
{{
  "intent": "<one of: category, source, search, nearby, score>",
  "entities": ["entity1", "entity2"],
  "concepts": ["concept1", "concept2"]
}}"""

SUMMARY_PROMPT_TEMPLATE = """Summarize this news article in 2-3 sentences:

Title: {title}
Description: {description}

Provide a concise, informative summary."""


class LanguageUnderstanding(Protocol):
    """Turns a query into raw structured text describing its intent."""

    def classify(self, query: str, location_hint: str) -> str: ...


class Summarizer(Protocol):
    """Writes a short summary for one article."""

    def summarize(self, title: str, description: str) -> str: ...


def build_client(
    api_key: Optional[str] = None, *, timeout: float = 10.0
) -> OpenAI:
    """Create an OpenAI client with retries disabled; separated for easier testing."""
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)


def _response_text_or_raise(response: object, *, step: str) -> str:
    """Extract response text or raise a clear error when output is missing."""
    text = getattr(response, "output_text", None)
    if isinstance(text, str) and text.strip():
        return text

    status = getattr(response, "status", None)
    if status == "incomplete":
        details = getattr(response, "incomplete_details", None)
        reason = getattr(details, "reason", None) if details else None
        raise RuntimeError(f"{step} response incomplete (reason={reason}).")

    err = getattr(response, "error", None)
    if err:
        raise RuntimeError(f"{step} response error: {err}")

    raise RuntimeError(f"{step} response missing output text.")


class OpenAILanguageUnderstanding:
    """Classify queries with the OpenAI Responses API."""

    def __init__(self, client: OpenAI, *, model: str, temperature: float = 0.3) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature

    def classify(self, query: str, location_hint: str) -> str:
        response = self._client.responses.create(
            model=self._model,
            input=[
                {"role": "system", "content": INTENT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": INTENT_PROMPT_TEMPLATE.format(
                        query=query, location=location_hint
                    ),
                },
            ],
            temperature=self._temperature,
        )
        return _response_text_or_raise(response, step="Intent classifier")


class OpenAISummarizer:
    """Summarize articles with the OpenAI Responses API."""

    def __init__(
        self,
        client: OpenAI,
        *,
        model: str,
        temperature: float = 0.5,
        max_tokens: int = 150,
    ) -> None:
        self._client = client
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens

    def summarize(self, title: str, description: str) -> str:
        request_kwargs = {
            "model": self._model,
            "input": [
                {
                    "role": "user",
                    "content": SUMMARY_PROMPT_TEMPLATE.format(
                        title=title, description=description
                    ),
                }
            ],
            "temperature": self._temperature,
        }
        if self._max_tokens and self._max_tokens > 0:
            request_kwargs["max_output_tokens"] = self._max_tokens
        response = self._client.responses.create(**request_kwargs)
        return _response_text_or_raise(response, step="Summarizer").strip()


def build_language_understanding(
    settings: Settings | None = None, client: OpenAI | None = None
) -> OpenAILanguageUnderstanding | None:
    settings = settings or get_settings()
    if not settings.openai_api_key and client is None:
        return None
    active = client or build_client(
        settings.openai_api_key, timeout=settings.llm_timeout_seconds
    )
    return OpenAILanguageUnderstanding(
        active, model=settings.intent_model, temperature=settings.intent_temperature
    )


def build_summarizer(
    settings: Settings | None = None, client: OpenAI | None = None
) -> OpenAISummarizer | None:
    settings = settings or get_settings()
    if not settings.openai_api_key and client is None:
        return None
    active = client or build_client(
        settings.openai_api_key, timeout=settings.llm_timeout_seconds
    )
    return OpenAISummarizer(
        active,
        model=settings.summarizer_model,
        temperature=settings.summary_temperature,
        max_tokens=settings.summary_max_tokens,
    )
