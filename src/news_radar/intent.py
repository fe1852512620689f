"""Resolve free-text news queries into a structured retrieval intent.

The language-model path is best effort. Any failure there (error, timeout,
empty output, malformed JSON, unknown intent) drops to a deterministic
keyword cascade that always produces an answer.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from .llm import LanguageUnderstanding
from .models import IntentKind, QueryIntent

logger = logging.getLogger(__name__)

NEARBY_KEYWORDS = ("near", "nearby", "around")
CATEGORY_KEYWORDS = ("category", "technology", "business", "sports")
SOURCE_NAMES = ("times", "reuters")
SCORE_KEYWORDS = ("relevant", "important")


def strip_code_fence(text: str) -> str:
    """Remove an optional ```json ... ``` wrapper around model output."""
    content = text.strip()
    if content.startswith("```json"):
        content = content[len("```json") :]
    elif content.startswith("```"):
        content = content[len("```") :]
    if content.endswith("```"):
        content = content[: -len("```")]
    return content.strip()


def parse_intent_payload(raw: str) -> QueryIntent:
    """
    Parse model output into a QueryIntent.

    Raises ValueError when the text is not a JSON object of the expected shape
    or names an intent outside the supported kinds.
    """
    data = json.loads(strip_code_fence(raw))
    if not isinstance(data, dict):
        raise ValueError("intent payload must be a JSON object.")
    if not isinstance(data.get("intent"), str):
        raise ValueError("intent payload is missing a string 'intent'.")
    data["entities"] = data.get("entities") or []
    data["concepts"] = data.get("concepts") or []
    return QueryIntent.model_validate(data)


def _title_case(word: str) -> str:
    # Upper-case each letter that follows a separator; leave the rest untouched.
    chars = []
    after_separator = True
    for char in word:
        chars.append(char.upper() if after_separator else char)
        if char.isascii():
            after_separator = not (char.isalnum() or char == "_")
        else:
            after_separator = char.isspace()
    return "".join(chars)


def extract_entities(query: str) -> List[str]:
    """Tokens longer than three characters that already look capitalised."""
    return [
        word for word in query.split() if len(word) > 3 and _title_case(word) == word
    ]


def fallback_kind(query: str) -> IntentKind:
    lower = query.lower()
    if any(keyword in lower for keyword in NEARBY_KEYWORDS):
        return IntentKind.NEARBY
    if any(keyword in lower for keyword in CATEGORY_KEYWORDS):
        return IntentKind.CATEGORY
    if "from" in lower and any(name in lower for name in SOURCE_NAMES):
        return IntentKind.SOURCE
    if any(keyword in lower for keyword in SCORE_KEYWORDS):
        return IntentKind.SCORE
    return IntentKind.SEARCH


def fallback_intent(query: str) -> QueryIntent:
    """Keyword-based classification used whenever the model path is unavailable."""
    return QueryIntent(
        intent=fallback_kind(query),
        entities=extract_entities(query),
        concepts=[],
    )


class IntentClassifier:
    """Classify queries with an optional language model and a keyword fallback."""

    def __init__(self, backend: Optional[LanguageUnderstanding] = None) -> None:
        self._backend = backend

    @property
    def uses_model(self) -> bool:
        return self._backend is not None

    def classify(self, query: str, location_hint: str = "") -> QueryIntent:
        if self._backend is None:
            return fallback_intent(query)

        try:
            raw = self._backend.classify(query, location_hint)
        except Exception as exc:  # collaborator errors never reach the caller
            logger.warning("Intent model failed, using keyword fallback: %s", exc)
            return fallback_intent(query)

        if not raw or not raw.strip():
            logger.warning("Intent model returned no text, using keyword fallback")
            return fallback_intent(query)

        try:
            return parse_intent_payload(raw)
        except ValueError as exc:
            logger.warning("Unparseable intent payload, using keyword fallback: %s", exc)
            return fallback_intent(query)
