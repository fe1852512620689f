"""Validation of seed article records against the bundled JSON schema."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any, Dict

from jsonschema import Draft202012Validator, FormatChecker

SCHEMA_RESOURCE = "article_schema.json"


@lru_cache(maxsize=None)
def load_schema() -> Dict[str, Any]:
    """Return the bundled article schema."""
    resource = resources.files("news_radar") / "schemas" / SCHEMA_RESOURCE
    text = resource.read_text(encoding="utf-8")
    return json.loads(text)


@lru_cache(maxsize=None)
def article_validator() -> Draft202012Validator:
    schema = load_schema()
    Draft202012Validator.check_schema(schema)
    return Draft202012Validator(schema, format_checker=FormatChecker())


def describe_errors(payload: Dict[str, Any]) -> list[str]:
    """List ``field: message`` problems for a record, ordered by field path."""
    problems = []
    errors = article_validator().iter_errors(payload)
    for err in sorted(errors, key=lambda e: [str(p) for p in e.path]):
        field = ".".join(str(piece) for piece in err.absolute_path) or "<record>"
        problems.append(f"{field}: {err.message}")
    return problems


def validate_article_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Raise ValueError naming the record and its problems when it is invalid."""
    problems = describe_errors(payload)
    if problems:
        record = payload.get("id", "<unknown>") if isinstance(payload, dict) else "<unknown>"
        raise ValueError(f"Invalid article {record}: {'; '.join(problems)}")
    return payload
