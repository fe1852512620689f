"""Seed-data loading: validate a JSON article dump and insert it with sample events."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Sequence

from .db import UserEventRecord
from .models import Article
from .repository import ArticleRepository
from .schema import validate_article_payload

logger = logging.getLogger(__name__)

SAMPLE_EVENT_TYPES = ("view", "click", "share")
MAX_SAMPLE_EVENTS = 1000


@dataclass
class LoadReport:
    articles: List[Article] = field(default_factory=list)
    invalid: List[tuple[int, str]] = field(default_factory=list)
    inserted: int = 0
    events: int = 0


def parse_timestamp(raw: str) -> datetime:
    """Parse RFC3339 timestamps, including a trailing 'Z' or '+0000' offsets."""
    txt = raw.strip()
    if txt.endswith(("Z", "z")):
        txt = f"{txt[:-1]}+00:00"
    else:
        txt = re.sub(r"([+-]\d{2})(\d{2})$", r"\1:\2", txt)
    try:
        parsed = datetime.fromisoformat(txt)
    except ValueError as exc:
        raise ValueError(
            f"publication_date must be an RFC3339 datetime, got {raw!r}."
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def article_from_payload(payload: Dict[str, Any]) -> Article:
    validate_article_payload(payload)
    categories = [c for c in (payload.get("category") or []) if isinstance(c, str)]
    return Article(
        id=payload["id"],
        title=payload["title"],
        description=payload["description"],
        url=payload["url"],
        publication_date=parse_timestamp(payload["publication_date"]),
        source_name=payload["source_name"],
        categories=categories or ["General"],
        relevance_score=float(payload["relevance_score"]),
        latitude=float(payload["latitude"]),
        longitude=float(payload["longitude"]),
    )


def read_articles(path: Path) -> LoadReport:
    """Parse and validate every record; invalid ones are reported, not raised."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError("Seed file must contain a JSON array of articles.")
    report = LoadReport()
    for idx, raw in enumerate(data):
        if not isinstance(raw, dict):
            report.invalid.append((idx, "record is not a JSON object"))
            continue
        try:
            report.articles.append(article_from_payload(raw))
        except ValueError as exc:
            report.invalid.append((idx, str(exc)))
    return report


def sample_events(
    articles: Sequence[Article], *, now: datetime | None = None
) -> List[UserEventRecord]:
    """
    Deterministic interaction history spread over the seeded articles.

    Event i targets article i mod n, cycles view/click/share, jitters the
    location by up to 0.05 degrees and is stamped i minutes before ``now``.
    """
    if not articles:
        return []
    current = now or datetime.now(timezone.utc)
    total = min(MAX_SAMPLE_EVENTS, len(articles) * 2)
    events: List[UserEventRecord] = []
    for i in range(total):
        article = articles[i % len(articles)]
        offset = (i % 10 - 5) * 0.01
        events.append(
            UserEventRecord(
                article_id=article.id,
                event_type=SAMPLE_EVENT_TYPES[i % len(SAMPLE_EVENT_TYPES)],
                latitude=article.latitude + offset,
                longitude=article.longitude + offset,
                timestamp=current - timedelta(minutes=i),
            )
        )
    return events


def load_file(
    repository: ArticleRepository, path: Path, *, with_events: bool = True
) -> LoadReport:
    report = read_articles(path)
    for idx, reason in report.invalid:
        logger.warning("Skipping article #%d in %s: %s", idx, path, reason)
    logger.info("Inserting %d articles from %s", len(report.articles), path)
    report.inserted = repository.bulk_create(report.articles)
    if with_events:
        report.events = repository.insert_user_events(sample_events(report.articles))
        logger.info("Generated %d sample events", report.events)
    return report
