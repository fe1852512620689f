"""Time-decayed, engagement-weighted trending ranking of nearby articles.

Candidates come from storage already joined with their interaction
aggregates; this module owns the weighting constants, the decay formula and
the final ordering.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol, Sequence

from .geo import BoundingBox, bounding_box
from .models import Article, TrendingArticle

logger = logging.getLogger(__name__)

EVENT_WEIGHTS: dict[str, float] = {
    "share": 3.0,
    "click": 2.0,
    "view": 1.0,
}

# Reported for articles with no qualifying events; large enough that any
# decayed score built on it is effectively zero.
NO_INTERACTION_HOURS = 999999.0


def event_weight(event_type: str) -> float:
    """Weight of a single interaction; unknown types count for nothing."""
    return EVENT_WEIGHTS.get(event_type, 0.0)


@dataclass
class TrendingCandidate:
    article: Article
    weighted_score: float = 0.0
    hours_since_last_interaction: float = NO_INTERACTION_HOURS
    interaction_count: int = 0


class TrendingStore(Protocol):
    def trending_candidates(
        self, box: BoundingBox, since: datetime, now: datetime
    ) -> list[TrendingCandidate]: ...


def sort_key(candidate: TrendingCandidate) -> float:
    if candidate.weighted_score > 0:
        return candidate.weighted_score / (1 + candidate.hours_since_last_interaction)
    return 0.0


def trending_score(candidate: TrendingCandidate) -> float:
    """Reported score: the sort key rescaled by 100."""
    if candidate.weighted_score > 0:
        return (candidate.weighted_score * 100) / (
            1 + candidate.hours_since_last_interaction
        )
    return 0.0


def order_candidates(
    candidates: Sequence[TrendingCandidate], limit: int
) -> list[TrendingCandidate]:
    """Sort by decayed engagement, newest publication first on ties, then truncate."""
    ordered = sorted(
        candidates,
        key=lambda c: (-sort_key(c), -c.article.publication_date.timestamp()),
    )
    return ordered[: max(0, limit)]


class TrendingRanker:
    """Rank articles inside a radius by recent, weighted engagement."""

    def __init__(self, store: TrendingStore) -> None:
        self._store = store

    def rank(
        self,
        lat: float,
        lon: float,
        radius_km: float,
        limit: int,
        hours_back: int,
        *,
        now: datetime | None = None,
    ) -> list[TrendingArticle]:
        current = now or datetime.now(timezone.utc)
        since = current - timedelta(hours=hours_back)
        box = bounding_box(lat, lon, radius_km)
        candidates = self._store.trending_candidates(box, since, current)
        ranked = order_candidates(candidates, limit)
        logger.debug(
            "Ranked %d of %d trending candidates around (%s, %s)",
            len(ranked),
            len(candidates),
            lat,
            lon,
        )
        return [
            TrendingArticle(article=c.article, trending_score=trending_score(c))
            for c in ranked
        ]
