"""Storage access for articles and user events.

Every read skips tombstoned articles. Filters that need array membership or
spherical distance are evaluated in Python over SQL-ordered rows so the same
repository runs on PostgreSQL and SQLite.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterable, Iterator, List, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .db import ArticleRecord, UserEventRecord, utc_now
from .errors import StorageFailure
from .geo import BoundingBox, haversine_km
from .models import Article
from .trending import EVENT_WEIGHTS, NO_INTERACTION_HOURS, TrendingCandidate

logger = logging.getLogger(__name__)

BULK_BATCH_SIZE = 100


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps (SQLite drops tzinfo) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_article(record: ArticleRecord) -> Article:
    return Article(
        id=record.id,
        title=record.title or "",
        description=record.description or "",
        url=record.url or "",
        publication_date=as_utc(record.publication_date),
        source_name=record.source_name or "",
        categories=list(record.categories or []),
        relevance_score=record.relevance_score or 0.0,
        latitude=record.latitude,
        longitude=record.longitude,
    )


def _to_record(article: Article) -> ArticleRecord:
    return ArticleRecord(
        id=article.id,
        title=article.title,
        description=article.description,
        url=article.url,
        publication_date=as_utc(article.publication_date),
        source_name=article.source_name,
        categories=list(article.categories) or ["General"],
        relevance_score=article.relevance_score,
        latitude=article.latitude,
        longitude=article.longitude,
    )


def _weight_expression():
    return case(
        *[
            (UserEventRecord.event_type == name, weight)
            for name, weight in EVENT_WEIGHTS.items()
        ],
        else_=0.0,
    )


class ArticleRepository:
    """Repository-style reads and writes over the articles/user_events tables."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Storage operation %s failed", operation)
            raise StorageFailure(f"{operation} failed: {exc}") from exc
        finally:
            session.close()

    @staticmethod
    def _active():
        return select(ArticleRecord).where(ArticleRecord.deleted_at.is_(None))

    # --- writes -----------------------------------------------------------

    def create(self, article: Article) -> None:
        with self._session("create") as session:
            session.add(_to_record(article))

    def bulk_create(self, articles: Iterable[Article]) -> int:
        """Insert articles in batches, skipping ids that already exist."""
        pending = list(articles)
        inserted = 0
        with self._session("bulk_create") as session:
            for start in range(0, len(pending), BULK_BATCH_SIZE):
                batch = pending[start : start + BULK_BATCH_SIZE]
                ids = [a.id for a in batch]
                existing = set(
                    session.scalars(
                        select(ArticleRecord.id).where(ArticleRecord.id.in_(ids))
                    )
                )
                fresh: dict[str, ArticleRecord] = {}
                for article in batch:
                    if article.id in existing or article.id in fresh:
                        continue
                    fresh[article.id] = _to_record(article)
                session.add_all(fresh.values())
                session.flush()
                inserted += len(fresh)
        return inserted

    def soft_delete(self, article_id: str, *, at: datetime | None = None) -> bool:
        with self._session("soft_delete") as session:
            record = session.get(ArticleRecord, article_id)
            if record is None or record.deleted_at is not None:
                return False
            record.deleted_at = as_utc(at) if at else utc_now()
            return True

    def insert_user_event(
        self,
        article_id: str,
        event_type: str,
        latitude: float,
        longitude: float,
        *,
        timestamp: datetime | None = None,
    ) -> int:
        """Store one interaction; the event type is not validated here."""
        event = UserEventRecord(
            article_id=article_id,
            event_type=event_type,
            latitude=latitude,
            longitude=longitude,
            timestamp=as_utc(timestamp) if timestamp else utc_now(),
        )
        with self._session("insert_user_event") as session:
            session.add(event)
            session.flush()
            return event.id

    def insert_user_events(self, events: Iterable[UserEventRecord]) -> int:
        rows = list(events)
        with self._session("insert_user_events") as session:
            session.add_all(rows)
        return len(rows)

    # --- reads ------------------------------------------------------------

    def get(self, article_id: str) -> Optional[Article]:
        with self._session("get") as session:
            record = session.scalars(
                self._active().where(ArticleRecord.id == article_id)
            ).first()
            return _to_article(record) if record else None

    def by_category(self, category: str, limit: int) -> List[Article]:
        stmt = self._active().order_by(ArticleRecord.publication_date.desc())
        results: List[Article] = []
        with self._session("by_category") as session:
            for record in session.scalars(stmt):
                if category in (record.categories or []):
                    results.append(_to_article(record))
                    if len(results) >= limit:
                        break
        return results

    def by_source(self, source: str, limit: int) -> List[Article]:
        stmt = (
            self._active()
            .where(
                func.lower(ArticleRecord.source_name).contains(
                    source.lower(), autoescape=True
                )
            )
            .order_by(ArticleRecord.publication_date.desc())
            .limit(limit)
        )
        with self._session("by_source") as session:
            return [_to_article(r) for r in session.scalars(stmt)]

    def by_score(self, min_score: float, limit: int) -> List[Article]:
        stmt = (
            self._active()
            .where(ArticleRecord.relevance_score >= min_score)
            .order_by(ArticleRecord.relevance_score.desc())
            .limit(limit)
        )
        with self._session("by_score") as session:
            return [_to_article(r) for r in session.scalars(stmt)]

    def search_text(self, query: str, limit: int) -> List[Article]:
        needle = query.lower()
        stmt = (
            self._active()
            .where(
                or_(
                    func.lower(ArticleRecord.title).contains(needle, autoescape=True),
                    func.lower(ArticleRecord.description).contains(
                        needle, autoescape=True
                    ),
                )
            )
            .order_by(
                ArticleRecord.relevance_score.desc(),
                ArticleRecord.publication_date.desc(),
            )
            .limit(limit)
        )
        with self._session("search_text") as session:
            return [_to_article(r) for r in session.scalars(stmt)]

    def nearby(
        self, lat: float, lon: float, radius_km: float, limit: int
    ) -> List[Article]:
        """Articles strictly closer than ``radius_km`` by great-circle distance."""
        with self._session("nearby") as session:
            scored = []
            for record in session.scalars(self._active()):
                distance = haversine_km(lat, lon, record.latitude, record.longitude)
                if distance < radius_km:
                    scored.append((distance, _to_article(record)))
        scored.sort(key=lambda pair: pair[0])
        return [article for _, article in scored[:limit]]

    def trending_candidates(
        self, box: BoundingBox, since: datetime, now: datetime
    ) -> List[TrendingCandidate]:
        """
        Active in-box articles left-joined with event aggregates newer than ``since``.

        Returned in no particular order; ranking is the caller's job.
        """
        since_utc = as_utc(since)
        now_utc = as_utc(now)
        aggregates = (
            select(
                UserEventRecord.article_id.label("article_id"),
                func.count().label("interaction_count"),
                func.sum(_weight_expression()).label("weighted_score"),
                func.max(UserEventRecord.timestamp).label("last_interaction"),
            )
            .where(UserEventRecord.timestamp > since_utc)
            .group_by(UserEventRecord.article_id)
            .subquery()
        )
        stmt = (
            select(
                ArticleRecord,
                aggregates.c.interaction_count,
                aggregates.c.weighted_score,
                aggregates.c.last_interaction,
            )
            .outerjoin(aggregates, ArticleRecord.id == aggregates.c.article_id)
            .where(
                ArticleRecord.deleted_at.is_(None),
                ArticleRecord.latitude.between(box.min_lat, box.max_lat),
                ArticleRecord.longitude.between(box.min_lon, box.max_lon),
            )
        )
        candidates: List[TrendingCandidate] = []
        with self._session("trending_candidates") as session:
            for record, count, weighted, last in session.execute(stmt):
                if last is None:
                    hours = NO_INTERACTION_HOURS
                else:
                    hours = (now_utc - as_utc(last)).total_seconds() / 3600.0
                candidates.append(
                    TrendingCandidate(
                        article=_to_article(record),
                        weighted_score=float(weighted or 0.0),
                        hours_since_last_interaction=hours,
                        interaction_count=int(count or 0),
                    )
                )
        return candidates

    def all_categories(self) -> List[str]:
        with self._session("all_categories") as session:
            seen = set()
            for categories in session.scalars(
                select(ArticleRecord.categories).where(
                    ArticleRecord.deleted_at.is_(None)
                )
            ):
                seen.update(categories or [])
        return sorted(seen)

    def all_sources(self) -> List[str]:
        stmt = (
            select(ArticleRecord.source_name)
            .where(ArticleRecord.deleted_at.is_(None))
            .distinct()
            .order_by(ArticleRecord.source_name)
        )
        with self._session("all_sources") as session:
            return list(session.scalars(stmt))

    def count(self) -> int:
        stmt = (
            select(func.count())
            .select_from(ArticleRecord)
            .where(ArticleRecord.deleted_at.is_(None))
        )
        with self._session("count") as session:
            return int(session.scalar(stmt) or 0)
