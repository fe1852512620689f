"""Request-level orchestration: classify, route, rank, enrich, record."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config import Settings, get_settings
from .db import build_engine, build_session_factory, init_db
from .enrichment import ArticleEnricher
from .intent import IntentClassifier
from .llm import build_language_understanding, build_summarizer
from .models import ArticleResponse, IntentKind, QueryIntent
from .repository import ArticleRepository
from .router import RetrievalRouter
from .trending import TrendingRanker

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "General"
QUERY_MIN_SCORE = 0.7


@dataclass
class QueryResult:
    intent: QueryIntent
    articles: List[ArticleResponse]


def build_params(
    intent: QueryIntent,
    query: str,
    *,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    radius: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Translate a classified free-text query into router parameters.

    Category lookups default to "General" when no entity was extracted;
    source lookups only get a value when an entity is available.
    """
    params: Dict[str, Any] = {"query": query}
    kind = intent.intent
    if kind == IntentKind.CATEGORY:
        params["category"] = intent.entities[0] if intent.entities else DEFAULT_CATEGORY
    elif kind == IntentKind.SOURCE:
        if intent.entities:
            params["source"] = intent.entities[0]
    elif kind == IntentKind.SCORE:
        params["min_score"] = QUERY_MIN_SCORE
    elif kind == IntentKind.NEARBY:
        for name, value in (("lat", lat), ("lon", lon), ("radius", radius)):
            if value is not None:
                params[name] = value
    return params


class NewsService:
    """Glue between the HTTP/CLI surfaces and the retrieval components."""

    def __init__(
        self,
        repository: ArticleRepository,
        *,
        classifier: IntentClassifier | None = None,
        enricher: ArticleEnricher | None = None,
        limit: int = 5,
    ) -> None:
        self.repository = repository
        self.classifier = classifier or IntentClassifier()
        self.enricher = enricher or ArticleEnricher()
        self.router = RetrievalRouter(repository, limit=limit)
        self.ranker = TrendingRanker(repository)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "NewsService":
        settings = settings or get_settings()
        engine = build_engine(settings.database_url, echo=settings.database_echo)
        init_db(engine)
        repository = ArticleRepository(build_session_factory(engine))
        classifier = IntentClassifier(build_language_understanding(settings))
        enricher = ArticleEnricher(
            build_summarizer(settings), max_workers=settings.summary_workers
        )
        if not classifier.uses_model:
            logger.info("OPENAI_API_KEY not set; using keyword intent fallback only")
        return cls(
            repository,
            classifier=classifier,
            enricher=enricher,
            limit=settings.result_limit,
        )

    def query(
        self,
        text: str,
        *,
        location: str = "",
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        radius: Optional[float] = None,
    ) -> QueryResult:
        intent = self.classifier.classify(text, location)
        params = build_params(intent, text, lat=lat, lon=lon, radius=radius)
        articles = self.router.route(intent, params)
        return QueryResult(intent=intent, articles=self.enricher.enrich(articles))

    def by_intent(
        self, kind: IntentKind | str, params: Dict[str, Any]
    ) -> List[ArticleResponse]:
        return self.enricher.enrich(self.router.route(kind, params))

    def trending(
        self,
        lat: float,
        lon: float,
        *,
        radius: float = 50.0,
        limit: int = 5,
        hours_back: int = 24,
    ) -> List[ArticleResponse]:
        ranked = self.ranker.rank(lat, lon, radius, limit, hours_back)
        return self.enricher.enrich_trending(ranked)

    def record_event(
        self, article_id: str, event_type: str, latitude: float, longitude: float
    ) -> int:
        event_id = self.repository.insert_user_event(
            article_id, event_type, latitude, longitude
        )
        logger.info(
            "Recorded %s event %d for article %s", event_type, event_id, article_id
        )
        return event_id

    def categories(self) -> List[str]:
        return self.repository.all_categories()

    def sources(self) -> List[str]:
        return self.repository.all_sources()
