"""Data models exchanged between the service layers and the HTTP API."""

from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator


class IntentKind(str, Enum):
    """Retrieval strategies a free-text query can be routed to."""

    CATEGORY = "category"
    SOURCE = "source"
    SCORE = "score"
    NEARBY = "nearby"
    SEARCH = "search"


class EventType(str, Enum):
    """Interaction types that carry trending weight."""

    VIEW = "view"
    CLICK = "click"
    SHARE = "share"


class Article(BaseModel):
    """A geo-tagged news article as read from storage."""

    id: str
    title: str
    description: str = ""
    url: str = ""
    publication_date: datetime
    source_name: str = ""
    categories: List[str] = Field(default_factory=lambda: ["General"])
    relevance_score: float = 0.0
    latitude: float
    longitude: float

    @field_validator("categories", mode="before")
    @classmethod
    def _default_categories(cls, value):
        if not value:
            return ["General"]
        return value


class QueryIntent(BaseModel):
    """Structured classification of a free-text query."""

    intent: IntentKind
    entities: List[str] = Field(default_factory=list)
    concepts: List[str] = Field(default_factory=list)


class ArticleResponse(BaseModel):
    """Read-only projection of an article plus its generated summary."""

    title: str
    description: str
    url: str
    publication_date: datetime
    source_name: str
    category: List[str]
    relevance_score: float
    llm_summary: str
    latitude: float
    longitude: float
    trending_score: float | None = None

    @classmethod
    def from_article(
        cls, article: Article, summary: str, trending_score: float | None = None
    ) -> "ArticleResponse":
        return cls(
            title=article.title,
            description=article.description,
            url=article.url,
            publication_date=article.publication_date,
            source_name=article.source_name,
            category=list(article.categories),
            relevance_score=article.relevance_score,
            llm_summary=summary,
            latitude=article.latitude,
            longitude=article.longitude,
            trending_score=trending_score,
        )


class UserEventIn(BaseModel):
    """Payload accepted by the event-recording endpoint.

    ``event_type`` is free text: unknown types are stored and simply carry
    zero weight when trending scores are computed.
    """

    article_id: str = Field(..., min_length=1)
    event_type: str = Field(..., min_length=1)
    latitude: float = 0.0
    longitude: float = 0.0


class TrendingArticle(BaseModel):
    """An article with its reported trending score."""

    article: Article
    trending_score: float
