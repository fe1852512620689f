"""Dispatch a classified intent to the matching storage lookup."""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Protocol

from .errors import MissingParameter, UnknownIntent
from .models import Article, IntentKind, QueryIntent

DEFAULT_LIMIT = 5


class ArticleStore(Protocol):
    def by_category(self, category: str, limit: int) -> List[Article]: ...

    def by_source(self, source: str, limit: int) -> List[Article]: ...

    def by_score(self, min_score: float, limit: int) -> List[Article]: ...

    def search_text(self, query: str, limit: int) -> List[Article]: ...

    def nearby(
        self, lat: float, lon: float, radius_km: float, limit: int
    ) -> List[Article]: ...


def _require_text(params: Mapping[str, Any], name: str) -> str:
    value = params.get(name)
    if not isinstance(value, str) or not value.strip():
        raise MissingParameter(name, "a non-empty string")
    return value


def _require_number(params: Mapping[str, Any], name: str) -> float:
    value = params.get(name)
    # bool is an int subclass but never a meaningful coordinate or score.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MissingParameter(name, "a number")
    return float(value)


def _resolve_kind(intent: QueryIntent | IntentKind | str) -> IntentKind:
    raw = getattr(intent, "intent", intent)
    try:
        return IntentKind(raw)
    except ValueError as exc:
        raise UnknownIntent(raw) from exc


class RetrievalRouter:
    """
    Map each intent kind to exactly one retrieval strategy.

    The router validates the parameters each strategy needs and never
    supplies defaults; callers decide fallbacks such as the "General"
    category before routing.
    """

    def __init__(self, store: ArticleStore, *, limit: int = DEFAULT_LIMIT) -> None:
        self._store = store
        self._limit = limit
        self._strategies: Dict[IntentKind, Callable[[Mapping[str, Any]], List[Article]]] = {
            IntentKind.CATEGORY: self._by_category,
            IntentKind.SOURCE: self._by_source,
            IntentKind.SCORE: self._by_score,
            IntentKind.SEARCH: self._search,
            IntentKind.NEARBY: self._nearby,
        }

    @property
    def limit(self) -> int:
        return self._limit

    def route(
        self, intent: QueryIntent | IntentKind | str, params: Mapping[str, Any]
    ) -> List[Article]:
        kind = _resolve_kind(intent)
        strategy = self._strategies.get(kind)
        if strategy is None:
            raise UnknownIntent(kind.value)
        return strategy(params)

    def _by_category(self, params: Mapping[str, Any]) -> List[Article]:
        return self._store.by_category(_require_text(params, "category"), self._limit)

    def _by_source(self, params: Mapping[str, Any]) -> List[Article]:
        return self._store.by_source(_require_text(params, "source"), self._limit)

    def _by_score(self, params: Mapping[str, Any]) -> List[Article]:
        return self._store.by_score(_require_number(params, "min_score"), self._limit)

    def _search(self, params: Mapping[str, Any]) -> List[Article]:
        return self._store.search_text(_require_text(params, "query"), self._limit)

    def _nearby(self, params: Mapping[str, Any]) -> List[Article]:
        lat = _require_number(params, "lat")
        lon = _require_number(params, "lon")
        radius = _require_number(params, "radius")
        return self._store.nearby(lat, lon, radius, self._limit)
