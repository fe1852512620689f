import pytest

from news_radar.errors import MissingParameter, UnknownIntent
from news_radar.models import IntentKind, QueryIntent
from news_radar.router import RetrievalRouter

from helpers import make_article


class RecordingStore:
    def __init__(self):
        self.calls = []

    def _record(self, name, *args):
        self.calls.append((name, args))
        return [make_article(name)]

    def by_category(self, category, limit):
        return self._record("by_category", category, limit)

    def by_source(self, source, limit):
        return self._record("by_source", source, limit)

    def by_score(self, min_score, limit):
        return self._record("by_score", min_score, limit)

    def search_text(self, query, limit):
        return self._record("search_text", query, limit)

    def nearby(self, lat, lon, radius_km, limit):
        return self._record("nearby", lat, lon, radius_km, limit)


@pytest.mark.parametrize(
    "kind, params, expected",
    [
        ("category", {"category": "Sports"}, ("by_category", ("Sports", 5))),
        ("source", {"source": "reuters"}, ("by_source", ("reuters", 5))),
        ("score", {"min_score": 0.7}, ("by_score", (0.7, 5))),
        ("search", {"query": "monsoon"}, ("search_text", ("monsoon", 5))),
        (
            "nearby",
            {"lat": 12.9, "lon": 77.6, "radius": 10},
            ("nearby", (12.9, 77.6, 10.0, 5)),
        ),
    ],
)
def test_each_kind_maps_to_one_strategy(kind, params, expected):
    store = RecordingStore()
    router = RetrievalRouter(store)
    result = router.route(QueryIntent(intent=kind), params)
    assert store.calls == [expected]
    assert result[0].id == expected[0]


def test_route_accepts_bare_kind_and_custom_limit():
    store = RecordingStore()
    RetrievalRouter(store, limit=3).route(IntentKind.SEARCH, {"query": "x"})
    assert store.calls == [("search_text", ("x", 3))]


@pytest.mark.parametrize("kind", ["weather", "", "CATEGORY", None])
def test_unknown_kind_is_a_hard_error(kind):
    store = RecordingStore()
    with pytest.raises(UnknownIntent):
        RetrievalRouter(store).route(kind, {"query": "x"})
    assert store.calls == []


@pytest.mark.parametrize(
    "kind, params, missing",
    [
        ("category", {}, "category"),
        ("category", {"category": ["Sports"]}, "category"),
        ("category", {"category": "  "}, "category"),
        ("source", {"query": "from reuters"}, "source"),
        ("score", {"min_score": "0.7"}, "min_score"),
        ("score", {"min_score": True}, "min_score"),
        ("search", {}, "query"),
        ("nearby", {"lat": 1.0, "lon": 2.0}, "radius"),
        ("nearby", {"lat": None, "lon": 2.0, "radius": 5.0}, "lat"),
    ],
)
def test_missing_or_mistyped_parameters(kind, params, missing):
    store = RecordingStore()
    with pytest.raises(MissingParameter) as excinfo:
        RetrievalRouter(store).route(kind, params)
    assert excinfo.value.name == missing
    assert store.calls == []


def test_missing_parameter_and_unknown_intent_are_distinct():
    assert not issubclass(MissingParameter, UnknownIntent)
    assert not issubclass(UnknownIntent, MissingParameter)


def test_score_route_against_storage(repository):
    repository.bulk_create(
        [
            make_article("a", relevance_score=0.65),
            make_article("b", relevance_score=0.7),
            make_article("c", relevance_score=0.91),
            make_article("d", relevance_score=0.8),
        ]
    )
    result = RetrievalRouter(repository).route("score", {"min_score": 0.7})
    scores = [a.relevance_score for a in result]
    assert scores == [0.91, 0.8, 0.7]


def test_routes_never_return_tombstoned_articles(repository):
    repository.bulk_create(
        [
            make_article("live", title="Monsoon live", categories=["Weather"]),
            make_article("dead", title="Monsoon dead", categories=["Weather"]),
        ]
    )
    repository.soft_delete("dead")
    router = RetrievalRouter(repository)
    params = {
        "category": "Weather",
        "source": "reuters",
        "min_score": 0.0,
        "query": "monsoon",
        "lat": 12.9716,
        "lon": 77.5946,
        "radius": 5.0,
    }
    for kind in IntentKind:
        ids = [a.id for a in router.route(kind, params)]
        assert ids == ["live"], kind
