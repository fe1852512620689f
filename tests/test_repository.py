from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from news_radar.errors import StorageFailure
from news_radar.geo import bounding_box
from news_radar.repository import ArticleRepository
from news_radar.trending import NO_INTERACTION_HOURS

from helpers import NOW, make_article


def _day(day: int) -> datetime:
    return datetime(2025, 5, day, tzinfo=timezone.utc)


def test_bulk_create_skips_existing_ids(repository):
    repository.create(make_article("a1"))
    inserted = repository.bulk_create(
        [make_article("a1"), make_article("a2"), make_article("a2"), make_article("a3")]
    )
    assert inserted == 2
    assert repository.count() == 3


def test_by_category_matches_membership_newest_first(repository):
    repository.bulk_create(
        [
            make_article("old", categories=["Sports", "General"], publication_date=_day(1)),
            make_article("new", categories=["Sports"], publication_date=_day(20)),
            make_article("tech", categories=["Technology"], publication_date=_day(25)),
        ]
    )
    assert [a.id for a in repository.by_category("Sports", 5)] == ["new", "old"]
    assert repository.by_category("sports", 5) == []


def test_by_source_is_case_insensitive_substring(repository):
    repository.bulk_create(
        [
            make_article("nyt", source_name="The New York Times", publication_date=_day(2)),
            make_article("toi", source_name="Times of India", publication_date=_day(9)),
            make_article("rt", source_name="Reuters", publication_date=_day(5)),
        ]
    )
    assert [a.id for a in repository.by_source("TIMES", 5)] == ["toi", "nyt"]


def test_by_source_treats_wildcards_literally(repository):
    repository.create(make_article("rt", source_name="Reuters"))
    assert repository.by_source("%", 5) == []


def test_by_score_filters_and_sorts_descending(repository):
    repository.bulk_create(
        [
            make_article("low", relevance_score=0.3),
            make_article("edge", relevance_score=0.7),
            make_article("high", relevance_score=0.95),
        ]
    )
    result = repository.by_score(0.7, 5)
    assert [a.id for a in result] == ["high", "edge"]
    assert all(a.relevance_score >= 0.7 for a in result)


def test_search_text_orders_by_score_then_date(repository):
    repository.bulk_create(
        [
            make_article("a", title="Monsoon arrives", relevance_score=0.4, publication_date=_day(3)),
            make_article("b", description="Early MONSOON rains", relevance_score=0.9, publication_date=_day(1)),
            make_article("c", title="Monsoon update", relevance_score=0.4, publication_date=_day(7)),
            make_article("d", title="Cricket final", relevance_score=1.0),
        ]
    )
    assert [a.id for a in repository.search_text("monsoon", 5)] == ["b", "c", "a"]


def test_nearby_orders_by_distance_and_excludes_radius_edge(repository):
    repository.bulk_create(
        [
            make_article("far", latitude=13.5, longitude=77.59),
            make_article("close", latitude=12.98, longitude=77.60),
            make_article("mid", latitude=13.1, longitude=77.59),
            make_article("other-city", latitude=19.07, longitude=72.87),
        ]
    )
    result = repository.nearby(12.9716, 77.5946, 30.0, 5)
    assert [a.id for a in result] == ["close", "mid"]
    assert repository.nearby(12.9716, 77.5946, 0.0, 5) == []


def test_results_respect_limit(repository):
    repository.bulk_create(
        [make_article(f"s{i}", relevance_score=i / 10) for i in range(10)]
    )
    assert len(repository.by_score(0.0, 5)) == 5


def test_insert_user_event_accepts_unknown_types(repository):
    event_id = repository.insert_user_event("ghost-article", "bookmark", 1.0, 2.0)
    assert event_id >= 1


def test_trending_candidates_aggregate_window(repository):
    repository.bulk_create(
        [
            make_article("hot", latitude=12.97, longitude=77.59),
            make_article("quiet", latitude=12.98, longitude=77.60),
            make_article("outside", latitude=28.61, longitude=77.21),
        ]
    )
    recent = NOW - timedelta(hours=1)
    repository.insert_user_event("hot", "share", 0, 0, timestamp=NOW - timedelta(hours=3))
    repository.insert_user_event("hot", "click", 0, 0, timestamp=recent)
    repository.insert_user_event("hot", "view", 0, 0, timestamp=NOW - timedelta(hours=2))
    repository.insert_user_event("hot", "bookmark", 0, 0, timestamp=recent)
    # Outside the 24h window.
    repository.insert_user_event("quiet", "share", 0, 0, timestamp=NOW - timedelta(hours=30))

    box = bounding_box(12.9716, 77.5946, 20.0)
    candidates = {
        c.article.id: c
        for c in repository.trending_candidates(box, NOW - timedelta(hours=24), NOW)
    }

    assert set(candidates) == {"hot", "quiet"}
    hot = candidates["hot"]
    assert hot.interaction_count == 4
    assert hot.weighted_score == 6.0
    assert hot.hours_since_last_interaction == pytest.approx(1.0)
    quiet = candidates["quiet"]
    assert quiet.interaction_count == 0
    assert quiet.weighted_score == 0.0
    assert quiet.hours_since_last_interaction == NO_INTERACTION_HOURS


def test_tombstoned_articles_never_returned(repository):
    repository.create(
        make_article(
            "gone",
            title="Monsoon flood",
            categories=["Weather"],
            source_name="Reuters",
            relevance_score=0.99,
        )
    )
    repository.insert_user_event("gone", "share", 0, 0, timestamp=NOW - timedelta(hours=1))
    assert repository.soft_delete("gone") is True
    assert repository.soft_delete("gone") is False

    assert repository.get("gone") is None
    assert repository.by_category("Weather", 5) == []
    assert repository.by_source("reuters", 5) == []
    assert repository.by_score(0.0, 5) == []
    assert repository.search_text("monsoon", 5) == []
    assert repository.nearby(12.9716, 77.5946, 10.0, 5) == []
    box = bounding_box(12.9716, 77.5946, 10.0)
    assert repository.trending_candidates(box, NOW - timedelta(hours=24), NOW) == []
    assert repository.count() == 0
    assert repository.all_categories() == []


def test_categories_and_sources_are_sorted_and_distinct(repository):
    repository.bulk_create(
        [
            make_article("a", categories=["Sports", "General"], source_name="Reuters"),
            make_article("b", categories=["Business"], source_name="ANI"),
            make_article("c", categories=["Sports"], source_name="Reuters"),
        ]
    )
    assert repository.all_categories() == ["Business", "General", "Sports"]
    assert repository.all_sources() == ["ANI", "Reuters"]


def test_round_trip_preserves_utc_timestamps(repository):
    published = datetime(2025, 5, 30, 8, 15, tzinfo=timezone.utc)
    repository.create(make_article("tz", publication_date=published))
    stored = repository.get("tz")
    assert stored.publication_date == published
    assert stored.publication_date.tzinfo is not None


def test_storage_errors_become_storage_failure():
    class BrokenSession:
        def scalars(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("db down"))

        def commit(self):
            pass

        def rollback(self):
            pass

        def close(self):
            pass

    repository = ArticleRepository(lambda: BrokenSession())
    with pytest.raises(StorageFailure):
        repository.by_score(0.5, 5)
