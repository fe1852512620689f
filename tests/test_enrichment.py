import pytest

from news_radar.enrichment import ArticleEnricher, fallback_summary
from news_radar.models import TrendingArticle

from helpers import StubSummarizer, make_article


def test_fallback_truncates_long_descriptions():
    description = "x" * 200
    assert fallback_summary(description) == "x" * 150 + "..."


def test_fallback_keeps_short_descriptions():
    assert fallback_summary("y" * 150) == "y" * 150
    assert fallback_summary("") == ""


def test_without_summarizer_every_article_uses_fallback():
    articles = [make_article("a", description="d" * 200), make_article("b")]
    responses = ArticleEnricher().enrich(articles)
    assert [r.llm_summary for r in responses] == ["d" * 150 + "...", "Short description."]


def test_failures_are_isolated_per_article():
    long_text = "z" * 200
    summarizer = StubSummarizer(
        replies={
            "Headline a": "A summary.",
            "Headline b": RuntimeError("rate limited"),
            "Headline c": "   ",
        }
    )
    articles = [
        make_article("a"),
        make_article("b", description=long_text),
        make_article("c", description="Keep me."),
    ]
    responses = ArticleEnricher(summarizer).enrich(articles)
    assert [r.title for r in responses] == ["Headline a", "Headline b", "Headline c"]
    assert responses[0].llm_summary == "A summary."
    assert responses[1].llm_summary == "z" * 150 + "..."
    assert responses[2].llm_summary == "Keep me."


def test_parallel_enrichment_preserves_order():
    summarizer = StubSummarizer(
        replies={f"Headline {i}": f"summary {i}" for i in range(8)}
    )
    summarizer.replies["Headline 3"] = TimeoutError("slow")
    articles = [make_article(str(i), description=f"desc {i}") for i in range(8)]
    responses = ArticleEnricher(summarizer, max_workers=4).enrich(articles)
    expected = [f"summary {i}" for i in range(8)]
    expected[3] = "desc 3"
    assert [r.llm_summary for r in responses] == expected


def test_response_projection_fields():
    article = make_article("p", categories=["Sports", "General"], relevance_score=0.8)
    response = ArticleEnricher(StubSummarizer()).enrich([article])[0]
    assert response.category == ["Sports", "General"]
    assert response.relevance_score == 0.8
    assert response.url == "https://example.com/p"
    assert response.trending_score is None


def test_enrich_trending_carries_scores():
    ranked = [
        TrendingArticle(article=make_article("t1"), trending_score=120.0),
        TrendingArticle(article=make_article("t2"), trending_score=0.0),
    ]
    responses = ArticleEnricher().enrich_trending(ranked)
    assert [r.trending_score for r in responses] == [120.0, 0.0]


def test_enricher_rejects_bad_worker_count():
    with pytest.raises(ValueError):
        ArticleEnricher(max_workers=0)
