"""Shared builders and collaborator doubles for the test suite."""

from datetime import datetime, timezone

from news_radar.models import Article

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_article(article_id: str = "a1", **overrides) -> Article:
    base = {
        "id": article_id,
        "title": f"Headline {article_id}",
        "description": "Short description.",
        "url": f"https://example.com/{article_id}",
        "publication_date": datetime(2025, 5, 30, tzinfo=timezone.utc),
        "source_name": "Reuters",
        "categories": ["General"],
        "relevance_score": 0.5,
        "latitude": 12.9716,
        "longitude": 77.5946,
    }
    base.update(overrides)
    return Article(**base)


class StubBackend:
    """Language-understanding double returning canned text or raising."""

    def __init__(self, reply=None, error: Exception | None = None):
        self.reply = reply
        self.error = error
        self.calls = []

    def classify(self, query, location_hint):
        self.calls.append((query, location_hint))
        if self.error:
            raise self.error
        return self.reply


class StubSummarizer:
    """Summarizer double; ``replies`` maps titles to text or exceptions."""

    def __init__(self, replies=None, default="Generated summary."):
        self.replies = replies or {}
        self.default = default
        self.calls = []

    def summarize(self, title, description):
        self.calls.append(title)
        reply = self.replies.get(title, self.default)
        if isinstance(reply, Exception):
            raise reply
        return reply
