"""Attach summaries to retrieved articles, one failure at a time."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List, Optional, Sequence

from .llm import Summarizer
from .models import Article, ArticleResponse, TrendingArticle

logger = logging.getLogger(__name__)

SUMMARY_FALLBACK_CHARS = 150
ELLIPSIS = "..."


def fallback_summary(description: str) -> str:
    """Description cut to 150 characters, with an ellipsis when it was longer."""
    if len(description) > SUMMARY_FALLBACK_CHARS:
        return description[:SUMMARY_FALLBACK_CHARS] + ELLIPSIS
    return description


class ArticleEnricher:
    """
    Build ArticleResponse objects with a summary for each article.

    The summarizer is optional. Any per-article failure (exception, empty
    text) falls back to the truncated description for that article only, and
    output order always matches input order.
    """

    def __init__(
        self, summarizer: Optional[Summarizer] = None, *, max_workers: int = 1
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1.")
        self._summarizer = summarizer
        self._max_workers = max_workers

    def summarize(self, article: Article) -> str:
        if self._summarizer is None:
            return fallback_summary(article.description)
        try:
            summary = self._summarizer.summarize(article.title, article.description)
        except Exception as exc:  # one bad call must not sink the batch
            logger.warning("Summarizer failed for article %s: %s", article.id, exc)
            return fallback_summary(article.description)
        summary = (summary or "").strip()
        if not summary:
            logger.warning("Summarizer returned no text for article %s", article.id)
            return fallback_summary(article.description)
        return summary

    def _summaries(self, articles: Sequence[Article]) -> List[str]:
        if self._summarizer is None or self._max_workers == 1 or len(articles) < 2:
            return [self.summarize(article) for article in articles]

        summaries: List[str | None] = [None] * len(articles)
        worker_count = min(self._max_workers, len(articles))
        with ThreadPoolExecutor(max_workers=worker_count) as executor:
            future_map = {
                executor.submit(self.summarize, article): idx
                for idx, article in enumerate(articles)
            }
            for future in as_completed(future_map):
                summaries[future_map[future]] = future.result()
        return [s if s is not None else "" for s in summaries]

    def enrich(self, articles: Sequence[Article]) -> List[ArticleResponse]:
        summaries = self._summaries(articles)
        return [
            ArticleResponse.from_article(article, summary)
            for article, summary in zip(articles, summaries)
        ]

    def enrich_trending(self, ranked: Sequence[TrendingArticle]) -> List[ArticleResponse]:
        summaries = self._summaries([item.article for item in ranked])
        return [
            ArticleResponse.from_article(item.article, summary, item.trending_score)
            for item, summary in zip(ranked, summaries)
        ]
