import pytest

from news_radar.db import build_engine, build_session_factory, init_db
from news_radar.repository import ArticleRepository


@pytest.fixture
def repository() -> ArticleRepository:
    engine = build_engine("sqlite+pysqlite:///:memory:")
    init_db(engine)
    return ArticleRepository(build_session_factory(engine))
