from news_radar.config import Settings, get_settings


def test_defaults(monkeypatch):
    for name in ("OPENAI_API_KEY", "DATABASE_URL", "RESULT_LIMIT", "SUMMARY_WORKERS"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)
    assert settings.openai_api_key is None
    assert settings.result_limit == 5
    assert settings.summary_workers == 1
    assert settings.summary_max_tokens == 150
    assert settings.database_url.startswith("sqlite")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("DATABASE_URL", "postgresql://user:pw@localhost/news")
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "2.5")
    settings = get_settings()
    assert settings.openai_api_key == "sk-test"
    assert settings.database_url == "postgresql://user:pw@localhost/news"
    assert settings.llm_timeout_seconds == 2.5
