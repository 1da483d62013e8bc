from settings import Settings


def test_app_env_defaults_to_development(monkeypatch):
    monkeypatch.delenv("APP_ENV", raising=False)
    assert Settings().is_development is True


def test_production_hides_error_detail(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    assert Settings().is_development is False


def test_numeric_settings_fall_back_on_bad_values(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "lots")
    monkeypatch.setenv("LLM_TEMPERATURE", "")
    s = Settings()
    assert s.RATE_LIMIT_MAX_REQUESTS == 30
    assert s.LLM_TEMPERATURE == 0.7
