from roster.core.settings import Settings, get_settings


def test_defaults(monkeypatch) -> None:
    for var in ("PLAN_PATH", "BATCH_PAUSE_SECONDS", "DRIFT_WARNING_THRESHOLD", "VARIANTS_DIR", "PROTECTED_NAMES_PATH"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None)

    assert settings.plan_path == "data/dedup-plan.json"
    assert settings.protected_names_path == "data/persons-raw.json"
    assert settings.variants_dir == "config/variants"
    assert settings.batch_pause_seconds == 2.0
    assert settings.drift_warning_threshold == 50


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("BATCH_PAUSE_SECONDS", "0")
    monkeypatch.setenv("DRIFT_WARNING_THRESHOLD", "10")

    settings = get_settings()
    assert settings.database_url == "sqlite+pysqlite:///:memory:"
    assert settings.batch_pause_seconds == 0.0
    assert settings.drift_warning_threshold == 10
    assert get_settings() is settings
