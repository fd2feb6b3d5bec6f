"""Settings — tests for URL normalisation and per-project tuning overrides."""

from schemalink.config import Settings
from schemalink.core.tuning import DetectionConfig, ImpactConfig


def test_postgres_url_gets_async_driver():
    settings = Settings(database_url="postgresql://u:p@host:5432/db")
    assert settings.database_url == "postgresql+asyncpg://u:p@host:5432/db"


def test_other_urls_untouched():
    settings = Settings(database_url="sqlite+aiosqlite:///:memory:")
    assert settings.database_url == "sqlite+aiosqlite:///:memory:"


def test_defaults_without_overrides():
    settings = Settings()
    assert settings.impact_config(1) == ImpactConfig()
    assert settings.detection_config(1) == DetectionConfig()


def test_project_override_replaces_named_keys_only():
    settings = Settings(project_overrides={7: {"max_depth": 5, "weight_high": 12.0}})
    config = settings.impact_config(7)
    assert config.max_depth == 5
    assert isinstance(config.max_depth, int)
    assert config.weight_high == 12
    assert config.approval_threshold == 70
    assert settings.impact_config(8).max_depth == 3


def test_unknown_override_key_is_ignored():
    settings = Settings(project_overrides={7: {"nonsense": 1, "sp_join_score": 0.75}})
    config = settings.detection_config(7)
    assert config.sp_join_score == 0.75
    assert config.name_convention_score == 0.6
