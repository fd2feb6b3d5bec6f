"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - Per-project overrides only replace keys they name; everything else
      falls back to the deployment-wide value

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Core receives frozen DetectionConfig/ImpactConfig, never Settings itself
      (core stays free of environment access)
"""

from functools import lru_cache
from dataclasses import fields, replace

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from schemalink.core.tuning import DetectionConfig, ImpactConfig


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://schemalink:schemalink@db:5432/schemalink"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Detection
    name_convention_score: float = 0.6
    name_convention_composite_score: float = 0.5
    sp_join_score: float = 0.7
    corroboration_bonus: float = 0.15

    # Impact
    impact_max_depth: int = 3
    approval_risk_threshold: int = 70
    risk_weight_critical: int = 25
    risk_weight_high: int = 10
    risk_weight_medium: int = 4
    risk_weight_low: int = 1
    risk_score_cap: int = 100
    low_confidence_threshold: float = 0.5

    # Per-project overrides, e.g. {"7": {"impact_max_depth": 5}}
    project_overrides: dict[int, dict[str, float]] = {}

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def detection_config(self, project_id: int) -> DetectionConfig:
        """Detector tunables for a project, overrides applied."""
        base = DetectionConfig(
            name_convention_score=self.name_convention_score,
            name_convention_composite_score=self.name_convention_composite_score,
            sp_join_score=self.sp_join_score,
            corroboration_bonus=self.corroboration_bonus,
        )
        return _apply_overrides(base, self.project_overrides.get(project_id))

    def impact_config(self, project_id: int) -> ImpactConfig:
        """Traversal and scoring tunables for a project, overrides applied."""
        base = ImpactConfig(
            max_depth=self.impact_max_depth,
            approval_threshold=self.approval_risk_threshold,
            weight_critical=self.risk_weight_critical,
            weight_high=self.risk_weight_high,
            weight_medium=self.risk_weight_medium,
            weight_low=self.risk_weight_low,
            score_cap=self.risk_score_cap,
            low_confidence_threshold=self.low_confidence_threshold,
        )
        return _apply_overrides(base, self.project_overrides.get(project_id))


def _apply_overrides(config, overrides: dict[str, float] | None):
    """Replace known fields on a frozen config; unknown keys are ignored."""
    if not overrides:
        return config
    known = {f.name: f.type for f in fields(config)}
    changes = {}
    for key, value in overrides.items():
        if key not in known:
            continue
        changes[key] = int(value) if known[key] in (int, "int") else float(value)
    return replace(config, **changes)


@lru_cache
def get_settings() -> Settings:
    return Settings()
