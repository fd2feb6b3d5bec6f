"""Tuning Parameters — frozen knobs for detectors and impact scoring.

Invariants:
    - Instances are immutable; a detection run or impact request sees one config
    - Defaults reproduce the documented behaviour when no overrides exist

Design Decisions:
    - Plain frozen dataclasses: core stays independent of pydantic-settings,
      config.py builds these from Settings per project
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class DetectionConfig:
    """Raw scores per detector and the corroboration bonus."""
    name_convention_score: float = 0.6
    name_convention_composite_score: float = 0.5
    sp_join_score: float = 0.7
    corroboration_bonus: float = 0.15


@dataclass(frozen=True)
class ImpactConfig:
    """Traversal bound, level weights and approval threshold."""
    max_depth: int = 3
    approval_threshold: int = 70
    weight_critical: int = 25
    weight_high: int = 10
    weight_medium: int = 4
    weight_low: int = 1
    score_cap: int = 100
    low_confidence_threshold: float = 0.5
