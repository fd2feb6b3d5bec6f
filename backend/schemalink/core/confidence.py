"""Confidence bands for display next to raw scores."""

from schemalink.core.domain_types import ConfidenceBand

_BANDS = (
    (0.95, ConfidenceBand.HIGHLY_CONFIDENT),
    (0.85, ConfidenceBand.VERY_LIKELY),
    (0.70, ConfidenceBand.LIKELY),
    (0.55, ConfidenceBand.POSSIBLE),
)


def classify_confidence(score: float) -> ConfidenceBand:
    for threshold, band in _BANDS:
        if score >= threshold:
            return band
    return ConfidenceBand.LOW
