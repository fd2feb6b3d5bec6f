"""Confidence bands — boundaries are inclusive on the lower edge."""

import pytest

from schemalink.core.confidence import classify_confidence
from schemalink.core.domain_types import ConfidenceBand


@pytest.mark.parametrize("score,band", [
    (1.0, ConfidenceBand.HIGHLY_CONFIDENT),
    (0.95, ConfidenceBand.HIGHLY_CONFIDENT),
    (0.85, ConfidenceBand.VERY_LIKELY),
    (0.8, ConfidenceBand.LIKELY),
    (0.7, ConfidenceBand.LIKELY),
    (0.6, ConfidenceBand.POSSIBLE),
    (0.55, ConfidenceBand.POSSIBLE),
    (0.5, ConfidenceBand.LOW),
    (0.0, ConfidenceBand.LOW),
])
def test_bands(score, band):
    assert classify_confidence(score) == band
