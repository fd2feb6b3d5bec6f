"""Corroboration — merges detector votes for the same mapping into one score.

Invariants:
    - PURE: candidates in, one CorroboratedCandidate per mapping out
    - score = min(1.0, max(raw) + bonus × (distinct methods − 1)), rounded to 2 places
    - methods is the sorted union of contributing detectors
    - method is CORROBORATED iff more than one distinct detector agrees

Design Decisions:
    - Output order follows first appearance of each mapping: detector order
      is stable, so persistence order (and chunking) is deterministic
"""

from schemalink.core.candidates import Candidate, CorroboratedCandidate
from schemalink.core.domain_types import DiscoveryMethod


def corroborate(
    candidates: list[Candidate], bonus: float = 0.15,
) -> list[CorroboratedCandidate]:
    """Group by (source table, source columns, target table, target columns)."""
    groups: dict = {}
    for candidate in candidates:
        groups.setdefault(candidate.key, []).append(candidate)
    return [_merge(group, bonus) for group in groups.values()]


def corroborated_score(raw_scores: list[float], distinct_methods: int, bonus: float) -> float:
    return round(min(1.0, max(raw_scores) + bonus * (distinct_methods - 1)), 2)


def _merge(group: list[Candidate], bonus: float) -> CorroboratedCandidate:
    methods = tuple(sorted({c.method for c in group}, key=lambda m: m.value))
    score = corroborated_score([c.raw_score for c in group], len(methods), bonus)
    method = DiscoveryMethod.CORROBORATED if len(methods) > 1 else methods[0]

    reasons: list[str] = []
    evidence: list[str] = []
    for candidate in group:
        if candidate.reason not in reasons:
            reasons.append(candidate.reason)
        for item in candidate.evidence:
            if item not in evidence:
                evidence.append(item)

    first = group[0]
    return CorroboratedCandidate(
        source_table_id=first.source_table_id,
        source_column_ids=first.source_column_ids,
        target_table_id=first.target_table_id,
        target_column_ids=first.target_column_ids,
        method=method,
        methods=methods,
        score=score,
        reason="; ".join(reasons),
        evidence=tuple(evidence),
        is_ambiguous=any(c.is_ambiguous for c in group),
    )
