"""Relationship Candidates — detector output types shared by all detectors.

Invariants:
    - source_column_ids and target_column_ids are non-empty and of equal length
    - Column order is significant: position i of source maps to position i of target
    - raw_score is within 0.0–1.0

Design Decisions:
    - Tuples, not lists: candidates are hashable and safe to share across threads
    - Warnings travel beside candidates (DetectorOutput) instead of as exceptions,
      so one bad routine never aborts a detection run
"""

from dataclasses import dataclass, field

from schemalink.core.domain_types import DiscoveryMethod


CandidateKey = tuple[int, tuple[int, ...], int, tuple[int, ...]]


@dataclass(frozen=True)
class Candidate:
    source_table_id: int
    source_column_ids: tuple[int, ...]
    target_table_id: int
    target_column_ids: tuple[int, ...]
    method: DiscoveryMethod
    raw_score: float
    reason: str
    evidence: tuple[str, ...] = ()
    is_ambiguous: bool = False

    @property
    def key(self) -> CandidateKey:
        return (
            self.source_table_id, self.source_column_ids,
            self.target_table_id, self.target_column_ids,
        )


@dataclass(frozen=True)
class CorroboratedCandidate:
    """Candidate after merging all detector votes for one mapping."""
    source_table_id: int
    source_column_ids: tuple[int, ...]
    target_table_id: int
    target_column_ids: tuple[int, ...]
    method: DiscoveryMethod
    methods: tuple[DiscoveryMethod, ...]
    score: float
    reason: str
    evidence: tuple[str, ...] = ()
    is_ambiguous: bool = False

    @property
    def key(self) -> CandidateKey:
        return (
            self.source_table_id, self.source_column_ids,
            self.target_table_id, self.target_column_ids,
        )


@dataclass
class DetectorOutput:
    candidates: list[Candidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
