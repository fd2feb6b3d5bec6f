"""Impact Scoring — per-entity levels, aggregate risk and approval decision.

Invariants:
    - PURE: traversal + graph + config in, ImpactReport out
    - Level rules, first match wins:
        CRITICAL  criticality 5, or DELETE across a physical FK whose ON DELETE is not NO ACTION
        HIGH      distance 1 with DELETE, or criticality 4
        MEDIUM    distance 1 with MODIFY, or distance 2
        LOW       everything else
    - An entity reached only through weak edges (non-physical, confidence below
      the threshold) is capped at MEDIUM; any weak arrival adds the
      "unconfirmed — verify before acting" reason
    - total_risk_score = min(cap, Σ weight(level)); approval when total > threshold
      or any CRITICAL entity is present
    - Ranking: level desc, distance asc, criticality desc, then (type, id)

Design Decisions:
    - Levels computed from the entity's own criticality and the edges that reached
      it, not inherited from the parent: a cascade three hops away stays CRITICAL
"""

from dataclasses import dataclass, field

from schemalink.core.domain_types import (
    IMPACT_LEVEL_RANK, ChangeType, EdgeKind, EntityRef, ImpactLevel, ReferentialAction,
)
from schemalink.core.impact_graph import EntityNode, ImpactEdge, ImpactGraph
from schemalink.core.impact_traversal import Reached, TraversalResult
from schemalink.core.tuning import ImpactConfig

UNCONFIRMED_REASON = "unconfirmed — verify before acting"


@dataclass(frozen=True)
class AffectedEntity:
    ref: EntityRef
    name: str
    distance: int
    level: ImpactLevel
    criticality: int
    reasons: tuple[str, ...]
    via: tuple[ImpactEdge, ...]


@dataclass
class ImpactReport:
    root: EntityRef
    root_name: str
    change_type: ChangeType
    affected_entities: list[AffectedEntity] = field(default_factory=list)
    total_risk_score: int = 0
    requires_approval: bool = False
    level_counts: dict[ImpactLevel, int] = field(default_factory=dict)
    max_depth_reached: int = 0
    is_truncated: bool = False
    warnings: list[str] = field(default_factory=list)


def is_weak_edge(edge: ImpactEdge, threshold: float) -> bool:
    return edge.kind != EdgeKind.PHYSICAL_FK and edge.confidence < threshold


def classify_entity(
    node: EntityNode,
    reached: Reached,
    change_type: ChangeType,
    config: ImpactConfig,
) -> tuple[ImpactLevel, list[str]]:
    """Impact level and human-readable reasons for one reached entity."""
    reasons: list[str] = []
    cascading = [
        e for e in reached.edges
        if e.kind == EdgeKind.PHYSICAL_FK
        and e.on_delete is not None
        and e.on_delete != ReferentialAction.NO_ACTION
    ]

    if node.criticality == 5:
        level = ImpactLevel.CRITICAL
        reasons.append("entity criticality is 5")
    elif change_type == ChangeType.DELETE and cascading:
        level = ImpactLevel.CRITICAL
        reasons.append(
            f"ON DELETE {cascading[0].on_delete.value} via {cascading[0].label or 'foreign key'}"
        )
    elif reached.distance == 1 and change_type == ChangeType.DELETE:
        level = ImpactLevel.HIGH
        reasons.append("directly references the deleted entity")
    elif node.criticality == 4:
        level = ImpactLevel.HIGH
        reasons.append("entity criticality is 4")
    elif reached.distance == 1:
        level = ImpactLevel.MEDIUM
        reasons.append("directly references the modified entity")
    elif reached.distance == 2:
        level = ImpactLevel.MEDIUM
        reasons.append("two hops from the changed entity")
    else:
        level = ImpactLevel.LOW
        reasons.append(f"{reached.distance} hops from the changed entity")

    weak = [e for e in reached.edges if is_weak_edge(e, config.low_confidence_threshold)]
    if weak:
        reasons.append(UNCONFIRMED_REASON)
        if len(weak) == len(reached.edges) and \
                IMPACT_LEVEL_RANK[level] > IMPACT_LEVEL_RANK[ImpactLevel.MEDIUM]:
            level = ImpactLevel.MEDIUM
    return level, reasons


def level_weight(level: ImpactLevel, config: ImpactConfig) -> int:
    return {
        ImpactLevel.CRITICAL: config.weight_critical,
        ImpactLevel.HIGH: config.weight_high,
        ImpactLevel.MEDIUM: config.weight_medium,
        ImpactLevel.LOW: config.weight_low,
    }[level]


def score_impact(
    graph: ImpactGraph,
    traversal: TraversalResult,
    change_type: ChangeType,
    config: ImpactConfig | None = None,
) -> ImpactReport:
    """Build the ranked, scored report for a finished traversal."""
    config = config or ImpactConfig()
    root_node = graph.node(traversal.root)
    report = ImpactReport(
        root=traversal.root,
        root_name=root_node.name if root_node else str(traversal.root),
        change_type=change_type,
        max_depth_reached=traversal.max_depth_reached,
        is_truncated=traversal.is_truncated,
        warnings=list(graph.warnings),
        level_counts={level: 0 for level in ImpactLevel},
    )

    for ref, reached in traversal.reached.items():
        node = graph.node(ref)
        level, reasons = classify_entity(node, reached, change_type, config)
        report.affected_entities.append(AffectedEntity(
            ref=ref,
            name=node.name,
            distance=reached.distance,
            level=level,
            criticality=node.criticality,
            reasons=tuple(reasons),
            via=tuple(reached.edges),
        ))
        report.level_counts[level] += 1

    report.affected_entities.sort(key=_rank_key)
    total = sum(level_weight(e.level, config) for e in report.affected_entities)
    report.total_risk_score = min(config.score_cap, total)
    report.requires_approval = (
        report.total_risk_score > config.approval_threshold
        or report.level_counts[ImpactLevel.CRITICAL] > 0
    )
    if traversal.is_truncated:
        report.warnings.append(
            f"Traversal stopped at depth {config.max_depth}; further dependents exist"
        )
    return report


def _rank_key(entity: AffectedEntity):
    return (
        -IMPACT_LEVEL_RANK[entity.level],
        entity.distance,
        -entity.criticality,
        entity.ref.entity_type.value,
        entity.ref.entity_id,
    )
