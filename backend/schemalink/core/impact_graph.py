"""Impact Graph — arena of typed edges plus an index by referenced entity.

Invariants:
    - Edge direction: `source` depends on `target` (source references target)
    - Every stored edge connects two known nodes; edges touching unknown
      entities are dropped at build time with a warning
    - Self-loops are dropped (an entity never depends on itself for impact purposes)
    - dependents_of() returns edges in arena order: traversal is deterministic

Design Decisions:
    - Arena + integer index instead of object pointers: entities are persisted
      separately and referenced by (type, id), so the graph never owns them
    - FK edges are expanded to table→table plus table→referenced-column, which
      lets a COLUMN root find the tables that point at it
"""

from dataclasses import dataclass, field

from schemalink.core.domain_types import (
    DependencyType, EdgeKind, EntityRef, EntityType, ReferentialAction,
    clamp_criticality,
)


@dataclass(frozen=True)
class EntityNode:
    ref: EntityRef
    name: str
    criticality: int


@dataclass(frozen=True)
class ImpactEdge:
    source: EntityRef
    target: EntityRef
    kind: EdgeKind
    dependency_type: DependencyType = DependencyType.FK
    confidence: float = 1.0
    on_delete: ReferentialAction | None = None
    label: str = ""


@dataclass(frozen=True)
class ForeignKeyEdgeInput:
    """Physical or confirmed logical FK, as loaded from storage."""
    kind: EdgeKind
    source_table_id: int
    target_table_id: int
    target_column_ids: tuple[int, ...]
    confidence: float = 1.0
    on_delete: ReferentialAction | None = None
    label: str = ""


@dataclass
class ImpactGraph:
    nodes: dict[EntityRef, EntityNode]
    edges: list[ImpactEdge] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    _incoming: dict[EntityRef, list[int]] = field(default_factory=dict, init=False, repr=False)

    def add_edge(self, edge: ImpactEdge) -> bool:
        """Store an edge if both ends are known; returns whether it was kept."""
        if edge.source == edge.target:
            return False
        missing = [ref for ref in (edge.source, edge.target) if ref not in self.nodes]
        if missing:
            self.warnings.append(
                f"Skipped {edge.kind.value} edge {edge.source} -> {edge.target}: "
                f"unknown entity {missing[0]}"
            )
            return False
        self._incoming.setdefault(edge.target, []).append(len(self.edges))
        self.edges.append(edge)
        return True

    def dependents_of(self, ref: EntityRef) -> list[ImpactEdge]:
        return [self.edges[i] for i in self._incoming.get(ref, [])]

    def node(self, ref: EntityRef) -> EntityNode | None:
        return self.nodes.get(ref)


def build_impact_graph(
    nodes: list[EntityNode],
    foreign_keys: list[ForeignKeyEdgeInput],
    dependencies: list[ImpactEdge],
) -> ImpactGraph:
    """Assemble the combined graph: FKs first, then generic dependencies."""
    graph = ImpactGraph(nodes={
        n.ref: EntityNode(n.ref, n.name, clamp_criticality(n.criticality))
        for n in nodes
    })
    for fk in foreign_keys:
        for edge in expand_foreign_key(fk):
            graph.add_edge(edge)
    for edge in dependencies:
        graph.add_edge(edge)
    return graph


def expand_foreign_key(fk: ForeignKeyEdgeInput) -> list[ImpactEdge]:
    source = EntityRef(EntityType.TABLE, fk.source_table_id)
    targets = [EntityRef(EntityType.TABLE, fk.target_table_id)]
    targets += [EntityRef(EntityType.COLUMN, cid) for cid in fk.target_column_ids]
    return [
        ImpactEdge(
            source=source,
            target=target,
            kind=fk.kind,
            dependency_type=DependencyType.FK,
            confidence=fk.confidence,
            on_delete=fk.on_delete,
            label=fk.label,
        )
        for target in targets
    ]
