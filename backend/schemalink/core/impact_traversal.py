"""Impact Traversal — bounded breadth-first walk over incoming edges.

Invariants:
    - PURE: graph in, TraversalResult out
    - Visits dependents (incoming edges), never dependencies
    - Each entity is reached once, at its shortest distance; the root is never reached
    - All edges arriving at that shortest distance are kept as evidence
    - Depth never exceeds max_depth; is_truncated reports unexplored dependents beyond it
"""

from dataclasses import dataclass, field

from schemalink.core.domain_types import EntityRef
from schemalink.core.impact_graph import ImpactEdge, ImpactGraph


@dataclass
class Reached:
    distance: int
    edges: list[ImpactEdge] = field(default_factory=list)


@dataclass
class TraversalResult:
    root: EntityRef
    reached: dict[EntityRef, Reached] = field(default_factory=dict)
    max_depth_reached: int = 0
    is_truncated: bool = False


def traverse_dependents(
    graph: ImpactGraph, root: EntityRef, max_depth: int = 3,
) -> TraversalResult:
    result = TraversalResult(root=root)
    frontier = [root]
    depth = 0
    while frontier and depth < max_depth:
        depth += 1
        next_frontier: list[EntityRef] = []
        for ref in frontier:
            for edge in graph.dependents_of(ref):
                dependent = edge.source
                if dependent == root:
                    continue
                seen = result.reached.get(dependent)
                if seen is not None:
                    if seen.distance == depth and edge not in seen.edges:
                        seen.edges.append(edge)
                    continue
                result.reached[dependent] = Reached(distance=depth, edges=[edge])
                next_frontier.append(dependent)
        if next_frontier:
            result.max_depth_reached = depth
        frontier = next_frontier

    result.is_truncated = any(
        edge.source != root and edge.source not in result.reached
        for ref in frontier
        for edge in graph.dependents_of(ref)
    )
    return result
