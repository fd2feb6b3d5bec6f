"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Catalog IO is accessed through Protocol types
    - Implementations provided by shell (services/) via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: boundary methods are async because implementations do IO,
      but the pure functions fed by them (detectors, traversal, scoring) are not
"""

from typing import Protocol

from schemalink.core.impact_graph import EntityNode
from schemalink.core.schema_snapshot import SchemaSnapshot


class SchemaRegistry(Protocol):
    """Read-only catalog access — implemented by services.entity_registry."""
    async def load_snapshot(self, project_id: int) -> SchemaSnapshot: ...
    async def load_entity_nodes(self, project_id: int) -> list[EntityNode]: ...
