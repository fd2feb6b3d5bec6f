"""ORM Models — SQLAlchemy declarative models for catalog and relationship storage.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every row is scoped by project_id (directly or through its table)

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from schemalink.models.table_metadata import TableMetadata  # noqa: F401
from schemalink.models.column_metadata import ColumnMetadata  # noqa: F401
from schemalink.models.routine_metadata import RoutineMetadata  # noqa: F401
from schemalink.models.physical_foreign_key import PhysicalForeignKey  # noqa: F401
from schemalink.models.dependency import Dependency  # noqa: F401
from schemalink.models.logical_foreign_key import LogicalForeignKey  # noqa: F401
from schemalink.models.detection_run import DetectionRun  # noqa: F401
