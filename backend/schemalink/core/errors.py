"""Error Hierarchy — typed, categorized exceptions for all SchemaLink failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with SchemaLinkError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
    - ParseSkipped and UniquenessConflictError never reach a client: the first is
      turned into a warning, the second is resolved by re-reading the winning row
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    DATABASE = "database"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    PARSE = "parse"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    project_id: int | None = None
    entity_type: str | None = None
    entity_id: int | None = None
    logical_fk_id: int | None = None
    debug_info: dict[str, Any] | None = None


class SchemaLinkError(Exception):
    """Base exception for all SchemaLink errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "project_id": self.context.project_id,
                    "entity_type": self.context.entity_type,
                    "entity_id": self.context.entity_id,
                    "logical_fk_id": self.context.logical_fk_id,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class InvalidReferenceError(SchemaLinkError):
    """Referenced table, column or routine does not exist in the registry."""
    def __init__(
        self, entity_type: str, entity_id: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.entity_type = entity_type
        ctx.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} does not exist",
            "INVALID_REFERENCE", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx, 404,
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidTransitionError(SchemaLinkError):
    """Curation action not allowed from the relationship's current status."""
    def __init__(
        self,
        action: str,
        current_status: str,
        message: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message or f"Cannot {action} a relationship in status {current_status}",
            "INVALID_TRANSITION", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )
        self.action = action
        self.current_status = current_status


class ColumnMappingError(SchemaLinkError):
    """Source/target column lists are empty or of different length."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "COLUMN_MAPPING_INVALID", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )


class PhysicalRelationshipExistsError(SchemaLinkError):
    """Manual relationship duplicates a declared foreign key constraint."""
    def __init__(self, constraint_name: str, context: ErrorContext | None = None):
        super().__init__(
            f"Physical foreign key '{constraint_name}' already covers this mapping",
            "PHYSICAL_FK_EXISTS", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.constraint_name = constraint_name


class ResourceNotFoundError(SchemaLinkError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class ParseSkipped(SchemaLinkError):
    """Routine text could not be scanned; informational only."""
    def __init__(self, routine_name: str, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Skipped {routine_name}: {reason}",
            "PARSE_SKIPPED", ErrorCategory.PARSE,
            ErrorSeverity.INFO, context, 200,
        )
        self.routine_name = routine_name
        self.reason = reason


class UniquenessConflictError(SchemaLinkError):
    """Concurrent insert won the uniqueness race; caller re-reads."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "UNIQUENESS_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 409,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(SchemaLinkError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
