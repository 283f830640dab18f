"""Error Hierarchy - typed, categorized exceptions for every campusreg failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors are recoverable by the caller; storage errors are critical
    - to_response() produces the envelope the UI layer turns into a message
    - No stack traces or raw payloads leak into user-facing messages

Design Decisions:
    - Single hierarchy with CampusRegError base: callers can catch one type
    - ErrorContext as dataclass: carries collection/record ids for logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    STORAGE = "storage"
    CONFLICT = "conflict"
    CREDENTIAL = "credential"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    collection: str | None = None
    record_id: str | None = None
    operation: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None


class CampusRegError(Exception):
    """Base exception for all campusreg errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_response(self) -> dict:
        """Convert to the standardized error envelope consumed by the UI."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "collection": self.context.collection,
                    "record_id": self.context.record_id,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Domain Errors ──────────────────────────────────────────────

class ValidationError(CampusRegError):
    """Input failed validation before reaching the store."""
    def __init__(self, message: str, field: str | None = None, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.field = field


class UnknownCollectionError(CampusRegError):
    """Operation addressed a collection the store does not define."""
    def __init__(self, collection: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.collection = collection
        super().__init__(
            f"Collection '{collection}' does not exist",
            "UNKNOWN_COLLECTION", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, ctx,
        )
        self.collection = collection


class DuplicateKeyError(CampusRegError):
    """Create would violate a per-collection uniqueness rule."""
    def __init__(
        self, collection: str, fields: dict[str, Any], context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.collection = collection
        ctx.operation = "create"
        described = " and ".join(fields)
        super().__init__(
            f"A record in '{collection}' with this {described} already exists",
            "DUPLICATE_KEY", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, ctx,
        )
        self.collection = collection
        self.fields = fields


class NotFoundError(CampusRegError):
    """Requested record does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.record_id = resource_id
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, ctx,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class CapacityExceededError(CampusRegError):
    """Event has no seats left."""
    def __init__(self, event_id: str, capacity: int, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.collection = "events"
        ctx.record_id = event_id
        super().__init__(
            f"Event '{event_id}' is full ({capacity}/{capacity})",
            "CAPACITY_EXCEEDED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx,
        )
        self.event_id = event_id
        self.capacity = capacity


class AlreadyRegisteredError(CampusRegError):
    """User already holds a registration for the event."""
    def __init__(self, user_id: str, event_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.collection = "registrations"
        super().__init__(
            f"User '{user_id}' is already registered for event '{event_id}'",
            "ALREADY_REGISTERED", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.WARNING, ctx,
        )
        self.user_id = user_id
        self.event_id = event_id


class AlreadyInCartError(CampusRegError):
    """Event is already in the cart."""
    def __init__(self, event_id: str, context: ErrorContext | None = None):
        super().__init__(
            f"Event '{event_id}' is already in the cart",
            "ALREADY_IN_CART", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.INFO, context,
        )
        self.event_id = event_id


class MalformedCredentialError(CampusRegError):
    """Credential text could not be decoded into a student payload."""
    def __init__(self, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Malformed credential: {reason}",
            "MALFORMED_CREDENTIAL", ErrorCategory.CREDENTIAL,
            ErrorSeverity.ERROR, context,
        )
        self.reason = reason


class ConcurrencyError(CampusRegError):
    """Conditional write found the record changed underneath it."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENCY_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context,
        )


# ─── Storage Errors ─────────────────────────────────────────────

class StorageError(CampusRegError):
    """Key-value backend operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"Storage {operation} failed: {message}",
            "STORAGE_ERROR", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, ctx,
        )
        self.operation = operation


class StorageFullError(CampusRegError):
    """Write would exceed the backend's byte capacity."""
    def __init__(
        self, key: str, required: int, capacity: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = "set"
        super().__init__(
            f"Storage quota exceeded writing '{key}' ({required} > {capacity} bytes)",
            "STORAGE_FULL", ErrorCategory.STORAGE,
            ErrorSeverity.CRITICAL, ctx,
        )
        self.key = key
        self.required = required
        self.capacity = capacity
