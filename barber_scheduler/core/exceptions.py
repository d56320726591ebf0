"""
Custom exceptions for the scheduling core.

Every domain failure raised by the services is a ``SchedulingError`` so the
HTTP layer can map it to a status code without inspecting messages.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class for typed scheduling failures."""

    code = "scheduling_error"
    http_status = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        data = {"success": False, "error": self.code, "message": self.message}
        if self.field:
            data["field"] = self.field
        return data


class NotFoundError(SchedulingError):
    """Referenced entity does not exist or is not in the required state."""

    code = "not_found"
    http_status = 404

    @classmethod
    def for_entity(cls, entity: str, entity_id) -> "NotFoundError":
        return cls(f"{entity} {entity_id} not found")


class ValidationError(SchedulingError, ValueError):
    """Malformed input or data violating an entity invariant."""

    code = "validation_error"
    http_status = 422


class SlotUnavailableError(SchedulingError):
    """Requested interval overlaps a booking or falls outside business hours."""

    code = "slot_unavailable"
    http_status = 409


class InsufficientStockError(SchedulingError):
    """Requested product quantity exceeds available stock."""

    code = "insufficient_stock"
    http_status = 409

    def __init__(self, product_id: int, requested: int, available: int):
        super().__init__(
            f"Product {product_id} has {available} unit(s) in stock, "
            f"{requested} requested",
            field="products",
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class InvalidStateError(SchedulingError):
    """Illegal appointment status transition."""

    code = "invalid_state"
    http_status = 409


class InternalError(SchedulingError):
    """Unexpected lower-level failure, e.g. the database is unavailable."""

    code = "internal_error"
    http_status = 500
