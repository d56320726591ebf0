"""
Schemas package - Data Transfer Objects and validation.

This package contains DTOs that define the API contracts
and handle input validation.
"""

from .dtos import (
    AppointmentCreateRequest,
    AppointmentResponse,
    AppointmentUpdateRequest,
    ProductRequestItem,
    ProductStockResponse,
    StockAdjustmentRequest,
)

__all__ = [
    # Appointment DTOs
    "AppointmentCreateRequest",
    "AppointmentUpdateRequest",
    "AppointmentResponse",
    "ProductRequestItem",
    # Inventory DTOs
    "StockAdjustmentRequest",
    "ProductStockResponse",
]
