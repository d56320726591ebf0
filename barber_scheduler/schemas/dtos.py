"""
Data Transfer Objects (DTOs) and validation schemas.

Request DTOs validate shape only (ids, counts, lengths); anything that needs
the database is checked by the services inside the transaction.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from barber_scheduler.core.exceptions import ValidationError

MAX_NOTES_LENGTH = 500
MAX_REASON_LENGTH = 255
STOCK_ACTIONS = ("add", "subtract", "set")


def parse_datetime(value: Any, field_name: str) -> datetime:
    """Parse an ISO-8601 string (a trailing ``Z`` means UTC)."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required", field=field_name)
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(
            f"{field_name} must be an ISO-8601 datetime, got {value!r}",
            field=field_name,
        ) from None


def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a positive integer", field=field_name)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"{field_name} must be a positive integer", field=field_name
        ) from None
    if number <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field_name} must be a positive integer", field=field_name)
    return number


def _id_list(values: Any, field_name: str) -> List[int]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"{field_name} must be a list", field=field_name)
    return [_positive_int(v, field_name) for v in values]


def _validate_notes(notes: Optional[str]) -> None:
    if notes is None:
        return
    if not isinstance(notes, str):
        raise ValidationError("Notes must be text", field="notes")
    if len(notes) > MAX_NOTES_LENGTH:
        raise ValidationError(
            f"Notes cannot exceed {MAX_NOTES_LENGTH} characters", field="notes"
        )


@dataclass
class ProductRequestItem:
    """One requested product and its quantity."""

    product_id: int
    quantity: int = 1

    def validate(self) -> None:
        if self.product_id <= 0:
            raise ValidationError("Valid product_id is required", field="products")
        if self.quantity < 1:
            raise ValidationError("Product quantity must be at least 1", field="products")

    @classmethod
    def from_dict(cls, data: Any) -> "ProductRequestItem":
        if not isinstance(data, dict):
            raise ValidationError("Each product must be an object", field="products")
        return cls(
            product_id=_positive_int(data.get("product_id"), "products"),
            quantity=_positive_int(data.get("quantity", 1), "products"),
        )


def _validate_products(products: List[ProductRequestItem]) -> None:
    seen = set()
    for item in products:
        item.validate()
        if item.product_id in seen:
            raise ValidationError(
                f"Product {item.product_id} is listed more than once", field="products"
            )
        seen.add(item.product_id)


def _validate_service_ids(service_ids: List[int]) -> None:
    if not service_ids:
        raise ValidationError("At least one service is required", field="service_ids")
    if any(sid <= 0 for sid in service_ids):
        raise ValidationError("Service ids must be positive", field="service_ids")
    if len(set(service_ids)) != len(service_ids):
        raise ValidationError("A service is listed more than once", field="service_ids")


@dataclass
class AppointmentCreateRequest:
    """DTO for appointment creation requests."""

    provider_id: int
    client_id: int
    start_time: datetime
    service_ids: List[int]
    products: List[ProductRequestItem] = field(default_factory=list)
    shop_id: Optional[int] = None
    notes: Optional[str] = None

    def validate(self) -> None:
        """Validate the request data."""
        if self.provider_id <= 0:
            raise ValidationError("Valid provider_id is required", field="provider_id")
        if self.client_id <= 0:
            raise ValidationError("Valid client_id is required", field="client_id")
        if self.shop_id is not None and self.shop_id <= 0:
            raise ValidationError("Valid shop_id is required", field="shop_id")
        if not isinstance(self.start_time, datetime):
            raise ValidationError("start_time must be a datetime", field="start_time")
        _validate_service_ids(self.service_ids)
        _validate_products(self.products)
        _validate_notes(self.notes)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppointmentCreateRequest":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        for required in ("provider_id", "client_id", "start_time", "service_ids"):
            if data.get(required) in (None, ""):
                raise ValidationError(f"{required} is required", field=required)
        shop_id = data.get("shop_id")
        return cls(
            provider_id=_positive_int(data["provider_id"], "provider_id"),
            client_id=_positive_int(data["client_id"], "client_id"),
            start_time=parse_datetime(data["start_time"], "start_time"),
            service_ids=_id_list(data["service_ids"], "service_ids"),
            products=[
                ProductRequestItem.from_dict(item) for item in data.get("products") or []
            ],
            shop_id=_positive_int(shop_id, "shop_id") if shop_id is not None else None,
            notes=data.get("notes"),
        )


@dataclass
class AppointmentUpdateRequest:
    """DTO for appointment update requests.

    ``None`` means "keep the current value"; for ``products`` an empty list
    removes every product line.
    """

    start_time: Optional[datetime] = None
    service_ids: Optional[List[int]] = None
    products: Optional[List[ProductRequestItem]] = None
    notes: Optional[str] = None

    def validate(self) -> None:
        """Validate the request data."""
        if self.start_time is not None and not isinstance(self.start_time, datetime):
            raise ValidationError("start_time must be a datetime", field="start_time")
        if self.service_ids is not None:
            _validate_service_ids(self.service_ids)
        if self.products is not None:
            _validate_products(self.products)
        _validate_notes(self.notes)

    @property
    def replaces_lines(self) -> bool:
        return self.service_ids is not None or self.products is not None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppointmentUpdateRequest":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        start = data.get("start_time")
        service_ids = data.get("service_ids")
        products = data.get("products")
        return cls(
            start_time=parse_datetime(start, "start_time") if start is not None else None,
            service_ids=(
                _id_list(service_ids, "service_ids") if service_ids is not None else None
            ),
            products=(
                [ProductRequestItem.from_dict(item) for item in products]
                if products is not None
                else None
            ),
            notes=data.get("notes"),
        )


@dataclass
class StockAdjustmentRequest:
    """DTO for stock adjustment requests."""

    action: str
    quantity: int

    def validate(self) -> None:
        if self.action not in STOCK_ACTIONS:
            raise ValidationError(
                f"action must be one of {', '.join(STOCK_ACTIONS)}", field="action"
            )
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValidationError("quantity must be an integer", field="quantity")
        if self.quantity < 0:
            raise ValidationError("quantity cannot be negative", field="quantity")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StockAdjustmentRequest":
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        request = cls(action=data.get("action"), quantity=data.get("quantity"))
        request.validate()
        return request


def _money(value) -> str:
    return str(Decimal(value).quantize(Decimal("0.01")))


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class AppointmentResponse:
    """DTO for appointment API responses."""

    id: int
    shop_id: int
    provider_id: int
    client_id: int
    start_time: datetime
    end_time: datetime
    total_price: Decimal
    total_duration: int
    status: str
    notes: Optional[str]
    services: List[Dict[str, Any]]
    products: List[Dict[str, Any]]
    provider_name: Optional[str] = None
    client_name: Optional[str] = None
    shop_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, appointment) -> "AppointmentResponse":
        """Create response from domain entity."""
        return cls(
            id=appointment.id,
            shop_id=appointment.shop_id,
            provider_id=appointment.provider_id,
            client_id=appointment.client_id,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            total_price=Decimal(appointment.total_price),
            total_duration=appointment.total_duration,
            status=appointment.status,
            notes=appointment.notes,
            services=[
                {
                    "service_id": line.service_id,
                    "name": line.name,
                    "price": _money(line.price),
                    "duration_minutes": line.duration_minutes,
                }
                for line in appointment.services
            ],
            products=[
                {
                    "product_id": line.product_id,
                    "name": line.name,
                    "quantity": line.quantity,
                    "price": _money(line.price),
                    "subtotal": _money(line.subtotal),
                }
                for line in appointment.products
            ],
            provider_name=appointment.provider.name if appointment.provider else None,
            client_name=appointment.client.name if appointment.client else None,
            shop_name=appointment.shop.name if appointment.shop else None,
            created_at=appointment.created_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "provider_id": self.provider_id,
            "client_id": self.client_id,
            "start_time": _iso(self.start_time),
            "end_time": _iso(self.end_time),
            "total_price": _money(self.total_price),
            "total_duration": self.total_duration,
            "status": self.status,
            "notes": self.notes,
            "services": self.services,
            "products": self.products,
            "provider_name": self.provider_name,
            "client_name": self.client_name,
            "shop_name": self.shop_name,
            "created_at": _iso(self.created_at),
        }


@dataclass
class ProductStockResponse:
    """DTO for product stock API responses."""

    id: int
    name: str
    price: Decimal
    stock_quantity: int
    min_stock: int
    stock_status: str
    is_active: bool

    @classmethod
    def from_domain(cls, product) -> "ProductStockResponse":
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            stock_quantity=product.stock_quantity,
            min_stock=product.min_stock,
            stock_status=product.stock_status,
            is_active=product.is_active,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "price": _money(self.price),
            "stock_quantity": self.stock_quantity,
            "min_stock": self.min_stock,
            "stock_status": self.stock_status,
            "is_active": self.is_active,
        }
