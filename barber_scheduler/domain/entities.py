"""
Domain entities - Pure business logic, no framework dependencies.

Each entity validates its own invariants in ``__post_init__`` so malformed
rows are rejected when they are loaded, not when they are used.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Iterable, List, Optional

from barber_scheduler.core.exceptions import ValidationError

ISO_WEEKDAYS = range(1, 8)  # 1 = Monday ... 7 = Sunday

STOCK_IN = "in_stock"
STOCK_LOW = "low_stock"
STOCK_OUT = "out_of_stock"

MAX_SERVICE_DURATION_MINUTES = 480


@dataclass(frozen=True)
class WorkingDays:
    """Seven weekday flags packed in a bitmask (bit 0 = Monday)."""

    mask: int = 0

    def __post_init__(self):
        if not isinstance(self.mask, int) or not 0 <= self.mask <= 0b1111111:
            raise ValidationError(f"Invalid working-day mask: {self.mask!r}")

    @classmethod
    def from_iterable(cls, days: Optional[Iterable]) -> "WorkingDays":
        """Decode a list of ISO weekday numbers, rejecting anything else."""
        if days is None:
            return cls(0)
        if isinstance(days, (str, bytes)) or not hasattr(days, "__iter__"):
            raise ValidationError(
                f"working_days must be a list of weekday numbers, got {days!r}",
                field="working_days",
            )
        mask = 0
        for day in days:
            if isinstance(day, bool) or not isinstance(day, int):
                raise ValidationError(
                    f"Invalid weekday {day!r}; expected an integer 1-7",
                    field="working_days",
                )
            if day not in ISO_WEEKDAYS:
                raise ValidationError(
                    f"Weekday {day} out of range; expected 1 (Monday) to 7 (Sunday)",
                    field="working_days",
                )
            mask |= 1 << (day - 1)
        return cls(mask)

    def __contains__(self, iso_weekday: int) -> bool:
        if iso_weekday not in ISO_WEEKDAYS:
            return False
        return bool(self.mask & (1 << (iso_weekday - 1)))

    def __bool__(self) -> bool:
        return self.mask != 0

    def includes(self, day: date) -> bool:
        return day.isoweekday() in self

    def to_list(self) -> List[int]:
        return [day for day in ISO_WEEKDAYS if day in self]


@dataclass
class Shop:
    """Domain entity for a barbershop and its opening hours."""

    id: Optional[int] = None
    owner_id: Optional[int] = None
    name: str = ""
    opening_time: Optional[time] = None
    closing_time: Optional[time] = None
    is_active: bool = True

    def __post_init__(self):
        if (
            self.opening_time is not None
            and self.closing_time is not None
            and self.opening_time >= self.closing_time
        ):
            raise ValidationError("Shop opening time must be before closing time")

    @property
    def has_hours(self) -> bool:
        return self.opening_time is not None and self.closing_time is not None


@dataclass
class Provider:
    """Domain entity for a barber: working calendar and owning shop."""

    id: Optional[int] = None
    shop_id: int = 0
    name: str = ""
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    working_days: WorkingDays = field(default_factory=WorkingDays)
    is_active: bool = True
    deleted_at: Optional[datetime] = None

    def __post_init__(self):
        if not isinstance(self.working_days, WorkingDays):
            self.working_days = WorkingDays.from_iterable(self.working_days)
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time >= self.end_time
        ):
            raise ValidationError("Working hours start must be before end")

    @property
    def has_hours(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.deleted_at is None


@dataclass
class Client:
    """Domain entity representing a client."""

    id: Optional[int] = None
    name: str = ""
    email: Optional[str] = None
    phone: Optional[str] = None


@dataclass
class Service:
    """Domain entity for a bookable service."""

    id: Optional[int] = None
    shop_id: int = 0
    name: str = ""
    price: Decimal = Decimal("0")
    duration_minutes: int = 0
    is_active: bool = True

    def __post_init__(self):
        self.price = Decimal(self.price)
        if self.price < 0:
            raise ValidationError("Service price cannot be negative")
        if not 1 <= self.duration_minutes <= MAX_SERVICE_DURATION_MINUTES:
            raise ValidationError(
                f"Service duration must be between 1 and "
                f"{MAX_SERVICE_DURATION_MINUTES} minutes"
            )


@dataclass
class Product:
    """Domain entity for a retail product sold alongside a booking."""

    id: Optional[int] = None
    shop_id: int = 0
    name: str = ""
    price: Decimal = Decimal("0")
    stock_quantity: int = 0
    min_stock: int = 5
    is_active: bool = True

    def __post_init__(self):
        self.price = Decimal(self.price)
        if self.price < 0:
            raise ValidationError("Product price cannot be negative")
        if self.stock_quantity < 0:
            raise ValidationError("Stock quantity cannot be negative")

    @property
    def stock_status(self) -> str:
        if self.stock_quantity <= 0:
            return STOCK_OUT
        if self.stock_quantity <= self.min_stock:
            return STOCK_LOW
        return STOCK_IN


@dataclass
class AppointmentServiceLine:
    """Service snapshot attached to an appointment."""

    service_id: int
    price: Decimal
    duration_minutes: int
    name: str = ""


@dataclass
class AppointmentProductLine:
    """Product snapshot attached to an appointment."""

    product_id: int
    quantity: int
    price: Decimal
    name: str = ""

    def __post_init__(self):
        if self.quantity < 1:
            raise ValidationError("Product quantity must be at least 1")

    @property
    def subtotal(self) -> Decimal:
        return Decimal(self.price) * self.quantity


@dataclass
class Appointment:
    """Domain entity for a booking and its line items."""

    id: Optional[int] = None
    shop_id: int = 0
    provider_id: int = 0
    client_id: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    total_price: Decimal = Decimal("0")
    total_duration: int = 0
    status: str = "scheduled"
    notes: Optional[str] = None
    services: List[AppointmentServiceLine] = field(default_factory=list)
    products: List[AppointmentProductLine] = field(default_factory=list)
    provider: Optional[Provider] = None
    shop: Optional[Shop] = None
    client: Optional[Client] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError("End time must be after start time")

    def append_note(self, note: Optional[str]) -> None:
        """Append a note without discarding earlier ones."""
        if not note:
            return
        self.notes = f"{self.notes}\n{note}" if self.notes else note


@dataclass(frozen=True)
class OpenInterval:
    """Concrete bookable window for one date."""

    start: datetime
    end: datetime

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


@dataclass(frozen=True)
class TimeSlot:
    """One candidate slot produced by the slot generator."""

    start: datetime
    end: datetime
    available: bool

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "available": self.available,
        }
