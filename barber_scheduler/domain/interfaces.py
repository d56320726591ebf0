"""
Abstract interfaces for repositories following Interface Segregation Principle.

These contracts describe the external collaborators the scheduling core
reads from and writes to. Implementations never commit: the caller owns the
transaction boundary.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from .entities import Appointment, Client, Product, Provider, Service, Shop


class IProviderReader(ABC):
    """Interface for provider (barber) lookups."""

    @abstractmethod
    def get_by_id(self, provider_id: int, lock: bool = False) -> Optional[Provider]:
        """Get a non-deleted provider by ID, optionally locking its row."""
        pass


class IShopReader(ABC):
    """Interface for shop lookups."""

    @abstractmethod
    def get_by_id(self, shop_id: int) -> Optional[Shop]:
        """Get shop by ID."""
        pass


class IServiceCatalogReader(ABC):
    """Interface for service lookups."""

    @abstractmethod
    def get_active_by_id(self, service_id: int) -> Optional[Service]:
        """Get an active, non-deleted service by ID."""
        pass


class IProductReader(ABC):
    """Interface for product read operations."""

    @abstractmethod
    def get_by_id(self, product_id: int, lock: bool = False) -> Optional[Product]:
        """Get product by ID regardless of state."""
        pass

    @abstractmethod
    def get_active_in_stock(
        self, product_id: int, lock: bool = False
    ) -> Optional[Product]:
        """Get an active product with stock above zero."""
        pass


class IProductStockWriter(ABC):
    """Interface for stock mutations."""

    @abstractmethod
    def increase_stock(self, product_id: int, quantity: int) -> Product:
        """Add units to a product's stock."""
        pass

    @abstractmethod
    def decrease_stock(self, product_id: int, quantity: int) -> Product:
        """Remove units; raises InsufficientStockError rather than going negative."""
        pass

    @abstractmethod
    def set_stock(self, product_id: int, quantity: int) -> Product:
        """Overwrite a product's stock quantity."""
        pass


class IProductRepository(IProductReader, IProductStockWriter):
    """Complete product repository interface."""

    pass


class IAppointmentReader(ABC):
    """Interface for appointment read operations."""

    @abstractmethod
    def get_by_id(self, appointment_id: int, lock: bool = False) -> Optional[Appointment]:
        """Get a fully-loaded, non-deleted appointment by ID."""
        pass

    @abstractmethod
    def find_overlapping(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[str],
        exclude_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Appointments of a provider in the given statuses intersecting [start, end)."""
        pass

    @abstractmethod
    def list_upcoming(
        self,
        now: datetime,
        statuses: Iterable[str],
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
        shop_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Appointments starting at or after ``now`` in the given statuses."""
        pass

    @abstractmethod
    def list_history(
        self,
        now: datetime,
        closed_statuses: Iterable[str],
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
        shop_id: Optional[int] = None,
    ) -> List[Appointment]:
        """Appointments that started before ``now`` or are already closed."""
        pass


class IAppointmentWriter(ABC):
    """Interface for appointment write operations."""

    @abstractmethod
    def create(self, appointment: Appointment) -> Appointment:
        """Persist an appointment together with its line items."""
        pass

    @abstractmethod
    def update(self, appointment: Appointment, replace_lines: bool = False) -> Appointment:
        """Persist scalar changes; optionally replace all line items."""
        pass


class IAppointmentRepository(IAppointmentReader, IAppointmentWriter):
    """Complete appointment repository interface."""

    pass


class IClientReader(ABC):
    """Interface for client lookups."""

    @abstractmethod
    def get_by_id(self, client_id: int) -> Optional[Client]:
        """Get client by ID."""
        pass
