"""
Domain package - Pure business logic layer.

This package contains:
- entities.py: Domain entities with their invariants
- interfaces.py: Repository contracts consumed by the services
- state_machine.py: Appointment status policies
"""

from .entities import (
    Appointment,
    AppointmentProductLine,
    AppointmentServiceLine,
    Client,
    OpenInterval,
    Product,
    Provider,
    Service,
    Shop,
    TimeSlot,
    WorkingDays,
)
from .interfaces import (
    IAppointmentReader,
    IAppointmentRepository,
    IAppointmentWriter,
    IClientReader,
    IProductReader,
    IProductRepository,
    IProductStockWriter,
    IProviderReader,
    IServiceCatalogReader,
    IShopReader,
)
from .state_machine import StatusPolicy, get_status_policy

__all__ = [
    # Domain entities
    "Appointment",
    "AppointmentProductLine",
    "AppointmentServiceLine",
    "Client",
    "OpenInterval",
    "Product",
    "Provider",
    "Service",
    "Shop",
    "TimeSlot",
    "WorkingDays",
    # Repository interfaces
    "IAppointmentRepository",
    "IProductRepository",
    "IProviderReader",
    "IShopReader",
    "IServiceCatalogReader",
    "IClientReader",
    # Segregated interfaces
    "IAppointmentReader",
    "IAppointmentWriter",
    "IProductReader",
    "IProductStockWriter",
    # Status policy
    "StatusPolicy",
    "get_status_policy",
]
