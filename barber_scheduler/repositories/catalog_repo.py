"""
Service catalog repository implementation.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import select

from barber_scheduler.core.exceptions import ValidationError
from barber_scheduler.db.base import Service as ServiceModel
from barber_scheduler.domain.entities import Service
from barber_scheduler.domain.interfaces import IServiceCatalogReader


class ServiceCatalogRepository(IServiceCatalogReader):
    """Looks up bookable services.

    Rows priced above ``price_cap`` are rejected when loaded.
    """

    def __init__(self, db_session, price_cap: Optional[Decimal] = None) -> None:
        self.db = db_session
        self.price_cap = price_cap

    def get_active_by_id(self, service_id: int) -> Optional[Service]:
        stmt = select(ServiceModel).where(
            ServiceModel.id == service_id,
            ServiceModel.is_active.is_(True),
            ServiceModel.deleted_at.is_(None),
        )
        db_service = self.db.execute(stmt).scalar_one_or_none()
        return self._to_domain(db_service) if db_service else None

    def _to_domain(self, db_service: ServiceModel) -> Service:
        service = Service(
            id=db_service.id,
            shop_id=db_service.barbershop_id,
            name=db_service.name,
            price=db_service.price,
            duration_minutes=db_service.duration_minutes,
            is_active=bool(db_service.is_active),
        )
        if self.price_cap is not None and service.price > self.price_cap:
            raise ValidationError(
                f"Service {service.id} price {service.price} exceeds the "
                f"configured cap of {self.price_cap}",
                field="service_ids",
            )
        return service
