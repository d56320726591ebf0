"""
Provider (barber) repository implementation.
"""

from typing import Optional

from sqlalchemy import select

from barber_scheduler.db.base import Barber
from barber_scheduler.domain.entities import Provider, WorkingDays
from barber_scheduler.domain.interfaces import IProviderReader


def provider_to_domain(db_barber: Barber) -> Provider:
    """Convert a Barber row, decoding its working-day list."""
    return Provider(
        id=db_barber.id,
        shop_id=db_barber.barbershop_id,
        name=db_barber.name,
        start_time=db_barber.start_time,
        end_time=db_barber.end_time,
        working_days=WorkingDays.from_iterable(db_barber.working_days),
        is_active=bool(db_barber.active),
        deleted_at=db_barber.deleted_at,
    )


class ProviderRepository(IProviderReader):
    """Repository for provider lookups. Soft-deleted barbers are invisible."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(self, provider_id: int, lock: bool = False) -> Optional[Provider]:
        stmt = select(Barber).where(Barber.id == provider_id, Barber.deleted_at.is_(None))
        if lock:
            # Serializes bookings for this provider until the transaction ends
            stmt = stmt.with_for_update()
        db_barber = self.db.execute(stmt).scalar_one_or_none()
        return provider_to_domain(db_barber) if db_barber else None
