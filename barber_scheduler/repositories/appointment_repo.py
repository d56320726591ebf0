"""
Appointment repository implementation.

Writes only flush; the booking orchestrator commits or rolls back the
whole unit of work.
"""

from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import selectinload

from barber_scheduler.core.exceptions import NotFoundError
from barber_scheduler.db.base import Appointment as DbAppointment
from barber_scheduler.db.base import AppointmentProduct, AppointmentService
from barber_scheduler.domain.entities import Appointment as DomainAppointment
from barber_scheduler.domain.entities import (
    AppointmentProductLine,
    AppointmentServiceLine,
)
from barber_scheduler.domain.interfaces import IAppointmentRepository

from .client_repo import client_to_domain
from .provider_repo import provider_to_domain
from .shop_repo import shop_to_domain


class AppointmentRepository(IAppointmentRepository):
    """Repository for Appointment persistence operations."""

    def __init__(self, db_session) -> None:
        self.db = db_session

    def get_by_id(
        self, appointment_id: int, lock: bool = False
    ) -> Optional[DomainAppointment]:
        db_appointment = self._load(appointment_id, lock=lock)
        return self._to_domain(db_appointment) if db_appointment else None

    def find_overlapping(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        statuses: Iterable[str],
        exclude_id: Optional[int] = None,
    ) -> List[DomainAppointment]:
        # Half-open overlap: touching boundaries do not conflict
        stmt = select(DbAppointment).where(
            DbAppointment.barber_id == provider_id,
            DbAppointment.deleted_at.is_(None),
            DbAppointment.status.in_(list(statuses)),
            DbAppointment.start_time < end,
            DbAppointment.end_time > start,
        )
        if exclude_id is not None:
            stmt = stmt.where(DbAppointment.id != exclude_id)
        stmt = stmt.order_by(DbAppointment.start_time)
        rows = self.db.execute(stmt).scalars().all()
        return [self._to_domain(row, with_relations=False) for row in rows]

    def list_upcoming(
        self,
        now: datetime,
        statuses: Iterable[str],
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
        shop_id: Optional[int] = None,
    ) -> List[DomainAppointment]:
        stmt = self._filtered(provider_id, client_id, shop_id).where(
            DbAppointment.start_time >= now,
            DbAppointment.status.in_(list(statuses)),
        )
        rows = self.db.execute(stmt.order_by(DbAppointment.start_time.asc())).scalars()
        return [self._to_domain(row) for row in rows]

    def list_history(
        self,
        now: datetime,
        closed_statuses: Iterable[str],
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
        shop_id: Optional[int] = None,
    ) -> List[DomainAppointment]:
        stmt = self._filtered(provider_id, client_id, shop_id).where(
            or_(
                DbAppointment.start_time < now,
                DbAppointment.status.in_(list(closed_statuses)),
            )
        )
        rows = self.db.execute(stmt.order_by(DbAppointment.start_time.desc())).scalars()
        return [self._to_domain(row) for row in rows]

    def create(self, appointment: DomainAppointment) -> DomainAppointment:
        db_appointment = DbAppointment(
            barbershop_id=appointment.shop_id,
            barber_id=appointment.provider_id,
            client_id=appointment.client_id,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            total_price=appointment.total_price,
            total_duration=appointment.total_duration,
            status=appointment.status,
            notes=appointment.notes,
        )
        self._attach_lines(db_appointment, appointment)
        self.db.add(db_appointment)
        self.db.flush()
        return self._to_domain(db_appointment)

    def update(
        self, appointment: DomainAppointment, replace_lines: bool = False
    ) -> DomainAppointment:
        db_appointment = self._load(appointment.id)
        if not db_appointment:
            raise NotFoundError.for_entity("Appointment", appointment.id)

        db_appointment.start_time = appointment.start_time
        db_appointment.end_time = appointment.end_time
        db_appointment.total_price = appointment.total_price
        db_appointment.total_duration = appointment.total_duration
        db_appointment.status = appointment.status
        db_appointment.notes = appointment.notes

        if replace_lines:
            # Flush the removals first so re-attaching the same service or
            # product does not trip the (appointment, item) unique constraints
            db_appointment.service_lines.clear()
            db_appointment.product_lines.clear()
            self.db.flush()
            self._attach_lines(db_appointment, appointment)

        self.db.flush()
        return self._to_domain(db_appointment)

    def _load(self, appointment_id: int, lock: bool = False) -> Optional[DbAppointment]:
        stmt = (
            select(DbAppointment)
            .where(
                DbAppointment.id == appointment_id,
                DbAppointment.deleted_at.is_(None),
            )
            .options(
                selectinload(DbAppointment.service_lines),
                selectinload(DbAppointment.product_lines),
            )
        )
        if lock:
            stmt = stmt.with_for_update()
        return self.db.execute(stmt).scalar_one_or_none()

    def _filtered(
        self,
        provider_id: Optional[int],
        client_id: Optional[int],
        shop_id: Optional[int],
    ):
        stmt = select(DbAppointment).where(DbAppointment.deleted_at.is_(None))
        if provider_id is not None:
            stmt = stmt.where(DbAppointment.barber_id == provider_id)
        if client_id is not None:
            stmt = stmt.where(DbAppointment.client_id == client_id)
        if shop_id is not None:
            stmt = stmt.where(DbAppointment.barbershop_id == shop_id)
        return stmt

    @staticmethod
    def _attach_lines(db_appointment: DbAppointment, appointment: DomainAppointment) -> None:
        for line in appointment.services:
            db_appointment.service_lines.append(
                AppointmentService(
                    service_id=line.service_id,
                    price=line.price,
                    duration_minutes=line.duration_minutes,
                )
            )
        for line in appointment.products:
            db_appointment.product_lines.append(
                AppointmentProduct(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    price=line.price,
                )
            )

    def _to_domain(
        self, db_appointment: DbAppointment, with_relations: bool = True
    ) -> DomainAppointment:
        """Convert database model to domain entity."""
        appointment = DomainAppointment(
            id=db_appointment.id,
            shop_id=db_appointment.barbershop_id,
            provider_id=db_appointment.barber_id,
            client_id=db_appointment.client_id,
            start_time=db_appointment.start_time,
            end_time=db_appointment.end_time,
            total_price=db_appointment.total_price,
            total_duration=db_appointment.total_duration,
            status=db_appointment.status,
            notes=db_appointment.notes,
            created_at=db_appointment.created_at,
            updated_at=db_appointment.updated_at,
        )
        if not with_relations:
            return appointment

        appointment.services = [
            AppointmentServiceLine(
                service_id=line.service_id,
                price=line.price,
                duration_minutes=line.duration_minutes,
                name=line.service.name if line.service else "",
            )
            for line in db_appointment.service_lines
        ]
        appointment.products = [
            AppointmentProductLine(
                product_id=line.product_id,
                quantity=line.quantity,
                price=line.price,
                name=line.product.name if line.product else "",
            )
            for line in db_appointment.product_lines
        ]
        if db_appointment.barber is not None:
            appointment.provider = provider_to_domain(db_appointment.barber)
        if db_appointment.barbershop is not None:
            appointment.shop = shop_to_domain(db_appointment.barbershop)
        if db_appointment.client is not None:
            appointment.client = client_to_domain(db_appointment.client)
        return appointment
