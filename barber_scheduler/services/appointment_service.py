"""
Booking transaction orchestrator.

Every write runs inside one ``transaction_scope``: line items, stock debits
and credits, and the appointment row commit together or not at all. Rows
are locked in a fixed order (appointment, provider, products by id) so two
requests never wait on each other in opposite directions.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Optional, Sequence

from barber_scheduler.core.config import Settings, get_settings
from barber_scheduler.core.exceptions import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    SchedulingError,
    SlotUnavailableError,
    ValidationError,
)
from barber_scheduler.db.session import transaction_scope
from barber_scheduler.domain.entities import Appointment as DomainAppointment
from barber_scheduler.domain.entities import (
    AppointmentProductLine,
    AppointmentServiceLine,
    Provider,
    Shop,
    TimeSlot,
)
from barber_scheduler.domain.interfaces import (
    IAppointmentRepository,
    IClientReader,
    IProductRepository,
    IProviderReader,
    IServiceCatalogReader,
    IShopReader,
)
from barber_scheduler.domain.state_machine import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    NO_SHOW,
    get_status_policy,
)
from barber_scheduler.repositories.appointment_repo import AppointmentRepository
from barber_scheduler.repositories.catalog_repo import ServiceCatalogRepository
from barber_scheduler.repositories.client_repo import ClientRepository
from barber_scheduler.repositories.product_repository import ProductRepository
from barber_scheduler.repositories.provider_repo import ProviderRepository
from barber_scheduler.repositories.shop_repo import ShopRepository
from barber_scheduler.schemas.dtos import (
    MAX_REASON_LENGTH,
    AppointmentCreateRequest,
    AppointmentUpdateRequest,
    ProductRequestItem,
)

from . import business_hours
from .availability_service import AvailabilityService
from .slot_service import SlotGenerator

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class AppointmentService:
    """Application service for appointment use-cases.

    Depends on repository interfaces only; ``from_session`` wires the
    SQLAlchemy implementations for a request-scoped session.
    """

    def __init__(
        self,
        session,
        provider_repo: IProviderReader,
        shop_repo: IShopReader,
        client_repo: IClientReader,
        catalog_repo: IServiceCatalogReader,
        product_repo: IProductRepository,
        appointment_repo: IAppointmentRepository,
        settings: Optional[Settings] = None,
    ):
        self.session = session
        self.provider_repo = provider_repo
        self.shop_repo = shop_repo
        self.client_repo = client_repo
        self.catalog_repo = catalog_repo
        self.product_repo = product_repo
        self.appointment_repo = appointment_repo
        self.settings = settings or Settings()
        self.policy = get_status_policy(self.settings.status_set)
        self.availability = AvailabilityService(
            provider_repo, shop_repo, appointment_repo, self.policy
        )
        self.slots = SlotGenerator(
            provider_repo,
            shop_repo,
            self.availability,
            step_minutes=self.settings.slot_step_minutes,
        )

    @classmethod
    def from_session(cls, session, settings: Optional[Settings] = None) -> "AppointmentService":
        settings = settings or get_settings()
        return cls(
            session,
            provider_repo=ProviderRepository(session),
            shop_repo=ShopRepository(session),
            client_repo=ClientRepository(session),
            catalog_repo=ServiceCatalogRepository(session, settings.service_price_cap),
            product_repo=ProductRepository(session, settings.low_stock_threshold),
            appointment_repo=AppointmentRepository(session),
            settings=settings,
        )

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def create_appointment(
        self, request: AppointmentCreateRequest, now: Optional[datetime] = None
    ) -> DomainAppointment:
        """Book an appointment with its services and products.

        Business Rules:
        - Provider, shop and client must exist; provider must be active
        - Services and products must belong to the provider's shop
        - Interval must fit both the provider's and the shop's hours
        - No overlap with the provider's active appointments
        - Product stock is debited in the same transaction
        """
        request.validate()
        start = self._local(request.start_time)
        self._ensure_not_past(start, now)

        context = {"provider_id": request.provider_id, "start": start.isoformat()}
        with self._rejections_logged("create", context):
            with transaction_scope(self.session):
                provider = self._load_provider(request.provider_id)
                shop = self._load_shop(provider, request.shop_id)
                if self.client_repo.get_by_id(request.client_id) is None:
                    raise NotFoundError.for_entity("Client", request.client_id)

                service_lines = self._resolve_services(request.service_ids, shop.id)
                product_lines = self._resolve_products(request.products, shop.id)
                total_duration = sum(line.duration_minutes for line in service_lines)
                end = start + timedelta(minutes=total_duration)
                self._ensure_slot(provider, shop, start, end)

                appointment = DomainAppointment(
                    shop_id=shop.id,
                    provider_id=provider.id,
                    client_id=request.client_id,
                    start_time=start,
                    end_time=end,
                    total_price=self._total_price(service_lines, product_lines),
                    total_duration=total_duration,
                    status=self.policy.initial,
                    notes=request.notes,
                    services=service_lines,
                    products=product_lines,
                )
                created = self.appointment_repo.create(appointment)
                for line in product_lines:
                    self.product_repo.decrease_stock(line.product_id, line.quantity)

        logger.info(
            "Appointment created",
            extra={
                "context": {
                    **context,
                    "appointment_id": created.id,
                    "end": end.isoformat(),
                    "total_price": str(appointment.total_price),
                    "product_lines": len(product_lines),
                }
            },
        )
        return created

    def update_appointment(
        self,
        appointment_id: int,
        request: AppointmentUpdateRequest,
        now: Optional[datetime] = None,
    ) -> DomainAppointment:
        """Reschedule or change the line items of an open appointment.

        Stock held by the current product lines is credited back first and
        the new lines are debited afterwards; a failure anywhere rolls back
        both.
        """
        request.validate()
        context = {"appointment_id": appointment_id}
        with self._rejections_logged("update", context):
            with transaction_scope(self.session):
                appointment = self._load_appointment(appointment_id)
                if (
                    self.policy.is_terminal(appointment.status)
                    or appointment.status in self.policy.released
                ):
                    raise InvalidStateError(
                        f"Cannot update an appointment that is {appointment.status}"
                    )

                provider = self._load_provider(appointment.provider_id)
                shop = self._load_shop(provider, appointment.shop_id)

                start = appointment.start_time
                if request.start_time is not None:
                    start = self._local(request.start_time)
                    self._ensure_not_past(start, now)

                self._release_stock(appointment.products)

                if request.service_ids is not None:
                    service_lines = self._resolve_services(request.service_ids, shop.id)
                else:
                    service_lines = list(appointment.services)
                if request.products is not None:
                    product_lines = self._resolve_products(request.products, shop.id)
                else:
                    product_lines = sorted(appointment.products, key=lambda l: l.product_id)

                total_duration = sum(line.duration_minutes for line in service_lines)
                end = start + timedelta(minutes=total_duration)
                self._ensure_slot(provider, shop, start, end, exclude_id=appointment.id)

                appointment.start_time = start
                appointment.end_time = end
                appointment.total_duration = total_duration
                appointment.total_price = self._total_price(service_lines, product_lines)
                appointment.services = service_lines
                appointment.products = product_lines
                if request.notes is not None:
                    appointment.notes = request.notes

                updated = self.appointment_repo.update(
                    appointment, replace_lines=request.replaces_lines
                )
                for line in product_lines:
                    self.product_repo.decrease_stock(line.product_id, line.quantity)

        logger.info(
            "Appointment updated",
            extra={
                "context": {
                    **context,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "total_price": str(appointment.total_price),
                }
            },
        )
        return updated

    def cancel_appointment(
        self, appointment_id: int, reason: Optional[str] = None
    ) -> DomainAppointment:
        """Cancel and return every reserved product unit to stock."""
        if reason is not None and not isinstance(reason, str):
            raise ValidationError("Cancellation reason must be text", field="reason")
        if reason is not None and len(reason) > MAX_REASON_LENGTH:
            raise ValidationError(
                f"Cancellation reason cannot exceed {MAX_REASON_LENGTH} characters",
                field="reason",
            )
        note = f"Cancelled: {reason}" if reason else None
        return self._change_status(appointment_id, CANCELLED, note=note)

    def complete_appointment(self, appointment_id: int) -> DomainAppointment:
        """Mark as completed. Stock is left untouched."""
        return self._change_status(appointment_id, COMPLETED)

    def confirm_appointment(self, appointment_id: int) -> DomainAppointment:
        return self._change_status(appointment_id, CONFIRMED)

    def mark_no_show(self, appointment_id: int) -> DomainAppointment:
        """Record a no-show; only the extended status set tracks them."""
        if not self.policy.supports(NO_SHOW):
            raise InvalidStateError(
                "No-show tracking is not enabled for the configured status set"
            )
        return self._change_status(appointment_id, NO_SHOW)

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: int) -> DomainAppointment:
        appointment = self.appointment_repo.get_by_id(appointment_id)
        if appointment is None:
            raise NotFoundError.for_entity("Appointment", appointment_id)
        return appointment

    def list_upcoming(
        self,
        now: datetime,
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
        shop_id: Optional[int] = None,
    ) -> List[DomainAppointment]:
        """Open appointments starting at or after ``now``, soonest first."""
        open_statuses = self.policy.statuses - self.policy.terminal
        return self.appointment_repo.list_upcoming(
            self._local(now),
            open_statuses,
            provider_id=provider_id,
            client_id=client_id,
            shop_id=shop_id,
        )

    def list_history(
        self,
        now: datetime,
        provider_id: Optional[int] = None,
        client_id: Optional[int] = None,
        shop_id: Optional[int] = None,
    ) -> List[DomainAppointment]:
        """Past or closed appointments, most recent first."""
        return self.appointment_repo.list_history(
            self._local(now),
            self.policy.terminal,
            provider_id=provider_id,
            client_id=client_id,
            shop_id=shop_id,
        )

    def is_provider_available(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        return self.availability.is_available(
            provider_id, self._local(start), self._local(end), exclude_appointment_id
        )

    def get_available_slots(
        self,
        provider_id: int,
        day: date,
        duration_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeSlot]:
        return self.slots.generate_slots(
            provider_id,
            day,
            duration_minutes=duration_minutes,
            now=self._local(now) if now is not None else None,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _change_status(
        self, appointment_id: int, target: str, note: Optional[str] = None
    ) -> DomainAppointment:
        context = {"appointment_id": appointment_id, "target": target}
        with self._rejections_logged(target, context):
            with transaction_scope(self.session):
                appointment = self._load_appointment(appointment_id)
                previous = appointment.status
                self.policy.ensure_transition(previous, target)

                if target in self.policy.released:
                    self._release_stock(appointment.products)
                appointment.status = target
                appointment.append_note(note)
                updated = self.appointment_repo.update(appointment)

        logger.info(
            "Appointment status changed",
            extra={"context": {**context, "from": previous}},
        )
        return updated

    def _load_appointment(self, appointment_id: int) -> DomainAppointment:
        appointment = self.appointment_repo.get_by_id(appointment_id, lock=True)
        if appointment is None:
            raise NotFoundError.for_entity("Appointment", appointment_id)
        return appointment

    def _load_provider(self, provider_id: int) -> Provider:
        provider = self.provider_repo.get_by_id(provider_id, lock=True)
        if provider is None or not provider.is_bookable:
            raise NotFoundError(
                f"Provider {provider_id} not found or inactive", field="provider_id"
            )
        return provider

    def _load_shop(self, provider: Provider, requested_shop_id: Optional[int]) -> Shop:
        if requested_shop_id is not None and requested_shop_id != provider.shop_id:
            raise ValidationError(
                f"Provider {provider.id} does not work at shop {requested_shop_id}",
                field="shop_id",
            )
        shop = self.shop_repo.get_by_id(provider.shop_id)
        if shop is None or not shop.is_active:
            raise NotFoundError(
                f"Shop {provider.shop_id} not found or inactive", field="shop_id"
            )
        return shop

    def _resolve_services(
        self, service_ids: Sequence[int], shop_id: int
    ) -> List[AppointmentServiceLine]:
        lines = []
        for service_id in service_ids:
            service = self.catalog_repo.get_active_by_id(service_id)
            if service is None:
                raise NotFoundError(
                    f"Service {service_id} not found or inactive", field="service_ids"
                )
            if service.shop_id != shop_id:
                raise ValidationError(
                    f"Service {service_id} is not offered by shop {shop_id}",
                    field="service_ids",
                )
            lines.append(
                AppointmentServiceLine(
                    service_id=service.id,
                    price=service.price,
                    duration_minutes=service.duration_minutes,
                    name=service.name,
                )
            )
        return lines

    def _resolve_products(
        self, items: Sequence[ProductRequestItem], shop_id: int
    ) -> List[AppointmentProductLine]:
        lines = []
        for item in sorted(items, key=lambda i: i.product_id):
            product = self.product_repo.get_active_in_stock(item.product_id, lock=True)
            if product is None:
                raise NotFoundError(
                    f"Product {item.product_id} not found, inactive or out of stock",
                    field="products",
                )
            if product.shop_id != shop_id:
                raise ValidationError(
                    f"Product {item.product_id} is not sold by shop {shop_id}",
                    field="products",
                )
            if item.quantity > product.stock_quantity:
                raise InsufficientStockError(
                    product.id, item.quantity, product.stock_quantity
                )
            lines.append(
                AppointmentProductLine(
                    product_id=product.id,
                    quantity=item.quantity,
                    price=product.price,
                    name=product.name,
                )
            )
        return lines

    def _release_stock(self, lines: Sequence[AppointmentProductLine]) -> None:
        for line in sorted(lines, key=lambda l: l.product_id):
            self.product_repo.increase_stock(line.product_id, line.quantity)

    def _ensure_slot(
        self,
        provider: Provider,
        shop: Shop,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        # Provider and shop hours are separate checks; either can fail alone
        if not business_hours.within_provider_hours(provider, start, end):
            raise SlotUnavailableError(
                f"{start:%Y-%m-%d %H:%M}-{end:%H:%M} is outside the provider's "
                f"working hours",
                field="start_time",
            )
        if not business_hours.within_shop_hours(shop, start, end):
            raise SlotUnavailableError(
                f"{start:%Y-%m-%d %H:%M}-{end:%H:%M} is outside the shop's "
                f"opening hours",
                field="start_time",
            )
        result = self.availability.check_for(provider, shop, start, end, exclude_id)
        if not result.available:
            raise SlotUnavailableError(result.message, field="start_time")

    def _ensure_not_past(self, start: datetime, now: Optional[datetime]) -> None:
        if now is not None and start < self._local(now):
            raise ValidationError(
                "Appointment must be scheduled in the future", field="start_time"
            )

    def _local(self, value: datetime) -> datetime:
        return business_hours.normalize_datetime(value, self.settings.timezone)

    @staticmethod
    def _total_price(
        service_lines: Sequence[AppointmentServiceLine],
        product_lines: Sequence[AppointmentProductLine],
    ) -> Decimal:
        total = sum((Decimal(line.price) for line in service_lines), Decimal("0"))
        total += sum((line.subtotal for line in product_lines), Decimal("0"))
        return total.quantize(CENTS)

    @contextmanager
    def _rejections_logged(self, action: str, context: dict):
        try:
            yield
        except SchedulingError as e:
            logger.warning(
                "Appointment operation rejected",
                extra={
                    "context": {
                        **context,
                        "action": action,
                        "error": e.code,
                        "reason": e.message,
                    }
                },
            )
            raise
