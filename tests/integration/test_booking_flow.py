"""
End-to-end booking scenarios against a real SQLite database.

Covers the full create/update/cancel cycle including stock bookkeeping
and rollback behaviour when a booking is rejected part-way through.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from barber_scheduler.core.config import Settings
from barber_scheduler.core.exceptions import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    SlotUnavailableError,
    ValidationError,
)
from barber_scheduler.db.base import Appointment as AppointmentModel
from barber_scheduler.db.base import AppointmentProduct, Barber
from barber_scheduler.repositories.product_repository import ProductRepository
from barber_scheduler.schemas.dtos import (
    AppointmentCreateRequest,
    AppointmentUpdateRequest,
    ProductRequestItem,
)
from barber_scheduler.services.appointment_service import AppointmentService
from barber_scheduler.services.inventory_service import InventoryService
from tests.factories.repository_factories import MONDAY, SATURDAY, at

NOW = datetime(2030, 1, 1, 8, 0)


@pytest.fixture
def service(db_session, seeded):
    return AppointmentService.from_session(db_session, Settings())


def stock_of(session, product_id):
    return ProductRepository(session).get_by_id(product_id).stock_quantity


def appointment_count(session):
    return session.scalar(select(func.count()).select_from(AppointmentModel))


def product_line_count(session):
    return session.scalar(select(func.count()).select_from(AppointmentProduct))


def book(service, seeded, start, service_ids=None, products=(), provider_id=None):
    request = AppointmentCreateRequest(
        provider_id=provider_id or seeded.provider_id,
        client_id=seeded.client_id,
        start_time=start,
        service_ids=service_ids or [seeded.haircut_id],
        products=list(products),
    )
    return service.create_appointment(request, now=NOW)


@pytest.mark.integration
@pytest.mark.appointment
class TestCreateBooking:
    def test_booking_inside_hours(self, service, seeded):
        created = book(service, seeded, at(16))

        assert created.id is not None
        assert created.status == "scheduled"
        assert created.end_time == at(16, 30)
        assert created.provider.name == "Rafa"

    def test_booking_past_provider_end_leaves_nothing_behind(
        self, service, seeded, db_session
    ):
        with pytest.raises(SlotUnavailableError):
            book(
                service,
                seeded,
                at(16, 45),
                products=[ProductRequestItem(seeded.pomade_id, 1)],
            )

        assert appointment_count(db_session) == 0
        assert product_line_count(db_session) == 0
        assert stock_of(db_session, seeded.pomade_id) == 2

    def test_multi_service_duration_and_price(self, service, seeded):
        created = book(service, seeded, at(14), [seeded.haircut_id, seeded.beard_id])

        assert created.end_time == at(15, 15)
        assert created.total_duration == 75
        assert created.total_price == Decimal("60.00")
        assert [line.name for line in created.services] == ["Haircut", "Beard Trim"]

    def test_products_are_debited_and_priced(self, service, seeded, db_session):
        created = book(
            service,
            seeded,
            at(10),
            products=[
                ProductRequestItem(seeded.shampoo_id, 3),
                ProductRequestItem(seeded.pomade_id, 2),
            ],
        )

        assert created.total_price == Decimal("120.00")
        assert stock_of(db_session, seeded.pomade_id) == 0
        assert stock_of(db_session, seeded.shampoo_id) == 7

    def test_insufficient_stock_rolls_back(self, service, seeded, db_session):
        with pytest.raises(InsufficientStockError) as exc_info:
            book(
                service,
                seeded,
                at(10),
                products=[
                    ProductRequestItem(seeded.shampoo_id, 1),
                    ProductRequestItem(seeded.pomade_id, 3),
                ],
            )

        assert exc_info.value.available == 2
        assert appointment_count(db_session) == 0
        assert stock_of(db_session, seeded.pomade_id) == 2
        assert stock_of(db_session, seeded.shampoo_id) == 10

    def test_sold_out_product_is_not_found(self, service, seeded, db_session):
        book(service, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 2)])

        with pytest.raises(NotFoundError):
            book(service, seeded, at(11), products=[ProductRequestItem(seeded.pomade_id, 1)])

        assert appointment_count(db_session) == 1

    def test_touching_bookings_are_allowed(self, service, seeded):
        book(service, seeded, at(10))
        second = book(service, seeded, at(10, 30))

        assert second.start_time == at(10, 30)

    def test_overlap_is_rejected(self, service, seeded, db_session):
        book(service, seeded, at(10))

        with pytest.raises(SlotUnavailableError):
            book(service, seeded, at(10, 15))

        assert appointment_count(db_session) == 1

    def test_other_provider_is_independent(self, service, seeded):
        book(service, seeded, at(10))

        other = book(service, seeded, at(10), provider_id=seeded.other_provider_id)

        assert other.provider_id == seeded.other_provider_id

    def test_cancelled_booking_frees_the_slot(self, service, seeded):
        first = book(service, seeded, at(10))
        service.cancel_appointment(first.id)

        again = book(service, seeded, at(10))

        assert again.id != first.id

    def test_saturday_is_rejected(self, service, seeded):
        with pytest.raises(SlotUnavailableError):
            book(service, seeded, at(10, day=SATURDAY))

    def test_past_start_is_rejected(self, service, seeded):
        request = AppointmentCreateRequest(
            seeded.provider_id, seeded.client_id, at(10), [seeded.haircut_id]
        )

        with pytest.raises(ValidationError):
            service.create_appointment(request, now=at(12))

    def test_soft_deleted_provider_is_not_bookable(self, service, seeded, db_session):
        db_session.get(Barber, seeded.provider_id).deleted_at = NOW
        db_session.commit()

        with pytest.raises(NotFoundError):
            book(service, seeded, at(10))

    def test_unknown_client(self, service, seeded):
        request = AppointmentCreateRequest(
            seeded.provider_id, 999, at(10), [seeded.haircut_id]
        )

        with pytest.raises(NotFoundError):
            service.create_appointment(request, now=NOW)

    def test_price_cap_rejects_expensive_services(self, db_session, seeded):
        capped = AppointmentService.from_session(
            db_session, Settings(service_price_cap=Decimal("30.00"))
        )

        with pytest.raises(ValidationError):
            book(capped, seeded, at(10))

        assert appointment_count(db_session) == 0


@pytest.mark.integration
@pytest.mark.appointment
class TestUpdateBooking:
    def test_reschedule(self, service, seeded):
        created = book(service, seeded, at(10))

        updated = service.update_appointment(
            created.id, AppointmentUpdateRequest(start_time=at(13)), now=NOW
        )

        assert updated.start_time == at(13)
        assert updated.end_time == at(13, 30)

    def test_replace_products_moves_stock(self, service, seeded, db_session):
        created = book(
            service, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 2)]
        )

        updated = service.update_appointment(
            created.id,
            AppointmentUpdateRequest(products=[ProductRequestItem(seeded.shampoo_id, 2)]),
            now=NOW,
        )

        assert [(p.product_id, p.quantity) for p in updated.products] == [
            (seeded.shampoo_id, 2)
        ]
        assert updated.total_price == Decimal("65.00")
        assert stock_of(db_session, seeded.pomade_id) == 2
        assert stock_of(db_session, seeded.shampoo_id) == 8

    def test_keep_products_when_only_time_changes(self, service, seeded, db_session):
        created = book(
            service, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 2)]
        )

        service.update_appointment(
            created.id, AppointmentUpdateRequest(start_time=at(11)), now=NOW
        )

        assert stock_of(db_session, seeded.pomade_id) == 0
        assert service.get_appointment(created.id).products[0].quantity == 2

    def test_own_interval_does_not_conflict(self, service, seeded):
        created = book(service, seeded, at(10), [seeded.beard_id])

        updated = service.update_appointment(
            created.id, AppointmentUpdateRequest(start_time=at(10, 15)), now=NOW
        )

        assert updated.end_time == at(11)

    def test_failed_update_keeps_times_and_stock(self, service, seeded, db_session):
        created = book(
            service, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 1)]
        )
        book(service, seeded, at(11))

        with pytest.raises(SlotUnavailableError):
            service.update_appointment(
                created.id,
                AppointmentUpdateRequest(
                    start_time=at(11),
                    products=[ProductRequestItem(seeded.shampoo_id, 1)],
                ),
                now=NOW,
            )

        current = service.get_appointment(created.id)
        assert current.start_time == at(10)
        assert [p.product_id for p in current.products] == [seeded.pomade_id]
        assert stock_of(db_session, seeded.pomade_id) == 1
        assert stock_of(db_session, seeded.shampoo_id) == 10

    def test_cancelled_appointment_cannot_be_updated(self, service, seeded):
        created = book(service, seeded, at(10))
        service.cancel_appointment(created.id)

        with pytest.raises(InvalidStateError):
            service.update_appointment(
                created.id, AppointmentUpdateRequest(start_time=at(13)), now=NOW
            )


@pytest.mark.integration
@pytest.mark.appointment
class TestStatusChanges:
    def test_cancel_restores_stock_once(self, service, seeded, db_session):
        created = book(
            service, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 2)]
        )
        assert stock_of(db_session, seeded.pomade_id) == 0

        cancelled = service.cancel_appointment(created.id, "Client asked")

        assert cancelled.status == "cancelled"
        assert cancelled.notes == "Cancelled: Client asked"
        assert stock_of(db_session, seeded.pomade_id) == 2

        with pytest.raises(InvalidStateError):
            service.cancel_appointment(created.id)

        assert stock_of(db_session, seeded.pomade_id) == 2

    def test_complete_keeps_stock_debited(self, service, seeded, db_session):
        created = book(
            service, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 1)]
        )

        assert service.complete_appointment(created.id).status == "completed"
        assert stock_of(db_session, seeded.pomade_id) == 1

        with pytest.raises(InvalidStateError):
            service.cancel_appointment(created.id)

    def test_no_show_in_extended_set(self, db_session, seeded):
        extended = AppointmentService.from_session(
            db_session, Settings(status_set="extended")
        )
        created = book(
            extended, seeded, at(10), products=[ProductRequestItem(seeded.pomade_id, 1)]
        )

        assert created.status == "pending"
        assert extended.mark_no_show(created.id).status == "no_show"
        assert stock_of(db_session, seeded.pomade_id) == 2


@pytest.mark.integration
@pytest.mark.appointment
class TestQueriesAndSlots:
    def test_upcoming_and_history(self, service, seeded):
        late = book(service, seeded, at(15))
        early = book(service, seeded, at(11))
        morning = book(service, seeded, at(9))
        service.complete_appointment(late.id)

        upcoming = service.list_upcoming(at(10), provider_id=seeded.provider_id)
        history = service.list_history(at(10), provider_id=seeded.provider_id)

        assert [a.id for a in upcoming] == [early.id]
        assert [a.id for a in history] == [late.id, morning.id]

    def test_slots_reflect_bookings(self, service, seeded):
        book(service, seeded, at(10))

        slots = service.get_available_slots(seeded.provider_id, MONDAY, 30, now=NOW)

        assert slots[0].start == at(9)
        assert slots[-1].start == at(16, 30)
        assert len(slots) == 16
        taken = [slot.start for slot in slots if not slot.available]
        assert taken == [at(10)]

    def test_longer_duration_blocks_neighbouring_slots(self, service, seeded):
        book(service, seeded, at(10))

        slots = service.get_available_slots(seeded.provider_id, MONDAY, 60, now=NOW)

        taken = [slot.start for slot in slots if not slot.available]
        assert taken == [at(9, 30), at(10)]
        assert slots[-1].start == at(16)

    def test_no_slots_on_day_off(self, service, seeded):
        assert service.get_available_slots(seeded.provider_id, SATURDAY, now=NOW) == []

    def test_availability_check(self, service, seeded):
        created = book(service, seeded, at(10))

        assert not service.is_provider_available(seeded.provider_id, at(10), at(10, 30))
        assert service.is_provider_available(
            seeded.provider_id, at(10), at(10, 30), created.id
        )
        assert service.is_provider_available(seeded.provider_id, at(10, 30), at(11))
        assert not service.is_provider_available(seeded.provider_id, at(16, 45), at(17, 15))


@pytest.mark.integration
@pytest.mark.inventory
class TestInventoryAdjustments:
    def test_adjustments_persist(self, db_session, seeded):
        inventory = InventoryService.from_session(db_session)

        assert inventory.adjust_stock(seeded.pomade_id, "add", 5).stock_quantity == 7
        assert inventory.adjust_stock(seeded.pomade_id, "subtract", 10).stock_quantity == 0
        assert inventory.adjust_stock(seeded.pomade_id, "set", 4).stock_quantity == 4
        assert stock_of(db_session, seeded.pomade_id) == 4

    def test_unknown_product(self, db_session, seeded):
        with pytest.raises(NotFoundError):
            InventoryService.from_session(db_session).adjust_stock(999, "add", 1)
