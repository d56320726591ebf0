"""
Unit tests for AppointmentService status changes and queries.
"""

from decimal import Decimal

import pytest

from barber_scheduler.core.config import Settings
from barber_scheduler.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from barber_scheduler.domain.entities import AppointmentProductLine
from barber_scheduler.domain.state_machine import EXTENDED_POLICY, STANDARD_POLICY
from tests.factories.repository_factories import at, make_appointment
from tests.fixtures.service_fixtures import build_appointment_service


def with_products(**overrides):
    return make_appointment(
        id=5,
        products=[
            AppointmentProductLine(11, 2, Decimal("15.00")),
            AppointmentProductLine(10, 1, Decimal("20.00")),
        ],
        **overrides,
    )


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestCancellation:
    def test_cancel_credits_every_product_line(self):
        h = build_appointment_service(existing=[with_products()])

        result = h.service.cancel_appointment(5, "Client is sick")

        assert result.status == "cancelled"
        assert [c.args for c in h.product_repo.increase_stock.call_args_list] == [
            (10, 1),
            (11, 2),
        ]
        h.session.commit.assert_called_once()

    def test_cancel_appends_reason_to_notes(self):
        h = build_appointment_service(existing=[with_products(notes="Regular client")])

        result = h.service.cancel_appointment(5, "Client is sick")

        assert result.notes == "Regular client\nCancelled: Client is sick"

    def test_cancel_without_reason_leaves_notes(self):
        h = build_appointment_service(existing=[with_products(notes="Regular client")])

        result = h.service.cancel_appointment(5)

        assert result.notes == "Regular client"

    def test_cancel_twice_fails_and_credits_once(self):
        h = build_appointment_service(existing=[with_products()])

        h.service.cancel_appointment(5)
        with pytest.raises(InvalidStateError):
            h.service.cancel_appointment(5)

        assert h.product_repo.increase_stock.call_count == 2  # two lines, one cancel

    def test_cancel_completed_fails(self):
        h = build_appointment_service(existing=[with_products(status="completed")])

        with pytest.raises(InvalidStateError):
            h.service.cancel_appointment(5)

        h.product_repo.increase_stock.assert_not_called()

    def test_reason_length_is_limited(self):
        h = build_appointment_service(existing=[with_products()])

        with pytest.raises(ValidationError):
            h.service.cancel_appointment(5, "x" * 256)

    def test_reason_must_be_text(self):
        h = build_appointment_service(existing=[with_products()])

        with pytest.raises(ValidationError) as exc_info:
            h.service.cancel_appointment(5, 12345)

        assert exc_info.value.field == "reason"
        h.product_repo.increase_stock.assert_not_called()

    def test_cancel_unknown(self):
        h = build_appointment_service()

        with pytest.raises(NotFoundError):
            h.service.cancel_appointment(999)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestCompletionAndConfirmation:
    def test_complete_does_not_touch_stock(self):
        h = build_appointment_service(existing=[with_products()])

        result = h.service.complete_appointment(5)

        assert result.status == "completed"
        h.product_repo.increase_stock.assert_not_called()
        h.product_repo.decrease_stock.assert_not_called()

    def test_complete_twice_fails(self):
        h = build_appointment_service(existing=[with_products()])

        h.service.complete_appointment(5)
        with pytest.raises(InvalidStateError):
            h.service.complete_appointment(5)

    def test_complete_cancelled_fails(self):
        h = build_appointment_service(existing=[with_products(status="cancelled")])

        with pytest.raises(InvalidStateError):
            h.service.complete_appointment(5)

    def test_confirm_then_complete(self):
        h = build_appointment_service(existing=[with_products()])

        assert h.service.confirm_appointment(5).status == "confirmed"
        assert h.service.complete_appointment(5).status == "completed"

    def test_confirm_twice_fails(self):
        h = build_appointment_service(existing=[with_products()])

        h.service.confirm_appointment(5)
        with pytest.raises(InvalidStateError):
            h.service.confirm_appointment(5)

    def test_status_change_locks_the_appointment(self):
        h = build_appointment_service(existing=[with_products()])

        h.service.confirm_appointment(5)

        h.appointment_repo.get_by_id.assert_called_once_with(5, lock=True)


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestNoShow:
    def test_not_available_in_standard_set(self):
        h = build_appointment_service(existing=[with_products()])

        with pytest.raises(InvalidStateError):
            h.service.mark_no_show(5)

        h.appointment_repo.get_by_id.assert_not_called()

    def test_no_show_releases_stock_in_extended_set(self):
        h = build_appointment_service(
            existing=[with_products(status="pending")],
            settings=Settings(status_set="extended"),
        )

        result = h.service.mark_no_show(5)

        assert result.status == "no_show"
        assert h.product_repo.increase_stock.call_count == 2


@pytest.mark.unit
@pytest.mark.services
@pytest.mark.appointment
class TestQueries:
    def test_get_appointment(self):
        h = build_appointment_service(existing=[with_products()])

        assert h.service.get_appointment(5).id == 5

    def test_get_missing_appointment(self):
        h = build_appointment_service()

        with pytest.raises(NotFoundError):
            h.service.get_appointment(1)

    def test_list_upcoming_passes_open_statuses(self):
        h = build_appointment_service()

        h.service.list_upcoming(at(8), provider_id=1)

        h.appointment_repo.list_upcoming.assert_called_once_with(
            at(8),
            frozenset({"scheduled", "confirmed"}),
            provider_id=1,
            client_id=None,
            shop_id=None,
        )

    def test_list_history_passes_terminal_statuses(self):
        h = build_appointment_service(settings=Settings(status_set="extended"))

        h.service.list_history(at(8), client_id=3)

        h.appointment_repo.list_history.assert_called_once_with(
            at(8),
            EXTENDED_POLICY.terminal,
            provider_id=None,
            client_id=3,
            shop_id=None,
        )

    def test_is_provider_available_delegates(self):
        h = build_appointment_service(existing=[make_appointment(start=at(10))])

        assert h.service.is_provider_available(1, at(10, 30), at(11)) is True
        assert h.service.is_provider_available(1, at(10), at(10, 30)) is False
        assert h.service.is_provider_available(1, at(10), at(10, 30), 5) is True

    def test_policy_follows_settings(self):
        assert build_appointment_service().service.policy is STANDARD_POLICY
