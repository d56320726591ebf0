"""
Integration tests for the SQLAlchemy repositories against SQLite.
"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from barber_scheduler.core.exceptions import (
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from barber_scheduler.db.base import Barber, Product as ProductModel, Service as ServiceModel
from barber_scheduler.domain.entities import (
    Appointment,
    AppointmentProductLine,
    AppointmentServiceLine,
)
from barber_scheduler.repositories.appointment_repo import AppointmentRepository
from barber_scheduler.repositories.catalog_repo import ServiceCatalogRepository
from barber_scheduler.repositories.product_repository import ProductRepository
from barber_scheduler.repositories.provider_repo import ProviderRepository
from tests.factories.repository_factories import at


def add_appointment(session, seeded, start, minutes=30, status="scheduled", provider_id=None):
    repo = AppointmentRepository(session)
    created = repo.create(
        Appointment(
            shop_id=seeded.shop_id,
            provider_id=provider_id or seeded.provider_id,
            client_id=seeded.client_id,
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            total_price=Decimal("35.00"),
            total_duration=minutes,
            status=status,
            services=[AppointmentServiceLine(seeded.haircut_id, Decimal("35.00"), minutes)],
        )
    )
    session.commit()
    return created


@pytest.mark.integration
@pytest.mark.repositories
class TestProviderRepository:
    def test_decodes_working_days(self, db_session, seeded):
        provider = ProviderRepository(db_session).get_by_id(seeded.provider_id)

        assert provider.working_days.to_list() == [1, 2, 3, 4, 5]
        assert provider.shop_id == seeded.shop_id

    def test_soft_deleted_provider_is_invisible(self, db_session, seeded):
        db_session.get(Barber, seeded.provider_id).deleted_at = datetime(2030, 1, 1)
        db_session.commit()

        assert ProviderRepository(db_session).get_by_id(seeded.provider_id) is None

    def test_malformed_working_days_rejected_at_load(self, db_session, seeded):
        db_session.get(Barber, seeded.provider_id).working_days = [0, 9]
        db_session.commit()

        with pytest.raises(ValidationError):
            ProviderRepository(db_session).get_by_id(seeded.provider_id)


@pytest.mark.integration
@pytest.mark.repositories
class TestServiceCatalogRepository:
    def test_inactive_service_is_not_returned(self, db_session, seeded):
        db_session.get(ServiceModel, seeded.beard_id).is_active = False
        db_session.commit()

        repo = ServiceCatalogRepository(db_session)

        assert repo.get_active_by_id(seeded.haircut_id).duration_minutes == 30
        assert repo.get_active_by_id(seeded.beard_id) is None

    def test_price_above_cap_is_rejected(self, db_session, seeded):
        repo = ServiceCatalogRepository(db_session, price_cap=Decimal("30.00"))

        with pytest.raises(ValidationError):
            repo.get_active_by_id(seeded.haircut_id)


@pytest.mark.integration
@pytest.mark.repositories
@pytest.mark.inventory
class TestProductRepository:
    def test_active_in_stock_filters(self, db_session, seeded):
        db_session.get(ProductModel, seeded.pomade_id).stock_quantity = 0
        db_session.get(ProductModel, seeded.shampoo_id).is_active = False
        db_session.commit()

        repo = ProductRepository(db_session)

        assert repo.get_active_in_stock(seeded.pomade_id) is None
        assert repo.get_active_in_stock(seeded.shampoo_id) is None
        assert repo.get_by_id(seeded.pomade_id).stock_quantity == 0

    def test_decrease_never_goes_negative(self, db_session, seeded):
        repo = ProductRepository(db_session)

        with pytest.raises(InsufficientStockError):
            repo.decrease_stock(seeded.pomade_id, 3)

        assert repo.decrease_stock(seeded.pomade_id, 2).stock_quantity == 0

    def test_increase_and_set(self, db_session, seeded):
        repo = ProductRepository(db_session)

        assert repo.increase_stock(seeded.pomade_id, 3).stock_quantity == 5
        assert repo.set_stock(seeded.pomade_id, 7).stock_quantity == 7

    def test_unknown_product(self, db_session, seeded):
        with pytest.raises(NotFoundError):
            ProductRepository(db_session).increase_stock(999, 1)

    def test_missing_min_stock_uses_configured_threshold(self, db_session, seeded):
        db_session.get(ProductModel, seeded.pomade_id).min_stock = None
        db_session.commit()

        product = ProductRepository(db_session, default_min_stock=3).get_by_id(
            seeded.pomade_id
        )

        assert product.min_stock == 3
        assert product.stock_status == "low_stock"


@pytest.mark.integration
@pytest.mark.repositories
@pytest.mark.appointment
class TestAppointmentRepository:
    def test_create_persists_lines_and_relations(self, db_session, seeded):
        repo = AppointmentRepository(db_session)
        created = repo.create(
            Appointment(
                shop_id=seeded.shop_id,
                provider_id=seeded.provider_id,
                client_id=seeded.client_id,
                start_time=at(14),
                end_time=at(15, 15),
                total_price=Decimal("80.00"),
                total_duration=75,
                services=[
                    AppointmentServiceLine(seeded.haircut_id, Decimal("35.00"), 30),
                    AppointmentServiceLine(seeded.beard_id, Decimal("25.00"), 45),
                ],
                products=[AppointmentProductLine(seeded.pomade_id, 1, Decimal("20.00"))],
            )
        )
        db_session.commit()

        loaded = repo.get_by_id(created.id)

        assert [s.name for s in loaded.services] == ["Haircut", "Beard Trim"]
        assert loaded.products[0].name == "Matte Pomade"
        assert loaded.provider.name == "Rafa"
        assert loaded.client.name == "Ana Souza"
        assert loaded.shop.name == "Downtown Cuts"
        assert loaded.total_price == Decimal("80.00")

    def test_overlap_is_half_open(self, db_session, seeded):
        add_appointment(db_session, seeded, at(10))
        repo = AppointmentRepository(db_session)
        active = {"scheduled", "confirmed", "completed"}

        assert repo.find_overlapping(seeded.provider_id, at(10, 30), at(11), active) == []
        assert repo.find_overlapping(seeded.provider_id, at(9, 30), at(10), active) == []
        assert len(repo.find_overlapping(seeded.provider_id, at(10, 29), at(11), active)) == 1
        assert len(repo.find_overlapping(seeded.provider_id, at(9), at(12), active)) == 1

    def test_overlap_filters_status_provider_and_exclusion(self, db_session, seeded):
        cancelled = add_appointment(db_session, seeded, at(10), status="cancelled")
        own = add_appointment(db_session, seeded, at(11))
        add_appointment(db_session, seeded, at(12), provider_id=seeded.other_provider_id)
        repo = AppointmentRepository(db_session)
        active = {"scheduled", "confirmed", "completed"}

        assert repo.find_overlapping(seeded.provider_id, at(10), at(10, 30), active) == []
        assert (
            repo.find_overlapping(seeded.provider_id, at(11), at(11, 30), active, own.id)
            == []
        )
        assert repo.find_overlapping(seeded.provider_id, at(12), at(12, 30), active) == []
        assert cancelled.status == "cancelled"

    def test_update_replaces_lines(self, db_session, seeded):
        created = add_appointment(db_session, seeded, at(10))
        repo = AppointmentRepository(db_session)

        created.services = [AppointmentServiceLine(seeded.haircut_id, Decimal("35.00"), 30)]
        created.products = [AppointmentProductLine(seeded.shampoo_id, 2, Decimal("15.00"))]
        repo.update(created, replace_lines=True)
        db_session.commit()

        loaded = repo.get_by_id(created.id)
        assert [s.service_id for s in loaded.services] == [seeded.haircut_id]
        assert [(p.product_id, p.quantity) for p in loaded.products] == [
            (seeded.shampoo_id, 2)
        ]

    def test_upcoming_and_history_ordering(self, db_session, seeded):
        late = add_appointment(db_session, seeded, at(15))
        early = add_appointment(db_session, seeded, at(13))
        past = add_appointment(db_session, seeded, at(9))
        done = add_appointment(db_session, seeded, at(16), status="completed")
        repo = AppointmentRepository(db_session)

        upcoming = repo.list_upcoming(at(12), {"scheduled", "confirmed"})
        history = repo.list_history(at(12), {"completed", "cancelled"})

        assert [a.id for a in upcoming] == [early.id, late.id]
        assert [a.id for a in history] == [done.id, past.id]
