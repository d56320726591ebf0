"""
Availability checking for a provider and a candidate interval.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from barber_scheduler.domain.entities import Provider, Shop
from barber_scheduler.domain.interfaces import (
    IAppointmentReader,
    IProviderReader,
    IShopReader,
)
from barber_scheduler.domain.state_machine import StatusPolicy

from . import business_hours

logger = logging.getLogger(__name__)

REASON_PROVIDER_NOT_FOUND = "provider_not_found"
REASON_PROVIDER_INACTIVE = "provider_inactive"
REASON_SHOP_CLOSED = "shop_closed"
REASON_INVALID_INTERVAL = "invalid_interval"
REASON_OUTSIDE_PROVIDER_HOURS = "outside_provider_hours"
REASON_OUTSIDE_SHOP_HOURS = "outside_shop_hours"
REASON_CONFLICT = "conflict"

_MESSAGES = {
    REASON_PROVIDER_NOT_FOUND: "Provider not found",
    REASON_PROVIDER_INACTIVE: "Provider is not accepting bookings",
    REASON_SHOP_CLOSED: "Shop is closed or has no opening hours",
    REASON_INVALID_INTERVAL: "End time must be after start time",
    REASON_OUTSIDE_PROVIDER_HOURS: "Requested time is outside the provider's working hours",
    REASON_OUTSIDE_SHOP_HOURS: "Requested time is outside the shop's opening hours",
    REASON_CONFLICT: "Requested time overlaps an existing booking",
}


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    reason: Optional[str] = None
    conflicting_ids: tuple = ()

    @property
    def message(self) -> str:
        return _MESSAGES.get(self.reason, "Slot available")


AVAILABLE = AvailabilityResult(True)


class AvailabilityService:
    """Decides whether a provider can take a booking for [start, end).

    Fails closed: a missing or inactive provider, or a missing shop, makes
    every interval unavailable.
    """

    def __init__(
        self,
        provider_repo: IProviderReader,
        shop_repo: IShopReader,
        appointment_repo: IAppointmentReader,
        status_policy: StatusPolicy,
    ):
        self.provider_repo = provider_repo
        self.shop_repo = shop_repo
        self.appointment_repo = appointment_repo
        self.status_policy = status_policy

    def is_available(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        return self.check(provider_id, start, end, exclude_appointment_id).available

    def check(
        self,
        provider_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> AvailabilityResult:
        provider = self.provider_repo.get_by_id(provider_id)
        if provider is None:
            return AvailabilityResult(False, REASON_PROVIDER_NOT_FOUND)
        shop = self.shop_repo.get_by_id(provider.shop_id)
        return self.check_for(provider, shop, start, end, exclude_appointment_id)

    def check_for(
        self,
        provider: Provider,
        shop: Optional[Shop],
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> AvailabilityResult:
        """Check an interval for an already-loaded provider and shop."""
        if not provider.is_bookable:
            return AvailabilityResult(False, REASON_PROVIDER_INACTIVE)
        if shop is None or not shop.is_active:
            return AvailabilityResult(False, REASON_SHOP_CLOSED)
        if end <= start:
            return AvailabilityResult(False, REASON_INVALID_INTERVAL)
        if not business_hours.within_provider_hours(provider, start, end):
            return AvailabilityResult(False, REASON_OUTSIDE_PROVIDER_HOURS)
        if not business_hours.within_shop_hours(shop, start, end):
            return AvailabilityResult(False, REASON_OUTSIDE_SHOP_HOURS)

        conflicts = self.appointment_repo.find_overlapping(
            provider.id,
            start,
            end,
            statuses=self.status_policy.active,
            exclude_id=exclude_appointment_id,
        )
        if conflicts:
            logger.debug(
                "Interval conflicts with existing bookings",
                extra={
                    "context": {
                        "provider_id": provider.id,
                        "start": start.isoformat(),
                        "end": end.isoformat(),
                        "conflicting_ids": [a.id for a in conflicts],
                    }
                },
            )
            return AvailabilityResult(
                False, REASON_CONFLICT, tuple(a.id for a in conflicts)
            )
        return AVAILABLE
