"""
Bookable slot generation for a provider on a given date.
"""

import time
from datetime import date, datetime, timedelta
from typing import List, Optional

from barber_scheduler.core.exceptions import NotFoundError, ValidationError
from barber_scheduler.core.logging_config import log_performance
from barber_scheduler.domain.entities import MAX_SERVICE_DURATION_MINUTES, TimeSlot
from barber_scheduler.domain.interfaces import IProviderReader, IShopReader

from . import business_hours
from .availability_service import AvailabilityService


class SlotGenerator:
    """Walks the day's open interval in fixed steps.

    The result depends only on the provider, the date, the stored bookings
    and the arguments; nothing is cached between calls.
    """

    def __init__(
        self,
        provider_repo: IProviderReader,
        shop_repo: IShopReader,
        availability: AvailabilityService,
        step_minutes: int = 30,
    ):
        self.provider_repo = provider_repo
        self.shop_repo = shop_repo
        self.availability = availability
        self.step_minutes = step_minutes

    def generate_slots(
        self,
        provider_id: int,
        day: date,
        duration_minutes: Optional[int] = None,
        step_minutes: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[TimeSlot]:
        """Return ordered slots for ``day``.

        Args:
            provider_id: Provider to generate slots for
            day: Calendar date
            duration_minutes: Slot length (e.g. the total of the requested
                services); defaults to the step
            step_minutes: Distance between slot starts; defaults to the
                configured step
            now: Reference instant; slots starting before it are unavailable

        Raises:
            NotFoundError: provider does not exist
            ValidationError: step or duration out of range
        """
        started = time.perf_counter()
        step = step_minutes or self.step_minutes
        length = duration_minutes or step
        if not 1 <= step <= 240:
            raise ValidationError("Slot step must be between 1 and 240 minutes", field="step")
        if not 1 <= length <= MAX_SERVICE_DURATION_MINUTES:
            raise ValidationError(
                f"Slot duration must be between 1 and {MAX_SERVICE_DURATION_MINUTES} minutes",
                field="duration",
            )

        provider = self.provider_repo.get_by_id(provider_id)
        if provider is None:
            raise NotFoundError.for_entity("Provider", provider_id)
        shop = self.shop_repo.get_by_id(provider.shop_id)
        if shop is None:
            return []

        window = business_hours.open_interval(day, shop, provider)
        if window is None:
            return []

        slots: List[TimeSlot] = []
        step_delta = timedelta(minutes=step)
        length_delta = timedelta(minutes=length)
        current = window.start
        while current + length_delta <= window.end:
            slot_end = current + length_delta
            if now is not None and current < now:
                available = False
            else:
                available = self.availability.check_for(
                    provider, shop, current, slot_end
                ).available
            slots.append(TimeSlot(start=current, end=slot_end, available=available))
            current += step_delta

        log_performance(
            "generate_slots",
            (time.perf_counter() - started) * 1000,
            provider_id=provider_id,
            day=day.isoformat(),
            slot_count=len(slots),
        )
        return slots
