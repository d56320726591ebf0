"""
Business-hours calculations.

Times of day are anchored to the candidate date. The provider's window and
the shop's window are kept as two separate predicates so a booking must pass
both; ``open_interval`` is their intersection for slot generation.
"""

from datetime import date, datetime, time, tzinfo
from typing import Optional

from barber_scheduler.core.exceptions import ValidationError
from barber_scheduler.domain.entities import OpenInterval, Provider, Shop


def normalize_datetime(value: datetime, tz: tzinfo) -> datetime:
    """Return a naive wall-clock datetime in the application time zone.

    Aware values are converted to ``tz``; naive values are assumed to
    already be local. Seconds and microseconds are kept.
    """
    if not isinstance(value, datetime):
        raise ValidationError(f"Expected a datetime, got {value!r}", field="start_time")
    if value.tzinfo is not None:
        return value.astimezone(tz).replace(tzinfo=None)
    return value


def _anchor(day: date, moment: time) -> datetime:
    return datetime.combine(day, moment.replace(tzinfo=None))


def provider_interval(day: date, provider: Provider) -> Optional[OpenInterval]:
    """Provider's working window on ``day``, or None when not working."""
    if not provider.has_hours or not provider.working_days.includes(day):
        return None
    return OpenInterval(_anchor(day, provider.start_time), _anchor(day, provider.end_time))


def shop_interval(day: date, shop: Shop) -> Optional[OpenInterval]:
    """Shop's opening window on ``day``, or None when hours are unset."""
    if not shop.has_hours:
        return None
    return OpenInterval(_anchor(day, shop.opening_time), _anchor(day, shop.closing_time))


def open_interval(day: date, shop: Shop, provider: Provider) -> Optional[OpenInterval]:
    """Intersection of the shop's and the provider's windows, or None if closed."""
    provider_window = provider_interval(day, provider)
    shop_window = shop_interval(day, shop)
    if provider_window is None or shop_window is None:
        return None

    start = max(provider_window.start, shop_window.start)
    end = min(provider_window.end, shop_window.end)
    if start >= end:
        return None
    return OpenInterval(start, end)


def within_provider_hours(provider: Provider, start: datetime, end: datetime) -> bool:
    window = provider_interval(start.date(), provider)
    return window is not None and window.contains(start, end)


def within_shop_hours(shop: Shop, start: datetime, end: datetime) -> bool:
    window = shop_interval(start.date(), shop)
    return window is not None and window.contains(start, end)
