# Lease window clamping and per-lease spend.
#
# A lease is billed for the part of its life inside the reporting period
# [period_start, period_end):
#   start = max(create_time, period_start)
#   end   = end_time if end_time is set and end_time < period_end
#           else period_end - 1ns
#
# Windows are computed in integer nanoseconds since the Unix epoch because
# datetime stops at microseconds and the open-ended rule needs the last
# nanosecond strictly inside the period.

from datetime import datetime, timezone
from decimal import Decimal
from typing import NamedTuple, Optional

from decimals import SPEND_CONTEXT, ZERO, DecimalContext, from_float

NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_HOUR = 3600 * NANOS_PER_SECOND

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_nanos(dt: datetime) -> int:
    """Nanoseconds since the Unix epoch. Naive datetimes are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    delta = dt - _EPOCH
    return (delta.days * 86400 + delta.seconds) * NANOS_PER_SECOND + delta.microseconds * 1000


class LeaseWindow(NamedTuple):
    """Effective active interval of a lease inside a period, in epoch nanoseconds."""

    start_ns: int
    end_ns: int

    @property
    def is_empty(self) -> bool:
        return self.end_ns <= self.start_ns

    @property
    def duration_ns(self) -> int:
        return 0 if self.is_empty else self.end_ns - self.start_ns

    @property
    def hours(self) -> float:
        # Whole hours plus the fractional remainder, the same float a
        # duration's hour count yields in the lease services.
        whole, rem = divmod(self.duration_ns, NANOS_PER_HOUR)
        return float(whole) + rem / (60 * 60 * 1e9)


def clamp_lease_window(
    create_time: datetime,
    end_time: Optional[datetime],
    period_start: datetime,
    period_end: datetime,
) -> LeaseWindow:
    created = to_nanos(create_time)
    start = to_nanos(period_start)
    stop = to_nanos(period_end)

    window_start = created if created > start else start

    if end_time is not None and to_nanos(end_time) < stop:
        window_end = to_nanos(end_time)
    else:
        window_end = stop - 1

    return LeaseWindow(window_start, window_end)


def lease_spend(
    window: LeaseWindow,
    price_hr: float,
    ctx: DecimalContext = SPEND_CONTEXT,
) -> Decimal:
    """Spend of one lease: hours active in the window x hourly price.

    Both factors go through the exact float conversion, so the product is
    reproducible for identical inputs. Raises ConversionError or
    SpendArithmeticError; an empty window is zero spend.
    """
    if window.is_empty:
        return ZERO
    hours = from_float(window.hours, ctx)
    price = from_float(price_hr, ctx)
    return ctx.multiply(hours, price)
