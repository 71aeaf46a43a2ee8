"""Period resolution: wall-clock instant -> market period -> market id.

A period is identified by a civil date in the reference zone. With a cutover
time configured (e.g. 15:30 Europe/Rome) a period runs from cutover to
cutover: instants before the cutover still belong to the previous date's
period. All arithmetic is done on civil dates via zoneinfo, so DST
transitions never shift or double-count a period.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

_DATE_LEN = len("YYYY-MM-DD")


def period_id_for(
    instant: datetime, reference_zone: ZoneInfo, cutover: time | None = None
) -> date:
    """Return the period (civil date) that `instant` belongs to."""
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError("instant must be timezone-aware")
    local = instant.astimezone(reference_zone)
    if cutover is not None and local.time() < cutover.replace(tzinfo=None):
        return local.date() - timedelta(days=1)
    return local.date()


def previous_period(period: date) -> date:
    return period - timedelta(days=1)


def market_id_for(underlying: str, period: date) -> str:
    """TSLA + 2025-11-14 -> 'TSLA-2025-11-14'."""
    return f"{underlying}-{period.isoformat()}"


def parse_market_id(market_id: str) -> tuple[str, date]:
    """Inverse of market_id_for. Raises ValueError on malformed ids."""
    underlying = market_id[: -_DATE_LEN - 1]
    separator = market_id[-_DATE_LEN - 1 : -_DATE_LEN]
    if not underlying or separator != "-":
        raise ValueError(f"Malformed market id: {market_id!r}")
    try:
        period = date.fromisoformat(market_id[-_DATE_LEN:])
    except ValueError:
        raise ValueError(f"Malformed market id: {market_id!r}") from None
    return underlying, period


def period_bounds(
    period: date, reference_zone: ZoneInfo, cutover: time | None = None
) -> tuple[datetime, datetime]:
    """UTC [start, end) of a period."""
    boundary = (cutover or time(0)).replace(tzinfo=None)
    start = datetime.combine(period, boundary, tzinfo=reference_zone)
    end = datetime.combine(period + timedelta(days=1), boundary, tzinfo=reference_zone)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


@dataclass(frozen=True)
class MarketCalendar:
    """Period policy for the single underlying this service runs."""

    underlying: str
    zone: ZoneInfo
    cutover: time | None = None

    def current_period(self, now: datetime) -> date:
        return period_id_for(now, self.zone, self.cutover)

    def market_id(self, period: date) -> str:
        return market_id_for(self.underlying, period)

    def current_market_id(self, now: datetime) -> str:
        return self.market_id(self.current_period(now))

    def bounds(self, period: date) -> tuple[datetime, datetime]:
        return period_bounds(period, self.zone, self.cutover)
