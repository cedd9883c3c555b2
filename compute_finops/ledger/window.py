"""
Date windowing over a ledger.

Trailing windows anchor on the latest date present in the data rather
than the wall clock, so a synthetic ledger stays reproducible.
"""

from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

from compute_finops.core.errors import InvalidInputError
from .models import UsageRecord


def ledger_bounds(records: Sequence[UsageRecord]) -> Optional[Tuple[str, str]]:
    """Return (earliest, latest) ISO dates, or None for an empty ledger."""
    if not records:
        return None
    dates = [r.date for r in records]
    return min(dates), max(dates)


def records_in_window(
    records: Sequence[UsageRecord],
    last_days: Optional[int] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[UsageRecord]:
    """Filter records to a trailing window or an explicit date range.

    ``last_days`` takes precedence over ``start``/``end``. Explicit bounds
    are clamped into the ledger's own date range.

    Raises:
        InvalidInputError: If last_days is not positive or a bound is not an ISO date
    """
    bounds = ledger_bounds(records)
    if bounds is None:
        return []
    min_iso, max_iso = bounds

    if last_days is not None:
        if last_days <= 0:
            raise InvalidInputError("last_days", last_days, "must be > 0")
        window_end = max_iso
        window_start = (date.fromisoformat(max_iso) - timedelta(days=last_days - 1)).isoformat()
        window_start = max(window_start, min_iso)
    else:
        start = _canonical("start", start)
        end = _canonical("end", end)
        window_start = _clamp(start or min_iso, min_iso, max_iso)
        window_end = _clamp(end or max_iso, window_start, max_iso)

    return [r for r in records if window_start <= r.date <= window_end]


def _canonical(name: str, value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        return date.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        raise InvalidInputError(name, value, "must be an ISO date (YYYY-MM-DD)")


def _clamp(value: str, lower: str, upper: str) -> str:
    if value < lower:
        return lower
    if value > upper:
        return upper
    return value
