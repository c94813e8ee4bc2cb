from __future__ import annotations

from datetime import date, datetime, timedelta

# Days added to the ETA when no pickup date is known, by weekday (Monday = 0).
_ETA_OFFSET_DAYS = {0: 7, 1: 7, 2: 7, 3: 6, 4: 6, 5: 5, 6: 5}


def _as_date(value: date | datetime | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    return value


def calculate_unload_date(
    pickup_date: date | datetime | None,
    eta_date: date | datetime | None,
) -> date | None:
    """
    Planned unload date of a container.

    The day after pickup when the container has been picked up; otherwise the
    ETA pushed to the following week's working window; otherwise unknown.
    """
    pickup = _as_date(pickup_date)
    if pickup is not None:
        return pickup + timedelta(days=1)
    eta = _as_date(eta_date)
    if eta is not None:
        return eta + timedelta(days=_ETA_OFFSET_DAYS[eta.weekday()])
    return None
