"""Schedule policy resolution."""

from __future__ import annotations

from datetime import date
from typing import Optional

from ...models.domain import WEEKDAYS, SchedulePolicy, ScheduleKind, Weekday


def weekday_label(target_date: date) -> Weekday:
    return WEEKDAYS[target_date.weekday()]


def is_due(policy: Optional[SchedulePolicy], target_date: date) -> bool:
    """Return whether a customer with ``policy`` expects a delivery on ``target_date``.

    Missing policies behave as daily. A custom policy without days is never due.
    Alternate-day policies without a reference date are due every day, which is
    what every existing profile relies on; with a reference date they are due on
    days an even number of days away from it.
    """
    if policy is None or policy.kind is ScheduleKind.DAILY:
        return True
    if policy.kind is ScheduleKind.CUSTOM:
        return weekday_label(target_date) in policy.custom_days
    if policy.kind is ScheduleKind.ALTERNATE:
        if policy.reference_date is None:
            return True
        return (target_date - policy.reference_date).days % 2 == 0
    return False
