from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Literal, get_args

from budget_tracker.errors import ValidationError

ViewType = Literal["all", "daily", "weekly", "monthly"]

VIEW_TYPES: tuple[str, ...] = get_args(ViewType)

# date.weekday() numbering, 0 = Monday.
SUNDAY = 6


@dataclass(frozen=True)
class DateInterval:
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end

    def as_strings(self) -> tuple[str, str]:
        return self.start.isoformat(), self.end.isoformat()


def parse_view_type(value: str | None) -> ViewType:
    normalized = (value or "all").strip().lower()
    if normalized not in VIEW_TYPES:
        raise ValidationError(f"Unknown view '{value}'. Use one of: {', '.join(VIEW_TYPES)}.")
    return normalized  # type: ignore[return-value]


def start_of_week(day: date, week_start: int = SUNDAY) -> date:
    offset = (day.weekday() - week_start) % 7
    return day - timedelta(days=offset)


def week_interval(day: date, week_start: int = SUNDAY) -> DateInterval:
    start = start_of_week(day, week_start)
    return DateInterval(start, start + timedelta(days=6))


def first_of_month(day: date) -> date:
    return day.replace(day=1)


def month_interval(day: date) -> DateInterval:
    last_day = calendar.monthrange(day.year, day.month)[1]
    return DateInterval(day.replace(day=1), day.replace(day=last_day))


def resolve_period(
    view: ViewType,
    reference: date,
    *,
    week_start: int = SUNDAY,
) -> DateInterval | None:
    """Map a view selector and reference date to a closed interval.

    ``all`` is unbounded and returns ``None``.
    """
    if view == "all":
        return None
    if view == "daily":
        return DateInterval(reference, reference)
    if view == "weekly":
        return week_interval(reference, week_start)
    if view == "monthly":
        return month_interval(reference)
    raise ValidationError(f"Unknown view '{view}'.")
