# tariffario/domain/schedule.py

"""
Дати та години для розкладу сервізу.

Політика "через північ": вікно 22:00–02:00 рахується як 4 години, що
тягнуться на наступну добу, і зараховуються дню, в який вікно ПОЧИНАЄТЬСЯ.
Вікно з однаковими start/end має нульову довжину (0 годин), для цілодобового
режиму є окремий прапор is_24h.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, Iterator, Optional

from tariffario.domain.models import DailyHours, ServiceScheduleDescriptor


HOURS_PER_DAY = 24.0


class ScheduleValidationError(Exception):
    """
    Некоректний розклад, з якого не можна порахувати множник.

    Наприклад:
    - start_date > end_date;
    - cadence_hours <= 0;
    - задано лише одну межу вікна годин.
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


def iter_days(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def window_hours(start_time: time, end_time: time) -> float:
    """Тривалість вікна в годинах (дробова, без округлення)."""
    anchor = date(2000, 1, 3)
    start_dt = datetime.combine(anchor, start_time)
    end_dt = datetime.combine(anchor, end_time)
    if end_dt < start_dt:
        end_dt += timedelta(days=1)
    return (end_dt - start_dt).total_seconds() / 3600.0


def months_spanned(start: date, end: date) -> int:
    """Кількість календарних місяців, яких торкається [start, end]; неповний місяць = 1."""
    if start > end:
        raise ScheduleValidationError(
            f"start_date {start.isoformat()} è successiva a end_date {end.isoformat()}",
            field="end_date",
        )
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def daily_config_by_weekday(schedule: ServiceScheduleDescriptor) -> Dict[int, DailyHours]:
    out: Dict[int, DailyHours] = {}
    for entry in schedule.daily_hours_config:
        if entry.weekday < 0 or entry.weekday > 6:
            raise ScheduleValidationError(
                f"weekday fuori range (0..6): {entry.weekday!r}",
                field="daily_hours_config",
            )
        if entry.weekday in out:
            raise ScheduleValidationError(
                f"weekday duplicato in daily_hours_config: {entry.weekday}",
                field="daily_hours_config",
            )
        if entry.enabled and not entry.is_24h and (entry.start_time is None or entry.end_time is None):
            raise ScheduleValidationError(
                f"orario incompleto per weekday {entry.weekday}",
                field="daily_hours_config",
            )
        out[entry.weekday] = entry
    return out


def global_window_hours(schedule: ServiceScheduleDescriptor) -> float:
    """Глобальне вікно start_time/end_time; без обох меж — цілодобово."""
    if schedule.start_time is None and schedule.end_time is None:
        return HOURS_PER_DAY
    if schedule.start_time is None or schedule.end_time is None:
        raise ScheduleValidationError(
            "start_time e end_time vanno indicati insieme",
            field="start_time" if schedule.start_time is None else "end_time",
        )
    return window_hours(schedule.start_time, schedule.end_time)


def hours_for_day(
    day: date,
    by_weekday: Dict[int, DailyHours],
    fallback_hours: float,
) -> float:
    """
    Години для конкретної дати.

    Є запис для дня тижня → беремо його (24h / вимкнено / start-end).
    Нема запису → глобальне вікно, а не нуль.
    """
    entry = by_weekday.get(day.weekday())
    if entry is None:
        return fallback_hours
    if not entry.enabled:
        return 0.0
    if entry.is_24h:
        return HOURS_PER_DAY
    return window_hours(entry.start_time, entry.end_time)
