# tariffario/domain/quantity_calc.py

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from tariffario.domain.holidays import HolidayCalendar
from tariffario.domain.models import (
    InvalidScheduleInput,
    ServiceScheduleDescriptor,
    UnitaMisura,
)
from tariffario.domain.schedule import (
    ScheduleValidationError,
    daily_config_by_weekday,
    global_window_hours,
    hours_for_day,
    iter_days,
    months_spanned,
)

logger = logging.getLogger(__name__)


class HolidayPolicy(Enum):
    """
    Як свята впливають на години.

    INCLUDE — свята рахуються як звичайні дні (лише позначаються в результаті);
    EXCLUDE — години у святковий день = 0.
    Різниця в ставці за свята — справа тарифу, не калькулятора.
    """
    INCLUDE = "include"
    EXCLUDE = "exclude"


@dataclass(frozen=True)
class Quantity:
    multiplier: float
    unita_misura: UnitaMisura
    scheduled_hours: Optional[float]
    holiday_dates: Tuple = ()


# ---------------------------------------------------------------------------
# Валідація
# ---------------------------------------------------------------------------

def _validate_common(schedule: ServiceScheduleDescriptor) -> None:
    if schedule.start_date is None or schedule.end_date is None:
        raise ScheduleValidationError("start_date e end_date sono obbligatorie", field="start_date")
    if schedule.start_date > schedule.end_date:
        raise ScheduleValidationError(
            f"start_date {schedule.start_date.isoformat()} è successiva a "
            f"end_date {schedule.end_date.isoformat()}",
            field="end_date",
        )
    if schedule.num_agents is not None and schedule.num_agents < 1:
        raise ScheduleValidationError(
            f"num_agents deve essere almeno 1, ricevuto {schedule.num_agents!r}",
            field="num_agents",
        )


# ---------------------------------------------------------------------------
# Обчислення по одиницях виміру
# ---------------------------------------------------------------------------

def scheduled_hours(
    schedule: ServiceScheduleDescriptor,
    calendar: HolidayCalendar,
    policy: HolidayPolicy = HolidayPolicy.INCLUDE,
) -> Tuple[float, List]:
    """
    Сума запланованих годин по всіх днях [start_date, end_date] (без агентів).

    Повертає (години, список святкових дат у діапазоні).
    """
    by_weekday = daily_config_by_weekday(schedule)
    fallback = global_window_hours(schedule)

    total = 0.0
    holidays = []
    for day in iter_days(schedule.start_date, schedule.end_date):
        is_holiday = calendar.is_holiday(day)
        if is_holiday:
            holidays.append(day)
            if policy is HolidayPolicy.EXCLUDE:
                continue
        total += hours_for_day(day, by_weekday, fallback)

    return total, holidays


def scheduled_days(
    schedule: ServiceScheduleDescriptor,
    calendar: HolidayCalendar,
    policy: HolidayPolicy = HolidayPolicy.INCLUDE,
) -> int:
    """
    Кількість днів з виїздом: дні діапазону, крім вимкнених у daily_hours_config
    і (для EXCLUDE) свят. Години вікна тут не важливі: Gestione Chiavi /
    Apertura/Chiusura зберігають start_time == end_time.
    """
    by_weekday = daily_config_by_weekday(schedule)
    days = 0
    for day in iter_days(schedule.start_date, schedule.end_date):
        if policy is HolidayPolicy.EXCLUDE and calendar.is_holiday(day):
            continue
        entry = by_weekday.get(day.weekday())
        if entry is not None and not entry.enabled:
            continue
        days += 1
    return days


def count_inspections(total_hours: float, cadence_hours: Optional[float]) -> int:
    """
    Кількість ispezioni = floor(години / cadenza), мінімум 1.

    Діапазон на цьому етапі вже непорожній (start_date <= end_date).
    """
    if cadence_hours is None or cadence_hours <= 0:
        raise ScheduleValidationError(
            f"cadence_hours deve essere > 0, ricevuto {cadence_hours!r}",
            field="cadence_hours",
        )
    # float-шум від хвилинних вікон (x.9999999) не повинен з'їдати інспекцію
    return max(1, math.floor(round(total_hours / cadence_hours, 9)))


def compute_quantity(
    schedule: ServiceScheduleDescriptor,
    unita_misura: Optional[UnitaMisura],
    calendar: Optional[HolidayCalendar] = None,
    policy: HolidayPolicy = HolidayPolicy.INCLUDE,
) -> Quantity:
    """
    Множник для тарифу за розкладом сервізу.

    Кроки:
      1) валідація дат / агентів;
      2) за одиницею виміру:
           ORA        → сума годин по днях;
           INTERVENTO → floor(годин / cadenza), мінімум 1;
                        без cadenza → 1 інтервенція на кожен день з виїздом;
           MESE       → кількість календарних місяців (неповний = 1);
      3) масштабування на num_agents, якщо задано.

    Помилки вводу → ScheduleValidationError.
    """
    calendar = calendar or HolidayCalendar()
    _validate_common(schedule)

    if unita_misura is None:
        raise ScheduleValidationError("unità di misura non supportata", field="unita_misura")

    holidays = calendar.holidays_between(schedule.start_date, schedule.end_date)
    hours: Optional[float] = None

    if unita_misura is UnitaMisura.ORA:
        hours, holidays = scheduled_hours(schedule, calendar, policy)
        base = hours
    elif unita_misura is UnitaMisura.INTERVENTO:
        hours, holidays = scheduled_hours(schedule, calendar, policy)
        if schedule.cadence_hours is None:
            base = float(scheduled_days(schedule, calendar, policy))
        else:
            base = float(count_inspections(hours, schedule.cadence_hours))
    elif unita_misura is UnitaMisura.MESE:
        base = float(months_spanned(schedule.start_date, schedule.end_date))
    else:
        raise ScheduleValidationError(f"unità di misura non gestita: {unita_misura!r}", field="unita_misura")

    agents = schedule.num_agents if schedule.num_agents is not None else 1
    multiplier = base * agents

    logger.debug(
        "[CALC] %s %s..%s unita=%s hours=%s agents=%d → multiplier=%.4f (festivi=%d)",
        schedule.service_type,
        schedule.start_date,
        schedule.end_date,
        unita_misura.value,
        hours,
        agents,
        multiplier,
        len(holidays),
    )

    return Quantity(
        multiplier=multiplier,
        unita_misura=unita_misura,
        scheduled_hours=hours,
        holiday_dates=tuple(holidays),
    )


def calculate_quantity(
    schedule: ServiceScheduleDescriptor,
    unita_misura: Optional[UnitaMisura],
    calendar: Optional[HolidayCalendar] = None,
    policy: HolidayPolicy = HolidayPolicy.INCLUDE,
    service_id: Optional[str] = None,
) -> Union[Quantity, InvalidScheduleInput]:
    """Те саме, що compute_quantity, але помилка вводу повертається як варіант результату."""
    try:
        return compute_quantity(schedule, unita_misura, calendar, policy)
    except ScheduleValidationError as exc:
        logger.warning(
            "[CALC] Некоректний розклад service_id=%s tipo=%r: %s",
            service_id,
            schedule.service_type,
            exc,
        )
        return InvalidScheduleInput(reason=str(exc), field=exc.field, service_id=service_id)
