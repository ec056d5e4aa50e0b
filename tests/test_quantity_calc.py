from datetime import date, time

import pytest

from tariffario.domain.holidays import HolidayCalendar
from tariffario.domain.models import DailyHours, InvalidScheduleInput, ServiceScheduleDescriptor, UnitaMisura
from tariffario.domain.quantity_calc import (
    HolidayPolicy,
    calculate_quantity,
    compute_quantity,
    count_inspections,
)
from tariffario.domain.schedule import ScheduleValidationError, months_spanned, window_hours


def make_schedule(**kwargs) -> ServiceScheduleDescriptor:
    base = dict(
        service_type="Piantonamento",
        start_date=date(2025, 3, 3),   # lunedì
        end_date=date(2025, 3, 3),
        start_time=time(8, 0),
        end_time=time(16, 0),
        num_agents=1,
    )
    base.update(kwargs)
    return ServiceScheduleDescriptor(**base)


def test_hours_flat_window_days_and_agents():
    schedule = make_schedule(end_date=date(2025, 3, 5), num_agents=2)

    q = compute_quantity(schedule, UnitaMisura.ORA)

    assert q.multiplier == 48.0
    assert q.scheduled_hours == 24.0
    assert q.unita_misura is UnitaMisura.ORA


def test_hours_daily_config_monday_window_tuesday_24h():
    schedule = make_schedule(
        end_date=date(2025, 3, 4),
        daily_hours_config=(
            DailyHours(weekday=0, start_time=time(8, 0), end_time=time(16, 0)),
            DailyHours(weekday=1, is_24h=True),
        ),
    )

    q = compute_quantity(schedule, UnitaMisura.ORA)

    assert q.multiplier == 32.0


def test_missing_weekday_falls_back_to_global_window():
    schedule = make_schedule(
        end_date=date(2025, 3, 4),
        start_time=time(8, 0),
        end_time=time(12, 0),
        daily_hours_config=(DailyHours(weekday=0, is_24h=True),),
    )

    q = compute_quantity(schedule, UnitaMisura.ORA)

    assert q.multiplier == 28.0


def test_disabled_day_gives_zero_hours():
    schedule = make_schedule(
        daily_hours_config=(DailyHours(weekday=0, enabled=False),),
    )

    q = compute_quantity(schedule, UnitaMisura.ORA)

    assert q.multiplier == 0.0


def test_no_window_means_full_day():
    schedule = make_schedule(start_time=None, end_time=None)

    assert compute_quantity(schedule, UnitaMisura.ORA).multiplier == 24.0


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (time(22, 0), time(2, 0), 4.0),
        (time(8, 0), time(16, 30), 8.5),
        (time(9, 0), time(9, 0), 0.0),
        (time(0, 0), time(23, 59), 23 + 59 / 60),
    ],
)
def test_window_hours(start, end, expected):
    assert window_hours(start, end) == pytest.approx(expected)


def test_overnight_window_counted_on_start_day():
    schedule = make_schedule(start_time=time(22, 0), end_time=time(2, 0))

    assert compute_quantity(schedule, UnitaMisura.ORA).multiplier == 4.0


def test_inspections_floor_of_hours_over_cadence():
    schedule = make_schedule(
        service_type="Ispezioni",
        start_time=time(8, 0),
        end_time=time(18, 0),
        cadence_hours=4,
        num_agents=None,
    )

    q = compute_quantity(schedule, UnitaMisura.INTERVENTO)

    assert q.multiplier == 2.0
    assert q.scheduled_hours == 10.0


def test_inspections_at_least_one():
    schedule = make_schedule(
        service_type="Ispezioni",
        start_time=time(8, 0),
        end_time=time(9, 0),
        cadence_hours=4,
    )

    assert compute_quantity(schedule, UnitaMisura.INTERVENTO).multiplier == 1.0


def test_interventions_without_cadence_one_per_scheduled_day():
    schedule = make_schedule(
        service_type="Gestione Chiavi",
        end_date=date(2025, 3, 9),      # lun..dom
        start_time=time(7, 0),
        end_time=time(7, 0),
        num_agents=None,
        daily_hours_config=(DailyHours(weekday=6, enabled=False),),
    )
    calendar = HolidayCalendar([date(2025, 3, 5)])

    included = compute_quantity(schedule, UnitaMisura.INTERVENTO, calendar)
    excluded = compute_quantity(schedule, UnitaMisura.INTERVENTO, calendar, HolidayPolicy.EXCLUDE)

    assert included.multiplier == 6.0
    assert excluded.multiplier == 5.0


def test_interventions_without_cadence_scaled_by_agents():
    schedule = make_schedule(
        service_type="Apertura/Chiusura",
        end_date=date(2025, 3, 4),
        start_time=None,
        end_time=None,
        num_agents=2,
    )

    assert compute_quantity(schedule, UnitaMisura.INTERVENTO).multiplier == 4.0


@pytest.mark.parametrize("cadence", [0, -2, None])
def test_inspections_invalid_cadence(cadence):
    with pytest.raises(ScheduleValidationError) as err:
        count_inspections(10.0, cadence)
    assert err.value.field == "cadence_hours"


def test_inspections_float_noise_does_not_lose_one():
    assert count_inspections(0.7, 0.1) == 7
    assert count_inspections(0.1 + 0.2, 0.1) == 3


@pytest.mark.parametrize(
    "start, end, expected",
    [
        (date(2025, 1, 1), date(2025, 1, 31), 1),
        (date(2025, 1, 15), date(2025, 1, 16), 1),
        (date(2025, 1, 15), date(2025, 3, 2), 3),
        (date(2024, 12, 20), date(2025, 1, 10), 2),
        (date(2024, 1, 1), date(2024, 12, 31), 12),
    ],
)
def test_months_spanned(start, end, expected):
    assert months_spanned(start, end) == expected


def test_monthly_quantity_ignores_hours():
    schedule = make_schedule(
        service_type="Videosorveglianza",
        start_date=date(2025, 1, 15),
        end_date=date(2025, 3, 2),
        start_time=None,
        end_time=None,
        num_agents=None,
    )

    q = compute_quantity(schedule, UnitaMisura.MESE)

    assert q.multiplier == 3.0
    assert q.scheduled_hours is None


def test_start_after_end_is_invalid():
    schedule = make_schedule(start_date=date(2025, 3, 5), end_date=date(2025, 3, 3))

    out = calculate_quantity(schedule, UnitaMisura.ORA, service_id="RS-1")

    assert isinstance(out, InvalidScheduleInput)
    assert out.field == "end_date"
    assert out.service_id == "RS-1"
    assert out.details == ()


@pytest.mark.parametrize("agents", [0, -1])
def test_num_agents_below_one_is_invalid(agents):
    out = calculate_quantity(make_schedule(num_agents=agents), UnitaMisura.ORA)

    assert isinstance(out, InvalidScheduleInput)
    assert out.field == "num_agents"


def test_only_one_time_bound_is_invalid():
    out = calculate_quantity(make_schedule(end_time=None), UnitaMisura.ORA)

    assert isinstance(out, InvalidScheduleInput)
    assert out.field == "end_time"


def test_unknown_unit_is_invalid():
    out = calculate_quantity(make_schedule(), None)

    assert isinstance(out, InvalidScheduleInput)
    assert out.field == "unita_misura"


def test_duplicate_weekday_is_invalid():
    schedule = make_schedule(
        daily_hours_config=(
            DailyHours(weekday=0, is_24h=True),
            DailyHours(weekday=0, enabled=False),
        ),
    )

    out = calculate_quantity(schedule, UnitaMisura.ORA)

    assert isinstance(out, InvalidScheduleInput)
    assert out.field == "daily_hours_config"


def test_holidays_tagged_and_counted_by_default():
    calendar = HolidayCalendar([date(2025, 12, 25)])
    schedule = make_schedule(start_date=date(2025, 12, 24), end_date=date(2025, 12, 26))

    q = compute_quantity(schedule, UnitaMisura.ORA, calendar)

    assert q.multiplier == 24.0
    assert q.holiday_dates == (date(2025, 12, 25),)


def test_holidays_excluded_by_policy():
    calendar = HolidayCalendar([date(2025, 12, 25)])
    schedule = make_schedule(start_date=date(2025, 12, 24), end_date=date(2025, 12, 26))

    q = compute_quantity(schedule, UnitaMisura.ORA, calendar, HolidayPolicy.EXCLUDE)

    assert q.multiplier == 16.0
    assert q.holiday_dates == (date(2025, 12, 25),)


def test_monthly_quantity_tags_holidays_too():
    calendar = HolidayCalendar([date(2025, 1, 1), date(2025, 1, 6)])
    schedule = make_schedule(
        service_type="Videosorveglianza",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 1, 31),
    )

    q = compute_quantity(schedule, UnitaMisura.MESE, calendar)

    assert q.holiday_dates == (date(2025, 1, 1), date(2025, 1, 6))


def test_compute_quantity_is_repeatable():
    schedule = make_schedule(end_date=date(2025, 3, 9), num_agents=3)

    first = compute_quantity(schedule, UnitaMisura.ORA)
    second = compute_quantity(schedule, UnitaMisura.ORA)

    assert first == second
