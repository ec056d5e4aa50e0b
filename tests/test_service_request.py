from datetime import date, time

import pytest

from tariffario.domain.models import DailyHours
from tariffario.domain.service_request import (
    ServiceRequestDraft,
    ServiceRequestFinal,
    ServiceRequestValidationError,
    parse_daily_hours_config,
    parse_service_request,
)


def final_raw(**overrides):
    raw = {
        "id": "RS-1",
        "status": "Approved",
        "type": "Piantonamento",
        "client_id": "C1",
        "service_point_id": "P1",
        "start_date": "2025-03-03",
        "end_date": "2025-03-05",
        "start_time": "08:00",
        "end_time": "16:00",
        "num_agents": "2",
    }
    raw.update(overrides)
    return raw


def test_pending_request_is_draft_and_may_be_incomplete():
    req = parse_service_request({"status": "Pending", "type": "Piantonamento"})

    assert isinstance(req, ServiceRequestDraft)
    assert req.is_final is False
    assert req.client_id is None


def test_missing_status_defaults_to_draft():
    assert isinstance(parse_service_request({}), ServiceRequestDraft)


def test_approved_request_is_final():
    req = parse_service_request(final_raw())

    assert isinstance(req, ServiceRequestFinal)
    assert req.is_final is True
    assert req.start_date == date(2025, 3, 3)
    assert req.start_time == time(8, 0)
    assert req.num_agents == 2


def test_final_to_cost_details():
    details = parse_service_request(final_raw(fornitore_id="F1")).to_cost_details()

    assert details.service_id == "RS-1"
    assert details.fornitore_id == "F1"
    assert details.service_type == "Piantonamento"
    assert details.schedule.end_date == date(2025, 3, 5)


def test_final_request_collects_all_missing_fields():
    raw = final_raw(client_id="", service_point_id=None, start_date=None)

    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request(raw)

    assert set(err.value.errors) == {"client_id", "service_point_id", "start_date"}
    assert "Richiesta di servizio non valida" in str(err.value)


def test_end_before_start_rejected_even_for_drafts():
    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request({"status": "Pending", "start_date": "2025-03-05", "end_date": "2025-03-01"})

    assert "end_date" in err.value.errors


def test_hourly_final_requires_agents():
    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request(final_raw(num_agents=None))

    assert "num_agents" in err.value.errors


@pytest.mark.parametrize("cadence", ["0.25", "25"])
def test_inspection_cadence_out_of_range(cadence):
    raw = final_raw(type="Ispezioni", num_agents=None, cadence_hours=cadence)

    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request(raw)

    assert "cadence_hours" in err.value.errors


def test_final_inspection_requires_cadence():
    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request(final_raw(type="Ispezioni", num_agents=None, cadence_hours=None))

    assert "obbligatoria" in err.value.errors["cadence_hours"]


def test_key_management_final_without_cadence_accepted():
    request = parse_service_request(
        final_raw(type="Gestione Chiavi", num_agents=None, cadence_hours=None, start_time="07:00", end_time="07:00")
    )

    assert request.to_cost_details().schedule.cadence_hours is None


def test_only_one_time_bound_rejected_on_final():
    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request(final_raw(end_time=None))

    assert "end_time" in err.value.errors


def test_unparseable_values_reported():
    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request({"status": "Pending", "start_date": "ieri", "start_time": "25:99"})

    assert set(err.value.errors) == {"start_date", "start_time"}


def test_unknown_status():
    with pytest.raises(ServiceRequestValidationError) as err:
        parse_service_request({"status": "Archived"})

    assert "status" in err.value.errors


def test_daily_hours_config_list_form():
    cfg = parse_daily_hours_config(
        [
            {"day": "martedì", "is_24h": True},
            {"day": 0, "start_time": "08:00", "end_time": "16:00"},
            {"weekday": "sunday", "enabled": False},
        ]
    )

    assert cfg == (
        DailyHours(weekday=0, start_time=time(8, 0), end_time=time(16, 0)),
        DailyHours(weekday=1, is_24h=True),
        DailyHours(weekday=6, enabled=False),
    )


def test_daily_hours_config_mapping_form():
    cfg = parse_daily_hours_config({"sabato": {"start": "22:00", "end": "02:00", "attivo": "si"}})

    assert cfg == (DailyHours(weekday=5, start_time=time(22, 0), end_time=time(2, 0)),)


@pytest.mark.parametrize("raw", [None, "", [], {}])
def test_daily_hours_config_empty(raw):
    assert parse_daily_hours_config(raw) == ()


@pytest.mark.parametrize("raw", [[{"day": "funday"}], ["lunedi"], 42])
def test_daily_hours_config_invalid(raw):
    with pytest.raises(ValueError):
        parse_daily_hours_config(raw)
