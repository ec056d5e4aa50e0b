# tariffario/domain/service_request.py

"""
Дві явні форми заявки на сервіз (richiesta di servizio).

- ServiceRequestDraft: "Pending"/"Rejected" — майже все необов'язкове,
  форму можна зберегти недозаповненою.
- ServiceRequestFinal: "Approved"/"Completed" — всі поля, потрібні для
  розрахунку вартості, обов'язкові та перевірені.

Тип визначається полем status (tagged union), без розгалужень по коду.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from typing import Any, Dict, List, Optional, Tuple, Union

from tariffario.domain.models import (
    DailyHours,
    ServiceCostDetails,
    ServiceScheduleDescriptor,
    UnitaMisura,
)
from tariffario.domain.service_types import ISPEZIONI, normalize_service_type, unita_misura_for_service
from tariffario.utils.parse_utils import (
    clean_str,
    parse_date,
    parse_time,
    safe_float,
    safe_int,
    to_bool_or_none,
)


DRAFT_STATUSES = {"Pending", "Rejected"}
FINAL_STATUSES = {"Approved", "Completed"}

MIN_CADENCE_HOURS = 0.5
MAX_CADENCE_HOURS = 24.0

WEEKDAY_NAMES = {
    "lunedi": 0, "lunedì": 0, "lun": 0, "mon": 0, "monday": 0,
    "martedi": 1, "martedì": 1, "mar": 1, "tue": 1, "tuesday": 1,
    "mercoledi": 2, "mercoledì": 2, "mer": 2, "wed": 2, "wednesday": 2,
    "giovedi": 3, "giovedì": 3, "gio": 3, "thu": 3, "thursday": 3,
    "venerdi": 4, "venerdì": 4, "ven": 4, "fri": 4, "friday": 4,
    "sabato": 5, "sab": 5, "sat": 5, "saturday": 5,
    "domenica": 6, "dom": 6, "sun": 6, "sunday": 6,
}


class ServiceRequestValidationError(ValueError):
    """Заявка не відповідає своїй формі; errors — словник поле → повідомлення."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        summary = "; ".join(f"{k}: {v}" for k, v in sorted(self.errors.items()))
        super().__init__(f"Richiesta di servizio non valida: {summary}")


@dataclass(frozen=True)
class ServiceRequestDraft:
    status: str
    service_type: Optional[str] = None
    client_id: Optional[str] = None
    service_point_id: Optional[str] = None
    fornitore_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    num_agents: Optional[int] = None
    cadence_hours: Optional[float] = None
    daily_hours_config: Tuple[DailyHours, ...] = ()
    inspection_type: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None

    is_final = False


@dataclass(frozen=True)
class ServiceRequestFinal:
    status: str
    service_type: str
    client_id: str
    service_point_id: str
    start_date: date
    end_date: date
    fornitore_id: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    num_agents: Optional[int] = None
    cadence_hours: Optional[float] = None
    daily_hours_config: Tuple[DailyHours, ...] = ()
    inspection_type: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[str] = None

    is_final = True

    def to_cost_details(self) -> ServiceCostDetails:
        return ServiceCostDetails(
            service_id=self.id,
            client_id=self.client_id,
            service_point_id=self.service_point_id,
            fornitore_id=self.fornitore_id,
            schedule=ServiceScheduleDescriptor(
                service_type=self.service_type,
                start_date=self.start_date,
                end_date=self.end_date,
                start_time=self.start_time,
                end_time=self.end_time,
                num_agents=self.num_agents,
                cadence_hours=self.cadence_hours,
                daily_hours_config=self.daily_hours_config,
                inspection_type=self.inspection_type,
            ),
        )


ServiceRequest = Union[ServiceRequestDraft, ServiceRequestFinal]


# ---------------------------------------------------------------------------
# daily_hours_config (jsonb) → DailyHours
# ---------------------------------------------------------------------------

def _parse_weekday(raw: Any) -> Optional[int]:
    n = safe_int(raw)
    if n is not None:
        return n if 0 <= n <= 6 else None
    s = clean_str(raw)
    if not s:
        return None
    return WEEKDAY_NAMES.get(s.lower())


def parse_daily_hours_config(raw: Any) -> Tuple[DailyHours, ...]:
    """
    Приймає або список [{day, start_time, end_time, is_24h, enabled}],
    або словник {"lunedi": {...}, ...}. Порожнє / None → ().

    Некоректні записи → ValueError з описом.
    """
    if raw is None or raw == "" or raw == [] or raw == {}:
        return ()

    items: List[Tuple[Any, Dict[str, Any]]] = []
    if isinstance(raw, dict):
        for day, cfg in raw.items():
            items.append((day, cfg if isinstance(cfg, dict) else {}))
    elif isinstance(raw, (list, tuple)):
        for cfg in raw:
            if not isinstance(cfg, dict):
                raise ValueError(f"voce daily_hours_config non valida: {cfg!r}")
            items.append((cfg.get("day", cfg.get("weekday")), cfg))
    else:
        raise ValueError(f"daily_hours_config non valido: {raw!r}")

    out: List[DailyHours] = []
    for day_raw, cfg in items:
        weekday = _parse_weekday(day_raw)
        if weekday is None:
            raise ValueError(f"giorno non riconosciuto in daily_hours_config: {day_raw!r}")

        is_24h = bool(to_bool_or_none(cfg.get("is_24h", cfg.get("h24"))))
        enabled = to_bool_or_none(cfg.get("enabled", cfg.get("attivo")))
        start = parse_time(cfg.get("start_time", cfg.get("start")))
        end = parse_time(cfg.get("end_time", cfg.get("end")))

        out.append(
            DailyHours(
                weekday=weekday,
                start_time=start,
                end_time=end,
                is_24h=is_24h,
                enabled=True if enabled is None else enabled,
            )
        )
    return tuple(sorted(out, key=lambda d: d.weekday))


# ---------------------------------------------------------------------------
# Парсинг + валідація
# ---------------------------------------------------------------------------

def _collect_common(raw: Dict[str, Any], errors: Dict[str, str]) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": clean_str(raw.get("id")),
        "service_type": normalize_service_type(raw.get("type") or raw.get("service_type")) or None,
        "client_id": clean_str(raw.get("client_id")),
        "service_point_id": clean_str(raw.get("service_point_id")),
        "fornitore_id": clean_str(raw.get("fornitore_id")),
        "start_date": parse_date(raw.get("start_date")),
        "end_date": parse_date(raw.get("end_date")),
        "start_time": parse_time(raw.get("start_time")),
        "end_time": parse_time(raw.get("end_time")),
        "num_agents": safe_int(raw.get("num_agents")),
        "cadence_hours": safe_float(raw.get("cadence_hours")),
        "inspection_type": clean_str(raw.get("inspection_type")),
        "notes": clean_str(raw.get("notes")),
        "daily_hours_config": (),
    }

    for name in ("start_date", "end_date"):
        if clean_str(raw.get(name)) and data[name] is None:
            errors[name] = "data non valida (YYYY-MM-DD o DD/MM/YYYY)"
    for name in ("start_time", "end_time"):
        if clean_str(raw.get(name)) and data[name] is None:
            errors[name] = "formato ora non valido (HH:MM)"
    if clean_str(raw.get("num_agents")) and data["num_agents"] is None:
        errors["num_agents"] = "numero di agenti non valido"
    if clean_str(raw.get("cadence_hours")) and data["cadence_hours"] is None:
        errors["cadence_hours"] = "cadenza non valida"

    try:
        data["daily_hours_config"] = parse_daily_hours_config(raw.get("daily_hours_config"))
    except ValueError as exc:
        errors["daily_hours_config"] = str(exc)

    if data["start_date"] and data["end_date"] and data["end_date"] < data["start_date"]:
        errors["end_date"] = "la data di fine non può essere precedente alla data di inizio"

    return data


def _validate_final(data: Dict[str, Any], errors: Dict[str, str]) -> None:
    for name, msg in (
        ("service_type", "il tipo di servizio è richiesto"),
        ("client_id", "il cliente è richiesto"),
        ("service_point_id", "il punto servizio è richiesto"),
        ("start_date", "la data di inizio è richiesta"),
        ("end_date", "la data di fine è richiesta"),
    ):
        if not data.get(name) and name not in errors:
            errors[name] = msg

    if (data["start_time"] is None) != (data["end_time"] is None):
        missing = "start_time" if data["start_time"] is None else "end_time"
        errors.setdefault(missing, "indicare sia l'ora di inizio che l'ora di fine")

    unita = unita_misura_for_service(data.get("service_type"))
    if unita is UnitaMisura.ORA:
        if data["num_agents"] is None or data["num_agents"] < 1:
            errors.setdefault("num_agents", "il numero di agenti deve essere almeno 1")
    elif unita is UnitaMisura.INTERVENTO and data["cadence_hours"] is not None:
        cadence = data["cadence_hours"]
        if cadence < MIN_CADENCE_HOURS or cadence > MAX_CADENCE_HOURS:
            errors.setdefault(
                "cadence_hours",
                f"la cadenza deve essere tra {MIN_CADENCE_HOURS} e {MAX_CADENCE_HOURS:g} ore",
            )
    elif normalize_service_type(data.get("service_type")) == ISPEZIONI:
        errors.setdefault("cadence_hours", "la cadenza è obbligatoria per le ispezioni")


def parse_service_request(raw: Dict[str, Any]) -> ServiceRequest:
    """
    Сирий рядок (форма / БД) → ServiceRequestDraft | ServiceRequestFinal.

    status визначає форму; невідомий status — помилка.
    Всі помилки полів збираються разом у ServiceRequestValidationError.
    """
    status = clean_str(raw.get("status")) or "Pending"
    if status not in DRAFT_STATUSES and status not in FINAL_STATUSES:
        raise ServiceRequestValidationError({"status": f"stato sconosciuto: {status!r}"})

    errors: Dict[str, str] = {}
    data = _collect_common(raw, errors)

    if status in FINAL_STATUSES:
        _validate_final(data, errors)
        if errors:
            raise ServiceRequestValidationError(errors)
        return ServiceRequestFinal(status=status, **data)

    if errors:
        raise ServiceRequestValidationError(errors)
    return ServiceRequestDraft(status=status, **data)
