# tariffario/services/analysis.py

"""
Analisi contabile: зведення вартості по (punto servizio, tipo servizio)
та список сервізів без тарифу.

Пакетний розрахунок не зупиняється на окремих помилках: кожен сервіз дає
свій варіант результату, а звіт розкладає їх по секціях.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from tariffario.domain.models import (
    AmbiguousTariffMatch,
    CalculationResult,
    InvalidScheduleInput,
    MissingTariffEntry,
    NoTariffFound,
    ServiceCostDetails,
    ServiceScheduleDescriptor,
)
from tariffario.domain.service_request import parse_daily_hours_config
from tariffario.domain.service_types import normalize_service_type
from tariffario.services.reference_cache import ReferenceDataCache
from tariffario.utils.parse_utils import clean_str, parse_date, parse_time, safe_float, safe_int

logger = logging.getLogger(__name__)

NormalizedService = Union[ServiceCostDetails, InvalidScheduleInput]


@dataclass
class ServiceSummary:
    service_point_id: str
    service_point_name: str
    service_type: str
    total_services: int = 0
    total_units: float = 0.0          # ore / interventi / mesi
    total_client_cost: float = 0.0
    total_supplier_cost: float = 0.0
    cost_delta: float = 0.0

    def add(self, result: Optional[CalculationResult]) -> None:
        self.total_services += 1
        if result is None:
            return
        self.total_units += result.multiplier
        self.total_client_cost += result.client_cost
        self.total_supplier_cost += result.supplier_cost
        self.cost_delta += result.client_cost - result.supplier_cost


@dataclass
class AnalysisReport:
    start: Optional[date]
    end: Optional[date]
    summaries: List[ServiceSummary] = field(default_factory=list)
    missing_tariffs: List[MissingTariffEntry] = field(default_factory=list)
    ambiguous: List[AmbiguousTariffMatch] = field(default_factory=list)
    invalid: List[InvalidScheduleInput] = field(default_factory=list)

    @property
    def total_client_cost(self) -> float:
        return sum(s.total_client_cost for s in self.summaries)

    @property
    def total_supplier_cost(self) -> float:
        return sum(s.total_supplier_cost for s in self.summaries)


# ---------------------------------------------------------------------------
# Нормалізація рядків БД → ServiceCostDetails
# ---------------------------------------------------------------------------

def _dates(row: Dict[str, Any], fallback_start: date) -> Tuple[date, date]:
    """
    Невалідна / порожня start_date → початок вікна аналізу,
    порожня end_date → start_date.
    """
    start = parse_date(row.get("start_date"))
    if start is None:
        logger.warning(
            "[ANALISI] Сервіз %s без валідної start_date (%r) — беру %s",
            row.get("id"),
            row.get("start_date"),
            fallback_start,
        )
        start = fallback_start
    end = parse_date(row.get("end_date")) or start
    return start, end


def normalize_service_row(row: Dict[str, Any], fallback_start: date) -> NormalizedService:
    service_id = clean_str(row.get("id"))
    start, end = _dates(row, fallback_start)

    try:
        daily = parse_daily_hours_config(row.get("daily_hours_config"))
    except ValueError as exc:
        return InvalidScheduleInput(reason=str(exc), field="daily_hours_config", service_id=service_id)

    return ServiceCostDetails(
        service_id=service_id,
        client_id=clean_str(row.get("client_id")) or "",
        service_point_id=clean_str(row.get("service_point_id")),
        fornitore_id=clean_str(row.get("fornitore_id")),
        schedule=ServiceScheduleDescriptor(
            service_type=normalize_service_type(row.get("type")),
            start_date=start,
            end_date=end,
            start_time=parse_time(row.get("start_time")),
            end_time=parse_time(row.get("end_time")),
            num_agents=safe_int(row.get("num_agents")),
            cadence_hours=safe_float(row.get("cadence_hours")),
            daily_hours_config=daily,
            inspection_type=clean_str(row.get("inspection_type")),
        ),
    )


def normalize_canone_row(row: Dict[str, Any], fallback_start: date) -> NormalizedService:
    """servizi_canone: tipo_canone → тип сервізу, годин/агентів немає."""
    start, end = _dates(row, fallback_start)
    return ServiceCostDetails(
        service_id=clean_str(row.get("id")),
        client_id=clean_str(row.get("client_id")) or "",
        service_point_id=clean_str(row.get("service_point_id")),
        fornitore_id=clean_str(row.get("fornitore_id")),
        schedule=ServiceScheduleDescriptor(
            service_type=normalize_service_type(row.get("tipo_canone")),
            start_date=start,
            end_date=end,
        ),
    )


# ---------------------------------------------------------------------------
# Зведення
# ---------------------------------------------------------------------------

def missing_entry(
    details: ServiceCostDetails,
    outcome: NoTariffFound,
    reference: ReferenceDataCache,
) -> MissingTariffEntry:
    return MissingTariffEntry(
        service_id=details.service_id,
        service_type=details.service_type,
        client_id=details.client_id,
        client_name=reference.client_name(details.client_id),
        service_point_id=details.service_point_id,
        service_point_name=reference.service_point_name(details.service_point_id),
        fornitore_id=details.fornitore_id,
        fornitore_name=reference.fornitore_name(details.fornitore_id),
        start_date=details.schedule.start_date,
        end_date=details.schedule.end_date,
        reason=outcome.reason,
    )


def build_analysis(
    entries: Iterable[Tuple[NormalizedService, Any]],
    reference: ReferenceDataCache,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> AnalysisReport:
    """
    entries — пари (нормалізований сервіз, результат розрахунку).

    - CalculationResult    → у зведення;
    - AmbiguousTariffMatch → у зведення з обраним тарифом + окремий список;
                             некоректний розклад для обраного тарифу → ще й
                             у список invalid, поза зведенням;
    - NoTariffFound        → сервіз рахується в total_services, вартість 0,
                             + рядок у missing_tariffs;
    - InvalidScheduleInput → окремий список.
    Сервізи з невідомим punto servizio у зведення не потрапляють.
    """
    report = AnalysisReport(start=start, end=end)
    summary: Dict[Tuple[str, str], ServiceSummary] = {}

    for details, outcome in entries:
        if isinstance(details, InvalidScheduleInput):
            report.invalid.append(details)
            continue
        if isinstance(outcome, InvalidScheduleInput):
            report.invalid.append(outcome)
            continue

        result: Optional[CalculationResult] = None
        if isinstance(outcome, CalculationResult):
            result = outcome
        elif isinstance(outcome, AmbiguousTariffMatch):
            report.ambiguous.append(outcome)
            if outcome.invalid is not None:
                report.invalid.append(outcome.invalid)
                continue
            result = outcome.result
        elif isinstance(outcome, NoTariffFound):
            report.missing_tariffs.append(missing_entry(details, outcome, reference))

        if not reference.has_service_point(details.service_point_id):
            logger.debug(
                "[ANALISI] Сервіз %s: punto servizio %s невідомий — поза зведенням",
                details.service_id,
                details.service_point_id,
            )
            continue

        key = (str(details.service_point_id), details.service_type)
        if key not in summary:
            summary[key] = ServiceSummary(
                service_point_id=str(details.service_point_id),
                service_point_name=reference.service_point_name(details.service_point_id),
                service_type=details.service_type,
            )
        summary[key].add(result)

    report.summaries = sorted(summary.values(), key=lambda s: (s.service_point_name, s.service_type))

    logger.info(
        "[ANALISI] Зведення: %d груп, без тарифу=%d, неоднозначних=%d, некоректних=%d",
        len(report.summaries),
        len(report.missing_tariffs),
        len(report.ambiguous),
        len(report.invalid),
    )
    return report


def run_analysis(
    conn,
    repo,
    cost_service,
    reference: ReferenceDataCache,
    client_id: Optional[str],
    start: date,
    end: date,
) -> AnalysisReport:
    """Читає richieste_servizio + servizi_canone за вікно, рахує і будує звіт."""
    rows_richieste = repo.fetch_service_requests_for_analysis(conn, client_id, start, end)
    rows_canone = repo.fetch_servizi_canone_for_analysis(conn, client_id, start, end)

    normalized: List[NormalizedService] = [normalize_service_row(r, start) for r in rows_richieste]
    normalized += [normalize_canone_row(r, start) for r in rows_canone]

    entries: List[Tuple[NormalizedService, Any]] = []
    for details in normalized:
        if isinstance(details, InvalidScheduleInput):
            entries.append((details, None))
            continue
        entries.append((details, cost_service.calculate(conn, details)))

    return build_analysis(entries, reference, start, end)

