from __future__ import annotations

import logging
from typing import Any, Callable, ContextManager, Dict, Iterable, List, Optional, Sequence, Union

from psycopg2 import Error as Psycopg2Error

from tariffario.domain.holidays import HolidayCalendar
from tariffario.domain.models import (
    AmbiguousTariffMatch,
    CalculationResult,
    InvalidScheduleInput,
    NoTariffFound,
    ServiceCostDetails,
    Tariff,
    TariffFound,
)
from tariffario.domain.quantity_calc import HolidayPolicy, Quantity, calculate_quantity
from tariffario.domain.rate_resolver import resolve_tariff
from tariffario.domain.service_types import unita_misura_for_service
from tariffario.services.db_repo import TariffFilter, TariffRepository
from tariffario.utils.retry import retry_call

logger = logging.getLogger(__name__)

CostOutcome = Union[CalculationResult, NoTariffFound, AmbiguousTariffMatch, InvalidScheduleInput]


def _unita_for(tariff: Tariff, details: ServiceCostDetails):
    default = unita_misura_for_service(details.service_type)
    if tariff.unita_misura is not None and default is not None and tariff.unita_misura is not default:
        logger.warning(
            "[TARIFFE] Тариф %s має unita=%s, а для %r очікується %s — використовую тариф",
            tariff.id,
            tariff.unita_misura.value,
            details.service_type,
            default.value,
        )
    return tariff.unita_misura


def _apply_tariff(
    details: ServiceCostDetails,
    tariff: Tariff,
    calendar: HolidayCalendar,
    policy: HolidayPolicy,
) -> Union[CalculationResult, InvalidScheduleInput]:
    quantity = calculate_quantity(
        details.schedule,
        _unita_for(tariff, details),
        calendar,
        policy,
        service_id=details.service_id,
    )
    if isinstance(quantity, InvalidScheduleInput):
        return quantity
    return _result_from(quantity, tariff)


def _result_from(quantity: Quantity, tariff: Tariff) -> CalculationResult:
    return CalculationResult(
        multiplier=quantity.multiplier,
        client_rate=tariff.client_rate,
        supplier_rate=tariff.supplier_rate,
        unita_misura=quantity.unita_misura,
        holiday_dates=quantity.holiday_dates,
        tariff_id=tariff.id,
    )


def calculate_service_cost(
    details: ServiceCostDetails,
    tariffs: Iterable[Tariff],
    calendar: Optional[HolidayCalendar] = None,
    *,
    policy: HolidayPolicy = HolidayPolicy.INCLUDE,
) -> CostOutcome:
    """
    Resolver → Calculator для одного сервізу. Чиста функція, нічого не кидає.

    Дата пошуку тарифу — start_date сервізу. При неоднозначності результат
    рахується з обраним тарифом і кладеться в AmbiguousTariffMatch.result
    (або .invalid, якщо розклад для нього некоректний).
    """
    calendar = calendar or HolidayCalendar()
    schedule = details.schedule

    if schedule.start_date is None or schedule.end_date is None:
        return InvalidScheduleInput(
            reason="start_date e end_date sono obbligatorie",
            field="start_date",
            service_id=details.service_id,
        )
    if schedule.start_date > schedule.end_date:
        return InvalidScheduleInput(
            reason=(
                f"start_date {schedule.start_date.isoformat()} è successiva a "
                f"end_date {schedule.end_date.isoformat()}"
            ),
            field="end_date",
            service_id=details.service_id,
        )

    outcome = resolve_tariff(
        tariffs,
        details.tariff_key(),
        schedule.start_date,
        end_date=schedule.end_date,
        service_id=details.service_id,
    )

    if isinstance(outcome, NoTariffFound):
        return outcome

    if isinstance(outcome, TariffFound):
        return _apply_tariff(details, outcome.tariff, calendar, policy)

    computed = _apply_tariff(details, outcome.chosen, calendar, policy)
    invalid = computed if isinstance(computed, InvalidScheduleInput) else None
    return AmbiguousTariffMatch(
        key=outcome.key,
        as_of=outcome.as_of,
        candidates=outcome.candidates,
        chosen=outcome.chosen,
        result=computed if invalid is None else None,
        service_id=outcome.service_id,
        invalid=invalid,
    )


class TariffCostService:
    """
    Обгортка з I/O: бере кандидатів з БД (з повтором) і рахує через
    calculate_service_cost. У батчі некоректний ввід одного сервізу не зупиняє решту.
    """

    def __init__(
        self,
        repo: TariffRepository,
        connection_factory: Callable[[], ContextManager[Any]],
        calendar: HolidayCalendar,
        policy: HolidayPolicy = HolidayPolicy.INCLUDE,
        retries: int = 2,
        backoff_s: float = 0.5,
    ):
        self.repo = repo
        self.connection_factory = connection_factory
        self.calendar = calendar
        self.policy = policy
        self.retries = retries
        self.backoff_s = backoff_s

    def fetch_candidates(self, conn, details: ServiceCostDetails) -> List[Tariff]:
        flt = TariffFilter(
            client_id=details.client_id,
            service_type=details.service_type,
            as_of=details.schedule.start_date,
            service_point_id=details.service_point_id,
            fornitore_id=details.fornitore_id,
        )

        return retry_call(
            lambda: self.repo.query_tariffs(conn, flt),
            retries=self.retries,
            backoff_s=self.backoff_s,
            retry_exceptions=(Psycopg2Error,),
            logger_name=__name__,
            before_retry=lambda exc: conn.rollback(),
        )

    def calculate(self, conn, details: ServiceCostDetails) -> CostOutcome:
        if details.schedule.start_date is None:
            return InvalidScheduleInput(
                reason="start_date e end_date sono obbligatorie",
                field="start_date",
                service_id=details.service_id,
            )
        tariffs = self.fetch_candidates(conn, details)
        return calculate_service_cost(details, tariffs, self.calendar, policy=self.policy)

    def calculate_many(self, details_list: Iterable[ServiceCostDetails]) -> List[CostOutcome]:
        outcomes: List[CostOutcome] = []
        with self.connection_factory() as conn:
            for details in details_list:
                outcomes.append(self.calculate(conn, details))
        logger.info("[TARIFFE] Розраховано %d сервізів: %s", len(outcomes), summarize_outcomes(outcomes))
        return outcomes


def summarize_outcomes(outcomes: Sequence[Any]) -> Dict[str, int]:
    counts = {"ok": 0, "missing": 0, "ambiguous": 0, "invalid": 0}
    for o in outcomes:
        if isinstance(o, CalculationResult):
            counts["ok"] += 1
        elif isinstance(o, NoTariffFound):
            counts["missing"] += 1
        elif isinstance(o, AmbiguousTariffMatch):
            counts["ambiguous"] += 1
        elif isinstance(o, InvalidScheduleInput):
            counts["invalid"] += 1
    return counts
