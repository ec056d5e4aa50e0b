"""
Analisi contabile з терміналу: зведення вартості сервізів по punti servizio
і список сервізів, для яких бракує тарифу.

    python -m tariffario.cli.analisi_contabile --client 42 --from 2025-01-01 --to 2025-03-31
"""
import argparse
import json
import logging
import sys
from datetime import date, timedelta
from typing import List, Optional, Tuple

import psycopg2

from tariffario.config import AppConfig
from tariffario.domain.db import get_pg_connection
from tariffario.services.analysis import AnalysisReport, run_analysis
from tariffario.services.cost_service import TariffCostService
from tariffario.services.db_repo import DbConnectionManager, TariffRepository
from tariffario.services.reference_cache import ReferenceDataCache
from tariffario.utils.parse_utils import parse_date, prepare_for_json

logger = logging.getLogger(__name__)


# ---------------------------
#  helpers: період
# ---------------------------

def current_month(today: Optional[date] = None) -> Tuple[date, date]:
    today = today or date.today()
    first = today.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    return first, next_first - timedelta(days=1)


def resolve_period(raw_from: Optional[str], raw_to: Optional[str], today: Optional[date] = None) -> Tuple[date, date]:
    """Без --from/--to → поточний місяць; одна межа → інша з поточного місяця."""
    default_start, default_end = current_month(today)

    start = parse_date(raw_from) if raw_from else default_start
    end = parse_date(raw_to) if raw_to else default_end
    if start is None:
        raise ValueError(f"--from non valida: {raw_from!r}")
    if end is None:
        raise ValueError(f"--to non valida: {raw_to!r}")
    if start > end:
        raise ValueError(f"--from {start.isoformat()} è successiva a --to {end.isoformat()}")
    return start, end


# ---------------------------
#  pretty-print
# ---------------------------

def fmt_eur(value: float) -> str:
    return f"{value:,.2f} €"


def print_summary(report: AnalysisReport) -> None:
    print("=" * 80)
    print(f"Riepilogo {report.start} → {report.end}")
    print("-" * 80)

    if not report.summaries:
        print("  Nessun servizio nel periodo.")
        return

    for s in report.summaries:
        print(f"  {s.service_point_name} — {s.service_type}")
        print(
            f"       Servizi: {s.total_services}  Unità: {s.total_units:.2f}  "
            f"Cliente: {fmt_eur(s.total_client_cost)}  Fornitore: {fmt_eur(s.total_supplier_cost)}  "
            f"Margine: {fmt_eur(s.cost_delta)}"
        )

    print("-" * 80)
    print(f"  Totale cliente  : {fmt_eur(report.total_client_cost)}")
    print(f"  Totale fornitore: {fmt_eur(report.total_supplier_cost)}")


def print_missing(report: AnalysisReport) -> None:
    print()
    print(f"=== Servizi senza tariffa ({len(report.missing_tariffs)}) ===")
    for m in report.missing_tariffs:
        print(f"  [{m.service_id}] {m.service_type}  {m.start_date} → {m.end_date}")
        print(f"       Cliente : {m.client_name} ({m.client_id})")
        print(f"       Punto   : {m.service_point_name} ({m.service_point_id})")
        if m.fornitore_id:
            print(f"       Fornitore: {m.fornitore_name} ({m.fornitore_id})")
        print(f"       ➜ {m.reason}")


def print_ambiguous(report: AnalysisReport) -> None:
    if not report.ambiguous:
        return
    print()
    print(f"=== Tariffe sovrapposte ({len(report.ambiguous)}) ===")
    for a in report.ambiguous:
        ids = ", ".join(str(t.id) for t in a.candidates)
        print(f"  [{a.service_id}] {a.key.service_type} al {a.as_of}: tariffe {ids}")
        print(f"       ➜ usata la tariffa {a.chosen.id} (valida dal {a.chosen.valid_from or '-'})")
        if a.invalid is not None:
            print(f"       ➜ calcolo non riuscito: {a.invalid.reason}")


def print_invalid(report: AnalysisReport) -> None:
    if not report.invalid:
        return
    print()
    print(f"=== Dati servizio non validi ({len(report.invalid)}) ===")
    for inv in report.invalid:
        field = f" [{inv.field}]" if inv.field else ""
        print(f"  [{inv.service_id}]{field} {inv.reason}")


def report_to_json(report: AnalysisReport, missing_only: bool = False) -> str:
    payload = {"missing_tariffs": report.missing_tariffs}
    if not missing_only:
        payload.update(
            start=report.start,
            end=report.end,
            summaries=report.summaries,
            ambiguous=[
                {
                    "service_id": a.service_id,
                    "as_of": a.as_of,
                    "candidates": [t.id for t in a.candidates],
                    "chosen": a.chosen.id,
                    "invalid_reason": a.invalid.reason if a.invalid is not None else None,
                }
                for a in report.ambiguous
            ],
            invalid=report.invalid,
            total_client_cost=round(report.total_client_cost, 2),
            total_supplier_cost=round(report.total_supplier_cost, 2),
        )
    return json.dumps(prepare_for_json(payload), ensure_ascii=False, indent=2)


# ---------------------------
#  main
# ---------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Analisi contabile: costi cliente/fornitore per punto servizio e\n"
            "servizi senza tariffa nel periodo indicato."
        )
    )
    parser.add_argument("--client", help="id cliente (default: tutti i clienti)")
    parser.add_argument("--from", dest="date_from", help="data inizio YYYY-MM-DD (default: inizio mese)")
    parser.add_argument("--to", dest="date_to", help="data fine YYYY-MM-DD (default: fine mese)")
    parser.add_argument(
        "--missing-only",
        action="store_true",
        help="mostra solo i servizi senza tariffa",
    )
    parser.add_argument("--json", action="store_true", help="output in JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="log DEBUG")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        start, end = resolve_period(args.date_from, args.date_to)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    logger.debug("[ANALISI] Період %s..%s client=%s", start, end, args.client)

    app_cfg = AppConfig.from_env()
    calendar = app_cfg.holiday_calendar()
    repo = TariffRepository()

    def connection_factory() -> DbConnectionManager:
        return DbConnectionManager(
            connect=lambda: get_pg_connection(app_cfg.database),
            retries=app_cfg.calc.db_retries,
        )

    try:
        with connection_factory() as conn:
            reference = ReferenceDataCache(
                {
                    "clienti": lambda: repo.fetch_clienti(conn),
                    "punti_servizio": lambda: repo.fetch_punti_servizio(conn),
                    "fornitori": lambda: repo.fetch_fornitori(conn),
                },
                ttl_seconds=app_cfg.calc.reference_ttl_seconds,
            )
            cost_service = TariffCostService(
                repo,
                connection_factory=connection_factory,
                calendar=calendar,
                policy=app_cfg.calc.holiday_policy,
                retries=app_cfg.calc.db_retries,
            )
            report = run_analysis(conn, repo, cost_service, reference, args.client, start, end)
    except psycopg2.OperationalError as exc:
        print(f"Database non raggiungibile: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(report_to_json(report, missing_only=args.missing_only))
        return 0

    if not args.missing_only:
        print_summary(report)
    print_missing(report)
    if not args.missing_only:
        print_ambiguous(report)
        print_invalid(report)
    print("=" * 80)
    return 0


if __name__ == "__main__":
    sys.exit(main())
