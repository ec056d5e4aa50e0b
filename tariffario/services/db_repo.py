from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Optional

import psycopg2
import psycopg2.extras
from psycopg2 import Error as Psycopg2Error

from tariffario.domain.db import get_pg_connection
from tariffario.domain.models import Tariff, UnitaMisura
from tariffario.domain.service_types import normalize_service_type, unita_misura_for_service
from tariffario.utils.parse_utils import clean_str, parse_date, safe_float
from tariffario.utils.retry import retry_call

logger = logging.getLogger(__name__)


TARIFFE_COLUMNS = [
    "id",
    "client_id",
    "service_type",
    "client_rate",
    "supplier_rate",
    "unita_misura",
    "punto_servizio_id",
    "fornitore_id",
    "data_inizio_validita",
    "data_fine_validita",
    "note",
]

RICHIESTE_COLUMNS = [
    "id",
    "type",
    "client_id",
    "service_point_id",
    "fornitore_id",
    "start_date",
    "end_date",
    "start_time",
    "end_time",
    "num_agents",
    "cadence_hours",
    "daily_hours_config",
    "inspection_type",
    "status",
]

CANONE_COLUMNS = [
    "id",
    "tipo_canone",
    "client_id",
    "service_point_id",
    "fornitore_id",
    "start_date",
    "end_date",
    "status",
]


@dataclass(frozen=True)
class TariffFilter:
    client_id: str
    service_type: str
    as_of: date
    service_point_id: Optional[str] = None
    fornitore_id: Optional[str] = None


@dataclass
class DbConnectionManager:
    connect: Callable[[], Any] = get_pg_connection
    retries: int = 2

    def __enter__(self):
        self.conn = retry_call(
            self.connect,
            retries=self.retries,
            backoff_s=0.5,
            retry_exceptions=(psycopg2.OperationalError,),
        )
        return self.conn

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc:
                self.conn.rollback()
            else:
                self.conn.commit()
        finally:
            self.conn.close()


def tariff_from_row(row: Dict[str, Any]) -> Tariff:
    """Рядок tariffe → Tariff. Некоректні обов'язкові поля → ValueError."""
    client_id = clean_str(row.get("client_id"))
    service_type = normalize_service_type(row.get("service_type"))
    client_rate = safe_float(row.get("client_rate"))
    supplier_rate = safe_float(row.get("supplier_rate"))

    if not client_id:
        raise ValueError("client_id mancante")
    if not service_type:
        raise ValueError("service_type mancante")
    if client_rate is None:
        raise ValueError(f"client_rate non valido: {row.get('client_rate')!r}")
    if supplier_rate is None:
        supplier_rate = 0.0

    unita = UnitaMisura.from_raw(row.get("unita_misura"))
    if unita is None and not clean_str(row.get("unita_misura")):
        unita = unita_misura_for_service(service_type)

    return Tariff(
        id=clean_str(row.get("id")),
        client_id=client_id,
        service_type=service_type,
        client_rate=client_rate,
        supplier_rate=supplier_rate,
        unita_misura=unita,
        service_point_id=clean_str(row.get("punto_servizio_id")),
        fornitore_id=clean_str(row.get("fornitore_id")),
        valid_from=parse_date(row.get("data_inizio_validita")),
        valid_to=parse_date(row.get("data_fine_validita")),
        note=clean_str(row.get("note")),
    )


def _decode_jsonb(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except ValueError:
            logger.warning("[DB] daily_hours_config не є валідним JSON: %r", value[:80])
            return None
    return value


class TariffRepository:
    """
    Читання тарифів та сервізів для аналізу. Всі методи — лише SELECT,
    тому повтор при збої безпечний.
    """

    def query_tariffs(self, conn, flt: TariffFilter) -> List[Tariff]:
        """
        Кандидати для resolve_tariff: той самий клієнт і тип, діючі на as_of.

        punto/fornitore не фільтруємо в SQL, щоб resolver бачив і рядки з NULL
        і сам застосував правило точного збігу.
        """
        sql = f"""
            SELECT {", ".join(TARIFFE_COLUMNS)}
            FROM public.tariffe
            WHERE client_id = %s
              AND regexp_replace(btrim(service_type), '\\s+', ' ', 'g') = %s
              AND (data_inizio_validita IS NULL OR data_inizio_validita <= %s)
              AND (data_fine_validita IS NULL OR data_fine_validita > %s)
            ORDER BY data_inizio_validita DESC NULLS LAST, id;
        """
        params = (flt.client_id, normalize_service_type(flt.service_type), flt.as_of, flt.as_of)

        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = cur.fetchall()
        except Psycopg2Error as exc:
            logger.exception(
                "[DB] query_tariffs failed client=%s tipo=%r as_of=%s: %s",
                flt.client_id,
                flt.service_type,
                flt.as_of,
                exc,
            )
            raise

        tariffs = self._map_rows(rows)
        logger.debug(
            "[DB] query_tariffs client=%s punto=%s fornitore=%s tipo=%r as_of=%s → %d",
            flt.client_id,
            flt.service_point_id,
            flt.fornitore_id,
            flt.service_type,
            flt.as_of,
            len(tariffs),
        )
        return tariffs

    def _map_rows(self, rows) -> List[Tariff]:
        out: List[Tariff] = []
        for row in rows:
            try:
                out.append(tariff_from_row(dict(row)))
            except ValueError as exc:
                logger.warning("[DB] Пропущено тариф id=%s: %s", dict(row).get("id"), exc)
        return out

    def fetch_service_requests_for_analysis(
        self,
        conn,
        client_id: Optional[str],
        start: Optional[date],
        end: Optional[date],
    ) -> List[Dict[str, Any]]:
        rows = self._fetch_in_window(conn, "richieste_servizio", RICHIESTE_COLUMNS, client_id, start, end)
        for row in rows:
            row["daily_hours_config"] = _decode_jsonb(row.get("daily_hours_config"))
        return rows

    def fetch_servizi_canone_for_analysis(
        self,
        conn,
        client_id: Optional[str],
        start: Optional[date],
        end: Optional[date],
    ) -> List[Dict[str, Any]]:
        return self._fetch_in_window(conn, "servizi_canone", CANONE_COLUMNS, client_id, start, end)

    def _fetch_in_window(
        self,
        conn,
        table: str,
        columns: List[str],
        client_id: Optional[str],
        start: Optional[date],
        end: Optional[date],
    ) -> List[Dict[str, Any]]:
        """Сервізи, що перетинають вікно [start, end]; без меж — всі."""
        where: List[str] = []
        params: List[Any] = []

        if client_id:
            where.append("client_id = %s")
            params.append(client_id)
        if start:
            where.append("(end_date IS NULL OR end_date >= %s)")
            params.append(start)
        if end:
            where.append("start_date <= %s")
            params.append(end)

        sql = f"SELECT {', '.join(columns)} FROM public.{table}"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY start_date, id;"

        try:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(sql, params)
                rows = [dict(r) for r in cur.fetchall()]
        except Psycopg2Error as exc:
            logger.exception("[DB] Помилка читання %s client=%s: %s", table, client_id, exc)
            raise

        logger.info("[DB] %s: %d рядків (client=%s, %s..%s)", table, len(rows), client_id, start, end)
        return rows

    def fetch_clienti(self, conn) -> List[Dict[str, Any]]:
        return self._fetch_lookup(conn, "SELECT id, nome_cliente FROM public.clienti ORDER BY nome_cliente;")

    def fetch_punti_servizio(self, conn) -> List[Dict[str, Any]]:
        return self._fetch_lookup(
            conn,
            "SELECT id, nome_punto_servizio, id_cliente FROM public.punti_servizio ORDER BY nome_punto_servizio;",
        )

    def fetch_fornitori(self, conn) -> List[Dict[str, Any]]:
        return self._fetch_lookup(conn, "SELECT id, nome_fornitore FROM public.fornitori ORDER BY nome_fornitore;")

    def _fetch_lookup(self, conn, sql: str) -> List[Dict[str, Any]]:
        with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(sql)
            return [dict(r) for r in cur.fetchall()]
