import logging
from typing import Optional

import psycopg2

from tariffario.config.env import DbConfig, load_db_config

logger = logging.getLogger(__name__)


def get_pg_connection(cfg: Optional[DbConfig] = None):
    """
    Отримати новий конекшн до PostgreSQL (бекенд Supabase).

    Таблиці, які читає ядро (лише SELECT):

        tariffe (id, client_id, service_type, client_rate, supplier_rate,
                 unita_misura, punto_servizio_id, fornitore_id,
                 data_inizio_validita, data_fine_validita, note)
        richieste_servizio (id, type, client_id, service_point_id, fornitore_id,
                 start_date, end_date, start_time, end_time, num_agents,
                 cadence_hours, daily_hours_config jsonb, inspection_type, status)
        servizi_canone (id, tipo_canone, client_id, service_point_id,
                 fornitore_id, start_date, end_date, status)
        clienti, punti_servizio, fornitori — довідники.
    """
    cfg = cfg or load_db_config()
    try:
        conn = psycopg2.connect(
            host=cfg.host,
            port=cfg.port,
            dbname=cfg.name,
            user=cfg.user,
            password=cfg.password,
            sslmode=cfg.ssl_mode,
        )
        return conn
    except psycopg2.Error as e:
        logger.exception("[DB] Не вдалося підключитися до PostgreSQL: %s", e)
        raise
