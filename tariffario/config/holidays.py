from __future__ import annotations

import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Tuple

import yaml

from tariffario.domain.holidays import HolidayCalendar
from tariffario.utils.parse_utils import clean_str, parse_date

logger = logging.getLogger(__name__)


def parse_holiday_rows(data: Any) -> Tuple[List[date], Dict[date, str]]:
    """
    Очікувана структура YAML:

        2025:
          - {data: 2025-01-01, nome: Capodanno}
          - 2025-12-25            # можна і просто дату

    Некоректні записи пропускаються з warning.
    """
    dates: List[date] = []
    names: Dict[date, str] = {}

    if not isinstance(data, dict):
        logger.error("[HOLIDAYS] Некоректна структура YAML (очікується словник рік → список): %r", type(data))
        return dates, names

    for year_raw, rows in data.items():
        if not isinstance(rows, list):
            logger.warning("[HOLIDAYS] Рік %r: очікується список, отримано %r", year_raw, type(rows))
            continue

        for row in rows:
            if isinstance(row, dict):
                d = parse_date(row.get("data", row.get("date")))
                name = clean_str(row.get("nome", row.get("name")))
            else:
                d = parse_date(row)
                name = None

            if d is None:
                logger.warning("[HOLIDAYS] Пропущено запис без валідної дати: %r", row)
                continue
            if str(d.year) != str(year_raw).strip():
                logger.warning(
                    "[HOLIDAYS] Дата %s у секції року %r — беру дату як є",
                    d.isoformat(),
                    year_raw,
                )

            dates.append(d)
            if name:
                names[d] = name

    return dates, names


def load_holiday_calendar(path: Path) -> HolidayCalendar:
    path = Path(path)
    if not path.exists():
        logger.error("[HOLIDAYS] Файл календаря свят не знайдено: %s", path)
        return HolidayCalendar()

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.exception("[HOLIDAYS] Неможливо прочитати %s: %s", path, exc)
        return HolidayCalendar()

    dates, names = parse_holiday_rows(data)
    calendar = HolidayCalendar(dates, names)
    logger.info("[HOLIDAYS] Завантажено %d свят (роки %s) із %s", len(calendar), calendar.years, path)
    return calendar
