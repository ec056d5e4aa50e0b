# tariffario/utils/parse_utils.py
from __future__ import annotations

import math
import re
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")


def clean_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).replace("\n", " ").strip()
    return s if s != "" else None


def safe_float(v: Any) -> Optional[float]:
    if v is None:
        return None
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float, Decimal)):
        return float(v)
    s = str(v).strip()
    if s == "":
        return None
    # кома як десятковий роздільник
    s = s.replace(" ", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def safe_int(v: Any) -> Optional[int]:
    f = safe_float(v)
    if f is None or not math.isfinite(f) or f != int(f):
        return None
    return int(f)


def to_bool_or_none(v: Any) -> Optional[bool]:
    if v is None:
        return None
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    s = str(v).strip().lower()
    if s in ("true", "yes", "y", "1", "si", "sì"):
        return True
    if s in ("false", "no", "n", "0"):
        return False
    return None


def parse_date(v: Any) -> Optional[date]:
    """
    Підтримка:
      - date / datetime
      - YYYY-MM-DD (також з хвостом часу: YYYY-MM-DDTHH:MM...)
      - DD/MM/YYYY
    """
    if isinstance(v, datetime):
        return v.date()
    if isinstance(v, date):
        return v

    s = clean_str(v)
    if not s:
        return None

    m = re.match(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$", s)
    if m:
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            return None

    if re.match(r"^\d{2}/\d{2}/\d{4}$", s):
        try:
            d, mth, y = s.split("/")
            return date(int(y), int(mth), int(d))
        except ValueError:
            return None

    return None


def parse_time(v: Any) -> Optional[time]:
    """HH:MM або HH:MM:SS (як приходить з колонки time у Postgres)."""
    if isinstance(v, time):
        return v
    s = clean_str(v)
    if not s:
        return None
    m = _TIME_RE.match(s)
    if not m:
        return None
    return time(int(m.group(1)), int(m.group(2)), int(m.group(3) or 0))


def prepare_for_json(obj):
    """Рекурсивно конвертує Decimal, Enum, дати та dataclass у формати, придатні для JSON."""
    if is_dataclass(obj) and not isinstance(obj, type):
        return prepare_for_json(asdict(obj))
    if isinstance(obj, dict):
        return {k: prepare_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [prepare_for_json(i) for i in obj]
    elif isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, (date, datetime, time)):
        return obj.isoformat()
    return obj
