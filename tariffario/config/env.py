from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from decouple import config

from tariffario.domain.quantity_calc import HolidayPolicy


DEFAULT_HOLIDAYS_YAML = Path(__file__).resolve().with_name("holidays.yml")


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: str
    name: str
    user: str
    password: str
    ssl_mode: str


@dataclass(frozen=True)
class CalcConfig:
    holidays_yaml: Path
    holiday_policy: HolidayPolicy
    reference_ttl_seconds: int
    db_retries: int


def load_db_config() -> DbConfig:
    return DbConfig(
        host=config("DB_HOST", default="localhost"),
        port=config("DB_PORT", default="5432"),
        name=config("DB_NAME", default="postgres"),
        user=config("DB_USER", default="postgres"),
        password=config("DB_PASSWORD", default="postgres"),
        ssl_mode=config("DB_SSL_MODE", default="prefer"),
    )


def _parse_holiday_policy(raw: str) -> HolidayPolicy:
    value = (raw or "").strip().lower() or HolidayPolicy.INCLUDE.value
    try:
        return HolidayPolicy(value)
    except ValueError as exc:
        raise ValueError(
            f"TARIFFARIO_HOLIDAY_POLICY must be one of "
            f"{[p.value for p in HolidayPolicy]}, got {raw!r}"
        ) from exc


def _parse_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    value = str(value).strip()
    if value == "":
        return default
    return int(value)


def load_calc_config() -> CalcConfig:
    ttl = _parse_int(config("TARIFFARIO_REFERENCE_TTL_SECONDS", default=""), 300)
    retries = _parse_int(config("TARIFFARIO_DB_RETRIES", default=""), 2)

    return CalcConfig(
        holidays_yaml=Path(config("TARIFFARIO_HOLIDAYS_YAML", default=str(DEFAULT_HOLIDAYS_YAML))),
        holiday_policy=_parse_holiday_policy(config("TARIFFARIO_HOLIDAY_POLICY", default="include")),
        reference_ttl_seconds=ttl,
        db_retries=retries,
    )
