from tariffario.config.app_config import AppConfig
from tariffario.config.env import (
    CalcConfig,
    DbConfig,
    load_calc_config,
    load_db_config,
)
from tariffario.config.holidays import load_holiday_calendar, parse_holiday_rows

__all__ = [
    "AppConfig",
    "CalcConfig",
    "DbConfig",
    "load_calc_config",
    "load_db_config",
    "load_holiday_calendar",
    "parse_holiday_rows",
]
