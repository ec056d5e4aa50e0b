from __future__ import annotations

from dataclasses import dataclass

from tariffario.config.env import CalcConfig, DbConfig, load_calc_config, load_db_config
from tariffario.config.holidays import load_holiday_calendar
from tariffario.domain.holidays import HolidayCalendar


@dataclass(frozen=True)
class AppConfig:
    database: DbConfig
    calc: CalcConfig

    @classmethod
    def from_env(cls) -> "AppConfig":
        calc = load_calc_config()
        if calc.reference_ttl_seconds < 0:
            raise ValueError("TARIFFARIO_REFERENCE_TTL_SECONDS must be >= 0")
        return cls(database=load_db_config(), calc=calc)

    def holiday_calendar(self) -> HolidayCalendar:
        return load_holiday_calendar(self.calc.holidays_yaml)
