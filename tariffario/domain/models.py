# tariffario/domain/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, time
from enum import Enum
from typing import Optional, Tuple


class UnitaMisura(Enum):
    """
    Одиниця виміру тарифу (колонка tariffe.unita_misura).

    - ORA: погодинні сервізи (Piantonamento, Servizi Fiduciari);
    - INTERVENTO: кількість виїздів / ispezioni;
    - MESE: фіксований місячний canone.
    """
    ORA = "ora"
    INTERVENTO = "intervento"
    MESE = "mese"

    @classmethod
    def from_raw(cls, raw: Optional[str]) -> Optional["UnitaMisura"]:
        if raw is None:
            return None
        if isinstance(raw, cls):
            return raw
        key = str(raw).strip().lower()
        return _UNITA_ALIASES.get(key)


_UNITA_ALIASES = {
    "ora": UnitaMisura.ORA,
    "ore": UnitaMisura.ORA,
    "hour": UnitaMisura.ORA,
    "intervento": UnitaMisura.INTERVENTO,
    "interventi": UnitaMisura.INTERVENTO,
    "intervention": UnitaMisura.INTERVENTO,
    "mese": UnitaMisura.MESE,
    "mesi": UnitaMisura.MESE,
    "month": UnitaMisura.MESE,
}


@dataclass(frozen=True)
class Tariff:
    """Рядок з таблиці tariffe. Ядро лише читає тарифи, CRUD живе поза ним."""
    client_id: str
    service_type: str
    client_rate: float
    supplier_rate: float
    unita_misura: Optional[UnitaMisura]
    service_point_id: Optional[str] = None
    fornitore_id: Optional[str] = None
    valid_from: Optional[date] = None          # None → діє "від завжди"
    valid_to: Optional[date] = None            # None → безстроково (межа не включається)
    id: Optional[str] = None
    note: Optional[str] = None


@dataclass(frozen=True)
class TariffKey:
    client_id: str
    service_type: str
    service_point_id: Optional[str] = None
    fornitore_id: Optional[str] = None


@dataclass(frozen=True)
class DailyHours:
    """
    Налаштування годин для одного дня тижня (0=пн ... 6=нд).

    enabled=False → день явно вимкнений і дає 0 годин.
    is_24h=True   → цілодобово, start/end ігноруються.
    """
    weekday: int
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    is_24h: bool = False
    enabled: bool = True


@dataclass(frozen=True)
class ServiceScheduleDescriptor:
    service_type: str
    start_date: date
    end_date: date
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    num_agents: Optional[int] = None
    cadence_hours: Optional[float] = None
    daily_hours_config: Tuple[DailyHours, ...] = ()
    inspection_type: Optional[str] = None


@dataclass(frozen=True)
class ServiceCostDetails:
    """Те, що форма / звіт передає в розрахунок: хто + де + розклад."""
    client_id: str
    schedule: ServiceScheduleDescriptor
    service_point_id: Optional[str] = None
    fornitore_id: Optional[str] = None
    service_id: Optional[str] = None

    @property
    def service_type(self) -> str:
        return self.schedule.service_type

    def tariff_key(self) -> TariffKey:
        return TariffKey(
            client_id=self.client_id,
            service_type=self.schedule.service_type,
            service_point_id=self.service_point_id,
            fornitore_id=self.fornitore_id,
        )


@dataclass(frozen=True)
class CalculationResult:
    multiplier: float
    client_rate: float
    supplier_rate: float
    unita_misura: UnitaMisura
    holiday_dates: Tuple[date, ...] = ()
    tariff_id: Optional[str] = None

    @property
    def client_cost(self) -> float:
        return self.multiplier * self.client_rate

    @property
    def supplier_cost(self) -> float:
        return self.multiplier * self.supplier_rate

    @property
    def margin(self) -> float:
        return self.client_cost - self.supplier_cost

    def rounded(self) -> dict:
        """Значення для відображення: округлення до 2 знаків лише тут."""
        return {
            "multiplier": round(self.multiplier, 2),
            "client_cost": round(self.client_cost, 2),
            "supplier_cost": round(self.supplier_cost, 2),
            "margin": round(self.margin, 2),
        }


@dataclass(frozen=True)
class MissingTariffEntry:
    service_id: Optional[str]
    service_type: str
    client_id: str
    client_name: str
    service_point_id: Optional[str]
    service_point_name: str
    fornitore_id: Optional[str]
    fornitore_name: str
    start_date: date
    end_date: date
    reason: str


# ---------------------------------------------------------------------------
# Варіанти результату на межі розрахунку (нічого не кидаємо назовні)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TariffFound:
    tariff: Tariff


@dataclass(frozen=True)
class NoTariffFound:
    client_id: str
    service_type: str
    service_point_id: Optional[str]
    fornitore_id: Optional[str]
    start_date: date
    end_date: date
    reason: str
    service_id: Optional[str] = None


@dataclass(frozen=True)
class AmbiguousTariffMatch:
    """
    Декілька тарифів перетинаються по валідності для одного ключа.

    chosen — детермінований вибір (найпізніший valid_from), result — розрахунок
    з chosen, якщо його вже зробили. Якщо розклад для chosen некоректний,
    result = None, а причина лежить в invalid.
    Це дефект даних, а не "тиха" підміна.
    """
    key: TariffKey
    as_of: date
    candidates: Tuple[Tariff, ...]
    chosen: Tariff
    result: Optional[CalculationResult] = None
    service_id: Optional[str] = None
    invalid: Optional[InvalidScheduleInput] = None


@dataclass(frozen=True)
class InvalidScheduleInput:
    reason: str
    field: Optional[str] = None
    service_id: Optional[str] = None
    details: Tuple[str, ...] = ()
