from __future__ import annotations

from datetime import date, timedelta
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple


class HolidayCalendar:
    """
    Календар свят (festivi) як чистий lookup.

    Дати передаються ззовні (YAML, тест, інша локаль), календар нічого не
    знає про конкретний рік. Порожній календар — валідний стан.
    """

    def __init__(self, dates: Iterable[date] = (), names: Optional[Dict[date, str]] = None):
        self._dates: FrozenSet[date] = frozenset(dates)
        self._names: Dict[date, str] = dict(names or {})

    def __contains__(self, d: date) -> bool:
        return d in self._dates

    def __len__(self) -> int:
        return len(self._dates)

    def __repr__(self) -> str:
        return f"HolidayCalendar(years={self.years}, dates={len(self._dates)})"

    def is_holiday(self, d: date) -> bool:
        return d in self._dates

    def name(self, d: date) -> Optional[str]:
        return self._names.get(d)

    @property
    def years(self) -> Tuple[int, ...]:
        return tuple(sorted({d.year for d in self._dates}))

    def holidays_between(self, start: date, end: date) -> List[date]:
        """Свята в [start, end] включно, відсортовані."""
        if start > end:
            return []
        if (end - start).days > len(self._dates):
            return sorted(d for d in self._dates if start <= d <= end)
        out = []
        d = start
        while d <= end:
            if d in self._dates:
                out.append(d)
            d += timedelta(days=1)
        return out

    def merged(self, other: "HolidayCalendar") -> "HolidayCalendar":
        names = dict(self._names)
        names.update(other._names)
        return HolidayCalendar(self._dates | other._dates, names)
