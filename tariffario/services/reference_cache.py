from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

Loader = Callable[[], List[Dict[str, Any]]]

UNKNOWN_CLIENT = "Cliente Sconosciuto"
UNKNOWN_SERVICE_POINT = "Punto Servizio Sconosciuto"
UNKNOWN_FORNITORE = "Fornitore Sconosciuto"


@dataclass
class _Entry:
    rows: List[Dict[str, Any]]
    by_id: Dict[str, Dict[str, Any]]
    loaded_at: float


class ReferenceDataCache:
    """
    Read-through кеш довідників (clienti, punti_servizio, fornitori).

    - передається явно (жодного глобального стану модуля);
    - TTL в секундах: після закінчення наступний get() перечитує дані;
    - ttl_seconds=0 → кеш вимкнений, кожен get() читає заново;
    - refresh(name) / refresh() — явна інвалідація.
    """

    def __init__(
        self,
        loaders: Mapping[str, Loader],
        ttl_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ):
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._loaders = dict(loaders)
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, _Entry] = {}

    def _is_fresh(self, entry: _Entry) -> bool:
        if self._ttl == 0:
            return False
        return self._clock() - entry.loaded_at < self._ttl

    def _load(self, name: str) -> _Entry:
        try:
            loader = self._loaders[name]
        except KeyError as exc:
            raise KeyError(f"Unknown reference dataset: {name!r}") from exc

        rows = loader() or []
        by_id = {str(r["id"]): r for r in rows if r.get("id") is not None}
        entry = _Entry(rows=rows, by_id=by_id, loaded_at=self._clock())
        self._entries[name] = entry
        logger.debug("[CACHE] %s: завантажено %d рядків", name, len(rows))
        return entry

    def _entry(self, name: str) -> _Entry:
        entry = self._entries.get(name)
        if entry is None or not self._is_fresh(entry):
            entry = self._load(name)
        return entry

    def get(self, name: str) -> List[Dict[str, Any]]:
        return list(self._entry(name).rows)

    def get_by_id(self, name: str, row_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if row_id is None:
            return None
        return self._entry(name).by_id.get(str(row_id))

    def refresh(self, name: Optional[str] = None) -> None:
        if name is None:
            self._entries.clear()
            logger.info("[CACHE] Інвалідовано всі довідники")
        else:
            self._entries.pop(name, None)
            logger.info("[CACHE] Інвалідовано %s", name)

    def client_name(self, client_id: Optional[str]) -> str:
        row = self.get_by_id("clienti", client_id)
        return (row or {}).get("nome_cliente") or UNKNOWN_CLIENT

    def service_point_name(self, service_point_id: Optional[str]) -> str:
        row = self.get_by_id("punti_servizio", service_point_id)
        return (row or {}).get("nome_punto_servizio") or UNKNOWN_SERVICE_POINT

    def has_service_point(self, service_point_id: Optional[str]) -> bool:
        return self.get_by_id("punti_servizio", service_point_id) is not None

    def fornitore_name(self, fornitore_id: Optional[str]) -> str:
        row = self.get_by_id("fornitori", fornitore_id)
        return (row or {}).get("nome_fornitore") or UNKNOWN_FORNITORE
