# tariffario/domain/rate_resolver.py

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, List, Optional, Union

from tariffario.domain.models import (
    AmbiguousTariffMatch,
    NoTariffFound,
    Tariff,
    TariffFound,
    TariffKey,
)
from tariffario.domain.service_types import normalize_service_type

logger = logging.getLogger(__name__)

MISSING_TARIFF_REASON = "Nessuna tariffa corrispondente trovata per il periodo e il tipo di servizio."

ResolveOutcome = Union[TariffFound, NoTariffFound, AmbiguousTariffMatch]


def _same_id(a: Optional[str], b: Optional[str]) -> bool:
    a = (str(a).strip() or None) if a is not None else None
    b = (str(b).strip() or None) if b is not None else None
    return a == b


def is_valid_on(tariff: Tariff, as_of: date) -> bool:
    """[valid_from, valid_to): початок включно, кінець ні; None = без межі."""
    if tariff.valid_from is not None and as_of < tariff.valid_from:
        return False
    if tariff.valid_to is not None and as_of >= tariff.valid_to:
        return False
    return True


def tariff_matches(tariff: Tariff, key: TariffKey, as_of: date) -> bool:
    """
    Тариф підходить, якщо:
      - service_type збігається (з точністю до пробілів);
      - client_id збігається;
      - service_point_id / fornitore_id збігаються точно, включно з None:
        порожнє поле тарифу підходить лише ключу, де це поле теж не задане;
      - as_of в межах валідності.
    """
    if normalize_service_type(tariff.service_type) != normalize_service_type(key.service_type):
        return False
    if not _same_id(tariff.client_id, key.client_id):
        return False
    if not _same_id(tariff.service_point_id, key.service_point_id):
        return False
    if not _same_id(tariff.fornitore_id, key.fornitore_id):
        return False
    return is_valid_on(tariff, as_of)


def _tie_break_key(tariff: Tariff):
    # valid_from=None найстаріший, при рівних датах вирішує id
    return (tariff.valid_from or date.min, str(tariff.id or ""))


def resolve_tariff(
    tariffs: Iterable[Tariff],
    key: TariffKey,
    as_of: date,
    *,
    end_date: Optional[date] = None,
    service_id: Optional[str] = None,
) -> ResolveOutcome:
    """
    Знаходить єдиний активний тариф для ключа на дату as_of.

    - 0 збігів  → NoTariffFound (з контекстом для "inserisci tariffa");
    - 1 збіг    → TariffFound;
    - >1 збігів → AmbiguousTariffMatch з детермінованим chosen
                  (найпізніший valid_from) + warning у лог.
    """
    if not str(key.client_id or "").strip():
        return NoTariffFound(
            client_id=key.client_id,
            service_type=key.service_type,
            service_point_id=key.service_point_id,
            fornitore_id=key.fornitore_id,
            start_date=as_of,
            end_date=end_date or as_of,
            reason="Cliente non indicato: impossibile cercare la tariffa.",
            service_id=service_id,
        )

    matches: List[Tariff] = [t for t in tariffs if tariff_matches(t, key, as_of)]

    if not matches:
        logger.info(
            "[TARIFFE] Тариф не знайдено client=%s punto=%s fornitore=%s tipo=%r data=%s",
            key.client_id,
            key.service_point_id,
            key.fornitore_id,
            key.service_type,
            as_of,
        )
        return NoTariffFound(
            client_id=key.client_id,
            service_type=key.service_type,
            service_point_id=key.service_point_id,
            fornitore_id=key.fornitore_id,
            start_date=as_of,
            end_date=end_date or as_of,
            reason=MISSING_TARIFF_REASON,
            service_id=service_id,
        )

    if len(matches) == 1:
        return TariffFound(tariff=matches[0])

    ordered = sorted(matches, key=_tie_break_key, reverse=True)
    chosen = ordered[0]
    logger.warning(
        "[TARIFFE] Перетин валідності: %d тарифів для client=%s punto=%s fornitore=%s tipo=%r "
        "на %s (ids=%s) — обрано %s (valid_from=%s)",
        len(matches),
        key.client_id,
        key.service_point_id,
        key.fornitore_id,
        key.service_type,
        as_of,
        [t.id for t in ordered],
        chosen.id,
        chosen.valid_from,
    )
    return AmbiguousTariffMatch(
        key=key,
        as_of=as_of,
        candidates=tuple(ordered),
        chosen=chosen,
        service_id=service_id,
    )
