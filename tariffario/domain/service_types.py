from __future__ import annotations

from typing import Dict, Optional

from tariffario.domain.models import UnitaMisura


PIANTONAMENTO = "Piantonamento"
SERVIZI_FIDUCIARI = "Servizi Fiduciari"
ISPEZIONI = "Ispezioni"
BONIFICHE = "Bonifiche"
GESTIONE_CHIAVI = "Gestione Chiavi"
APERTURA_CHIUSURA = "Apertura/Chiusura"
INTERVENTO = "Intervento"

SERVICE_TYPE_UNITA: Dict[str, UnitaMisura] = {
    PIANTONAMENTO: UnitaMisura.ORA,
    SERVIZI_FIDUCIARI: UnitaMisura.ORA,
    ISPEZIONI: UnitaMisura.INTERVENTO,
    BONIFICHE: UnitaMisura.INTERVENTO,
    GESTIONE_CHIAVI: UnitaMisura.INTERVENTO,
    APERTURA_CHIUSURA: UnitaMisura.INTERVENTO,
    INTERVENTO: UnitaMisura.INTERVENTO,
    "Disponibilità Pronto Intervento": UnitaMisura.MESE,
    "Videosorveglianza": UnitaMisura.MESE,
    "Impianto Allarme": UnitaMisura.MESE,
    "Bidirezionale": UnitaMisura.MESE,
    "Monodirezionale": UnitaMisura.MESE,
    "Tenuta Chiavi": UnitaMisura.MESE,
}


def normalize_service_type(service_type: Optional[str]) -> str:
    return " ".join(str(service_type or "").split())


def unita_misura_for_service(service_type: Optional[str]) -> Optional[UnitaMisura]:
    """Одиниця виміру за замовчуванням для типу сервізу; None для невідомих."""
    return SERVICE_TYPE_UNITA.get(normalize_service_type(service_type))
