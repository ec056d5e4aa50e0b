from tariffario.services.analysis import AnalysisReport, ServiceSummary, build_analysis, run_analysis
from tariffario.services.cost_service import TariffCostService, calculate_service_cost
from tariffario.services.db_repo import DbConnectionManager, TariffFilter, TariffRepository
from tariffario.services.reference_cache import ReferenceDataCache

__all__ = [
    "AnalysisReport",
    "ServiceSummary",
    "build_analysis",
    "run_analysis",
    "TariffCostService",
    "calculate_service_cost",
    "DbConnectionManager",
    "TariffFilter",
    "TariffRepository",
    "ReferenceDataCache",
]
