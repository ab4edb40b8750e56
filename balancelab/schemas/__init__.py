from .balance import (
    AnalysisResponse,
    BalanceRequest,
    BalanceResponse,
    FlowsheetRequest,
    PropagateResponse,
    SensitivityRequest,
    SensitivityResponse,
    SimulationRequest,
    SimulationResponse,
    TopologyReport,
)

__all__ = [
    "FlowsheetRequest",
    "BalanceRequest",
    "SimulationRequest",
    "SensitivityRequest",
    "PropagateResponse",
    "BalanceResponse",
    "SimulationResponse",
    "AnalysisResponse",
    "SensitivityResponse",
    "TopologyReport",
]
