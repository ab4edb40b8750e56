"""
Mass Balance Engine

Ядро балансового расчёта схем обогащения: распространение данных,
передаточные функции оборудования, замыкание баланса, итеративный решатель.
"""

from .analysis import (
    BalanceResult,
    StreamBalance,
    analyze_circuit_balance,
    calculate_metallurgical_recovery,
    correct_stream_imbalances,
    perform_sensitivity_analysis,
    validate_component_balance,
    validate_global_mass_balance,
)
from .coherence import evaluate_coherence
from .equipment import EquipmentType, parse_equipment
from .heuristics import DEFAULT_HEURISTICS, BalanceHeuristics
from .propagation import propagate_data
from .simulation import SimulationConfig, SimulationRun, run_simulation
from .solver import IterativeResult, MassBalanceSolution, MassBalanceSolver, SolverState, solve_mass_balance
from .stream import DetailedStream, FlowLine, MaterialStream, MineralComponent
from .topology import CircuitTopology

__all__ = [
    "BalanceHeuristics",
    "DEFAULT_HEURISTICS",
    "MineralComponent",
    "FlowLine",
    "DetailedStream",
    "MaterialStream",
    "EquipmentType",
    "parse_equipment",
    "CircuitTopology",
    "propagate_data",
    "MassBalanceSolver",
    "MassBalanceSolution",
    "IterativeResult",
    "SolverState",
    "solve_mass_balance",
    "evaluate_coherence",
    "StreamBalance",
    "BalanceResult",
    "validate_global_mass_balance",
    "validate_component_balance",
    "calculate_metallurgical_recovery",
    "correct_stream_imbalances",
    "analyze_circuit_balance",
    "perform_sensitivity_analysis",
    "SimulationConfig",
    "SimulationRun",
    "run_simulation",
]
