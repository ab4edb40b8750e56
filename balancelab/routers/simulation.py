"""
Simulation Router — API балансового расчёта схем.

Принимает снимок схемы с канвы (оборудование, линии потоков,
минеральные компоненты) и возвращает сведённый баланс масс.
"""

from balancelab.core.engine import (
    CircuitTopology,
    analyze_circuit_balance,
    perform_sensitivity_analysis,
    propagate_data,
    run_simulation,
    solve_mass_balance,
)
from balancelab.core.exceptions import InvalidInput, raise_bad_request, raise_internal_error
from balancelab.core.logging import get_logger
from balancelab.core.rate_limit import RATE_LIMITS, limiter
from balancelab.schemas.balance import (
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
from fastapi import APIRouter, Request

router = APIRouter(prefix="/simulation", tags=["simulation"])
logger = get_logger(__name__)


@router.post("/propagate", response_model=PropagateResponse)
@limiter.limit(RATE_LIMITS["analysis_operations"])
def propagate(request: Request, payload: FlowsheetRequest) -> dict:
    """
    Заполнить недостающие данные потоков по соседним линиям.

    Возвращает линии в формате канвы; исходные данные не меняются.
    """
    lines = propagate_data(payload.domain_flow_lines(), payload.domain_components())
    return {"flowLines": [fl.to_dict() for fl in lines]}


@router.post("/balance", response_model=BalanceResponse)
@limiter.limit(RATE_LIMITS["balance_operations"])
def balance(request: Request, payload: BalanceRequest) -> dict:
    """
    Итеративный баланс масс схемы.

    Несходимость не является ошибкой: смотрите `result.converged`
    и `result.state` (`converged` | `exhausted`).

    Rate limit: 30 requests per minute
    """
    if not payload.flow_lines:
        raise_bad_request("No flow lines provided", field="flowLines")

    try:
        solution = solve_mass_balance(
            payload.domain_equipments(),
            payload.domain_flow_lines(),
            payload.domain_components(),
            **payload.solver_options(),
        )
    except Exception as e:
        logger.exception("balance_failed", error=str(e))
        raise_internal_error("solve mass balance", e)

    logger.info(
        "balance_completed",
        converged=solution.result.converged,
        iterations=solution.result.iterations,
        max_error=solution.result.max_error,
        duration_ms=round(solution.execution_time_ms, 2),
    )
    return solution.to_dict()


@router.post("/run", response_model=SimulationResponse)
@limiter.limit(RATE_LIMITS["balance_operations"])
def run(request: Request, payload: SimulationRequest) -> dict:
    """
    Полный расчёт: баланс плюс показатели оборудования.

    Без активных компонентов выполняется упрощённый legacy-режим
    от питания из `config`.
    """
    try:
        simulation = run_simulation(
            payload.domain_equipments(),
            payload.domain_flow_lines(),
            payload.to_config(),
            payload.domain_components(),
        )
    except Exception as e:
        logger.exception("simulation_failed", error=str(e))
        raise_internal_error("run simulation", e)

    logger.info(
        "simulation_completed",
        mode=simulation.mode,
        units=len(simulation.results),
        total_power_kw=round(simulation.total_power_kw, 1),
    )
    return simulation.to_dict()


@router.post("/analyze", response_model=AnalysisResponse)
@limiter.limit(RATE_LIMITS["analysis_operations"])
def analyze(request: Request, payload: FlowsheetRequest) -> dict:
    """Разовый анализ баланса по исходным линиям (без подгонки)."""
    result = analyze_circuit_balance(
        payload.domain_equipments(),
        payload.domain_flow_lines(),
        payload.domain_components(),
    )
    return result.to_dict()


@router.post("/sensitivity", response_model=SensitivityResponse)
@limiter.limit(RATE_LIMITS["sensitivity_operations"])
def sensitivity(request: Request, payload: SensitivityRequest) -> dict:
    """Чувствительность извлечения и невязки к расходу каждой линии."""
    try:
        entries = perform_sensitivity_analysis(
            payload.domain_flow_lines(),
            payload.domain_components(),
            perturbation_pct=payload.perturbation,
        )
    except InvalidInput as e:
        raise_bad_request(e.message, field="perturbation")
    return {"entries": [entry.to_dict() for entry in entries]}


@router.post("/validate", response_model=TopologyReport)
@limiter.limit(RATE_LIMITS["analysis_operations"])
def validate(request: Request, payload: FlowsheetRequest) -> TopologyReport:
    """
    Структурная проверка схемы.

    `processing_order` — порядок, в котором решатель считает
    оборудование (порядок списка). `topological_order` —
    только диагностика.
    """
    equipments = payload.domain_equipments()
    flow_lines = payload.domain_flow_lines()

    topology = CircuitTopology(equipments=equipments, flow_lines=flow_lines)
    issues = topology.validate()
    order, recycles = topology.topological_order()
    if issues:
        logger.info("flowsheet_issues_found", count=len(issues))

    return TopologyReport(
        is_valid=not issues,
        issues=issues,
        processing_order=[eq.id for eq in equipments],
        topological_order=order,
        recycle_streams=recycles,
        feed_streams=[flow_lines[i].id for i in topology.feed_indices()],
        product_streams=[flow_lines[i].id for i in topology.product_indices()],
    )
