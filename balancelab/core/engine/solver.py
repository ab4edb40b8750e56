"""
MassBalanceSolver — Итеративный расчёт баланса масс схемы.

Выполняет:
1. Распространение данных между потоками
2. Замыкание баланса питание = продукты
3. Расчёт оборудования (в порядке списка, не топологическом)
4. Повторное замыкание баланса
5. Нормировку составов на 100%
6. Проверку сходимости по ошибке компонентов

Состояния: propagating -> iterating -> converged | exhausted.
Несходимость — не ошибка, а диагностический флаг результата.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional, Union

from .closure import (
    apply_mass_balance_closure,
    compute_component_errors,
    compute_global_error,
    normalize_compositions,
)
from .coherence import coherence_issues, evaluate_coherence
from .equipment import Equipment, coerce_equipments
from .heuristics import (
    DEFAULT_HEURISTICS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE_PCT,
    BalanceHeuristics,
)
from .propagation import propagate_data
from .stream import DetailedStream, FlowLine, MineralComponent, active_components
from .topology import CircuitTopology
from .transfer import TransferModel, create_transfer_model

logger = logging.getLogger(__name__)


class SolverState(str, Enum):
    """Состояние итеративного расчёта."""

    PROPAGATING = "propagating"
    ITERATING = "iterating"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


@dataclass
class IterativeResult:
    """Диагностика балансового расчёта."""

    converged: bool
    iterations: int = 0
    global_error: float = 0.0  # %
    component_errors: dict[str, float] = field(default_factory=dict)  # comp_id -> %
    max_error: float = 0.0  # %
    coherence_issues: list[str] = field(default_factory=list)
    state: SolverState = SolverState.ITERATING
    log: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "converged": self.converged,
            "iterations": self.iterations,
            "global_error": self.global_error,
            "component_errors": dict(self.component_errors),
            "max_error": self.max_error,
            "coherence_issues": list(self.coherence_issues),
            "state": self.state.value,
            "log": list(self.log),
        }


@dataclass
class MassBalanceSolution:
    """Результат solve_mass_balance()."""

    streams: list[DetailedStream]
    result: IterativeResult
    coherence_report: list[str] = field(default_factory=list)
    propagated_flow_lines: list[FlowLine] = field(default_factory=list)
    execution_time_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "streams": [s.to_dict() for s in self.streams],
            "result": self.result.to_dict(),
            "coherence_report": list(self.coherence_report),
            "propagated_flow_lines": [fl.to_dict() for fl in self.propagated_flow_lines],
            "execution_time_ms": round(self.execution_time_ms, 2),
        }


def coerce_flow_lines(items: Iterable[Union[FlowLine, dict[str, Any]]]) -> list[FlowLine]:
    return [item if isinstance(item, FlowLine) else FlowLine.from_dict(item) for item in items]


def coerce_components(
    items: Iterable[Union[MineralComponent, dict[str, Any]]],
) -> list[MineralComponent]:
    return [
        item if isinstance(item, MineralComponent) else MineralComponent.from_dict(item)
        for item in items
    ]


class MassBalanceSolver:
    """
    Итеративный решатель баланса масс.

    Использование:
        solver = MassBalanceSolver(equipments, flow_lines, components)
        solution = solver.solve()

    Каждый вызов solve() работает с собственными копиями потоков;
    состояние между вызовами не сохраняется.
    """

    def __init__(
        self,
        equipments: list[Equipment],
        flow_lines: list[FlowLine],
        mineral_components: list[MineralComponent],
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        tolerance: float = DEFAULT_TOLERANCE_PCT,
        heuristics: Optional[BalanceHeuristics] = None,
    ):
        self.equipments = coerce_equipments(equipments)
        self.flow_lines = coerce_flow_lines(flow_lines)
        self.mineral_components = coerce_components(mineral_components)
        self.max_iterations = max_iterations
        self.tolerance = tolerance
        self.heuristics = heuristics or DEFAULT_HEURISTICS
        self.components = active_components(self.mineral_components)

    def solve(self) -> MassBalanceSolution:
        """Выполнить расчёт до сходимости или исчерпания итераций."""
        start_time = time.perf_counter()
        log: list[str] = []

        # 1. Распространение данных
        propagated = propagate_data(self.flow_lines, self.mineral_components, self.heuristics)
        topology = CircuitTopology(equipments=self.equipments, flow_lines=propagated)
        models = {
            eq.id: create_transfer_model(eq, self.components, self.heuristics)
            for eq in self.equipments
        }

        streams = [
            DetailedStream.from_flow_line(
                fl,
                self.components,
                default_density=self.heuristics.default_density,
                default_particle_size=self.heuristics.default_particle_size_um,
            )
            for fl in propagated
        ]
        log.append(f"Data propagation completed: {len(streams)} streams initialized")

        state = SolverState.ITERATING
        iteration = 0
        max_error = 0.0

        while iteration < self.max_iterations:
            iteration += 1

            # 2. Замыкание питание = продукты
            streams = apply_mass_balance_closure(
                streams, propagated, self.components, self.heuristics
            )

            # 3. Расчёт оборудования
            streams = self._run_equipment(streams, topology, models)

            # 4. Повторное замыкание: гасим дисбаланс от оборудования
            streams = apply_mass_balance_closure(
                streams, propagated, self.components, self.heuristics
            )

            # 5. Нормировка составов
            streams = normalize_compositions(streams, self.components, self.heuristics)

            # 6. Сходимость
            errors = compute_component_errors(streams, propagated, self.components)
            max_error = max(errors.values(), default=0.0)
            log.append(f"Iteration {iteration}: max error = {max_error:.6f}%")
            logger.debug(f"Iteration {iteration}: max_error = {max_error:.6f}%")

            if max_error < self.tolerance:
                state = SolverState.CONVERGED
                log.append(f"Balance closure achieved in {iteration} iteration(s)")
                break

        if state != SolverState.CONVERGED:
            state = SolverState.EXHAUSTED
            log.append(
                f"Did not converge after {self.max_iterations} iterations "
                f"(max_error={max_error:.6f}%)"
            )
            logger.warning(
                f"Mass balance did not converge after {self.max_iterations} iterations "
                f"(max_error={max_error:.6f}%)"
            )
        else:
            logger.info(f"Mass balance converged in {iteration} iteration(s)")

        # 7. Итоговая диагностика
        report = evaluate_coherence(streams, self.components, self.heuristics)
        component_errors = compute_component_errors(streams, propagated, self.components)

        result = IterativeResult(
            converged=state == SolverState.CONVERGED,
            iterations=iteration,
            global_error=compute_global_error(streams, propagated) if streams else 0.0,
            component_errors=component_errors,
            max_error=max(component_errors.values(), default=0.0),
            coherence_issues=coherence_issues(report),
            state=state,
            log=log,
        )

        return MassBalanceSolution(
            streams=streams,
            result=result,
            coherence_report=report,
            propagated_flow_lines=propagated,
            execution_time_ms=(time.perf_counter() - start_time) * 1000,
        )

    def _run_equipment(
        self,
        streams: list[DetailedStream],
        topology: CircuitTopology,
        models: dict[str, TransferModel],
    ) -> list[DetailedStream]:
        """
        Рассчитать оборудование в порядке списка.

        Выходы передаточной функции записываются в выходные линии узла
        по порядку; последующие узлы видят уже обновлённые потоки.
        """
        streams = list(streams)

        for equipment in self.equipments:
            inputs = [streams[i] for i in topology.input_indices(equipment.id)]
            outputs = models[equipment.id].apply(inputs)
            if not outputs:
                continue

            for position, idx in enumerate(topology.output_indices(equipment.id)):
                if position >= len(outputs):
                    break
                line = topology.flow_lines[idx]
                streams[idx] = outputs[position].copy(stream_id=line.id, name=line.name)

        return streams


def solve_mass_balance(
    equipments: list[Equipment],
    flow_lines: list[FlowLine],
    mineral_components: list[MineralComponent],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE_PCT,
    heuristics: Optional[BalanceHeuristics] = None,
) -> MassBalanceSolution:
    """
    Удобная функция для балансового расчёта.

    Args:
        equipments: оборудование (объекты или словари канвы)
        flow_lines: линии потоков
        mineral_components: библиотека компонентов (активные участвуют)
        max_iterations: предел итераций
        tolerance: допуск сходимости по ошибке компонентов, %

    Returns:
        MassBalanceSolution с потоками, диагностикой и отчётом о правдоподобности
    """
    solver = MassBalanceSolver(
        equipments,
        flow_lines,
        mineral_components,
        max_iterations=max_iterations,
        tolerance=tolerance,
        heuristics=heuristics,
    )
    return solver.solve()
