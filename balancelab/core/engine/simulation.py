"""
Simulation — Фасад расчёта схемы для канвы.

Если есть активные компоненты — полный итеративный баланс
(solve_mass_balance) плюс показатели по каждому аппарату.
Без компонентов — упрощённый legacy-расчёт от одного потока питания.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .calculators import crusher_product_size, mill_power
from .equipment import (
    CrusherEquipment,
    Equipment,
    EquipmentType,
    FlotationEquipment,
    MillEquipment,
    MixerEquipment,
    coerce_equipments,
)
from .heuristics import (
    DEFAULT_FLOW_RATE_TPH,
    DEFAULT_HEURISTICS,
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_ORE_DENSITY,
    DEFAULT_PARTICLE_SIZE_UM,
    DEFAULT_SOLID_PERCENT,
    DEFAULT_TOLERANCE_PCT,
    BalanceHeuristics,
)
from .solver import IterativeResult, coerce_components, coerce_flow_lines, solve_mass_balance
from .stream import DetailedStream, FlowLine, MaterialStream, MineralComponent, active_components
from .topology import CircuitTopology

logger = logging.getLogger(__name__)

LEGACY_FEED_PARTICLE_SIZE_UM = 10000.0  # 10 мм
LEGACY_CRUSHER_YIELD = 0.95
FLOTATION_POWER_PER_CELL_KW = 50.0
RECOVERY_WARNING_THRESHOLD_PCT = 5.0
DEFAULT_EFFICIENCY_PCT = 90.0
DEFAULT_POWER_KW = 100.0

AnyStream = Union[DetailedStream, MaterialStream]


@dataclass
class SimulationConfig:
    """Параметры расчёта (питание для legacy-режима и настройки решателя)."""

    feed_rate: float = DEFAULT_FLOW_RATE_TPH
    solid_percent: float = DEFAULT_SOLID_PERCENT
    ore_density: float = DEFAULT_ORE_DENSITY
    max_iterations: int = DEFAULT_MAX_ITERATIONS
    tolerance: float = DEFAULT_TOLERANCE_PCT

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "SimulationConfig":
        data = data or {}
        return cls(
            feed_rate=data.get("feedRate") or DEFAULT_FLOW_RATE_TPH,
            solid_percent=data.get("solidPercent") or DEFAULT_SOLID_PERCENT,
            ore_density=data.get("oreDensity") or DEFAULT_ORE_DENSITY,
            max_iterations=data.get("maxIterations") or DEFAULT_MAX_ITERATIONS,
            tolerance=data.get("tolerance") or DEFAULT_TOLERANCE_PCT,
        )


@dataclass
class SimulationResult:
    """Показатели одного аппарата."""

    equipment_id: str
    equipment: str  # отображаемое имя
    inputs: list[AnyStream] = field(default_factory=list)
    outputs: list[AnyStream] = field(default_factory=list)
    efficiency: float = 0.0  # %
    power_consumption: float = 0.0  # кВт
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "equipment_id": self.equipment_id,
            "equipment": self.equipment,
            "inputs": [s.to_dict() for s in self.inputs],
            "outputs": [s.to_dict() for s in self.outputs],
            "efficiency": self.efficiency,
            "power_consumption": self.power_consumption,
            "warnings": list(self.warnings),
        }


@dataclass
class SimulationRun:
    """Результат run_simulation()."""

    mode: str  # "iterative" | "legacy"
    results: list[SimulationResult] = field(default_factory=list)
    iterative_result: Optional[IterativeResult] = None
    detailed_streams: list[DetailedStream] = field(default_factory=list)
    coherence_report: list[str] = field(default_factory=list)

    @property
    def total_power_kw(self) -> float:
        return sum(r.power_consumption for r in self.results)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode,
            "results": [r.to_dict() for r in self.results],
            "total_power_kw": self.total_power_kw,
            "iterative_result": self.iterative_result.to_dict() if self.iterative_result else None,
            "detailed_streams": [s.to_dict() for s in self.detailed_streams],
            "coherence_report": list(self.coherence_report),
        }


def _main_component_id(
    components: list[MineralComponent], heuristics: BalanceHeuristics
) -> Optional[str]:
    ids = [c.id for c in components]
    if heuristics.main_component_id in ids:
        return heuristics.main_component_id
    return ids[0] if ids else None


def _equipment_performance(
    equipment: Equipment,
    inputs: list[DetailedStream],
    outputs: list[DetailedStream],
    main_component_id: Optional[str],
) -> SimulationResult:
    result = SimulationResult(
        equipment_id=equipment.id,
        equipment=equipment.label,
        inputs=inputs,
        outputs=outputs,
        efficiency=DEFAULT_EFFICIENCY_PCT,
        power_consumption=DEFAULT_POWER_KW,
    )

    if isinstance(equipment, CrusherEquipment):
        result.power_consumption = equipment.power_kw
        result.efficiency = equipment.efficiency

    elif isinstance(equipment, MillEquipment):
        if inputs:
            result.power_consumption = mill_power(
                equipment.diameter_m,
                equipment.length_m,
                equipment.ball_load_pct,
                equipment.speed_pct,
                inputs[0].flow_rate,
            )

    elif isinstance(equipment, MixerEquipment):
        result.power_consumption = equipment.power_kw
        result.efficiency = equipment.efficiency
        if len(inputs) < equipment.number_of_inputs:
            result.warnings.append(
                f"Mixer has {len(inputs)} connected input(s) "
                f"(expected: {equipment.number_of_inputs})"
            )

    elif isinstance(equipment, FlotationEquipment):
        result.power_consumption = equipment.number_of_cells * FLOTATION_POWER_PER_CELL_KW
        result.efficiency = equipment.recovery_pct

        if inputs and len(outputs) >= 2 and main_component_id:
            feed_mass = inputs[0].component_mass.get(main_component_id, 0.0)
            if feed_mass > 0:
                conc_mass = outputs[0].component_mass.get(main_component_id, 0.0)
                actual = conc_mass / feed_mass * 100.0
                result.efficiency = actual
                if abs(actual - equipment.recovery_pct) > RECOVERY_WARNING_THRESHOLD_PCT:
                    result.warnings.append(
                        f"Actual recovery ({actual:.1f}%) differs from target "
                        f"({equipment.recovery_pct:g}%)"
                    )

    return result


def _run_iterative(
    equipments: list[Equipment],
    flow_lines: list[FlowLine],
    components: list[MineralComponent],
    config: SimulationConfig,
    heuristics: BalanceHeuristics,
) -> SimulationRun:
    solution = solve_mass_balance(
        equipments,
        flow_lines,
        components,
        max_iterations=config.max_iterations,
        tolerance=config.tolerance,
        heuristics=heuristics,
    )
    topology = CircuitTopology(equipments=equipments, flow_lines=solution.propagated_flow_lines)
    main_id = _main_component_id(active_components(components), heuristics)

    results = []
    for equipment in equipments:
        inputs = [solution.streams[i] for i in topology.input_indices(equipment.id)]
        outputs = [solution.streams[i] for i in topology.output_indices(equipment.id)]
        results.append(_equipment_performance(equipment, inputs, outputs, main_id))

    return SimulationRun(
        mode="iterative",
        results=results,
        iterative_result=solution.result,
        detailed_streams=solution.streams,
        coherence_report=solution.coherence_report,
    )


def _run_legacy(equipments: list[Equipment], config: SimulationConfig) -> SimulationRun:
    """Упрощённый расчёт: каждый аппарат получает одно и то же питание."""
    feed = MaterialStream(
        flow_rate=config.feed_rate,
        solid_percent=config.solid_percent,
        density=config.ore_density,
        particle_size=LEGACY_FEED_PARTICLE_SIZE_UM,
        mineral_content={"valuable": 5.0, "gangue": 95.0},
    )

    results = []
    for equipment in equipments:
        result = SimulationResult(
            equipment_id=equipment.id, equipment=equipment.label, inputs=[feed]
        )

        if equipment.kind == EquipmentType.CRUSHER:
            result.outputs.append(
                feed.copy(
                    particle_size=crusher_product_size(
                        feed.particle_size, equipment.reduction_ratio
                    ),
                    flow_rate=feed.flow_rate * LEGACY_CRUSHER_YIELD,
                )
            )
            result.efficiency = 95.0
            result.power_consumption = equipment.power_kw
        elif equipment.kind == EquipmentType.MILL:
            result.outputs.append(feed.copy(particle_size=DEFAULT_PARTICLE_SIZE_UM))
            result.efficiency = 90.0
            result.power_consumption = mill_power(
                equipment.diameter_m,
                equipment.length_m,
                equipment.ball_load_pct,
                equipment.speed_pct,
                feed.flow_rate,
            )
        else:
            result.outputs.append(feed.copy())
            result.efficiency = 85.0
            result.power_consumption = DEFAULT_POWER_KW

        results.append(result)

    return SimulationRun(mode="legacy", results=results)


def run_simulation(
    equipments: list[Equipment],
    flow_lines: list[FlowLine],
    config: Optional[SimulationConfig] = None,
    mineral_components: Optional[list[MineralComponent]] = None,
    heuristics: Optional[BalanceHeuristics] = None,
) -> SimulationRun:
    """
    Выполнить расчёт схемы.

    Args:
        equipments: оборудование (объекты или словари канвы)
        flow_lines: линии потоков
        config: параметры питания и решателя
        mineral_components: библиотека компонентов; без активных — legacy-режим

    Returns:
        SimulationRun с показателями по аппаратам
    """
    config = config or SimulationConfig()
    heuristics = heuristics or DEFAULT_HEURISTICS
    equipments = coerce_equipments(equipments)
    components = coerce_components(mineral_components or [])

    if not active_components(components):
        logger.info(f"No active components: legacy simulation for {len(equipments)} unit(s)")
        return _run_legacy(equipments, config)

    logger.info(
        f"Iterative simulation: {len(equipments)} unit(s), {len(flow_lines)} stream(s)"
    )
    return _run_iterative(
        equipments, coerce_flow_lines(flow_lines), components, config, heuristics
    )
