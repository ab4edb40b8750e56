"""
Circuit Analysis — Разовый анализ баланса по исходным данным схемы.

В отличие от solver, ничего не подгоняет: берёт линии потоков как есть
и оценивает невязку питание/продукты, извлечение и степень обогащения.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from ..exceptions import InvalidInput
from .equipment import Equipment
from .stream import FlowLine, MineralComponent, active_components

logger = logging.getLogger(__name__)

BALANCE_VALID_THRESHOLD_PCT = 0.1
HIGH_ERROR_THRESHOLD_PCT = 0.5
LOW_RECOVERY_THRESHOLD_PCT = 50.0
LOW_ENRICHMENT_THRESHOLD = 2.0

CONCENTRATE_MARKERS = ("conc", "final")
TAILING_MARKERS = ("tail", "rejeito")


@dataclass
class StreamBalance:
    """Поток в терминах баланса: общий расход, твёрдое, массы компонентов."""

    stream_id: str
    stream_name: str = ""
    mass_flow: float = 0.0  # т/ч
    solid_flow: float = 0.0  # т/ч
    component_mass: dict[str, float] = field(default_factory=dict)
    component_grades: dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_flow_line(cls, flow_line: FlowLine, component_ids: Iterable[str]) -> "StreamBalance":
        solid_flow = flow_line.flow_rate * flow_line.solid_percent / 100.0
        return cls(
            stream_id=flow_line.id,
            stream_name=flow_line.name,
            mass_flow=flow_line.flow_rate,
            solid_flow=solid_flow,
            component_mass={
                comp_id: solid_flow * (flow_line.component_grades.get(comp_id) or 0.0) / 100.0
                for comp_id in component_ids
            },
            component_grades=dict(flow_line.component_grades),
        )

    def to_dict(self) -> dict:
        return {
            "stream_id": self.stream_id,
            "stream_name": self.stream_name,
            "mass_flow": self.mass_flow,
            "solid_flow": self.solid_flow,
            "component_mass": dict(self.component_mass),
            "component_grades": dict(self.component_grades),
        }


@dataclass
class BalanceCheck:
    is_valid: bool
    error: float  # %
    details: str

    def to_dict(self) -> dict:
        return {"is_valid": self.is_valid, "error": self.error, "details": self.details}


@dataclass
class MetallurgicalIndices:
    recovery: float  # %
    enrichment_ratio: float
    concentration_ratio: float

    def to_dict(self) -> dict:
        return {
            "recovery": self.recovery,
            "enrichment_ratio": self.enrichment_ratio,
            "concentration_ratio": self.concentration_ratio,
        }


@dataclass
class BalanceResult:
    """Итог analyze_circuit_balance()."""

    is_valid: bool
    global_error: float
    component_errors: dict[str, float] = field(default_factory=dict)
    mass_recovery: dict[str, float] = field(default_factory=dict)
    enrichment_ratio: dict[str, float] = field(default_factory=dict)
    concentration_ratio: float = 0.0
    discrepancies: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "global_error": self.global_error,
            "component_errors": dict(self.component_errors),
            "mass_recovery": dict(self.mass_recovery),
            "enrichment_ratio": dict(self.enrichment_ratio),
            "concentration_ratio": self.concentration_ratio,
            "discrepancies": list(self.discrepancies),
            "recommendations": list(self.recommendations),
        }


@dataclass
class SensitivityEntry:
    parameter: str
    base_value: float
    perturbed_value: float
    impact_on_recovery: dict[str, float] = field(default_factory=dict)
    impact_on_balance: float = 0.0

    def to_dict(self) -> dict:
        return {
            "parameter": self.parameter,
            "base_value": self.base_value,
            "perturbed_value": self.perturbed_value,
            "impact_on_recovery": dict(self.impact_on_recovery),
            "impact_on_balance": self.impact_on_balance,
        }


def _error_pct(total_in: float, total_out: float) -> float:
    return abs(total_in - total_out) / total_in * 100.0 if total_in > 0 else 0.0


def validate_global_mass_balance(
    inputs: list[StreamBalance], outputs: list[StreamBalance]
) -> BalanceCheck:
    """
    Глобальный баланс: общий расход и твёрдое.

    Ошибка — максимум из двух относительных невязок; баланс валиден при < 0.1%.
    """
    mass_in = sum(s.mass_flow for s in inputs)
    mass_out = sum(s.mass_flow for s in outputs)
    solids_in = sum(s.solid_flow for s in inputs)
    solids_out = sum(s.solid_flow for s in outputs)

    mass_error = _error_pct(mass_in, mass_out)
    solids_error = _error_pct(solids_in, solids_out)
    error = max(mass_error, solids_error)

    details = (
        f"Total mass: in {mass_in:.2f} t/h -> out {mass_out:.2f} t/h (error {mass_error:.3f}%)\n"
        f"Solids: in {solids_in:.2f} t/h -> out {solids_out:.2f} t/h (error {solids_error:.3f}%)"
    )
    return BalanceCheck(
        is_valid=error < BALANCE_VALID_THRESHOLD_PCT, error=error, details=details
    )


def validate_component_balance(
    inputs: list[StreamBalance],
    outputs: list[StreamBalance],
    component_ids: Iterable[str],
) -> dict[str, BalanceCheck]:
    """Баланс по каждому компоненту (вход vs выход, т/ч)."""
    results: dict[str, BalanceCheck] = {}

    for comp_id in component_ids:
        total_in = sum(s.component_mass.get(comp_id, 0.0) for s in inputs)
        total_out = sum(s.component_mass.get(comp_id, 0.0) for s in outputs)
        error = _error_pct(total_in, total_out)
        results[comp_id] = BalanceCheck(
            is_valid=error < BALANCE_VALID_THRESHOLD_PCT,
            error=error,
            details=(
                f"{comp_id}: in {total_in:.3f} t/h -> out {total_out:.3f} t/h "
                f"(error {error:.3f}%)"
            ),
        )

    return results


def calculate_metallurgical_recovery(
    feeds: list[StreamBalance],
    concentrates: list[StreamBalance],
    tailings: list[StreamBalance],
    component_ids: Iterable[str],
) -> dict[str, MetallurgicalIndices]:
    """
    Извлечение, степень обогащения и степень сокращения по компонентам.

    recovery = масса в концентрате / масса в питании * 100
    enrichment = содержание в концентрате / содержание в питании
    concentration = расход питания / расход концентрата

    Хвосты в формулах не участвуют, параметр оставлен для симметрии вызова.
    """
    feed_solids = sum(s.solid_flow for s in feeds)
    conc_solids = sum(s.solid_flow for s in concentrates)
    feed_mass = sum(s.mass_flow for s in feeds)
    conc_mass = sum(s.mass_flow for s in concentrates)
    concentration_ratio = feed_mass / conc_mass if conc_mass > 0 else 0.0

    results: dict[str, MetallurgicalIndices] = {}
    for comp_id in component_ids:
        feed_comp = sum(s.component_mass.get(comp_id, 0.0) for s in feeds)
        conc_comp = sum(s.component_mass.get(comp_id, 0.0) for s in concentrates)

        feed_grade = feed_comp / feed_solids * 100.0 if feed_solids > 0 else 0.0
        conc_grade = conc_comp / conc_solids * 100.0 if conc_solids > 0 else 0.0

        results[comp_id] = MetallurgicalIndices(
            recovery=conc_comp / feed_comp * 100.0 if feed_comp > 0 else 0.0,
            enrichment_ratio=conc_grade / feed_grade if feed_grade > 0 else 0.0,
            concentration_ratio=concentration_ratio,
        )

    return results


def correct_stream_imbalances(
    streams: list[StreamBalance],
    target_total_mass: float,
) -> list[StreamBalance]:
    """
    Пропорционально масштабировать потоки до целевого общего расхода.

    Содержания сохраняются; возвращаются новые объекты.
    """
    current_total = sum(s.mass_flow for s in streams)
    if current_total == 0:
        return [StreamBalance(**s.to_dict()) for s in streams]

    factor = target_total_mass / current_total
    return [
        StreamBalance(
            stream_id=s.stream_id,
            stream_name=s.stream_name,
            mass_flow=s.mass_flow * factor,
            solid_flow=s.solid_flow * factor,
            component_mass={k: v * factor for k, v in s.component_mass.items()},
            component_grades=dict(s.component_grades),
        )
        for s in streams
    ]


def _name_matches(stream: StreamBalance, markers: tuple[str, ...]) -> bool:
    name = stream.stream_name.lower()
    return any(marker in name for marker in markers)


def analyze_circuit_balance(
    equipments: Optional[list[Equipment]],
    flow_lines: list[FlowLine],
    mineral_components: Iterable[MineralComponent],
) -> BalanceResult:
    """
    Комплексный анализ баланса схемы по исходным линиям потоков.

    Концентраты распознаются по имени ("conc", "final"), хвосты —
    по "tail" / "rejeito". Если концентратов не найдено, извлечение
    считается по всем продуктам схемы.

    equipments в расчёте не участвуют: анализ опирается только на линии.
    """
    component_ids = [c.id for c in active_components(mineral_components)]
    streams = [StreamBalance.from_flow_line(fl, component_ids) for fl in flow_lines]

    inputs = [s for s, fl in zip(streams, flow_lines) if fl.is_feed]
    outputs = [s for s, fl in zip(streams, flow_lines) if fl.is_product]

    global_check = validate_global_mass_balance(inputs, outputs)
    component_checks = validate_component_balance(inputs, outputs, component_ids)

    concentrates = [s for s in streams if _name_matches(s, CONCENTRATE_MARKERS)]
    tailings = [s for s in streams if _name_matches(s, TAILING_MARKERS)]
    indices = calculate_metallurgical_recovery(
        inputs, concentrates or outputs, tailings, component_ids
    )

    result = BalanceResult(
        is_valid=global_check.is_valid and all(c.is_valid for c in component_checks.values()),
        global_error=global_check.error,
    )

    for comp_id in component_ids:
        check = component_checks[comp_id]
        index = indices[comp_id]
        result.component_errors[comp_id] = check.error
        result.mass_recovery[comp_id] = index.recovery
        result.enrichment_ratio[comp_id] = index.enrichment_ratio
        result.concentration_ratio = max(result.concentration_ratio, index.concentration_ratio)

        if not check.is_valid:
            result.discrepancies.append(f"{comp_id}: mass balance error {check.error:.3f}%")
        if check.error > HIGH_ERROR_THRESHOLD_PCT:
            result.recommendations.append(
                f"Check {comp_id} measurements: high error ({check.error:.2f}%)"
            )
        if index.recovery < LOW_RECOVERY_THRESHOLD_PCT:
            result.recommendations.append(
                f"Low {comp_id} recovery ({index.recovery:.1f}%): review operating parameters"
            )
        if index.enrichment_ratio < LOW_ENRICHMENT_THRESHOLD:
            result.recommendations.append(
                f"Low enrichment ratio for {comp_id} ({index.enrichment_ratio:.2f}): "
                f"optimise the concentration stage"
            )

    if not global_check.is_valid:
        result.discrepancies.insert(
            0, f"Global balance: total mass error {global_check.error:.3f}%"
        )
        result.recommendations.insert(0, "Check flow-rate measurements on all streams")

    if not inputs:
        result.recommendations.append("Define feed streams in the flowsheet")
    if not outputs:
        result.recommendations.append("Define product streams in the flowsheet")

    logger.debug(
        f"Circuit analysis: valid={result.is_valid}, global_error={result.global_error:.4f}%"
    )
    return result


def perform_sensitivity_analysis(
    flow_lines: list[FlowLine],
    mineral_components: Iterable[MineralComponent],
    perturbation_pct: float = 5.0,
) -> list[SensitivityEntry]:
    """
    Чувствительность извлечения и невязки к расходу каждой линии.

    Каждая линия по очереди увеличивается на perturbation_pct процентов,
    остальные не меняются.

    Raises:
        InvalidInput: если perturbation_pct <= 0
    """
    if perturbation_pct <= 0:
        raise InvalidInput(
            "Perturbation must be positive", details={"perturbation_pct": perturbation_pct}
        )

    components = list(mineral_components)
    component_ids = [c.id for c in active_components(components)]
    base = analyze_circuit_balance(None, flow_lines, components)

    entries: list[SensitivityEntry] = []
    for i, line in enumerate(flow_lines):
        perturbed_rate = line.flow_rate * (1 + perturbation_pct / 100.0)
        perturbed_lines = list(flow_lines)
        perturbed_lines[i] = line.copy(flow_rate=perturbed_rate)
        perturbed = analyze_circuit_balance(None, perturbed_lines, components)

        entries.append(
            SensitivityEntry(
                parameter=f"Flow rate {line.name or line.id}",
                base_value=line.flow_rate,
                perturbed_value=perturbed_rate,
                impact_on_recovery={
                    comp_id: perturbed.mass_recovery.get(comp_id, 0.0)
                    - base.mass_recovery.get(comp_id, 0.0)
                    for comp_id in component_ids
                },
                impact_on_balance=perturbed.global_error - base.global_error,
            )
        )

    return entries
