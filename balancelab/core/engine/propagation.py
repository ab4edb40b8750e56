"""
Data Propagation — Заполнение недостающих данных потоков.

Перед балансом заполняем расход, % твёрдого, плотность, крупность
и содержания компонентов по соседним потокам, чтобы балансу было
с чем работать. Никогда не падает: в крайнем случае подставляются
значения по умолчанию.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .heuristics import DEFAULT_HEURISTICS, BalanceHeuristics
from .stream import FlowLine, MineralComponent, active_components

logger = logging.getLogger(__name__)


def _lacks_data(flow_line: FlowLine) -> bool:
    return flow_line.flow_rate == 0 or not flow_line.has_grades


def _copy_from(
    target: FlowLine,
    source: FlowLine,
    backward: bool,
    heuristics: BalanceHeuristics,
) -> FlowLine:
    """Дополнить target данными source (свои значения target сохраняются)."""
    if backward:
        base_size = source.particle_size or heuristics.default_particle_size_um
        particle_size = target.particle_size or base_size * heuristics.backward_particle_size_factor
    else:
        particle_size = target.particle_size or source.particle_size

    return target.copy(
        flow_rate=target.flow_rate or source.flow_rate,
        solid_percent=target.solid_percent or source.solid_percent,
        density=target.density or source.density,
        particle_size=particle_size,
        components=list(target.components or source.components or []),
        component_grades={**source.component_grades, **target.component_grades},
    )


def default_grades(components: Iterable[MineralComponent]) -> dict[str, float]:
    """Содержания по умолчанию, нормированные ровно на 100%."""
    grades = {comp.id: comp.default_grade or 0.0 for comp in components}
    total = sum(grades.values())
    if total > 0:
        factor = 100.0 / total
        grades = {comp_id: grade * factor for comp_id, grade in grades.items()}
    return grades


def _estimate_flow_rate(
    flow_line: FlowLine, lines: list[FlowLine], heuristics: BalanceHeuristics
) -> float:
    """Расход по сумме потоков, входящих в тот же узел-источник."""
    if flow_line.from_equipment:
        siblings = [
            fl.flow_rate
            for fl in lines
            if fl.to_equipment == flow_line.from_equipment and fl.flow_rate > 0
        ]
        if siblings:
            return sum(siblings)
    return heuristics.default_flow_rate_tph


def _replace_if_changed(lines: list[FlowLine], index: int, updated: FlowLine) -> int:
    if updated == lines[index]:
        return 0
    lines[index] = updated
    return 1


def propagate_data(
    flow_lines: list[FlowLine],
    mineral_components: Iterable[MineralComponent],
    heuristics: BalanceHeuristics = DEFAULT_HEURISTICS,
) -> list[FlowLine]:
    """
    Распространить данные между соседними потоками.

    Проходы повторяются, пока проход что-то меняет (не более
    heuristics.propagation_max_passes). Исходный список не изменяется.

    Args:
        flow_lines: линии потоков схемы
        mineral_components: библиотека компонентов (используются активные)

    Returns:
        Новый список линий с заполненными данными
    """
    lines = [fl.copy() for fl in flow_lines]
    active = active_components(mineral_components)
    total_changes = 0

    for pass_no in range(1, heuristics.propagation_max_passes + 1):
        changes = 0

        for i in range(len(lines)):
            line = lines[i]

            # Поток питания узла: дополняем выходы этого узла
            if line.is_feed and line.to_equipment:
                for j, target in enumerate(lines):
                    if target.from_equipment == line.to_equipment and _lacks_data(target):
                        updated = _copy_from(target, line, backward=False, heuristics=heuristics)
                        changes += _replace_if_changed(lines, j, updated)

            # Продукт узла: дополняем входы этого узла (обратное распространение)
            if line.from_equipment and line.is_product:
                for j, target in enumerate(lines):
                    if target.to_equipment == line.from_equipment and _lacks_data(target):
                        updated = _copy_from(target, line, backward=True, heuristics=heuristics)
                        changes += _replace_if_changed(lines, j, updated)

            line = lines[i]

            if not line.components and not line.has_grades:
                updated = line.copy(
                    components=[comp.id for comp in active],
                    component_grades=default_grades(active),
                )
                changes += _replace_if_changed(lines, i, updated)
                line = lines[i]

            if not line.flow_rate:
                updated = line.copy(
                    flow_rate=_estimate_flow_rate(line, lines, heuristics),
                    solid_percent=line.solid_percent or heuristics.default_solid_percent,
                    density=line.density or heuristics.default_density,
                )
                changes += _replace_if_changed(lines, i, updated)

        total_changes += changes
        logger.debug(f"Propagation pass {pass_no}: {changes} change(s)")
        if changes == 0:
            break

    if total_changes:
        logger.info(f"Propagation filled {total_changes} stream attribute set(s)")
    return lines
