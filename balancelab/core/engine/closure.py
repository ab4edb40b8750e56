"""
Mass-Balance Closure — Замыкание баланса на уровне схемы.

Передаточные функции сохраняют массу только локально, поэтому после
них сводим итоги схемы: питание = продукты, по каждому компоненту
и по общему расходу.

Правило направленное: источником истины становится сторона, где есть
данные. Если данные есть с обеих сторон и они расходятся больше
порога — побеждает питание (выходы перезаписываются, не усредняются).
Распределение между потоками — поровну.
"""

from __future__ import annotations

import logging
from typing import Iterable

from .heuristics import DEFAULT_HEURISTICS, BalanceHeuristics
from .stream import DetailedStream, FlowLine, MineralComponent
from .topology import boundary_indices

logger = logging.getLogger(__name__)


def _needs_correction(total_in: float, total_out: float, threshold: float) -> bool:
    if total_out == 0:
        return True
    return abs(total_out / total_in - 1.0) > threshold


def _close_component(
    streams: list[DetailedStream],
    feeds: list[int],
    products: list[int],
    component_id: str,
    threshold: float,
) -> None:
    total_in = sum(streams[i].component_mass.get(component_id, 0.0) for i in feeds)
    total_out = sum(streams[i].component_mass.get(component_id, 0.0) for i in products)

    if total_in > 0:
        if not _needs_correction(total_in, total_out, threshold):
            return
        targets, total = products, total_in
    elif total_out > 0:
        targets, total = feeds, total_out
    else:
        return

    logger.debug(f"Component {component_id}: {total:.4f} t/h split over {len(targets)} stream(s)")
    mass_per_stream = total / len(targets)
    for idx in targets:
        stream = streams[idx]
        stream.component_mass[component_id] = mass_per_stream
        stream.component_percentages[component_id] = (
            mass_per_stream / stream.solid_flow * 100.0 if stream.solid_flow > 0 else 0.0
        )


def _close_bulk_flow(
    streams: list[DetailedStream],
    feeds: list[int],
    products: list[int],
    components: list[MineralComponent],
    threshold: float,
) -> None:
    total_in = sum(streams[i].flow_rate for i in feeds)
    total_out = sum(streams[i].flow_rate for i in products)

    if total_in > 0:
        if not _needs_correction(total_in, total_out, threshold):
            return
        targets, total = products, total_in
    elif total_out > 0:
        targets, total = feeds, total_out
    else:
        return

    logger.debug(f"Bulk flow: {total:.2f} t/h split over {len(targets)} stream(s)")
    flow_per_stream = total / len(targets)
    for idx in targets:
        stream = streams[idx]
        stream.flow_rate = flow_per_stream
        # % твёрдого сохраняется: пересчитываем твёрдое, воду и объём
        stream.recompute_flows()
        stream.refresh_percentages(components)


def apply_mass_balance_closure(
    streams: list[DetailedStream],
    flow_lines: list[FlowLine],
    components: Iterable[MineralComponent],
    heuristics: BalanceHeuristics = DEFAULT_HEURISTICS,
) -> list[DetailedStream]:
    """
    Свести питание и продукты схемы: сначала по компонентам, затем общий расход.

    Args:
        streams: потоки, индексированные так же, как flow_lines
        flow_lines: линии схемы (определяют питание / продукты)
        components: активные компоненты

    Returns:
        Новый список потоков (входной не изменяется)
    """
    components = list(components)
    closed = [stream.copy() for stream in streams]

    feeds, products = boundary_indices(flow_lines)
    feeds = [i for i in feeds if i < len(closed)]
    products = [i for i in products if i < len(closed)]
    if not feeds or not products:
        return closed

    threshold = heuristics.closure_trigger_threshold
    for comp in components:
        _close_component(closed, feeds, products, comp.id, threshold)
    _close_bulk_flow(closed, feeds, products, components, threshold)

    return closed


def normalize_compositions(
    streams: list[DetailedStream],
    components: Iterable[MineralComponent],
    heuristics: BalanceHeuristics = DEFAULT_HEURISTICS,
) -> list[DetailedStream]:
    """
    Нормировать состав каждого потока на 100%.

    Массы компонентов пересчитываются из нормированных содержаний
    и твёрдого потока. Потоки с нулевой суммой содержаний пропускаются.
    """
    components = list(components)
    normalized = []

    for stream in streams:
        total = stream.total_percentage(components)
        if total > 0 and abs(total - 100.0) > heuristics.normalization_threshold_pct:
            factor = 100.0 / total
            stream = stream.copy()
            for comp in components:
                pct = stream.component_percentages.get(comp.id, 0.0) * factor
                stream.component_percentages[comp.id] = pct
                stream.component_mass[comp.id] = stream.solid_flow * pct / 100.0
        normalized.append(stream)

    return normalized


def _relative_error(total_in: float, total_out: float) -> float:
    return abs(total_in - total_out) / total_in * 100.0 if total_in > 0 else 0.0


def compute_component_errors(
    streams: list[DetailedStream],
    flow_lines: list[FlowLine],
    components: Iterable[MineralComponent],
) -> dict[str, float]:
    """Ошибка баланса по компонентам: |вход - выход| / вход * 100, %."""
    feeds, products = boundary_indices(flow_lines)
    errors: dict[str, float] = {}

    for comp in components:
        total_in = sum(
            streams[i].component_mass.get(comp.id, 0.0) for i in feeds if i < len(streams)
        )
        total_out = sum(
            streams[i].component_mass.get(comp.id, 0.0) for i in products if i < len(streams)
        )
        errors[comp.id] = _relative_error(total_in, total_out)

    return errors


def compute_global_error(streams: list[DetailedStream], flow_lines: list[FlowLine]) -> float:
    """Ошибка баланса по общему расходу, %."""
    feeds, products = boundary_indices(flow_lines)
    total_in = sum(streams[i].flow_rate for i in feeds if i < len(streams))
    total_out = sum(streams[i].flow_rate for i in products if i < len(streams))
    return _relative_error(total_in, total_out)
