"""
Coherence — Проверка физической правдоподобности результатов.

Только чтение: отчёт не меняет потоки. Найденные проблемы помечаются
префиксами ERROR: / WARNING:.
"""

from __future__ import annotations

from typing import Iterable

from .heuristics import DEFAULT_HEURISTICS, BalanceHeuristics
from .stream import DetailedStream, MineralComponent

COHERENCE_OK_MESSAGE = "✓ All results are physically coherent and mathematically consistent"


def _stream_label(stream: DetailedStream, index: int) -> str:
    if stream.name:
        return f"{index + 1} ({stream.name})"
    return str(index + 1)


def evaluate_coherence(
    streams: list[DetailedStream],
    components: Iterable[MineralComponent],
    heuristics: BalanceHeuristics = DEFAULT_HEURISTICS,
) -> list[str]:
    """
    Проверить итоговые потоки.

    - ERROR: содержание компонента < 0% или > 100%
    - WARNING: сумма содержаний отличается от 100% больше допуска
    - ERROR: % твёрдого вне [0, 100], плотность <= 0

    Returns:
        Список сообщений; если проблем нет — одно сообщение об успехе
    """
    components = list(components)
    report: list[str] = []

    for index, stream in enumerate(streams):
        label = _stream_label(stream, index)

        for comp in components:
            pct = stream.component_percentages.get(comp.id, 0.0)
            if pct < 0:
                report.append(
                    f"ERROR: Stream {label} has negative grade for {comp.label}: {pct:.2f}%"
                )
            if pct > 100:
                report.append(
                    f"ERROR: Stream {label} has impossible grade for {comp.label}: {pct:.2f}%"
                )

        total = stream.total_percentage(components)
        if abs(total - 100.0) > heuristics.composition_warning_threshold_pct:
            report.append(
                f"WARNING: Stream {label} total composition is {total:.2f}% (should be 100%)"
            )

        if stream.solid_percent < 0 or stream.solid_percent > 100:
            report.append(
                f"ERROR: Stream {label} has impossible solid percentage: "
                f"{stream.solid_percent:.2f}%"
            )

        if stream.density <= 0:
            report.append(f"ERROR: Stream {label} has invalid density: {stream.density}")

    if not report:
        report.append(COHERENCE_OK_MESSAGE)

    return report


def coherence_issues(report: list[str]) -> list[str]:
    """Только ERROR/WARNING записи отчёта."""
    return [r for r in report if r.startswith("ERROR") or r.startswith("WARNING")]
