"""
CircuitTopology — Топология схемы обогащения.

Индексирует линии потоков по оборудованию: входы/выходы узлов,
потоки питания и продукты схемы. Топологическая сортировка здесь
только диагностическая — балансовый расчёт идёт в порядке списка
оборудования.
"""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass, field

from .equipment import Equipment
from .stream import FlowLine


def boundary_indices(flow_lines: list[FlowLine]) -> tuple[list[int], list[int]]:
    """
    Индексы граничных потоков схемы.

    Returns:
        (feed_indices, product_indices) — потоки без from_equipment
        и потоки без to_equipment соответственно
    """
    feeds = [i for i, fl in enumerate(flow_lines) if fl.is_feed]
    products = [i for i, fl in enumerate(flow_lines) if fl.is_product]
    return feeds, products


@dataclass
class CircuitTopology:
    """
    Граф схемы: оборудование — узлы, линии потоков — рёбра.

    Поддерживает:
    - Поиск входных/выходных потоков узла
    - Поиск потоков питания и продуктов
    - Обнаружение рециклов (Kahn's algorithm)
    - Структурную валидацию
    """

    equipments: list[Equipment] = field(default_factory=list)
    flow_lines: list[FlowLine] = field(default_factory=list)

    _inputs: dict[str, list[int]] = field(default_factory=dict)
    _outputs: dict[str, list[int]] = field(default_factory=dict)
    _index_by_id: dict[str, int] = field(default_factory=dict)

    def __post_init__(self):
        self._rebuild_index()

    def _rebuild_index(self):
        """Построить индексы входов/выходов."""
        self._inputs = defaultdict(list)
        self._outputs = defaultdict(list)
        self._index_by_id = {}

        for idx, fl in enumerate(self.flow_lines):
            self._index_by_id.setdefault(fl.id, idx)
            if fl.to_equipment:
                self._inputs[fl.to_equipment].append(idx)
            if fl.from_equipment:
                self._outputs[fl.from_equipment].append(idx)

    @property
    def equipment_ids(self) -> list[str]:
        return [eq.id for eq in self.equipments]

    def index_of(self, flow_line_id: str) -> int | None:
        return self._index_by_id.get(flow_line_id)

    def input_indices(self, equipment_id: str) -> list[int]:
        """Индексы потоков, входящих в узел (в порядке списка линий)."""
        return list(self._inputs.get(equipment_id, []))

    def output_indices(self, equipment_id: str) -> list[int]:
        """Индексы потоков, выходящих из узла (в порядке списка линий)."""
        return list(self._outputs.get(equipment_id, []))

    def feed_indices(self) -> list[int]:
        return boundary_indices(self.flow_lines)[0]

    def product_indices(self) -> list[int]:
        return boundary_indices(self.flow_lines)[1]

    def _equipment_edges(self) -> list[tuple[str, str, str]]:
        """Рёбра между узлами: (flow_line_id, source, target)."""
        return [
            (fl.id, fl.from_equipment, fl.to_equipment)
            for fl in self.flow_lines
            if fl.from_equipment and fl.to_equipment
        ]

    def topological_order(self) -> tuple[list[str], list[str]]:
        """
        Топологическая сортировка оборудования (Kahn's algorithm).

        Returns:
            (sorted_equipment_ids, recycle_flow_line_ids)
        """
        known = set(self.equipment_ids)
        adjacency: dict[str, list[str]] = defaultdict(list)
        in_degree = {eq_id: 0 for eq_id in self.equipment_ids}

        edges = [e for e in self._equipment_edges() if e[1] in known and e[2] in known]
        for _, source, target in edges:
            adjacency[source].append(target)
            in_degree[target] += 1

        queue = deque([eq_id for eq_id, degree in in_degree.items() if degree == 0])
        sorted_ids: list[str] = []

        while queue:
            eq_id = queue.popleft()
            sorted_ids.append(eq_id)
            for successor in adjacency.get(eq_id, []):
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    queue.append(successor)

        recycle_ids: list[str] = []
        if len(sorted_ids) < len(in_degree):
            sorted_set = set(sorted_ids)
            for line_id, source, target in edges:
                if source not in sorted_set or target not in sorted_set:
                    recycle_ids.append(line_id)
            # Узлы в циклах: в конец, в исходном порядке
            for eq_id in self.equipment_ids:
                if eq_id not in sorted_set:
                    sorted_ids.append(eq_id)

        return sorted_ids, recycle_ids

    def has_recycles(self) -> bool:
        _, recycle_ids = self.topological_order()
        return len(recycle_ids) > 0

    def validate(self) -> list[str]:
        """
        Структурная валидация схемы.

        Проблемы схемы не блокируют расчёт — это диагностика.

        Returns:
            Список найденных проблем (пустой если всё ок)
        """
        issues: list[str] = []

        if not self.flow_lines:
            issues.append("Flowsheet has no flow lines")
            return issues

        feeds, products = boundary_indices(self.flow_lines)
        if not feeds:
            issues.append("No feed streams found")
        if not products:
            issues.append("No product streams found")

        known = set(self.equipment_ids)
        for fl in self.flow_lines:
            if fl.from_equipment and fl.from_equipment not in known:
                issues.append(f"Flow line {fl.id} references unknown source: {fl.from_equipment}")
            if fl.to_equipment and fl.to_equipment not in known:
                issues.append(f"Flow line {fl.id} references unknown target: {fl.to_equipment}")

        for eq in self.equipments:
            if not self._inputs.get(eq.id):
                issues.append(f"Equipment {eq.label} has no input streams")
            if not self._outputs.get(eq.id):
                issues.append(f"Equipment {eq.label} has no output streams")

        return issues
