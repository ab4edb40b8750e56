"""
Tests for Data Propagation

Заполнение недостающих данных потоков перед балансом.
"""

import copy

import pytest

from balancelab.core.engine import FlowLine, MineralComponent, propagate_data
from balancelab.core.engine.propagation import default_grades

from .utils import COMPONENTS, mill_circuit


def _lines(data: list[dict]) -> list[FlowLine]:
    return [FlowLine.from_dict(d) for d in data]


def _components() -> list[MineralComponent]:
    return [MineralComponent.from_dict(c) for c in COMPONENTS]


class TestForwardPropagation:
    """Прямое распространение: питание -> выходы узла."""

    def test_missing_product_receives_feed_data(self):
        """Продукт без данных получает расход и содержания питания."""
        lines = _lines(mill_circuit()["flowLines"])
        result = propagate_data(lines, _components())

        feed, product = result
        assert product.flow_rate == feed.flow_rate == 1000
        assert product.solid_percent == 70
        assert product.density == 2.8
        assert product.component_grades == {"fe": 35, "sio2": 65}

    def test_forward_copy_keeps_particle_size(self):
        lines = _lines(mill_circuit()["flowLines"])
        result = propagate_data(lines, _components())
        assert result[1].particle_size == 2000

    def test_own_grades_win_over_source(self):
        """Собственные содержания целевого потока сохраняются."""
        lines = [
            FlowLine(id="f", to_equipment="e", flow_rate=100, solid_percent=50,
                     component_grades={"fe": 30, "sio2": 70}),
            FlowLine(id="p", from_equipment="e", component_grades={"fe": 90}),
        ]
        result = propagate_data(lines, _components())

        assert result[1].flow_rate == 100
        assert result[1].component_grades == {"fe": 90, "sio2": 70}


class TestBackwardPropagation:
    """Обратное распространение: продукт -> входы узла."""

    def test_feed_receives_product_data_with_doubled_size(self):
        lines = [
            FlowLine(id="p", from_equipment="e", flow_rate=500, solid_percent=60,
                     density=3.0, particle_size=100, component_grades={"fe": 50, "sio2": 50}),
            FlowLine(id="f", to_equipment="e"),
        ]
        result = propagate_data(lines, _components())

        feed = result[1]
        assert feed.flow_rate == 500
        assert feed.particle_size == 200
        assert feed.component_grades == {"fe": 50, "sio2": 50}

    def test_backward_copy_uses_default_base_size(self):
        """Без крупности у продукта база — 150 мкм."""
        lines = [
            FlowLine(id="p", from_equipment="e", flow_rate=500, solid_percent=60,
                     component_grades={"fe": 50, "sio2": 50}),
            FlowLine(id="f", to_equipment="e"),
        ]
        result = propagate_data(lines, _components())
        assert result[1].particle_size == 300


class TestDefaults:
    """Значения по умолчанию для потоков без данных."""

    def test_isolated_stream_gets_defaults(self):
        result = propagate_data([FlowLine(id="x")], _components())

        line = result[0]
        assert line.flow_rate == 1000
        assert line.solid_percent == 70
        assert line.density == 2.8
        assert line.components == ["fe", "sio2"]
        assert sum(line.component_grades.values()) == pytest.approx(100.0)

    def test_inactive_components_are_ignored(self, components):
        result = propagate_data([FlowLine(id="x")], components)
        assert "al2o3" not in result[0].component_grades

    def test_default_grades_normalized_to_100(self):
        grades = default_grades(
            [
                MineralComponent(id="fe", default_grade=30),
                MineralComponent(id="sio2", default_grade=20),
            ]
        )
        assert grades["fe"] == pytest.approx(60.0)
        assert grades["sio2"] == pytest.approx(40.0)

    def test_flow_estimated_from_streams_entering_source(self):
        """Расход = сумма потоков, входящих в узел-источник."""
        lines = [
            FlowLine(id="a", from_equipment="e0", to_equipment="e1", flow_rate=250,
                     solid_percent=50, component_grades={"fe": 40, "sio2": 60}),
            FlowLine(id="b", from_equipment="e1", component_grades={"fe": 40, "sio2": 60}),
        ]
        result = propagate_data(lines, _components())

        assert result[1].flow_rate == 250
        assert result[1].solid_percent == 70
        assert result[1].density == 2.8


class TestPropagationProperties:
    """Свойства функции распространения."""

    def test_idempotent(self):
        """Повторный прогон на собственном результате ничего не меняет."""
        once = propagate_data(_lines(mill_circuit()["flowLines"]), _components())
        twice = propagate_data(once, _components())
        assert twice == once

    def test_idempotent_with_defaults(self):
        lines = [FlowLine(id="x"), FlowLine(id="p", from_equipment="e")]
        once = propagate_data(lines, _components())
        assert propagate_data(once, _components()) == once

    def test_does_not_mutate_input(self):
        lines = _lines(mill_circuit()["flowLines"])
        snapshot = copy.deepcopy(lines)

        propagate_data(lines, _components())

        assert lines == snapshot

    def test_never_raises_on_empty_input(self):
        assert propagate_data([], _components()) == []
        assert len(propagate_data([FlowLine(id="x")], [])) == 1
