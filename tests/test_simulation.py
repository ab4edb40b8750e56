"""
Tests for flowsheet simulation (iterative and legacy modes).
"""

import pytest

from balancelab.core.engine import SimulationConfig, run_simulation
from balancelab.core.engine.calculators import mill_power

from .utils import flotation_circuit, mill_circuit, mixer_circuit


class TestLegacyMode:
    """Без активных компонентов: каждый аппарат получает одно питание."""

    def test_crusher_and_mill(self):
        equipments = [
            {"id": "c1", "name": "Jaw", "type": "britador", "parameters": {}},
            {"id": "m1", "name": "Ball Mill", "type": "moinho", "parameters": {}},
        ]
        run = run_simulation(equipments, [], SimulationConfig(feed_rate=1000))

        assert run.mode == "legacy"
        crusher, mill = run.results
        assert crusher.outputs[0].particle_size == pytest.approx(2000)
        assert crusher.outputs[0].flow_rate == pytest.approx(950)
        assert crusher.efficiency == 95.0
        assert mill.outputs[0].particle_size == 150
        assert mill.power_consumption == pytest.approx(mill_power(4.5, 6.0, 35, 75, 1000))
        assert run.iterative_result is None

    def test_other_equipment_defaults(self):
        run = run_simulation([{"id": "x", "type": "thickener"}], [])
        (result,) = run.results
        assert result.efficiency == 85.0
        assert result.power_consumption == 100.0

    def test_inactive_components_use_legacy(self):
        components = [{"id": "fe", "symbol": "Fe", "isActive": False}]
        run = run_simulation([{"id": "m1", "type": "mill"}], [], mineral_components=components)
        assert run.mode == "legacy"


class TestIterativeMode:
    def _run(self, circuit, **config):
        return run_simulation(
            circuit["equipments"],
            circuit["flowLines"],
            SimulationConfig(**config),
            mineral_components=circuit["mineralComponents"],
        )

    def test_mill_circuit(self):
        run = self._run(mill_circuit())

        assert run.mode == "iterative"
        assert run.iterative_result.converged
        (mill,) = run.results
        assert mill.power_consumption == pytest.approx(mill_power(4.5, 6.0, 35, 75, 1000))
        assert len(run.detailed_streams) == 2

    def test_flotation_power_and_recovery_warning(self):
        run = self._run(flotation_circuit(), max_iterations=10)

        (rougher,) = run.results
        assert rougher.power_consumption == 300
        assert any(w.startswith("Actual recovery") for w in rougher.warnings)
        assert run.total_power_kw == 300

    def test_mixer_with_missing_input_warns(self):
        circuit = mixer_circuit()
        circuit["flowLines"] = [fl for fl in circuit["flowLines"] if fl["id"] != "b"]

        run = self._run(circuit)

        (mixer,) = run.results
        assert mixer.warnings == ["Mixer has 1 connected input(s) (expected: 2)"]

    def test_to_dict(self):
        data = self._run(mixer_circuit()).to_dict()

        assert data["mode"] == "iterative"
        assert data["iterative_result"]["state"] == "converged"
        assert data["results"][0]["equipment_id"] == "mix-1"


class TestConfig:
    def test_from_camel_case(self):
        config = SimulationConfig.from_dict({"feedRate": 500, "maxIterations": 5})
        assert config.feed_rate == 500
        assert config.max_iterations == 5
        assert config.solid_percent == 70

    def test_empty_dict_gives_defaults(self):
        assert SimulationConfig.from_dict(None) == SimulationConfig()
