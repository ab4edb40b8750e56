"""
Tests for the iterative mass-balance solver.

Сходимость, замыкание по компонентам и общему расходу, диагностика.
"""

import pytest

from balancelab.core.engine import (
    BalanceHeuristics,
    FlowLine,
    MassBalanceSolver,
    SolverState,
    propagate_data,
    solve_mass_balance,
)
from balancelab.core.engine.topology import boundary_indices

from .utils import flotation_circuit, mill_circuit, mixer_circuit


def _solve(circuit: dict, **kwargs):
    return solve_mass_balance(
        circuit["equipments"], circuit["flowLines"], circuit["mineralComponents"], **kwargs
    )


def _boundary_totals(solution, key):
    feeds, products = boundary_indices(solution.propagated_flow_lines)
    total_in = sum(key(solution.streams[i]) for i in feeds)
    total_out = sum(key(solution.streams[i]) for i in products)
    return total_in, total_out


class TestConvergence:
    """Замыкание баланса после сходимости."""

    @pytest.mark.parametrize("circuit", [mill_circuit, mixer_circuit])
    def test_component_closure_after_convergence(self, circuit):
        solution = _solve(circuit())

        assert solution.result.converged
        assert solution.result.state == SolverState.CONVERGED
        for comp_id in ("fe", "sio2"):
            total_in, total_out = _boundary_totals(
                solution, lambda s: s.component_mass.get(comp_id, 0.0)
            )
            assert abs(total_in - total_out) / total_in * 100 < 0.001

    @pytest.mark.parametrize("circuit", [mill_circuit, mixer_circuit])
    def test_global_flow_closure(self, circuit):
        solution = _solve(circuit())

        total_in, total_out = _boundary_totals(solution, lambda s: s.flow_rate)
        assert abs(total_in - total_out) / total_in * 100 < 0.001
        assert solution.result.global_error < 0.001

    @pytest.mark.parametrize("circuit", [mill_circuit, mixer_circuit, flotation_circuit])
    def test_compositions_sum_to_100(self, circuit):
        solution = _solve(circuit())

        for stream in solution.streams:
            total = sum(stream.component_percentages.get(c, 0.0) for c in ("fe", "sio2"))
            if stream.solid_flow > 0:
                assert total == pytest.approx(100.0, abs=0.1)
            else:
                assert total == 0

    def test_mixer_output_is_exact_sum(self):
        solution = _solve(mixer_circuit())

        a, b, out = solution.streams
        assert out.flow_rate == pytest.approx(300)
        assert out.component_mass["fe"] == pytest.approx(
            a.component_mass["fe"] + b.component_mass["fe"]
        )

    def test_mill_halves_particle_size(self):
        solution = _solve(mill_circuit())
        assert solution.streams[1].particle_size == pytest.approx(1000)


class TestMissingProductScenario:
    """Одно питание (1000 т/ч, Fe 35%) и продукт без данных."""

    @pytest.fixture()
    def circuit(self):
        return {
            "equipments": [{"id": "e", "name": "Unit", "type": "mixer"}],
            "flowLines": [
                FlowLine(id="f", name="Feed", to_equipment="e", flow_rate=1000,
                         solid_percent=70, density=2.8, component_grades={"fe": 35}),
                FlowLine(id="p", name="Product", from_equipment="e"),
            ],
            "mineralComponents": [{"id": "fe", "symbol": "Fe", "isActive": True}],
        }

    def test_propagation_copies_feed(self, circuit):
        lines = propagate_data(circuit["flowLines"], [])
        assert lines[1].flow_rate == 1000
        assert lines[1].component_grades == {"fe": 35}

    def test_solver_converges_with_zero_error(self, circuit):
        solution = _solve(circuit)

        assert solution.result.converged
        assert solution.result.component_errors["fe"] == pytest.approx(0.0)
        assert solution.result.max_error == pytest.approx(0.0)


class TestDiagnostics:
    """Несходимость и структурные пробелы — диагностика, не исключения."""

    def test_equipment_absent_from_flow_lines_does_not_raise(self):
        circuit = mill_circuit()
        circuit["equipments"] = [{"id": "ghost", "type": "rougher"}]

        solution = _solve(circuit)

        assert isinstance(solution.result.converged, bool)
        assert len(solution.streams) == 2

    def test_exhausted_state_reported(self):
        """Нулевой допуск недостижим — решатель исчерпывает итерации."""
        solution = _solve(mill_circuit(), max_iterations=3, tolerance=0.0)

        assert not solution.result.converged
        assert solution.result.state == SolverState.EXHAUSTED
        assert solution.result.iterations == 3
        assert "Did not converge" in solution.result.log[-1]

    def test_flotation_circuit_returns_result(self):
        solution = _solve(flotation_circuit(), max_iterations=10)

        assert solution.result.iterations <= 10
        assert solution.result.state in (SolverState.CONVERGED, SolverState.EXHAUSTED)
        assert len(solution.streams) == 3

    def test_empty_flowsheet(self):
        solution = solve_mass_balance([], [], [])

        assert solution.streams == []
        assert solution.result.converged
        assert solution.result.global_error == 0.0

    def test_iteration_log_and_timing(self):
        solution = _solve(mill_circuit())

        assert solution.result.log[0].startswith("Data propagation completed")
        assert any(entry.startswith("Iteration 1") for entry in solution.result.log)
        assert solution.execution_time_ms >= 0

    def test_default_density_from_heuristics(self):
        """Пустая плотность линии берётся из набора эвристик расчёта."""
        circuit = mill_circuit()
        del circuit["flowLines"][0]["density"]

        solution = _solve(circuit, heuristics=BalanceHeuristics(default_density=3.5))

        assert [s.density for s in solution.streams] == [3.5, 3.5]

    def test_coherence_report_attached(self):
        solution = _solve(mill_circuit())
        assert solution.coherence_report[0].startswith("✓")
        assert solution.result.coherence_issues == []


class TestSolverObject:
    def test_solve_is_repeatable(self):
        """Состояние между вызовами не сохраняется."""
        circuit = mixer_circuit()
        solver = MassBalanceSolver(
            circuit["equipments"], circuit["flowLines"], circuit["mineralComponents"]
        )
        first = solver.solve()
        second = solver.solve()

        assert [s.flow_rate for s in first.streams] == [s.flow_rate for s in second.streams]
        assert first.result.iterations == second.result.iterations

    def test_to_dict_is_serializable(self):
        data = _solve(mill_circuit()).to_dict()

        assert data["result"]["state"] == "converged"
        assert data["streams"][1]["id"] == "product"
        assert data["propagated_flow_lines"][1]["flowRate"] == 1000
