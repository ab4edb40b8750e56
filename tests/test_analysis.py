"""
Tests for one-shot circuit analysis.

Невязка питание/продукты, извлечение, обогащение, чувствительность.
"""

import pytest

from balancelab.core.engine import (
    FlowLine,
    StreamBalance,
    analyze_circuit_balance,
    calculate_metallurgical_recovery,
    correct_stream_imbalances,
    perform_sensitivity_analysis,
    validate_component_balance,
    validate_global_mass_balance,
)
from balancelab.core.exceptions import InvalidInput

from .utils import balanced_split_lines


@pytest.fixture()
def split_lines() -> list[FlowLine]:
    return [FlowLine.from_dict(d) for d in balanced_split_lines()]


class TestGlobalValidation:
    def test_balanced(self):
        inputs = [StreamBalance("f", mass_flow=100, solid_flow=50)]
        outputs = [
            StreamBalance("c", mass_flow=40, solid_flow=20),
            StreamBalance("t", mass_flow=60, solid_flow=30),
        ]
        check = validate_global_mass_balance(inputs, outputs)

        assert check.is_valid
        assert check.error == pytest.approx(0.0)
        assert "Total mass" in check.details

    def test_error_is_max_of_mass_and_solids(self):
        inputs = [StreamBalance("f", mass_flow=100, solid_flow=50)]
        outputs = [StreamBalance("p", mass_flow=99, solid_flow=45)]
        check = validate_global_mass_balance(inputs, outputs)

        assert not check.is_valid
        assert check.error == pytest.approx(10.0)

    def test_component_balance(self):
        inputs = [StreamBalance("f", component_mass={"fe": 20})]
        outputs = [StreamBalance("p", component_mass={"fe": 19.99})]
        checks = validate_component_balance(inputs, outputs, ["fe", "sio2"])

        assert checks["fe"].is_valid
        assert checks["fe"].error == pytest.approx(0.05)
        assert checks["sio2"].error == 0.0


class TestMetallurgicalRecovery:
    def test_recovery_enrichment_and_ratio(self):
        feed = [StreamBalance("f", mass_flow=100, solid_flow=50, component_mass={"fe": 20})]
        conc = [StreamBalance("c", mass_flow=40, solid_flow=20, component_mass={"fe": 16})]
        indices = calculate_metallurgical_recovery(feed, conc, [], ["fe"])

        assert indices["fe"].recovery == pytest.approx(80.0)
        assert indices["fe"].enrichment_ratio == pytest.approx(2.0)
        assert indices["fe"].concentration_ratio == pytest.approx(2.5)

    def test_empty_concentrate(self):
        feed = [StreamBalance("f", mass_flow=100, solid_flow=50, component_mass={"fe": 20})]
        indices = calculate_metallurgical_recovery(feed, [], [], ["fe"])
        assert indices["fe"].recovery == 0.0
        assert indices["fe"].concentration_ratio == 0.0


class TestCorrection:
    def test_proportional_rescale(self):
        streams = [
            StreamBalance("a", mass_flow=30, solid_flow=15, component_mass={"fe": 6}),
            StreamBalance("b", mass_flow=20, solid_flow=10, component_mass={"fe": 4}),
        ]
        corrected = correct_stream_imbalances(streams, 100)

        assert [s.mass_flow for s in corrected] == pytest.approx([60, 40])
        assert corrected[0].component_mass["fe"] == pytest.approx(12)
        # Исходные объекты не меняются
        assert streams[0].mass_flow == 30

    def test_zero_total_returns_copies(self):
        streams = [StreamBalance("a")]
        corrected = correct_stream_imbalances(streams, 100)
        assert corrected[0].mass_flow == 0
        assert corrected[0] is not streams[0]


class TestCircuitAnalysis:
    """Комплексный анализ по исходным линиям."""

    def test_balanced_split_is_valid(self, split_lines, components):
        result = analyze_circuit_balance(None, split_lines, components)

        assert result.is_valid
        assert result.global_error == pytest.approx(0.0, abs=1e-9)
        assert result.mass_recovery["fe"] == pytest.approx(80.0)
        assert result.enrichment_ratio["fe"] == pytest.approx(2.0)
        assert result.concentration_ratio == pytest.approx(2.5)
        assert result.discrepancies == []
        assert "al2o3" not in result.component_errors

    def test_low_recovery_recommendation(self, split_lines, components):
        result = analyze_circuit_balance(None, split_lines, components)
        assert any("Low sio2 recovery" in r for r in result.recommendations)

    def test_imbalance_reported(self, split_lines, components):
        split_lines[2] = split_lines[2].copy(flow_rate=30)
        result = analyze_circuit_balance(None, split_lines, components)

        assert not result.is_valid
        assert result.discrepancies[0].startswith("Global balance")
        assert result.recommendations[0] == "Check flow-rate measurements on all streams"

    def test_missing_boundaries(self, components):
        lines = [FlowLine(id="x", from_equipment="a", to_equipment="b", flow_rate=10)]
        result = analyze_circuit_balance(None, lines, components)

        assert "Define feed streams in the flowsheet" in result.recommendations
        assert "Define product streams in the flowsheet" in result.recommendations


class TestSensitivity:
    def test_one_entry_per_stream(self, split_lines, components):
        entries = perform_sensitivity_analysis(split_lines, components, perturbation_pct=10)

        assert len(entries) == 3
        feed_entry = entries[0]
        assert feed_entry.base_value == 100
        assert feed_entry.perturbed_value == pytest.approx(110)
        assert feed_entry.impact_on_balance > 0
        assert set(feed_entry.impact_on_recovery) == {"fe", "sio2"}

    def test_concentrate_perturbation_raises_recovery(self, split_lines, components):
        entries = perform_sensitivity_analysis(split_lines, components, perturbation_pct=5)
        assert entries[1].impact_on_recovery["fe"] == pytest.approx(4.0)

    def test_non_positive_perturbation_rejected(self, split_lines, components):
        with pytest.raises(InvalidInput):
            perform_sensitivity_analysis(split_lines, components, perturbation_pct=0)
