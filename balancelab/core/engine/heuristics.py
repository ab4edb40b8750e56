"""
Heuristics — Эмпирические константы балансового расчёта.

Все значения здесь — рабочие допущения (не физические законы):
доля выхода концентрата по умолчанию, % твёрдого по классам потоков,
порог запуска коррекции баланса, удвоение крупности при обратном
распространении данных и т.п. Собраны в одном месте, чтобы их можно
было проверить или заменить независимо от алгоритма.
"""

from __future__ import annotations

from dataclasses import dataclass

# Распространение данных (propagation)
PROPAGATION_MAX_PASSES = 10
DEFAULT_FLOW_RATE_TPH = 1000.0
DEFAULT_SOLID_PERCENT = 70.0
DEFAULT_ORE_DENSITY = 2.8  # т/м³
WATER_DENSITY = 1.0  # т/м³
DEFAULT_PARTICLE_SIZE_UM = 150.0  # P80, мкм
BACKWARD_PARTICLE_SIZE_FACTOR = 2.0  # продукт обычно тоньше питания

# Дробилки / мельницы без заданной крупности продукта
SIZE_REDUCTION_FACTOR = 0.5

# Флотация
FLOTATION_DEFAULT_RECOVERY_PCT = 85.0
FLOTATION_DEFAULT_TARGET_GRADE_PCT = 20.0
FLOTATION_DEFAULT_MASS_PULL = 0.30
CONCENTRATE_SOLID_PERCENT = 65.0
TAILING_SOLID_PERCENT = 35.0
MAIN_COMPONENT_ID = "fe"

# Замыкание баланса и сходимость
CLOSURE_TRIGGER_THRESHOLD = 0.01  # 1% отклонения выход/вход
NORMALIZATION_THRESHOLD_PCT = 0.01
COMPOSITION_WARNING_THRESHOLD_PCT = 0.1
DEFAULT_MAX_ITERATIONS = 50
DEFAULT_TOLERANCE_PCT = 0.001


@dataclass(frozen=True)
class BalanceHeuristics:
    """Набор эвристик для одного расчёта (по умолчанию — константы модуля)."""

    propagation_max_passes: int = PROPAGATION_MAX_PASSES
    default_flow_rate_tph: float = DEFAULT_FLOW_RATE_TPH
    default_solid_percent: float = DEFAULT_SOLID_PERCENT
    default_density: float = DEFAULT_ORE_DENSITY
    default_particle_size_um: float = DEFAULT_PARTICLE_SIZE_UM
    backward_particle_size_factor: float = BACKWARD_PARTICLE_SIZE_FACTOR
    size_reduction_factor: float = SIZE_REDUCTION_FACTOR
    flotation_default_mass_pull: float = FLOTATION_DEFAULT_MASS_PULL
    concentrate_solid_percent: float = CONCENTRATE_SOLID_PERCENT
    tailing_solid_percent: float = TAILING_SOLID_PERCENT
    main_component_id: str = MAIN_COMPONENT_ID
    closure_trigger_threshold: float = CLOSURE_TRIGGER_THRESHOLD
    normalization_threshold_pct: float = NORMALIZATION_THRESHOLD_PCT
    composition_warning_threshold_pct: float = COMPOSITION_WARNING_THRESHOLD_PCT


DEFAULT_HEURISTICS = BalanceHeuristics()
