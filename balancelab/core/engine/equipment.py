"""
Equipment — Оборудование схемы (узлы графа).

Каждый тип оборудования — отдельный вариант с собственным набором
параметров. Исходные данные канвы (type + parameters) разбираются
фабрикой parse_equipment().
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Iterable, Optional, Union

from .heuristics import FLOTATION_DEFAULT_RECOVERY_PCT, FLOTATION_DEFAULT_TARGET_GRADE_PCT


class EquipmentType(str, Enum):
    """Тип оборудования."""

    CRUSHER = "crusher"  # Дробилка
    MILL = "mill"  # Мельница
    MIXER = "mixer"  # Смеситель / делитель
    ROUGHER = "rougher"  # Основная флотация
    CLEANER = "cleaner"  # Перечистка
    RECLEANER = "recleaner"  # Вторая перечистка
    GENERIC = "generic"  # Неизвестный тип: транзит


FLOTATION_TYPES = frozenset({EquipmentType.ROUGHER, EquipmentType.CLEANER, EquipmentType.RECLEANER})

# Названия типов из исходной канвы
TYPE_ALIASES: dict[str, EquipmentType] = {
    "britador": EquipmentType.CRUSHER,
    "jaw_crusher": EquipmentType.CRUSHER,
    "cone_crusher": EquipmentType.CRUSHER,
    "moinho": EquipmentType.MILL,
    "ball_mill": EquipmentType.MILL,
    "sag_mill": EquipmentType.MILL,
}


@dataclass(frozen=True)
class Equipment:
    """Базовый узел схемы."""

    id: str
    name: str = ""

    equipment_type: ClassVar[EquipmentType] = EquipmentType.GENERIC

    @property
    def kind(self) -> EquipmentType:
        return self.equipment_type

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class CrusherEquipment(Equipment):
    """Дробилка."""

    power_kw: float = 500.0
    reduction_ratio: float = 5.0
    target_size: Optional[float] = None  # P80 продукта, мкм
    capacity_tph: float = 100.0
    efficiency: float = 95.0

    equipment_type: ClassVar[EquipmentType] = EquipmentType.CRUSHER


@dataclass(frozen=True)
class MillEquipment(Equipment):
    """Шаровая мельница."""

    power_kw: float = 1000.0
    diameter_m: float = 4.5
    length_m: float = 6.0
    ball_load_pct: float = 35.0
    speed_pct: float = 75.0  # % от критической
    target_size: Optional[float] = None

    equipment_type: ClassVar[EquipmentType] = EquipmentType.MILL


@dataclass(frozen=True)
class MixerEquipment(Equipment):
    """Смеситель: суммирует входы и делит на N выходов."""

    number_of_inputs: int = 2
    number_of_outputs: int = 1
    splits: tuple[float, ...] = ()  # % на каждый выход
    power_kw: float = 50.0
    efficiency: float = 99.0

    equipment_type: ClassVar[EquipmentType] = EquipmentType.MIXER

    def split_fractions(self) -> list[float]:
        """Доли выходов (0-1). Незаданные доли — равное деление."""
        count = max(1, self.number_of_outputs)
        equal = 100.0 / count
        fractions = []
        for i in range(count):
            split = self.splits[i] if i < len(self.splits) and self.splits[i] else equal
            fractions.append(split / 100.0)
        return fractions


@dataclass(frozen=True)
class FlotationEquipment(Equipment):
    """
    Флотационная машина (rougher / cleaner / recleaner).

    Выходы: [концентрат, хвосты].
    """

    stage: EquipmentType = EquipmentType.ROUGHER
    recovery_pct: float = FLOTATION_DEFAULT_RECOVERY_PCT
    target_grade_pct: float = FLOTATION_DEFAULT_TARGET_GRADE_PCT
    number_of_cells: int = 4
    cell_volume_m3: float = 100.0
    component_recovery: dict[str, float] = field(default_factory=dict)

    @property
    def kind(self) -> EquipmentType:
        return self.stage

    def recovery_for(self, component_id: str) -> float:
        """Извлечение компонента в концентрат, %."""
        override = self.component_recovery.get(component_id)
        return override if override is not None else self.recovery_pct


@dataclass(frozen=True)
class GenericEquipment(Equipment):
    """Оборудование неизвестного типа — чистый транзит."""

    raw_type: str = "unknown"


AnyEquipment = Union[
    CrusherEquipment, MillEquipment, MixerEquipment, FlotationEquipment, GenericEquipment
]


def resolve_equipment_type(raw_type: Optional[str]) -> EquipmentType:
    """Привести строковый тип к EquipmentType (неизвестные — GENERIC)."""
    if not raw_type:
        return EquipmentType.GENERIC
    key = raw_type.strip().lower()
    if key in TYPE_ALIASES:
        return TYPE_ALIASES[key]
    try:
        return EquipmentType(key)
    except ValueError:
        return EquipmentType.GENERIC


def _component_recovery(raw: Any) -> dict[str, float]:
    """
    Переопределения извлечения по компонентам.

    Допускается {comp_id: 90} или {comp_id: {"recovery": 90, ...}}.
    Явный 0 сохраняется; без значения берётся общее извлечение аппарата.
    """
    result: dict[str, float] = {}
    if not isinstance(raw, dict):
        return result
    for comp_id, value in raw.items():
        if isinstance(value, dict):
            value = value.get("recovery")
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            result[comp_id] = float(value)
    return result


def parse_equipment(data: dict[str, Any]) -> AnyEquipment:
    """
    Фабрика оборудования из данных канвы.

    Args:
        data: {id, name, type, parameters: {...}}
    """
    eq_id = data["id"]
    name = data.get("name", "")
    raw_type = data.get("type")
    params = data.get("parameters") or {}
    eq_type = resolve_equipment_type(raw_type)

    if eq_type == EquipmentType.CRUSHER:
        return CrusherEquipment(
            id=eq_id,
            name=name,
            power_kw=params.get("power") or 500.0,
            reduction_ratio=params.get("reduction") or 5.0,
            target_size=params.get("targetSize") or None,
            capacity_tph=params.get("capacity") or 100.0,
            efficiency=params.get("efficiency") or 95.0,
        )
    if eq_type == EquipmentType.MILL:
        return MillEquipment(
            id=eq_id,
            name=name,
            power_kw=params.get("power") or 1000.0,
            diameter_m=params.get("diameter") or 4.5,
            length_m=params.get("length") or 6.0,
            ball_load_pct=params.get("ballLoad") or 35.0,
            speed_pct=params.get("speed") or 75.0,
            target_size=params.get("targetSize") or None,
        )
    if eq_type == EquipmentType.MIXER:
        return MixerEquipment(
            id=eq_id,
            name=name,
            number_of_inputs=int(params.get("numberOfInputs") or 2),
            number_of_outputs=int(params.get("numberOfOutputs") or 1),
            splits=tuple(float(s or 0) for s in params.get("splits") or ()),
            power_kw=params.get("power") or 50.0,
            efficiency=params.get("efficiency") or 99.0,
        )
    if eq_type in FLOTATION_TYPES:
        return FlotationEquipment(
            id=eq_id,
            name=name,
            stage=eq_type,
            recovery_pct=params.get("recovery") or FLOTATION_DEFAULT_RECOVERY_PCT,
            target_grade_pct=params.get("grade") or FLOTATION_DEFAULT_TARGET_GRADE_PCT,
            number_of_cells=int(params.get("numberOfCells") or 4),
            cell_volume_m3=params.get("cellVolume") or 100.0,
            component_recovery=_component_recovery(params.get("components")),
        )
    return GenericEquipment(id=eq_id, name=name, raw_type=raw_type or "unknown")


def coerce_equipments(items: Iterable[Union[Equipment, dict[str, Any]]]) -> list[Equipment]:
    """Принять как готовые объекты Equipment, так и словари канвы."""
    return [item if isinstance(item, Equipment) else parse_equipment(item) for item in items]
