"""
Stream — Потоки технологической схемы обогащения.

FlowLine — ребро схемы в том виде, в каком его задаёт пользователь
(расход, % твёрдого, содержания компонентов).
DetailedStream — расширенное представление потока на время одного
балансового расчёта: твёрдое, вода, объёмный расход и абсолютная
масса каждого компонента.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Optional

from .heuristics import DEFAULT_ORE_DENSITY, DEFAULT_PARTICLE_SIZE_UM, WATER_DENSITY


@dataclass(frozen=True)
class MineralComponent:
    """
    Минеральный компонент (например, гематит, кварц).

    Баланс считается отдельно по каждому активному компоненту.
    """

    id: str
    symbol: str = ""
    name: str = ""
    density: float = DEFAULT_ORE_DENSITY  # г/см³
    default_grade: float = 0.0  # % в руде
    is_active: bool = True
    work_index: Optional[float] = None  # кВт·ч/т

    @property
    def label(self) -> str:
        return self.symbol or self.id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MineralComponent":
        return cls(
            id=data["id"],
            symbol=data.get("symbol", ""),
            name=data.get("name", ""),
            density=data.get("density") or DEFAULT_ORE_DENSITY,
            default_grade=data.get("defaultGrade", data.get("default_grade", 0.0)) or 0.0,
            is_active=bool(data.get("isActive", data.get("is_active", True))),
            work_index=data.get("workIndex", data.get("work_index")),
        )


def active_components(components: Iterable[MineralComponent]) -> list[MineralComponent]:
    """Только активные компоненты участвуют в балансе."""
    return [c for c in components if c.is_active]


@dataclass
class FlowLine:
    """
    Линия потока (ребро схемы).

    Отсутствие from_equipment — поток питания схемы,
    отсутствие to_equipment — продукт, покидающий схему.
    """

    id: str
    name: str = ""
    from_equipment: Optional[str] = None
    to_equipment: Optional[str] = None
    flow_rate: float = 0.0  # т/ч
    solid_percent: float = 0.0  # % твёрдого
    density: float = 0.0  # т/м³
    particle_size: float = 0.0  # P80, мкм
    components: list[str] = field(default_factory=list)
    component_grades: dict[str, float] = field(default_factory=dict)  # % от твёрдого

    @property
    def is_feed(self) -> bool:
        return not self.from_equipment

    @property
    def is_product(self) -> bool:
        return not self.to_equipment

    @property
    def has_grades(self) -> bool:
        return bool(self.component_grades)

    def copy(self, **changes: Any) -> "FlowLine":
        """Копия без общих списков/словарей с исходной линией."""
        changes.setdefault("components", list(self.components))
        changes.setdefault("component_grades", dict(self.component_grades))
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FlowLine":
        """Создать из формата канвы (camelCase)."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            from_equipment=data.get("fromEquipment") or None,
            to_equipment=data.get("toEquipment") or None,
            flow_rate=data.get("flowRate") or 0.0,
            solid_percent=data.get("solidPercent") or 0.0,
            density=data.get("density") or 0.0,
            particle_size=data.get("particleSize") or 0.0,
            components=list(data.get("components") or []),
            component_grades=dict(data.get("componentGrades") or {}),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "fromEquipment": self.from_equipment,
            "toEquipment": self.to_equipment,
            "flowRate": self.flow_rate,
            "solidPercent": self.solid_percent,
            "density": self.density,
            "particleSize": self.particle_size,
            "components": list(self.components),
            "componentGrades": dict(self.component_grades),
        }


@dataclass
class DetailedStream:
    """
    Поток на время балансового расчёта.

    solid_flow = flow_rate * solid_percent / 100
    water_flow = flow_rate - solid_flow
    component_percentages — % от твёрдого, component_mass — т/ч.
    """

    flow_rate: float = 0.0
    solid_percent: float = 0.0
    density: float = DEFAULT_ORE_DENSITY
    particle_size: float = DEFAULT_PARTICLE_SIZE_UM
    solid_flow: float = 0.0
    water_flow: float = 0.0
    volumetric_flow: float = 0.0  # м³/ч
    component_mass: dict[str, float] = field(default_factory=dict)
    component_percentages: dict[str, float] = field(default_factory=dict)
    stream_id: Optional[str] = None
    name: str = ""

    @classmethod
    def from_flow_line(
        cls,
        flow_line: FlowLine,
        components: Iterable[MineralComponent],
        default_density: float = DEFAULT_ORE_DENSITY,
        default_particle_size: float = DEFAULT_PARTICLE_SIZE_UM,
    ) -> "DetailedStream":
        """Поток из линии схемы; пустые плотность и крупность берутся из значений по умолчанию."""
        stream = cls(
            flow_rate=flow_line.flow_rate,
            solid_percent=flow_line.solid_percent,
            density=flow_line.density or default_density,
            particle_size=flow_line.particle_size or default_particle_size,
            stream_id=flow_line.id,
            name=flow_line.name,
        )
        stream.recompute_flows()

        for comp in components:
            grade = flow_line.component_grades.get(comp.id, 0.0) or 0.0
            stream.component_mass[comp.id] = stream.solid_flow * grade / 100.0
        stream.refresh_percentages(components)
        return stream

    def recompute_flows(self) -> None:
        """Пересчитать твёрдое, воду и объём из расхода и % твёрдого."""
        self.solid_flow = self.flow_rate * self.solid_percent / 100.0
        self.water_flow = self.flow_rate - self.solid_flow
        self.volumetric_flow = volumetric_flow(self.solid_flow, self.water_flow, self.density)

    def refresh_percentages(self, components: Iterable[MineralComponent]) -> None:
        """Пересчитать содержания из масс компонентов и текущего твёрдого."""
        for comp in components:
            mass = self.component_mass.get(comp.id, 0.0)
            self.component_percentages[comp.id] = (
                mass / self.solid_flow * 100.0 if self.solid_flow > 0 else 0.0
            )

    def total_percentage(self, components: Iterable[MineralComponent]) -> float:
        return sum(self.component_percentages.get(c.id, 0.0) for c in components)

    def copy(self, **changes: Any) -> "DetailedStream":
        changes.setdefault("component_mass", dict(self.component_mass))
        changes.setdefault("component_percentages", dict(self.component_percentages))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "id": self.stream_id,
            "name": self.name,
            "flow_rate": self.flow_rate,
            "solid_percent": self.solid_percent,
            "density": self.density,
            "particle_size": self.particle_size,
            "solid_flow": self.solid_flow,
            "water_flow": self.water_flow,
            "volumetric_flow": self.volumetric_flow,
            "component_mass": dict(self.component_mass),
            "component_percentages": dict(self.component_percentages),
        }


def volumetric_flow(solid_flow: float, water_flow: float, density: float) -> float:
    """Объёмный расход пульпы, м³/ч."""
    solid_density = density if density > 0 else DEFAULT_ORE_DENSITY
    return solid_flow / solid_density + water_flow / WATER_DENSITY


def combine_streams(
    streams: list[DetailedStream], components: Iterable[MineralComponent]
) -> DetailedStream:
    """
    Смешать потоки: суммы расходов, твёрдого и масс компонентов.

    Плотность — объёмно-взвешенная по твёрдому, крупность — взвешенная по твёрдому.
    """
    components = list(components)
    total_flow = sum(s.flow_rate for s in streams)
    total_solids = sum(s.solid_flow for s in streams)

    solids_volume = sum(
        s.solid_flow / (s.density if s.density > 0 else DEFAULT_ORE_DENSITY) for s in streams
    )
    density = total_solids / solids_volume if solids_volume > 0 else DEFAULT_ORE_DENSITY
    if total_solids > 0:
        particle_size = sum(s.particle_size * s.solid_flow for s in streams) / total_solids
    else:
        particle_size = streams[0].particle_size if streams else DEFAULT_PARTICLE_SIZE_UM

    mixed = DetailedStream(
        flow_rate=total_flow,
        solid_percent=total_solids / total_flow * 100.0 if total_flow > 0 else 0.0,
        density=density,
        particle_size=particle_size,
        solid_flow=total_solids,
        water_flow=total_flow - total_solids,
    )
    mixed.volumetric_flow = volumetric_flow(mixed.solid_flow, mixed.water_flow, density)
    for comp in components:
        mixed.component_mass[comp.id] = sum(s.component_mass.get(comp.id, 0.0) for s in streams)
    mixed.refresh_percentages(components)
    return mixed


@dataclass
class MaterialStream:
    """Упрощённый поток для вспомогательных калькуляторов и legacy-расчёта."""

    flow_rate: float  # т/ч
    solid_percent: float  # %
    density: float = DEFAULT_ORE_DENSITY  # г/см³
    particle_size: float = DEFAULT_PARTICLE_SIZE_UM  # P80, мкм
    mineral_content: dict[str, float] = field(default_factory=dict)  # % масс.
    water_flow: Optional[float] = None
    solid_flow: Optional[float] = None
    components: dict[str, float] = field(default_factory=dict)  # % содержания

    def copy(self, **changes: Any) -> "MaterialStream":
        changes.setdefault("mineral_content", dict(self.mineral_content))
        changes.setdefault("components", dict(self.components))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        return {
            "flow_rate": self.flow_rate,
            "solid_percent": self.solid_percent,
            "density": self.density,
            "particle_size": self.particle_size,
            "mineral_content": dict(self.mineral_content),
            "water_flow": self.water_flow,
            "solid_flow": self.solid_flow,
            "components": dict(self.components),
        }
