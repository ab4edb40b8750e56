"""
Transfer Models — Передаточные функции оборудования.

Каждый класс реализует calculate() для преобразования входных потоков
узла в выходные. Массы компонентов сохраняются по построению:
выход = вход (смеситель) или концентрат + хвосты = питание (флотация).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable

from .equipment import (
    FLOTATION_TYPES,
    CrusherEquipment,
    Equipment,
    EquipmentType,
    FlotationEquipment,
    MillEquipment,
    MixerEquipment,
)
from .heuristics import DEFAULT_HEURISTICS, BalanceHeuristics
from .stream import DetailedStream, MineralComponent, combine_streams, volumetric_flow


class TransferModel(ABC):
    """Базовая передаточная функция оборудования."""

    def __init__(
        self,
        equipment: Equipment,
        components: Iterable[MineralComponent],
        heuristics: BalanceHeuristics = DEFAULT_HEURISTICS,
    ):
        self.equipment = equipment
        self.components = list(components)
        self.heuristics = heuristics

    def apply(self, inputs: list[DetailedStream]) -> list[DetailedStream]:
        """
        Рассчитать выходы узла.

        Без входных потоков возвращает пустой список — узел
        пропускается на этой итерации.
        """
        if not inputs:
            return []
        return self.calculate(inputs)

    @abstractmethod
    def calculate(self, inputs: list[DetailedStream]) -> list[DetailedStream]:
        """
        Args:
            inputs: входные потоки узла (не пустой список)

        Returns:
            Выходные потоки в порядке выходных линий узла
        """


class MixerTransfer(TransferModel):
    """
    Смеситель: сумма всех входов, деление на N выходов.

    Масса на выходе i = суммарная масса входов * доля i.
    """

    equipment: MixerEquipment

    def calculate(self, inputs: list[DetailedStream]) -> list[DetailedStream]:
        mixed = combine_streams(inputs, self.components)
        outputs = []

        for fraction in self.equipment.split_fractions():
            out = DetailedStream(
                flow_rate=mixed.flow_rate * fraction,
                solid_flow=mixed.solid_flow * fraction,
                density=mixed.density,
                particle_size=mixed.particle_size,
            )
            out.water_flow = out.flow_rate - out.solid_flow
            out.solid_percent = out.solid_flow / out.flow_rate * 100.0 if out.flow_rate > 0 else 0.0
            out.volumetric_flow = volumetric_flow(out.solid_flow, out.water_flow, out.density)
            for comp in self.components:
                out.component_mass[comp.id] = mixed.component_mass.get(comp.id, 0.0) * fraction
            out.refresh_percentages(self.components)
            outputs.append(out)

        return outputs


class FlotationTransfer(TransferModel):
    """
    Флотация: два продукта — концентрат и хвосты.

    Масса компонента в концентрате = масса в питании * извлечение,
    в хвостах — остаток (не считается независимо).
    Выход концентрата по массе: фиксированная доля общего расхода
    питания (heuristics.flotation_default_mass_pull), целевое
    содержание на разделение не влияет.
    """

    equipment: FlotationEquipment

    def mass_pull(self) -> float:
        """Доля потока питания, уходящая в концентрат (0-1)."""
        return self.heuristics.flotation_default_mass_pull

    def _product(self, flow_rate: float, solid_percent: float, feed: DetailedStream) -> DetailedStream:
        product = DetailedStream(
            flow_rate=flow_rate,
            solid_percent=solid_percent,
            density=feed.density,
            particle_size=feed.particle_size,
        )
        product.recompute_flows()
        return product

    def calculate(self, inputs: list[DetailedStream]) -> list[DetailedStream]:
        feed = inputs[0] if len(inputs) == 1 else combine_streams(inputs, self.components)

        concentrate_flow = feed.flow_rate * self.mass_pull()
        tailing_flow = feed.flow_rate - concentrate_flow

        concentrate = self._product(
            concentrate_flow, self.heuristics.concentrate_solid_percent, feed
        )
        tailing = self._product(tailing_flow, self.heuristics.tailing_solid_percent, feed)

        for comp in self.components:
            feed_mass = feed.component_mass.get(comp.id, 0.0)
            recovery = self.equipment.recovery_for(comp.id) / 100.0
            concentrate.component_mass[comp.id] = feed_mass * recovery
            tailing.component_mass[comp.id] = feed_mass - concentrate.component_mass[comp.id]

        concentrate.refresh_percentages(self.components)
        tailing.refresh_percentages(self.components)
        return [concentrate, tailing]


class SizeReductionTransfer(TransferModel):
    """Дробилка / мельница: расход и состав без изменений, крупность уменьшается."""

    equipment: CrusherEquipment | MillEquipment

    def calculate(self, inputs: list[DetailedStream]) -> list[DetailedStream]:
        target_size = self.equipment.target_size
        return [
            stream.copy(
                particle_size=target_size
                or stream.particle_size * self.heuristics.size_reduction_factor
            )
            for stream in inputs
        ]


class PassThroughTransfer(TransferModel):
    """Транзит: копии входов по значению."""

    def calculate(self, inputs: list[DetailedStream]) -> list[DetailedStream]:
        return [stream.copy() for stream in inputs]


def create_transfer_model(
    equipment: Equipment,
    components: Iterable[MineralComponent],
    heuristics: BalanceHeuristics = DEFAULT_HEURISTICS,
) -> TransferModel:
    """Фабрика передаточных функций по типу оборудования."""
    models_map: dict[EquipmentType, type[TransferModel]] = {
        EquipmentType.CRUSHER: SizeReductionTransfer,
        EquipmentType.MILL: SizeReductionTransfer,
        EquipmentType.MIXER: MixerTransfer,
    }
    for flotation_type in FLOTATION_TYPES:
        models_map[flotation_type] = FlotationTransfer

    model_class = models_map.get(equipment.kind, PassThroughTransfer)
    return model_class(equipment, components, heuristics)
