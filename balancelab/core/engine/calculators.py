"""
Calculators — Вспомогательные расчёты в замкнутой форме.

Энергия по Бонду, мощность мельницы, крупность дробления,
двухпродуктовая формула флотации, водный баланс, Розин-Раммлер,
смешение потоков.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from ..exceptions import InvalidInput
from .stream import MaterialStream

BOND_DEFAULT_WORK_INDEX = 15.0  # кВт·ч/т
MILL_POWER_CONSTANT = 4.5  # для шаровых мельниц с центральной разгрузкой
ROSIN_RAMMLER_D63_FACTOR = 0.7
ROSIN_RAMMLER_EXPONENT = 1.5
VALUABLE_DEFAULT_FEED_GRADE = 5.0  # %
MASS_PULL_BOUNDS = (0.01, 0.99)
CONCENTRATE_SIZE_FACTOR = 0.9
TAILING_SIZE_FACTOR = 1.1


def bond_specific_energy(
    feed_size: float, product_size: float, work_index: float = BOND_DEFAULT_WORK_INDEX
) -> float:
    """
    Удельная энергия измельчения по Бонду, кВт·ч/т.

    W = 10 * Wi * (1/sqrt(P80) - 1/sqrt(F80)); 0, если продукт не тоньше питания.
    """
    if feed_size <= 0 or product_size <= 0 or product_size >= feed_size:
        return 0.0
    work = 10.0 * work_index * (1.0 / math.sqrt(product_size) - 1.0 / math.sqrt(feed_size))
    return max(0.0, work)


def mill_power(
    diameter: float, length: float, ball_load: float, speed: float, feed_rate: float
) -> float:
    """Мощность шаровой мельницы, кВт: K * D^2.5 * L * загрузка * скорость * питание."""
    power = (
        MILL_POWER_CONSTANT
        * diameter**2.5
        * length
        * (ball_load / 100.0)
        * (speed / 100.0)
    )
    return power * feed_rate


def crusher_product_size(feed_size: float, reduction_ratio: float) -> float:
    if reduction_ratio <= 0:
        raise InvalidInput(
            "Reduction ratio must be positive", details={"reduction_ratio": reduction_ratio}
        )
    return feed_size / reduction_ratio


def flotation_recovery(grade_feed: float, grade_concentrate: float, grade_tailing: float) -> float:
    """
    Извлечение по содержаниям (двухпродуктовая формула), %.

    0, если концентрат не богаче хвостов; результат ограничен [0, 100].
    """
    if grade_concentrate <= grade_tailing:
        return 0.0
    numerator = (grade_concentrate - grade_tailing) * grade_feed
    denominator = numerator + (grade_feed - grade_tailing) * grade_tailing
    if denominator == 0:
        return 0.0
    return min(100.0, max(0.0, numerator / denominator * 100.0))


@dataclass
class ComponentAssay:
    """Содержания компонента в питании/концентрате/хвостах и заявленное извлечение."""

    feed_grade: float
    concentrate: float
    tailing: float
    recovery: float


@dataclass
class ComponentBalanceCheck:
    feed_mass: float
    concentrate_mass: float
    tailing_mass: float
    actual_recovery: float
    mass_balance_error: float
    recovery_error: float
    is_valid: bool

    def to_dict(self) -> dict:
        return {
            "feed_mass": round(self.feed_mass, 3),
            "concentrate_mass": round(self.concentrate_mass, 3),
            "tailing_mass": round(self.tailing_mass, 3),
            "actual_recovery": round(self.actual_recovery, 2),
            "mass_balance_error": round(self.mass_balance_error, 2),
            "recovery_error": round(self.recovery_error, 2),
            "is_valid": self.is_valid,
        }


@dataclass
class MetallurgicalBalance:
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    calculations: dict[str, ComponentBalanceCheck] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "calculations": {k: v.to_dict() for k, v in self.calculations.items()},
        }


def metallurgical_balance(
    feed_flow: float,
    concentrate_flow: float,
    tailing_flow: float,
    components: dict[str, ComponentAssay],
) -> MetallurgicalBalance:
    """
    Проверка Aa = Bb + Cc по общему расходу и по компонентам.

    Допуски: 1% по массе, 2 п.п. по извлечению.
    """
    if feed_flow <= 0:
        raise InvalidInput("Feed flow must be positive", details={"feed_flow": feed_flow})

    errors: list[str] = []
    mass_error = abs(feed_flow - (concentrate_flow + tailing_flow)) / feed_flow * 100.0
    if mass_error > 1.0:
        errors.append(f"Mass balance error: {mass_error:.2f}%")

    calculations: dict[str, ComponentBalanceCheck] = {}
    for name, assay in components.items():
        feed_mass = feed_flow * assay.feed_grade / 100.0
        conc_mass = concentrate_flow * assay.concentrate / 100.0
        tail_mass = tailing_flow * assay.tailing / 100.0

        comp_error = (
            abs(feed_mass - (conc_mass + tail_mass)) / feed_mass * 100.0 if feed_mass > 0 else 0.0
        )
        actual_recovery = conc_mass / feed_mass * 100.0 if feed_mass > 0 else 0.0
        recovery_error = abs(assay.recovery - actual_recovery)

        calculations[name] = ComponentBalanceCheck(
            feed_mass=feed_mass,
            concentrate_mass=conc_mass,
            tailing_mass=tail_mass,
            actual_recovery=actual_recovery,
            mass_balance_error=comp_error,
            recovery_error=recovery_error,
            is_valid=comp_error < 1.0 and recovery_error < 2.0,
        )

        if comp_error > 1.0:
            errors.append(f"{name}: balance error {comp_error:.2f}%")
        if recovery_error > 2.0:
            errors.append(f"{name}: inconsistent recovery ({recovery_error:.2f}% error)")

    return MetallurgicalBalance(is_valid=not errors, errors=errors, calculations=calculations)


@dataclass
class FlotationSplit:
    concentrate: MaterialStream
    tailing: MaterialStream
    balance: Optional[MetallurgicalBalance] = None

    def to_dict(self) -> dict:
        return {
            "concentrate": self.concentrate.to_dict(),
            "tailing": self.tailing.to_dict(),
            "balance": self.balance.to_dict() if self.balance else None,
        }


def flotation_mass_balance(
    feed: MaterialStream,
    recovery: float,
    grade_concentrate: float,
    components: Optional[dict[str, ComponentAssay]] = None,
) -> FlotationSplit:
    """
    Двухпродуктовый баланс флотации с точным сохранением массы.

    Выход концентрата C/F = f * R / c (если c > f), иначе R;
    ограничен [0.01, 0.99]. Хвосты — разность, твёрдое и вода
    делятся в той же пропорции.
    """
    metallurgical_recovery = recovery / 100.0
    feed_grade = feed.mineral_content.get("valuable") or VALUABLE_DEFAULT_FEED_GRADE
    tailing_grade = feed_grade * (1 - metallurgical_recovery)

    if grade_concentrate > feed_grade:
        mass_pull = feed_grade * metallurgical_recovery / grade_concentrate
    else:
        mass_pull = metallurgical_recovery
    low, high = MASS_PULL_BOUNDS
    mass_pull = max(low, min(high, mass_pull))

    concentrate_flow = feed.flow_rate * mass_pull
    tailing_flow = feed.flow_rate - concentrate_flow

    feed_solids = feed.flow_rate * feed.solid_percent / 100.0
    conc_solids = feed_solids * mass_pull
    tail_solids = feed_solids - conc_solids
    feed_water = feed.flow_rate - feed_solids
    conc_water = concentrate_flow - conc_solids
    tail_water = feed_water - conc_water

    conc_components: dict[str, float] = {}
    tail_components: dict[str, float] = {}
    balance = None
    if components:
        for name, assay in components.items():
            total = feed_solids * assay.feed_grade / 100.0
            in_conc = total * assay.recovery / 100.0
            conc_components[name] = in_conc / conc_solids * 100.0 if conc_solids > 0 else 0.0
            tail_components[name] = (
                (total - in_conc) / tail_solids * 100.0 if tail_solids > 0 else 0.0
            )
        balance = metallurgical_balance(
            feed.flow_rate, concentrate_flow, tailing_flow, components
        )

    concentrate = MaterialStream(
        flow_rate=concentrate_flow,
        solid_percent=conc_solids / concentrate_flow * 100.0 if concentrate_flow > 0 else 0.0,
        density=feed.density,
        particle_size=feed.particle_size * CONCENTRATE_SIZE_FACTOR,
        mineral_content={"valuable": grade_concentrate, "gangue": 100.0 - grade_concentrate},
        water_flow=conc_water,
        solid_flow=conc_solids,
        components=conc_components,
    )
    tailing = MaterialStream(
        flow_rate=tailing_flow,
        solid_percent=tail_solids / tailing_flow * 100.0 if tailing_flow > 0 else 0.0,
        density=feed.density,
        particle_size=feed.particle_size * TAILING_SIZE_FACTOR,
        mineral_content={"valuable": tailing_grade, "gangue": 100.0 - tailing_grade},
        water_flow=tail_water,
        solid_flow=tail_solids,
        components=tail_components,
    )
    return FlotationSplit(concentrate=concentrate, tailing=tailing, balance=balance)


@dataclass
class MassBalanceCheck:
    is_valid: bool
    error: float
    message: str


def check_mass_balance(
    inputs: list[MaterialStream], outputs: list[MaterialStream]
) -> MassBalanceCheck:
    """Общий баланс по расходу, допуск 1%."""
    total_in = sum(s.flow_rate for s in inputs)
    total_out = sum(s.flow_rate for s in outputs)
    if total_in <= 0:
        raise InvalidInput("Total input flow must be positive", details={"total_in": total_in})

    error = abs(total_in - total_out) / total_in * 100.0
    is_valid = error < 1.0
    if is_valid:
        message = "Mass balance OK"
    else:
        message = (
            f"Balance error: {error:.2f}% (in {total_in:.2f} t/h, out {total_out:.2f} t/h)"
        )
    return MassBalanceCheck(is_valid=is_valid, error=error, message=message)


def water_balance(stream: MaterialStream) -> MaterialStream:
    """
    Расход воды по расходу твёрдого и % твёрдого.

    flow_rate трактуется как расход твёрдого; вода в м³/ч при плотности 1 т/м³.
    """
    if stream.solid_percent <= 0:
        raise InvalidInput(
            "Solid percentage must be positive", details={"solid_percent": stream.solid_percent}
        )
    solid_flow = stream.flow_rate
    total_mass = solid_flow / (stream.solid_percent / 100.0)
    return stream.copy(water_flow=total_mass - solid_flow, solid_flow=solid_flow)


def rosin_rammler_retained(d80: float, size: float) -> float:
    """Остаток на сите заданной крупности, % (d63 = 0.7 * d80, n = 1.5)."""
    d63 = ROSIN_RAMMLER_D63_FACTOR * d80
    if d63 <= 0:
        return 0.0
    retained = 100.0 * math.exp(-((size / d63) ** ROSIN_RAMMLER_EXPONENT))
    return max(0.0, min(100.0, retained))


def mix_streams(streams: list[MaterialStream], efficiency: float = 99.0) -> MaterialStream:
    """
    Смешать потоки.

    Плотность — объёмно-взвешенная, крупность — средняя по Заутеру
    (взвешенная по удельной поверхности). Выход умножается на efficiency.

    Raises:
        InvalidInput: пустой список потоков
    """
    if not streams:
        raise InvalidInput("No streams to mix")
    if len(streams) == 1:
        return streams[0].copy()

    factor = efficiency / 100.0
    total_flow = sum(s.flow_rate for s in streams)
    output_flow = total_flow * factor

    total_solids = sum(s.flow_rate * s.solid_percent / 100.0 for s in streams)
    output_solids = total_solids * factor

    total_volume = sum(s.flow_rate / s.density for s in streams if s.density > 0)
    surface = sum(s.flow_rate / s.particle_size for s in streams if s.particle_size > 0)

    minerals: dict[str, float] = {}
    for s in streams:
        for mineral in s.mineral_content:
            minerals.setdefault(mineral, 0.0)
    for mineral in minerals:
        weighted = sum(s.flow_rate * s.mineral_content.get(mineral, 0.0) / 100.0 for s in streams)
        minerals[mineral] = weighted / total_flow * 100.0 if total_flow > 0 else 0.0

    components: dict[str, float] = {}
    for s in streams:
        for comp in s.components:
            components.setdefault(comp, 0.0)
    for comp in components:
        comp_mass = sum(
            s.flow_rate * s.solid_percent / 100.0 * s.components.get(comp, 0.0) / 100.0
            for s in streams
        )
        components[comp] = comp_mass / output_solids * 100.0 if output_solids > 0 else 0.0

    return MaterialStream(
        flow_rate=output_flow,
        solid_percent=output_solids / output_flow * 100.0 if output_flow > 0 else 0.0,
        density=total_flow / total_volume if total_volume > 0 else streams[0].density,
        particle_size=total_flow / surface if surface > 0 else streams[0].particle_size,
        mineral_content=minerals,
        water_flow=sum(s.water_flow or 0.0 for s in streams) * factor,
        solid_flow=output_solids,
        components=components,
    )
