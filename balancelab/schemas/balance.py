"""
Контракты HTTP API балансового расчёта.

Поля запросов совпадают с форматом канвы (camelCase); в Python-коде
доступны snake_case имена. to_domain() переводит запрос в объекты движка.
"""

from typing import Any, Optional

from balancelab.core.engine.calculators import ComponentAssay
from balancelab.core.engine.equipment import AnyEquipment, parse_equipment
from balancelab.core.engine.simulation import SimulationConfig
from balancelab.core.engine.stream import FlowLine, MaterialStream, MineralComponent
from balancelab.core.settings import settings
from pydantic import BaseModel, ConfigDict, Field


class CanvasModel(BaseModel):
    """База: принимает и camelCase, и snake_case."""

    model_config = ConfigDict(populate_by_name=True)


# ============================================================================
# Flowsheet snapshot
# ============================================================================


class MineralComponentIn(CanvasModel):
    id: str
    symbol: str = ""
    name: str = ""
    density: float = Field(default=2.8, gt=0)
    default_grade: float = Field(default=0.0, alias="defaultGrade", ge=0)
    is_active: bool = Field(default=True, alias="isActive")
    work_index: Optional[float] = Field(default=None, alias="workIndex")

    def to_domain(self) -> MineralComponent:
        return MineralComponent(
            id=self.id,
            symbol=self.symbol,
            name=self.name,
            density=self.density,
            default_grade=self.default_grade,
            is_active=self.is_active,
            work_index=self.work_index,
        )


class EquipmentIn(CanvasModel):
    """Аппарат схемы; parameters — как в форме свойств канвы."""

    id: str
    name: str = ""
    type: Optional[str] = None
    parameters: dict[str, Any] = Field(default_factory=dict)

    def to_domain(self) -> AnyEquipment:
        return parse_equipment(self.model_dump())


class FlowLineIn(CanvasModel):
    id: str
    name: str = ""
    from_equipment: Optional[str] = Field(default=None, alias="fromEquipment")
    to_equipment: Optional[str] = Field(default=None, alias="toEquipment")
    flow_rate: float = Field(default=0.0, alias="flowRate")
    solid_percent: float = Field(default=0.0, alias="solidPercent")
    density: float = 0.0
    particle_size: float = Field(default=0.0, alias="particleSize")
    components: list[str] = Field(default_factory=list)
    component_grades: dict[str, float] = Field(default_factory=dict, alias="componentGrades")

    def to_domain(self) -> FlowLine:
        return FlowLine(
            id=self.id,
            name=self.name,
            from_equipment=self.from_equipment or None,
            to_equipment=self.to_equipment or None,
            flow_rate=self.flow_rate,
            solid_percent=self.solid_percent,
            density=self.density,
            particle_size=self.particle_size,
            components=list(self.components),
            component_grades=dict(self.component_grades),
        )


class FlowsheetRequest(CanvasModel):
    equipments: list[EquipmentIn] = Field(default_factory=list)
    flow_lines: list[FlowLineIn] = Field(default_factory=list, alias="flowLines")
    mineral_components: list[MineralComponentIn] = Field(
        default_factory=list, alias="mineralComponents"
    )

    def domain_equipments(self) -> list[AnyEquipment]:
        return [e.to_domain() for e in self.equipments]

    def domain_flow_lines(self) -> list[FlowLine]:
        return [fl.to_domain() for fl in self.flow_lines]

    def domain_components(self) -> list[MineralComponent]:
        return [c.to_domain() for c in self.mineral_components]


class BalanceRequest(FlowsheetRequest):
    max_iterations: Optional[int] = Field(default=None, alias="maxIterations", ge=1, le=500)
    tolerance: Optional[float] = Field(default=None, gt=0, le=10)

    def solver_options(self) -> dict[str, Any]:
        return {
            "max_iterations": self.max_iterations or settings.balance_max_iterations,
            "tolerance": self.tolerance or settings.balance_tolerance_pct,
        }


class SimulationConfigIn(CanvasModel):
    feed_rate: float = Field(default=1000.0, alias="feedRate", gt=0)
    solid_percent: float = Field(default=70.0, alias="solidPercent", gt=0, le=100)
    ore_density: float = Field(default=2.8, alias="oreDensity", gt=0)


class SimulationRequest(BalanceRequest):
    config: SimulationConfigIn = Field(default_factory=SimulationConfigIn)

    def to_config(self) -> SimulationConfig:
        options = self.solver_options()
        return SimulationConfig(
            feed_rate=self.config.feed_rate,
            solid_percent=self.config.solid_percent,
            ore_density=self.config.ore_density,
            max_iterations=options["max_iterations"],
            tolerance=options["tolerance"],
        )


class SensitivityRequest(FlowsheetRequest):
    # Проверяется движком (InvalidInput -> 400)
    perturbation: float = 5.0


# ============================================================================
# Responses
# ============================================================================


class PropagateResponse(CanvasModel):
    flow_lines: list[FlowLineIn] = Field(alias="flowLines")


class DetailedStreamOut(BaseModel):
    id: Optional[str] = None
    name: str = ""
    flow_rate: float
    solid_percent: float
    density: float
    particle_size: float
    solid_flow: float
    water_flow: float
    volumetric_flow: float
    component_mass: dict[str, float] = Field(default_factory=dict)
    component_percentages: dict[str, float] = Field(default_factory=dict)


class IterativeResultOut(BaseModel):
    converged: bool
    iterations: int
    global_error: float
    component_errors: dict[str, float] = Field(default_factory=dict)
    max_error: float
    coherence_issues: list[str] = Field(default_factory=list)
    state: str
    log: list[str] = Field(default_factory=list)


class BalanceResponse(BaseModel):
    streams: list[DetailedStreamOut]
    result: IterativeResultOut
    coherence_report: list[str] = Field(default_factory=list)
    # Линии после распространения данных, в формате канвы
    propagated_flow_lines: list[FlowLineIn] = Field(default_factory=list)
    execution_time_ms: float = 0.0


class EquipmentResultOut(BaseModel):
    equipment_id: str
    equipment: str
    inputs: list[dict[str, Any]] = Field(default_factory=list)
    outputs: list[dict[str, Any]] = Field(default_factory=list)
    efficiency: float
    power_consumption: float
    warnings: list[str] = Field(default_factory=list)


class SimulationResponse(BaseModel):
    mode: str
    results: list[EquipmentResultOut]
    total_power_kw: float
    iterative_result: Optional[IterativeResultOut] = None
    detailed_streams: list[DetailedStreamOut] = Field(default_factory=list)
    coherence_report: list[str] = Field(default_factory=list)


class AnalysisResponse(BaseModel):
    is_valid: bool
    global_error: float
    component_errors: dict[str, float] = Field(default_factory=dict)
    mass_recovery: dict[str, float] = Field(default_factory=dict)
    enrichment_ratio: dict[str, float] = Field(default_factory=dict)
    concentration_ratio: float = 0.0
    discrepancies: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class SensitivityEntryOut(BaseModel):
    parameter: str
    base_value: float
    perturbed_value: float
    impact_on_recovery: dict[str, float] = Field(default_factory=dict)
    impact_on_balance: float = 0.0


class SensitivityResponse(BaseModel):
    entries: list[SensitivityEntryOut]


class TopologyReport(BaseModel):
    """Структурная проверка схемы (диагностика, расчёт не выполняется)."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    processing_order: list[str] = Field(default_factory=list)
    topological_order: list[str] = Field(default_factory=list)
    recycle_streams: list[str] = Field(default_factory=list)
    feed_streams: list[str] = Field(default_factory=list)
    product_streams: list[str] = Field(default_factory=list)


# ============================================================================
# Calculators
# ============================================================================


class BondWorkRequest(CanvasModel):
    feed_size: float = Field(alias="feedSize", gt=0)  # F80, мкм
    product_size: float = Field(alias="productSize", gt=0)  # P80, мкм
    work_index: float = Field(default=15.0, alias="workIndex", gt=0)


class BondWorkResponse(BaseModel):
    specific_energy_kwh_per_t: float


class MillPowerRequest(CanvasModel):
    diameter: float = Field(gt=0)
    length: float = Field(gt=0)
    ball_load: float = Field(default=35.0, alias="ballLoad", ge=0, le=100)
    speed: float = Field(default=75.0, ge=0, le=100)
    feed_rate: float = Field(alias="feedRate", ge=0)


class MillPowerResponse(BaseModel):
    power_kw: float


class FlotationRecoveryRequest(CanvasModel):
    grade_feed: float = Field(alias="gradeFeed", ge=0, le=100)
    grade_concentrate: float = Field(alias="gradeConcentrate", ge=0, le=100)
    grade_tailing: float = Field(alias="gradeTailing", ge=0, le=100)


class FlotationRecoveryResponse(BaseModel):
    recovery_pct: float


class MaterialStreamIn(CanvasModel):
    flow_rate: float = Field(alias="flowRate", gt=0)
    solid_percent: float = Field(alias="solidPercent", gt=0, le=100)
    density: float = Field(default=2.8, gt=0)
    particle_size: float = Field(default=150.0, alias="particleSize", gt=0)
    mineral_content: dict[str, float] = Field(default_factory=dict, alias="mineralContent")

    def to_domain(self) -> MaterialStream:
        return MaterialStream(
            flow_rate=self.flow_rate,
            solid_percent=self.solid_percent,
            density=self.density,
            particle_size=self.particle_size,
            mineral_content=dict(self.mineral_content),
        )


class ComponentAssayIn(CanvasModel):
    feed_grade: float = Field(alias="feedGrade", ge=0, le=100)
    concentrate: float = Field(ge=0, le=100)
    tailing: float = Field(ge=0, le=100)
    recovery: float = Field(ge=0, le=100)

    def to_domain(self) -> ComponentAssay:
        return ComponentAssay(
            feed_grade=self.feed_grade,
            concentrate=self.concentrate,
            tailing=self.tailing,
            recovery=self.recovery,
        )


class FlotationBalanceRequest(CanvasModel):
    feed: MaterialStreamIn
    recovery: float = Field(ge=0, le=100)
    grade_concentrate: float = Field(alias="gradeConcentrate", gt=0, le=100)
    components: Optional[dict[str, ComponentAssayIn]] = None

    def domain_components(self) -> Optional[dict[str, ComponentAssay]]:
        if not self.components:
            return None
        return {name: assay.to_domain() for name, assay in self.components.items()}
