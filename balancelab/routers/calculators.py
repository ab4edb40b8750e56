"""
Calculators Router — формулы в замкнутой форме для форм свойств канвы.
"""

from balancelab.core.engine.calculators import (
    bond_specific_energy,
    flotation_mass_balance,
    flotation_recovery,
    mill_power,
)
from balancelab.core.rate_limit import RATE_LIMITS, limiter
from balancelab.schemas.balance import (
    BondWorkRequest,
    BondWorkResponse,
    FlotationBalanceRequest,
    FlotationRecoveryRequest,
    FlotationRecoveryResponse,
    MillPowerRequest,
    MillPowerResponse,
)
from fastapi import APIRouter, Request

router = APIRouter(prefix="/calculators", tags=["calculators"])


@router.post("/bond-work", response_model=BondWorkResponse)
@limiter.limit(RATE_LIMITS["calculator_operations"])
def bond_work(request: Request, payload: BondWorkRequest) -> BondWorkResponse:
    """Удельная энергия измельчения по Бонду, кВт·ч/т."""
    energy = bond_specific_energy(payload.feed_size, payload.product_size, payload.work_index)
    return BondWorkResponse(specific_energy_kwh_per_t=energy)


@router.post("/mill-power", response_model=MillPowerResponse)
@limiter.limit(RATE_LIMITS["calculator_operations"])
def mill_power_endpoint(request: Request, payload: MillPowerRequest) -> MillPowerResponse:
    power = mill_power(
        payload.diameter, payload.length, payload.ball_load, payload.speed, payload.feed_rate
    )
    return MillPowerResponse(power_kw=power)


@router.post("/flotation-recovery", response_model=FlotationRecoveryResponse)
@limiter.limit(RATE_LIMITS["calculator_operations"])
def flotation_recovery_endpoint(
    request: Request, payload: FlotationRecoveryRequest
) -> FlotationRecoveryResponse:
    """Извлечение по содержаниям питания, концентрата и хвостов."""
    recovery = flotation_recovery(
        payload.grade_feed, payload.grade_concentrate, payload.grade_tailing
    )
    return FlotationRecoveryResponse(recovery_pct=recovery)


@router.post("/flotation-balance")
@limiter.limit(RATE_LIMITS["calculator_operations"])
def flotation_balance(request: Request, payload: FlotationBalanceRequest) -> dict:
    """
    Двухпродуктовый баланс флотации.

    Возвращает концентрат, хвосты и, если заданы компоненты,
    проверку Aa = Bb + Cc по каждому из них.
    """
    split = flotation_mass_balance(
        payload.feed.to_domain(),
        payload.recovery,
        payload.grade_concentrate,
        payload.domain_components(),
    )
    return split.to_dict()
