"""
Price estimation for the visiting-fee model.

Only the inspection fee plus GST is payable upfront:

    inspection_fee = base_inspection_fee * location.inspection_multiplier
    gst_amount     = round(inspection_fee * gst_rate)
    grand_total    = inspection_fee + gst_amount
    final_payable  = max(grand_total - discount - wallet_deduction, 0)

Per-problem prices are shown as ranges (``estimated_price ± spread``) and
as repair estimates scaled by the city's repair multiplier. They are never
added to the payable amount; repair cost is quoted after inspection.

Everything here is synchronous arithmetic with no I/O.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from pydantic import BaseModel

from hellofixo.lib.config_flags import PricingConfig, get_pricing_config
from hellofixo.models.catalog import Problem, ServiceCategory
from hellofixo.models.location import Location


class ProblemEstimate(BaseModel):
    """Display-only price information for one selected problem."""
    problem_id: str
    name: str
    estimated_min: float
    estimated_max: float
    repair_estimate: float


class PriceEstimate(BaseModel):
    """Upfront charges for a booking."""
    inspection_fee: float
    gst_amount: float
    grand_total: float
    discount: float
    wallet_deduction: float
    final_payable: float
    problems: List[ProblemEstimate]
    repair_estimate_total: float


def round_rupees(amount: float) -> float:
    """Round to whole rupees, halves away from zero."""
    return float(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _money(amount: float) -> float:
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def _require_non_negative(**amounts: float) -> None:
    for name, value in amounts.items():
        if value < 0:
            raise ValueError(f"{name} must be non-negative, got {value}")


def inspection_fee_for(
    category: ServiceCategory,
    location: Location,
    config: Optional[PricingConfig] = None,
) -> float:
    """Category inspection fee scaled by the location's inspection multiplier."""
    config = config or get_pricing_config()
    base = category.base_inspection_fee
    if base is None:
        base = config.default_inspection_fee
    return _money(base * location.inspection_multiplier)


def gst_for(inspection_fee: float, config: Optional[PricingConfig] = None) -> float:
    config = config or get_pricing_config()
    _require_non_negative(inspection_fee=inspection_fee)
    return round_rupees(inspection_fee * config.gst_rate)


def wallet_deduction_for(wallet_balance: float, grand_total: float, discount: float = 0) -> float:
    """How much of the wallet balance a booking can consume (never more than what is owed)."""
    _require_non_negative(wallet_balance=wallet_balance, discount=discount)
    return min(wallet_balance, max(grand_total - discount, 0))


def final_payable_for(grand_total: float, discount: float = 0, wallet_deduction: float = 0) -> float:
    _require_non_negative(discount=discount, wallet_deduction=wallet_deduction)
    return max(_money(grand_total - discount - wallet_deduction), 0)


def problem_estimates(
    problems: Iterable[Problem],
    location: Location,
    config: Optional[PricingConfig] = None,
) -> List[ProblemEstimate]:
    config = config or get_pricing_config()
    spread = config.estimate_spread
    return [
        ProblemEstimate(
            problem_id=p.id,
            name=p.name,
            estimated_min=max(p.estimated_price - spread, 0),
            estimated_max=p.estimated_price + spread,
            repair_estimate=_money(p.base_min_fee * location.repair_multiplier),
        )
        for p in problems
    ]


def estimate(
    category: ServiceCategory,
    location: Location,
    problems: Iterable[Problem] = (),
    discount: float = 0,
    wallet_balance: float = 0,
    use_wallet: bool = False,
    config: Optional[PricingConfig] = None,
) -> PriceEstimate:
    """
    Compute the full estimate for a category at a location.

    Args:
        category: Selected category
        location: Customer location (provides multipliers)
        problems: Selected problems (display ranges only)
        discount: Flat discount from a verified referral/coupon code
        wallet_balance: Customer's wallet balance
        use_wallet: Whether the customer chose to pay from the wallet
        config: Pricing configuration override

    Returns:
        PriceEstimate with upfront charges and per-problem ranges

    Raises:
        ValueError: If any amount is negative
    """
    config = config or get_pricing_config()
    _require_non_negative(discount=discount, wallet_balance=wallet_balance)

    inspection_fee = inspection_fee_for(category, location, config)
    gst_amount = gst_for(inspection_fee, config)
    grand_total = _money(inspection_fee + gst_amount)

    wallet_deduction = wallet_deduction_for(wallet_balance, grand_total, discount) if use_wallet else 0
    estimates = problem_estimates(problems, location, config)

    return PriceEstimate(
        inspection_fee=inspection_fee,
        gst_amount=gst_amount,
        grand_total=grand_total,
        discount=discount,
        wallet_deduction=wallet_deduction,
        final_payable=final_payable_for(grand_total, discount, wallet_deduction),
        problems=estimates,
        repair_estimate_total=_money(sum(e.repair_estimate for e in estimates)),
    )
