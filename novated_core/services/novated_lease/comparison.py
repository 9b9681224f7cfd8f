"""
Novated Lease - Buy Outright Comparison

Outright purchase is modelled as the car price paid up front. The lease
side is repayments less tax/levy savings plus the residual, less the
earnings the buyer would forgo by tying the price up for the whole term
(simple interest at the opportunity cost rate).
"""

import logging
from decimal import Decimal
from typing import Optional

from novated_core.models.enums import ZERO_EMISSION_VEHICLE_TYPES, VehicleType

from .models import BuyOutrightComparison, LeaseRepaymentBreakdown, TaxComparisonBreakdown
from .money import Number, is_finite_number, round_currency, to_decimal
from .reference_tables import LctThresholds

logger = logging.getLogger(__name__)

GST_EXCLUSIVE_FACTOR = Decimal(10) / Decimal(11)


def opportunity_cost_rate(raw_rate: Optional[float]) -> float:
    """Supplied rate when finite and non-negative, otherwise 0."""
    if is_finite_number(raw_rate) and raw_rate >= 0:
        return raw_rate
    return 0.0


def estimated_lct_in_price(
    purchase_price: Number,
    vehicle_type: VehicleType,
    thresholds: LctThresholds,
    lct_rate: float,
) -> Decimal:
    """LCT embedded in a GST-inclusive price: (price - threshold) × 10/11 × rate."""
    if vehicle_type in ZERO_EMISSION_VEHICLE_TYPES:
        threshold = to_decimal(thresholds.fuel_efficient)
    else:
        threshold = to_decimal(thresholds.other)

    price = to_decimal(purchase_price)
    if price <= threshold:
        return Decimal("0")
    return (price - threshold) * GST_EXCLUSIVE_FACTOR * to_decimal(lct_rate)


def compare_buy_outright(
    purchase_price: Number,
    vehicle_type: VehicleType,
    term_months: float,
    lease: LeaseRepaymentBreakdown,
    tax_comparison: TaxComparisonBreakdown,
    lct_thresholds: LctThresholds,
    lct_rate: float,
    opportunity_cost_rate_pct: float,
    dp: int = 2,
) -> BuyOutrightComparison:
    """Compare the novated lease against paying cash, over the lease term."""
    price = to_decimal(purchase_price)
    months = to_decimal(term_months)
    term_years = months / 12

    forgone = price * to_decimal(opportunity_cost_rate_pct) / 100 * term_years
    outright_total = price
    outright_monthly = outright_total / months

    novated_total = (
        to_decimal(lease.total_finance_repayments_excluding_residual)
        - to_decimal(tax_comparison.tax_and_levy_savings)
        + to_decimal(lease.residual_value)
        - forgone
    )
    novated_monthly = novated_total / months

    lct = estimated_lct_in_price(price, vehicle_type, lct_thresholds, lct_rate)

    return BuyOutrightComparison(
        monthly_equivalent_cost=round_currency(outright_monthly, dp),
        total_cash_outlay_over_term=round_currency(outright_total, dp),
        novated_monthly_out_of_pocket=round_currency(novated_monthly, dp),
        novated_total_cost_over_term=round_currency(novated_total, dp),
        monthly_difference=round_currency(novated_monthly - outright_monthly, dp),
        total_cost_difference_over_term=round_currency(novated_total - outright_total, dp),
        opportunity_cost_rate_assumed=round_currency(opportunity_cost_rate_pct, dp),
        estimated_forgone_earnings_over_term=round_currency(forgone, dp),
        estimated_lct_included_in_purchase_price=round_currency(lct, dp),
    )
