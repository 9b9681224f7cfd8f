"""
Novated Lease - Lease Amortization

Ordinary annuity with a balloon (residual) payment due at the end of the
term:

    payment = r * (financed - residual / (1 + r)^n) / (1 - (1 + r)^-n)

where r is the periodic rate and n the number of payments. At r = 0 the
principal less the residual is spread evenly over n payments.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from novated_core.models.enums import ResidualSource

from .models import LeaseRepaymentBreakdown
from .money import Number, round_currency, sum_currency, to_decimal

logger = logging.getLogger(__name__)

VALID_TERM_MONTHS = (12, 24, 36, 48, 60)
VALID_PAYMENTS_PER_YEAR = (12, 26, 52)


def lease_years_for_term(term_months: float) -> int:
    """Lease-year bucket (1-5) used to look up the minimum residual."""
    return int(term_months // 12)


def number_of_payments(term_months: float, payments_per_year: int) -> float:
    return (term_months / 12) * payments_per_year


def periodic_repayment(
    financed_amount: float,
    residual_value: float,
    periodic_rate: float,
    periods: float,
) -> float:
    """Repayment per period for an annuity with a balloon residual."""
    if periodic_rate == 0:
        return (financed_amount - residual_value) / periods

    numerator = periodic_rate * (financed_amount - residual_value / (1 + periodic_rate) ** periods)
    denominator = 1 - (1 + periodic_rate) ** -periods
    return numerator / denominator


@dataclass(frozen=True)
class LeaseSchedule:
    """Unrounded lease figures; downstream calculators work from these."""
    financed_amount: Decimal
    residual_value: Decimal
    residual_source: ResidualSource
    annual_interest_rate_pct: float
    payments_per_year: int
    periods: float
    periodic_repayment: Decimal
    annual_repayment: Decimal
    total_repayments_excluding_residual: Decimal
    total_interest: Decimal

    def to_breakdown(self, dp: int = 2) -> LeaseRepaymentBreakdown:
        return LeaseRepaymentBreakdown(
            financed_amount=round_currency(self.financed_amount, dp),
            residual_value=round_currency(self.residual_value, dp),
            residual_source=self.residual_source,
            periodic_finance_repayment=round_currency(self.periodic_repayment, dp),
            annual_finance_repayment=round_currency(self.annual_repayment, dp),
            total_finance_repayments_excluding_residual=round_currency(
                self.total_repayments_excluding_residual, dp
            ),
            total_interest_estimate=round_currency(self.total_interest, dp),
            annual_interest_rate_pct_applied=round_currency(self.annual_interest_rate_pct, 4),
            payments_per_year=self.payments_per_year,
            number_of_payments=self.periods,
        )


def amortize_lease(
    purchase_price: Number,
    establishment_fee: Number,
    residual_value: Number,
    residual_source: ResidualSource,
    annual_interest_rate_pct: float,
    term_months: float,
    payments_per_year: int,
) -> LeaseSchedule:
    """
    Build the repayment schedule for a validated lease.

    Inputs must already have passed structural validation (supported term,
    payments per year and a residual inside the allowed range).
    """
    financed = sum_currency(purchase_price, establishment_fee)
    residual = to_decimal(residual_value)
    periods = number_of_payments(term_months, payments_per_year)
    periodic_rate = annual_interest_rate_pct / 100 / payments_per_year

    payment = to_decimal(periodic_repayment(float(financed), float(residual), periodic_rate, periods))
    annual = payment * payments_per_year
    total = payment * to_decimal(periods)
    interest = total + residual - financed

    logger.debug(
        f"Amortized {financed} over {periods:g} payments at {annual_interest_rate_pct:.4f}% "
        f"-> {payment:.2f} per period"
    )

    return LeaseSchedule(
        financed_amount=financed,
        residual_value=residual,
        residual_source=residual_source,
        annual_interest_rate_pct=annual_interest_rate_pct,
        payments_per_year=payments_per_year,
        periods=periods,
        periodic_repayment=payment,
        annual_repayment=annual,
        total_repayments_excluding_residual=total,
        total_interest=interest,
    )
