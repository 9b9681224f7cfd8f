"""
Novated Lease - Presentation Helpers

Small helpers for consumers that summarise or prepare scenarios:
- Headline metrics for a calculated snapshot
- Quote mode: turn a scenario into "work the rate out from my quote"
"""

from typing import Optional

from pydantic import BaseModel

from .models import NovatedLeaseResult, ScenarioInput
from .money import is_finite_number, round_currency, to_decimal


class HeadlineMetrics(BaseModel):
    monthly_out_of_pocket: float
    total_effective_annual_cost: float
    residual_value: float
    annual_tax_and_levy_savings: float


def get_headline_metrics(result: NovatedLeaseResult, dp: int = 2) -> Optional[HeadlineMetrics]:
    """Headline figures for a successful snapshot, None otherwise."""
    if not result.ok or result.packaging is None or result.tax_comparison is None or result.lease is None:
        return None

    packaging = result.packaging
    savings = to_decimal(result.tax_comparison.tax_and_levy_savings)
    deductions = to_decimal(packaging.annual_pre_tax_deduction) + to_decimal(packaging.annual_post_tax_deduction)

    return HeadlineMetrics(
        monthly_out_of_pocket=round_currency(deductions / 12, dp),
        total_effective_annual_cost=round_currency(
            to_decimal(packaging.annual_package_cost_before_ecm) - savings, dp
        ),
        residual_value=result.lease.residual_value,
        annual_tax_and_levy_savings=result.tax_comparison.tax_and_levy_savings,
    )


def apply_quote_mode(scenario: ScenarioInput) -> ScenarioInput:
    """
    Copy of scenario set up to take the interest rate from the quote.

    The finance interest rate and the pay-period quote total are cleared so
    the engine works from the quote: a rate printed on the quote is used as
    is, otherwise the rate is back-solved from the quoted annual total. A
    quoted monthly admin fee replaces the account-keeping fee.
    """
    finance_update = {"annual_interest_rate_pct": None}
    quote = scenario.quote_context

    if quote is not None and is_finite_number(quote.quoted_monthly_admin_fee):
        finance_update["monthly_account_keeping_fee"] = quote.quoted_monthly_admin_fee

    update = {"finance": scenario.finance.model_copy(update=finance_update)}
    if quote is not None:
        update["quote_context"] = quote.model_copy(update={"quoted_pay_period_deduction_total": None})

    return scenario.model_copy(update=update)
