"""
Novated Lease - Interest Rate Resolution

When a scenario has no usable annual interest rate, the rate is taken
from the quote in this order:
1. Quoted interest rate (direct_quote_value, high confidence)
2. Back-solved from the quoted deduction totals (calculated_from_quote, medium)
3. Configured default rate (fallback_default, low) plus a warning

The bisection solver is kept free of scenario types so it can be tested
against synthetic repayment functions.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from novated_core.models.enums import (
    PAY_PERIODS_PER_YEAR,
    Confidence,
    InferenceMethod,
    IssueSeverity,
)

from .amortization import number_of_payments, periodic_repayment
from .models import AppliedAssumption, InferredParameter, ScenarioInput, ValidationIssue
from .money import is_finite_number, round_currency, sum_currency
from .reference_tables import EngineAssumptions

logger = logging.getLogger(__name__)

RATE_FIELD = "finance.annual_interest_rate_pct"


# ==================== BISECTION SOLVER ====================

@dataclass(frozen=True)
class RateSearchResult:
    """Best annual rate (as a fraction) found by the bisection search"""
    rate: float
    error: float
    iterations: int
    converged: bool

    @property
    def rate_pct(self) -> float:
        return self.rate * 100


def bisect_rate(
    repayment_for_rate: Callable[[float], float],
    target: float,
    lower: float = 0.0,
    upper: float = 0.30,
    max_iterations: int = 100,
    tolerance: float = 0.01,
    initial_guess: Optional[float] = None,
) -> RateSearchResult:
    """
    Find the annual rate whose repayment matches target.

    repayment_for_rate must increase with the rate. The search stops once
    |repayment - target| <= tolerance or after max_iterations halvings, and
    always returns the best candidate seen.
    """
    low, high = lower, upper
    best_rate = initial_guess if initial_guess is not None else (lower + upper) / 2
    best_error = math.inf
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        mid = (low + high) / 2
        delta = repayment_for_rate(mid) - target
        error = abs(delta)

        if error < best_error:
            best_error = error
            best_rate = mid

        if error <= tolerance:
            break

        if delta < 0:
            low = mid
        else:
            high = mid

    return RateSearchResult(
        rate=best_rate,
        error=best_error,
        iterations=iterations,
        converged=best_error <= tolerance,
    )


def infer_rate_from_quote(
    financed_amount: float,
    residual_value: float,
    term_months: float,
    payments_per_year: int,
    target_annual_finance_repayment: float,
    assumptions: EngineAssumptions,
) -> Optional[RateSearchResult]:
    """
    Back-solve the annual rate implied by a quoted annual finance repayment.

    Returns None when there is nothing to solve for (no payments or a
    non-positive target).
    """
    periods = number_of_payments(term_months, payments_per_year)
    if periods <= 0:
        return None

    target_periodic = target_annual_finance_repayment / payments_per_year
    if not math.isfinite(target_periodic) or target_periodic <= 0:
        return None

    def repayment_for_rate(annual_rate: float) -> float:
        return periodic_repayment(
            financed_amount, residual_value, annual_rate / payments_per_year, periods
        )

    return bisect_rate(
        repayment_for_rate,
        target_periodic,
        lower=assumptions.rate_search_lower_bound,
        upper=assumptions.rate_search_upper_bound,
        max_iterations=assumptions.rate_search_max_iterations,
        tolerance=assumptions.rate_search_tolerance,
        initial_guess=assumptions.default_quote_interest_rate_pct / 100,
    )


# ==================== RESOLUTION POLICY ====================

@dataclass
class RateResolution:
    annual_interest_rate_pct: float
    inferred_parameters: List[InferredParameter] = field(default_factory=list)
    assumptions: List[AppliedAssumption] = field(default_factory=list)
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def was_inferred(self) -> bool:
        return bool(self.inferred_parameters)


def needs_rate_inference(rate: Optional[float]) -> bool:
    return not is_finite_number(rate) or rate < 0


def quoted_annual_deduction(scenario: ScenarioInput) -> Optional[float]:
    """Quoted annual deduction total, or the per-pay quote annualised."""
    quote = scenario.quote_context
    if quote is None:
        return None
    if is_finite_number(quote.quoted_annual_deduction_total):
        return quote.quoted_annual_deduction_total
    if is_finite_number(quote.quoted_pay_period_deduction_total):
        return quote.quoted_pay_period_deduction_total * PAY_PERIODS_PER_YEAR[scenario.salary.pay_frequency]
    return None


def _target_annual_finance_repayment(scenario: ScenarioInput, quoted_annual: float) -> float:
    costs = scenario.running_costs
    running = sum_currency(
        costs.annual_registration,
        costs.annual_insurance,
        costs.annual_maintenance,
        costs.annual_tyres,
        costs.annual_fuel_or_electricity,
        costs.annual_other_eligible_car_expenses,
    )
    quote = scenario.quote_context
    monthly_admin = scenario.finance.monthly_account_keeping_fee
    if quote is not None and is_finite_number(quote.quoted_monthly_admin_fee) and quote.quoted_monthly_admin_fee >= 0:
        monthly_admin = quote.quoted_monthly_admin_fee

    target = sum_currency(quoted_annual) - sum_currency(monthly_admin) * 12
    if scenario.packaging.include_running_costs_in_package:
        target -= running
    return float(target)


def resolve_interest_rate(
    scenario: ScenarioInput,
    residual_value: float,
    payments_per_year: int,
    assumptions: EngineAssumptions,
) -> RateResolution:
    """Pick the annual interest rate for a structurally valid scenario."""
    supplied = scenario.finance.annual_interest_rate_pct
    if not needs_rate_inference(supplied):
        return RateResolution(annual_interest_rate_pct=supplied)

    dp = assumptions.rounding_precision_dp
    quote = scenario.quote_context

    # 1. Rate printed on the quote
    if quote is not None and is_finite_number(quote.quoted_interest_rate_pct) and quote.quoted_interest_rate_pct >= 0:
        rate = quote.quoted_interest_rate_pct
        logger.info(f"Using quoted interest rate {rate}%")
        return RateResolution(
            annual_interest_rate_pct=rate,
            inferred_parameters=[InferredParameter(
                key=RATE_FIELD,
                derived_value=round_currency(rate, dp),
                method=InferenceMethod.direct_quote_value,
                confidence=Confidence.high,
                note="Using quote-provided interest rate.",
            )],
            assumptions=[AppliedAssumption(
                key="interest_rate_source",
                label="Interest rate source",
                value="quote",
                inferred=True,
                confidence=Confidence.high,
            )],
        )

    # 2. Back-solve from the quoted deduction totals
    quoted_annual = quoted_annual_deduction(scenario)
    if quoted_annual is not None and quoted_annual > 0:
        financed = float(sum_currency(
            scenario.vehicle.purchase_price_incl_gst, scenario.finance.establishment_fee
        ))
        search = infer_rate_from_quote(
            financed_amount=financed,
            residual_value=residual_value,
            term_months=scenario.finance.term_months,
            payments_per_year=payments_per_year,
            target_annual_finance_repayment=_target_annual_finance_repayment(scenario, quoted_annual),
            assumptions=assumptions,
        )
        if search is not None:
            logger.info(
                f"Back-solved interest rate {search.rate_pct:.4f}% from quote "
                f"({search.iterations} iterations, converged={search.converged})"
            )
            return RateResolution(
                annual_interest_rate_pct=search.rate_pct,
                inferred_parameters=[InferredParameter(
                    key=RATE_FIELD,
                    derived_value=round_currency(search.rate_pct, dp),
                    method=InferenceMethod.calculated_from_quote,
                    confidence=Confidence.medium,
                    note="Back-solved from quote totals using annuity-with-balloon model.",
                )],
                assumptions=[AppliedAssumption(
                    key="interest_rate_source",
                    label="Interest rate source",
                    value="quote_back_solved",
                    inferred=True,
                    confidence=Confidence.medium,
                )],
            )

    # 3. Configured default
    rate = assumptions.default_quote_interest_rate_pct
    logger.info(f"No usable quote rate, falling back to default {rate}%")
    return RateResolution(
        annual_interest_rate_pct=rate,
        inferred_parameters=[InferredParameter(
            key=RATE_FIELD,
            derived_value=rate,
            method=InferenceMethod.fallback_default,
            confidence=Confidence.low,
            note="No reliable quote rate available.",
        )],
        assumptions=[AppliedAssumption(
            key="default_quote_interest_rate_pct",
            label="Fallback quote interest rate",
            value=rate,
            source=assumptions.source or None,
            inferred=True,
            confidence=Confidence.low,
        )],
        issues=[ValidationIssue(
            code="QUOTE_INTEREST_RATE_INFERRED",
            field=RATE_FIELD,
            message="Interest rate was not supplied. Applied fallback quote interest assumption.",
            severity=IssueSeverity.warning,
        )],
    )
