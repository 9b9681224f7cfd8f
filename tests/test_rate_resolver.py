"""
Unit Tests for Interest Rate Resolution

Covers the bisection solver on synthetic repayment functions and the
quote -> back-solve -> default fallback order.

Run with: pytest tests/test_rate_resolver.py -v
"""

import pytest

from novated_core.models.enums import Confidence, InferenceMethod, IssueSeverity
from novated_core.services.novated_lease.amortization import periodic_repayment
from novated_core.services.novated_lease.rate_resolver import (
    RATE_FIELD,
    bisect_rate,
    infer_rate_from_quote,
    needs_rate_inference,
    quoted_annual_deduction,
    resolve_interest_rate,
)

from conftest import build_scenario

RESIDUAL = 23440


class TestBisectRate:
    """Test the solver in isolation."""

    def test_linear_function(self):
        """Test repayment = 1000 × rate solves for 0.12."""
        result = bisect_rate(lambda rate: 1000 * rate, target=120, tolerance=0.001)

        assert result.converged is True
        assert result.rate == pytest.approx(0.12, abs=0.00001)
        assert result.rate_pct == pytest.approx(12, abs=0.001)

    def test_target_above_range_keeps_best(self):
        """Test an unreachable target returns the closest rate at the upper bound."""
        result = bisect_rate(lambda rate: 1000 * rate, target=500, max_iterations=50)

        assert result.converged is False
        assert result.rate == pytest.approx(0.30, abs=0.0001)
        assert result.iterations == 50

    def test_target_below_range(self):
        """Test a target below the repayment at 0% converges toward 0."""
        result = bisect_rate(lambda rate: 100 + 1000 * rate, target=50, max_iterations=60)

        assert result.converged is False
        assert result.rate == pytest.approx(0, abs=0.0001)

    def test_stops_early_when_within_tolerance(self):
        """Test the first midpoint is accepted when close enough."""
        result = bisect_rate(lambda rate: 1000 * rate, target=150)

        # First midpoint is 0.15
        assert result.iterations == 1
        assert result.error == pytest.approx(0, abs=1e-9)

    def test_custom_bounds(self):
        result = bisect_rate(lambda rate: 1000 * rate, target=40, lower=0.02, upper=0.06)

        assert result.rate == pytest.approx(0.04, abs=0.00001)

    def test_recovers_annuity_rate(self):
        """Test the solver recovers 8.5% from its own repayment."""
        target = periodic_repayment(50500, RESIDUAL, 0.085 / 12, 36)

        result = bisect_rate(
            lambda rate: periodic_repayment(50500, RESIDUAL, rate / 12, 36),
            target=target,
        )

        assert result.converged is True
        assert result.rate_pct == pytest.approx(8.5, abs=0.01)


class TestInferRateFromQuote:

    def test_recovers_rate(self, tables):
        annual = periodic_repayment(50500, RESIDUAL, 0.07 / 12, 36) * 12

        result = infer_rate_from_quote(50500, RESIDUAL, 36, 12, annual, tables.assumptions)

        assert result.rate_pct == pytest.approx(7.0, abs=0.01)

    def test_non_positive_target(self, tables):
        assert infer_rate_from_quote(50500, RESIDUAL, 36, 12, -100, tables.assumptions) is None
        assert infer_rate_from_quote(50500, RESIDUAL, 36, 12, 0, tables.assumptions) is None

    def test_no_payments(self, tables):
        assert infer_rate_from_quote(50500, RESIDUAL, 0, 12, 12000, tables.assumptions) is None


class TestQuoteHelpers:

    def test_needs_rate_inference(self):
        assert needs_rate_inference(None) is True
        assert needs_rate_inference(float("nan")) is True
        assert needs_rate_inference(float("inf")) is True
        assert needs_rate_inference(-0.5) is True
        assert needs_rate_inference(0) is False
        assert needs_rate_inference(8.5) is False

    def test_quoted_annual_prefers_annual_total(self):
        scenario = build_scenario(quote_context={
            "quoted_annual_deduction_total": 18000,
            "quoted_pay_period_deduction_total": 800,
        })
        assert quoted_annual_deduction(scenario) == 18000

    def test_quoted_per_pay_annualised(self):
        """Test fortnightly $700 quote is $18,200 a year."""
        scenario = build_scenario(quote_context={"quoted_pay_period_deduction_total": 700})
        assert quoted_annual_deduction(scenario) == 18200

    def test_no_quote(self):
        assert quoted_annual_deduction(build_scenario()) is None


class TestResolveInterestRate:
    """Test the resolution order."""

    def test_supplied_rate_used(self, tables):
        resolution = resolve_interest_rate(build_scenario(), RESIDUAL, 12, tables.assumptions)

        assert resolution.annual_interest_rate_pct == 8.5
        assert resolution.was_inferred is False
        assert resolution.issues == []

    def test_quoted_rate(self, tables):
        scenario = build_scenario(
            finance={"annual_interest_rate_pct": None},
            quote_context={"quoted_interest_rate_pct": 6.99, "quoted_annual_deduction_total": 30000},
        )

        resolution = resolve_interest_rate(scenario, RESIDUAL, 12, tables.assumptions)

        assert resolution.annual_interest_rate_pct == 6.99
        param = resolution.inferred_parameters[0]
        assert param.key == RATE_FIELD
        assert param.method == InferenceMethod.direct_quote_value
        assert param.confidence == Confidence.high

    def test_back_solved(self, tables):
        """Test annual quote = 8.5% repayments + admin + running costs."""
        annual_finance = periodic_repayment(50500, RESIDUAL, 0.085 / 12, 36) * 12
        quoted = annual_finance + 15 * 12 + 5800
        scenario = build_scenario(
            finance={"annual_interest_rate_pct": None},
            quote_context={"quoted_annual_deduction_total": quoted},
        )

        resolution = resolve_interest_rate(scenario, RESIDUAL, 12, tables.assumptions)

        assert resolution.annual_interest_rate_pct == pytest.approx(8.5, abs=0.01)
        assert resolution.inferred_parameters[0].method == InferenceMethod.calculated_from_quote
        assert resolution.inferred_parameters[0].confidence == Confidence.medium
        assert resolution.issues == []

    def test_back_solve_uses_quoted_admin_fee(self, tables):
        """Test the quoted admin fee replaces the scenario fee."""
        annual_finance = periodic_repayment(50500, RESIDUAL, 0.085 / 12, 36) * 12
        quoted = annual_finance + 25 * 12 + 5800
        scenario = build_scenario(
            finance={"annual_interest_rate_pct": None},
            quote_context={"quoted_annual_deduction_total": quoted, "quoted_monthly_admin_fee": 25},
        )

        resolution = resolve_interest_rate(scenario, RESIDUAL, 12, tables.assumptions)

        assert resolution.annual_interest_rate_pct == pytest.approx(8.5, abs=0.01)

    def test_back_solve_without_running_costs(self, tables):
        annual_finance = periodic_repayment(50500, RESIDUAL, 0.085 / 12, 36) * 12
        scenario = build_scenario(
            finance={"annual_interest_rate_pct": None},
            packaging={"include_running_costs_in_package": False},
            quote_context={"quoted_annual_deduction_total": annual_finance + 180},
        )

        resolution = resolve_interest_rate(scenario, RESIDUAL, 12, tables.assumptions)

        assert resolution.annual_interest_rate_pct == pytest.approx(8.5, abs=0.01)

    def test_fallback_default(self, tables):
        scenario = build_scenario(finance={"annual_interest_rate_pct": None})

        resolution = resolve_interest_rate(scenario, RESIDUAL, 12, tables.assumptions)

        assert resolution.annual_interest_rate_pct == 9.5
        param = resolution.inferred_parameters[0]
        assert param.method == InferenceMethod.fallback_default
        assert param.confidence == Confidence.low
        assert [i.code for i in resolution.issues] == ["QUOTE_INTEREST_RATE_INFERRED"]
        assert resolution.issues[0].severity == IssueSeverity.warning
        assert resolution.assumptions[0].key == "default_quote_interest_rate_pct"

    def test_negative_quoted_rate_ignored(self, tables):
        scenario = build_scenario(
            finance={"annual_interest_rate_pct": None},
            quote_context={"quoted_interest_rate_pct": -2},
        )

        resolution = resolve_interest_rate(scenario, RESIDUAL, 12, tables.assumptions)

        assert resolution.inferred_parameters[0].method == InferenceMethod.fallback_default
