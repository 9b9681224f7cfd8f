"""
Unit Tests for Income Tax, Medicare Levy, Packaging and Cashflow

Run with: pytest tests/test_packaging.py -v
"""

from decimal import Decimal

import pytest

from novated_core.models.enums import ResidualSource
from novated_core.services.novated_lease.amortization import amortize_lease
from novated_core.services.novated_lease.models import RunningCostsInput
from novated_core.services.novated_lease.packaging import (
    annual_running_costs,
    calculate_packaging,
    compare_tax,
    find_bracket,
    income_tax,
    medicare_levy,
    summarize_cashflow,
)

RUNNING_COSTS = RunningCostsInput(
    annual_registration=900,
    annual_insurance=1400,
    annual_maintenance=800,
    annual_tyres=300,
    annual_fuel_or_electricity=2200,
    annual_other_eligible_car_expenses=200,
)


@pytest.fixture
def fy2026(tables):
    return tables.tax_brackets_for("FY2025-26")


@pytest.fixture
def lease():
    return amortize_lease(50000, 500, 23440, ResidualSource.default_table, 8.5, 36, 12)


class TestIncomeTax:
    """Test resident income tax for FY2025-26."""

    def test_tax_free_threshold(self, fy2026):
        assert income_tax(18200, fy2026) == 0
        assert income_tax(0, fy2026) == 0

    def test_second_bracket(self, fy2026):
        """Test $30,000 income."""
        # ($30,000 - $18,200) × 16%
        assert income_tax(30000, fy2026) == Decimal("1888")

    @pytest.mark.parametrize("income,expected", [
        (45000, Decimal("4288")),
        (135000, Decimal("31288")),
        (190000, Decimal("51638")),
    ])
    def test_bracket_tops(self, fy2026, income, expected):
        assert income_tax(income, fy2026) == expected

    def test_top_bracket(self, fy2026):
        """Test $200,000 income."""
        # $51,638 + ($200,000 - $190,000) × 45%
        assert income_tax(200000, fy2026) == Decimal("56138")

    def test_gap_between_brackets(self, fy2026):
        """Test cents between $45,000 and $45,001 stay in the 16% bracket."""
        assert find_bracket(45000.50, fy2026).marginal_rate == 0.16
        # ($45,000.50 - $18,200) × 16%
        assert income_tax(45000.50, fy2026) == Decimal("4288.08")

    def test_negative_income(self, fy2026):
        assert income_tax(-5000, fy2026) == 0

    def test_fy2026_27_rates(self, tables):
        """Test the 15% second bracket from FY2026-27."""
        table = tables.tax_brackets_for("FY2026-27")

        # ($45,000 - $18,200) × 15%
        assert income_tax(45000, table) == Decimal("4020")

    def test_tax_is_monotonic(self, fy2026):
        incomes = [0, 18200, 18201, 30000, 45000, 45001, 100000, 135001, 190001, 250000]
        taxes = [income_tax(income, fy2026) for income in incomes]

        assert taxes == sorted(taxes)


class TestMedicareLevy:

    def test_levy(self):
        assert medicare_levy(120000, 0.02) == Decimal("2400")

    def test_excluded(self):
        assert medicare_levy(120000, 0.02, include=False) == 0


class TestPackaging:
    """Test the pre-tax/post-tax split."""

    def test_running_costs_total(self):
        assert annual_running_costs(RUNNING_COSTS) == Decimal("5800")

    def test_ecm_split(self, lease):
        totals = calculate_packaging(RUNNING_COSTS, True, lease, 15, Decimal("10000"), 26)

        assert totals.finance_repayments_packaged == lease.annual_repayment + 180
        assert totals.package_cost_before_ecm == totals.finance_repayments_packaged + 5800
        assert totals.post_tax_deduction == Decimal("10000")
        assert totals.pre_tax_deduction == totals.package_cost_before_ecm - 10000
        assert totals.total_deductions == totals.package_cost_before_ecm

    def test_running_costs_excluded(self, lease):
        totals = calculate_packaging(RUNNING_COSTS, False, lease, 15, Decimal("0"), 26)

        assert totals.running_costs_packaged == 0
        assert totals.package_cost_before_ecm == totals.finance_repayments_packaged

    def test_pre_tax_never_negative(self, lease):
        """Test an ECM larger than the package cost leaves nothing pre-tax."""
        totals = calculate_packaging(RUNNING_COSTS, False, lease, 0, Decimal("50000"), 26)

        assert totals.pre_tax_deduction == 0

    def test_per_pay_figures(self, lease):
        breakdown = calculate_packaging(RUNNING_COSTS, True, lease, 15, Decimal("10000"), 26).to_breakdown()

        assert breakdown.per_pay_post_tax_deduction == pytest.approx(384.62, abs=0.001)
        assert breakdown.pay_periods_per_year == 26


class TestTaxComparisonAndCashflow:

    def test_savings(self, fy2026):
        """Test $8,000 pre-tax deduction at $120,000."""
        comparison = compare_tax(120000, Decimal("8000"), fy2026, 0.02, True)

        # $8,000 × (30% + 2%)
        assert comparison.savings == Decimal("2560")
        assert comparison.packaged_taxable_income == Decimal("112000")

    def test_savings_without_levy(self, fy2026):
        comparison = compare_tax(120000, Decimal("8000"), fy2026, 0.02, False)

        assert comparison.savings == Decimal("2400")
        assert comparison.to_breakdown().baseline_medicare_levy == 0

    def test_cashflow(self, fy2026, lease):
        packaging = calculate_packaging(RUNNING_COSTS, True, lease, 15, Decimal("10000"), 26)
        tax = compare_tax(120000, packaging.pre_tax_deduction, fy2026, 0.02, True)

        cashflow = summarize_cashflow(120000, packaging, tax)

        # $120,000 - $26,788 tax - $2,400 levy
        assert cashflow.baseline_annual_net_cash == 90812.00
        assert cashflow.annual_net_benefit_estimate == pytest.approx(
            float(tax.savings - packaging.total_deductions), abs=0.01
        )
        assert cashflow.per_pay_net_benefit_estimate == pytest.approx(
            cashflow.annual_net_benefit_estimate / 26, abs=0.01
        )
