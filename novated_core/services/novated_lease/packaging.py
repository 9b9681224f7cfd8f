"""
Novated Lease - Packaging, Tax Comparison and Cashflow

- Packaging: how much of the lease is deducted pre-tax vs post-tax (ECM)
- Tax comparison: income tax + Medicare levy with and without packaging
- Cashflow: take-home pay before and after packaging, per year and per pay
"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from .amortization import LeaseSchedule
from .models import (
    CashflowSummary,
    PackagingBreakdown,
    RunningCostsInput,
    TaxComparisonBreakdown,
)
from .money import Number, round_currency, sum_currency, to_decimal
from .reference_tables import TaxBracket, TaxBracketTable

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def annual_running_costs(costs: RunningCostsInput) -> Decimal:
    return sum_currency(
        costs.annual_registration,
        costs.annual_insurance,
        costs.annual_maintenance,
        costs.annual_tyres,
        costs.annual_fuel_or_electricity,
        costs.annual_other_eligible_car_expenses,
    )


# ==================== INCOME TAX ====================

def find_bracket(income: Number, table: TaxBracketTable) -> TaxBracket:
    """
    Bracket whose [threshold, upper_threshold] contains income.

    Cents that fall between one bracket's upper threshold and the next
    threshold (e.g. 45000.50) stay in the lower bracket.
    """
    income = to_decimal(income)
    for bracket in table.brackets:
        lower = to_decimal(bracket.threshold)
        if bracket.upper_threshold is None:
            if income >= lower:
                return bracket
        elif lower <= income <= to_decimal(bracket.upper_threshold):
            return bracket

    eligible = [b for b in table.brackets if to_decimal(b.threshold) <= income]
    return eligible[-1] if eligible else table.brackets[0]


def income_tax(income: Number, table: TaxBracketTable) -> Decimal:
    """
    Resident income tax on a taxable income.

    tax = base_tax + (income - (threshold - 1)) × marginal_rate, floored at 0.
    """
    income = to_decimal(income)
    bracket = find_bracket(income, table)
    threshold = to_decimal(bracket.threshold)
    threshold_floor = ZERO if threshold == 0 else threshold - 1
    tax = to_decimal(bracket.base_tax) + (income - threshold_floor) * to_decimal(bracket.marginal_rate)
    return max(ZERO, tax)


def medicare_levy(income: Number, levy_rate: float, include: bool = True) -> Decimal:
    if not include:
        return ZERO
    return to_decimal(income) * to_decimal(levy_rate)


# ==================== PACKAGING ====================

@dataclass(frozen=True)
class PackagingTotals:
    running_costs_packaged: Decimal
    finance_repayments_packaged: Decimal
    package_cost_before_ecm: Decimal
    pre_tax_deduction: Decimal
    post_tax_deduction: Decimal
    pay_periods_per_year: int

    @property
    def total_deductions(self) -> Decimal:
        return self.pre_tax_deduction + self.post_tax_deduction

    def to_breakdown(self, dp: int = 2) -> PackagingBreakdown:
        periods = self.pay_periods_per_year
        return PackagingBreakdown(
            annual_running_costs_packaged=round_currency(self.running_costs_packaged, dp),
            annual_finance_repayments_packaged=round_currency(self.finance_repayments_packaged, dp),
            annual_package_cost_before_ecm=round_currency(self.package_cost_before_ecm, dp),
            annual_pre_tax_deduction=round_currency(self.pre_tax_deduction, dp),
            annual_post_tax_deduction=round_currency(self.post_tax_deduction, dp),
            per_pay_pre_tax_deduction=round_currency(self.pre_tax_deduction / periods, dp),
            per_pay_post_tax_deduction=round_currency(self.post_tax_deduction / periods, dp),
            pay_periods_per_year=periods,
        )


def calculate_packaging(
    running_costs: RunningCostsInput,
    include_running_costs: bool,
    lease: LeaseSchedule,
    monthly_account_keeping_fee: Number,
    ecm_contribution: Decimal,
    pay_periods_per_year: int,
) -> PackagingTotals:
    running = annual_running_costs(running_costs) if include_running_costs else ZERO
    finance = lease.annual_repayment + to_decimal(monthly_account_keeping_fee) * 12
    package_cost = running + finance
    post_tax = ecm_contribution
    pre_tax = max(ZERO, package_cost - post_tax)

    return PackagingTotals(
        running_costs_packaged=running,
        finance_repayments_packaged=finance,
        package_cost_before_ecm=package_cost,
        pre_tax_deduction=pre_tax,
        post_tax_deduction=post_tax,
        pay_periods_per_year=pay_periods_per_year,
    )


# ==================== TAX COMPARISON ====================

@dataclass(frozen=True)
class TaxComparison:
    baseline_taxable_income: Decimal
    packaged_taxable_income: Decimal
    baseline_income_tax: Decimal
    packaged_income_tax: Decimal
    baseline_medicare_levy: Decimal
    packaged_medicare_levy: Decimal

    @property
    def savings(self) -> Decimal:
        baseline = self.baseline_income_tax + self.baseline_medicare_levy
        packaged = self.packaged_income_tax + self.packaged_medicare_levy
        return baseline - packaged

    def to_breakdown(self, dp: int = 2) -> TaxComparisonBreakdown:
        return TaxComparisonBreakdown(
            baseline_taxable_income=round_currency(self.baseline_taxable_income, dp),
            packaged_taxable_income=round_currency(self.packaged_taxable_income, dp),
            baseline_income_tax=round_currency(self.baseline_income_tax, dp),
            packaged_income_tax=round_currency(self.packaged_income_tax, dp),
            baseline_medicare_levy=round_currency(self.baseline_medicare_levy, dp),
            packaged_medicare_levy=round_currency(self.packaged_medicare_levy, dp),
            tax_and_levy_savings=round_currency(self.savings, dp),
        )


def packaged_taxable_income(gross_salary: Number, pre_tax_deduction: Decimal) -> Decimal:
    return to_decimal(gross_salary) - pre_tax_deduction


def compare_tax(
    gross_salary: Number,
    pre_tax_deduction: Decimal,
    table: TaxBracketTable,
    levy_rate: float,
    include_medicare_levy: bool,
) -> TaxComparison:
    baseline = to_decimal(gross_salary)
    packaged = packaged_taxable_income(gross_salary, pre_tax_deduction)

    return TaxComparison(
        baseline_taxable_income=baseline,
        packaged_taxable_income=packaged,
        baseline_income_tax=income_tax(baseline, table),
        packaged_income_tax=income_tax(packaged, table),
        baseline_medicare_levy=medicare_levy(baseline, levy_rate, include_medicare_levy),
        packaged_medicare_levy=medicare_levy(packaged, levy_rate, include_medicare_levy),
    )


# ==================== CASHFLOW ====================

def summarize_cashflow(
    gross_salary: Number,
    packaging: PackagingTotals,
    tax: TaxComparison,
    dp: int = 2,
) -> CashflowSummary:
    """Take-home pay with and without the lease (out-of-package costs excluded)."""
    salary = to_decimal(gross_salary)
    periods = packaging.pay_periods_per_year

    baseline = salary - tax.baseline_income_tax - tax.baseline_medicare_levy
    packaged = (
        salary
        - packaging.pre_tax_deduction
        - packaging.post_tax_deduction
        - tax.packaged_income_tax
        - tax.packaged_medicare_levy
    )
    benefit = packaged - baseline

    return CashflowSummary(
        baseline_annual_net_cash=round_currency(baseline, dp),
        packaged_annual_net_cash_before_out_of_package_costs=round_currency(packaged, dp),
        annual_net_benefit_estimate=round_currency(benefit, dp),
        baseline_per_pay_net_cash=round_currency(baseline / periods, dp),
        packaged_per_pay_net_cash=round_currency(packaged / periods, dp),
        per_pay_net_benefit_estimate=round_currency(benefit / periods, dp),
    )
