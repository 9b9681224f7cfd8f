"""
Novated Lease - Scenario Validation

Two passes, both accumulating issues instead of stopping at the first:

Pass 1 (structural) runs before any calculation: supported tax year,
finite required numbers, allowed terms and payment frequencies, residual
limits and FBT day/rate ranges. It also resolves the defaults the
calculators need (payments per year, FBT year days, residual value).

Pass 2 (computed) runs after packaging: packaged taxable income must not
go negative, and very high deductions relative to salary raise a warning.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import ValidationError

from novated_core.models.enums import PAY_PERIODS_PER_YEAR, IssueSeverity, ResidualSource

from .amortization import VALID_PAYMENTS_PER_YEAR, VALID_TERM_MONTHS, lease_years_for_term
from .models import AppliedAssumption, ScenarioInput, ValidationIssue
from .money import is_finite_number, to_decimal
from .packaging import PackagingTotals, packaged_taxable_income
from .reference_tables import (
    LctThresholds,
    MedicareLevyTable,
    ReferenceTables,
    TaxBracketTable,
)

logger = logging.getLogger(__name__)

VALID_FBT_YEAR_DAYS = (365, 366)


def error(code: str, field_name: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, field=field_name, message=message, severity=IssueSeverity.error)


def warning(code: str, field_name: str, message: str) -> ValidationIssue:
    return ValidationIssue(code=code, field=field_name, message=message, severity=IssueSeverity.warning)


def has_errors(issues: List[ValidationIssue]) -> bool:
    return any(issue.severity == IssueSeverity.error for issue in issues)


def schema_issues(exc: ValidationError) -> List[ValidationIssue]:
    """One INPUT_SCHEMA_INVALID error per pydantic error location."""
    return [
        error(
            "INPUT_SCHEMA_INVALID",
            ".".join(str(part) for part in err["loc"]) or "scenario",
            err["msg"],
        )
        for err in exc.errors()
    ]


def _optional_number(value: Optional[float]) -> Optional[float]:
    """Supplied optional overrides that are not finite are treated as absent."""
    return value if is_finite_number(value) else None


# ==================== PASS 1 ====================

@dataclass
class StructuralValidation:
    """Issues from pass 1 plus the resolved values the calculators use."""
    issues: List[ValidationIssue] = field(default_factory=list)
    assumptions: List[AppliedAssumption] = field(default_factory=list)

    tax_table: Optional[TaxBracketTable] = None
    levy_table: Optional[MedicareLevyTable] = None
    lct_thresholds: Optional[LctThresholds] = None

    payments_per_year: Optional[float] = None
    pay_periods_per_year: int = 26
    residual_value: Optional[float] = None
    residual_source: ResidualSource = ResidualSource.default_table
    fbt_year_days: Optional[float] = None
    days_available: Optional[float] = None
    statutory_rate: Optional[float] = None
    levy_rate: Optional[float] = None

    @property
    def has_errors(self) -> bool:
        return has_errors(self.issues)


def validate_structure(scenario: ScenarioInput, tables: ReferenceTables) -> StructuralValidation:
    """Pass 1: structural checks and default resolution."""
    result = StructuralValidation()
    issues = result.issues
    vehicle = scenario.vehicle
    finance = scenario.finance
    tax_options = scenario.tax_options
    assumptions = tables.assumptions

    # Financial year tables
    year = tax_options.income_tax_year
    result.tax_table = tables.tax_brackets_for(year)
    result.levy_table = tables.medicare_levy_for(year)
    result.lct_thresholds = tables.lct_thresholds_for(year)
    if result.tax_table is None:
        issues.append(error(
            "TAX_YEAR_UNSUPPORTED", "tax_options.income_tax_year",
            f"Income tax year {year} is not supported.",
        ))
    if result.levy_table is None:
        issues.append(error(
            "MEDICARE_YEAR_UNSUPPORTED", "tax_options.income_tax_year",
            f"Medicare levy table for {year} is not available.",
        ))
    if result.lct_thresholds is None:
        issues.append(error(
            "LCT_YEAR_UNSUPPORTED", "tax_options.income_tax_year",
            f"Luxury car tax thresholds for {year} are not available.",
        ))

    # Required numbers
    costs = scenario.running_costs
    required_numbers = [
        ("vehicle.purchase_price_incl_gst", vehicle.purchase_price_incl_gst),
        ("finance.term_months", finance.term_months),
        ("finance.establishment_fee", finance.establishment_fee),
        ("finance.monthly_account_keeping_fee", finance.monthly_account_keeping_fee),
        ("salary.gross_annual_salary", scenario.salary.gross_annual_salary),
        ("running_costs.annual_registration", costs.annual_registration),
        ("running_costs.annual_insurance", costs.annual_insurance),
        ("running_costs.annual_maintenance", costs.annual_maintenance),
        ("running_costs.annual_tyres", costs.annual_tyres),
        ("running_costs.annual_fuel_or_electricity", costs.annual_fuel_or_electricity),
        ("running_costs.annual_other_eligible_car_expenses", costs.annual_other_eligible_car_expenses),
    ]
    for field_name, value in required_numbers:
        if not is_finite_number(value):
            issues.append(error(
                "REQUIRED_NUMBER_INVALID", field_name,
                f"{field_name} must be a finite number.",
            ))

    # Non-negative amounts
    non_negative = [
        ("vehicle.purchase_price_incl_gst", vehicle.purchase_price_incl_gst),
        ("finance.establishment_fee", finance.establishment_fee),
        ("finance.monthly_account_keeping_fee", finance.monthly_account_keeping_fee),
        ("vehicle.base_value_for_fbt", _optional_number(vehicle.base_value_for_fbt)),
        ("tax_options.medicare_levy_rate_override", _optional_number(tax_options.medicare_levy_rate_override)),
    ] + [entry for entry in required_numbers if entry[0].startswith("running_costs.")]
    for field_name, value in non_negative:
        if is_finite_number(value) and value < 0:
            issues.append(error("NEGATIVE_VALUE", field_name, f"{field_name} cannot be negative."))

    salary = scenario.salary.gross_annual_salary
    if is_finite_number(salary) and salary <= 0:
        issues.append(error(
            "NON_POSITIVE_SALARY", "salary.gross_annual_salary",
            "Gross annual salary must be greater than zero.",
        ))

    if not scenario.filing_profile.resident_for_tax_purposes:
        issues.append(warning(
            "NON_RESIDENT_RATES_NOT_MODELLED", "filing_profile.resident_for_tax_purposes",
            "Only resident tax rates are modelled; results assume Australian residency.",
        ))

    # Term and payment frequency
    term = finance.term_months
    if term not in VALID_TERM_MONTHS:
        issues.append(error(
            "INVALID_TERM", "finance.term_months",
            "Term months must be one of 12, 24, 36, 48, or 60.",
        ))

    payments_per_year = finance.payments_per_year
    if payments_per_year is None:
        payments_per_year = assumptions.default_finance_payments_per_year
        result.assumptions.append(AppliedAssumption(
            key="default_finance_payments_per_year",
            label="Finance payments per year",
            value=payments_per_year,
            source=assumptions.source or None,
        ))
    if payments_per_year not in VALID_PAYMENTS_PER_YEAR:
        issues.append(error(
            "INVALID_PAYMENTS_PER_YEAR", "finance.payments_per_year",
            "Payments per year must be one of 12, 26, or 52.",
        ))
    result.payments_per_year = payments_per_year
    result.pay_periods_per_year = PAY_PERIODS_PER_YEAR[scenario.salary.pay_frequency]

    # Residual
    residual_pct = None
    if is_finite_number(term):
        if term % 12 == 0:
            residual_pct = tables.residual_percent_for(lease_years_for_term(term))
        if residual_pct is None:
            issues.append(error(
                "RESIDUAL_TABLE_MISSING", "finance.term_months",
                "No residual percentage found for term.",
            ))

    price = vehicle.purchase_price_incl_gst
    minimum_residual = None
    if residual_pct is not None and is_finite_number(price):
        minimum_residual = float(to_decimal(price) * to_decimal(residual_pct))
    result.residual_value = minimum_residual

    override = _optional_number(finance.residual_value_override)
    if override is not None:
        result.residual_value = override
        result.residual_source = ResidualSource.user_override
        if minimum_residual is not None and override < minimum_residual:
            issues.append(error(
                "RESIDUAL_BELOW_MINIMUM", "finance.residual_value_override",
                "Residual override is below minimum table amount for term.",
            ))
        if is_finite_number(price) and override >= price:
            issues.append(error(
                "RESIDUAL_TOO_HIGH", "finance.residual_value_override",
                "Residual override must be less than purchase price.",
            ))

    # FBT days and rate
    fbt_year_days = tax_options.fbt_year_days
    if fbt_year_days is None:
        fbt_year_days = tables.fbt.default_fbt_year_days
        result.assumptions.append(AppliedAssumption(
            key="fbt_year_days",
            label="Days in FBT year",
            value=fbt_year_days,
            source=tables.fbt.source or None,
        ))
    if fbt_year_days not in VALID_FBT_YEAR_DAYS:
        issues.append(error(
            "INVALID_FBT_YEAR_DAYS", "tax_options.fbt_year_days",
            "FBT year days must be 365 or 366.",
        ))
    result.fbt_year_days = fbt_year_days

    days_available = tax_options.days_available_for_private_use_in_fbt_year
    if days_available is None:
        days_available = fbt_year_days
        result.assumptions.append(AppliedAssumption(
            key="days_available_for_private_use",
            label="Days available for private use",
            value=days_available,
        ))
    if (
        not is_finite_number(days_available)
        or not is_finite_number(fbt_year_days)
        or days_available < 0
        or days_available > fbt_year_days
    ):
        issues.append(error(
            "INVALID_DAYS_AVAILABLE", "tax_options.days_available_for_private_use_in_fbt_year",
            "Days available must be within 0..fbt_year_days.",
        ))
    result.days_available = days_available

    rate_override = _optional_number(tax_options.fbt_statutory_rate_override)
    statutory_rate = rate_override if rate_override is not None else tables.fbt.statutory_rate
    if statutory_rate < 0 or statutory_rate > 1:
        issues.append(error(
            "INVALID_FBT_RATE", "tax_options.fbt_statutory_rate_override",
            "FBT statutory rate must be between 0 and 1.",
        ))
    result.statutory_rate = statutory_rate

    levy_override = _optional_number(tax_options.medicare_levy_rate_override)
    if levy_override is not None:
        result.levy_rate = levy_override
    elif result.levy_table is not None:
        result.levy_rate = result.levy_table.levy_rate

    if result.has_errors:
        logger.info(
            f"Structural validation failed: {[i.code for i in issues if i.severity == IssueSeverity.error]}"
        )
    return result


# ==================== PASS 2 ====================

def validate_computed(
    gross_salary: float,
    packaging: PackagingTotals,
    high_deduction_ratio: float,
) -> List[ValidationIssue]:
    """Pass 2: checks that need the packaging totals."""
    issues = []

    if packaged_taxable_income(gross_salary, packaging.pre_tax_deduction) < 0:
        issues.append(error(
            "NEGATIVE_PACKAGED_TAXABLE_INCOME", "salary.gross_annual_salary",
            "Packaged taxable income cannot be negative.",
        ))

    if packaging.total_deductions > to_decimal(gross_salary) * to_decimal(high_deduction_ratio):
        issues.append(warning(
            "HIGH_DEDUCTION_RATIO", "packaging",
            "Total annual deductions are high relative to salary.",
        ))

    return issues
