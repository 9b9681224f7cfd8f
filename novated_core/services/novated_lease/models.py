"""
Novated Lease - Input and Result Models

Scenario inputs are deliberately permissive: numbers may be NaN or
out of range so the validator can report every problem as an issue
instead of failing on the first one.
"""

from datetime import date
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from novated_core.models.enums import (
    Confidence,
    InferenceMethod,
    IssueSeverity,
    PayFrequency,
    ResidualSource,
    VehicleType,
)


# ==================== SCENARIO INPUT ====================

class VehicleInput(BaseModel):
    vehicle_type: VehicleType
    purchase_price_incl_gst: float
    base_value_for_fbt: Optional[float] = None  # Defaults to the purchase price
    eligible_for_ev_fbt_exemption: bool = False
    first_held_and_used_date: Optional[date] = None
    was_phev_exempt_before_2025_04_01: bool = False
    has_binding_commitment_pre_2025_04_01: bool = False


class FinanceInput(BaseModel):
    term_months: float
    annual_interest_rate_pct: Optional[float] = None  # Missing/NaN/negative -> inferred
    payments_per_year: Optional[float] = None
    establishment_fee: float = 0
    monthly_account_keeping_fee: float = 0
    residual_value_override: Optional[float] = None


class RunningCostsInput(BaseModel):
    annual_registration: float = 0
    annual_insurance: float = 0
    annual_maintenance: float = 0
    annual_tyres: float = 0
    annual_fuel_or_electricity: float = 0
    annual_other_eligible_car_expenses: float = 0


class SalaryInput(BaseModel):
    gross_annual_salary: float
    pay_frequency: PayFrequency = PayFrequency.fortnightly


class FilingProfile(BaseModel):
    resident_for_tax_purposes: bool = True
    medicare_levy_reduction_eligible: bool = False  # Recorded only, not modelled


class TaxOptionsInput(BaseModel):
    income_tax_year: str
    include_medicare_levy: bool = True
    medicare_levy_rate_override: Optional[float] = None
    fbt_year_days: Optional[float] = None
    days_available_for_private_use_in_fbt_year: Optional[float] = None
    fbt_statutory_rate_override: Optional[float] = None


class PackagingInput(BaseModel):
    use_ecm: bool = True
    ev_fbt_exemption_toggle: bool = False
    include_running_costs_in_package: bool = True


class ComparisonInput(BaseModel):
    opportunity_cost_rate_pct: Optional[float] = None


class QuoteContext(BaseModel):
    """Figures copied from a third-party novated lease quote"""
    provider_name: Optional[str] = None
    quoted_pay_period_deduction_total: Optional[float] = None
    quoted_annual_deduction_total: Optional[float] = None
    quoted_residual_value: Optional[float] = None
    quoted_residual_pct: Optional[float] = None
    quote_includes_running_costs: Optional[bool] = None
    quote_includes_fuel: Optional[bool] = None
    quote_lists_interest_rate: Optional[bool] = None
    quoted_interest_rate_pct: Optional[float] = None
    quoted_upfront_fees_total: Optional[float] = None
    quoted_monthly_admin_fee: Optional[float] = None


class ScenarioInput(BaseModel):
    """Complete novated lease scenario"""
    vehicle: VehicleInput
    finance: FinanceInput
    running_costs: RunningCostsInput = Field(default_factory=RunningCostsInput)
    salary: SalaryInput
    filing_profile: FilingProfile = Field(default_factory=FilingProfile)
    tax_options: TaxOptionsInput
    packaging: PackagingInput = Field(default_factory=PackagingInput)
    comparison: Optional[ComparisonInput] = None
    quote_context: Optional[QuoteContext] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vehicle": {"vehicle_type": "bev", "purchase_price_incl_gst": 50000,
                            "eligible_for_ev_fbt_exemption": True},
                "finance": {"term_months": 36, "annual_interest_rate_pct": 8.5,
                            "payments_per_year": 12, "establishment_fee": 500,
                            "monthly_account_keeping_fee": 15},
                "running_costs": {"annual_registration": 900, "annual_insurance": 1400,
                                  "annual_maintenance": 800, "annual_tyres": 300,
                                  "annual_fuel_or_electricity": 2200,
                                  "annual_other_eligible_car_expenses": 200},
                "salary": {"gross_annual_salary": 120000, "pay_frequency": "fortnightly"},
                "tax_options": {"income_tax_year": "FY2025-26", "include_medicare_levy": True},
                "packaging": {"use_ecm": True, "ev_fbt_exemption_toggle": True,
                              "include_running_costs_in_package": True},
            }
        }
    )


# ==================== RESULT ====================

class ValidationIssue(BaseModel):
    code: str
    field: str
    message: str
    severity: IssueSeverity = IssueSeverity.error


class AppliedAssumption(BaseModel):
    key: str
    label: str
    value: Union[bool, int, float, str, None]
    source: Optional[str] = None
    confidence: Optional[Confidence] = None
    inferred: bool = False


class InferredParameter(BaseModel):
    key: str
    derived_value: float
    method: InferenceMethod
    confidence: Confidence
    note: str


class LeaseRepaymentBreakdown(BaseModel):
    financed_amount: float
    residual_value: float
    residual_source: ResidualSource
    periodic_finance_repayment: float
    annual_finance_repayment: float
    total_finance_repayments_excluding_residual: float
    total_interest_estimate: float
    annual_interest_rate_pct_applied: float
    payments_per_year: int
    number_of_payments: float


class FbtBreakdown(BaseModel):
    method: str = "statutory_formula"
    statutory_rate_applied: float
    base_value_for_fbt: float
    days_available: float
    fbt_year_days: int
    gross_taxable_value_before_exemptions: float
    ev_exemption_applied: bool
    ev_exemption_reason: Optional[str] = None
    taxable_value_after_ev_exemption: float
    employee_contribution_applied_for_ecm: float
    taxable_value_after_ecm: float
    estimated_employer_fbt_taxable_value_final: float


class PackagingBreakdown(BaseModel):
    annual_running_costs_packaged: float
    annual_finance_repayments_packaged: float
    annual_package_cost_before_ecm: float
    annual_pre_tax_deduction: float
    annual_post_tax_deduction: float
    per_pay_pre_tax_deduction: float
    per_pay_post_tax_deduction: float
    pay_periods_per_year: int


class TaxComparisonBreakdown(BaseModel):
    baseline_taxable_income: float
    packaged_taxable_income: float
    baseline_income_tax: float
    packaged_income_tax: float
    baseline_medicare_levy: float
    packaged_medicare_levy: float
    tax_and_levy_savings: float


class CashflowSummary(BaseModel):
    baseline_annual_net_cash: float
    packaged_annual_net_cash_before_out_of_package_costs: float
    annual_net_benefit_estimate: float
    baseline_per_pay_net_cash: float
    packaged_per_pay_net_cash: float
    per_pay_net_benefit_estimate: float


class BuyOutrightComparison(BaseModel):
    monthly_equivalent_cost: float
    total_cash_outlay_over_term: float
    novated_monthly_out_of_pocket: float
    novated_total_cost_over_term: float
    monthly_difference: float
    total_cost_difference_over_term: float
    opportunity_cost_rate_assumed: float
    estimated_forgone_earnings_over_term: float
    estimated_lct_included_in_purchase_price: float


class NovatedLeaseResult(BaseModel):
    """
    Snapshot returned for every scenario.

    ok=False means at least one error-severity issue and no breakdowns.
    Warnings are returned either way. No timestamps, so the same input
    always produces the same snapshot.
    """
    ok: bool
    validation_issues: List[ValidationIssue] = Field(default_factory=list)

    lease: Optional[LeaseRepaymentBreakdown] = None
    fbt: Optional[FbtBreakdown] = None
    packaging: Optional[PackagingBreakdown] = None
    tax_comparison: Optional[TaxComparisonBreakdown] = None
    cashflow: Optional[CashflowSummary] = None
    buy_outright_comparison: Optional[BuyOutrightComparison] = None

    # Audit trail
    assumptions: List[AppliedAssumption] = Field(default_factory=list)
    inferred_parameters: List[InferredParameter] = Field(default_factory=list)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.validation_issues if i.severity == IssueSeverity.error]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.validation_issues if i.severity == IssueSeverity.warning]

    def issue_codes(self) -> List[str]:
        return [issue.code for issue in self.validation_issues]

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
