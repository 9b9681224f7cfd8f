"""
Novated Lease - Calculation Engine

Runs one scenario through a fixed pipeline:

    structural validation -> [abort] -> rate resolution -> amortization
    -> FBT -> packaging -> computed validation -> [abort] -> tax comparison
    -> cashflow -> buy outright comparison -> quote variance -> result

Invalid scenarios never raise: they come back as ok=False snapshots with
the error issues and whatever assumptions were recorded before the abort.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from novated_core.models.enums import Confidence
from novated_core.sentry_integration import capture_exception

from .amortization import amortize_lease
from .comparison import compare_buy_outright, opportunity_cost_rate
from .fbt import calculate_fbt
from .models import (
    AppliedAssumption,
    InferredParameter,
    NovatedLeaseResult,
    ScenarioInput,
    ValidationIssue,
)
from .money import is_finite_number, to_decimal
from .packaging import calculate_packaging, compare_tax, summarize_cashflow
from .rate_resolver import resolve_interest_rate
from .reference_tables import EngineAssumptions, ReferenceTables, get_reference_tables
from .validation import (
    StructuralValidation,
    error,
    has_errors,
    schema_issues,
    validate_computed,
    validate_structure,
    warning,
)

logger = logging.getLogger(__name__)


class PipelineStage(str, Enum):
    """Where a calculation finished"""
    PENDING = "pending"
    STRUCTURALLY_INVALID = "structurally_invalid"
    COMPUTED_INVALID = "computed_invalid"
    CALCULATION_FAILED = "calculation_failed"
    COMPLETE = "complete"


def base_assumptions(tables: ReferenceTables) -> List[AppliedAssumption]:
    """Assumptions every snapshot carries, valid or not."""
    return [
        AppliedAssumption(
            key="rounding",
            label="Currency rounding precision (dp)",
            value=tables.assumptions.rounding_precision_dp,
            source=tables.assumptions.source or None,
        ),
        AppliedAssumption(
            key="fbt_method",
            label="FBT valuation method",
            value=tables.fbt.method,
            source=tables.fbt.source or None,
        ),
    ]


def quote_variance_issues(
    scenario: ScenarioInput,
    package_cost_before_ecm,
    assumptions: EngineAssumptions,
) -> List[ValidationIssue]:
    """Warn when the modelled package cost drifts from the quoted annual total."""
    quote = scenario.quote_context
    quoted = quote.quoted_annual_deduction_total if quote is not None else None
    if not is_finite_number(quoted) or quoted <= 0:
        return []

    quoted_dec = to_decimal(quoted)
    ratio = abs(package_cost_before_ecm - quoted_dec) / quoted_dec
    field_name = "quote_context.quoted_annual_deduction_total"

    if ratio > to_decimal(assumptions.quote_model_variance_moderate_ratio):
        return [warning(
            "QUOTE_MODEL_VARIANCE_HIGH", field_name,
            f"Quote/model variance of {float(ratio):.1%} is above high tolerance.",
        )]
    if ratio > to_decimal(assumptions.quote_model_variance_tolerance_ratio):
        return [warning(
            "QUOTE_MODEL_VARIANCE_MODERATE", field_name,
            f"Quote/model variance of {float(ratio):.1%} is above tolerance.",
        )]
    return []


class NovatedLeaseCalculator:
    """
    Novated lease calculation for a single scenario.

    Reference tables and assumptions are injected; nothing is read from
    module state during a calculation, so repeated runs are identical.
    """

    def __init__(
        self,
        scenario: ScenarioInput,
        tables: ReferenceTables,
        assumptions: Optional[EngineAssumptions] = None,
    ):
        self.scenario = scenario
        if assumptions is not None:
            tables = tables.model_copy(update={"assumptions": assumptions})
        self.tables = tables
        self.assumptions = tables.assumptions
        self.dp = self.assumptions.rounding_precision_dp

        self.stage = PipelineStage.PENDING
        self._issues: List[ValidationIssue] = []
        self._applied: List[AppliedAssumption] = base_assumptions(tables)
        self._inferred: List[InferredParameter] = []

    def calculate(self) -> NovatedLeaseResult:
        """Run the full pipeline and return the snapshot"""
        structure = validate_structure(self.scenario, self.tables)
        self._issues.extend(structure.issues)
        self._applied.extend(structure.assumptions)
        if structure.has_errors:
            return self._abort(PipelineStage.STRUCTURALLY_INVALID)

        try:
            return self._compute(structure)
        except (ArithmeticError, ValueError) as e:
            logger.exception(f"Novated lease calculation error: {e}")
            capture_exception(e, income_tax_year=self.scenario.tax_options.income_tax_year)
            self._issues.append(error("CALCULATION_ERROR", "scenario", f"Calculation error: {e}"))
            return self._abort(PipelineStage.CALCULATION_FAILED)

    def _compute(self, structure: StructuralValidation) -> NovatedLeaseResult:
        scenario = self.scenario
        vehicle = scenario.vehicle
        finance = scenario.finance
        tax_options = scenario.tax_options
        payments_per_year = int(structure.payments_per_year)
        dp = self.dp

        # Interest rate
        resolution = resolve_interest_rate(
            scenario, structure.residual_value, payments_per_year, self.assumptions
        )
        self._issues.extend(resolution.issues)
        self._applied.extend(resolution.assumptions)
        self._inferred.extend(resolution.inferred_parameters)

        # Lease
        schedule = amortize_lease(
            purchase_price=vehicle.purchase_price_incl_gst,
            establishment_fee=finance.establishment_fee,
            residual_value=structure.residual_value,
            residual_source=structure.residual_source,
            annual_interest_rate_pct=resolution.annual_interest_rate_pct,
            term_months=finance.term_months,
            payments_per_year=payments_per_year,
        )

        # FBT
        fbt = calculate_fbt(
            vehicle=vehicle,
            use_ecm=scenario.packaging.use_ecm,
            statutory_rate=structure.statutory_rate,
            days_available=structure.days_available,
            fbt_year_days=int(structure.fbt_year_days),
            fuel_efficient_threshold=structure.lct_thresholds.fuel_efficient,
            phev_exemption_ended_on=self.tables.fbt.phev_general_exemption_ended_on,
        )
        if scenario.packaging.ev_fbt_exemption_toggle and not fbt.exemption.applied:
            self._issues.append(warning(
                "EV_EXEMPTION_NOT_APPLIED", "packaging.ev_fbt_exemption_toggle",
                fbt.exemption.reason or "Vehicle type is not eligible for the electric car FBT exemption.",
            ))

        # Packaging
        packaging = calculate_packaging(
            running_costs=scenario.running_costs,
            include_running_costs=scenario.packaging.include_running_costs_in_package,
            lease=schedule,
            monthly_account_keeping_fee=finance.monthly_account_keeping_fee,
            ecm_contribution=fbt.ecm_contribution,
            pay_periods_per_year=structure.pay_periods_per_year,
        )

        self._issues.extend(validate_computed(
            scenario.salary.gross_annual_salary,
            packaging,
            self.assumptions.high_deduction_warning_ratio_of_salary,
        ))
        if has_errors(self._issues):
            return self._abort(PipelineStage.COMPUTED_INVALID)

        # Tax, cashflow and comparison
        tax = compare_tax(
            gross_salary=scenario.salary.gross_annual_salary,
            pre_tax_deduction=packaging.pre_tax_deduction,
            table=structure.tax_table,
            levy_rate=structure.levy_rate,
            include_medicare_levy=tax_options.include_medicare_levy,
        )
        cashflow = summarize_cashflow(scenario.salary.gross_annual_salary, packaging, tax, dp)

        lease_breakdown = schedule.to_breakdown(dp)
        tax_breakdown = tax.to_breakdown(dp)

        opportunity_rate = self._opportunity_cost_rate()
        buy_outright = compare_buy_outright(
            purchase_price=vehicle.purchase_price_incl_gst,
            vehicle_type=vehicle.vehicle_type,
            term_months=finance.term_months,
            lease=lease_breakdown,
            tax_comparison=tax_breakdown,
            lct_thresholds=structure.lct_thresholds,
            lct_rate=self.tables.lct.rate,
            opportunity_cost_rate_pct=opportunity_rate,
            dp=dp,
        )

        self._issues.extend(quote_variance_issues(
            scenario, packaging.package_cost_before_ecm, self.assumptions
        ))
        self._record_year_assumptions(structure)

        self.stage = PipelineStage.COMPLETE
        logger.debug(
            f"Novated lease calculated for {tax_options.income_tax_year}: "
            f"savings {tax_breakdown.tax_and_levy_savings}, "
            f"{len(self._issues)} issue(s)"
        )

        return NovatedLeaseResult(
            ok=True,
            validation_issues=self._issues,
            lease=lease_breakdown,
            fbt=fbt.to_breakdown(dp),
            packaging=packaging.to_breakdown(dp),
            tax_comparison=tax_breakdown,
            cashflow=cashflow,
            buy_outright_comparison=buy_outright,
            assumptions=self._applied,
            inferred_parameters=self._inferred,
        )

    def _opportunity_cost_rate(self) -> float:
        comparison = self.scenario.comparison
        raw = comparison.opportunity_cost_rate_pct if comparison else None
        rate = opportunity_cost_rate(raw)
        defaulted = not (is_finite_number(raw) and raw >= 0)
        self._applied.append(AppliedAssumption(
            key="opportunity_cost_rate_pct",
            label="Opportunity cost rate (% p.a.)",
            value=rate,
            source="default" if defaulted else "scenario",
            inferred=defaulted,
            confidence=Confidence.low if defaulted else None,
        ))
        return rate

    def _record_year_assumptions(self, structure: StructuralValidation) -> None:
        tables = self.tables
        self._applied.extend([
            AppliedAssumption(
                key="income_tax_year",
                label="Income tax year",
                value=self.scenario.tax_options.income_tax_year,
                source=structure.tax_table.source or None,
            ),
            AppliedAssumption(
                key="medicare_rate",
                label="Medicare levy rate",
                value=structure.levy_rate,
                source=structure.levy_table.source or None,
            ),
            AppliedAssumption(
                key="fbt_statutory_rate",
                label="FBT statutory rate",
                value=structure.statutory_rate,
                source=tables.fbt.source or None,
            ),
            AppliedAssumption(
                key="residual_source",
                label="Residual source",
                value=structure.residual_source.value,
                source=tables.residuals.source or None,
            ),
        ])

    def _abort(self, stage: PipelineStage) -> NovatedLeaseResult:
        self.stage = stage
        logger.info(
            f"Novated lease calculation stopped at {stage.value}: "
            f"{[i.code for i in self._issues]}"
        )
        return NovatedLeaseResult(
            ok=False,
            validation_issues=self._issues,
            assumptions=self._applied,
            inferred_parameters=self._inferred,
        )


# ==================== ENTRY POINT ====================

def calculate_novated_lease(
    scenario: Union[ScenarioInput, Mapping[str, Any]],
    tables: Optional[ReferenceTables] = None,
    assumptions: Optional[EngineAssumptions] = None,
) -> NovatedLeaseResult:
    """
    Calculate a novated lease scenario.

    Args:
        scenario: ScenarioInput or a raw mapping (parsed here; schema errors
            become INPUT_SCHEMA_INVALID issues)
        tables: Reference tables (defaults to the process-wide tables)
        assumptions: Engine assumptions overriding the ones in tables

    Returns:
        NovatedLeaseResult snapshot
    """
    if tables is None:
        tables = get_reference_tables()

    if not isinstance(scenario, ScenarioInput):
        try:
            scenario = ScenarioInput.model_validate(scenario)
        except ValidationError as e:
            if assumptions is not None:
                tables = tables.model_copy(update={"assumptions": assumptions})
            issues = schema_issues(e)
            logger.info(f"Scenario rejected by schema: {[i.field for i in issues]}")
            return NovatedLeaseResult(
                ok=False,
                validation_issues=issues,
                assumptions=base_assumptions(tables),
            )

    return NovatedLeaseCalculator(scenario, tables, assumptions).calculate()


def get_novated_lease_status(tables: Optional[ReferenceTables] = None) -> Dict[str, Any]:
    """Return status of the novated lease engine and its reference data."""
    if tables is None:
        tables = get_reference_tables()

    return {
        "module": "novated_lease",
        "name": "Novated Lease Salary Packaging",
        "supported_financial_years": tables.supported_years(),
        "fbt_method": tables.fbt.method,
        "fbt_statutory_rate": tables.fbt.statutory_rate,
        "default_quote_interest_rate_pct": tables.assumptions.default_quote_interest_rate_pct,
        "rounding_precision_dp": tables.assumptions.rounding_precision_dp,
        "status": "active",
    }
