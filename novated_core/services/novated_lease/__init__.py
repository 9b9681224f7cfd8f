"""
Novated Lease Calculation Engine

Salary packaging estimate for a novated car lease under Australian
income tax, Medicare levy and FBT rules, compared with buying outright.
"""

from .engine import (
    NovatedLeaseCalculator,
    PipelineStage,
    calculate_novated_lease,
    get_novated_lease_status,
)
from .models import (
    AppliedAssumption,
    BuyOutrightComparison,
    CashflowSummary,
    ComparisonInput,
    FbtBreakdown,
    FilingProfile,
    FinanceInput,
    InferredParameter,
    LeaseRepaymentBreakdown,
    NovatedLeaseResult,
    PackagingBreakdown,
    PackagingInput,
    QuoteContext,
    RunningCostsInput,
    SalaryInput,
    ScenarioInput,
    TaxComparisonBreakdown,
    TaxOptionsInput,
    ValidationIssue,
    VehicleInput,
)
from .presentation import HeadlineMetrics, apply_quote_mode, get_headline_metrics
from .reference_tables import (
    EngineAssumptions,
    ReferenceDataError,
    ReferenceTables,
    get_reference_tables,
    load_reference_tables,
)

__all__ = [
    'NovatedLeaseCalculator',
    'PipelineStage',
    'calculate_novated_lease',
    'get_novated_lease_status',
    'AppliedAssumption',
    'BuyOutrightComparison',
    'CashflowSummary',
    'ComparisonInput',
    'FbtBreakdown',
    'FilingProfile',
    'FinanceInput',
    'InferredParameter',
    'LeaseRepaymentBreakdown',
    'NovatedLeaseResult',
    'PackagingBreakdown',
    'PackagingInput',
    'QuoteContext',
    'RunningCostsInput',
    'SalaryInput',
    'ScenarioInput',
    'TaxComparisonBreakdown',
    'TaxOptionsInput',
    'ValidationIssue',
    'VehicleInput',
    'HeadlineMetrics',
    'apply_quote_mode',
    'get_headline_metrics',
    'EngineAssumptions',
    'ReferenceDataError',
    'ReferenceTables',
    'get_reference_tables',
    'load_reference_tables',
]
