"""
Novated Core - Novated Lease API Router

Provides REST API endpoints for novated lease estimates:
- Scenario calculation (explicit rate or quote mode)
- Headline metrics
- Reference tables per financial year
- Vehicle type catalogue and engine status

Calculation endpoints always return 200 with the result snapshot;
scenario problems are reported in validation_issues, not as HTTP errors.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends

from novated_core.models.enums import VehicleType
from novated_core.services.novated_lease import (
    ReferenceTables,
    ScenarioInput,
    apply_quote_mode,
    calculate_novated_lease,
    get_headline_metrics,
    get_novated_lease_status,
    get_reference_tables,
)
from novated_core.utils.validation_errors import validate_choice

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/novated-lease", tags=["Novated Lease"])


VEHICLE_TYPE_INFO = {
    VehicleType.ice: {
        "name": "Internal combustion engine",
        "ev_fbt_exemption": "Not eligible",
    },
    VehicleType.hev: {
        "name": "Hybrid electric (not plug-in)",
        "ev_fbt_exemption": "Not eligible",
    },
    VehicleType.phev: {
        "name": "Plug-in hybrid electric",
        "ev_fbt_exemption": "Only with transitional arrangements from before 1 April 2025",
    },
    VehicleType.bev: {
        "name": "Battery electric",
        "ev_fbt_exemption": "Eligible at or below the fuel-efficient LCT threshold",
    },
    VehicleType.fcev: {
        "name": "Hydrogen fuel cell electric",
        "ev_fbt_exemption": "Eligible at or below the fuel-efficient LCT threshold",
    },
}


# ==================== STATUS ENDPOINTS ====================

@router.get("/status")
async def get_status(tables: ReferenceTables = Depends(get_reference_tables)):
    """
    Get status of the novated lease engine.

    Returns supported financial years, FBT method and default rates.
    """
    return get_novated_lease_status(tables)


@router.get("/vehicle-types")
async def get_vehicle_types():
    """List vehicle types and how the electric car FBT exemption treats them."""
    return {
        "vehicle_types": [
            {"value": vehicle_type.value, **info}
            for vehicle_type, info in VEHICLE_TYPE_INFO.items()
        ]
    }


# ==================== REFERENCE DATA ENDPOINTS ====================

@router.get("/financial-years")
async def get_financial_years(tables: ReferenceTables = Depends(get_reference_tables)):
    return {"financial_years": tables.supported_years()}


@router.get("/reference-tables/{financial_year}")
async def get_reference_tables_for_year(
    financial_year: str,
    tables: ReferenceTables = Depends(get_reference_tables),
):
    """
    Get every table the engine uses for one financial year.

    **Example:** `/reference-tables/FY2025-26`
    """
    validate_choice(financial_year, "financial_year", tables.supported_years())
    return tables.year_summary(financial_year)


# ==================== CALCULATION ENDPOINTS ====================

@router.post("/calculate")
async def calculate(
    request: ScenarioInput,
    tables: ReferenceTables = Depends(get_reference_tables),
) -> Dict[str, Any]:
    """
    Calculate a novated lease scenario.

    Returns lease repayments, FBT treatment, packaging deductions, tax and
    levy comparison, cashflow and a buy-outright comparison, plus
    validation issues and the assumptions applied.
    """
    result = calculate_novated_lease(request, tables=tables)
    return result.to_dict()


@router.post("/quote-mode/calculate")
async def calculate_quote_mode(
    request: ScenarioInput,
    tables: ReferenceTables = Depends(get_reference_tables),
) -> Dict[str, Any]:
    """
    Calculate a scenario with the interest rate back-solved from the quote.

    The finance interest rate is ignored. A rate printed on the quote is
    used directly, otherwise the quoted annual deduction total and quoted
    monthly admin fee drive the rate.
    """
    quote = request.quote_context
    if quote is None or quote.quoted_annual_deduction_total is None:
        logger.info("Quote mode request without a quoted annual total; default rate applies")

    result = calculate_novated_lease(apply_quote_mode(request), tables=tables)
    return result.to_dict()


@router.post("/headline-metrics")
async def headline_metrics(
    request: ScenarioInput,
    tables: ReferenceTables = Depends(get_reference_tables),
) -> Dict[str, Any]:
    """
    Calculate a scenario and return only its headline figures.

    `headline` is null when the scenario has errors.
    """
    result = calculate_novated_lease(request, tables=tables)
    metrics = get_headline_metrics(result, tables.assumptions.rounding_precision_dp)
    return {
        "ok": result.ok,
        "headline": metrics.model_dump() if metrics else None,
        "validation_issues": [issue.model_dump(mode="json") for issue in result.validation_issues],
    }
