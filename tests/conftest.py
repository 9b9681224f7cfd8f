"""Shared scenario builders for the novated lease tests."""

import copy

import pytest

from novated_core.services.novated_lease import ScenarioInput, load_reference_tables


BASE_SCENARIO = {
    "vehicle": {
        "vehicle_type": "ice",
        "purchase_price_incl_gst": 50000,
        "eligible_for_ev_fbt_exemption": False,
    },
    "finance": {
        "term_months": 36,
        "annual_interest_rate_pct": 8.5,
        "payments_per_year": 12,
        "establishment_fee": 500,
        "monthly_account_keeping_fee": 15,
    },
    "running_costs": {
        "annual_registration": 900,
        "annual_insurance": 1400,
        "annual_maintenance": 800,
        "annual_tyres": 300,
        "annual_fuel_or_electricity": 2200,
        "annual_other_eligible_car_expenses": 200,
    },
    "salary": {
        "gross_annual_salary": 120000,
        "pay_frequency": "fortnightly",
    },
    "filing_profile": {
        "resident_for_tax_purposes": True,
        "medicare_levy_reduction_eligible": False,
    },
    "tax_options": {
        "income_tax_year": "FY2025-26",
        "include_medicare_levy": True,
    },
    "packaging": {
        "use_ecm": True,
        "ev_fbt_exemption_toggle": False,
        "include_running_costs_in_package": True,
    },
}


def build_base_input(**sections) -> dict:
    """Baseline scenario as a dict; keyword args update whole sections."""
    scenario = copy.deepcopy(BASE_SCENARIO)
    for section, values in sections.items():
        if isinstance(values, dict) and isinstance(scenario.get(section), dict):
            scenario[section].update(values)
        else:
            scenario[section] = values
    return scenario


def build_scenario(**sections) -> ScenarioInput:
    return ScenarioInput.model_validate(build_base_input(**sections))


@pytest.fixture(scope="session")
def tables():
    return load_reference_tables()


@pytest.fixture
def base_input():
    return build_base_input()
