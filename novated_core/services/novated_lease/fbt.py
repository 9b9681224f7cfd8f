"""
Novated Lease - Car Fringe Benefits (Statutory Formula)

Taxable value = base value × statutory rate × days available / days in FBT year.

Electric car exemption:
- BEV/FCEV: exempt at or below the fuel-efficient LCT threshold
- PHEV: exempt at or below the threshold only when the car was already
  exempt and under a binding commitment before the general PHEV
  exemption ended (1 April 2025)
- ICE/HEV: never exempt

Whatever taxable value remains can be reduced to nil with the Employee
Contribution Method (ECM): the employee pays that amount post-tax.
"""

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from novated_core.models.enums import ZERO_EMISSION_VEHICLE_TYPES, VehicleType

from .models import FbtBreakdown, VehicleInput
from .money import Number, round_currency, round_rate, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvExemptionDecision:
    applied: bool
    reason: Optional[str] = None


def ev_exemption_decision(
    vehicle: VehicleInput,
    fuel_efficient_threshold: float,
    phev_exemption_ended_on: date,
) -> EvExemptionDecision:
    """Apply the electric car exemption decision table."""
    under_threshold = vehicle.purchase_price_incl_gst <= fuel_efficient_threshold

    if vehicle.vehicle_type in ZERO_EMISSION_VEHICLE_TYPES:
        if not under_threshold:
            return EvExemptionDecision(
                applied=False,
                reason="EV purchase price is above the fuel-efficient LCT threshold, so exemption does not apply.",
            )
        return EvExemptionDecision(
            applied=True,
            reason="Auto-applied for eligible BEV/FCEV under LCT threshold.",
        )

    if vehicle.vehicle_type == VehicleType.phev:
        if not under_threshold:
            return EvExemptionDecision(
                applied=False,
                reason="PHEV purchase price is above the fuel-efficient LCT threshold, so exemption does not apply.",
            )
        if vehicle.was_phev_exempt_before_2025_04_01 and vehicle.has_binding_commitment_pre_2025_04_01:
            return EvExemptionDecision(
                applied=True,
                reason="PHEV transitional conditions were marked as met.",
            )
        return EvExemptionDecision(
            applied=False,
            reason=f"PHEV exemption requires transitional conditions after {phev_exemption_ended_on.isoformat()}.",
        )

    return EvExemptionDecision(applied=False)


@dataclass(frozen=True)
class FbtAssessment:
    base_value: Decimal
    statutory_rate: float
    days_available: float
    fbt_year_days: int
    gross_taxable_value: Decimal
    exemption: EvExemptionDecision
    taxable_value_after_ev_exemption: Decimal
    ecm_contribution: Decimal
    taxable_value_after_ecm: Decimal

    def to_breakdown(self, dp: int = 2) -> FbtBreakdown:
        return FbtBreakdown(
            method="statutory_formula",
            statutory_rate_applied=round_rate(self.statutory_rate),
            base_value_for_fbt=round_currency(self.base_value, dp),
            days_available=self.days_available,
            fbt_year_days=self.fbt_year_days,
            gross_taxable_value_before_exemptions=round_currency(self.gross_taxable_value, dp),
            ev_exemption_applied=self.exemption.applied,
            ev_exemption_reason=self.exemption.reason,
            taxable_value_after_ev_exemption=round_currency(self.taxable_value_after_ev_exemption, dp),
            employee_contribution_applied_for_ecm=round_currency(self.ecm_contribution, dp),
            taxable_value_after_ecm=round_currency(self.taxable_value_after_ecm, dp),
            estimated_employer_fbt_taxable_value_final=round_currency(self.taxable_value_after_ecm, dp),
        )


def calculate_fbt(
    vehicle: VehicleInput,
    use_ecm: bool,
    statutory_rate: float,
    days_available: Number,
    fbt_year_days: int,
    fuel_efficient_threshold: float,
    phev_exemption_ended_on: date,
) -> FbtAssessment:
    base_value = vehicle.base_value_for_fbt
    if base_value is None:
        base_value = vehicle.purchase_price_incl_gst
    base = to_decimal(base_value)

    gross = base * to_decimal(statutory_rate) * to_decimal(days_available) / Decimal(fbt_year_days)
    gross = max(Decimal("0"), gross)

    exemption = ev_exemption_decision(vehicle, fuel_efficient_threshold, phev_exemption_ended_on)
    after_exemption = Decimal("0") if exemption.applied else gross

    ecm = after_exemption if use_ecm and after_exemption > 0 else Decimal("0")
    after_ecm = max(Decimal("0"), after_exemption - ecm)

    logger.debug(
        f"FBT: gross {gross:.2f}, exempt={exemption.applied}, ECM {ecm:.2f}, final {after_ecm:.2f}"
    )

    return FbtAssessment(
        base_value=base,
        statutory_rate=statutory_rate,
        days_available=days_available,
        fbt_year_days=fbt_year_days,
        gross_taxable_value=gross,
        exemption=exemption,
        taxable_value_after_ev_exemption=after_exemption,
        ecm_contribution=ecm,
        taxable_value_after_ecm=after_ecm,
    )
