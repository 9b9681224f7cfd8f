"""
Unit Tests for Lease Amortization

Run with: pytest tests/test_amortization.py -v
"""

import pytest

from novated_core.models.enums import ResidualSource
from novated_core.services.novated_lease.amortization import (
    amortize_lease,
    lease_years_for_term,
    number_of_payments,
    periodic_repayment,
)


class TestPeriodicRepayment:
    """Test the annuity-with-balloon formula."""

    def test_zero_rate_spreads_principal(self):
        """Test 0% spreads financed less residual evenly."""
        # ($50,500 - $23,440) / 36
        assert periodic_repayment(50500, 23440, 0, 36) == pytest.approx(751.6667, abs=0.0001)

    def test_no_residual_matches_plain_annuity(self):
        """Test a zero balloon gives a standard loan repayment."""
        # $10,000 at 1% per period over 12 periods
        assert periodic_repayment(10000, 0, 0.01, 12) == pytest.approx(888.49, abs=0.01)

    def test_residual_reduces_repayment(self):
        with_balloon = periodic_repayment(50500, 23440, 0.085 / 12, 36)
        without_balloon = periodic_repayment(50500, 0, 0.085 / 12, 36)

        assert with_balloon < without_balloon

    def test_repayment_increases_with_rate(self):
        low = periodic_repayment(50500, 23440, 0.05 / 12, 36)
        high = periodic_repayment(50500, 23440, 0.10 / 12, 36)

        assert high > low


class TestTermHelpers:

    def test_lease_years(self):
        assert lease_years_for_term(12) == 1
        assert lease_years_for_term(60) == 5

    def test_number_of_payments(self):
        assert number_of_payments(36, 12) == 36
        assert number_of_payments(36, 26) == 78
        assert number_of_payments(24, 52) == 104


class TestAmortizeLease:
    """Test the lease schedule."""

    def test_baseline_schedule(self):
        """Test $50,000 car, $500 fee, 8.5% over 36 months."""
        schedule = amortize_lease(
            purchase_price=50000,
            establishment_fee=500,
            residual_value=23440,
            residual_source=ResidualSource.default_table,
            annual_interest_rate_pct=8.5,
            term_months=36,
            payments_per_year=12,
        )
        breakdown = schedule.to_breakdown()

        assert breakdown.financed_amount == 50500.00
        assert breakdown.residual_value == 23440.00
        assert breakdown.number_of_payments == 36
        assert breakdown.payments_per_year == 12
        assert breakdown.annual_interest_rate_pct_applied == 8.5
        assert breakdown.periodic_finance_repayment == pytest.approx(1020, abs=5)
        # Interest = repayments + residual - financed
        assert breakdown.total_interest_estimate == pytest.approx(
            breakdown.total_finance_repayments_excluding_residual + 23440 - 50500, abs=0.02
        )
        assert breakdown.total_interest_estimate > 0

    def test_annual_is_periodic_times_payments(self):
        schedule = amortize_lease(50000, 500, 23440, ResidualSource.default_table, 8.5, 36, 26)

        assert schedule.annual_repayment == schedule.periodic_repayment * 26
        assert schedule.periods == 78

    def test_zero_rate_no_interest(self):
        schedule = amortize_lease(50000, 500, 23440, ResidualSource.default_table, 0, 36, 12)

        assert schedule.to_breakdown().total_interest_estimate == pytest.approx(0, abs=0.01)

    def test_override_source_carried(self):
        schedule = amortize_lease(50000, 0, 30000, ResidualSource.user_override, 7, 36, 12)

        assert schedule.to_breakdown().residual_source == ResidualSource.user_override

    def test_sub_cent_fee_rounds_half_up(self):
        """Test $50,000 + $500.137 rounds to $50,500.14."""
        schedule = amortize_lease(50000, 500.137, 23440, ResidualSource.default_table, 8.5, 36, 12)

        assert schedule.to_breakdown().financed_amount == 50500.14
