"""
Unit tests for the capital ledger and fee model.
"""

from datetime import date
from decimal import Decimal

import pytest

from memesim.backtest import CapitalLedger, FixedFeeCalculator
from memesim.core.exceptions import InvariantViolation, LedgerError


# =============================================================================
# CapitalLedger Tests
# =============================================================================


class TestCapitalLedger:
    """Tests for CapitalLedger."""

    def test_debit_and_credit(self):
        """Test cash moves with debits and credits."""
        ledger = CapitalLedger(Decimal("1000"))

        ledger.debit(Decimal("150.75"))
        assert ledger.cash == Decimal("849.25")

        ledger.credit(Decimal("200"))
        assert ledger.cash == Decimal("1049.25")
        assert ledger.initial_capital == Decimal("1000")

    def test_overdraft_is_rejected(self):
        """Test a debit above the balance raises and leaves cash untouched."""
        ledger = CapitalLedger(Decimal("100"))

        with pytest.raises(LedgerError) as exc_info:
            ledger.debit(Decimal("100.01"))

        assert isinstance(exc_info.value, InvariantViolation)
        assert exc_info.value.code == "insufficient_cash"
        assert ledger.cash == Decimal("100")

    def test_debit_entire_balance(self):
        """Test cash can reach exactly zero."""
        ledger = CapitalLedger(Decimal("100"))
        ledger.debit(Decimal("100"))
        assert ledger.cash == Decimal("0")

    @pytest.mark.parametrize("method", ["debit", "credit"])
    def test_negative_amounts(self, method):
        """Test negative movements are rejected."""
        ledger = CapitalLedger(Decimal("100"))
        with pytest.raises(ValueError):
            getattr(ledger, method)(Decimal("-1"))

    def test_requires_positive_capital(self):
        """Test zero starting capital is rejected."""
        with pytest.raises(ValueError):
            CapitalLedger(Decimal("0"))

    def test_snapshots_in_order(self):
        """Test daily snapshots must move forward in time."""
        ledger = CapitalLedger(Decimal("1000"))
        assert ledger.last_value == Decimal("1000")

        ledger.snapshot(date(2024, 1, 1), Decimal("1010"))
        ledger.snapshot(date(2024, 1, 2), Decimal("990"))

        assert ledger.last_value == Decimal("990")
        assert [p.date for p in ledger.snapshots] == [date(2024, 1, 1), date(2024, 1, 2)]
        assert ledger.snapshot_for(date(2024, 1, 1)).value == Decimal("1010")
        assert ledger.snapshot_for(date(2024, 1, 3)) is None

        with pytest.raises(ValueError):
            ledger.snapshot(date(2024, 1, 2), Decimal("1000"))


# =============================================================================
# FixedFeeCalculator Tests
# =============================================================================


class TestFixedFeeCalculator:
    """Tests for FixedFeeCalculator."""

    def test_fee_on_notional(self):
        """Test fee is rate x price x size."""
        calc = FixedFeeCalculator(Decimal("0.005"))

        assert calc.calculate_fee(Decimal("2"), Decimal("100")) == Decimal("1")
        assert calc.base_rate == Decimal("0.005")

    def test_max_notional_fits_fee(self):
        """Test notional plus fee at max_notional equals the cash."""
        calc = FixedFeeCalculator(Decimal("0.25"))

        notional = calc.max_notional(Decimal("1000"))

        assert notional == Decimal("800")
        assert notional + calc.calculate_fee(notional, Decimal("1")) == Decimal("1000")

    def test_zero_fee(self):
        """Test a zero rate charges nothing."""
        calc = FixedFeeCalculator(Decimal("0"))
        assert calc.calculate_fee(Decimal("5"), Decimal("10")) == Decimal("0")
        assert calc.max_notional(Decimal("100")) == Decimal("100")

    def test_negative_rate(self):
        """Test negative rates are rejected."""
        with pytest.raises(ValueError):
            FixedFeeCalculator(Decimal("-0.01"))
