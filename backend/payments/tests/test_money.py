"""
Unit tests for payments.money module.

These tests are CRITICAL for preventing penny drift bugs in order totals
and payment settlement.
"""

import pytest
from decimal import Decimal

from payments.money import (
    currency_exponent,
    quantize_decimal,
    quantize,
    to_decimal,
    percentage_of,
)


class TestCurrencyExponent:
    """Test currency exponent lookup."""

    def test_usd_exponent(self):
        assert currency_exponent("USD") == 2

    def test_jpy_exponent(self):
        assert currency_exponent("JPY") == 0

    def test_kwd_exponent(self):
        assert currency_exponent("KWD") == 3

    def test_case_insensitive(self):
        assert currency_exponent("usd") == 2

    def test_unknown_currency_defaults_to_2(self):
        assert currency_exponent("XXX") == 2

    def test_quantize_decimal(self):
        assert quantize_decimal("USD") == Decimal("0.01")
        assert quantize_decimal("JPY") == Decimal("1")
        assert quantize_decimal("KWD") == Decimal("0.001")


class TestToDecimal:
    """Incoming amounts are coerced without ever passing through float."""

    def test_string_input(self):
        assert to_decimal("12.50") == Decimal("12.50")

    def test_int_input(self):
        assert to_decimal(7) == Decimal("7")

    def test_decimal_passthrough(self):
        value = Decimal("3.14")
        assert to_decimal(value) is value

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_decimal(0.1)

    def test_garbage_string_rejected(self):
        with pytest.raises(ValueError):
            to_decimal("ten dollars")


class TestQuantize:
    """Test Decimal quantization with banker's rounding."""

    def test_quantize_usd_normal(self):
        assert quantize("USD", "10.127") == Decimal("10.13")

    def test_quantize_usd_bankers_rounding_down(self):
        # 10.125 -> 10.12 (round to even)
        assert quantize("USD", "10.125") == Decimal("10.12")

    def test_quantize_usd_bankers_rounding_up(self):
        # 10.135 -> 10.14 (round to even)
        assert quantize("USD", "10.135") == Decimal("10.14")

    def test_quantize_jpy(self):
        assert quantize("JPY", "1234.5") == Decimal("1234")
        assert quantize("JPY", "1235.5") == Decimal("1236")

    def test_quantize_kwd(self):
        assert quantize("KWD", "1.2345") == Decimal("1.234")


class TestPercentageOf:
    """Tax and service charge amounts."""

    def test_tax_on_scenario_subtotal(self):
        assert percentage_of("USD", "27.00", "10") == Decimal("2.70")

    def test_service_charge_on_scenario_subtotal(self):
        assert percentage_of("USD", "27.00", "5") == Decimal("1.35")

    def test_fractional_rate_rounds_half_even(self):
        # 10.50 * 2.5% = 0.2625 -> 0.26
        assert percentage_of("USD", "10.50", "2.5") == Decimal("0.26")

    def test_zero_rate(self):
        assert percentage_of("USD", "99.99", "0") == Decimal("0.00")
