"""Tests for exact decimal conversion and the trapped spend context."""

from decimal import Decimal

import pytest

from decimals import (
    MAX_EXPONENT,
    MIN_EXPONENT,
    PRECISION,
    SPEND_CONTEXT,
    DecimalContext,
    from_float,
    from_string,
)
from errors import BillerError, ConversionError, SpendArithmeticError


class TestFromFloat:
    def test_shortest_text_not_binary_expansion(self):
        d = from_float(123.321)
        assert str(d) == "123.321"
        assert d != Decimal(123.321)

    def test_price_fraction(self):
        assert str(from_float(10.3720258)) == "10.3720258"

    def test_integral_float_has_no_trailing_zero(self):
        assert str(from_float(24.0)) == "24"
        assert str(from_float(100.0)) == "100"
        assert str(from_float(-0.0)) == "-0"

    def test_large_float_keeps_exponent(self):
        assert from_float(1e16) == Decimal("1E16")

    def test_int_accepted(self):
        assert from_float(100) == Decimal(100)

    def test_negative(self):
        assert from_float(-1.5) == Decimal("-1.5")

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(ConversionError):
            from_float(value)

    def test_numeric_string_rejected(self):
        with pytest.raises(ConversionError):
            from_float("1.5")
        with pytest.raises(ConversionError):
            from_float(b"1.5")

    def test_not_a_number_rejected(self):
        with pytest.raises(ConversionError):
            from_float("abc")
        with pytest.raises(ConversionError):
            from_float(None)

    def test_below_exponent_range_rejected(self):
        with pytest.raises(ConversionError):
            from_float(1e-300)


class TestFromString:
    def test_exact(self):
        assert str(from_string("0.000000000000000001")) == "1E-18"
        assert from_string("7200") == Decimal(7200)

    @pytest.mark.parametrize("text", ["", "abc", "NaN", "Infinity", " 1", "1_000", "1.2.3"])
    def test_garbage_rejected(self, text):
        with pytest.raises(ConversionError):
            from_string(text)

    def test_too_many_digits_rejected(self):
        with pytest.raises(ConversionError):
            from_string("1" * (PRECISION + 1))

    def test_exponent_too_large_rejected(self):
        with pytest.raises(ConversionError):
            from_string(f"1e{MAX_EXPONENT + 1}")

    def test_conversion_error_is_biller_error(self):
        with pytest.raises(BillerError):
            from_string("x")


class TestSpendContext:
    def test_defaults(self):
        assert SPEND_CONTEXT.precision == PRECISION == 65
        assert SPEND_CONTEXT.max_exponent == MAX_EXPONENT == 65
        assert SPEND_CONTEXT.min_exponent == MIN_EXPONENT == -18

    def test_context_is_fresh_each_time(self):
        assert SPEND_CONTEXT.context() is not SPEND_CONTEXT.context()

    def test_immutable(self):
        with pytest.raises(AttributeError):
            SPEND_CONTEXT.precision = 10

    def test_exact_product(self):
        hours = from_float(24.0)
        price = from_float(100.0)
        assert str(SPEND_CONTEXT.multiply(hours, price)) == "2400"

    def test_price_times_rate_is_exact(self):
        product = SPEND_CONTEXT.multiply(from_float(10.246), from_float(1.0123))
        assert str(product) == "10.3720258"

    def test_summation_is_exact(self):
        total = Decimal("65E-18")
        price = from_float(10.3720258)
        for _ in range(3):
            total = SPEND_CONTEXT.add(total, price)
        assert str(total) == "31.116077400000000065"

    def test_overflow_raises(self):
        big = Decimal("9E65")
        with pytest.raises(SpendArithmeticError):
            SPEND_CONTEXT.multiply(big, big)

    def test_rounding_raises(self):
        ctx = DecimalContext(precision=5)
        with pytest.raises(SpendArithmeticError):
            ctx.multiply(Decimal("1.2345"), Decimal("1.2345"))

    def test_arithmetic_error_is_biller_error(self):
        ctx = DecimalContext(precision=2)
        with pytest.raises(BillerError):
            ctx.add(Decimal("99"), Decimal("0.1"))
