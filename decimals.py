# Exact decimal conversion and the fixed arithmetic context for spend math.
#
# Hourly prices and lease hours arrive as binary floats. They are converted
# through their shortest round-trip text (repr) so 123.321 becomes exactly
# Decimal("123.321"), never the 123.3209999... binary expansion.
#
# All multiplication and addition run under one explicit DecimalContext
# with every decimal signal trapped: a result that would need rounding, or
# that leaves the exponent bounds, raises instead of drifting.

import decimal
import re
from dataclasses import dataclass
from decimal import Decimal

from errors import ConversionError, SpendArithmeticError

PRECISION = 65
MAX_EXPONENT = 65
MIN_EXPONENT = -18

ZERO = Decimal(0)

TRAPPED_SIGNALS = (
    decimal.Clamped,
    decimal.DivisionByZero,
    decimal.FloatOperation,
    decimal.Inexact,
    decimal.InvalidOperation,
    decimal.Overflow,
    decimal.Rounded,
    decimal.Subnormal,
    decimal.Underflow,
)

# Plain decimal numerals only: no NaN/Infinity, no whitespace, no underscores.
_NUMERAL = re.compile(r"[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?")


@dataclass(frozen=True)
class DecimalContext:
    """Immutable precision/exponent configuration for spend arithmetic.

    A fresh ``decimal.Context`` is built for every operation so no signal
    flags leak between calls and the thread-local context is never touched.
    """

    precision: int = PRECISION
    max_exponent: int = MAX_EXPONENT
    min_exponent: int = MIN_EXPONENT

    def context(self) -> decimal.Context:
        return decimal.Context(
            prec=self.precision,
            rounding=decimal.ROUND_HALF_EVEN,
            Emin=self.min_exponent,
            Emax=self.max_exponent,
            capitals=1,
            clamp=0,
            flags=[],
            traps=list(TRAPPED_SIGNALS),
        )

    def multiply(self, a: Decimal, b: Decimal) -> Decimal:
        try:
            return self.context().multiply(a, b)
        except decimal.DecimalException as e:
            raise SpendArithmeticError(
                f"multiply {a} x {b}: {type(e).__name__}"
            ) from e

    def add(self, a: Decimal, b: Decimal) -> Decimal:
        try:
            return self.context().add(a, b)
        except decimal.DecimalException as e:
            raise SpendArithmeticError(
                f"add {a} + {b}: {type(e).__name__}"
            ) from e


SPEND_CONTEXT = DecimalContext()


def from_string(value: str, ctx: DecimalContext = SPEND_CONTEXT) -> Decimal:
    """Parse a decimal numeral exactly.

    Raises ConversionError if the text is not a finite decimal numeral or
    if parsing under ``ctx`` would round, overflow or underflow.
    """
    if not isinstance(value, str) or not _NUMERAL.fullmatch(value):
        raise ConversionError(f"could not convert {value!r} into decimal: not a decimal numeral")
    try:
        return ctx.context().create_decimal(value)
    except decimal.DecimalException as e:
        raise ConversionError(
            f"could not convert {value!r} into decimal: {type(e).__name__}"
        ) from e


def from_float(value: float, ctx: DecimalContext = SPEND_CONTEXT) -> Decimal:
    """Convert a float via its shortest round-trip text.

    123.321 -> Decimal("123.321"), 24.0 -> Decimal("24"). Integral floats
    drop repr's trailing ".0" so products carry no spurious zeros.
    """
    if isinstance(value, (str, bytes)):
        raise ConversionError(f"could not convert {value!r} into decimal: not a number")
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise ConversionError(f"could not convert {value!r} into decimal: not a number") from e
    text = repr(value)
    if text.endswith(".0"):
        text = text[:-2]
    return from_string(text, ctx)
