"""Fixed-point decimal utilities.

Token amounts are plain ints. Prices, percentages and PID state are
decimal.Decimal values carrying at most 18 fractional digits; operations that
divide or multiply truncate back to that precision, so results are identical
across runs and across hosts.

All arithmetic runs inside fixed_point(), a local context wide enough for
128-bit token amounts at 18 fractional digits, instead of relying on the
thread's default context.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import (
    ROUND_CEILING,
    ROUND_DOWN,
    ROUND_FLOOR,
    Context,
    Decimal,
    DivisionByZero,
    InvalidOperation,
    localcontext,
)

from src.ar_common.errors import ArithmeticFailureError

FRACTIONAL_DIGITS = 18
BPS_DENOMINATOR = 10000

ZERO = Decimal(0)
ONE = Decimal(1)
# Lower bound accepted for a set of percentages that should sum to one
CLOSEST_TO_ONE = Decimal("0.9999")

_QUANTUM = Decimal(1).scaleb(-FRACTIONAL_DIGITS)
_CONTEXT = Context(prec=78, rounding=ROUND_DOWN, traps=[DivisionByZero, InvalidOperation])


@contextmanager
def fixed_point() -> Iterator[Context]:
    """Run a block of Decimal arithmetic under the fixed-point context."""
    with localcontext(_CONTEXT) as ctx:
        yield ctx


def to_decimal(value: int | str | Decimal) -> Decimal:
    """Parse *value* into a Decimal truncated to 18 fractional digits."""
    if isinstance(value, float):
        raise TypeError("floats are not accepted, pass a str or int")
    try:
        return truncate(Decimal(value))
    except InvalidOperation:
        raise ArithmeticFailureError(f"invalid decimal {value!r}") from None


def truncate(value: Decimal) -> Decimal:
    """Drop digits past the 18th fractional place (toward zero)."""
    with fixed_point():
        return value.quantize(_QUANTUM, rounding=ROUND_DOWN)


def bps(value: int) -> Decimal:
    """Convert basis points to a fraction: 250 -> 0.025."""
    with fixed_point():
        return Decimal(value) / BPS_DENOMINATOR


def mul(a: Decimal | int, b: Decimal | int) -> Decimal:
    with fixed_point():
        return truncate(Decimal(a) * Decimal(b))


def div(a: Decimal | int, b: Decimal | int) -> Decimal:
    """Truncating division; raises ArithmeticFailureError on a zero divisor."""
    if b == 0:
        raise ArithmeticFailureError(f"division of {a} by zero")
    with fixed_point():
        return truncate(Decimal(a) / Decimal(b))


def floor_int(value: Decimal) -> int:
    with fixed_point():
        return int(value.to_integral_value(rounding=ROUND_FLOOR))


def ceil_int(value: Decimal) -> int:
    with fixed_point():
        return int(value.to_integral_value(rounding=ROUND_CEILING))


def fraction(value: Decimal) -> Decimal:
    """Fractional part of a non-negative decimal."""
    with fixed_point():
        return value - value.to_integral_value(rounding=ROUND_FLOOR)


def checked_sub(a: int, b: int) -> int:
    """Subtract token amounts, refusing to go below zero."""
    if b > a:
        raise ArithmeticFailureError(f"underflow: {a} - {b}")
    return a - b


def is_negative(value: Decimal) -> bool:
    """True for values strictly below zero; -0 is not negative."""
    return value < ZERO
