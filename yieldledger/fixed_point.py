"""
fixed_point.py - Integer fixed-point arithmetic at RAY scale

All internal quantities are ints scaled by RAY (10**27). The representable
range is [0, MAX_UINT256]; any primitive whose result leaves that range raises
Overflow instead of wrapping or going negative.

Rounding rules:
    mul_index rounds UP   - share value is never under-reported
    div_index rounds DOWN - minted shares are never over-credited

Functions:
- checked_add, checked_sub, checked_mul, checked_div: range-checked primitives
- to_fixed: lift a raw token amount to RAY scale
- mul_index: shares x index -> amount
- div_index: amount / index -> shares
- from_fixed: RAY-scaled int -> human-readable Decimal
"""

from __future__ import annotations
from decimal import Decimal, localcontext

from .core import RAY, MAX_UINT256, Overflow, DivisionByZero, InvalidInput


def _require_int(value, name: str) -> int:
    # bool is an int subclass but never a valid amount
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be int, got {type(value).__name__}")
    return value


def _check_range(value: int, op: str) -> int:
    if value < 0 or value > MAX_UINT256:
        raise Overflow(f"{op} result out of range: {value}")
    return value


def checked_add(a: int, b: int) -> int:
    return _check_range(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    return _check_range(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    return _check_range(a * b, "mul")


def checked_div(a: int, b: int, round_up: bool = False) -> int:
    """
    Integer division with explicit rounding.

    Args:
        a: Dividend (non-negative)
        b: Divisor (positive)
        round_up: Ceiling division if True, floor division otherwise

    Raises:
        DivisionByZero: If b is zero
    """
    if b == 0:
        raise DivisionByZero("division by zero")
    _check_range(a, "div")
    _check_range(b, "div")
    if round_up:
        return (a + b - 1) // b
    return a // b


def to_fixed(raw_amount: int) -> int:
    """
    Lift a raw token amount into the RAY scale.

    Raises:
        InvalidInput: If raw_amount is not an int
        Overflow: If the scaled amount is negative or out of range
    """
    return checked_mul(_require_int(raw_amount, "raw_amount"), RAY)


def mul_index(shares: int, index: int) -> int:
    """
    Value of a share balance at the given index, rounded up.

    Both operands are at RAY scale; the product is divided by RAY.
    """
    return checked_div(checked_mul(shares, index), RAY, round_up=True)


def div_index(amount: int, index: int) -> int:
    """
    Shares bought by an amount at the given index, rounded down.

    Both operands are at RAY scale; the quotient is multiplied by RAY.
    """
    return checked_div(checked_mul(amount, RAY), index)


def from_fixed(value: int) -> Decimal:
    """
    Convert a RAY-scaled int to a Decimal in human-readable units.

    Example:
        from_fixed(14 * RAY) == Decimal("14")
    """
    with localcontext() as ctx:
        # 78 digits covers the whole uint256 range exactly
        ctx.prec = 80
        return Decimal(_require_int(value, "value")) / Decimal(RAY)
