"""
fees.py - Origination fee for advances

The fee is a flat base percentage plus a surcharge that grows linearly with
how much of the posted collateral the advance draws down:

    fee = advance * (BASE_FEE_PERCENT + PERCENT * advance / collateral) / PERCENT

evaluated with integer division on raw (unscaled) token amounts. Scaling to
RAY happens afterwards, in the ledger.

Example:
    calculate_origination_fee(100, 20)  # 20 * (10 + 20) / 100 = 6
"""

from __future__ import annotations

from .core import (
    BASE_FEE_PERCENT, PERCENT,
    DivisionByZero, FeeExceedsAdvance,
    validate_amount,
)


def calculate_origination_fee(collateral: int, advance: int) -> int:
    """
    Origination fee for an advance against posted collateral.

    Args:
        collateral: Raw collateral amount posted (must be positive)
        advance: Raw advance amount requested (zero means a plain deposit)

    Returns:
        Fee in raw units, never larger than the advance

    Raises:
        InvalidInput: If an amount is negative or not an int
        DivisionByZero: If collateral is zero
        FeeExceedsAdvance: If the draw-down ratio makes fee > advance
    """
    collateral = validate_amount(collateral, "collateral")
    advance = validate_amount(advance, "advance")
    if collateral == 0:
        raise DivisionByZero("collateral must be positive to price an advance")

    rate = BASE_FEE_PERCENT + PERCENT * advance // collateral
    fee = advance * rate // PERCENT
    if fee > advance:
        raise FeeExceedsAdvance(
            f"fee {fee} exceeds advance {advance} (collateral {collateral})"
        )
    return fee


def calculate_net_advance(collateral: int, advance: int) -> int:
    """Raw amount the custodian should disburse: advance minus fee."""
    return advance - calculate_origination_fee(collateral, advance)
