"""
yield_tracker.py - Yield observation for share-denominated collateral

Yield is never booked by a background process. It is realised lazily: each
call that touches an account compares the current value of its shares with
the recorded cost basis, and whatever part of that excess has not been seen
before is the newly observed yield.

Key Formulas:
    share_value = mul_index(collateral_shares, index)       (rounded up)
    excess      = max(0, share_value - collateral)
    observed    = yield_accrued + yield_consumed
    new_yield   = max(0, excess - observed)

Because the baseline (observed) includes yield already spent on debt, calling
track_yield() twice at the same index observes zero the second time.
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from .core import AccountLedger
from .fixed_point import mul_index, checked_add


@dataclass(frozen=True, slots=True)
class YieldObservation:
    """
    Result of observing an account at one index.

    Attributes:
        share_value: Value of the account's shares at the index
        excess: Share value above cost basis (zero if below)
        new_yield: Part of the excess not observed before
        account: Account with new_yield credited to yield_accrued
    """
    share_value: int
    excess: int
    new_yield: int
    account: AccountLedger


def calculate_share_value(account: AccountLedger, index: int) -> int:
    """Value of the account's collateral shares at the index."""
    return mul_index(account.collateral_shares, index)


def calculate_excess(account: AccountLedger, index: int) -> int:
    """
    Share value above cost basis.

    Floor rounding at mint time can leave share value a few units below cost
    basis; that shortfall is reported as zero excess, never as negative yield.
    """
    return max(0, calculate_share_value(account, index) - account.collateral)


def track_yield(account: AccountLedger, index: int) -> YieldObservation:
    """
    Observe the account at the index and credit any new yield.

    Args:
        account: Current account row
        index: Validated index at RAY scale

    Returns:
        YieldObservation with the updated row (the input row is untouched)
    """
    share_value = mul_index(account.collateral_shares, index)
    excess = max(0, share_value - account.collateral)
    new_yield = max(0, excess - account.yield_observed)
    if new_yield:
        account = replace(account, yield_accrued=checked_add(account.yield_accrued, new_yield))
    return YieldObservation(
        share_value=share_value,
        excess=excess,
        new_yield=new_yield,
        account=account,
    )
