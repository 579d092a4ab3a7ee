"""
revenue.py - Tenant revenue shares

Origination fees are not added to any account. They are converted into
revenue shares at the index of the advance and held by the tenant until
claimed. Under the forfeit withdrawal policy, unconsumed account yield is
converted the same way when collateral leaves.
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from .core import (
    TenantAggregate, RevenueClaim, NoRevenueToClaim,
)
from .fixed_point import div_index, mul_index


@dataclass(frozen=True, slots=True)
class RevenueClaimResult:
    """
    Result of a revenue claim.

    Attributes:
        shares: Revenue shares claimed
        value: Those shares valued at the claim index
        amount: What the claim returns under the chosen RevenueClaim mode
        aggregate: Aggregate with revenue shares reset to zero
    """
    shares: int
    value: int
    amount: int
    aggregate: TenantAggregate


def calculate_revenue_shares(amount: int, index: int) -> int:
    """Revenue shares minted for a RAY-scaled amount (rounded down)."""
    return div_index(amount, index)


def calculate_revenue_value(aggregate: TenantAggregate, index: int) -> int:
    return mul_index(aggregate.total_revenue_shares, index)


def calculate_claim(
    aggregate: TenantAggregate,
    index: int,
    mode: RevenueClaim = RevenueClaim.SHARES,
) -> RevenueClaimResult:
    """
    Claim all revenue shares of a tenant aggregate.

    Raises:
        NoRevenueToClaim: If the aggregate holds no revenue shares
    """
    shares = aggregate.total_revenue_shares
    if shares == 0:
        raise NoRevenueToClaim("no revenue shares to claim")
    value = mul_index(shares, index)
    return RevenueClaimResult(
        shares=shares,
        value=value,
        amount=shares if mode is RevenueClaim.SHARES else value,
        aggregate=replace(aggregate, total_revenue_shares=0),
    )
