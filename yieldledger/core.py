"""
Core types and constants for the yield-accounting ledger.

This module provides the foundational data structures for the ledger:
1. Constants: fixed-point scale, representable range, fee parameters
2. Exceptions: LedgerError and domain-specific error types
3. Immutable data structures: AccountLedger, TenantAggregate, LedgerEvent
4. Policy: LedgerPolicy and the enums that configure it
5. Key helpers: composite keys for the nested tenant/account/token mapping

All quantities are plain Python ints at the RAY scale unless stated otherwise.
Nothing in this module mutates ledger state.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


# ============================================================================
# CONSTANTS
# ============================================================================

# Fixed-point scale: 27 decimal digits. An index of RAY means 1.0.
RAY = 10 ** 27

# Upper bound of the representable range (unsigned 256-bit word).
MAX_UINT256 = 2 ** 256 - 1

# Origination fee parameters, in whole percent.
BASE_FEE_PERCENT = 10
PERCENT = 100


# ============================================================================
# TYPE ALIASES
# ============================================================================

# (tenant, account, token)
AccountKey = Tuple[str, str, str]

# (tenant, token)
AggregateKey = Tuple[str, str]


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InvalidIndex(LedgerError):
    """Raised when the index source returns a value below RAY or of the wrong type."""
    pass


class RepayAdvanceToWithdraw(LedgerError):
    """Raised when collateral is withdrawn while debt is still outstanding."""
    pass


class NoRevenueToClaim(LedgerError):
    """Raised when a tenant claims revenue but holds no revenue shares."""
    pass


class InvalidInput(LedgerError):
    """Raised when an argument is outside the domain of an operation."""
    pass


class DivisionByZero(InvalidInput):
    """Raised when a calculation would divide by zero."""
    pass


class Overflow(LedgerError):
    """Raised when an arithmetic result leaves the representable range."""
    pass


class FeeExceedsAdvance(Overflow):
    """Raised when the origination fee would be larger than the advance itself."""
    pass


# ============================================================================
# ENUMS
# ============================================================================

class DebtStatus(Enum):
    """
    Per-account debt state.

    IN_DEBT: debt > 0, withdrawal is blocked.
    CLEAR: debt == 0, withdrawal is allowed.
    """
    IN_DEBT = "in_debt"
    CLEAR = "clear"


class DebtBasis(Enum):
    """What gets recorded as debt when an advance is issued."""
    GROSS_ADVANCE = "gross_advance"        # the requested amount
    ADVANCE_PLUS_FEE = "advance_plus_fee"  # requested amount plus origination fee


class WithdrawalResidual(Enum):
    """What happens to unconsumed yield when collateral is withdrawn."""
    DISCARD = "discard"                        # dropped from the books
    FORFEIT_TO_REVENUE = "forfeit_to_revenue"  # converted into tenant revenue shares


class RevenueClaim(Enum):
    """What claim_revenue() returns."""
    SHARES = "shares"  # the revenue share count
    VALUE = "value"    # the shares valued at the current index


class EventType(Enum):
    """Classification of ledger events, for the audit trail."""
    ADVANCE_ISSUED = "advance_issued"
    YIELD_APPLIED = "yield_applied"
    REPAYMENT = "repayment"
    COLLATERAL_WITHDRAWN = "collateral_withdrawn"
    REVENUE_CLAIMED = "revenue_claimed"


# ============================================================================
# POLICY
# ============================================================================

@dataclass(frozen=True, slots=True)
class LedgerPolicy:
    """
    Configuration for the accounting rules that admit more than one reading.

    Attributes:
        debt_basis: Whether issued debt is the gross advance or advance + fee.
        withdrawal_residual: Fate of unconsumed yield on withdrawal.
        revenue_claim: Whether claims return shares or their index value.
    """
    debt_basis: DebtBasis = DebtBasis.GROSS_ADVANCE
    withdrawal_residual: WithdrawalResidual = WithdrawalResidual.DISCARD
    revenue_claim: RevenueClaim = RevenueClaim.SHARES


# ============================================================================
# LEDGER ROWS
# ============================================================================

@dataclass(frozen=True, slots=True)
class AccountLedger:
    """
    Immutable snapshot of one (tenant, account, token) row.

    Each mutation creates a NEW instance (value semantics), so a calculation
    can be discarded without touching the stored row.

    Attributes:
        collateral_shares: Index-denominated units minted on deposit.
        collateral: Cost basis, the raw deposit lifted to RAY scale.
        debt: Outstanding advance, net of repayments and applied yield.
        yield_accrued: Observed yield not yet consumed by debt.
        yield_consumed: Observed yield that has already paid down debt.
    """
    collateral_shares: int = 0
    collateral: int = 0
    debt: int = 0
    yield_accrued: int = 0
    yield_consumed: int = 0

    @property
    def status(self) -> DebtStatus:
        return DebtStatus.IN_DEBT if self.debt > 0 else DebtStatus.CLEAR

    @property
    def yield_observed(self) -> int:
        """Total yield seen so far, consumed or not."""
        return self.yield_accrued + self.yield_consumed

    def is_empty(self) -> bool:
        """Return True if every field of the row is zero."""
        return not (self.collateral_shares or self.collateral or self.debt
                    or self.yield_accrued or self.yield_consumed)


@dataclass(frozen=True, slots=True)
class TenantAggregate:
    """
    Immutable snapshot of one (tenant, token) aggregate row.

    The first four fields are sums of the matching AccountLedger fields and are
    moved in lock-step with every account mutation. total_revenue_shares belongs
    to the tenant alone.
    """
    total_collateral_shares: int = 0
    total_collateral: int = 0
    total_debt: int = 0
    total_yield: int = 0
    total_revenue_shares: int = 0


EMPTY_ACCOUNT = AccountLedger()
EMPTY_AGGREGATE = TenantAggregate()


# ============================================================================
# EVENTS
# ============================================================================

@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """
    Immutable record of a committed ledger operation.

    Attributes:
        event_type: What kind of operation was committed.
        tenant: Tenant that owns the rows touched.
        token: Token of the rows touched.
        account: Account touched (None for tenant-level events).
        data: Event-specific amounts, all RAY-scaled ints (read-only).
        sequence_number: Monotonic within the store (assigned on commit).
    """
    event_type: EventType
    tenant: str
    token: str
    account: Optional[str] = None
    data: Mapping[str, Any] = field(default_factory=dict)
    sequence_number: int = -1

    def __post_init__(self):
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    def __repr__(self) -> str:
        who = f"{self.tenant}/{self.account}" if self.account else self.tenant
        amounts = ", ".join(f"{k}={v}" for k, v in self.data.items())
        return f"LedgerEvent(#{self.sequence_number} {self.event_type.value} {who} {self.token}: {amounts})"


def with_sequence(event: LedgerEvent, sequence_number: int) -> LedgerEvent:
    """Return a copy of the event stamped with its commit sequence number."""
    return replace(event, sequence_number=sequence_number)


# ============================================================================
# KEY HELPERS
# ============================================================================

def validate_identifier(value: Any, what: str) -> str:
    """
    Check that a tenant, account or token id is a non-empty string.

    Raises:
        InvalidInput: If the id is not a string or is blank.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{what} must be a non-empty string, got {value!r}")
    return value


def validate_amount(value: Any, what: str) -> int:
    """
    Check that a raw token amount is a non-negative int.

    Raises:
        InvalidInput: If the amount is not an int (bool excluded) or is negative.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{what} must be int, got {type(value).__name__}")
    if value < 0:
        raise InvalidInput(f"{what} must be non-negative, got {value}")
    return value


def account_key(tenant: str, account: str, token: str) -> AccountKey:
    return (tenant, account, token)


def aggregate_key(tenant: str, token: str) -> AggregateKey:
    return (tenant, token)
