"""
debt.py - Debt engine: yield-driven paydown, repayment, withdrawal gating

Each account is in one of two states:

    IN_DEBT (debt > 0) --yield >= debt--> CLEAR (debt == 0)
    IN_DEBT            --yield <  debt--> IN_DEBT (debt reduced)

ARCHITECTURE (Pure Function Pattern):
=====================================

1. PURE CALCULATION FUNCTIONS (apply_*, calculate_*):
   - Take an AccountLedger snapshot and explicit amounts
   - Return result dataclasses holding the NEW snapshot
   - Never touch the store; the ledger commits the results

2. CONVENIENCE FUNCTION (settle_account):
   - Yield tracking followed by yield application, the prelude every
     debt-sensitive ledger operation runs first

Key Formulas:
    available = yield_accrued (after tracking)
    available >= debt:  debt' = 0,                yield_accrued' = available - debt
    available <  debt:  debt' = debt - available, yield_accrued' = 0
    consumed moves from yield_accrued to yield_consumed in both cases
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from .core import AccountLedger, InvalidInput, RepayAdvanceToWithdraw
from .fixed_point import checked_add, checked_sub
from .yield_tracker import YieldObservation, track_yield


@dataclass(frozen=True, slots=True)
class YieldApplication:
    """
    Result of applying accrued yield to debt.

    Attributes:
        debt_before: Debt prior to application
        consumed: Yield spent paying down debt
        account: Account after application
    """
    debt_before: int
    consumed: int
    account: AccountLedger


@dataclass(frozen=True, slots=True)
class Settlement:
    """Yield observation followed by yield application for one account."""
    observation: YieldObservation
    application: YieldApplication

    @property
    def account(self) -> AccountLedger:
        return self.application.account

    @property
    def new_yield(self) -> int:
        return self.observation.new_yield

    @property
    def consumed(self) -> int:
        return self.application.consumed


@dataclass(frozen=True, slots=True)
class RepaymentResult:
    """
    Result of a manual repayment.

    Attributes:
        requested: Amount the caller offered (RAY scale)
        applied: Whether the amount was taken off the debt
        account: Account after repayment (unchanged if not applied)
    """
    requested: int
    applied: bool
    account: AccountLedger


def apply_yield_to_debt(account: AccountLedger) -> YieldApplication:
    """
    Spend the account's accrued yield on its debt.

    Surplus yield beyond the debt stays credited to the account.
    """
    debt = account.debt
    consumed = min(account.yield_accrued, debt)
    if consumed == 0:
        return YieldApplication(debt_before=debt, consumed=0, account=account)
    updated = replace(
        account,
        debt=checked_sub(debt, consumed),
        yield_accrued=checked_sub(account.yield_accrued, consumed),
        yield_consumed=checked_add(account.yield_consumed, consumed),
    )
    return YieldApplication(debt_before=debt, consumed=consumed, account=updated)


def settle_account(account: AccountLedger, index: int) -> Settlement:
    """
    Bring an account's debt up to date with the index.

    Args:
        account: Current account row
        index: Validated index at RAY scale

    Returns:
        Settlement holding both steps and the final row
    """
    observation = track_yield(account, index)
    application = apply_yield_to_debt(observation.account)
    return Settlement(observation=observation, application=application)


def apply_repayment(account: AccountLedger, amount: int) -> RepaymentResult:
    """
    Take a manual repayment off the debt.

    Only 0 < amount <= debt is applied. Anything larger than the current debt
    is ignored outright rather than applied partially; a zero amount is a
    no-op.

    Args:
        account: Settled account row
        amount: Repayment at RAY scale

    Raises:
        InvalidInput: If amount is negative
    """
    if amount < 0:
        raise InvalidInput(f"repayment must be non-negative, got {amount}")
    if amount == 0 or amount > account.debt:
        return RepaymentResult(requested=amount, applied=False, account=account)
    updated = replace(account, debt=checked_sub(account.debt, amount))
    return RepaymentResult(requested=amount, applied=True, account=updated)


def check_withdrawable(account: AccountLedger) -> None:
    """
    Gate withdrawal on a cleared debt.

    Raises:
        RepayAdvanceToWithdraw: If the account still owes anything
    """
    if account.debt > 0:
        raise RepayAdvanceToWithdraw(
            f"outstanding debt {account.debt} must be repaid before withdrawal"
        )
