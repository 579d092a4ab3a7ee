"""
ledger.py - Stateful store for share-based yield accounting

YieldLedger is the central state manager of the package and the only module
that mutates state. Tenants never touch it directly: they work through a
TenantLedger handle whose tenant identity is fixed when the handle is made,
so no operation takes a tenant parameter and no tenant can reach another
tenant's rows.

Key responsibilities:
    - Holds AccountLedger rows per (tenant, account, token) and
      TenantAggregate rows per (tenant, token), created on first touch
    - Reads the index once per operation and validates it
    - Runs the pure calculations (fees, yield, debt, revenue) on snapshots
      and commits all resulting rows in one step, so a failing operation
      changes nothing
    - Moves aggregates in lock-step with every account change
    - Always logs: every committed operation is recorded in the event log
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Optional, Any

from .core import (
    # Types
    AccountLedger, TenantAggregate, LedgerEvent, LedgerPolicy,
    AccountKey, AggregateKey,
    EventType, DebtBasis, WithdrawalResidual,
    EMPTY_ACCOUNT, EMPTY_AGGREGATE,
    # Helpers
    account_key, aggregate_key, validate_identifier, validate_amount,
    with_sequence,
)
from .debt import Settlement, settle_account, apply_repayment, check_withdrawable
from .fees import calculate_origination_fee
from .fixed_point import to_fixed, div_index, mul_index, checked_add, checked_sub
from .index_source import IndexSource, read_index
from .revenue import calculate_revenue_shares, calculate_revenue_value, calculate_claim


def _shift_aggregate(
    aggregate: TenantAggregate,
    before: AccountLedger,
    after: AccountLedger,
) -> TenantAggregate:
    """Move aggregate totals by exactly the change between two account rows."""
    def shift(total: int, old: int, new: int) -> int:
        return checked_add(checked_sub(total, old), new)

    return replace(
        aggregate,
        total_collateral_shares=shift(
            aggregate.total_collateral_shares, before.collateral_shares, after.collateral_shares),
        total_collateral=shift(aggregate.total_collateral, before.collateral, after.collateral),
        total_debt=shift(aggregate.total_debt, before.debt, after.debt),
        total_yield=shift(aggregate.total_yield, before.yield_accrued, after.yield_accrued),
    )


class YieldLedger:
    """
    Share-based yield-accounting ledger shared by any number of tenants.

    Example:
        source = StaticIndexSource({"aUSDC": RAY})
        store = YieldLedger("main", source)
        protocol = store.tenant("protocol_a")

        net = protocol.get_advance("alice", "aUSDC", collateral=100, advance=20)
        # net == 14 * RAY; the custodian disburses 14 units to alice

    Thread Safety:
        Not thread-safe. The host must serialise mutations per
        (tenant, account, token).
    """

    def __init__(
        self,
        name: str,
        index_source: IndexSource,
        policy: Optional[LedgerPolicy] = None,
        verbose: bool = True,
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            index_source: Supplier of per-token interest indices
            policy: Accounting rules for debt basis, withdrawal residual and
                    revenue claims (default: LedgerPolicy())
            verbose: Enable operation output (default: True)
        """
        self.name = name
        self.index_source = index_source
        self.policy = policy or LedgerPolicy()
        self.verbose = verbose
        self.accounts: Dict[AccountKey, AccountLedger] = {}
        self.aggregates: Dict[AggregateKey, TenantAggregate] = {}
        self.event_log: List[LedgerEvent] = []
        self._next_sequence: int = 0

    def __repr__(self) -> str:
        return (f"YieldLedger({self.name!r}, {len(self.accounts)} accounts, "
                f"{len(self.aggregates)} aggregates, {len(self.event_log)} events)")

    # ========================================================================
    # TENANT BOUNDARY
    # ========================================================================

    def tenant(self, tenant_id: str) -> TenantLedger:
        """
        Bind a tenant identity and return its handle.

        The host calls this once per authenticated caller; every operation on
        the handle is scoped to that tenant.
        """
        return TenantLedger(self, validate_identifier(tenant_id, "tenant"))

    def list_tenants(self) -> List[str]:
        return sorted({tenant for tenant, _ in self.aggregates})

    # ========================================================================
    # READS (non-mutating)
    # ========================================================================

    def read_index(self, token: str) -> int:
        """Read and validate the token's index (one read per operation)."""
        return read_index(self.index_source, token)

    def get_account_row(self, key: AccountKey) -> AccountLedger:
        """Stored row, or an all-zero row if the key was never touched."""
        return self.accounts.get(key, EMPTY_ACCOUNT)

    def get_aggregate_row(self, key: AggregateKey) -> TenantAggregate:
        return self.aggregates.get(key, EMPTY_AGGREGATE)

    def verify_aggregates(self) -> Dict[str, Any]:
        """
        Re-sum account rows and compare them with the stored aggregates.

        This is an audit check only; mutations never recompute aggregates.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every aggregate matches its accounts
            - 'totals': Dict[AggregateKey, TenantAggregate] - re-summed totals
            - 'discrepancies': List[Dict] - one entry per mismatched field

        Example:
            result = store.verify_aggregates()
            assert result['valid'], result['discrepancies']
        """
        sums: Dict[AggregateKey, Dict[str, int]] = {}
        for (tenant, _, token), row in sorted(self.accounts.items()):
            totals = sums.setdefault((tenant, token), {
                'total_collateral_shares': 0,
                'total_collateral': 0,
                'total_debt': 0,
                'total_yield': 0,
            })
            totals['total_collateral_shares'] += row.collateral_shares
            totals['total_collateral'] += row.collateral
            totals['total_debt'] += row.debt
            totals['total_yield'] += row.yield_accrued

        discrepancies = []
        keys = set(sums) | set(self.aggregates)
        for key in sorted(keys):
            expected = sums.get(key, {})
            stored = self.get_aggregate_row(key)
            for field_name in ('total_collateral_shares', 'total_collateral',
                               'total_debt', 'total_yield'):
                actual = getattr(stored, field_name)
                summed = expected.get(field_name, 0)
                if actual != summed:
                    discrepancies.append({
                        'key': key,
                        'field': field_name,
                        'expected': summed,
                        'actual': actual,
                        'difference': actual - summed,
                    })

        return {
            'valid': len(discrepancies) == 0,
            'totals': {
                key: replace(self.get_aggregate_row(key), **values)
                for key, values in sums.items()
            },
            'discrepancies': discrepancies,
        }

    # ========================================================================
    # COMMIT (the only mutation path)
    # ========================================================================

    def _commit(
        self,
        accounts: Dict[AccountKey, AccountLedger],
        aggregates: Dict[AggregateKey, TenantAggregate],
        events: List[LedgerEvent],
    ) -> None:
        """
        Apply precomputed rows and events.

        Everything that can fail has already run; this only assigns. Output
        comes after the last assignment, so a broken stdout cannot leave a
        half-applied operation behind.
        """
        stamped = [
            with_sequence(event, self._next_sequence + offset)
            for offset, event in enumerate(events)
        ]
        self.accounts.update(accounts)
        self.aggregates.update(aggregates)
        self.event_log.extend(stamped)
        self._next_sequence += len(stamped)
        for event in stamped:
            self._echo(f"✓ {event!r}")

    def _note(self, message: str) -> None:
        self._echo(f"⚠️  {message}")

    def _echo(self, line: str) -> None:
        # The operation has committed by the time this runs; a closed or
        # unencodable stdout only loses the line.
        if not self.verbose:
            return
        try:
            print(line)
        except (OSError, UnicodeEncodeError):
            pass

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> YieldLedger:
        """
        Create an independent copy of this ledger.

        Rows are immutable, so copying the mappings is enough. The index
        source is shared, not copied.
        """
        cloned = YieldLedger.__new__(YieldLedger)
        cloned.name = self.name
        cloned.index_source = self.index_source
        cloned.policy = self.policy
        cloned.verbose = self.verbose
        cloned.accounts = dict(self.accounts)
        cloned.aggregates = dict(self.aggregates)
        cloned.event_log = list(self.event_log)
        cloned._next_sequence = self._next_sequence
        return cloned


class TenantLedger:
    """
    One tenant's view of a YieldLedger.

    get_advance takes raw token amounts; repayments and every monetary return
    are RAY-scaled ints (divide by RAY, or use from_fixed, for human-readable
    units).
    """

    def __init__(self, store: YieldLedger, tenant: str):
        self._store = store
        self._tenant = tenant

    @property
    def tenant(self) -> str:
        return self._tenant

    @property
    def events(self) -> List[LedgerEvent]:
        """This tenant's entries from the event log."""
        return [e for e in self._store.event_log if e.tenant == self._tenant]

    def __repr__(self) -> str:
        return f"TenantLedger({self._tenant!r} on {self._store.name!r})"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _keys(self, account: str, token: str):
        validate_identifier(account, "account")
        validate_identifier(token, "token")
        return account_key(self._tenant, account, token), aggregate_key(self._tenant, token)

    def _settle(self, account: str, token: str, index: int):
        """
        Run the yield/debt prelude for one account.

        Returns the keys, the stored row, the settlement, the aggregate moved
        in lock-step with it, and the YIELD_APPLIED event (if anything moved).
        """
        acct_key, agg_key = self._keys(account, token)
        before = self._store.get_account_row(acct_key)
        settlement = settle_account(before, index)
        aggregate = _shift_aggregate(
            self._store.get_aggregate_row(agg_key), before, settlement.account)
        events = []
        if settlement.new_yield or settlement.consumed:
            events.append(LedgerEvent(
                event_type=EventType.YIELD_APPLIED,
                tenant=self._tenant,
                token=token,
                account=account,
                data={
                    'index': index,
                    'new_yield': settlement.new_yield,
                    'consumed': settlement.consumed,
                    'debt': settlement.account.debt,
                },
            ))
        return acct_key, agg_key, before, settlement, aggregate, events

    def _commit_settlement(self, account: str, token: str) -> Settlement:
        self._keys(account, token)
        index = self._store.read_index(token)
        acct_key, agg_key, before, settlement, aggregate, events = self._settle(
            account, token, index)
        if settlement.account != before:
            self._store._commit({acct_key: settlement.account}, {agg_key: aggregate}, events)
        return settlement

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def get_advance(self, account: str, token: str, collateral: int, advance: int) -> int:
        """
        Post collateral and issue an advance against it.

        The collateral buys shares at the current index. The fee is taken out
        of the advance and converted into tenant revenue shares; the account's
        debt records the requested advance (or advance + fee, per policy).

        Args:
            account: End-user account id
            token: Yield-bearing token id
            collateral: Raw collateral amount (caller-attested)
            advance: Raw advance amount requested (0 for a plain deposit)

        Returns:
            Net advance (advance - fee) at RAY scale, for the custodian to disburse

        Raises:
            InvalidInput / DivisionByZero: Bad amounts or zero collateral
            FeeExceedsAdvance: Draw-down ratio too high
            InvalidIndex: Index source fault
            Overflow: Result out of range
        """
        self._keys(account, token)
        fee = calculate_origination_fee(collateral, advance)
        index = self._store.read_index(token)
        acct_key, agg_key, _, settlement, aggregate, events = self._settle(
            account, token, index)
        current = settlement.account

        collateral_fixed = to_fixed(collateral)
        advance_fixed = to_fixed(advance)
        fee_fixed = to_fixed(fee)
        shares = div_index(collateral_fixed, index)
        revenue_shares = calculate_revenue_shares(fee_fixed, index)
        debt_added = advance_fixed
        if self._store.policy.debt_basis is DebtBasis.ADVANCE_PLUS_FEE:
            debt_added = checked_add(advance_fixed, fee_fixed)

        updated = replace(
            current,
            collateral_shares=checked_add(current.collateral_shares, shares),
            collateral=checked_add(current.collateral, collateral_fixed),
            debt=checked_add(current.debt, debt_added),
        )
        aggregate = _shift_aggregate(aggregate, current, updated)
        aggregate = replace(
            aggregate,
            total_revenue_shares=checked_add(aggregate.total_revenue_shares, revenue_shares),
        )
        net = checked_sub(advance_fixed, fee_fixed)

        events.append(LedgerEvent(
            event_type=EventType.ADVANCE_ISSUED,
            tenant=self._tenant,
            token=token,
            account=account,
            data={
                'collateral': collateral_fixed,
                'advance_with_fee': checked_add(advance_fixed, fee_fixed),
                'fee': fee_fixed,
                'net_advance': net,
                'shares_minted': shares,
                'revenue_shares': revenue_shares,
            },
        ))
        self._store._commit({acct_key: updated}, {agg_key: aggregate}, events)
        return net

    def withdraw_collateral(self, account: str, token: str) -> int:
        """
        Release all collateral of an account with no outstanding debt.

        Returns:
            The cost basis at RAY scale (not the larger share value)

        Raises:
            RepayAdvanceToWithdraw: If debt remains after applying yield
        """
        self._keys(account, token)
        index = self._store.read_index(token)
        acct_key, agg_key, before, settlement, aggregate, events = self._settle(
            account, token, index)
        current = settlement.account
        check_withdrawable(current)
        if current.is_empty():
            return 0

        residual = current.yield_accrued
        forfeited_shares = 0
        aggregate = _shift_aggregate(aggregate, current, EMPTY_ACCOUNT)
        if (residual and self._store.policy.withdrawal_residual
                is WithdrawalResidual.FORFEIT_TO_REVENUE):
            forfeited_shares = calculate_revenue_shares(residual, index)
            aggregate = replace(
                aggregate,
                total_revenue_shares=checked_add(aggregate.total_revenue_shares, forfeited_shares),
            )

        events.append(LedgerEvent(
            event_type=EventType.COLLATERAL_WITHDRAWN,
            tenant=self._tenant,
            token=token,
            account=account,
            data={
                'collateral': current.collateral,
                'shares_burned': current.collateral_shares,
                'share_value': settlement.observation.share_value,
                'residual_yield': residual,
                'forfeited_shares': forfeited_shares,
            },
        ))
        self._store._commit({acct_key: EMPTY_ACCOUNT}, {agg_key: aggregate}, events)
        return current.collateral

    def repay_advance_with_deposit(self, account: str, token: str, amount: int) -> int:
        """
        Pay down debt with a deposit made to the custodian.

        The repayment is applied only if 0 < amount <= current debt (after
        yield). Larger amounts are ignored entirely: callers must query the
        debt first and never send more.

        Args:
            amount: Repayment at RAY scale, the same unit get_debt returns,
                    so a debt left fractional by yield can be paid off exactly

        Returns:
            Debt remaining at RAY scale
        """
        self._keys(account, token)
        amount_fixed = validate_amount(amount, "amount")
        index = self._store.read_index(token)
        acct_key, agg_key, before, settlement, aggregate, events = self._settle(
            account, token, index)
        current = settlement.account
        result = apply_repayment(current, amount_fixed)

        if result.applied:
            aggregate = _shift_aggregate(aggregate, current, result.account)
            events.append(LedgerEvent(
                event_type=EventType.REPAYMENT,
                tenant=self._tenant,
                token=token,
                account=account,
                data={'amount': amount_fixed, 'debt': result.account.debt},
            ))
        elif amount_fixed:
            self._store._note(
                f"repayment of {amount_fixed} ignored for {self._tenant}/{account} "
                f"{token}: exceeds debt {current.debt}"
            )

        if result.account != before:
            self._store._commit({acct_key: result.account}, {agg_key: aggregate}, events)
        return result.account.debt

    def claim_revenue(self, token: str) -> int:
        """
        Claim every revenue share the tenant holds for a token.

        Returns:
            The share count, or its value at the current index, per policy

        Raises:
            NoRevenueToClaim: If the tenant holds no revenue shares
        """
        agg_key = aggregate_key(self._tenant, validate_identifier(token, "token"))
        index = self._store.read_index(token)
        result = calculate_claim(
            self._store.get_aggregate_row(agg_key), index, self._store.policy.revenue_claim)
        event = LedgerEvent(
            event_type=EventType.REVENUE_CLAIMED,
            tenant=self._tenant,
            token=token,
            data={'shares': result.shares, 'value': result.value},
        )
        self._store._commit({}, {agg_key: result.aggregate}, [event])
        return result.amount

    def get_debt(self, account: str, token: str) -> int:
        """Debt after applying all yield observed at the current index."""
        return self._commit_settlement(account, token).account.debt

    def get_account_total_yield(self, account: str, token: str) -> int:
        """Yield credited to the account and not yet spent on debt."""
        return self._commit_settlement(account, token).account.yield_accrued

    # ------------------------------------------------------------------
    # Read-only getters
    # ------------------------------------------------------------------

    def get_account(self, account: str, token: str) -> AccountLedger:
        """Stored row snapshot (no yield tracking)."""
        acct_key, _ = self._keys(account, token)
        return self._store.get_account_row(acct_key)

    def get_aggregate(self, token: str) -> TenantAggregate:
        validate_identifier(token, "token")
        return self._store.get_aggregate_row(aggregate_key(self._tenant, token))

    def get_share_value(self, account: str, token: str) -> int:
        """Current value of the account's collateral shares."""
        row = self.get_account(account, token)
        return mul_index(row.collateral_shares, self._store.read_index(token))

    def get_collateral_shares(self, account: str, token: str) -> int:
        return self.get_account(account, token).collateral_shares

    def get_collateral_amount(self, account: str, token: str) -> int:
        return self.get_account(account, token).collateral

    def get_total_debt(self, token: str) -> int:
        return self.get_aggregate(token).total_debt

    def get_total_collateral_shares(self, token: str) -> int:
        return self.get_aggregate(token).total_collateral_shares

    def get_total_collateral(self, token: str) -> int:
        return self.get_aggregate(token).total_collateral

    def get_total_yield(self, token: str) -> int:
        return self.get_aggregate(token).total_yield

    def get_total_revenue_shares(self, token: str) -> int:
        return self.get_aggregate(token).total_revenue_shares

    def get_total_revenue_share_value(self, token: str) -> int:
        """Revenue shares valued at the current index."""
        aggregate = self.get_aggregate(token)
        return calculate_revenue_value(aggregate, self._store.read_index(token))

    def list_accounts(self, token: str) -> List[str]:
        """Accounts with a row for the token, sorted."""
        validate_identifier(token, "token")
        return sorted(
            acct for (tenant, acct, tok) in self._store.accounts
            if tenant == self._tenant and tok == token
        )
