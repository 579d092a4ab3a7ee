"""
Aggregate Consistency Conformance Tests

INVARIANT: For every (tenant, token), at all times:

    total_collateral_shares = Σ_accounts collateral_shares
    total_collateral        = Σ_accounts collateral
    total_debt              = Σ_accounts debt
    total_yield             = Σ_accounts yield_accrued

Aggregates are moved in lock-step with account rows, never recomputed.
verify_aggregates() re-sums the rows as an independent audit.
"""

from dataclasses import replace

from hypothesis import given, settings, note
from hypothesis import strategies as st

from yieldledger import (
    YieldLedger, StaticIndexSource, RAY,
    RepayAdvanceToWithdraw, NoRevenueToClaim,
)


TOKEN = "aUSDC"
ACCOUNTS = ["alice", "bob", "carol", "dave"]


# =============================================================================
# STRATEGIES FOR PROPERTY-BASED TESTING
# =============================================================================

@st.composite
def valid_operation(draw):
    """
    Generate an operation that is well-formed.

    Advances draw at most half the collateral so the fee stays below the
    advance; withdrawals and claims may still be refused by state.
    """
    kind = draw(st.sampled_from(
        ["advance", "advance", "repay", "withdraw", "claim", "debt", "yield", "grow"]))
    account = draw(st.sampled_from(ACCOUNTS))
    if kind == "advance":
        collateral = draw(st.integers(min_value=1, max_value=1_000_000))
        advance = draw(st.integers(min_value=0, max_value=collateral // 2))
        return (kind, account, collateral, advance)
    if kind == "repay":
        return (kind, account, draw(st.integers(min_value=0, max_value=600_000 * RAY)))
    if kind == "grow":
        # growth in basis points of 1.0
        return (kind, draw(st.integers(min_value=0, max_value=5_000)))
    return (kind, account)


def apply(protocol, source, op):
    kind = op[0]
    if kind == "advance":
        protocol.get_advance(op[1], TOKEN, collateral=op[2], advance=op[3])
    elif kind == "repay":
        protocol.repay_advance_with_deposit(op[1], TOKEN, op[2])
    elif kind == "withdraw":
        try:
            protocol.withdraw_collateral(op[1], TOKEN)
        except RepayAdvanceToWithdraw:
            pass
    elif kind == "claim":
        try:
            protocol.claim_revenue(TOKEN)
        except NoRevenueToClaim:
            pass
    elif kind == "debt":
        protocol.get_debt(op[1], TOKEN)
    elif kind == "yield":
        protocol.get_account_total_yield(op[1], TOKEN)
    elif kind == "grow":
        current = source.current_index(TOKEN)
        source.update_index(TOKEN, current + current * op[1] // 10_000)


def account_sum(store, field_name):
    return sum(getattr(row, field_name) for row in store.accounts.values())


class TestAggregateProperties:
    """Property-based aggregate consistency tests."""

    @given(st.lists(valid_operation(), min_size=1, max_size=40))
    @settings(max_examples=100, deadline=None)
    def test_aggregates_match_accounts_after_every_operation(self, ops):
        """
        PROPERTY: Any sequence of operations across several accounts keeps
        every aggregate equal to the sum of its account rows.
        """
        source = StaticIndexSource({TOKEN: RAY})
        store = YieldLedger("agg", source, verbose=False)
        protocol = store.tenant("protocol_a")

        for i, op in enumerate(ops):
            note(f"op {i}: {op}")
            apply(protocol, source, op)
            result = store.verify_aggregates()
            assert result['valid'], result['discrepancies']

        assert protocol.get_total_debt(TOKEN) == account_sum(store, 'debt')
        assert protocol.get_total_yield(TOKEN) == account_sum(store, 'yield_accrued')
        assert protocol.get_total_collateral(TOKEN) == account_sum(store, 'collateral')
        assert protocol.get_total_collateral_shares(TOKEN) == account_sum(
            store, 'collateral_shares')

    @given(st.lists(valid_operation(), min_size=1, max_size=30))
    @settings(max_examples=50, deadline=None)
    def test_settling_everyone_clears_aggregate_debt_consistently(self, ops):
        """
        PROPERTY: After settling every account, total_debt is the sum of the
        settled debts returned by get_debt.
        """
        source = StaticIndexSource({TOKEN: RAY})
        store = YieldLedger("agg", source, verbose=False)
        protocol = store.tenant("protocol_a")
        for op in ops:
            apply(protocol, source, op)

        debts = [protocol.get_debt(account, TOKEN) for account in ACCOUNTS]
        assert protocol.get_total_debt(TOKEN) == sum(debts)


class TestAggregateExamples:
    """Explicit aggregate examples."""

    def test_two_accounts(self):
        source = StaticIndexSource({TOKEN: RAY})
        store = YieldLedger("agg", source, verbose=False)
        protocol = store.tenant("protocol_a")
        protocol.get_advance("alice", TOKEN, collateral=100, advance=20)
        protocol.get_advance("bob", TOKEN, collateral=1000, advance=100)

        assert protocol.get_total_collateral(TOKEN) == 1100 * RAY
        assert protocol.get_total_debt(TOKEN) == 120 * RAY
        # fees 6 + 20
        assert protocol.get_total_revenue_shares(TOKEN) == 26 * RAY

        source.update_index(TOKEN, 2 * RAY)
        protocol.get_debt("alice", TOKEN)
        assert protocol.get_total_debt(TOKEN) == 100 * RAY
        assert protocol.get_total_yield(TOKEN) == 80 * RAY

        protocol.get_debt("bob", TOKEN)
        assert protocol.get_total_debt(TOKEN) == 0
        assert protocol.get_total_yield(TOKEN) == 980 * RAY

    def test_tokens_are_separate_aggregates(self):
        source = StaticIndexSource({TOKEN: RAY, "aDAI": RAY})
        store = YieldLedger("agg", source, verbose=False)
        protocol = store.tenant("protocol_a")
        protocol.get_advance("alice", TOKEN, collateral=100, advance=20)
        protocol.get_advance("alice", "aDAI", collateral=50, advance=0)

        assert protocol.get_total_collateral(TOKEN) == 100 * RAY
        assert protocol.get_total_collateral("aDAI") == 50 * RAY
        assert protocol.get_total_debt("aDAI") == 0

    def test_verify_detects_drift(self):
        source = StaticIndexSource({TOKEN: RAY})
        store = YieldLedger("agg", source, verbose=False)
        store.tenant("protocol_a").get_advance("alice", TOKEN, collateral=100, advance=20)

        key = ("protocol_a", TOKEN)
        store.aggregates[key] = replace(store.aggregates[key], total_debt=21 * RAY)
        result = store.verify_aggregates()

        assert not result['valid']
        assert result['discrepancies'] == [{
            'key': key,
            'field': 'total_debt',
            'expected': 20 * RAY,
            'actual': 21 * RAY,
            'difference': RAY,
        }]
        assert result['totals'][key].total_debt == 20 * RAY

    def test_verify_ignores_revenue_shares(self):
        source = StaticIndexSource({TOKEN: RAY})
        store = YieldLedger("agg", source, verbose=False)
        store.tenant("protocol_a").get_advance("alice", TOKEN, collateral=100, advance=20)
        result = store.verify_aggregates()
        assert result['valid']
        assert result['totals'][("protocol_a", TOKEN)].total_revenue_shares == 6 * RAY
