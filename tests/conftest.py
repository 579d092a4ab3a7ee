"""
conftest.py - Shared pytest fixtures for yield ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Index sources (fake and static)
- Ledgers with default and alternative policies
- Tenant handles, fresh and with an advance already issued
"""

import pytest

from yieldledger import (
    YieldLedger, TenantLedger, LedgerPolicy,
    StaticIndexSource,
    DebtBasis, WithdrawalResidual, RevenueClaim,
    RAY,
)

from tests.fake_index import FakeIndex


TOKEN = "aUSDC"


# =============================================================================
# INDEX FIXTURES
# =============================================================================

@pytest.fixture
def index_source():
    """Static index source with aUSDC and aDAI at 1.0."""
    return StaticIndexSource({TOKEN: RAY, "aDAI": RAY})


@pytest.fixture
def fake_index():
    """Recording index source that accepts any value."""
    return FakeIndex({TOKEN: RAY})


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def store(index_source):
    """Fresh ledger with the default policy."""
    return YieldLedger("test", index_source, verbose=False)


@pytest.fixture
def protocol(store) -> TenantLedger:
    """Tenant handle on the fresh ledger."""
    return store.tenant("protocol_a")


@pytest.fixture
def advanced(store, protocol):
    """
    alice posted 100 and drew 20 at index 1.0.

    fee = 6, net = 14, debt = 20, revenue shares = 6 (all x RAY).
    """
    protocol.get_advance("alice", TOKEN, collateral=100, advance=20)
    return store, protocol


@pytest.fixture
def fake_store(fake_index):
    """Ledger wired to the recording FakeIndex."""
    return YieldLedger("fake", fake_index, verbose=False)


@pytest.fixture
def forfeit_store(index_source):
    """Ledger that turns residual yield into tenant revenue on withdrawal."""
    policy = LedgerPolicy(withdrawal_residual=WithdrawalResidual.FORFEIT_TO_REVENUE)
    return YieldLedger("forfeit", index_source, policy=policy, verbose=False)


@pytest.fixture
def fee_debt_store(index_source):
    """Ledger that records advance + fee as debt."""
    policy = LedgerPolicy(debt_basis=DebtBasis.ADVANCE_PLUS_FEE)
    return YieldLedger("fee_debt", index_source, policy=policy, verbose=False)


@pytest.fixture
def value_claim_store(index_source):
    """Ledger whose revenue claims return index value instead of shares."""
    policy = LedgerPolicy(revenue_claim=RevenueClaim.VALUE)
    return YieldLedger("value_claim", index_source, policy=policy, verbose=False)
