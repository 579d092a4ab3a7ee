#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: Learn the Yield Ledger Step by Step

Each step builds on the previous one. Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3: Foundation  - Index sources, the empty ledger, tenant handles
  4-6: Advances    - Fees, yield paying down debt, manual repayment
  7-8: Exit        - Withdrawal gating, revenue claims
  9:   Audit       - Event log, aggregate verification, atomicity

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
import sys

from yieldledger import (
    YieldLedger, TenantLedger, StaticIndexSource,
    RAY, from_fixed,
    LedgerError, RepayAdvanceToWithdraw,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    token: str = "aUSDC"

    # alice: small position, pays off through yield
    alice_collateral: int = 100
    alice_advance: int = 20

    # bob: large position, pays off by hand
    bob_collateral: int = 1000
    bob_advance: int = 100
    bob_repayment: int = 50

    # Index path (in units of RAY / 100)
    growth_steps: tuple = (110, 200)


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    print(f"\n--- {text} ---\n")


def units(value: int) -> str:
    """Human-readable RAY amount."""
    return f"{from_fixed(value):,.4f}"


# ============================================================================
# PHASE 1: FOUNDATION (Steps 1-3)
# ============================================================================

def step_01_index_source():
    step_header(1, "The Index Source",
        "Understand where yield comes from: a rising interest index.")

    print("""
    A yield-bearing token (like an Aave aToken) grows against an index that
    starts at 1.0 and only goes up. The ledger stores all numbers as ints at
    RAY scale (10^27), so an index of 1.0 is RAY and 2.0 is 2 * RAY.

    The ledger never fetches prices itself. It asks an IndexSource.
    """)

    print(f'>>> source = StaticIndexSource({{"{CONFIG.token}": RAY}})')
    source = StaticIndexSource({CONFIG.token: RAY})
    print(f"Current index: {units(source.current_index(CONFIG.token))}")
    return source


def step_02_empty_ledger(source: StaticIndexSource) -> YieldLedger:
    step_header(2, "The Empty Ledger",
        "A ledger holds account rows and tenant aggregates, created on first touch.")

    print('>>> store = YieldLedger("tutorial", source, verbose=True)')
    store = YieldLedger("tutorial", source, verbose=True)

    section_header("Initial State")
    print(f"Ledger:     {store!r}")
    print(f"Policy:     {store.policy}")
    print(f"Tenants:    {store.list_tenants()}")
    return store


def step_03_tenant(store: YieldLedger) -> TenantLedger:
    step_header(3, "Tenant Handles",
        "Every operation runs through a handle bound to one tenant.")

    print("""
    The host authenticates a caller and binds its identity once. No
    operation takes a tenant argument, so a tenant can only reach its own
    rows even when account ids collide with another tenant's.
    """)

    print('>>> protocol = store.tenant("protocol_a")')
    protocol = store.tenant("protocol_a")
    print(f"Handle: {protocol!r}")
    return protocol


# ============================================================================
# PHASE 2: ADVANCES (Steps 4-6)
# ============================================================================

def step_04_advance(protocol: TenantLedger):
    step_header(4, "Issuing an Advance",
        "Collateral buys shares; the fee becomes tenant revenue.")

    print("""
    fee = advance * (10 + 100 * advance / collateral) / 100

    The borrower owes the full advance but receives it net of the fee.
    """)

    c, a = CONFIG.alice_collateral, CONFIG.alice_advance
    print(f'>>> protocol.get_advance("alice", "{CONFIG.token}", collateral={c}, advance={a})')
    net = protocol.get_advance("alice", CONFIG.token, collateral=c, advance=a)

    section_header("Result")
    print(f"Net disbursed:   {units(net)}")
    print(f"Debt:            {units(protocol.get_debt('alice', CONFIG.token))}")
    print(f"Shares:          {units(protocol.get_collateral_shares('alice', CONFIG.token))}")
    print(f"Revenue shares:  {units(protocol.get_total_revenue_shares(CONFIG.token))}")


def step_05_yield(protocol: TenantLedger, source: StaticIndexSource):
    step_header(5, "Yield Pays Down Debt",
        "As the index rises, share value above cost basis is spent on debt.")

    for step in CONFIG.growth_steps:
        index = RAY * step // 100
        print(f'\n>>> source.update_index("{CONFIG.token}", RAY * {step} // 100)')
        source.update_index(CONFIG.token, index)
        debt = protocol.get_debt("alice", CONFIG.token)
        accrued = protocol.get_account_total_yield("alice", CONFIG.token)
        print(f"Share value: {units(protocol.get_share_value('alice', CONFIG.token))}  "
              f"debt: {units(debt)}  yield: {units(accrued)}")

    section_header("Key Insight")
    print("""
    Asking again at the same index changes nothing: yield already seen,
    whether spent on debt or still credited, is never counted twice.
    """)


def step_06_repayment(protocol: TenantLedger):
    step_header(6, "Manual Repayment",
        "Debt can also be paid with a deposit, but never over-paid.")

    c, a = CONFIG.bob_collateral, CONFIG.bob_advance
    protocol.get_advance("bob", CONFIG.token, collateral=c, advance=a)
    debt = protocol.get_debt("bob", CONFIG.token)
    print(f"bob owes {units(debt)}")

    print("""
    Repayments are RAY-scaled, the same unit get_debt returns, so a debt
    left fractional by yield can be paid off exactly.
    """)

    print(f'>>> protocol.repay_advance_with_deposit("bob", "{CONFIG.token}", debt + 1)')
    remaining = protocol.repay_advance_with_deposit("bob", CONFIG.token, debt + 1)
    print(f"Remaining: {units(remaining)}  (ignored: more than the debt)")

    part = CONFIG.bob_repayment * RAY
    print(f'\n>>> protocol.repay_advance_with_deposit("bob", "{CONFIG.token}", '
          f'{CONFIG.bob_repayment} * RAY)')
    remaining = protocol.repay_advance_with_deposit("bob", CONFIG.token, part)
    print(f"Remaining: {units(remaining)}")

    print(f'\n>>> protocol.repay_advance_with_deposit("bob", "{CONFIG.token}", '
          f'protocol.get_debt("bob", "{CONFIG.token}"))')
    owed = protocol.get_debt("bob", CONFIG.token)
    remaining = protocol.repay_advance_with_deposit("bob", CONFIG.token, owed)
    print(f"Remaining: {units(remaining)}")


# ============================================================================
# PHASE 3: EXIT (Steps 7-8)
# ============================================================================

def step_07_withdraw(protocol: TenantLedger):
    step_header(7, "Withdrawing Collateral",
        "Withdrawal is refused while debt remains and returns the cost basis.")

    protocol.get_advance("carol", CONFIG.token, collateral=100, advance=50)
    print('>>> protocol.withdraw_collateral("carol", ...)')
    try:
        protocol.withdraw_collateral("carol", CONFIG.token)
    except RepayAdvanceToWithdraw as e:
        print(f"Refused: {e}")

    for account in ("alice", "bob"):
        print(f'\n>>> protocol.withdraw_collateral("{account}", "{CONFIG.token}")')
        released = protocol.withdraw_collateral(account, CONFIG.token)
        print(f"Released: {units(released)}")


def step_08_revenue(protocol: TenantLedger):
    step_header(8, "Claiming Revenue",
        "Fee revenue is held as shares and grows with the index.")

    print(f"Revenue shares: {units(protocol.get_total_revenue_shares(CONFIG.token))}")
    print(f"Revenue value:  {units(protocol.get_total_revenue_share_value(CONFIG.token))}")
    print(f'\n>>> protocol.claim_revenue("{CONFIG.token}")')
    claimed = protocol.claim_revenue(CONFIG.token)
    print(f"Claimed: {units(claimed)} shares")


# ============================================================================
# PHASE 4: AUDIT (Step 9)
# ============================================================================

def step_09_audit(store: YieldLedger, protocol: TenantLedger):
    step_header(9, "Audit Trail",
        "Every committed operation is an event; failed ones leave no trace.")

    section_header("Event Log")
    for event in protocol.events:
        print(f"  {event!r}")

    section_header("Atomicity")
    before = len(store.event_log)
    try:
        protocol.get_advance("dave", CONFIG.token, collateral=100, advance=100)
    except LedgerError as e:
        print(f"Rejected: {type(e).__name__}: {e}")
    print(f"Events before: {before}, after: {len(store.event_log)}")

    section_header("Aggregate Verification")
    result = store.verify_aggregates()
    print(f"Valid: {result['valid']}  discrepancies: {result['discrepancies']}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       YIELD LEDGER - INTERACTIVE TUTORIAL")
    print("=" * 70)

    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    source = step_01_index_source()
    wait_for_enter()
    store = step_02_empty_ledger(source)
    wait_for_enter()
    protocol = step_03_tenant(store)
    wait_for_enter()

    step_04_advance(protocol)
    wait_for_enter()
    step_05_yield(protocol, source)
    wait_for_enter()
    step_06_repayment(protocol)
    wait_for_enter()

    step_07_withdraw(protocol)
    wait_for_enter()
    step_08_revenue(protocol)
    wait_for_enter()

    step_09_audit(store, protocol)

    print("\n" + "=" * 70)
    print("       TUTORIAL COMPLETE!")
    print("=" * 70)
    print("""
    Next steps:
      - See yieldledger/ledger.py for the operations
      - Run tests: pytest tests/
    """)


if __name__ == "__main__":
    main()
