"""
yieldledger - Share-Based Yield-Accounting Ledger

Converts collateral deposits into index-pegged shares, prices origination
fees, tracks yield against an external interest index, and pays debt down
from that yield. The ledger never moves value; it returns the amounts the
custodian should move.

Usage:
    from yieldledger import YieldLedger, StaticIndexSource, RAY

    source = StaticIndexSource({"aUSDC": RAY})
    store = YieldLedger("main", source)
    protocol = store.tenant("protocol_a")

    # Post 100 units, draw 20: fee 6, custodian disburses 14
    net = protocol.get_advance("alice", "aUSDC", collateral=100, advance=20)

    # Index doubles: the collateral's yield clears the debt
    source.update_index("aUSDC", 2 * RAY)
    protocol.get_debt("alice", "aUSDC")             # 0
    protocol.withdraw_collateral("alice", "aUSDC")  # 100 * RAY
"""

# Core types
from .core import (
    AccountLedger,
    TenantAggregate,
    LedgerEvent,
    LedgerPolicy,
    DebtStatus,
    DebtBasis,
    WithdrawalResidual,
    RevenueClaim,
    EventType,
    LedgerError,
    InvalidIndex,
    RepayAdvanceToWithdraw,
    NoRevenueToClaim,
    InvalidInput,
    DivisionByZero,
    Overflow,
    FeeExceedsAdvance,
    RAY,
    MAX_UINT256,
    BASE_FEE_PERCENT,
    PERCENT,
)

# Ledger
from .ledger import YieldLedger, TenantLedger

# Fixed-point math
from .fixed_point import (
    checked_add, checked_sub, checked_mul, checked_div,
    to_fixed, mul_index, div_index, from_fixed,
)

# Index sources
from .index_source import (
    IndexSource,
    StaticIndexSource,
    TimeSeriesIndexSource,
    read_index,
)

# Fees
from .fees import calculate_origination_fee, calculate_net_advance

# Yield tracking
from .yield_tracker import (
    YieldObservation,
    calculate_share_value,
    calculate_excess,
    track_yield,
)

# Debt engine
from .debt import (
    YieldApplication,
    Settlement,
    RepaymentResult,
    apply_yield_to_debt,
    settle_account,
    apply_repayment,
    check_withdrawable,
)

# Revenue
from .revenue import (
    RevenueClaimResult,
    calculate_revenue_shares,
    calculate_revenue_value,
    calculate_claim,
)

__all__ = [
    # Core
    'AccountLedger', 'TenantAggregate', 'LedgerEvent', 'LedgerPolicy',
    'DebtStatus', 'DebtBasis', 'WithdrawalResidual', 'RevenueClaim', 'EventType',
    'LedgerError', 'InvalidIndex', 'RepayAdvanceToWithdraw', 'NoRevenueToClaim',
    'InvalidInput', 'DivisionByZero', 'Overflow', 'FeeExceedsAdvance',
    'RAY', 'MAX_UINT256', 'BASE_FEE_PERCENT', 'PERCENT',
    # Ledger
    'YieldLedger', 'TenantLedger',
    # Fixed-point
    'checked_add', 'checked_sub', 'checked_mul', 'checked_div',
    'to_fixed', 'mul_index', 'div_index', 'from_fixed',
    # Index sources
    'IndexSource', 'StaticIndexSource', 'TimeSeriesIndexSource', 'read_index',
    # Fees
    'calculate_origination_fee', 'calculate_net_advance',
    # Yield
    'YieldObservation', 'calculate_share_value', 'calculate_excess', 'track_yield',
    # Debt
    'YieldApplication', 'Settlement', 'RepaymentResult',
    'apply_yield_to_debt', 'settle_account', 'apply_repayment', 'check_withdrawable',
    # Revenue
    'RevenueClaimResult', 'calculate_revenue_shares', 'calculate_revenue_value',
    'calculate_claim',
]

__version__ = '1.0.0'
