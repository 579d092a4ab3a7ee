"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the yield ledger.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. atomicity.py - Failing operations change nothing
2. aggregate_consistency.py - Aggregates equal the sum of their accounts
3. debt_invariants.py - Debt bounds, yield application, withdrawal gating
4. share_value.py - Share value versus cost basis over index paths
5. tenant_isolation.py - No tenant can read or change another's rows

These tests use hypothesis for property-based testing.
"""
