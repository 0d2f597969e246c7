"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the token ledger and clone factory.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Sum of balances equals total supply
2. atomicity.py - All-or-nothing operations
3. idempotency.py - Permit nonces: single use, monotone
4. determinism.py - Reproducible addresses, code and digests
5. canonicalization.py - One canonical form per address
6. temporal.py - Deadlines and block time

These tests use hypothesis for property-based testing.
"""
