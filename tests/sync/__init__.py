"""
Sync Engine Tests

TEST AXIOMS:
=============
1. Idempotence: an unchanged run issues zero registry mutations
2. Fan-out: one internal key -> one remote resource -> one handle for all slots
3. Explicit failure: per-key failures are reported, input errors raise early
"""
