"""
Test suite for the ticket orchestration engine.

Focus areas:
- Batch composition and reference resolution
- Purchase ordering (withdraw -> confirm -> transfer)
- Lifecycle preconditions and advancement
- Report parsing and settlement reconciliation
- End-to-end scenarios on the simulated ledger
"""
