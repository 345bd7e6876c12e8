"""
tixflow: ticket lifecycle orchestration and effects verification.

Composes atomic ledger batches for each ticket transition (mint, list,
buy-and-approve, check-in), interprets the ledger's execution reports and
verifies settlements, including royalties.
"""

__version__ = "0.1.0"
