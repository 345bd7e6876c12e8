"""
Ledger collaborators.

- interfaces: Signer and LedgerClient contracts
- signer: Ed25519Signer
- memory: InMemoryLedger, a simulated ledger with atomic batches
- retry: bounded funding polls
"""

from .interfaces import Signer, LedgerClient, ReportOptions, DEFAULT_REPORT_OPTIONS
from .signer import Ed25519Signer, address_from_public_key, verify_signature
from .memory import InMemoryLedger, ExecutionAbort
from .retry import RetryPolicy, wait_for_balance

__all__ = [
    "Signer",
    "LedgerClient",
    "ReportOptions",
    "DEFAULT_REPORT_OPTIONS",
    "Ed25519Signer",
    "address_from_public_key",
    "verify_signature",
    "InMemoryLedger",
    "ExecutionAbort",
    "RetryPolicy",
    "wait_for_balance",
]
