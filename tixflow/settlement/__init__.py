"""
Settlement verification.
"""

from .reconciler import (
    BalanceReconciler,
    Reconciliation,
    PayoutCheck,
    check_conservation,
    expected_royalty,
    expected_splits,
)

__all__ = [
    "BalanceReconciler",
    "Reconciliation",
    "PayoutCheck",
    "check_conservation",
    "expected_royalty",
    "expected_splits",
]
