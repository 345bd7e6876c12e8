"""
Escrow (kiosk) and transfer approval (policy) sequencing.
"""

from .purchase import (
    KIOSK_PURCHASE,
    POLICY_CONFIRM,
    PurchaseBatchBuilder,
    WithdrawnPurchase,
    ConfirmedPurchase,
    validate_purchase_batch,
)
from .coordinator import (
    KIOSK_DEFAULT,
    KIOSK_PLACE_AND_LIST,
    POLICY_NEW,
    SHARE_OBJECT,
    EscrowPolicyCoordinator,
)

__all__ = [
    "KIOSK_PURCHASE",
    "POLICY_CONFIRM",
    "KIOSK_DEFAULT",
    "KIOSK_PLACE_AND_LIST",
    "POLICY_NEW",
    "SHARE_OBJECT",
    "PurchaseBatchBuilder",
    "WithdrawnPurchase",
    "ConfirmedPurchase",
    "validate_purchase_batch",
    "EscrowPolicyCoordinator",
]
