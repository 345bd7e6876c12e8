"""
Escrow & Policy Coordinator.

Builds every batch that touches the escrow (kiosk) or the transfer approval
(policy): escrow bootstrap, listing, purchase, policy bootstrap.
"""

import logging
from typing import Optional

from ..compose.args import Address, ObjectArg, Ref, U16, U64
from ..compose.batch import Batch, BatchComposer
from ..config import BPS_DENOMINATOR, FRAMEWORK, TicketingConfig
from ..core.errors import INVALID_ARGUMENT, PreconditionFailedError
from ..core.ids import require_arg
from ..core.state import Escrow
from .purchase import PurchaseBatchBuilder, require_price, validate_purchase_batch

logger = logging.getLogger(__name__)

KIOSK_DEFAULT = f"{FRAMEWORK}::kiosk::default"
KIOSK_PLACE_AND_LIST = f"{FRAMEWORK}::kiosk::place_and_list"
POLICY_NEW = f"{FRAMEWORK}::transfer_policy::new"
SHARE_OBJECT = f"{FRAMEWORK}::transfer::public_share_object"

CREATE_POLICY = "create_policy"


class EscrowPolicyCoordinator:
    """
    Composes escrow and policy batches for one deployment.

    Usage:
        coordinator = EscrowPolicyCoordinator(config)
        batch = coordinator.build_purchase_batch(kiosk, ticket, 250_000_000, policy, buyer)
    """

    def __init__(self, config: TicketingConfig) -> None:
        self.config = config

    def build_purchase_batch(
        self,
        escrow_id: str,
        asset_id: str,
        price: int,
        approval_id: str,
        buyer: str,
    ) -> Batch:
        """
        Three-step purchase: withdraw with payment, confirm approval,
        transfer to buyer.

        Raises:
            PreconditionFailedError: INVALID_PRICE if price <= 0,
                INVALID_ARGUMENT if any id is empty
        """
        batch = (
            PurchaseBatchBuilder(self.config)
            .withdraw(escrow_id, asset_id, price)
            .confirm(approval_id)
            .transfer_to(buyer)
        )
        logger.debug("composed purchase batch %s for %s", batch.digest()[:16], asset_id)
        return validate_purchase_batch(batch, asset_id=asset_id)

    def build_listing_batch(self, escrow: Escrow, ticket_id: str, price: int) -> Batch:
        """Deposit ticket_id into escrow and list it at price."""
        require_arg(ticket_id, "ticket_id", "list")
        require_price(price, ticket_id, transition="list")
        composer = BatchComposer(self.config.gas.list, label="list")
        composer.move_call(
            KIOSK_PLACE_AND_LIST,
            [ObjectArg(escrow.id), ObjectArg(escrow.owner_cap_id), ObjectArg(ticket_id), U64(price)],
            type_arguments=[self.config.ticket_type],
        )
        return composer.build()

    def build_escrow_batch(self) -> Batch:
        """Create a shared escrow; its owner capability goes to the sender."""
        composer = BatchComposer(self.config.gas.create_escrow, label="create_escrow")
        composer.move_call(KIOSK_DEFAULT)
        return composer.build()

    def build_policy_batch(
        self,
        publisher_id: str,
        royalty_recipient: str,
        royalty_bps: int,
        admin: Optional[str] = None,
    ) -> Batch:
        """
        Create and share a transfer approval with a royalty rule.

        The policy capability is handed to admin (defaults to the royalty
        recipient).
        """
        require_arg(publisher_id, "publisher_id", CREATE_POLICY)
        require_arg(royalty_recipient, "royalty_recipient", CREATE_POLICY, publisher_id)
        if (
            isinstance(royalty_bps, bool)
            or not isinstance(royalty_bps, int)
            or not 0 <= royalty_bps <= BPS_DENOMINATOR
        ):
            raise PreconditionFailedError(
                INVALID_ARGUMENT,
                f"royalty_bps must be an integer within 0..{BPS_DENOMINATOR}, got {royalty_bps!r}",
                transition=CREATE_POLICY,
                asset_id=publisher_id,
            )

        ticket_type = self.config.ticket_type
        composer = BatchComposer(self.config.gas.create_policy, label=CREATE_POLICY)
        policy, cap = composer.move_call(
            POLICY_NEW, [ObjectArg(publisher_id)], type_arguments=[ticket_type], returns=2
        )
        composer.move_call(
            self.config.target("royalty", "add_rule"),
            [
                Ref(policy.op, policy.index, borrow=True),
                Ref(cap.op, cap.index, borrow=True),
                Address(royalty_recipient),
                U16(royalty_bps),
            ],
            type_arguments=[ticket_type],
        )
        composer.move_call(
            SHARE_OBJECT,
            [policy],
            type_arguments=[f"{FRAMEWORK}::transfer_policy::TransferPolicy<{ticket_type}>"],
        )
        composer.transfer_objects([cap], Address(admin or royalty_recipient))
        return composer.build()
