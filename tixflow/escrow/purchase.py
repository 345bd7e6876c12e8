"""
Purchase batch: withdraw from escrow -> confirm transfer approval -> transfer.

The builder is staged. Each step returns the only object that can take the
next step, so a finished batch cannot be reached without confirming the
transfer request:

    PurchaseBatchBuilder(config).withdraw(kiosk, ticket, price)
        .confirm(policy)
        .transfer_to(buyer)          # -> Batch

validate_purchase_batch() applies the same rule to batches assembled by
hand with BatchComposer.
"""

from typing import Optional

from ..compose.args import GAS, Address, Id, ObjectArg, Ref, U64
from ..compose.batch import TRANSFER_OBJECTS, Batch, BatchComposer
from ..config import FRAMEWORK, TicketingConfig
from ..core.errors import PolicyNotConfirmedError, PreconditionFailedError, INVALID_ARGUMENT, INVALID_PRICE
from ..core.ids import require_arg

KIOSK_PURCHASE = f"{FRAMEWORK}::kiosk::purchase"
POLICY_CONFIRM = f"{FRAMEWORK}::transfer_policy::confirm_request"

BUY_AND_APPROVE = "buy_and_approve"


def require_price(price: int, asset_id: Optional[str] = None, transition: str = BUY_AND_APPROVE) -> int:
    if isinstance(price, bool) or not isinstance(price, int):
        raise PreconditionFailedError(
            INVALID_ARGUMENT,
            f"price must be an integer amount in minor units, got {type(price).__name__}",
            transition=transition,
            asset_id=asset_id,
        )
    if price <= 0:
        raise PreconditionFailedError(
            INVALID_PRICE,
            f"price must be > 0, got {price}",
            transition=transition,
            asset_id=asset_id,
        )
    return price


class PurchaseBatchBuilder:
    """Entry stage: nothing composed yet."""

    def __init__(self, config: TicketingConfig, gas_budget: Optional[int] = None) -> None:
        self.config = config
        self.gas_budget = gas_budget if gas_budget is not None else config.gas.buy_and_approve

    def withdraw(self, escrow_id: str, asset_id: str, price: int) -> "WithdrawnPurchase":
        """
        Split the payment from gas and purchase asset_id out of escrow_id.

        Yields the asset and its unresolved transfer request.
        """
        require_arg(asset_id, "asset_id", BUY_AND_APPROVE)
        require_arg(escrow_id, "escrow_id", BUY_AND_APPROVE, asset_id)
        require_price(price, asset_id)

        composer = BatchComposer(self.gas_budget, label=BUY_AND_APPROVE)
        (payment,) = composer.split_coins(GAS, [U64(price)])
        asset, request = composer.move_call(
            KIOSK_PURCHASE,
            [ObjectArg(escrow_id), Id(asset_id), payment],
            type_arguments=[self.config.ticket_type],
            returns=2,
        )
        return WithdrawnPurchase(self.config, composer, asset_id, asset, request)


class WithdrawnPurchase:
    """Asset and transfer request are in hand; only confirm() is possible."""

    def __init__(
        self, config: TicketingConfig, composer: BatchComposer, asset_id: str, asset: Ref, request: Ref
    ) -> None:
        self._config = config
        self._composer = composer
        self.asset_id = asset_id
        self._asset = asset
        self._request = request

    def confirm(self, approval_id: str) -> "ConfirmedPurchase":
        """Consume the transfer request against the shared approval object."""
        require_arg(approval_id, "approval_id", BUY_AND_APPROVE, self.asset_id)
        self._composer.move_call(
            POLICY_CONFIRM,
            [ObjectArg(approval_id), self._request],
            type_arguments=[self._config.ticket_type],
            returns=1,
        )
        return ConfirmedPurchase(self._composer, self.asset_id, self._asset)


class ConfirmedPurchase:
    """Request confirmed; the asset may now leave for the buyer."""

    def __init__(self, composer: BatchComposer, asset_id: str, asset: Ref) -> None:
        self._composer = composer
        self.asset_id = asset_id
        self._asset = asset

    def transfer_to(self, buyer: str) -> Batch:
        require_arg(buyer, "buyer", BUY_AND_APPROVE, self.asset_id)
        self._composer.transfer_objects([self._asset], Address(buyer))
        return self._composer.build()


def validate_purchase_batch(batch: Batch, asset_id: Optional[str] = None) -> Batch:
    """
    Check a purchase batch confirms its transfer request before the asset
    moves.

    Rules:
    - exactly one purchase and exactly one confirm
    - confirm consumes the purchase's transfer request (output 1)
    - confirm sits after the purchase and before the asset's transfer

    Raises:
        PolicyNotConfirmedError: If any rule is broken
    """
    def fail(message: str) -> PolicyNotConfirmedError:
        return PolicyNotConfirmedError(message, transition=BUY_AND_APPROVE, asset_id=asset_id)

    purchases = batch.indexes_of(KIOSK_PURCHASE)
    if len(purchases) != 1:
        raise fail(f"expected exactly one escrow purchase, found {len(purchases)}")
    withdraw_at = purchases[0]

    confirms = batch.indexes_of(POLICY_CONFIRM)
    if not confirms:
        raise fail("purchase batch never confirms the transfer request")
    if len(confirms) > 1:
        raise fail(f"purchase batch confirms {len(confirms)} times")
    confirm_at = confirms[0]

    request = Ref(withdraw_at, 1)
    if request not in batch.operations[confirm_at].arguments:
        raise fail("confirm step does not consume the purchase's transfer request")

    asset = Ref(withdraw_at, 0)
    transfer_at = None
    for i, op in enumerate(batch.operations):
        if op.kind == TRANSFER_OBJECTS and asset in op.arguments[:-1]:
            transfer_at = i
    if transfer_at is None:
        raise fail("purchased asset is never transferred")
    if not withdraw_at < confirm_at < transfer_at:
        raise fail("confirm must sit between the withdraw and the final transfer")
    return batch
