"""
Balance/Royalty Reconciler.

Cross-checks a pre-transaction balance snapshot against the settlement
records of one successful report:

1. the payer's balance fell by at least the expected spend and by no more
   than spend + fee allowance (soft: UnexpectedSpendWarning)
2. value is conserved: credits equal debits net of the network fee the
   report itself declares (fatal: SettlementMismatchError)
3. when a royalty recipient is configured, some settlement pays it a
   nonzero amount (soft: RoyaltyNotObservedWarning)

Soft findings are collected on the Reconciliation and logged, never raised.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from ..config import BPS_DENOMINATOR, RoyaltyConfig, RoyaltySplit, TicketingConfig
from ..core.errors import RoyaltyNotObservedWarning, SettlementMismatchError, UnexpectedSpendWarning
from ..effects.extractor import Settlement, TypedEffects
from ..effects.type_tags import SUI_COIN

logger = logging.getLogger(__name__)


def expected_royalty(price: int, bps: int) -> int:
    """Royalty owed on price at bps basis points, rounded down."""
    return price * bps // BPS_DENOMINATOR


def expected_splits(amount: int, split: RoyaltySplit) -> Dict[str, int]:
    """
    Divide amount by split basis points; the rounding remainder stays with
    the artist so the parts always sum to amount.
    """
    organizer = amount * split.organizer // BPS_DENOMINATOR
    platform = amount * split.platform // BPS_DENOMINATOR
    return {"artist": amount - organizer - platform, "organizer": organizer, "platform": platform}


@dataclass(frozen=True)
class PayoutCheck:
    role: str
    address: str
    expected: int
    observed: int

    @property
    def ok(self) -> bool:
        return self.observed == self.expected


@dataclass(frozen=True)
class Reconciliation:
    """
    Result of one reconciliation.

    Fields:
        verified: False when the report carried no balance changes
        credited / debited: Native-coin totals across all settlements
        royalty_observed: None when no royalty is configured
    """
    payer: str
    expected_spend: int
    payer_delta: int
    pre_balance: Optional[int]
    post_balance: Optional[int]
    network_fee: Optional[int]
    credited: int
    debited: int
    verified: bool = True
    royalty_observed: Optional[bool] = None
    payouts: Tuple[PayoutCheck, ...] = ()
    warnings: Tuple[Warning, ...] = field(default_factory=tuple)

    @property
    def clean(self) -> bool:
        return not self.warnings


def _is_native(coin_type: Optional[str]) -> bool:
    return coin_type is None or coin_type == SUI_COIN


def check_conservation(
    settlements: List[Settlement],
    network_fee: Optional[int] = None,
    transition: Optional[str] = None,
    asset_id: Optional[str] = None,
) -> Tuple[int, int]:
    """
    Verify credits equal debits per coin type; the native coin's debits
    also cover network_fee.

    Returns:
        (credited, debited) for the native coin

    Raises:
        SettlementMismatchError: If any coin type does not balance
    """
    groups: Dict[str, List[int]] = {}
    for s in settlements:
        key = "native" if _is_native(s.coin_type) else s.coin_type
        groups.setdefault(key, []).append(s.amount)

    native = (0, 0)
    for key in sorted(groups):
        amounts = groups[key]
        credited = sum(a for a in amounts if a > 0)
        debited = -sum(a for a in amounts if a < 0)
        fee = (network_fee or 0) if key == "native" else 0
        if credited + fee != debited:
            raise SettlementMismatchError(
                f"{key} settlements do not balance: credited {credited} + fee {fee} "
                f"!= debited {debited}",
                transition=transition,
                asset_id=asset_id,
            )
        if key == "native":
            native = (credited, debited)
    return native


class BalanceReconciler:
    """
    Usage:
        reconciler = BalanceReconciler.from_config(config)
        result = reconciler.reconcile({buyer: 1_000_000_000}, effects, 250_000_000, buyer)
    """

    def __init__(self, fee_allowance: int, royalty: Optional[RoyaltyConfig] = None) -> None:
        if fee_allowance < 0:
            raise ValueError("fee_allowance must be >= 0")
        self.fee_allowance = fee_allowance
        self.royalty = royalty

    @classmethod
    def from_config(cls, config: TicketingConfig) -> "BalanceReconciler":
        return cls(fee_allowance=config.fee_allowance, royalty=config.royalty)

    def reconcile(
        self,
        pre_balances: Mapping[str, int],
        effects: TypedEffects,
        expected_spend: int,
        payer: str,
        price: Optional[int] = None,
        transition: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> Reconciliation:
        """
        Run all three checks.

        Args:
            pre_balances: address -> native balance before submission
            effects: Effects of the executed batch
            expected_spend: Amount the payer meant to spend, fees excluded
            payer: Address that signed and paid
            price: Sale price for royalty/split expectations (defaults to
                expected_spend)

        Raises:
            SettlementMismatchError: If value is not conserved, or the
                payer's balance would go negative
        """
        warnings: List[Warning] = []
        settlements = effects.settlements
        network_fee = effects.network_fee

        if not effects.balances_reported:
            warnings.append(UnexpectedSpendWarning("report carried no balance changes; settlement unverified"))

        credited, debited = check_conservation(
            settlements, network_fee, transition=transition, asset_id=asset_id
        )

        payer_delta = sum(s.amount for s in settlements if s.address == payer and _is_native(s.coin_type))
        pre_balance = pre_balances.get(payer)
        post_balance = pre_balance + payer_delta if pre_balance is not None else None
        if post_balance is not None and post_balance < 0:
            raise SettlementMismatchError(
                f"payer {payer} would hold {post_balance} after settlement",
                transition=transition,
                asset_id=asset_id,
            )

        if effects.balances_reported:
            decrease = -payer_delta
            upper = expected_spend + self.fee_allowance
            if not expected_spend <= decrease <= upper:
                warnings.append(
                    UnexpectedSpendWarning(
                        f"payer {payer} spent {decrease}, expected {expected_spend}..{upper}"
                    )
                )

        royalty_observed = None
        payouts: List[PayoutCheck] = []
        if self.royalty is not None:
            recipient = self.royalty.recipient
            royalty_observed = any(
                s.address == recipient and s.amount > 0 for s in settlements
            )
            if not royalty_observed:
                warnings.append(
                    RoyaltyNotObservedWarning(f"no settlement paid royalty recipient {recipient}")
                )
            payouts = self._payouts(settlements, price if price is not None else expected_spend)

        for w in warnings:
            logger.warning(str(w), extra={"trace_id": asset_id or "N/A"})

        return Reconciliation(
            payer=payer,
            expected_spend=expected_spend,
            payer_delta=payer_delta,
            pre_balance=pre_balance,
            post_balance=post_balance,
            network_fee=network_fee,
            credited=credited,
            debited=debited,
            verified=effects.balances_reported,
            royalty_observed=royalty_observed,
            payouts=tuple(payouts),
            warnings=tuple(warnings),
        )

    def _payouts(self, settlements: List[Settlement], price: int) -> List[PayoutCheck]:
        royalty = self.royalty
        amount = expected_royalty(price, royalty.bps)

        def observed(address: str) -> int:
            return sum(s.amount for s in settlements if s.address == address and _is_native(s.coin_type))

        if not royalty.split_recipients:
            return [PayoutCheck("royalty", royalty.recipient, amount, observed(royalty.recipient))]

        checks = []
        for role, share in expected_splits(amount, royalty.split).items():
            address = royalty.split_recipients.get(role)
            if address is None:
                continue
            checks.append(PayoutCheck(role, address, share, observed(address)))
        return checks
