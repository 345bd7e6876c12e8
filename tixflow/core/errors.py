"""
Exception types for the ticket orchestration engine.

Every error names the lifecycle transition that was attempted and the asset
it targeted, so a caller can always tell which step failed and on what.
"""

from typing import Any, Dict, Optional


class TicketingError(Exception):
    """
    Base error for composition, execution and verification failures.

    Fields:
        code: Stable error kind (e.g. "UNRESOLVED_REFERENCE")
        transition: Lifecycle transition attempted (e.g. "buy_and_approve")
        asset_id: Asset the transition targeted, if known
    """

    code = "TICKETING_ERROR"

    def __init__(
        self,
        message: str,
        transition: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.transition = transition
        self.asset_id = asset_id

    def with_context(self, transition: str, asset_id: Optional[str]) -> "TicketingError":
        """Fill in transition/asset when raised below the lifecycle layer."""
        if self.transition is None:
            self.transition = transition
        if self.asset_id is None:
            self.asset_id = asset_id
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "transition": self.transition,
            "asset_id": self.asset_id,
        }

    def __str__(self) -> str:
        return (
            f"{self.code}: {self.message} "
            f"[transition={self.transition or 'n/a'} asset={self.asset_id or 'n/a'}]"
        )


class UnresolvedReferenceError(TicketingError):
    """Raised when a batch references a missing or already-consumed output."""

    code = "UNRESOLVED_REFERENCE"


class PolicyNotConfirmedError(TicketingError):
    """Raised when a purchase batch does not confirm the transfer request."""

    code = "POLICY_NOT_CONFIRMED"


class MalformedReportError(TicketingError):
    """Raised when an execution report lacks mandatory fields."""

    code = "MALFORMED_REPORT"


class InvalidTransitionError(TicketingError):
    """Raised when a transition is unknown or illegal from the current state."""

    code = "INVALID_TRANSITION"


class PreconditionFailedError(InvalidTransitionError):
    """
    Raised when a transition precondition does not hold.

    reason is one of the PRECONDITION_* codes below.
    """

    code = "PRECONDITION_FAILED"

    def __init__(
        self,
        reason: str,
        message: str,
        transition: Optional[str] = None,
        asset_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, transition=transition, asset_id=asset_id)
        self.reason = reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["reason"] = self.reason
        return data

    def __str__(self) -> str:
        return (
            f"{self.code}({self.reason}): {self.message} "
            f"[transition={self.transition or 'n/a'} asset={self.asset_id or 'n/a'}]"
        )


SUPPLY_EXHAUSTED = "SUPPLY_EXHAUSTED"
WRONG_STATE = "WRONG_STATE"
NOT_HOLDER = "NOT_HOLDER"
ESCROW_REQUIRED = "ESCROW_REQUIRED"
UNDERPAID = "UNDERPAID"
ALREADY_USED = "ALREADY_USED"
INVALID_PRICE = "INVALID_PRICE"
INVALID_ARGUMENT = "INVALID_ARGUMENT"


class LedgerExecutionFailure(TicketingError):
    """
    Raised when the ledger reports a failed batch.

    The transition did not happen. The caller may retry with a fresh batch.
    """

    code = "LEDGER_EXECUTION_FAILURE"

    def __init__(
        self,
        cause: Optional[str],
        transition: Optional[str] = None,
        asset_id: Optional[str] = None,
        digest: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"ledger rejected batch: {cause or 'no cause reported'}",
            transition=transition,
            asset_id=asset_id,
        )
        self.cause = cause
        self.digest = digest

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["cause"] = self.cause
        data["digest"] = self.digest
        return data


class IntegrityError(TicketingError):
    """Raised when a successful report contradicts what the batch should do."""

    code = "INTEGRITY_ERROR"


class SettlementMismatchError(IntegrityError):
    """Raised when settlement records do not conserve value."""

    code = "SETTLEMENT_MISMATCH"


class OwnershipMismatchError(IntegrityError):
    """Raised when a transferred asset lands with someone other than the buyer."""

    code = "OWNERSHIP_MISMATCH"


class FundingTimeoutError(TicketingError):
    """Raised when a bounded balance poll gives up."""

    code = "FUNDING_TIMEOUT"


class RoyaltyNotObservedWarning(UserWarning):
    """No settlement routed value to the configured royalty recipient."""


class UnexpectedSpendWarning(UserWarning):
    """Payer balance moved outside [spend, spend + fee allowance]."""
