"""
External collaborator contracts.

- Signer: signing capability bound to one address (Key Custody Provider)
- LedgerClient: submits a composed batch and returns a raw execution report

The core never reads raw secret material and never retries a submission;
retry policy belongs to the caller (see ledger.retry).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..compose.batch import Batch


@dataclass(frozen=True)
class ReportOptions:
    """
    Which optional sections the ledger should include in its report.

    A node may honour these partially; the extractor copes with absent
    sections either way.
    """
    show_object_changes: bool = True
    show_balance_changes: bool = True
    show_events: bool = True
    show_effects: bool = True


DEFAULT_REPORT_OPTIONS = ReportOptions()


class Signer(ABC):
    """
    Signing capability for one identity.

    Implementations must never expose the private key.
    """

    @abstractmethod
    def address(self) -> str:
        """Ledger address derived from the public key."""
        ...

    @abstractmethod
    def sign(self, data: bytes) -> bytes:
        """Sign canonical batch bytes."""
        ...

    @abstractmethod
    def public_key_bytes(self) -> bytes:
        """Raw public key, for signature verification by the ledger."""
        ...


class LedgerClient(ABC):
    """
    Abstract ledger interface.

    All implementations must guarantee:
    - Atomic batches (every operation applies or none does)
    - One report per submit, with a mandatory status
    """

    @abstractmethod
    def submit(
        self, batch: Batch, signer: Signer, options: Optional[ReportOptions] = None
    ) -> Dict[str, Any]:
        """
        Sign and execute batch.

        Args:
            batch: Composed batch
            signer: Sender's signing capability (pays fees)
            options: Report sections to include

        Returns:
            Raw execution report dict
        """
        ...

    @abstractmethod
    def get_balance(self, address: str, coin_type: Optional[str] = None) -> int:
        """Balance of address in coin_type (native coin by default), minor units."""
        ...

    @abstractmethod
    def get_object(self, object_id: str) -> Dict[str, Any]:
        """
        Current snapshot of object_id.

        Raises:
            KeyError: If the object does not exist
        """
        ...
