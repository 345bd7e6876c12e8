"""
Bounded polling for asynchronous funding.

Lives outside the transactional core: submissions are never retried here.
A caller that needs an address funded before it can pay (e.g. after a
faucet request) polls with an explicit RetryPolicy.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.errors import FundingTimeoutError
from .interfaces import LedgerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """
    Fixed-interval poll with optional multiplicative backoff.

    Fields:
        interval: Seconds before the second attempt
        max_attempts: Total attempts, including the first
        backoff: Interval multiplier per attempt (1.0 keeps it fixed)
    """
    interval: float = 2.0
    max_attempts: int = 15
    backoff: float = 1.0

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError("interval must be >= 0")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff < 1.0:
            raise ValueError("backoff must be >= 1.0")

    def delays(self):
        """Sleep before each attempt after the first."""
        delay = self.interval
        for _ in range(self.max_attempts - 1):
            yield delay
            delay *= self.backoff

    @staticmethod
    def from_env() -> "RetryPolicy":
        return RetryPolicy(
            interval=float(os.getenv("TIX_POLL_INTERVAL_SECONDS", "2")),
            max_attempts=int(os.getenv("TIX_POLL_MAX_ATTEMPTS", "15")),
            backoff=float(os.getenv("TIX_POLL_BACKOFF", "1.0")),
        )


def wait_for_balance(
    ledger: LedgerClient,
    address: str,
    minimum: int,
    policy: Optional[RetryPolicy] = None,
    coin_type: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Poll until address holds at least minimum.

    Args:
        ledger: Ledger to query
        address: Address to watch
        minimum: Required balance in minor units
        policy: Poll schedule (default RetryPolicy())
        sleep: Injected for tests

    Returns:
        The observed balance

    Raises:
        FundingTimeoutError: If the balance stays below minimum
    """
    policy = policy or RetryPolicy()
    balance = ledger.get_balance(address, coin_type)
    if balance >= minimum:
        return balance

    for attempt, delay in enumerate(policy.delays(), start=2):
        logger.info(
            "waiting for funds: %s holds %d, need %d (attempt %d/%d)",
            address, balance, minimum, attempt, policy.max_attempts,
            extra={"trace_id": address},
        )
        sleep(delay)
        balance = ledger.get_balance(address, coin_type)
        if balance >= minimum:
            return balance

    raise FundingTimeoutError(
        f"{address} still holds {balance} after {policy.max_attempts} attempts, need {minimum}",
        transition="fund",
        asset_id=address,
    )
