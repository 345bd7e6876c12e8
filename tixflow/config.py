"""
Explicit configuration for the orchestration engine.

Built once at the edge (CLI, service bootstrap, tests) and passed by
reference into the composer users, coordinator, lifecycle and orchestrator.
Core logic never reads the environment.

Environment Variables (read only by TicketingConfig.from_env):
    TIX_PACKAGE_ID: Ticketing package address (required)
    TIX_POLICY_ID: Default transfer approval object id
    TIX_NETWORK: testnet, mainnet, devnet, localnet - default: testnet
    TIX_FEE_ALLOWANCE: Network fee allowance in minor units
    TIX_ROYALTY_RECIPIENT: Address expected to receive royalties
    TIX_ROYALTY_BPS: Royalty rate in basis points
    TIX_TYPE_MATCH: substring, exact - default: substring
"""

import os
from pathlib import Path
from typing import Dict, Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator, model_validator

FRAMEWORK = "0x2"
BPS_DENOMINATOR = 10_000

Network = Literal["testnet", "mainnet", "devnet", "localnet"]


class GasBudgets(BaseModel):
    """Declared resource budget per batch kind, in minor units."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    create_event: StrictInt = 5_000_000
    create_class: StrictInt = 5_000_000
    mint: StrictInt = 5_000_000
    create_escrow: StrictInt = 10_000_000
    list: StrictInt = 10_000_000
    create_policy: StrictInt = 50_000_000
    buy_and_approve: StrictInt = 20_000_000
    check_in: StrictInt = 5_000_000


class RoyaltySplit(BaseModel):
    """
    How a royalty is divided, in basis points of the royalty amount.

    Defaults to 90/8/2 artist/organizer/platform.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    artist: StrictInt = Field(default=9_000, ge=0, le=BPS_DENOMINATOR)
    organizer: StrictInt = Field(default=800, ge=0, le=BPS_DENOMINATOR)
    platform: StrictInt = Field(default=200, ge=0, le=BPS_DENOMINATOR)

    @model_validator(mode="after")
    def _sums_to_whole(self) -> "RoyaltySplit":
        if self.artist + self.organizer + self.platform != BPS_DENOMINATOR:
            raise ValueError("royalty split must sum to 10000 basis points")
        return self


class RoyaltyConfig(BaseModel):
    """Royalty expectation checked by the reconciler."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    recipient: str
    bps: StrictInt = Field(default=1_000, ge=0, le=BPS_DENOMINATOR)
    split: RoyaltySplit = Field(default_factory=RoyaltySplit)
    split_recipients: Dict[str, str] = Field(default_factory=dict)

    @field_validator("recipient")
    @classmethod
    def _recipient_present(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("royalty recipient must be non-empty")
        return value


class TicketingConfig(BaseModel):
    """
    Package/policy identifiers and budgets for one deployment.

    Usage:
        config = TicketingConfig(package_id="0xabc")
        config.ticket_type  # "0xabc::ticket::Ticket"
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    package_id: str
    policy_id: Optional[str] = None
    network: Network = "testnet"
    gas: GasBudgets = Field(default_factory=GasBudgets)
    fee_allowance: StrictInt = Field(default=20_000_000, ge=0)
    royalty: Optional[RoyaltyConfig] = None
    type_match: Literal["substring", "exact"] = "substring"

    @field_validator("package_id")
    @classmethod
    def _package_present(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("package_id must be non-empty")
        return value

    @property
    def ticket_type(self) -> str:
        return f"{self.package_id}::ticket::Ticket"

    def target(self, module: str, function: str) -> str:
        """Fully qualified entry point in the ticketing package."""
        return f"{self.package_id}::{module}::{function}"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TicketingConfig":
        """
        Build config from TIX_* variables.

        Raises:
            ValueError: If TIX_PACKAGE_ID is missing
        """
        env = os.environ if environ is None else environ
        package_id = env.get("TIX_PACKAGE_ID", "")
        if not package_id:
            raise ValueError("Missing required environment variable: TIX_PACKAGE_ID")

        kwargs = {"package_id": package_id}
        if env.get("TIX_POLICY_ID"):
            kwargs["policy_id"] = env["TIX_POLICY_ID"]
        if env.get("TIX_NETWORK"):
            kwargs["network"] = env["TIX_NETWORK"]
        if env.get("TIX_FEE_ALLOWANCE"):
            kwargs["fee_allowance"] = int(env["TIX_FEE_ALLOWANCE"])
        if env.get("TIX_TYPE_MATCH"):
            kwargs["type_match"] = env["TIX_TYPE_MATCH"]
        if env.get("TIX_ROYALTY_RECIPIENT"):
            royalty = {"recipient": env["TIX_ROYALTY_RECIPIENT"]}
            if env.get("TIX_ROYALTY_BPS"):
                royalty["bps"] = int(env["TIX_ROYALTY_BPS"])
            kwargs["royalty"] = RoyaltyConfig(**royalty)
        return cls(**kwargs)

    @classmethod
    def from_env_file(cls, path: str) -> "TicketingConfig":
        """
        Build config from a shell env file of `export KEY=value` lines.

        Bare names (PACKAGE_ID, POLICY_ID, NETWORK) are accepted alongside
        TIX_-prefixed ones.
        """
        values: Dict[str, str] = {}
        for raw in Path(path).read_text(encoding="utf-8").splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export "):]
            key, sep, value = line.partition("=")
            if not sep:
                continue
            key = key.strip()
            if not key.startswith("TIX_"):
                key = "TIX_" + key
            values[key] = value.strip().strip("'\"")
        return cls.from_env(values)
