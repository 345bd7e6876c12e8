"""
Block explorer links for digests, objects and addresses.
"""

from typing import Optional

EXPLORER_BASE = "https://suiscan.xyz"

NETWORKS = ("testnet", "mainnet", "devnet", "localnet")


def _base(network: str) -> Optional[str]:
    if network not in NETWORKS:
        raise ValueError(f"Unknown network: {network}")
    if network == "localnet":
        return None
    return f"{EXPLORER_BASE}/{network}"


def tx_url(digest: str, network: str = "testnet") -> Optional[str]:
    """Explorer URL for a transaction digest, or None on localnet."""
    base = _base(network)
    return f"{base}/tx/{digest}" if base and digest else None


def object_url(object_id: str, network: str = "testnet") -> Optional[str]:
    base = _base(network)
    return f"{base}/object/{object_id}" if base and object_id else None


def address_url(address: str, network: str = "testnet") -> Optional[str]:
    base = _base(network)
    return f"{base}/account/{address}" if base and address else None
