"""
Opaque identifier helpers.

The core never validates ledger-specific id encoding. An id is any
non-empty string.
"""

import hashlib
from typing import Optional

from .errors import INVALID_ARGUMENT, PreconditionFailedError


def require_id(value: Optional[str], field: str) -> str:
    """
    Return value if it is a usable opaque identifier.

    Raises:
        ValueError: If value is empty, blank or not a string
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field} must be a non-empty identifier")
    return value


def require_arg(value: Optional[str], field: str, transition: str, asset_id: Optional[str] = None) -> str:
    """
    require_id for transition inputs.

    Raises:
        PreconditionFailedError: INVALID_ARGUMENT, naming transition and asset_id
    """
    try:
        return require_id(value, field)
    except ValueError as e:
        raise PreconditionFailedError(
            INVALID_ARGUMENT, str(e), transition=transition, asset_id=asset_id
        ) from e


def stable_id(*parts: str) -> str:
    """
    Derive a 0x-prefixed 32-byte identifier from inputs (no randomness).

    Used by the simulated ledger for object ids and digests.

    Example:
        stable_id("object", "7") -> "0x3f9a..."
    """
    raw = "|".join(parts).encode("utf-8")
    return "0x" + hashlib.sha256(raw).hexdigest()


def shorten(value: str, chars: int = 4) -> str:
    """
    Shorten an id or address for display: 0x1234...5678
    """
    if not value:
        return ""
    if len(value) <= chars * 2 + 2:
        return value
    return f"{value[:chars + 2]}...{value[-chars:]}"
