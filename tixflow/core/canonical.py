"""
Canonical batch bytes.

A batch is signed over these bytes and identified by their digest, so two
compositions of the same operations must serialize identically. Amounts are
integers in minor units; a float anywhere in the tree is an error.
"""

import hashlib
import json
from typing import Any

SEPARATORS = (",", ":")


def canonicalize(obj: Any) -> Any:
    """
    Normalize a batch descriptor tree.

    Mappings come back with sorted keys, tuples become lists.

    Raises:
        TypeError: On float values or non-string keys
    """
    if isinstance(obj, float):
        raise TypeError(f"float {obj!r} cannot be canonicalized; use integer minor units")
    if isinstance(obj, dict):
        out = {}
        for key in sorted(obj):
            if not isinstance(key, str):
                raise TypeError(f"descriptor keys must be strings, got {type(key).__name__}")
            out[key] = canonicalize(obj[key])
        return out
    if isinstance(obj, (list, tuple)):
        return [canonicalize(item) for item in obj]
    return obj


def canonical_json_str(obj: Any) -> str:
    return json.dumps(canonicalize(obj), sort_keys=True, separators=SEPARATORS, ensure_ascii=False)


def canonical_json_bytes(obj: Any) -> bytes:
    """UTF-8 bytes handed to Signer.sign()."""
    return canonical_json_str(obj).encode("utf-8")


def digest_of(obj: Any) -> str:
    """sha256 hex digest of the canonical bytes."""
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()
