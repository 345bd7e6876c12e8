"""
Ed25519 signing for batches.

Key management is out of scope: keys are generated in memory or loaded
from an existing PEM file. Nothing here writes secret material.
"""

import hashlib
from typing import Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from .interfaces import Signer

# signature scheme flag prefixed to the public key before hashing
ED25519_FLAG = b"\x00"


def address_from_public_key(public_key: bytes) -> str:
    """
    Derive a 0x-prefixed 32-byte address: blake2b-256(flag || pubkey).
    """
    digest = hashlib.blake2b(ED25519_FLAG + public_key, digest_size=32).hexdigest()
    return "0x" + digest


class Ed25519Signer(Signer):
    """
    Ed25519 signing key wrapper.

    Provides:
    - Key generation
    - Key loading from PEM file
    - Signing of canonical batch bytes
    - Address derivation
    """

    def __init__(self, private_key: Ed25519PrivateKey, label: Optional[str] = None):
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self.label = label
        self._address = address_from_public_key(self.public_key_bytes())

    @classmethod
    def generate(cls, label: Optional[str] = None) -> "Ed25519Signer":
        """Generate a new in-memory Ed25519 keypair."""
        return cls(Ed25519PrivateKey.generate(), label=label)

    @classmethod
    def load_from_file(cls, path: str, label: Optional[str] = None) -> "Ed25519Signer":
        """
        Load private key from PEM file.

        Raises:
            FileNotFoundError: If key file doesn't exist
            ValueError: If key format is invalid
        """
        with open(path, "rb") as f:
            private_key = serialization.load_pem_private_key(f.read(), password=None)

        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError("Key file is not Ed25519 private key")

        return cls(private_key, label=label)

    def address(self) -> str:
        return self._address

    def sign(self, data: bytes) -> bytes:
        return self._private_key.sign(data)

    def public_key_bytes(self) -> bytes:
        return self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def __repr__(self) -> str:
        name = f" {self.label}" if self.label else ""
        return f"<Ed25519Signer{name} {self._address}>"


def verify_signature(public_key: bytes, data: bytes, signature: bytes) -> bool:
    """
    Verify an Ed25519 signature over data.

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, data)
        return True
    except (InvalidSignature, ValueError):
        return False
