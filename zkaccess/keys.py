"""zkaccess.keys

Caller identities for shielded ownership.

A caller is identified on the wire by a raw 32-byte public key. Production
callers hold an Ed25519 keypair (the raw public key is exactly one hash word);
tests and fixtures may derive deterministic keys from short ASCII labels.

An ``OwnerIdentity`` pairs a keypair with the identity's own ``NonceWitness``,
which is everything a process needs to compute its identity hash and to pass
ownership guards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey

from zkaccess.commitment import WORD_BYTES, identity_hash
from zkaccess.hardening import EncodingError, require_word
from zkaccess.witness import NonceWitness


def encode_public_key(label: str) -> bytes:
    """Deterministic test key: ASCII label left-padded with zeros to 32 bytes."""
    raw = label.encode("ascii")
    if len(raw) > WORD_BYTES:
        raise EncodingError("label", f"Label longer than {WORD_BYTES} bytes", label)
    return raw.rjust(WORD_BYTES, b"\x00")


def public_key_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


@dataclass
class Keypair:
    """Ed25519 keypair whose raw public key is used as the caller key."""
    private_key: Ed25519PrivateKey = field(repr=False)

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_private_bytes(cls, raw: bytes) -> "Keypair":
        raw = require_word(raw, "private_key", WORD_BYTES)
        return cls(Ed25519PrivateKey.from_private_bytes(raw))

    @property
    def public_key(self) -> bytes:
        return public_key_bytes(self.private_key.public_key())

    def private_bytes(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def private_pem(self) -> bytes:
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )


class OwnerIdentity:
    """A caller process: public key plus its private nonce witness."""

    def __init__(
        self,
        public_key: bytes,
        witness: Optional[NonceWitness] = None,
        keypair: Optional[Keypair] = None,
    ):
        self.public_key = require_word(public_key, "public_key", WORD_BYTES)
        self.witness = witness or NonceWitness()
        self.keypair = keypair

    @classmethod
    def generate(cls) -> "OwnerIdentity":
        """Fresh Ed25519 keypair and fresh nonce."""
        keypair = Keypair.generate()
        return cls(keypair.public_key, keypair=keypair)

    @classmethod
    def from_label(cls, label: str, witness: Optional[NonceWitness] = None) -> "OwnerIdentity":
        return cls(encode_public_key(label), witness=witness)

    def identity_hash(self) -> bytes:
        """H(public_key, nonce), the value handed to initialize/transfer."""
        return identity_hash(self.public_key, self.witness.secret_nonce())

    def __repr__(self) -> str:
        return f"OwnerIdentity(public_key={self.public_key.hex()})"
