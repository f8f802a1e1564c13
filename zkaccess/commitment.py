"""Hash commitment engine for shielded ownership.

Fixed-arity, domain-separated commitments over 32-byte words. Every input is
a word of exactly ``WORD_BYTES`` bytes; nothing is padded or truncated here, so
callers encode each value first (``encode_counter``, ``encode_domain``).

Hashing:
- SHA-256 over the concatenation of the words
- identity hash     = H(public_key || nonce)
- owner commitment  = H(domain || H(counter || identity_hash))
- account id        = H(nonce || account)
- role commitment   = H(account_id || role_id || index || domain)

Encodings:
- counter: 32-byte little-endian unsigned integer
- domain:  UTF-8 bytes right-padded with zeros to 32 bytes

The counter folded into every owner commitment means re-committing the same
(public_key, nonce) pair under a later counter yields an unrelated digest.
"""

from __future__ import annotations

import hashlib
from typing import Any, Sequence

from zkaccess.hardening import EncodingError, Validators, require_word

WORD_BYTES = 32

# Reserved "no owner" / "no pending owner" value
ZERO_COMMITMENT = bytes(WORD_BYTES)

# One domain per scheme; two schemes must never share a commitment space
DOMAIN_SHIELDED_PK = "ZOwnablePK:shield:"
DOMAIN_SHIELDED_ID = "ZOwnable:shield:"
DOMAIN_ROLE_COMMITMENT = "ShieldedAccessControl:commitment"


def _check_parts(parts: Sequence[Any]) -> None:
    if isinstance(parts, (bytes, bytearray, str)):
        raise EncodingError("parts", "Expected a sequence of words, not a single value", parts)
    if len(parts) == 0:
        raise EncodingError("parts", "At least one word is required", parts)
    for i, part in enumerate(parts):
        if not isinstance(part, (bytes, bytearray)):
            raise EncodingError(f"parts[{i}]", f"Expected bytes, got {type(part).__name__}", part)
        if len(part) != WORD_BYTES:
            raise EncodingError(
                f"parts[{i}]",
                f"Expected exactly {WORD_BYTES} bytes, got {len(part)}",
                part,
            )


def commit(parts: Sequence[bytes]) -> bytes:
    """Hash an ordered sequence of 32-byte words into a 32-byte digest."""
    _check_parts(parts)
    h = hashlib.sha256()
    for part in parts:
        h.update(bytes(part))
    return h.digest()


def encode_counter(counter: int) -> bytes:
    """Encode an unsigned counter as a 32-byte little-endian word."""
    result = Validators.validate_unsigned(counter, "counter", max_value=2 ** (8 * WORD_BYTES) - 1)
    result.raise_if_invalid()
    return counter.to_bytes(WORD_BYTES, "little")


def encode_domain(domain: str) -> bytes:
    """Encode a domain separator as UTF-8 right-padded with zeros."""
    if not isinstance(domain, str) or not domain:
        raise EncodingError("domain", "Domain separator must be a non-empty string", domain)
    raw = domain.encode("utf-8")
    if len(raw) > WORD_BYTES:
        raise EncodingError("domain", f"Domain separator longer than {WORD_BYTES} bytes", domain)
    return raw.ljust(WORD_BYTES, b"\x00")


def identity_hash(public_key: bytes, nonce: bytes) -> bytes:
    """Bind a public key to a secret nonce: H(public_key, nonce)."""
    return commit([
        require_word(public_key, "public_key", WORD_BYTES),
        require_word(nonce, "nonce", WORD_BYTES),
    ])


def build_commitment(domain: str, owner_id: bytes, counter: int) -> bytes:
    """Owner commitment: H(domain, H(counter, owner_id))."""
    inner = commit([encode_counter(counter), require_word(owner_id, "owner_id", WORD_BYTES)])
    return commit([encode_domain(domain), inner])


def create_account_id(account: bytes, nonce: bytes) -> bytes:
    """Bind an account to its per-role nonce: H(nonce, account)."""
    return commit([
        require_word(nonce, "nonce", WORD_BYTES),
        require_word(account, "account", WORD_BYTES),
    ])


def role_commitment(account_id: bytes, role_id: bytes, index: int) -> bytes:
    """Role commitment at position ``index`` of the role set."""
    return commit([
        require_word(account_id, "account_id", WORD_BYTES),
        require_word(role_id, "role_id", WORD_BYTES),
        encode_counter(index),
        encode_domain(DOMAIN_ROLE_COMMITMENT),
    ])


def is_zero(value: bytes) -> bool:
    """True for the reserved all-zero sentinel."""
    return bytes(value) == ZERO_COMMITMENT
