"""
Hash commitment engine tests.

Covers word encodings, domain separation and the identity/owner commitment
formulas, checked against hashlib directly.
"""

import hashlib

import pytest

from zkaccess.commitment import (
    DOMAIN_SHIELDED_ID,
    DOMAIN_SHIELDED_PK,
    ZERO_COMMITMENT,
    build_commitment,
    commit,
    encode_counter,
    encode_domain,
    identity_hash,
    is_zero,
)
from zkaccess.hardening import EncodingError
from zkaccess.keys import encode_public_key


PK = encode_public_key("OWNER")
NONCE = b"\x01" * 32


def _sha(*parts: bytes) -> bytes:
    return hashlib.sha256(b"".join(parts)).digest()


class TestEncodings:
    """Counter and domain word encodings."""

    def test_counter_is_little_endian(self):
        encoded = encode_counter(1)
        assert len(encoded) == 32
        assert encoded[0] == 1
        assert encoded[1:] == bytes(31)

    def test_counter_zero(self):
        assert encode_counter(0) == bytes(32)

    def test_counter_uint64_max(self):
        encoded = encode_counter(2 ** 64 - 1)
        assert encoded[:8] == b"\xff" * 8
        assert encoded[8:] == bytes(24)

    def test_negative_counter_rejected(self):
        with pytest.raises(EncodingError, match="non-negative"):
            encode_counter(-1)

    def test_bool_counter_rejected(self):
        with pytest.raises(EncodingError):
            encode_counter(True)

    def test_counter_wider_than_word_rejected(self):
        with pytest.raises(EncodingError, match="Exceeds maximum"):
            encode_counter(2 ** 256)

    def test_domain_right_padded(self):
        encoded = encode_domain(DOMAIN_SHIELDED_PK)
        assert encoded == b"ZOwnablePK:shield:" + bytes(32 - len(DOMAIN_SHIELDED_PK))

    def test_domain_too_long_rejected(self):
        with pytest.raises(EncodingError, match="longer than 32"):
            encode_domain("x" * 33)

    def test_empty_domain_rejected(self):
        with pytest.raises(EncodingError):
            encode_domain("")

    def test_label_key_left_padded(self):
        assert PK == bytes(32 - len("OWNER")) + b"OWNER"


class TestCommit:
    """The raw fixed-arity hash."""

    def test_commit_is_sha256_of_concatenation(self):
        a, b = b"\xaa" * 32, b"\xbb" * 32
        assert commit([a, b]) == _sha(a, b)

    def test_commit_deterministic(self):
        assert commit([PK, NONCE]) == commit([PK, NONCE])

    def test_order_matters(self):
        assert commit([PK, NONCE]) != commit([NONCE, PK])

    def test_short_part_rejected(self):
        with pytest.raises(EncodingError, match="exactly 32 bytes"):
            commit([b"\x00" * 31])

    def test_long_part_rejected(self):
        with pytest.raises(EncodingError, match="exactly 32 bytes"):
            commit([PK, b"\x00" * 33])

    def test_non_bytes_part_rejected(self):
        with pytest.raises(EncodingError, match="Expected bytes"):
            commit([PK, "not bytes"])

    def test_empty_sequence_rejected(self):
        with pytest.raises(EncodingError):
            commit([])

    def test_single_value_rejected(self):
        with pytest.raises(EncodingError, match="sequence"):
            commit(PK)


class TestOwnerCommitment:
    """identity_hash and build_commitment formulas."""

    def test_identity_hash_formula(self):
        assert identity_hash(PK, NONCE) == _sha(PK, NONCE)

    def test_identity_hash_accepts_hex(self):
        assert identity_hash(PK.hex(), "0x" + NONCE.hex()) == identity_hash(PK, NONCE)

    def test_identity_hash_rejects_short_nonce(self):
        with pytest.raises(EncodingError, match="nonce"):
            identity_hash(PK, b"\x01" * 16)

    def test_build_commitment_formula(self):
        owner_id = identity_hash(PK, NONCE)
        expected = _sha(
            encode_domain(DOMAIN_SHIELDED_PK),
            _sha(encode_counter(1), owner_id),
        )
        assert build_commitment(DOMAIN_SHIELDED_PK, owner_id, 1) == expected

    def test_counter_rotates_commitment(self):
        owner_id = identity_hash(PK, NONCE)
        assert build_commitment(DOMAIN_SHIELDED_PK, owner_id, 1) != build_commitment(
            DOMAIN_SHIELDED_PK, owner_id, 2
        )

    def test_domains_separate_commitment_spaces(self):
        owner_id = identity_hash(PK, NONCE)
        assert build_commitment(DOMAIN_SHIELDED_PK, owner_id, 1) != build_commitment(
            DOMAIN_SHIELDED_ID, owner_id, 1
        )

    def test_commitment_of_zero_id_is_not_zero(self):
        assert not is_zero(build_commitment(DOMAIN_SHIELDED_PK, bytes(32), 1))

    def test_zero_sentinel(self):
        assert ZERO_COMMITMENT == bytes(32)
        assert is_zero(ZERO_COMMITMENT)
        assert not is_zero(b"\x00" * 31 + b"\x01")
