"""
Private nonce store tests.

The nonce must never surface in reprs, pickles or logs, and the test-only
override must be refused unless explicitly enabled.
"""

import copy
import logging
import pickle

import pytest

from zkaccess.hardening import EncodingError, EntropyError, SecurityViolation
from zkaccess.witness import NonceWitness, RoleWitness, SecretState, generate, inject, reveal


NONCE = bytes(range(32))


class TestSecretState:
    """SecretState container."""

    def test_repr_hides_nonce(self):
        state = SecretState(NONCE)
        assert NONCE.hex() not in repr(state)
        assert repr(NONCE) not in repr(state)

    def test_refuses_pickle(self):
        with pytest.raises(SecurityViolation):
            pickle.dumps(SecretState(NONCE))

    def test_refuses_copy(self):
        with pytest.raises(SecurityViolation):
            copy.copy(SecretState(NONCE))

    def test_wrong_width_rejected(self):
        with pytest.raises(EncodingError, match="nonce"):
            SecretState(b"\x01" * 31)

    def test_immutable(self):
        state = SecretState(NONCE)
        with pytest.raises(AttributeError):
            state.nonce = bytes(32)


class TestGenerate:
    """Nonce generation from the CSPRNG."""

    def test_generates_32_bytes(self):
        assert len(generate().nonce) == 32

    def test_generated_nonces_differ(self):
        assert generate().nonce != generate().nonce

    def test_custom_source(self):
        state = generate(source=lambda n: b"\x07" * n)
        assert state.nonce == b"\x07" * 32

    def test_failing_source_raises_entropy_error(self):
        def broken(n):
            raise OSError("no entropy")

        with pytest.raises(EntropyError, match="unavailable"):
            generate(source=broken)

    def test_any_source_exception_becomes_entropy_error(self):
        def broken(n):
            raise RuntimeError("no entropy device")

        with pytest.raises(EntropyError, match="no entropy device") as exc:
            generate(source=broken)
        assert isinstance(exc.value.__cause__, RuntimeError)

    def test_short_source_raises_entropy_error(self):
        with pytest.raises(EntropyError, match="expected 32"):
            generate(source=lambda n: b"\x00" * (n - 1))

    def test_non_bytes_source_raises_entropy_error(self):
        with pytest.raises(EntropyError):
            generate(source=lambda n: "x" * n)


class TestRevealInject:
    """Witness read and the guarded override."""

    def test_reveal_returns_state_and_nonce(self):
        state = SecretState(NONCE)
        same, nonce = reveal(state)
        assert same is state
        assert nonce == NONCE

    def test_inject_disabled_by_default(self):
        with pytest.raises(SecurityViolation, match="disabled"):
            inject(SecretState(NONCE), bytes(32))

    def test_inject_when_enabled(self, allow_injection):
        replaced = inject(SecretState(NONCE), b"\x09" * 32)
        assert replaced.nonce == b"\x09" * 32

    def test_inject_wrong_width(self, allow_injection):
        with pytest.raises(EncodingError):
            inject(SecretState(NONCE), b"\x09" * 8)


class TestNonceWitness:
    """The bound witness capability."""

    def test_secret_nonce_is_stable(self):
        witness = NonceWitness()
        assert witness.secret_nonce() == witness.secret_nonce()

    def test_repr_hides_nonce(self):
        witness = NonceWitness(SecretState(NONCE))
        assert NONCE.hex() not in repr(witness)

    def test_inject_secret_nonce_requires_flag(self):
        witness = NonceWitness(SecretState(NONCE))
        with pytest.raises(SecurityViolation):
            witness.inject_secret_nonce(bytes(32))
        assert witness.secret_nonce() == NONCE

    def test_current_secret_nonce_requires_flag(self):
        with pytest.raises(SecurityViolation):
            NonceWitness(SecretState(NONCE)).current_secret_nonce()

    def test_inject_then_read(self, allow_injection):
        witness = NonceWitness(SecretState(NONCE))
        witness.inject_secret_nonce(b"\x05" * 32)
        assert witness.current_secret_nonce() == b"\x05" * 32
        assert witness.secret_nonce() == b"\x05" * 32

    def test_nonce_never_logged(self, caplog):
        caplog.set_level(logging.DEBUG, logger="zkaccess")
        witness = NonceWitness(generate(source=lambda n: b"\x42" * n))
        witness.secret_nonce()
        with pytest.raises(SecurityViolation):
            witness.inject_secret_nonce(b"\x43" * 32)
        for record in caplog.records:
            text = record.getMessage() + repr(getattr(record, "context", {}))
            assert (b"\x42" * 32).hex() not in text
            assert (b"\x43" * 32).hex() not in text


class TestRoleWitness:
    """One nonce per role id."""

    ROLE = (1).to_bytes(32, "little")

    def test_set_role_generates_nonce(self):
        witness = RoleWitness()
        assert not witness.holds(self.ROLE)
        state = witness.set_role(self.ROLE)
        assert witness.holds(self.ROLE)
        assert witness.secret_nonce(self.ROLE) == state.nonce

    def test_nonces_are_per_role(self):
        other = (2).to_bytes(32, "little")
        witness = RoleWitness({self.ROLE: SecretState(b"\x01" * 32), other: SecretState(b"\x02" * 32)})
        assert witness.secret_nonce(self.ROLE) != witness.secret_nonce(other)

    def test_missing_role(self):
        with pytest.raises(SecurityViolation, match="No secret nonce held for role"):
            RoleWitness().secret_nonce(self.ROLE)

    def test_repr_hides_nonces(self):
        witness = RoleWitness({self.ROLE: SecretState(b"\x09" * 32)})
        assert "09" * 32 not in repr(witness)

    def test_inject_requires_flag(self):
        witness = RoleWitness({self.ROLE: SecretState(b"\x01" * 32)})
        with pytest.raises(SecurityViolation):
            witness.inject_secret_nonce(self.ROLE, b"\x02" * 32)
        assert witness.secret_nonce(self.ROLE) == b"\x01" * 32

    def test_inject_when_enabled(self, allow_injection):
        witness = RoleWitness({self.ROLE: SecretState(b"\x01" * 32)})
        witness.inject_secret_nonce(self.ROLE, b"\x02" * 32)
        assert witness.secret_nonce(self.ROLE) == b"\x02" * 32

    def test_wrong_width_role_id(self):
        with pytest.raises(EncodingError):
            RoleWitness().set_role(b"\x01")
