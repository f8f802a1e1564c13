"""
zkaccess Private Nonce Store

Private witness data for shielded ownership. Each identity's process holds one
32-byte secret nonce; ownership modules read it through a ``NonceWitness``
bound to the local process at call time. The nonce is never an operation
argument, return value, log field or ledger write.

    generate()          fresh nonce from the CSPRNG
    reveal(state)       witness read, for local use inside an operation
    inject(state, n)    test-only override, disabled unless configured

``RoleWitness`` holds one such state per role for shielded access control.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from zkaccess.config import get_config
from zkaccess.hardening import CryptoUtils, SecurityViolation, require_word
from zkaccess.observability import Layer, get_logger, timed_operation

NONCE_BYTES = 32

_log = get_logger("nonce_store", Layer.WITNESS)


@dataclass(frozen=True)
class SecretState:
    """
    Private state of one identity: its secret nonce.

    The nonce is excluded from repr and the object cannot be pickled, so it
    cannot leak through logs or serialized request structures.
    """
    nonce: bytes = field(repr=False)

    def __post_init__(self):
        object.__setattr__(self, "nonce", require_word(self.nonce, "nonce", NONCE_BYTES))

    def __reduce_ex__(self, protocol):
        raise SecurityViolation("SecretState cannot be serialized")


@timed_operation(_log, "generate")
def generate(source: Optional[Callable[[int], bytes]] = None) -> SecretState:
    """Create a private state with a fresh random nonce. Raises EntropyError."""
    return SecretState(nonce=CryptoUtils.secure_random_bytes(NONCE_BYTES, source=source))


def reveal(state: SecretState) -> Tuple[SecretState, bytes]:
    """Witness read: returns the (unchanged) state and its nonce."""
    return state, state.nonce


def injection_allowed() -> bool:
    return bool(get_config().witness.allow_injection.get())


def inject(state: Optional[SecretState], nonce: bytes) -> SecretState:
    """
    Replace the nonce (negative-path testing only).

    Raises SecurityViolation unless ``witness.allow_injection`` is enabled.
    """
    if not injection_allowed():
        _log.warning(
            "Rejected nonce injection",
            operation="inject",
            error_code="WITNESS_INJECTION_DISABLED",
        )
        raise SecurityViolation("Nonce injection is disabled outside test configurations")
    return SecretState(nonce=nonce)


class NonceWitness:
    """
    The local process's witness capability.

    Ownership modules hold one of these and call ``secret_nonce()`` while
    evaluating a guard. Swapping the bound witness models a different
    process calling in.
    """

    def __init__(self, state: Optional[SecretState] = None):
        self._state = state if state is not None else generate()
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return "NonceWitness(<secret>)"

    def secret_nonce(self) -> bytes:
        with self._lock:
            self._state, nonce = reveal(self._state)
            return nonce

    def inject_secret_nonce(self, nonce: bytes) -> SecretState:
        """Stub a new nonce into the private state (test-only)."""
        with self._lock:
            self._state = inject(self._state, nonce)
            return self._state

    def current_secret_nonce(self) -> bytes:
        """Read the nonce for test assertions (test-only)."""
        if not injection_allowed():
            raise SecurityViolation("Nonce inspection is disabled outside test configurations")
        with self._lock:
            return self._state.nonce


class RoleWitness:
    """
    Per-role nonces of the local process.

    Shielded access control derives a separate account id for every role,
    so one identity holds one ``SecretState`` per role id.
    """

    def __init__(self, roles: Optional[Dict[bytes, SecretState]] = None):
        self._roles: Dict[bytes, SecretState] = {}
        for role_id, state in (roles or {}).items():
            self._roles[require_word(role_id, "role_id", NONCE_BYTES)] = state
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"RoleWitness(roles={len(self._roles)})"

    def holds(self, role_id: bytes) -> bool:
        with self._lock:
            return bytes(role_id) in self._roles

    def set_role(self, role_id: bytes, state: Optional[SecretState] = None) -> SecretState:
        """Hold ``state`` (or a fresh nonce) for ``role_id``, replacing any previous one."""
        role_id = require_word(role_id, "role_id", NONCE_BYTES)
        state = state if state is not None else generate()
        with self._lock:
            self._roles[role_id] = state
        return state

    def secret_nonce(self, role_id: bytes) -> bytes:
        with self._lock:
            state = self._roles.get(bytes(role_id))
            if state is None:
                raise SecurityViolation("No secret nonce held for role")
            self._roles[bytes(role_id)], nonce = reveal(state)
            return nonce

    def inject_secret_nonce(self, role_id: bytes, nonce: bytes) -> SecretState:
        """Stub a new nonce for ``role_id`` (test-only)."""
        role_id = require_word(role_id, "role_id", NONCE_BYTES)
        with self._lock:
            state = inject(self._roles.get(role_id), nonce)
            self._roles[role_id] = state
            return state
