"""
zkaccess Shielded Ownership

Commitment-based ownership: the ledger stores

    owner_commitment = H(domain, H(instance_counter, H(public_key, nonce)))

and never the owner's identity. A caller proves ownership by recomputing the
commitment from its public key and its locally held nonce (read through the
bound ``NonceWitness``), compared in constant time against the ledger.

State machine:

    Uninitialized --initialize--> Owned
    Owned --transfer_ownership--> Owned            (one-step)
    Owned --transfer_ownership--> PendingTransfer  (two-step)
    PendingTransfer --accept_ownership--> Owned
    Owned | PendingTransfer --renounce_ownership--> Renounced

Both surfaces (``ShieldedOwnable`` and ``ShieldedOwnable2Step``) compose the
same ``ShieldedOwnership`` core. Every public operation runs under the core's
lock inside a ledger transaction, and bumps ``instance_counter`` by exactly one
when it establishes an owner.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from zkaccess.commitment import (
    DOMAIN_SHIELDED_ID,
    DOMAIN_SHIELDED_PK,
    WORD_BYTES,
    ZERO_COMMITMENT,
    build_commitment,
    identity_hash,
    is_zero,
)
from zkaccess.config import get_config
from zkaccess.hardening import (
    CryptoUtils,
    ForbiddenError,
    InvalidOwnerError,
    InvariantViolation,
    SecurityViolation,
    ValidationError,
    audit_outcome,
    require_word,
)
from zkaccess.ledger import OwnershipLedger
from zkaccess.lifecycle import Initializable
from zkaccess.observability import AuditLogger, Layer, get_logger
from zkaccess.witness import NonceWitness


class CommitmentScheme(Enum):
    """What an owner identity is, and which domain separator commits it."""
    PUBLIC_KEY = "public_key"
    IDENTITY = "identity"

    @property
    def domain(self) -> str:
        return DOMAIN_SHIELDED_PK if self is CommitmentScheme.PUBLIC_KEY else DOMAIN_SHIELDED_ID


class OwnershipVariant(Enum):
    ONE_STEP = "one_step"
    TWO_STEP = "two_step"


class ShieldedOwnership:
    """
    Shared core of the shielded ownership surfaces.

    Holds the ledger, the commitment scheme, the bound witness and the
    initialization guard; knows how to recompute and check commitments.
    It does not decide the transfer protocol; the surfaces do.
    """

    def __init__(
        self,
        module: str,
        ledger: OwnershipLedger,
        scheme: CommitmentScheme = CommitmentScheme.PUBLIC_KEY,
        witness: Optional[NonceWitness] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.module = module
        self.ledger = ledger
        self.scheme = scheme
        self._witness = witness if witness is not None else NonceWitness()
        self._local_witness: contextvars.ContextVar[Optional[NonceWitness]] = contextvars.ContextVar(
            f"{module}_witness", default=None
        )
        self.initializable = Initializable(module)
        self._lock = threading.RLock()
        self._log = get_logger(module, Layer.OWNERSHIP)
        if audit is None and get_config().ownership.audit_transitions.get():
            audit = AuditLogger(self._log)
        self.audit = audit

    # -- witness binding ---------------------------------------------------

    @property
    def witness(self) -> NonceWitness:
        local = self._local_witness.get()
        return local if local is not None else self._witness

    @witness.setter
    def witness(self, witness: NonceWitness) -> None:
        with self._lock:
            self._witness = witness

    @contextmanager
    def local_witness(self, witness: NonceWitness) -> Iterator[NonceWitness]:
        """
        Bind ``witness`` for the duration of the block, then restore.

        The binding is local to the current thread or task; no lock is held
        while the block runs, and other callers keep the module's witness.
        """
        token = self._local_witness.set(witness)
        try:
            yield witness
        finally:
            self._local_witness.reset(token)

    # -- commitments -------------------------------------------------------

    def compute_owner_id(self, caller: bytes, nonce: bytes) -> bytes:
        return identity_hash(caller, nonce)

    def compute_owner_commitment(self, owner_id: bytes, counter: int) -> bytes:
        return build_commitment(self.scheme.domain, owner_id, counter)

    def caller_commitment(self, caller: bytes, counter: int) -> bytes:
        """Recompute the caller's commitment at ``counter`` using the bound witness."""
        caller = require_word(caller, "caller", WORD_BYTES)
        owner_id = self.compute_owner_id(caller, self.witness.secret_nonce())
        return self.compute_owner_commitment(owner_id, counter)

    def check_commitment(self, caller: bytes, expected: bytes, counter: int, reason: str) -> None:
        """ForbiddenError unless the caller's commitment equals a non-zero ``expected``."""
        candidate = self.caller_commitment(caller, counter)
        matches = CryptoUtils.secure_compare(candidate, expected)
        if is_zero(expected) or not matches:
            raise ForbiddenError(f"{self.module}: {reason}")

    def require_nonzero_id(self, owner_id: Any) -> bytes:
        owner_id = require_word(owner_id, "owner_id", WORD_BYTES)
        if is_zero(owner_id):
            raise InvalidOwnerError(f"{self.module}: invalid id", owner_id.hex())
        return owner_id

    # -- operations --------------------------------------------------------

    def assert_only_owner(self, caller: bytes) -> None:
        with self._lock:
            self.initializable.assert_initialized()
            self.check_commitment(
                caller,
                self.ledger.owner_commitment,
                self.ledger.instance_counter,
                "caller is not the owner",
            )

    def establish_owner(self, owner_id: bytes) -> None:
        """Bump the counter and commit ``owner_id`` at the new value."""
        counter = self.ledger.next_counter()
        commitment = self.compute_owner_commitment(owner_id, counter)
        self.ledger.bump_counter()
        self.ledger.owner_commitment = commitment

    @contextmanager
    def operation(self, action: str) -> Iterator[OwnershipLedger]:
        """
        Run one ownership operation atomically.

        Serializes on the instance lock, rolls the ledger back on failure, and
        records the outcome in the log and the audit trail.
        """
        start = time.monotonic()
        with self._lock:
            try:
                with self.ledger.transaction() as ledger:
                    yield ledger
            except (SecurityViolation, ValidationError, InvariantViolation) as e:
                self._log.operation(
                    action,
                    (time.monotonic() - start) * 1000,
                    success=False,
                    error_code=type(e).__name__,
                    reason=str(e),
                    instance_counter=self.ledger.instance_counter,
                )
                self._record(action, audit_outcome(e), error=type(e).__name__)
                raise
            self._log.operation(action, (time.monotonic() - start) * 1000)
            self._record(action, "success")

    def _record(self, action: str, outcome: str, **details: Any) -> None:
        if self.audit is None:
            return
        pending = self.ledger.pending_owner_commitment
        self.audit.log(
            module=self.module,
            action=action,
            outcome=outcome,
            instance_counter=self.ledger.instance_counter,
            owner_commitment=self.ledger.owner_commitment.hex(),
            pending_owner_commitment=pending.hex() if pending is not None else "",
            **details,
        )

    def initialize(self, owner_id: bytes) -> None:
        with self.operation("initialize"):
            self.initializable.assert_not_initialized()
            owner_id = self.require_nonzero_id(owner_id)
            self.establish_owner(owner_id)
            self.initializable.initialize()

    def state(self) -> Dict[str, Any]:
        with self._lock:
            return self.ledger.to_dict()


class _ShieldedSurface:
    """Delegating accessors shared by both ownership surfaces."""

    MODULE = "ShieldedOwnable"
    variant = OwnershipVariant.ONE_STEP

    def __init__(
        self,
        ledger: OwnershipLedger,
        owner_id: Optional[bytes] = None,
        scheme: CommitmentScheme = CommitmentScheme.PUBLIC_KEY,
        witness: Optional[NonceWitness] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self._core = ShieldedOwnership(self.MODULE, ledger, scheme, witness, audit)
        if owner_id is not None:
            self.initialize(owner_id)

    @property
    def scheme(self) -> CommitmentScheme:
        return self._core.scheme

    @property
    def ledger(self) -> OwnershipLedger:
        return self._core.ledger

    @property
    def audit(self) -> Optional[AuditLogger]:
        return self._core.audit

    @property
    def initializable(self) -> Initializable:
        return self._core.initializable

    @property
    def witness(self) -> NonceWitness:
        return self._core.witness

    @witness.setter
    def witness(self, witness: NonceWitness) -> None:
        self._core.witness = witness

    def local_witness(self, witness: NonceWitness):
        return self._core.local_witness(witness)

    def initialize(self, owner_id: bytes) -> None:
        """Set the first owner. Fails on a zero id or a second call."""
        self._core.initialize(owner_id)

    def owner(self) -> bytes:
        return self._core.ledger.owner_commitment

    def state(self) -> Dict[str, Any]:
        return self._core.state()

    def assert_only_owner(self, caller: bytes) -> None:
        """ForbiddenError unless ``caller`` with the bound nonce matches the owner."""
        self._core.assert_only_owner(caller)

    def _compute_owner_id(self, caller: bytes, nonce: bytes) -> bytes:
        return self._core.compute_owner_id(caller, nonce)

    def _compute_owner_commitment(self, owner_id: bytes, counter: int) -> bytes:
        return self._core.compute_owner_commitment(owner_id, counter)


class ShieldedOwnable(_ShieldedSurface):
    """
    One-step shielded ownership.

    ``transfer_ownership`` moves ownership immediately. The new owner's
    identity hash is supplied by the caller; only its commitment at the next
    counter value reaches the ledger.
    """

    MODULE = "ShieldedOwnable"
    variant = OwnershipVariant.ONE_STEP

    def __init__(
        self,
        owner_id: Optional[bytes] = None,
        scheme: CommitmentScheme = CommitmentScheme.PUBLIC_KEY,
        witness: Optional[NonceWitness] = None,
        audit: Optional[AuditLogger] = None,
    ):
        super().__init__(OwnershipLedger.one_step(), owner_id, scheme, witness, audit)

    def transfer_ownership(self, new_owner_id: bytes, caller: bytes) -> None:
        with self._core.operation("transfer"):
            self._core.assert_only_owner(caller)
            new_owner_id = self._core.require_nonzero_id(new_owner_id)
            self._core.establish_owner(new_owner_id)

    def renounce_ownership(self, caller: bytes) -> None:
        """Leave the module without an owner. Terminal."""
        with self._core.operation("renounce") as ledger:
            self._core.assert_only_owner(caller)
            ledger.bump_counter()
            ledger.owner_commitment = ZERO_COMMITMENT

    def _transfer_ownership(self, new_owner_id: bytes) -> None:
        """Transfer without an owner check, for composing modules. A zero id is allowed."""
        with self._core.operation("transfer"):
            self._core.initializable.assert_initialized()
            new_owner_id = require_word(new_owner_id, "owner_id", WORD_BYTES)
            self._core.establish_owner(new_owner_id)


class ShieldedOwnable2Step(_ShieldedSurface):
    """
    Two-step shielded ownership.

    ``transfer_ownership`` only proposes: it writes the new owner's commitment
    at ``instance_counter + 1`` into the pending slot. The current owner stays
    in control until the proposed owner calls ``accept_ownership``. A new
    proposal replaces the previous one.
    """

    MODULE = "ShieldedOwnable2Step"
    variant = OwnershipVariant.TWO_STEP

    def __init__(
        self,
        owner_id: Optional[bytes] = None,
        scheme: CommitmentScheme = CommitmentScheme.PUBLIC_KEY,
        witness: Optional[NonceWitness] = None,
        audit: Optional[AuditLogger] = None,
    ):
        super().__init__(OwnershipLedger.two_step(), owner_id, scheme, witness, audit)

    def pending_owner(self) -> bytes:
        return self._core.ledger.pending_owner_commitment

    def transfer_ownership(self, new_owner_id: bytes, caller: bytes) -> None:
        """Propose ``new_owner_id``; ownership does not move yet."""
        with self._core.operation("propose"):
            self._core.assert_only_owner(caller)
            self._write_pending(new_owner_id)

    def accept_ownership(self, caller: bytes) -> None:
        """Complete a pending transfer. Only the proposed identity may call this."""
        core = self._core
        with core.operation("accept") as ledger:
            core.initializable.assert_initialized()
            core.check_commitment(
                caller,
                ledger.pending_owner_commitment,
                ledger.next_counter(),
                "caller is not the pending owner",
            )
            ledger.bump_counter()
            ledger.owner_commitment = ledger.pending_owner_commitment
            ledger.pending_owner_commitment = ZERO_COMMITMENT

    def renounce_ownership(self, caller: bytes) -> None:
        """Clear both the owner and any pending proposal. Terminal."""
        with self._core.operation("renounce") as ledger:
            self._core.assert_only_owner(caller)
            ledger.bump_counter()
            ledger.owner_commitment = ZERO_COMMITMENT
            ledger.pending_owner_commitment = ZERO_COMMITMENT

    def _propose_owner(self, new_owner_id: bytes) -> None:
        """Proposal without an owner check, for composing modules. A zero id is rejected."""
        with self._core.operation("propose"):
            self._core.initializable.assert_initialized()
            self._write_pending(new_owner_id)

    def _write_pending(self, new_owner_id: bytes) -> None:
        core = self._core
        new_owner_id = core.require_nonzero_id(new_owner_id)
        counter = core.ledger.next_counter()
        core.ledger.pending_owner_commitment = core.compute_owner_commitment(new_owner_id, counter)

    def _transfer_ownership(self, new_owner_id: bytes) -> None:
        """Immediate transfer without an owner check; discards any pending proposal."""
        with self._core.operation("transfer") as ledger:
            self._core.initializable.assert_initialized()
            new_owner_id = require_word(new_owner_id, "owner_id", WORD_BYTES)
            self._core.establish_owner(new_owner_id)
            ledger.pending_owner_commitment = ZERO_COMMITMENT
