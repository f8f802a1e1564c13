"""
zkaccess Shielded Access Control

Role membership recorded on the ledger as commitments only:

    account_id      = H(nonce_for_role, account)
    role_commitment = H(account_id, role_id, index, domain)

``index`` is the position the grant takes in the append-only commitment list,
so granting a role again after a revocation produces an unrelated commitment.
Revoked commitments stay in the list and are also recorded in a revoked set;
an account holds a role while one of its commitments is present and not
revoked.

A caller proves membership by recomputing its account id from its public key
and the nonce it holds for that role (read through the bound ``RoleWitness``).
Each role is administered by an admin role, ``DEFAULT_ADMIN_ROLE`` unless
changed with ``_set_role_admin``.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from zkaccess.commitment import WORD_BYTES, ZERO_COMMITMENT, create_account_id, is_zero, role_commitment
from zkaccess.config import get_config
from zkaccess.hardening import (
    CryptoUtils,
    ForbiddenError,
    InvalidAccountError,
    InvariantViolation,
    SecurityViolation,
    ValidationError,
    audit_outcome,
    require_word,
)
from zkaccess.ledger import RoleLedger
from zkaccess.observability import AuditLogger, Layer, get_logger
from zkaccess.witness import RoleWitness

DEFAULT_ADMIN_ROLE = ZERO_COMMITMENT


@dataclass(frozen=True)
class RoleCheck:
    """Result of a membership lookup."""
    role_commitment: bytes
    has_role: bool


class ShieldedAccessControl:
    """
    Role-based access control over shielded role commitments.

    Public operations take an ``account_id`` (computed by the account holder
    and handed over, like an owner id) and a ``caller`` public key that is
    checked against the caller's own commitment for the admin role.
    """

    MODULE = "ShieldedAccessControl"

    def __init__(
        self,
        admin_id: Optional[bytes] = None,
        witness: Optional[RoleWitness] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self.ledger = RoleLedger()
        self._witness = witness if witness is not None else RoleWitness()
        self._local_witness: contextvars.ContextVar[Optional[RoleWitness]] = contextvars.ContextVar(
            f"{self.MODULE}_witness", default=None
        )
        self._lock = threading.RLock()
        self._log = get_logger(self.MODULE, Layer.ACCESS)
        if audit is None and get_config().ownership.audit_transitions.get():
            audit = AuditLogger(self._log)
        self.audit = audit
        if admin_id is not None:
            self._grant_role(DEFAULT_ADMIN_ROLE, admin_id)

    # -- witness binding ---------------------------------------------------

    @property
    def witness(self) -> RoleWitness:
        local = self._local_witness.get()
        return local if local is not None else self._witness

    @witness.setter
    def witness(self, witness: RoleWitness) -> None:
        with self._lock:
            self._witness = witness

    @contextmanager
    def local_witness(self, witness: RoleWitness) -> Iterator[RoleWitness]:
        """Bind ``witness`` for the current thread or task until the block exits."""
        token = self._local_witness.set(witness)
        try:
            yield witness
        finally:
            self._local_witness.reset(token)

    # -- commitments -------------------------------------------------------

    def account_id(self, role_id: bytes, account: bytes) -> bytes:
        """The caller's account id for ``role_id``, from the bound witness."""
        role_id = require_word(role_id, "role_id", WORD_BYTES)
        account = require_word(account, "account", WORD_BYTES)
        witness = self.witness
        if not witness.holds(role_id):
            raise ForbiddenError(f"{self.MODULE}: unauthorized account")
        return create_account_id(account, witness.secret_nonce(role_id))

    def _find(self, role_id: bytes, account_id: bytes) -> Tuple[Optional[int], bytes]:
        """Index and commitment of ``account_id``'s newest grant, or the next free slot."""
        commitments = self.ledger.role_commitments
        for index in range(len(commitments) - 1, -1, -1):
            candidate = role_commitment(account_id, role_id, index)
            if CryptoUtils.secure_compare(candidate, commitments[index]):
                return index, candidate
        next_index = self.ledger.next_index
        return None, role_commitment(account_id, role_id, next_index)

    def has_role(self, role_id: bytes, account_id: bytes) -> RoleCheck:
        role_id = require_word(role_id, "role_id", WORD_BYTES)
        account_id = require_word(account_id, "account_id", WORD_BYTES)
        with self._lock:
            index, commitment = self._find(role_id, account_id)
            held = index is not None and self.ledger.is_active(commitment)
            return RoleCheck(role_commitment=commitment, has_role=held)

    def get_role_admin(self, role_id: bytes) -> bytes:
        role_id = require_word(role_id, "role_id", WORD_BYTES)
        with self._lock:
            return self.ledger.role_admins.get(role_id, DEFAULT_ADMIN_ROLE)

    # -- guards ------------------------------------------------------------

    def _check_role(self, role_id: bytes, account_id: bytes) -> None:
        if not self.has_role(role_id, account_id).has_role:
            raise ForbiddenError(f"{self.MODULE}: unauthorized account")

    def assert_only_role(self, role_id: bytes, caller: bytes) -> None:
        """ForbiddenError unless ``caller`` with its nonce for the role holds ``role_id``."""
        with self._lock:
            self._check_role(role_id, self.account_id(role_id, caller))

    # -- operations --------------------------------------------------------

    @contextmanager
    def operation(self, action: str, role_id: bytes) -> Iterator[RoleLedger]:
        """Run one role operation atomically, then log and audit the outcome."""
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
                    role_commitments=self.ledger.next_index,
                )
                self._record(action, audit_outcome(e), role_id, error=type(e).__name__)
                raise
            self._log.operation(action, (time.monotonic() - start) * 1000)
            self._record(action, "success", role_id)

    def _record(self, action: str, outcome: str, role_id: Any, **details: Any) -> None:
        if self.audit is None:
            return
        role = bytes(role_id).hex() if isinstance(role_id, (bytes, bytearray)) else str(role_id)
        self.audit.log(
            module=self.MODULE,
            action=action,
            outcome=outcome,
            instance_counter=self.ledger.next_index,
            role_id=role,
            **details,
        )

    def grant_role(self, role_id: bytes, account_id: bytes, caller: bytes) -> bool:
        """Grant ``role_id`` to ``account_id``. The caller must hold the role's admin role."""
        with self.operation("grant", role_id):
            self.assert_only_role(self.get_role_admin(role_id), caller)
            return self._apply_grant(role_id, account_id)

    def revoke_role(self, role_id: bytes, account_id: bytes, caller: bytes) -> bool:
        """Revoke ``role_id`` from ``account_id``. The caller must hold the role's admin role."""
        with self.operation("revoke", role_id):
            self.assert_only_role(self.get_role_admin(role_id), caller)
            return self._apply_revoke(role_id, account_id)

    def renounce_role(self, role_id: bytes, caller: bytes) -> None:
        """Give up ``role_id`` held by the caller."""
        with self.operation("renounce", role_id):
            account_id = self.account_id(role_id, caller)
            self._check_role(role_id, account_id)
            self._apply_revoke(role_id, account_id)

    def _set_role_admin(self, role_id: bytes, admin_role: bytes) -> None:
        with self.operation("set_admin", role_id) as ledger:
            role_id = require_word(role_id, "role_id", WORD_BYTES)
            ledger.role_admins[role_id] = require_word(admin_role, "admin_role", WORD_BYTES)

    def _grant_role(self, role_id: bytes, account_id: bytes) -> bool:
        """Grant without an admin check, for composing modules."""
        with self.operation("grant", role_id):
            return self._apply_grant(role_id, account_id)

    def _revoke_role(self, role_id: bytes, account_id: bytes) -> bool:
        """Revoke without an admin check, for composing modules."""
        with self.operation("revoke", role_id):
            return self._apply_revoke(role_id, account_id)

    def _apply_grant(self, role_id: bytes, account_id: bytes) -> bool:
        role_id = require_word(role_id, "role_id", WORD_BYTES)
        account_id = require_word(account_id, "account_id", WORD_BYTES)
        if is_zero(account_id):
            raise InvalidAccountError(f"{self.MODULE}: invalid account", account_id.hex())
        check = self.has_role(role_id, account_id)
        if check.has_role:
            return False
        self.ledger.append(role_commitment(account_id, role_id, self.ledger.next_index))
        return True

    def _apply_revoke(self, role_id: bytes, account_id: bytes) -> bool:
        role_id = require_word(role_id, "role_id", WORD_BYTES)
        account_id = require_word(account_id, "account_id", WORD_BYTES)
        check = self.has_role(role_id, account_id)
        if not check.has_role:
            return False
        self.ledger.revoke(check.role_commitment)
        return True

    def state(self) -> Dict[str, Any]:
        with self._lock:
            return self.ledger.to_dict()
