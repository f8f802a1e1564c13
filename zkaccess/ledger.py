"""zkaccess.ledger

Public ledger state of a shielded ownership module.

The ledger holds commitments and a counter only. Its public layout is

    {
      "owner_commitment": "<64 hex>",
      "pending_owner_commitment": "<64 hex>",   # two-step variant only
      "instance_counter": <uint64>
    }

and is described by ``zkaccess/schemas/ownership-state.schema.json``.

``RoleLedger`` is the counterpart for shielded access control: an append-only
list of role commitments, the set of revoked ones, and the role admin map
(``zkaccess/schemas/role-state.schema.json``).

Writes happen inside ``transaction()``: on any exception the ledger is restored
to the snapshot taken on entry, so a failed operation leaves no partial write.
"""

from __future__ import annotations

import copy
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set

from zkaccess.commitment import WORD_BYTES, ZERO_COMMITMENT
from zkaccess.config import get_config
from zkaccess.hardening import InvariantChecker, ValidationError, require_word
from zkaccess.schema import OWNERSHIP_STATE_SCHEMA, ROLE_STATE_SCHEMA, validate_against_schema


@dataclass
class OwnershipLedger:
    owner_commitment: bytes = ZERO_COMMITMENT
    instance_counter: int = 0
    # None for the one-step variant, which has no pending slot
    pending_owner_commitment: Optional[bytes] = None

    @classmethod
    def one_step(cls) -> "OwnershipLedger":
        return cls()

    @classmethod
    def two_step(cls) -> "OwnershipLedger":
        return cls(pending_owner_commitment=ZERO_COMMITMENT)

    @property
    def has_pending_slot(self) -> bool:
        return self.pending_owner_commitment is not None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "owner_commitment": self.owner_commitment.hex(),
            "instance_counter": self.instance_counter,
        }
        if self.pending_owner_commitment is not None:
            out["pending_owner_commitment"] = self.pending_owner_commitment.hex()
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OwnershipLedger":
        errors = validate_against_schema(data, OWNERSHIP_STATE_SCHEMA)
        if errors:
            raise ValidationError("ownership_state", "; ".join(errors), data)
        pending = data.get("pending_owner_commitment")
        return cls(
            owner_commitment=require_word(data["owner_commitment"], "owner_commitment", WORD_BYTES),
            instance_counter=int(data["instance_counter"]),
            pending_owner_commitment=(
                require_word(pending, "pending_owner_commitment", WORD_BYTES)
                if pending is not None else None
            ),
        )

    def validate(self) -> List[str]:
        """Schema errors for the current public layout (empty if valid)."""
        return validate_against_schema(self.to_dict(), OWNERSHIP_STATE_SCHEMA)

    def snapshot(self) -> "OwnershipLedger":
        return copy.copy(self)

    def restore(self, snapshot: "OwnershipLedger") -> None:
        self.owner_commitment = snapshot.owner_commitment
        self.instance_counter = snapshot.instance_counter
        self.pending_owner_commitment = snapshot.pending_owner_commitment

    @contextmanager
    def transaction(self) -> Iterator["OwnershipLedger"]:
        """Apply writes atomically; any exception rolls the ledger back."""
        saved = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(saved)
            raise

    def next_counter(self) -> int:
        """Counter value after one more establishing operation (bounds-checked)."""
        max_counter = get_config().ownership.max_counter.get()
        value = self.instance_counter + 1
        InvariantChecker.check_counter_bound("instance_counter", value, max_counter)
        return value

    def bump_counter(self) -> int:
        """Increment the counter by exactly one and return the new value."""
        value = self.next_counter()
        InvariantChecker.check_monotonic_increase("instance_counter", self.instance_counter, value)
        self.instance_counter = value
        return value


@dataclass
class RoleLedger:
    role_commitments: List[bytes] = field(default_factory=list)
    revoked_commitments: Set[bytes] = field(default_factory=set)
    role_admins: Dict[bytes, bytes] = field(default_factory=dict)

    @property
    def next_index(self) -> int:
        return len(self.role_commitments)

    def is_active(self, commitment: bytes) -> bool:
        return commitment not in self.revoked_commitments

    def append(self, commitment: bytes) -> int:
        """Add a commitment at ``next_index`` and return that index."""
        capacity = get_config().access_control.max_role_commitments.get()
        index = self.next_index
        InvariantChecker.check_counter_bound("role_commitments", index + 1, capacity)
        self.role_commitments.append(commitment)
        return index

    def revoke(self, commitment: bytes) -> None:
        self.revoked_commitments.add(commitment)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role_commitments": [c.hex() for c in self.role_commitments],
            "revoked_commitments": sorted(c.hex() for c in self.revoked_commitments),
            "role_admins": {role.hex(): admin.hex() for role, admin in sorted(self.role_admins.items())},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoleLedger":
        errors = validate_against_schema(data, ROLE_STATE_SCHEMA)
        if errors:
            raise ValidationError("role_state", "; ".join(errors), data)
        return cls(
            role_commitments=[bytes.fromhex(c) for c in data["role_commitments"]],
            revoked_commitments={bytes.fromhex(c) for c in data["revoked_commitments"]},
            role_admins={
                bytes.fromhex(role): bytes.fromhex(admin)
                for role, admin in data["role_admins"].items()
            },
        )

    def validate(self) -> List[str]:
        return validate_against_schema(self.to_dict(), ROLE_STATE_SCHEMA)

    def snapshot(self) -> "RoleLedger":
        return RoleLedger(
            role_commitments=list(self.role_commitments),
            revoked_commitments=set(self.revoked_commitments),
            role_admins=dict(self.role_admins),
        )

    def restore(self, snapshot: "RoleLedger") -> None:
        self.role_commitments = list(snapshot.role_commitments)
        self.revoked_commitments = set(snapshot.revoked_commitments)
        self.role_admins = dict(snapshot.role_admins)

    @contextmanager
    def transaction(self) -> Iterator["RoleLedger"]:
        """Apply writes atomically; any exception rolls the ledger back."""
        saved = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(saved)
            raise
