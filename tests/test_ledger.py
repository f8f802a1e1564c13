"""
Ownership ledger state tests.

Public layout, schema validation, atomic transactions and counter bounds.
"""

import pytest

from zkaccess.commitment import ZERO_COMMITMENT
from zkaccess.config import UINT64_MAX, get_config_manager
from zkaccess.hardening import CounterOverflowError, ValidationError
from zkaccess.ledger import OwnershipLedger, RoleLedger


class TestLayout:
    """Public state layout."""

    def test_one_step_defaults(self):
        ledger = OwnershipLedger.one_step()
        assert ledger.to_dict() == {
            "owner_commitment": "00" * 32,
            "instance_counter": 0,
        }
        assert not ledger.has_pending_slot

    def test_two_step_has_pending_slot(self):
        ledger = OwnershipLedger.two_step()
        assert ledger.to_dict()["pending_owner_commitment"] == "00" * 32
        assert ledger.pending_owner_commitment == ZERO_COMMITMENT

    def test_validates_against_schema(self):
        assert OwnershipLedger.two_step().validate() == []

    def test_from_dict(self):
        ledger = OwnershipLedger.from_dict({
            "owner_commitment": "ab" * 32,
            "pending_owner_commitment": "00" * 32,
            "instance_counter": 7,
        })
        assert ledger.owner_commitment == b"\xab" * 32
        assert ledger.instance_counter == 7
        assert ledger.pending_owner_commitment == ZERO_COMMITMENT

    def test_from_dict_rejects_uppercase_hex(self):
        with pytest.raises(ValidationError, match="ownership_state"):
            OwnershipLedger.from_dict({"owner_commitment": "AB" * 32, "instance_counter": 1})

    def test_from_dict_rejects_negative_counter(self):
        with pytest.raises(ValidationError):
            OwnershipLedger.from_dict({"owner_commitment": "00" * 32, "instance_counter": -1})

    def test_from_dict_rejects_identity_fields(self):
        with pytest.raises(ValidationError):
            OwnershipLedger.from_dict({
                "owner_commitment": "00" * 32,
                "instance_counter": 0,
                "nonce": "01" * 32,
            })

    def test_counter_beyond_uint64_fails_schema(self):
        ledger = OwnershipLedger(instance_counter=UINT64_MAX + 1)
        assert ledger.validate()


class TestTransaction:
    """Snapshot and rollback."""

    def test_commit_on_success(self):
        ledger = OwnershipLedger.two_step()
        with ledger.transaction():
            ledger.owner_commitment = b"\x01" * 32
            ledger.bump_counter()
        assert ledger.owner_commitment == b"\x01" * 32
        assert ledger.instance_counter == 1

    def test_rollback_on_error(self):
        ledger = OwnershipLedger.two_step()
        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.owner_commitment = b"\x01" * 32
                ledger.pending_owner_commitment = b"\x02" * 32
                ledger.bump_counter()
                raise RuntimeError("boom")
        assert ledger.owner_commitment == ZERO_COMMITMENT
        assert ledger.pending_owner_commitment == ZERO_COMMITMENT
        assert ledger.instance_counter == 0

    def test_snapshot_is_independent(self):
        ledger = OwnershipLedger()
        snap = ledger.snapshot()
        ledger.bump_counter()
        assert snap.instance_counter == 0


class TestCounter:
    """Counter increments and overflow."""

    def test_bump_increments_by_one(self):
        ledger = OwnershipLedger()
        assert ledger.bump_counter() == 1
        assert ledger.bump_counter() == 2

    def test_next_counter_does_not_write(self):
        ledger = OwnershipLedger(instance_counter=4)
        assert ledger.next_counter() == 5
        assert ledger.instance_counter == 4

    def test_overflow_at_uint64(self):
        ledger = OwnershipLedger(instance_counter=UINT64_MAX)
        with pytest.raises(CounterOverflowError):
            ledger.bump_counter()
        assert ledger.instance_counter == UINT64_MAX

    def test_overflow_respects_configured_bound(self):
        get_config_manager().set("ownership.max_counter", 3)
        ledger = OwnershipLedger(instance_counter=3)
        with pytest.raises(CounterOverflowError, match="exceeds maximum 3"):
            ledger.bump_counter()


class TestRoleLedger:
    """Append-only role commitments."""

    def test_defaults(self):
        ledger = RoleLedger()
        assert ledger.to_dict() == {"role_commitments": [], "revoked_commitments": [], "role_admins": {}}
        assert ledger.validate() == []
        assert ledger.next_index == 0

    def test_append_returns_index(self):
        ledger = RoleLedger()
        assert ledger.append(b"\x01" * 32) == 0
        assert ledger.append(b"\x02" * 32) == 1
        assert ledger.next_index == 2

    def test_revoke(self):
        ledger = RoleLedger()
        ledger.append(b"\x01" * 32)
        ledger.revoke(b"\x01" * 32)
        assert not ledger.is_active(b"\x01" * 32)
        assert ledger.next_index == 1

    def test_rollback_on_error(self):
        ledger = RoleLedger()
        with pytest.raises(RuntimeError):
            with ledger.transaction():
                ledger.append(b"\x01" * 32)
                ledger.revoke(b"\x01" * 32)
                ledger.role_admins[b"\x02" * 32] = b"\x03" * 32
                raise RuntimeError("boom")
        assert ledger.to_dict() == RoleLedger().to_dict()

    def test_capacity(self):
        get_config_manager().set("access_control.max_role_commitments", 1)
        ledger = RoleLedger()
        ledger.append(b"\x01" * 32)
        with pytest.raises(CounterOverflowError):
            ledger.append(b"\x02" * 32)

    def test_from_dict(self):
        data = {
            "role_commitments": ["ab" * 32],
            "revoked_commitments": ["ab" * 32],
            "role_admins": {"01" * 32: "00" * 32},
        }
        assert RoleLedger.from_dict(data).to_dict() == data

    def test_from_dict_rejects_bad_commitment(self):
        with pytest.raises(ValidationError, match="role_state"):
            RoleLedger.from_dict({"role_commitments": ["xyz"], "revoked_commitments": [], "role_admins": {}})
