"""
zkaccess: shielded ownership, access control and lifecycle primitives

Access-control building blocks for ledger-backed modules that must prove
"the caller controls the current owner" without storing the owner's identity
in the clear.

Architecture
------------

    ownable.py        One-step and two-step shielded ownership state machines
    access.py         Shielded role-based access control
    lifecycle.py      Initializable and Pausable guards
    ledger.py         Public ledger state with atomic transactions
    witness.py        Private nonce store (local witness)
    commitment.py     Domain-separated SHA-256 commitments
    keys.py           Ed25519 caller keys and owner identities

    hardening.py      Error taxonomy, validators, constant-time compare
    config.py         YAML + environment configuration
    observability.py  Structured logging and hash-chained audit trail
    schema.py         JSON Schema validation of public state layouts
    cli.py            Developer CLI

Usage
-----

    from zkaccess import OwnerIdentity, ShieldedOwnable

    alice = OwnerIdentity.generate()
    ownable = ShieldedOwnable(alice.identity_hash(), witness=alice.witness)
    ownable.assert_only_owner(alice.public_key)

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.1.0"
__author__ = "Momentum"


def __getattr__(name):
    """Lazy import zkaccess modules on first access."""

    if name in ("ShieldedOwnable", "ShieldedOwnable2Step", "ShieldedOwnership",
                "CommitmentScheme", "OwnershipVariant"):
        from zkaccess import ownable
        return getattr(ownable, name)

    if name in ("ShieldedAccessControl", "RoleCheck", "DEFAULT_ADMIN_ROLE"):
        from zkaccess import access
        return getattr(access, name)

    if name in ("Initializable", "Pausable", "only_initialized", "when_paused",
                "when_not_paused"):
        from zkaccess import lifecycle
        return getattr(lifecycle, name)

    if name in ("commit", "identity_hash", "build_commitment", "encode_counter",
                "encode_domain", "ZERO_COMMITMENT", "DOMAIN_SHIELDED_PK",
                "DOMAIN_SHIELDED_ID", "create_account_id", "role_commitment",
                "DOMAIN_ROLE_COMMITMENT"):
        from zkaccess import commitment
        return getattr(commitment, name)

    if name in ("NonceWitness", "RoleWitness", "SecretState"):
        from zkaccess import witness
        return getattr(witness, name)

    if name in ("Keypair", "OwnerIdentity", "encode_public_key"):
        from zkaccess import keys
        return getattr(keys, name)

    if name in ("OwnershipLedger", "RoleLedger"):
        from zkaccess import ledger
        return getattr(ledger, name)

    if name in ("InvalidAccountError", "InvalidOwnerError", "ForbiddenError", "AlreadyInitializedError",
                "NotInitializedError", "EncodingError", "EntropyError",
                "EnforcedPauseError", "ExpectedPauseError", "CounterOverflowError",
                "SecurityViolation", "InvariantViolation", "ValidationError"):
        from zkaccess import hardening
        return getattr(hardening, name)

    if name in ("get_config", "get_config_manager", "ConfigError"):
        from zkaccess import config
        return getattr(config, name)

    raise AttributeError(f"module 'zkaccess' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Ownership
    "ShieldedOwnable",
    "ShieldedOwnable2Step",
    "ShieldedOwnership",
    "CommitmentScheme",
    "OwnershipVariant",
    "OwnershipLedger",
    # Access control
    "ShieldedAccessControl",
    "RoleCheck",
    "DEFAULT_ADMIN_ROLE",
    "RoleLedger",
    # Lifecycle
    "Initializable",
    "Pausable",
    "only_initialized",
    "when_paused",
    "when_not_paused",
    # Commitments and witnesses
    "commit",
    "identity_hash",
    "build_commitment",
    "encode_counter",
    "encode_domain",
    "ZERO_COMMITMENT",
    "DOMAIN_SHIELDED_PK",
    "DOMAIN_SHIELDED_ID",
    "DOMAIN_ROLE_COMMITMENT",
    "create_account_id",
    "role_commitment",
    "NonceWitness",
    "RoleWitness",
    "SecretState",
    "Keypair",
    "OwnerIdentity",
    "encode_public_key",
    # Errors
    "InvalidOwnerError",
    "InvalidAccountError",
    "ForbiddenError",
    "AlreadyInitializedError",
    "NotInitializedError",
    "EncodingError",
    "EntropyError",
    "EnforcedPauseError",
    "ExpectedPauseError",
    "CounterOverflowError",
    "SecurityViolation",
    "InvariantViolation",
    "ValidationError",
    # Config
    "get_config",
    "get_config_manager",
    "ConfigError",
]
