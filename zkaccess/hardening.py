"""
zkaccess Validation and Hardening Module

Error taxonomy, byte-width validation and cryptographic helpers shared by every
zkaccess primitive. It addresses:

1. Typed failures for every guard (ownership, lifecycle, encoding, entropy)
2. Fixed-width byte validation for hash inputs
3. Constant-time comparison of commitments
4. Invariant checks for monotonic ledger counters

Security Model:
    - All inputs are untrusted until validated
    - All commitment comparisons are constant-time
    - A failed guard never leaves a partial state write behind

Copyright (c) 2026 Momentum. All rights reserved.
Contact: engineering@momentum.inc
"""

from __future__ import annotations

import hmac
import secrets
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional


# =============================================================================
# VALIDATION ERROR TYPES
# =============================================================================

class ValidationError(Exception):
    """Base exception for validation failures."""

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.message = message
        self.value = value
        super().__init__(f"{field}: {message}")


class ValidationErrors(Exception):
    """Collection of validation errors."""

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors
        messages = "; ".join(f"{e.field}: {e.message}" for e in errors)
        super().__init__(f"Validation failed: {messages}")


class EncodingError(ValidationError):
    """A hash input does not have the exact fixed byte width."""
    pass


class InvalidOwnerError(ValidationError):
    """An owner identity argument is the zero sentinel or malformed."""

    def __init__(self, message: str, value: Any = None):
        super().__init__("owner_id", message, value)


class InvalidAccountError(ValidationError):
    """A role account id is the zero sentinel or malformed."""

    def __init__(self, message: str, value: Any = None):
        super().__init__("account_id", message, value)


class SecurityViolation(Exception):
    """Security constraint violated."""
    pass


class ForbiddenError(SecurityViolation):
    """Caller could not reproduce the current (or pending) owner commitment."""
    pass


class EntropyError(SecurityViolation):
    """The secure random source was unavailable or returned bad output."""
    pass


class InvariantViolation(Exception):
    """State machine invariant violated."""
    pass


class AlreadyInitializedError(InvariantViolation):
    """Initializable guard: the module has already been initialized."""
    pass


class NotInitializedError(InvariantViolation):
    """Initializable guard: the module has not been initialized."""
    pass


class EnforcedPauseError(InvariantViolation):
    """Pausable guard: the module is paused."""
    pass


class ExpectedPauseError(InvariantViolation):
    """Pausable guard: the module is not paused."""
    pass


class CounterOverflowError(InvariantViolation):
    """Instance counter would exceed its unsigned width."""
    pass


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the single error directly, or ValidationErrors for several."""
        if self.is_valid:
            return
        if len(self.errors) == 1:
            raise self.errors[0]
        raise ValidationErrors(self.errors)

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    WORD_BYTES = 32

    @classmethod
    def validate_word(
        cls,
        value: Any,
        field_name: str,
        width: int = WORD_BYTES,
    ) -> ValidationResult:
        """
        Validate a fixed-width byte word.

        Accepts bytes-like values and 64-char hex strings. Never pads or
        truncates: a word of the wrong width is an EncodingError.
        """
        if isinstance(value, str):
            text = value.strip().lower()
            if text.startswith("0x"):
                text = text[2:]
            try:
                value = bytes.fromhex(text)
            except ValueError:
                return ValidationResult.failure([
                    EncodingError(field_name, "Invalid hex string", value)
                ])

        if isinstance(value, (bytearray, memoryview)):
            value = bytes(value)

        if not isinstance(value, bytes):
            return ValidationResult.failure([
                EncodingError(field_name, f"Expected bytes, got {type(value).__name__}", value)
            ])

        if len(value) != width:
            return ValidationResult.failure([
                EncodingError(field_name, f"Expected exactly {width} bytes, got {len(value)}", value)
            ])

        return ValidationResult.success(value)

    @classmethod
    def validate_unsigned(
        cls,
        value: Any,
        field_name: str,
        max_value: Optional[int] = None,
    ) -> ValidationResult:
        """Validate a non-negative integer, optionally bounded."""
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                EncodingError(field_name, f"Expected int, got {type(value).__name__}", value)
            ])
        if value < 0:
            return ValidationResult.failure([
                EncodingError(field_name, "Must be non-negative", value)
            ])
        if max_value is not None and value > max_value:
            return ValidationResult.failure([
                EncodingError(field_name, f"Exceeds maximum ({max_value})", value)
            ])
        return ValidationResult.success(value)


def audit_outcome(exc: BaseException) -> str:
    """Audit outcome label for a failed operation."""
    if isinstance(exc, SecurityViolation):
        return "denied"
    if isinstance(exc, ValidationError):
        return "invalid"
    return "failed"


def require_word(value: Any, field_name: str, width: int = Validators.WORD_BYTES) -> bytes:
    """Validate a fixed-width word and return it as bytes, raising on failure."""
    result = Validators.validate_word(value, field_name, width)
    result.raise_if_invalid()
    return result.sanitized_value


# =============================================================================
# CRYPTOGRAPHIC UTILITIES
# =============================================================================

class CryptoUtils:
    """Cryptographic utility functions with security hardening."""

    @staticmethod
    def secure_compare(a: bytes, b: bytes) -> bool:
        """Constant-time comparison to prevent timing attacks."""
        return hmac.compare_digest(a, b)

    @staticmethod
    def secure_random_bytes(
        n_bytes: int = 32,
        source: Optional[Callable[[int], bytes]] = None,
    ) -> bytes:
        """
        Generate cryptographically secure random bytes.

        Raises EntropyError if the source fails or returns the wrong length.
        """
        source = source or secrets.token_bytes
        try:
            out = source(n_bytes)
        except Exception as e:
            raise EntropyError(f"Secure random source unavailable: {e}") from e

        if not isinstance(out, (bytes, bytearray)):
            raise EntropyError(f"Secure random source returned {type(out).__name__}, expected bytes")
        if len(out) != n_bytes:
            raise EntropyError(
                f"Secure random source returned {len(out)} bytes, expected {n_bytes}"
            )
        return bytes(out)


# =============================================================================
# STATE MACHINE INVARIANTS
# =============================================================================

class InvariantChecker:
    """Enforces state machine invariants."""

    @staticmethod
    def check_monotonic_increase(
        field_name: str,
        old_value: int,
        new_value: int,
    ) -> None:
        """Ensure value only increases."""
        if new_value <= old_value:
            raise InvariantViolation(
                f"{field_name} must be strictly increasing: "
                f"cannot go from {old_value} to {new_value}"
            )

    @staticmethod
    def check_counter_bound(field_name: str, value: int, max_value: int) -> None:
        """Ensure counter stays inside its unsigned width."""
        if value > max_value:
            raise CounterOverflowError(
                f"{field_name} overflow: {value} exceeds maximum {max_value}"
            )
