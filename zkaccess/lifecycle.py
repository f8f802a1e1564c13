"""
zkaccess Lifecycle Guards

Two small boolean state machines that other modules compose:

    Initializable   False -> True, once
    Pausable        False <-> True

Consumers either call the assertions directly or decorate methods with
``only_initialized``, ``when_not_paused`` and ``when_paused``; the decorators
look for ``initializable`` / ``pausable`` attributes on the bound object.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Dict, List, TypeVar

from zkaccess.hardening import (
    AlreadyInitializedError,
    EnforcedPauseError,
    ExpectedPauseError,
    NotInitializedError,
)
from zkaccess.observability import Layer, get_logger
from zkaccess.schema import LIFECYCLE_STATE_SCHEMA, validate_against_schema

T = TypeVar("T")

_log = get_logger("lifecycle", Layer.LIFECYCLE)


class Initializable:
    """One-way initialization flag."""

    def __init__(self, module: str = "Initializable"):
        self.module = module
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        self.assert_not_initialized()
        self._initialized = True
        _log.debug("Initialized", operation="initialize", module=self.module)

    def assert_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError(f"{self.module}: contract not initialized")

    def assert_not_initialized(self) -> None:
        if self._initialized:
            raise AlreadyInitializedError(f"{self.module}: contract already initialized")

    def to_dict(self) -> Dict[str, Any]:
        return {"is_initialized": self._initialized}

    def validate(self) -> List[str]:
        return validate_against_schema(self.to_dict(), LIFECYCLE_STATE_SCHEMA)


class Pausable:
    """Emergency stop flag."""

    def __init__(self, module: str = "Pausable"):
        self.module = module
        self._paused = False

    def is_paused(self) -> bool:
        return self._paused

    def assert_paused(self) -> None:
        if not self._paused:
            raise ExpectedPauseError(f"{self.module}: not paused")

    def assert_not_paused(self) -> None:
        if self._paused:
            raise EnforcedPauseError(f"{self.module}: paused")

    def pause(self) -> None:
        self.assert_not_paused()
        self._paused = True
        _log.info("Paused", operation="pause", module=self.module)

    def unpause(self) -> None:
        self.assert_paused()
        self._paused = False
        _log.info("Unpaused", operation="unpause", module=self.module)

    def to_dict(self) -> Dict[str, Any]:
        return {"is_paused": self._paused}

    def validate(self) -> List[str]:
        return validate_against_schema(self.to_dict(), LIFECYCLE_STATE_SCHEMA)


def _guard(attr: str, check: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            getattr(getattr(self, attr), check)()
            return func(self, *args, **kwargs)
        return wrapper
    return decorator


def only_initialized(func: Callable[..., T]) -> Callable[..., T]:
    """Run the method only after ``self.initializable`` is set."""
    return _guard("initializable", "assert_initialized")(func)


def when_not_paused(func: Callable[..., T]) -> Callable[..., T]:
    """Run the method only while ``self.pausable`` is not paused."""
    return _guard("pausable", "assert_not_paused")(func)


def when_paused(func: Callable[..., T]) -> Callable[..., T]:
    """Run the method only while ``self.pausable`` is paused."""
    return _guard("pausable", "assert_paused")(func)
