"""
zkaccess Observability Framework

Structured logging and a hash-chained audit trail for ownership transitions.
Provides correlation IDs and per-layer loggers.

Architecture:
    ┌─────────────────────────────────────────────────────────┐
    │                    Application Code                      │
    │  logger.info("msg", counter=n)   audit.log(action, ...)  │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                ZkAccessLogger / AuditLogger              │
    │  Correlation IDs, layer tags, structured context         │
    └───────────────────────┬─────────────────────────────────┘
                            │
    ┌───────────────────────▼─────────────────────────────────┐
    │                   StructuredHandler                      │
    │           JSON lines (default) or plain text             │
    └─────────────────────────────────────────────────────────┘

Secret nonces never reach this layer: callers pass public values only.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import sys
import threading
import time
import traceback
import uuid
from collections import deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import wraps
from typing import Any, Callable, Deque, Dict, List, Optional, TypeVar

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)


class LogLevel(Enum):
    """Log severity levels."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class Layer(Enum):
    """zkaccess layers for categorization."""
    WITNESS = "witness"
    OWNERSHIP = "ownership"
    LIFECYCLE = "lifecycle"
    ACCESS = "access_control"


@dataclass
class LogEvent:
    """Structured log event."""
    timestamp: str
    level: str
    logger: str
    message: str
    correlation_id: str = ""
    layer: str = ""
    operation: str = ""
    duration_ms: Optional[float] = None
    error_code: str = ""
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        d = asdict(self)
        return {k: v for k, v in d.items() if v is not None and v != "" and v != {}}

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    def to_text(self) -> str:
        parts = [self.timestamp, self.level.upper(), self.logger, self.message]
        if self.operation:
            parts.append(f"op={self.operation}")
        if self.error_code:
            parts.append(f"code={self.error_code}")
        for k, v in self.context.items():
            parts.append(f"{k}={v}")
        return " ".join(parts)


class StructuredHandler(logging.Handler):
    """Logging handler that outputs structured JSON (or text) lines."""

    def __init__(self, stream: Any = None, fmt: Optional[str] = None):
        super().__init__()
        self.stream = stream
        self.fmt = fmt

    def _format_name(self) -> str:
        if self.fmt:
            return self.fmt
        from zkaccess.config import get_config
        return get_config().observability.log_format.get()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            event = LogEvent(
                timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
                level=record.levelname.lower(),
                logger=record.name,
                message=record.getMessage(),
                correlation_id=correlation_id_var.get(),
                layer=getattr(record, "layer", ""),
                operation=getattr(record, "operation", ""),
                duration_ms=getattr(record, "duration_ms", None),
                error_code=getattr(record, "error_code", ""),
                context=getattr(record, "context", {}),
            )

            if record.exc_info:
                event.exception = "".join(traceback.format_exception(*record.exc_info))

            line = event.to_text() if self._format_name() == "text" else event.to_json()
            stream = self.stream or sys.stderr
            stream.write(line + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)


class ZkAccessLogger:
    """
    Structured logger for zkaccess components.

    Automatically includes correlation IDs and layer information
    in all log events.
    """

    def __init__(
        self,
        name: str,
        layer: Layer,
        level: Optional[LogLevel] = None,
    ):
        self.name = name
        self.layer = layer
        self._logger = logging.getLogger(f"zkaccess.{layer.value}.{name}")

        if level is None:
            from zkaccess.config import get_config
            level = LogLevel(get_config().observability.log_level.get())
        self._logger.setLevel(getattr(logging, level.value.upper()))

        if not any(isinstance(h, StructuredHandler) for h in self._logger.handlers):
            self._logger.addHandler(StructuredHandler())

    def _log(
        self,
        level: int,
        message: str,
        operation: str = "",
        error_code: str = "",
        duration_ms: Optional[float] = None,
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        """Internal log method."""
        extra = {
            "layer": self.layer.value,
            "operation": operation,
            "error_code": error_code,
            "duration_ms": duration_ms,
            "context": context,
        }
        self._logger.log(level, message, extra=extra, exc_info=exc_info)

    def debug(self, message: str, **context: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **context)

    def error(
        self,
        message: str,
        error_code: str = "",
        exc_info: bool = False,
        **context: Any,
    ) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, error_code=error_code, exc_info=exc_info, **context)

    def operation(
        self,
        name: str,
        duration_ms: float,
        success: bool = True,
        **context: Any,
    ) -> None:
        """Log an operation completion."""
        level = logging.DEBUG if success else logging.WARNING
        status = "completed" if success else "failed"
        self._log(
            level,
            f"Operation {name} {status}",
            operation=name,
            duration_ms=duration_ms,
            **context,
        )


def generate_correlation_id() -> str:
    """Generate a new correlation ID."""
    return f"corr-{uuid.uuid4().hex[:12]}"


def set_correlation_id(correlation_id: str) -> contextvars.Token:
    """Set the correlation ID for the current context."""
    return correlation_id_var.set(correlation_id)


def get_correlation_id() -> str:
    """Get the current correlation ID."""
    cid = correlation_id_var.get()
    if not cid:
        cid = generate_correlation_id()
        correlation_id_var.set(cid)
    return cid


def get_logger(name: str, layer: Layer) -> ZkAccessLogger:
    """Get a logger for a zkaccess component."""
    return ZkAccessLogger(name, layer)


T = TypeVar("T")


def timed_operation(
    logger: ZkAccessLogger,
    operation_name: str,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator for timing and logging operations."""
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            start = time.monotonic()
            success = True
            try:
                return func(*args, **kwargs)
            except Exception:
                success = False
                raise
            finally:
                duration_ms = (time.monotonic() - start) * 1000
                logger.operation(operation_name, duration_ms, success)
        return wrapper
    return decorator


# Audit logging for ownership transitions
@dataclass
class AuditEvent:
    """Audit event for an ownership transition."""
    event_id: str
    timestamp: str
    module: str
    action: str
    outcome: str  # success, denied, invalid
    instance_counter: int
    owner_commitment: str
    pending_owner_commitment: str = ""
    correlation_id: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AuditLogger:
    """
    Append-only audit logging for ownership transitions.

    Generates a tamper-evident trail with hash chaining. Only the newest
    ``max_events`` events stay in memory; ``checkpoint`` holds the hash the
    oldest retained event chains from, so the retained window still verifies.
    """

    GENESIS = "genesis"

    def __init__(self, logger: Optional[ZkAccessLogger] = None, max_events: Optional[int] = None):
        if max_events is None:
            from zkaccess.config import get_config
            max_events = get_config().observability.audit_retention.get()
        if max_events < 1:
            raise ValueError("max_events must be at least 1")
        self._logger = logger or get_logger("audit", Layer.OWNERSHIP)
        self._last_hash: str = self.GENESIS
        self._checkpoint: str = self.GENESIS
        self._events: Deque[AuditEvent] = deque(maxlen=max_events)
        self._hashes: Deque[str] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @staticmethod
    def _compute_hash(event: AuditEvent, previous: str) -> str:
        data = json.dumps(event.to_dict(), sort_keys=True) + previous
        return hashlib.sha256(data.encode()).hexdigest()

    def log(
        self,
        module: str,
        action: str,
        outcome: str,
        instance_counter: int,
        owner_commitment: str = "",
        pending_owner_commitment: str = "",
        **details: Any,
    ) -> AuditEvent:
        """Log an audit event."""
        event = AuditEvent(
            event_id=uuid.uuid4().hex,
            timestamp=datetime.now(timezone.utc).isoformat(),
            module=module,
            action=action,
            outcome=outcome,
            instance_counter=instance_counter,
            owner_commitment=owner_commitment,
            pending_owner_commitment=pending_owner_commitment,
            correlation_id=get_correlation_id(),
            details=details,
        )

        with self._lock:
            event_hash = self._compute_hash(event, self._last_hash)
            self._last_hash = event_hash
            if len(self._hashes) == self._hashes.maxlen:
                # oldest event drops out; its hash anchors the window
                self._checkpoint = self._hashes[0]
            self._events.append(event)
            self._hashes.append(event_hash)

        self._logger.info(
            f"AUDIT: {action} on {module}",
            operation="audit",
            outcome=outcome,
            instance_counter=instance_counter,
            event_hash=event_hash,
        )

        return event

    @property
    def head(self) -> str:
        """Hash of the latest event (``genesis`` when empty)."""
        with self._lock:
            return self._last_hash

    @property
    def checkpoint(self) -> str:
        """Hash preceding the oldest retained event (``genesis`` until eviction)."""
        with self._lock:
            return self._checkpoint

    def events(self) -> List[AuditEvent]:
        with self._lock:
            return list(self._events)

    def verify_chain(self) -> bool:
        """Recompute the retained hash chain from the checkpoint."""
        with self._lock:
            previous = self._checkpoint
            for event, recorded in zip(self._events, self._hashes):
                expected = self._compute_hash(event, previous)
                if expected != recorded:
                    return False
                previous = expected
            return previous == self._last_hash
