"""
Base Exception Classes for the Reachability Monitor

Two families hang off MonitorException: configuration errors, which stop
the monitor before the first sweep, and runtime monitoring errors, which
are logged per target or per alert while the loop keeps running.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from datetime import datetime, timezone


class MonitorException(Exception):
    """
    Root of the monitor's exception hierarchy.

    Attributes:
        message: Human-readable error message
        error_code: Numeric code; 1xxx configuration/startup, 2xxx runtime
        details: Target name, config key, attempts and similar context
        cause: The exception this one wraps, if any
        recoverable: False when the monitor cannot run with this error
    """

    default_error_code: int = 1000
    default_recoverable: bool = True

    def __init__(
        self,
        message: str = "Monitor error",
        error_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
        recoverable: Optional[bool] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        self.cause = cause
        self.recoverable = recoverable if recoverable is not None else self.default_recoverable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for JSON log sinks."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "cause": str(self.cause) if self.cause else None,
        }

    def log_format(self) -> str:
        """Single-line rendering for log messages."""
        parts = [
            f"{self.__class__.__name__} [{self.error_code}] {self.message}",
        ]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Cause: {self.cause}")
        return " | ".join(parts)

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        message: Optional[str] = None,
        **kwargs: Any
    ) -> "MonitorException":
        """Wrap an unexpected exception, keeping it as the cause."""
        return cls(message=message or str(exception), cause=exception, **kwargs)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfigurationError(MonitorException):
    """
    Configuration Error

    Raised when targets, thresholds or settings are malformed. Fatal to
    startup: the monitoring loop must not start.
    """

    default_error_code = 1100
    default_recoverable = False

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if config_key:
            self.details["config_key"] = config_key


class InitializationError(MonitorException):
    """
    Initialization Error

    Raised when an optional component (the status server) fails to start.
    """

    default_error_code = 1200
    default_recoverable = False

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if component:
            self.details["component"] = component
