"""
Validation Exception Classes for the Reachability Monitor

Configuration-time validation errors for targets and thresholds. They
are ConfigurationErrors: raising one prevents the loop from starting.
"""

from __future__ import annotations

from typing import Any, Optional
from exceptions.base import ConfigurationError


class ValidationException(ConfigurationError):
    """
    Base Validation Exception

    Parent class for all validation-related exceptions.
    """

    default_error_code = 3000

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize validation exception.

        Args:
            message: Error message
            field: The field that failed validation
            value: The invalid value (sanitized)
            **kwargs: Additional arguments
        """
        super().__init__(message, config_key=field, **kwargs)

        if field:
            self.details["field"] = field

        if value is not None:
            self.details["value"] = self._sanitize_value(value)

    @staticmethod
    def _sanitize_value(value: Any) -> str:
        """Truncate long values for logging."""
        str_value = str(value)

        if len(str_value) > 100:
            str_value = str_value[:100] + "..."

        return str_value


class InvalidTargetError(ValidationException):
    """
    Invalid Target Error

    Raised when a target has an empty or malformed host, a bad port, or
    a probe is requested with a non-positive timeout.
    """

    default_error_code = 3001

    def __init__(
        self,
        message: str = "Invalid target",
        host: Optional[str] = None,
        reason: Optional[str] = None,
        field: str = "host",
        **kwargs: Any
    ) -> None:
        super().__init__(message, field=field, value=host, **kwargs)

        if reason:
            self.details["reason"] = reason


class InvalidThresholdError(ValidationException):
    """
    Invalid Threshold Error

    Raised when a latency or packet-loss threshold is negative or not a
    number.
    """

    default_error_code = 3002

    def __init__(
        self,
        message: str = "Invalid threshold",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, field=field, value=value, **kwargs)
