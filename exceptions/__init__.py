"""
Exceptions Package for the Reachability Monitor

Provides the exception hierarchy used for configuration and runtime
error handling.
"""

from exceptions.base import (
    MonitorException,
    ConfigurationError,
    InitializationError
)

from exceptions.validation import (
    ValidationException,
    InvalidTargetError,
    InvalidThresholdError
)

from exceptions.monitoring import (
    MonitoringException,
    EvaluationError,
    DispatchError
)

__all__ = [
    # Base exceptions
    "MonitorException",
    "ConfigurationError",
    "InitializationError",

    # Validation exceptions
    "ValidationException",
    "InvalidTargetError",
    "InvalidThresholdError",

    # Monitoring exceptions
    "MonitoringException",
    "EvaluationError",
    "DispatchError"
]
