"""
Monitoring Exception Classes for the Reachability Monitor

Runtime errors raised inside the monitoring loop. None of them is
allowed to escape the scheduler: they are caught and logged per target
or per alert.
"""

from __future__ import annotations

from typing import Any, Optional
from exceptions.base import MonitorException


class MonitoringException(MonitorException):
    """Base class for runtime monitoring errors."""

    default_error_code = 2000
    default_recoverable = True

    def __init__(
        self,
        message: str,
        target: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if target:
            self.details["target"] = target


class EvaluationError(MonitoringException):
    """
    Evaluation Error

    Wraps an unexpected failure while evaluating a target so that the
    scheduler can log it with the target attached and keep sweeping the
    others.
    """

    default_error_code = 2001


class DispatchError(MonitoringException):
    """
    Dispatch Error

    Describes an alert that could not be delivered after all attempts.
    The dispatcher builds it for the dispatch-failure log record and
    returns a FAILED DeliveryResult instead of raising it.
    """

    default_error_code = 2100

    def __init__(
        self,
        message: str = "Alert delivery failed",
        attempts: Optional[int] = None,
        reason: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, **kwargs)

        if attempts is not None:
            self.details["attempts"] = attempts

        if reason:
            self.details["reason"] = reason
