"""
Constants Module for the Reachability Monitor

Contains enumerations, default values and alert message templates used
throughout the application.
"""

from __future__ import annotations

from enum import Enum
from typing import Final


class HealthState(str, Enum):
    """
    Health State Enumeration

    Confirmed health verdict for a monitored target.
    """

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"

    @classmethod
    def get_emoji(cls, state: "HealthState") -> str:
        """Get emoji for state."""
        emojis = {
            cls.HEALTHY: "🟢",
            cls.DEGRADED: "🟡",
            cls.DOWN: "🔴",
        }
        return emojis.get(state, "❓")

    @property
    def severity(self) -> int:
        """Ordering used when a rule forces a state to be 'at least' another."""
        return _SEVERITY[self]

    @classmethod
    def worst(cls, first: "HealthState", second: "HealthState") -> "HealthState":
        """Return the more severe of two states."""
        return first if first.severity >= second.severity else second


_SEVERITY = {
    HealthState.HEALTHY: 0,
    HealthState.DEGRADED: 1,
    HealthState.DOWN: 2,
}


class ProbeMethod(str, Enum):
    """
    Probe Method Enumeration

    How the reachability of a target is measured.
    """

    TCP = "tcp"
    ICMP = "icmp"
    DNS = "dns"
    HTTP = "http"


class DeliveryStatus(str, Enum):
    """Outcome of dispatching one transition event."""

    DELIVERED = "delivered"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class Defaults:
    """
    Default Values

    Provides default values for settings and constructors.
    """

    # Scheduling
    MONITOR_INTERVAL: Final[float] = 60.0
    PROBE_TIMEOUT: Final[float] = 5.0
    PROBE_METHOD: Final[ProbeMethod] = ProbeMethod.TCP
    TCP_PORT: Final[int] = 80
    MAX_CONCURRENCY: Final[int] = 32

    # Evaluation
    LATENCY_MS: Final[float] = 500.0
    PACKET_LOSS_PERCENT: Final[float] = 5.0
    DEBOUNCE_COUNT: Final[int] = 1
    LOSS_WINDOW_SIZE: Final[int] = 10
    INITIAL_STATE: Final[HealthState] = HealthState.HEALTHY

    # Alert delivery
    ALERT_MAX_ATTEMPTS: Final[int] = 4
    ALERT_BASE_DELAY: Final[float] = 1.0
    ALERT_BACKOFF_FACTOR: Final[float] = 2.0
    ALERT_MAX_DELAY: Final[float] = 30.0
    ALERT_QUEUE_SIZE: Final[int] = 10_000
    ALERT_DRAIN_TIMEOUT: Final[float] = 10.0

    # Cancellation grace added on top of the probe timeout
    SHUTDOWN_GRACE: Final[float] = 1.0

    USER_AGENT: Final[str] = "ReachabilityMonitor/1.0 (Monitoring Service)"
    DATETIME_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"


class MessageTemplates:
    """
    Alert Message Templates

    Subject and body used for transition alerts. Plain text so every
    transport can deliver them unchanged.
    """

    ALERT_SUBJECT: Final[str] = "{emoji} {name} is {state}"

    ALERT_BODY: Final[str] = (
        "Target: {name} ({host})\n"
        "State: {previous} -> {state}\n"
        "Reason: {reason}\n"
        "Time: {timestamp} UTC"
    )
