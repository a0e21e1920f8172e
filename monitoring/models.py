"""
============================================================================
REACHABILITY MONITOR - DATA MODEL
============================================================================
Value objects that flow through the monitoring pipeline:

    Target ──probe──► Measurement ──evaluate──► TransitionEvent
                                                      │
                                   dispatch ◄─────────┘
                                      │
                     NotifyResult / DeliveryResult / AlertRecord

Everything here except AlertRecord is immutable.
============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any

from config.constants import HealthState, ProbeMethod, DeliveryStatus
from exceptions.validation import InvalidThresholdError
from utils.helpers import TimeHelper


# ============================================================================
# TARGET
# ============================================================================

@dataclass(frozen=True)
class Target:
    """
    A monitored endpoint. Identity is ``name``; fixed for the lifetime of
    the process once loaded.
    """
    host: str
    name: str
    port: Optional[int] = None
    method: Optional[ProbeMethod] = None

    def __str__(self) -> str:
        return self.name if self.name == self.host else f"{self.name} ({self.host})"


# ============================================================================
# MEASUREMENT
# ============================================================================

@dataclass(frozen=True)
class Measurement:
    """
    Result of one probe: reachable with a latency, or unreachable.

    ``sequence`` is the number of the sweep that issued the probe; the
    evaluator uses it to refuse out-of-order results for a target.
    """
    target: Target
    timestamp: datetime
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    sequence: int = 0

    @property
    def reachable(self) -> bool:
        return self.latency_ms is not None

    @classmethod
    def success(
        cls,
        target: Target,
        latency_ms: float,
        timestamp: Optional[datetime] = None,
        sequence: int = 0,
    ) -> "Measurement":
        return cls(
            target=target,
            timestamp=timestamp or TimeHelper.get_utc_now(),
            latency_ms=round(latency_ms, 3),
            sequence=sequence,
        )

    @classmethod
    def unreachable(
        cls,
        target: Target,
        error: str,
        timestamp: Optional[datetime] = None,
        sequence: int = 0,
    ) -> "Measurement":
        return cls(
            target=target,
            timestamp=timestamp or TimeHelper.get_utc_now(),
            error=error,
            sequence=sequence,
        )


# ============================================================================
# THRESHOLDS
# ============================================================================

@dataclass(frozen=True)
class ThresholdConfig:
    """
    Latency and packet-loss limits shared read-only by the evaluator.

    Raises InvalidThresholdError on negative values.
    """
    latency_ms: float
    packet_loss_percent: float

    def __post_init__(self):
        for field_name in ("latency_ms", "packet_loss_percent"):
            value = getattr(self, field_name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise InvalidThresholdError(
                    f"{field_name} must be a number",
                    field=field_name,
                    value=value,
                )
            if value < 0:
                raise InvalidThresholdError(
                    f"{field_name} must be non-negative",
                    field=field_name,
                    value=value,
                )


# ============================================================================
# TRANSITION EVENT
# ============================================================================

@dataclass(frozen=True)
class TransitionEvent:
    """A confirmed change of a target's health state."""
    target: Target
    previous_state: HealthState
    new_state: HealthState
    reason: str
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.name,
            "host": self.target.host,
            "previous_state": self.previous_state.value,
            "new_state": self.new_state.value,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }


# ============================================================================
# ALERT BOOKKEEPING
# ============================================================================

@dataclass
class AlertRecord:
    """Last state successfully alerted for a target."""
    target: str
    state: HealthState
    last_sent_at: datetime


@dataclass(frozen=True)
class NotifyResult:
    """
    Typed outcome of a notifier ``send``. Transports return this instead
    of raising.
    """
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "NotifyResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "NotifyResult":
        return cls(ok=False, reason=reason)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of dispatching one transition event."""
    status: DeliveryStatus
    attempts: int = 0
    reason: Optional[str] = None
    event: Optional[TransitionEvent] = field(default=None, compare=False)

    @property
    def delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED
