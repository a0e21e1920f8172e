"""
============================================================================
REACHABILITY MONITOR - HEALTH EVALUATOR
============================================================================
Turns a stream of Measurements into confirmed health states and emits a
TransitionEvent whenever a target's confirmed state changes.

Classification (``classify``), applied in order
-----------------------------------------------
1.  Unreachable                          → DOWN
2.  Reachable, latency > threshold        → DEGRADED
3.  Reachable, within threshold           → HEALTHY
4.  Loss over the last K probes exceeds
    packet_loss_percent                   → at least DEGRADED

Hysteresis
----------
A classification that differs from the confirmed state becomes the
*candidate*.  The candidate is confirmed once ``debounce_count``
consecutive classifications agree; a classification equal to the
confirmed state discards the candidate.

Ownership
---------
The per-target entries are owned by this class.  Each entry has its own
asyncio.Lock so evaluations of one target are serialized while sibling
targets proceed concurrently.  Measurements with a lower sequence than
the last one evaluated for the target are dropped.
============================================================================
"""

import asyncio
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Deque, Dict, Optional, Tuple, Any

from config.constants import Defaults, HealthState
from monitoring.models import Measurement, Target, ThresholdConfig, TransitionEvent
from utils.logger import get_logger


logger = get_logger("HealthEvaluator")


# ============================================================================
# PURE CLASSIFICATION
# ============================================================================

def classify(
    measurement: Measurement,
    thresholds: ThresholdConfig,
    loss_percent: float = 0.0,
) -> Tuple[HealthState, str]:
    """
    Classify a single measurement, given the loss percentage of the
    window it belongs to.

    Returns
    -------
    (HealthState, reason)
    """
    if not measurement.reachable:
        return HealthState.DOWN, f"unreachable: {measurement.error or 'no response'}"

    if measurement.latency_ms > thresholds.latency_ms:
        state = HealthState.DEGRADED
        reason = (
            f"latency {measurement.latency_ms:.1f}ms exceeds "
            f"{thresholds.latency_ms:.1f}ms"
        )
    else:
        state = HealthState.HEALTHY
        reason = f"latency {measurement.latency_ms:.1f}ms within threshold"

    if loss_percent > thresholds.packet_loss_percent:
        loss_reason = (
            f"packet loss {loss_percent:.1f}% exceeds "
            f"{thresholds.packet_loss_percent:.1f}%"
        )
        if state == HealthState.HEALTHY:
            reason = loss_reason
        else:
            reason = f"{reason}; {loss_reason}"
        state = HealthState.worst(state, HealthState.DEGRADED)

    return state, reason


# ============================================================================
# PER-TARGET STATE
# ============================================================================

@dataclass
class TargetHealth:
    """Mutable health bookkeeping for one target."""
    target: Target
    confirmed: HealthState
    window: Deque[bool]
    candidate: Optional[HealthState] = None
    candidate_streak: int = 0
    last_sequence: Optional[int] = None
    last_latency_ms: Optional[float] = None
    last_observed_at: Optional[datetime] = None
    last_reason: str = ""
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def loss_percent(self) -> float:
        if not self.window:
            return 0.0
        losses = sum(1 for reachable in self.window if not reachable)
        return losses / len(self.window) * 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.name,
            "host": self.target.host,
            "state": self.confirmed.value,
            "candidate": self.candidate.value if self.candidate else None,
            "candidate_streak": self.candidate_streak,
            "loss_percent": round(self.loss_percent, 2),
            "window_size": len(self.window),
            "last_latency_ms": self.last_latency_ms,
            "last_observed_at": (
                self.last_observed_at.isoformat() if self.last_observed_at else None
            ),
            "last_reason": self.last_reason,
        }


@dataclass(frozen=True)
class Evaluation:
    """Result of evaluating one measurement."""
    new_state: HealthState
    transitioned: bool
    reason: str
    event: Optional[TransitionEvent] = None
    stale: bool = False


# ============================================================================
# HEALTH EVALUATOR
# ============================================================================

class HealthEvaluator:
    """
    Maintains per-target health state and produces transition events.

    Parameters
    ----------
    thresholds : ThresholdConfig
    debounce_count : int
        Consecutive agreeing observations required to confirm a change.
    loss_window_size : int
        Number of recent probes used for packet loss; 0 disables it.
    initial_state : HealthState
        State assumed for a target before its first measurement.
    """

    def __init__(
        self,
        thresholds: ThresholdConfig,
        debounce_count: int = Defaults.DEBOUNCE_COUNT,
        loss_window_size: int = Defaults.LOSS_WINDOW_SIZE,
        initial_state: HealthState = Defaults.INITIAL_STATE,
    ):
        if debounce_count < 1:
            raise ValueError("debounce_count must be at least 1")
        if loss_window_size < 0:
            raise ValueError("loss_window_size must be non-negative")

        self.thresholds = thresholds
        self.debounce_count = debounce_count
        self.loss_window_size = loss_window_size
        self.initial_state = initial_state

        self._states: Dict[str, TargetHealth] = {}

    # ------------------------------------------------------------------
    # STATE ACCESS
    # ------------------------------------------------------------------

    def _entry(self, target: Target) -> TargetHealth:
        """Get or lazily create the entry for *target*."""
        entry = self._states.get(target.name)
        if entry is None:
            entry = TargetHealth(
                target=target,
                confirmed=self.initial_state,
                window=deque(maxlen=self.loss_window_size or None),
            )
            self._states[target.name] = entry
        return entry

    def current_state(self, target: Target) -> HealthState:
        entry = self._states.get(target.name)
        return entry.confirmed if entry else self.initial_state

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """Read-only view of every known target."""
        return {name: entry.to_dict() for name, entry in self._states.items()}

    # ------------------------------------------------------------------
    # EVALUATION
    # ------------------------------------------------------------------

    async def evaluate(self, target: Target, measurement: Measurement) -> Evaluation:
        """
        Feed one measurement for *target*; serialized per target.
        """
        entry = self._entry(target)
        async with entry.lock:
            return self._apply(entry, measurement)

    def _apply(self, entry: TargetHealth, measurement: Measurement) -> Evaluation:
        if entry.last_sequence is not None and measurement.sequence < entry.last_sequence:
            logger.debug(
                f"[Evaluator] Dropping stale measurement for {entry.target.name} "
                f"(sequence {measurement.sequence} < {entry.last_sequence})"
            )
            return Evaluation(
                new_state=entry.confirmed,
                transitioned=False,
                reason="stale measurement ignored",
                stale=True,
            )

        entry.last_sequence = measurement.sequence
        entry.last_observed_at = measurement.timestamp
        entry.last_latency_ms = measurement.latency_ms

        if self.loss_window_size:
            entry.window.append(measurement.reachable)

        observed, reason = classify(measurement, self.thresholds, entry.loss_percent)
        entry.last_reason = reason

        if observed == entry.confirmed:
            entry.candidate = None
            entry.candidate_streak = 0
            return Evaluation(new_state=entry.confirmed, transitioned=False, reason=reason)

        if observed == entry.candidate:
            entry.candidate_streak += 1
        else:
            entry.candidate = observed
            entry.candidate_streak = 1

        if entry.candidate_streak < self.debounce_count:
            return Evaluation(
                new_state=entry.confirmed,
                transitioned=False,
                reason=(
                    f"{reason} (pending {observed.value} "
                    f"{entry.candidate_streak}/{self.debounce_count})"
                ),
            )

        previous = entry.confirmed
        entry.confirmed = observed
        entry.candidate = None
        entry.candidate_streak = 0

        event = TransitionEvent(
            target=entry.target,
            previous_state=previous,
            new_state=observed,
            reason=reason,
            timestamp=measurement.timestamp,
        )
        return Evaluation(new_state=observed, transitioned=True, reason=reason, event=event)
