"""Global pytest fixtures for the reachability monitor tests."""

from __future__ import annotations

import os
from typing import List, Optional, Tuple

import pytest

from config.constants import HealthState
from monitoring.models import Measurement, NotifyResult, Target, ThresholdConfig, TransitionEvent
from monitoring.notifiers import Notifier
from utils.helpers import TimeHelper


_SETTINGS_PREFIXES = ("PROBE_", "EVAL_", "ALERT_", "NOTIFY_", "LOG_", "HEALTH_")
_SETTINGS_KEYS = ("TARGETS", "MONITOR_INTERVAL_SECONDS", "APP_NAME", "APP_VERSION")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep settings from leaking in from the developer's environment."""
    for key in list(os.environ):
        if key.startswith(_SETTINGS_PREFIXES) or key in _SETTINGS_KEYS:
            monkeypatch.delenv(key, raising=False)


class RecordingNotifier(Notifier):
    """
    Notifier double: returns the queued results in order (then success)
    and records every call.
    """

    name = "recording"

    def __init__(self, results: Optional[List[object]] = None):
        self.results = list(results or [])
        self.calls: List[Tuple[str, str]] = []
        self.closed = False

    async def send(self, subject: str, body: str) -> NotifyResult:
        self.calls.append((subject, body))
        if self.results:
            result = self.results.pop(0)
            if isinstance(result, BaseException):
                raise result
            return result
        return NotifyResult.success()

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def target() -> Target:
    return Target(host="10.0.0.1", name="core-router")


@pytest.fixture
def other_target() -> Target:
    return Target(host="10.0.0.2", name="edge-switch")


@pytest.fixture
def thresholds() -> ThresholdConfig:
    return ThresholdConfig(latency_ms=100.0, packet_loss_percent=5.0)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


def ok(target: Target, latency_ms: float = 10.0, sequence: int = 0) -> Measurement:
    return Measurement.success(target, latency_ms, sequence=sequence)


def lost(target: Target, sequence: int = 0) -> Measurement:
    return Measurement.unreachable(target, "connection refused", sequence=sequence)


def transition(
    target: Target,
    previous: HealthState = HealthState.HEALTHY,
    new: HealthState = HealthState.DOWN,
) -> TransitionEvent:
    return TransitionEvent(
        target=target,
        previous_state=previous,
        new_state=new,
        reason="test",
        timestamp=TimeHelper.get_utc_now(),
    )
