"""
Tests for the AlertDispatcher: idempotence, retry/backoff, failure
handling and the queue-driven dispatch loop.
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from config.constants import DeliveryStatus, HealthState
from monitoring.alerts import AlertDispatcher, format_alert
from monitoring.models import NotifyResult

from conftest import RecordingNotifier, transition


def make_dispatcher(notifier, **kwargs):
    kwargs.setdefault("max_attempts", 4)
    kwargs.setdefault("base_delay", 0.0)
    kwargs.setdefault("max_delay", 0.0)
    kwargs.setdefault("drain_timeout", 1.0)
    return AlertDispatcher(notifier, **kwargs)


# ============================================================
# DISPATCH
# ============================================================

class TestDispatch:

    @pytest.mark.asyncio
    async def test_delivers_and_records_state(self, target, notifier):
        dispatcher = make_dispatcher(notifier)

        result = await dispatcher.dispatch(transition(target))

        assert result.status == DeliveryStatus.DELIVERED
        assert result.attempts == 1
        assert len(notifier.calls) == 1
        assert dispatcher.last_alerted(target.name) == HealthState.DOWN

    @pytest.mark.asyncio
    async def test_duplicate_state_is_suppressed(self, target, notifier):
        dispatcher = make_dispatcher(notifier)

        await dispatcher.dispatch(transition(target))
        second = await dispatcher.dispatch(
            transition(target, HealthState.DEGRADED, HealthState.DOWN)
        )

        assert second.status == DeliveryStatus.SUPPRESSED
        assert len(notifier.calls) == 1

    @pytest.mark.asyncio
    async def test_fail_fail_succeed_delivers_once(self, target):
        notifier = RecordingNotifier([
            NotifyResult.failure("503"),
            NotifyResult.failure("503"),
            NotifyResult.success(),
        ])
        dispatcher = make_dispatcher(notifier, max_attempts=3)

        result = await dispatcher.dispatch(transition(target))

        assert result.delivered
        assert result.attempts == 3
        assert len(notifier.calls) == 3
        assert dispatcher.get_stats()["delivered"] == 1

    @pytest.mark.asyncio
    async def test_raising_notifier_counts_as_failed_attempt(self, target):
        notifier = RecordingNotifier([RuntimeError("boom"), NotifyResult.success()])
        dispatcher = make_dispatcher(notifier)

        result = await dispatcher.dispatch(transition(target))

        assert result.delivered
        assert result.attempts == 2

    @pytest.mark.asyncio
    async def test_exhaustion_returns_failed_without_raising(self, target):
        notifier = RecordingNotifier([NotifyResult.failure("down")] * 4)
        dispatcher = make_dispatcher(notifier, max_attempts=4)

        result = await dispatcher.dispatch(transition(target))

        assert result.status == DeliveryStatus.FAILED
        assert result.attempts == 4
        assert result.reason == "down"
        assert dispatcher.last_alerted(target.name) is None

    @pytest.mark.asyncio
    async def test_next_event_processed_after_failure(self, target):
        notifier = RecordingNotifier([NotifyResult.failure("down")] * 2)
        dispatcher = make_dispatcher(notifier, max_attempts=2)

        failed = await dispatcher.dispatch(transition(target))
        recovered = await dispatcher.dispatch(
            transition(target, HealthState.DOWN, HealthState.HEALTHY)
        )

        assert failed.status == DeliveryStatus.FAILED
        assert recovered.status == DeliveryStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_new_outage_sent_after_undelivered_recovery(self, target):
        notifier = RecordingNotifier([
            NotifyResult.success(),
            NotifyResult.failure("503"),
        ])
        dispatcher = make_dispatcher(notifier, max_attempts=1)

        outage = await dispatcher.dispatch(transition(target))
        recovery = await dispatcher.dispatch(
            transition(target, HealthState.DOWN, HealthState.HEALTHY)
        )
        second_outage = await dispatcher.dispatch(transition(target))

        assert outage.status == DeliveryStatus.DELIVERED
        assert recovery.status == DeliveryStatus.FAILED
        assert dispatcher.last_alerted(target.name) == HealthState.DOWN
        assert second_outage.status == DeliveryStatus.DELIVERED
        assert len(notifier.calls) == 3
        assert dispatcher.get_stats()["suppressed"] == 0

    @pytest.mark.asyncio
    async def test_backoff_delays_are_bounded(self, target):
        notifier = RecordingNotifier([NotifyResult.failure("x")] * 4)
        dispatcher = AlertDispatcher(
            notifier, max_attempts=4, base_delay=1.0, backoff_factor=2.0, max_delay=3.0
        )

        with patch("monitoring.alerts.asyncio.sleep", new=AsyncMock()) as sleep:
            await dispatcher.dispatch(transition(target))

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 3.0]

    def test_format_alert(self, target):
        subject, body = format_alert(transition(target))
        assert target.name in subject
        assert "DOWN" in subject
        assert "HEALTHY -> DOWN" in body
        assert target.host in body

    def test_max_attempts_must_be_positive(self, notifier):
        with pytest.raises(ValueError):
            AlertDispatcher(notifier, max_attempts=0)


# ============================================================
# QUEUE
# ============================================================

class TestDispatchQueue:

    @pytest.mark.asyncio
    async def test_enqueued_events_are_delivered_in_order(self, target, notifier):
        dispatcher = make_dispatcher(notifier)
        await dispatcher.start()
        try:
            dispatcher.enqueue(transition(target, HealthState.HEALTHY, HealthState.DEGRADED))
            dispatcher.enqueue(transition(target, HealthState.DEGRADED, HealthState.DOWN))
            await asyncio.wait_for(dispatcher.join(), timeout=2.0)
        finally:
            await dispatcher.stop()

        subjects = [subject for subject, _ in notifier.calls]
        assert "DEGRADED" in subjects[0]
        assert "DOWN" in subjects[1]
        assert notifier.closed

    @pytest.mark.asyncio
    async def test_full_queue_rejects(self, target, notifier):
        dispatcher = make_dispatcher(notifier, queue_size=1)

        assert dispatcher.enqueue(transition(target))
        assert not dispatcher.enqueue(transition(target))
        assert dispatcher.get_stats()["dropped"] == 1

    @pytest.mark.asyncio
    async def test_stop_drops_undrained_events(self, target):
        class SlowNotifier(RecordingNotifier):
            async def send(self, subject, body):
                await asyncio.sleep(10)
                return NotifyResult.success()

        dispatcher = make_dispatcher(SlowNotifier(), drain_timeout=0.05)
        await dispatcher.start()
        dispatcher.enqueue(transition(target))
        dispatcher.enqueue(transition(target, HealthState.DOWN, HealthState.HEALTHY))
        await asyncio.sleep(0.01)

        await asyncio.wait_for(dispatcher.stop(), timeout=2.0)

        stats = dispatcher.get_stats()
        assert stats["queue_size"] == 0
        assert stats["dropped"] == 1
        assert not stats["is_running"]
