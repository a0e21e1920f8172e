"""
============================================================================
REACHABILITY MONITOR - ALERT DISPATCHER
============================================================================
Delivers TransitionEvents through the configured Notifier.

Design
------
The scheduler calls ``enqueue()`` which is non-blocking: it pushes the
event onto an internal asyncio.Queue.  A single ``_dispatch_loop()`` task
pulls events off the queue one at a time and runs ``dispatch()`` on each,
so events for a target are delivered in the order they were produced and
a slow notifier never blocks a sweep.

``dispatch()`` is also the direct, awaitable delivery path.

Idempotence
-----------
An AlertRecord per target remembers the last state successfully alerted.
An event whose ``new_state`` equals that state is SUPPRESSED without
calling the notifier.  A failed delivery clears the record, since the
state has changed since the last alert the operator actually saw.

Retry
-----
A failed send (failure result or raised exception) is retried with
bounded exponential back-off up to ``max_attempts`` total attempts.  On
exhaustion the failure is logged and a FAILED DeliveryResult returned;
nothing is raised to the caller.
============================================================================
"""

import asyncio
from typing import Optional, Dict, Any

from config.constants import Defaults, DeliveryStatus, HealthState, MessageTemplates
from exceptions.monitoring import DispatchError
from monitoring.models import AlertRecord, DeliveryResult, NotifyResult, TransitionEvent
from monitoring.notifiers import Notifier
from utils.helpers import TimeHelper, backoff_delay
from utils.logger import EventLogger, get_logger


logger = get_logger("AlertDispatcher")


def format_alert(event: TransitionEvent) -> tuple:
    """Render (subject, body) for a transition event."""
    values = {
        "emoji": HealthState.get_emoji(event.new_state),
        "name": event.target.name,
        "host": event.target.host,
        "previous": event.previous_state.value.upper(),
        "state": event.new_state.value.upper(),
        "reason": event.reason,
        "timestamp": TimeHelper.format_datetime(event.timestamp),
    }
    return (
        MessageTemplates.ALERT_SUBJECT.format(**values),
        MessageTemplates.ALERT_BODY.format(**values),
    )


# ============================================================================
# ALERT DISPATCHER
# ============================================================================

class AlertDispatcher:
    """
    Central hub for alert delivery.

    Parameters
    ----------
    notifier : Notifier
        Transport used to send alerts.
    max_attempts : int
        Total send attempts per event, first try included.
    base_delay, backoff_factor, max_delay : float
        Back-off between attempts: ``base_delay * backoff_factor ** (n-1)``
        capped at ``max_delay``.
    queue_size : int
        Capacity of the internal queue.
    drain_timeout : float
        Seconds ``stop()`` waits for queued events before cancelling.
    """

    def __init__(
        self,
        notifier: Notifier,
        max_attempts: int = Defaults.ALERT_MAX_ATTEMPTS,
        base_delay: float = Defaults.ALERT_BASE_DELAY,
        backoff_factor: float = Defaults.ALERT_BACKOFF_FACTOR,
        max_delay: float = Defaults.ALERT_MAX_DELAY,
        queue_size: int = Defaults.ALERT_QUEUE_SIZE,
        drain_timeout: float = Defaults.ALERT_DRAIN_TIMEOUT,
        event_logger: Optional[EventLogger] = None,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.notifier = notifier
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self.drain_timeout = drain_timeout
        self.event_logger = event_logger or EventLogger()

        # --- internal queue ---
        self._queue: "asyncio.Queue[TransitionEvent]" = asyncio.Queue(maxsize=queue_size)

        # --- idempotence: target name → last state successfully alerted ---
        self._records: Dict[str, AlertRecord] = {}

        # --- counters ---
        self._delivered = 0
        self._suppressed = 0
        self._failed = 0
        self._dropped = 0

        # --- lifecycle ---
        self._running = False
        self._dispatch_task: Optional[asyncio.Task] = None

        logger.info(
            f"AlertDispatcher created — notifier={notifier.name}, "
            f"max_attempts={max_attempts}, backoff={base_delay}s×{backoff_factor} "
            f"(max {max_delay}s)"
        )

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the background dispatch loop."""
        if self._running:
            logger.warning("AlertDispatcher is already running")
            return
        self._running = True
        self._dispatch_task = asyncio.create_task(self._dispatch_loop())
        logger.info("✓ AlertDispatcher started — dispatch loop active")

    async def stop(self) -> None:
        """
        Let the loop drain the queue for up to ``drain_timeout`` seconds,
        then cancel it. Events still queued are logged as dropped.
        """
        if self._dispatch_task is None:
            return

        try:
            await asyncio.wait_for(self._queue.join(), timeout=self.drain_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"[AlertDispatcher] Queue not drained within {self.drain_timeout}s"
            )

        self._running = False
        self._dispatch_task.cancel()
        try:
            await self._dispatch_task
        except asyncio.CancelledError:
            pass
        self._dispatch_task = None

        dropped = 0
        while not self._queue.empty():
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._queue.task_done()
            dropped += 1
            logger.warning(
                f"[AlertDispatcher] Dropping undelivered alert on shutdown: "
                f"{event.target.name} → {event.new_state.value}"
            )
        self._dropped += dropped

        await self.notifier.close()
        logger.info("✓ AlertDispatcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # QUEUEING
    # ------------------------------------------------------------------

    def enqueue(self, event: TransitionEvent) -> bool:
        """
        Non-blocking enqueue of a transition event.

        Returns
        -------
        bool
            True if the event was enqueued, False if the queue is full.
        """
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._dropped += 1
            logger.warning(
                f"[AlertDispatcher] Alert queue is full ({self._queue.maxsize}). "
                f"Dropping alert: {event.target.name} → {event.new_state.value}"
            )
            return False

        logger.debug(
            f"[AlertDispatcher] Enqueued {event.new_state.value} alert for "
            f"{event.target.name}, queue_size={self._queue.qsize()}"
        )
        return True

    async def join(self) -> None:
        """Wait until every queued event has been processed."""
        await self._queue.join()

    async def _dispatch_loop(self) -> None:
        """Pull events off the queue one at a time and dispatch them."""
        logger.info("[AlertDispatcher] Dispatch loop started")
        while self._running:
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            try:
                await self.dispatch(event)
            except Exception:
                logger.exception(
                    f"[AlertDispatcher] Unhandled error dispatching alert for "
                    f"{event.target.name}"
                )
            finally:
                self._queue.task_done()
        logger.info("[AlertDispatcher] Dispatch loop exited")

    # ------------------------------------------------------------------
    # DELIVERY
    # ------------------------------------------------------------------

    async def dispatch(self, event: TransitionEvent) -> DeliveryResult:
        """
        Deliver *event* through the notifier.

        Returns
        -------
        DeliveryResult
            DELIVERED, SUPPRESSED (already alerted for this state) or
            FAILED (all attempts exhausted).
        """
        record = self._records.get(event.target.name)
        if record is not None and record.state == event.new_state:
            self._suppressed += 1
            logger.debug(
                f"[AlertDispatcher] Alert suppressed — {event.target.name} already "
                f"alerted as {event.new_state.value}"
            )
            return DeliveryResult(DeliveryStatus.SUPPRESSED, attempts=0, event=event)

        subject, body = format_alert(event)
        last_reason = "no attempt made"

        for attempt in range(1, self.max_attempts + 1):
            result = await self._send(subject, body)
            if result.ok:
                self._records[event.target.name] = AlertRecord(
                    target=event.target.name,
                    state=event.new_state,
                    last_sent_at=TimeHelper.get_utc_now(),
                )
                self._delivered += 1
                logger.info(
                    f"[AlertDispatcher] ✓ Alert sent via {self.notifier.name} — "
                    f"{subject} (attempt {attempt})"
                )
                return DeliveryResult(DeliveryStatus.DELIVERED, attempts=attempt, event=event)

            last_reason = result.reason or "unknown error"
            logger.warning(
                f"[AlertDispatcher] Send attempt {attempt}/{self.max_attempts} "
                f"failed for {event.target.name}: {last_reason}"
            )
            if attempt < self.max_attempts:
                await asyncio.sleep(
                    backoff_delay(attempt, self.base_delay, self.backoff_factor, self.max_delay)
                )

        self._failed += 1
        error = DispatchError(
            f"Alert for {event.target.name} not delivered",
            target=event.target.name,
            attempts=self.max_attempts,
            reason=last_reason,
        )
        # the last alert on record no longer reflects what the operator saw
        self._records.pop(event.target.name, None)
        self.event_logger.log_dispatch_failure(event, error)
        return DeliveryResult(
            DeliveryStatus.FAILED,
            attempts=self.max_attempts,
            reason=last_reason,
            event=event,
        )

    async def _send(self, subject: str, body: str) -> NotifyResult:
        """One attempt; a raising notifier counts as a failed attempt."""
        try:
            return await self.notifier.send(subject, body)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            return NotifyResult.failure(f"{type(e).__name__}: {e}")

    # ------------------------------------------------------------------
    # DIAGNOSTIC
    # ------------------------------------------------------------------

    def last_alerted(self, target_name: str) -> Optional[HealthState]:
        record = self._records.get(target_name)
        return record.state if record else None

    def get_stats(self) -> Dict[str, Any]:
        """Return current state of the dispatcher for diagnostics."""
        return {
            "queue_size": self._queue.qsize(),
            "delivered": self._delivered,
            "suppressed": self._suppressed,
            "failed": self._failed,
            "dropped": self._dropped,
            "tracked_targets": len(self._records),
            "is_running": self._running,
        }
