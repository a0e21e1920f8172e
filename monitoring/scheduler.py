"""
============================================================================
REACHABILITY MONITOR - MONITOR SCHEDULER
============================================================================
Drives the monitoring loop: one sweep over every target per interval.

Sweep
-----
Each target gets its own task:  probe → evaluate → (on transition) log
the event and enqueue it to the AlertDispatcher.  Fan-out is bounded by
a semaphore of ``min(len(targets), max_concurrency)`` and the sweep is
joined with ``gather(return_exceptions=True)`` before the next tick, so
one failing target never takes down the others.

Timing
------
Ticks are measured on the monotonic clock from the start of the previous
sweep.  A sweep that overruns the interval logs a warning and the next
sweep starts immediately.

Shutdown
--------
``stop()`` sets the stop event: the inter-sweep wait wakes immediately
and no new sweep starts.  An in-flight sweep gets one probe timeout plus
a short grace to finish and is then cancelled.
============================================================================
"""

import asyncio
import time
from typing import Optional, Dict, Any, List

from config.constants import Defaults
from exceptions.monitoring import EvaluationError
from monitoring.alerts import AlertDispatcher
from monitoring.context import MonitorContext
from monitoring.evaluator import Evaluation, HealthEvaluator
from monitoring.models import Target
from monitoring.probe import ProbeExecutor
from utils.logger import EventLogger, get_logger


logger = get_logger("Scheduler")


class MonitorScheduler:
    """
    Periodic sweep loop over the targets of a MonitorContext.

    Parameters
    ----------
    context : MonitorContext
    probe_executor, evaluator, dispatcher : optional
        Built from the context when not given.  Passing ``dispatcher=None``
        together with ``alerting=False`` runs without alert delivery.
    event_logger : EventLogger | None
    """

    def __init__(
        self,
        context: MonitorContext,
        probe_executor: Optional[ProbeExecutor] = None,
        evaluator: Optional[HealthEvaluator] = None,
        dispatcher: Optional[AlertDispatcher] = None,
        event_logger: Optional[EventLogger] = None,
        alerting: bool = True,
    ):
        self.context = context
        self.probe_executor = probe_executor or context.probe_executor()
        self.evaluator = evaluator or context.evaluator()
        if dispatcher is None and alerting:
            dispatcher = context.dispatcher()
        self.dispatcher = dispatcher
        self.event_logger = event_logger or EventLogger()

        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._running = False

        # --- diagnostics ---
        self._sequence = 0
        self._sweep_count = 0
        self._error_count = 0
        self._transition_count = 0
        self._overrun_count = 0
        self._last_sweep_duration: Optional[float] = None
        self._last_sweep_at: Optional[float] = None

        logger.info(
            f"MonitorScheduler created — {len(context.targets)} target(s), "
            f"interval={context.interval_seconds}s, timeout={context.probe_timeout}s, "
            f"concurrency={self.concurrency}"
        )

    @property
    def concurrency(self) -> int:
        return max(1, min(len(self.context.targets), self.context.max_concurrency))

    @property
    def is_running(self) -> bool:
        return self._running

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run the loop in a background task."""
        if self._task is not None and not self._task.done():
            logger.warning("MonitorScheduler is already running")
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())
        logger.info("✓ MonitorScheduler started")

    async def stop(self) -> None:
        """
        Stop the loop. Waits at most one probe timeout plus grace for an
        in-flight sweep, then cancels it.
        """
        self._stop_event.set()

        if self._task is None:
            return

        grace = self.context.probe_timeout + Defaults.SHUTDOWN_GRACE
        done, _ = await asyncio.wait({self._task}, timeout=grace)
        if not done:
            logger.warning(
                f"[Scheduler] Sweep still running after {grace:.1f}s — cancelling"
            )
            self._task.cancel()

        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("✓ MonitorScheduler stopped")

    # ------------------------------------------------------------------
    # MAIN LOOP
    # ------------------------------------------------------------------

    async def run(self, max_sweeps: Optional[int] = None) -> None:
        """
        Run sweeps until stopped, or until *max_sweeps* sweeps completed.
        """
        self._running = True
        sweeps = 0
        logger.info("[Scheduler] Main loop started")
        try:
            while not self._stop_event.is_set():
                started = time.monotonic()
                try:
                    await self.run_sweep()
                except Exception:
                    logger.exception("[Scheduler] Unhandled error in sweep")

                sweeps += 1
                if max_sweeps is not None and sweeps >= max_sweeps:
                    break

                remaining = self.context.interval_seconds - (time.monotonic() - started)
                if remaining <= 0:
                    self._overrun_count += 1
                    logger.warning(
                        f"[Scheduler] Sweep overran the {self.context.interval_seconds}s "
                        f"interval by {-remaining:.2f}s — starting next sweep now"
                    )
                    continue

                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            logger.info(f"[Scheduler] Main loop exited after {sweeps} sweep(s)")

    async def run_sweep(self) -> List[Optional[Evaluation]]:
        """
        Probe and evaluate every target once.

        Returns
        -------
        list
            One Evaluation per target, None where the check failed.
        """
        self._sequence += 1
        sequence = self._sequence
        targets = self.context.targets
        semaphore = asyncio.Semaphore(self.concurrency)

        started = time.monotonic()
        tasks = [
            asyncio.create_task(self._run_guarded(target, sequence, semaphore))
            for target in targets
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        evaluations: List[Optional[Evaluation]] = []
        for target, result in zip(targets, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                self._error_count += 1
                logger.opt(exception=result).error(
                    f"[Scheduler] Check for {target.name} raised: {result}"
                )
                evaluations.append(None)
            else:
                evaluations.append(result)

        self._sweep_count += 1
        self._last_sweep_duration = time.monotonic() - started
        self._last_sweep_at = time.time()
        logger.debug(
            f"[Scheduler] Sweep #{sequence} finished in "
            f"{self._last_sweep_duration:.2f}s ({len(targets)} target(s))"
        )
        return evaluations

    # ------------------------------------------------------------------
    # SINGLE TARGET
    # ------------------------------------------------------------------

    async def _run_guarded(
        self,
        target: Target,
        sequence: int,
        semaphore: asyncio.Semaphore,
    ) -> Optional[Evaluation]:
        """Run one check; unexpected errors are logged and counted."""
        try:
            return await self._check_target(target, sequence, semaphore)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._error_count += 1
            error = EvaluationError.from_exception(
                e, f"Check failed for {target.name}: {e}", target=target.name
            )
            logger.opt(exception=e).error(f"[Scheduler] {error.log_format()}")
            return None

    async def _check_target(
        self,
        target: Target,
        sequence: int,
        semaphore: asyncio.Semaphore,
    ) -> Evaluation:
        async with semaphore:
            measurement = await self.probe_executor.probe(
                target, self.context.probe_timeout, sequence=sequence
            )

        evaluation = await self.evaluator.evaluate(target, measurement)

        if evaluation.transitioned and evaluation.event is not None:
            self._transition_count += 1
            self.event_logger.log_transition(evaluation.event)
            if self.dispatcher is not None:
                self.dispatcher.enqueue(evaluation.event)

        return evaluation

    # ------------------------------------------------------------------
    # DIAGNOSTICS
    # ------------------------------------------------------------------

    def get_stats(self) -> Dict[str, Any]:
        """Return current state of the scheduler for diagnostics."""
        return {
            "is_running": self._running,
            "targets": len(self.context.targets),
            "interval_seconds": self.context.interval_seconds,
            "sweep_count": self._sweep_count,
            "error_count": self._error_count,
            "transition_count": self._transition_count,
            "overrun_count": self._overrun_count,
            "last_sweep_duration": (
                round(self._last_sweep_duration, 3)
                if self._last_sweep_duration is not None else None
            ),
            "last_sweep_at": self._last_sweep_at,
        }
