"""
============================================================================
REACHABILITY MONITOR - MONITOR CONTEXT
============================================================================
Everything the monitoring loop needs, built once from Settings and
passed explicitly to the components. There is no global settings
singleton: tests construct a MonitorContext directly.
============================================================================
"""

from dataclasses import dataclass, field
from typing import List, Optional

from config.constants import Defaults, HealthState, ProbeMethod
from config.settings import Settings
from exceptions.base import ConfigurationError
from monitoring.alerts import AlertDispatcher
from monitoring.evaluator import HealthEvaluator
from monitoring.models import Target, ThresholdConfig
from monitoring.notifiers import LogNotifier, Notifier, build_notifier
from monitoring.probe import ProbeExecutor
from utils.validators import TargetValidator


@dataclass
class MonitorContext:
    """
    Read-only configuration of one monitor process plus factories for
    the components that own mutable state.
    """
    targets: List[Target]
    thresholds: ThresholdConfig
    interval_seconds: float = Defaults.MONITOR_INTERVAL
    probe_timeout: float = Defaults.PROBE_TIMEOUT
    max_concurrency: int = Defaults.MAX_CONCURRENCY
    probe_method: ProbeMethod = Defaults.PROBE_METHOD
    default_port: int = Defaults.TCP_PORT
    debounce_count: int = Defaults.DEBOUNCE_COUNT
    loss_window_size: int = Defaults.LOSS_WINDOW_SIZE
    initial_state: HealthState = Defaults.INITIAL_STATE
    alert_max_attempts: int = Defaults.ALERT_MAX_ATTEMPTS
    alert_base_delay: float = Defaults.ALERT_BASE_DELAY
    alert_backoff_factor: float = Defaults.ALERT_BACKOFF_FACTOR
    alert_max_delay: float = Defaults.ALERT_MAX_DELAY
    alert_queue_size: int = Defaults.ALERT_QUEUE_SIZE
    alert_drain_timeout: float = Defaults.ALERT_DRAIN_TIMEOUT
    notifier: Notifier = field(default_factory=LogNotifier)
    settings: Optional[Settings] = None

    def __post_init__(self):
        if not self.targets:
            raise ConfigurationError(
                "At least one target must be configured",
                config_key="targets",
            )
        if self.interval_seconds <= 0:
            raise ConfigurationError(
                "Monitor interval must be positive",
                config_key="monitor_interval_seconds",
            )
        if self.probe_timeout <= 0:
            raise ConfigurationError(
                "Probe timeout must be positive",
                config_key="probe.timeout",
            )
        if self.max_concurrency < 1:
            raise ConfigurationError(
                "max_concurrency must be at least 1",
                config_key="probe.max_concurrency",
            )
        seen = set()
        for target in self.targets:
            TargetValidator.validate(target)
            if target.name in seen:
                raise ConfigurationError(
                    f"Duplicate target name: {target.name}",
                    config_key="targets",
                )
            seen.add(target.name)

    # ------------------------------------------------------------------
    # CONSTRUCTION
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        notifier: Optional[Notifier] = None,
    ) -> "MonitorContext":
        """
        Build a context from loaded settings.

        Raises:
            ConfigurationError: no targets, invalid target or threshold.
        """
        targets = [
            Target(host=t.host, name=t.name, port=t.port, method=t.method)
            for t in settings.targets
        ]

        thresholds = ThresholdConfig(
            latency_ms=settings.evaluation.latency_ms,
            packet_loss_percent=settings.evaluation.packet_loss_percent,
        )

        return cls(
            targets=targets,
            thresholds=thresholds,
            interval_seconds=settings.monitor_interval_seconds,
            probe_timeout=settings.probe.timeout,
            max_concurrency=settings.probe.max_concurrency,
            probe_method=settings.probe.method,
            default_port=settings.probe.default_port,
            debounce_count=settings.evaluation.debounce_count,
            loss_window_size=settings.evaluation.loss_window_size,
            alert_max_attempts=settings.alerts.max_attempts,
            alert_base_delay=settings.alerts.base_delay,
            alert_backoff_factor=settings.alerts.backoff_factor,
            alert_max_delay=settings.alerts.max_delay,
            alert_queue_size=settings.alerts.queue_size,
            alert_drain_timeout=settings.alerts.drain_timeout,
            notifier=notifier or build_notifier(settings.notifier),
            settings=settings,
        )

    # ------------------------------------------------------------------
    # COMPONENT FACTORIES
    # ------------------------------------------------------------------

    def probe_executor(self) -> ProbeExecutor:
        return ProbeExecutor(default_method=self.probe_method, default_port=self.default_port)

    def evaluator(self) -> HealthEvaluator:
        return HealthEvaluator(
            self.thresholds,
            debounce_count=self.debounce_count,
            loss_window_size=self.loss_window_size,
            initial_state=self.initial_state,
        )

    def dispatcher(self) -> AlertDispatcher:
        return AlertDispatcher(
            self.notifier,
            max_attempts=self.alert_max_attempts,
            base_delay=self.alert_base_delay,
            backoff_factor=self.alert_backoff_factor,
            max_delay=self.alert_max_delay,
            queue_size=self.alert_queue_size,
            drain_timeout=self.alert_drain_timeout,
        )
