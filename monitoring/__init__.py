"""
============================================================================
REACHABILITY MONITOR - MONITORING PACKAGE
============================================================================
Runtime monitoring infrastructure:
    • ProbeExecutor      — one reachability/latency measurement per target
    • HealthEvaluator    — debounce + loss window → confirmed health state
    • MonitorScheduler   — periodic, bounded-concurrency sweep loop
    • AlertDispatcher    — idempotent, retrying alert delivery
    • Notifiers          — log / webhook / Telegram transports
    • HealthServer       — aiohttp status endpoint

monitoring/
├── models.py          ← Target, Measurement, TransitionEvent, …
├── probe.py           ← ProbeExecutor (tcp / icmp / dns / http)
├── evaluator.py       ← HealthEvaluator
├── notifiers.py       ← Notifier + transports
├── alerts.py          ← AlertDispatcher
├── context.py         ← MonitorContext
├── scheduler.py       ← MonitorScheduler
└── health_server.py   ← HealthServer
============================================================================
"""

from monitoring.models import (
    Target,
    Measurement,
    ThresholdConfig,
    TransitionEvent,
    AlertRecord,
    NotifyResult,
    DeliveryResult,
)
from monitoring.probe import ProbeExecutor
from monitoring.evaluator import HealthEvaluator, Evaluation, classify
from monitoring.notifiers import (
    Notifier,
    LogNotifier,
    WebhookNotifier,
    TelegramNotifier,
    build_notifier,
)
from monitoring.alerts import AlertDispatcher
from monitoring.context import MonitorContext
from monitoring.scheduler import MonitorScheduler
from monitoring.health_server import HealthServer

__all__ = [
    # Data model
    "Target",
    "Measurement",
    "ThresholdConfig",
    "TransitionEvent",
    "AlertRecord",
    "NotifyResult",
    "DeliveryResult",

    # Probing & evaluation
    "ProbeExecutor",
    "HealthEvaluator",
    "Evaluation",
    "classify",

    # Alerts
    "Notifier",
    "LogNotifier",
    "WebhookNotifier",
    "TelegramNotifier",
    "build_notifier",
    "AlertDispatcher",

    # Loop
    "MonitorContext",
    "MonitorScheduler",
    "HealthServer",
]
