"""
Configuration Package for the Reachability Monitor

This package contains:
- Settings management with environment variable support
- Constants, enums and message templates
"""

from config.settings import (
    Settings,
    TargetSettings,
    ProbeSettings,
    EvaluationSettings,
    AlertSettings,
    NotifierSettings,
    LoggingSettings,
    HealthServerSettings,
    LogLevel,
    load_settings
)

from config.constants import (
    HealthState,
    ProbeMethod,
    DeliveryStatus,
    Defaults,
    MessageTemplates
)

__all__ = [
    # Settings
    "Settings",
    "TargetSettings",
    "ProbeSettings",
    "EvaluationSettings",
    "AlertSettings",
    "NotifierSettings",
    "LoggingSettings",
    "HealthServerSettings",
    "LogLevel",
    "load_settings",

    # Constants
    "HealthState",
    "ProbeMethod",
    "DeliveryStatus",
    "Defaults",
    "MessageTemplates"
]
