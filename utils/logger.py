"""
============================================================================
REACHABILITY MONITOR - LOGGING UTILITY
============================================================================
loguru-based logging: console and rotating file sinks, optional JSON
serialization, and a structured logger for health transition events.

``setup_logging`` is called once by the application entry point with the
loaded LoggingSettings; importing this module has no side effects.
============================================================================
"""

import sys
from typing import Optional, TYPE_CHECKING

from loguru import logger

from config.constants import HealthState
from config.settings import LoggingSettings

if TYPE_CHECKING:
    from exceptions.monitoring import DispatchError
    from monitoring.models import TransitionEvent


CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

def setup_logging(settings: Optional[LoggingSettings] = None) -> None:
    """
    Configure loguru sinks from *settings*.

    Removes any previously installed sinks first, so calling it twice
    does not duplicate output.
    """
    settings = settings or LoggingSettings()

    logger.remove()

    log_level = settings.level.value

    if settings.console_enabled:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=log_level,
            colorize=settings.colorize,
            backtrace=True,
            diagnose=False,
        )

    if settings.file_enabled:
        settings.file_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            settings.file_path,
            format=FILE_FORMAT,
            level=log_level,
            rotation=settings.rotation,
            retention=settings.retention,
            compression=settings.compression,
            serialize=settings.serialize,
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )

    logger.debug(
        f"Logging initialized — level={log_level}, "
        f"console={settings.console_enabled}, file={settings.file_enabled}"
    )


def get_logger(name: Optional[str] = None):
    """
    Get logger instance with optional name.

    Args:
        name: Component name bound into every record

    Returns:
        Logger instance
    """
    if name:
        return logger.bind(name=name)
    return logger


# ============================================================================
# SPECIALIZED LOGGERS
# ============================================================================

class EventLogger:
    """
    Emits health transition events as structured log records.

    Every field of the event is bound into the record's ``extra`` so a
    JSON sink (``LOG_SERIALIZE=true``) forwards them as-is.
    """

    def __init__(self):
        self.logger = get_logger("Transitions")

    def log_transition(self, event: "TransitionEvent") -> None:
        """Log a confirmed state change."""
        level = "INFO" if event.new_state == HealthState.HEALTHY else "WARNING"
        self.logger.bind(event="transition", **event.to_dict()).log(
            level,
            f"{HealthState.get_emoji(event.new_state)} {event.target.name} "
            f"{event.previous_state.value} → {event.new_state.value} ({event.reason})"
        )

    def log_dispatch_failure(self, event: "TransitionEvent", error: "DispatchError") -> None:
        """Log an alert that could not be delivered."""
        self.logger.bind(
            event="dispatch_failure",
            error_code=error.error_code,
            attempts=error.details.get("attempts"),
            **event.to_dict(),
        ).warning(
            f"Alert for {event.target.name} ({event.new_state.value}) not delivered "
            f"after {error.details.get('attempts')} attempt(s): "
            f"{error.details.get('reason', error.message)}"
        )
