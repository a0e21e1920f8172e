"""
============================================================================
REACHABILITY MONITOR - HELPERS UTILITY
============================================================================
Time formatting and retry backoff helpers shared by the monitoring
components.
============================================================================
"""

from datetime import datetime, timezone

from config.constants import Defaults


# ============================================================================
# TIME UTILITIES
# ============================================================================

class TimeHelper:
    """
    Time and date manipulation utilities.
    """

    @staticmethod
    def get_utc_now() -> datetime:
        """Get current timezone-aware UTC datetime."""
        return datetime.now(timezone.utc)

    @staticmethod
    def format_datetime(dt: datetime, fmt: str = Defaults.DATETIME_FORMAT) -> str:
        """
        Format datetime to string.

        Args:
            dt: Datetime to format
            fmt: Format string

        Returns:
            Formatted string
        """
        return dt.strftime(fmt)

    @staticmethod
    def seconds_to_human_readable(seconds: float) -> str:
        """
        Convert seconds to human-readable format.

        Args:
            seconds: Number of seconds

        Returns:
            Human-readable string (e.g., "2h 30m 15s")
        """
        seconds = int(seconds)
        if seconds < 0:
            return "0s"

        days, remainder = divmod(seconds, 86400)
        hours, remainder = divmod(remainder, 3600)
        minutes, secs = divmod(remainder, 60)

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        if secs > 0 or not parts:
            parts.append(f"{secs}s")

        return " ".join(parts)


# ============================================================================
# RETRY BACKOFF
# ============================================================================

def backoff_delay(
    attempt: int,
    base: float = Defaults.ALERT_BASE_DELAY,
    factor: float = Defaults.ALERT_BACKOFF_FACTOR,
    maximum: float = Defaults.ALERT_MAX_DELAY,
) -> float:
    """
    Delay to wait after failed attempt number *attempt* (1-based).

    Grows as ``base * factor ** (attempt - 1)`` and never exceeds
    *maximum*.
    """
    if attempt < 1:
        return 0.0
    return min(base * (factor ** (attempt - 1)), maximum)
