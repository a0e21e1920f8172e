"""
Settings Module for the Reachability Monitor

Configuration management using Pydantic Settings. Values come from
environment variables, a .env file, or an optional JSON file passed to
``load_settings``. The loaded Settings object is handed to the
application explicitly; there is no cached module-level instance.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from enum import Enum

from pydantic import (
    BaseModel,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
import validators as external_validators

from config.constants import Defaults, ProbeMethod
from exceptions.base import ConfigurationError


class LogLevel(str, Enum):
    """Logging level enumeration."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class BaseSettingsConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True
    )


class TargetSettings(BaseModel):
    """
    One monitored target as it appears in configuration.

    ``name`` defaults to the host; ``port`` and ``method`` fall back to
    the probe section when omitted.
    """

    host: str = Field(
        ...,
        description="Hostname or IP address to probe"
    )
    name: Optional[str] = Field(
        default=None,
        description="Display name used in alerts"
    )
    port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Port for TCP/HTTP probes"
    )
    method: Optional[ProbeMethod] = Field(
        default=None,
        description="Probe method override for this target"
    )

    @field_validator("host")
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Reject empty hosts."""
        v = v.strip()
        if not v:
            raise ValueError("target host must not be empty")
        return v

    @model_validator(mode="after")
    def default_name(self) -> "TargetSettings":
        """Use the host as the display name when none is given."""
        if not self.name or not self.name.strip():
            self.name = self.host
        return self


class ProbeSettings(BaseSettingsConfig):
    """
    Probe Executor Configuration

    Timeout and concurrency bounds for a sweep.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROBE_",
        env_file=".env",
        extra="ignore"
    )

    timeout: float = Field(
        default=Defaults.PROBE_TIMEOUT,
        gt=0,
        le=120,
        description="Per-probe timeout in seconds"
    )
    method: ProbeMethod = Field(
        default=Defaults.PROBE_METHOD,
        description="Default probe method: tcp, icmp, dns or http"
    )
    default_port: int = Field(
        default=Defaults.TCP_PORT,
        ge=1,
        le=65535,
        description="Port used by TCP/HTTP probes when a target has none"
    )
    max_concurrency: int = Field(
        default=Defaults.MAX_CONCURRENCY,
        ge=1,
        le=1000,
        description="Maximum concurrent probes within one sweep"
    )


class EvaluationSettings(BaseSettingsConfig):
    """
    Health Evaluator Configuration

    Thresholds plus the hysteresis and loss-window policy.
    """

    model_config = SettingsConfigDict(
        env_prefix="EVAL_",
        env_file=".env",
        extra="ignore"
    )

    latency_ms: float = Field(
        default=Defaults.LATENCY_MS,
        ge=0,
        description="Latency above which a reachable target is degraded"
    )
    packet_loss_percent: float = Field(
        default=Defaults.PACKET_LOSS_PERCENT,
        ge=0,
        le=100,
        description="Loss percentage within the window that forces degraded"
    )
    debounce_count: int = Field(
        default=Defaults.DEBOUNCE_COUNT,
        ge=1,
        le=100,
        description="Consecutive agreeing observations before a state is confirmed"
    )
    loss_window_size: int = Field(
        default=Defaults.LOSS_WINDOW_SIZE,
        ge=0,
        le=1000,
        description="Number of recent probes used for packet loss (0 disables)"
    )


class AlertSettings(BaseSettingsConfig):
    """
    Alert Dispatcher Configuration

    Retry and backoff policy for notifier delivery.
    """

    model_config = SettingsConfigDict(
        env_prefix="ALERT_",
        env_file=".env",
        extra="ignore"
    )

    max_attempts: int = Field(
        default=Defaults.ALERT_MAX_ATTEMPTS,
        ge=1,
        le=20,
        description="Total delivery attempts per event"
    )
    base_delay: float = Field(
        default=Defaults.ALERT_BASE_DELAY,
        ge=0,
        le=300,
        description="Delay before the first retry in seconds"
    )
    backoff_factor: float = Field(
        default=Defaults.ALERT_BACKOFF_FACTOR,
        ge=1.0,
        le=10.0,
        description="Exponential backoff multiplier"
    )
    max_delay: float = Field(
        default=Defaults.ALERT_MAX_DELAY,
        ge=0,
        le=3600,
        description="Upper bound for a single backoff delay"
    )
    queue_size: int = Field(
        default=Defaults.ALERT_QUEUE_SIZE,
        ge=1,
        description="Capacity of the pending alert queue"
    )
    drain_timeout: float = Field(
        default=Defaults.ALERT_DRAIN_TIMEOUT,
        ge=0,
        description="Seconds to keep delivering queued alerts on shutdown"
    )


class NotifierSettings(BaseSettingsConfig):
    """
    Notifier Transport Configuration

    At most one transport is active; Telegram wins over webhook, and the
    log notifier is used when neither is configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFY_",
        env_file=".env",
        extra="ignore"
    )

    webhook_url: Optional[str] = Field(
        default=None,
        description="URL receiving a JSON POST per alert"
    )
    telegram_token: Optional[SecretStr] = Field(
        default=None,
        description="Telegram Bot API token"
    )
    telegram_chat_id: Optional[str] = Field(
        default=None,
        description="Chat that receives alerts"
    )
    timeout: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Transport timeout in seconds"
    )

    @field_validator("webhook_url")
    @classmethod
    def validate_webhook_url(cls, v: Optional[str]) -> Optional[str]:
        """Blank means unset; anything else must be an http(s) URL."""
        if v is None or not v.strip():
            return None
        v = v.strip()
        if not v.startswith(("http://", "https://")) or external_validators.url(v) is not True:
            raise ValueError(f"webhook_url is not a valid http(s) URL: {v}")
        return v

    @model_validator(mode="after")
    def validate_telegram(self) -> "NotifierSettings":
        """Token and chat id only make sense together."""
        if (self.telegram_token is None) != (self.telegram_chat_id is None):
            raise ValueError(
                "telegram_token and telegram_chat_id must be set together"
            )
        return self


class LoggingSettings(BaseSettingsConfig):
    """
    Logging Configuration

    Console and rotating file sinks for loguru.
    """

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=".env",
        extra="ignore"
    )

    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum logging level"
    )
    console_enabled: bool = Field(
        default=True,
        description="Enable console logging"
    )
    colorize: bool = Field(
        default=True,
        description="Enable colored console output"
    )
    file_enabled: bool = Field(
        default=False,
        description="Enable file logging"
    )
    file_path: Path = Field(
        default=Path("logs/monitor.log"),
        description="Log file path"
    )
    rotation: str = Field(
        default="10 MB",
        description="Log rotation size or interval (e.g., '10 MB', '1 day')"
    )
    retention: str = Field(
        default="30 days",
        description="Log retention period"
    )
    compression: str = Field(
        default="zip",
        description="Compression format for rotated logs"
    )
    serialize: bool = Field(
        default=False,
        description="Write JSON lines to the log file"
    )


class HealthServerSettings(BaseSettingsConfig):
    """Status endpoint configuration."""

    model_config = SettingsConfigDict(
        env_prefix="HEALTH_",
        env_file=".env",
        extra="ignore"
    )

    enabled: bool = Field(
        default=False,
        description="Serve /health and /status over HTTP"
    )
    host: str = Field(
        default="0.0.0.0",
        description="Bind address"
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Bind port"
    )


class Settings(BaseSettingsConfig):
    """
    Main Settings Class

    Aggregates all settings sections.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_name: str = Field(
        default="Reachability Monitor",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )

    monitor_interval_seconds: float = Field(
        default=Defaults.MONITOR_INTERVAL,
        gt=0,
        le=86400,
        description="Seconds between the starts of two sweeps"
    )
    targets: List[TargetSettings] = Field(
        default_factory=list,
        description="Targets to monitor (JSON list in the TARGETS variable)"
    )

    # Nested settings
    probe: ProbeSettings = Field(
        default_factory=ProbeSettings
    )
    evaluation: EvaluationSettings = Field(
        default_factory=EvaluationSettings
    )
    alerts: AlertSettings = Field(
        default_factory=AlertSettings
    )
    notifier: NotifierSettings = Field(
        default_factory=NotifierSettings
    )
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings
    )
    health_server: HealthServerSettings = Field(
        default_factory=HealthServerSettings
    )

    @model_validator(mode="after")
    def validate_targets(self) -> "Settings":
        """Target names key the per-target state and must be unique."""
        seen = set()
        for target in self.targets:
            if target.name in seen:
                raise ValueError(f"duplicate target name: {target.name}")
            seen.add(target.name)
        return self

    def to_dict(self, *, exclude_secrets: bool = True) -> Dict[str, Any]:
        """Convert settings to dictionary."""
        data = self.model_dump(mode="json")

        if exclude_secrets:
            def remove_secrets(obj: Any) -> Any:
                if isinstance(obj, dict):
                    return {
                        k: remove_secrets(v)
                        for k, v in obj.items()
                        if "secret" not in k.lower()
                        and "token" not in k.lower()
                    }
                elif isinstance(obj, list):
                    return [remove_secrets(item) for item in obj]
                return obj

            data = remove_secrets(data)

        return data


def load_settings(
    config_file: Optional[Union[str, Path]] = None,
    **overrides: Any
) -> Settings:
    """
    Build Settings from the environment, optionally layered under a JSON
    file and keyword overrides.

    Raises:
        ConfigurationError: the file is unreadable or any value is invalid.
    """
    values: Dict[str, Any] = {}

    if config_file is not None:
        path = Path(config_file)
        try:
            values.update(json.loads(path.read_text(encoding="utf-8")))
        except OSError as e:
            raise ConfigurationError(
                f"Cannot read config file {path}: {e}",
                config_key="config_file",
                cause=e,
            ) from e
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Config file {path} is not valid JSON: {e}",
                config_key="config_file",
                cause=e,
            ) from e

    values.update(overrides)

    try:
        return Settings(**values)
    except ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise ConfigurationError(
            f"Invalid configuration: {first.get('msg', str(e))}",
            config_key=location or None,
            cause=e,
        ) from e
