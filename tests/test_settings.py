"""
Tests for configuration loading and the MonitorContext built from it.
"""

import json

import pytest

from config.constants import ProbeMethod
from config.settings import NotifierSettings, Settings, load_settings
from exceptions.base import ConfigurationError
from exceptions.validation import InvalidTargetError, InvalidThresholdError
from monitoring.context import MonitorContext
from monitoring.models import Target, ThresholdConfig
from monitoring.notifiers import LogNotifier, WebhookNotifier

from conftest import RecordingNotifier


TARGETS = [
    {"host": "10.0.0.1", "name": "core-router"},
    {"host": "example.com", "port": 443, "method": "http"},
]


# ============================================================
# LOAD SETTINGS
# ============================================================

class TestLoadSettings:

    def test_defaults(self):
        settings = load_settings(targets=TARGETS)

        assert settings.monitor_interval_seconds == 60.0
        assert settings.evaluation.debounce_count == 1
        assert settings.evaluation.loss_window_size == 10
        assert settings.targets[1].name == "example.com"
        assert settings.targets[1].method == ProbeMethod.HTTP

    def test_environment_sections(self, monkeypatch):
        monkeypatch.setenv("PROBE_TIMEOUT", "2.5")
        monkeypatch.setenv("EVAL_DEBOUNCE_COUNT", "3")
        monkeypatch.setenv("TARGETS", json.dumps(TARGETS))

        settings = load_settings()

        assert settings.probe.timeout == 2.5
        assert settings.evaluation.debounce_count == 3
        assert len(settings.targets) == 2

    def test_json_file(self, tmp_path):
        path = tmp_path / "monitor.json"
        path.write_text(json.dumps({
            "monitor_interval_seconds": 15,
            "targets": TARGETS,
            "evaluation": {"latency_ms": 80},
        }))

        settings = load_settings(path)

        assert settings.monitor_interval_seconds == 15
        assert settings.evaluation.latency_ms == 80

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "absent.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_negative_threshold_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_settings(targets=TARGETS, evaluation={"latency_ms": -1})
        assert "latency_ms" in exc_info.value.details.get("config_key", "")

    def test_empty_host_rejected(self):
        with pytest.raises(ConfigurationError):
            load_settings(targets=[{"host": "   "}])

    def test_duplicate_target_names_rejected(self):
        with pytest.raises(ConfigurationError):
            load_settings(targets=[{"host": "10.0.0.1", "name": "a"}, {"host": "10.0.0.2", "name": "a"}])

    def test_to_dict_hides_secrets(self):
        settings = Settings(
            targets=TARGETS,
            notifier=NotifierSettings(telegram_token="123:abc", telegram_chat_id="42"),
        )
        dumped = settings.to_dict()
        assert "telegram_token" not in dumped["notifier"]
        assert dumped["notifier"]["telegram_chat_id"] == "42"


class TestNotifierSettings:

    def test_telegram_needs_both_fields(self):
        with pytest.raises(ValueError):
            NotifierSettings(telegram_token="123:abc")

    def test_invalid_webhook_url(self):
        with pytest.raises(ValueError):
            NotifierSettings(webhook_url="not a url")

    def test_blank_webhook_url_is_unset(self):
        assert NotifierSettings(webhook_url="  ").webhook_url is None


# ============================================================
# THRESHOLDS & CONTEXT
# ============================================================

class TestThresholdConfig:

    def test_negative_values_are_configuration_errors(self):
        with pytest.raises(InvalidThresholdError) as exc_info:
            ThresholdConfig(latency_ms=-5, packet_loss_percent=1)
        assert isinstance(exc_info.value, ConfigurationError)

    def test_non_numeric_rejected(self):
        with pytest.raises(InvalidThresholdError):
            ThresholdConfig(latency_ms="fast", packet_loss_percent=1)


class TestMonitorContext:

    def test_from_settings(self):
        settings = load_settings(
            targets=TARGETS,
            probe={"timeout": 3, "max_concurrency": 4},
            alerts={"max_attempts": 2},
        )

        context = MonitorContext.from_settings(settings)

        assert [t.name for t in context.targets] == ["core-router", "example.com"]
        assert context.probe_timeout == 3
        assert context.max_concurrency == 4
        assert isinstance(context.notifier, LogNotifier)
        assert context.dispatcher().max_attempts == 2
        assert context.evaluator().loss_window_size == 10

    def test_webhook_notifier_selected(self):
        settings = load_settings(
            targets=TARGETS,
            notifier={"webhook_url": "https://hooks.example.com/alerts"},
        )
        context = MonitorContext.from_settings(settings)
        assert isinstance(context.notifier, WebhookNotifier)

    def test_injected_notifier_wins(self):
        notifier = RecordingNotifier()
        context = MonitorContext.from_settings(load_settings(targets=TARGETS), notifier=notifier)
        assert context.notifier is notifier

    def test_no_targets(self, thresholds):
        with pytest.raises(ConfigurationError):
            MonitorContext(targets=[], thresholds=thresholds)

    def test_malformed_host(self, thresholds):
        with pytest.raises(InvalidTargetError):
            MonitorContext(targets=[Target("bad host!", "x")], thresholds=thresholds)

    def test_duplicate_target_names(self, target, thresholds):
        twin = Target(host="10.0.0.9", name=target.name)

        with pytest.raises(ConfigurationError) as exc_info:
            MonitorContext(targets=[target, twin], thresholds=thresholds)

        assert exc_info.value.details["config_key"] == "targets"
        assert target.name in exc_info.value.message
