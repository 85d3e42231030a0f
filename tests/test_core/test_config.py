"""Tests for alerting/core/config.py — YAML loading, defaults, SecretStr."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from alerting.core.config import (
    ChannelsConfig,
    EmailChannelConfig,
    LoggingConfig,
    QueueConfig,
    Settings,
    get_settings,
    load_settings,
    reset_settings,
)
from alerting.core.types import EventType, NotificationChannel, Operator, Severity


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    """Reset the global settings cache before each test."""
    reset_settings()


class TestDefaults:
    """Settings should have sensible defaults when no YAML is provided."""

    def test_default_queue_config(self) -> None:
        cfg = QueueConfig()
        assert cfg.attempts == 3
        assert cfg.backoff_type == "exponential"
        assert cfg.event_concurrency == 5
        assert cfg.notification_concurrency == 5

    def test_default_channel_failure_rates(self) -> None:
        cfg = ChannelsConfig()
        assert cfg.email.failure_rate > cfg.push.failure_rate
        assert cfg.sms.failure_rate == 0.15
        assert cfg.timeout_secs == 5.0

    def test_default_logging_config(self) -> None:
        cfg = LoggingConfig()
        assert cfg.level == "INFO"
        assert cfg.format == "json"

    def test_default_settings(self) -> None:
        s = Settings()
        assert s.server.port == 3001
        assert s.rules is None
        assert s.preferences == []
        assert s.worker.retry_failed_deliveries is True
        assert s.worker.dedupe_notifications is False


class TestYamlLoading:
    """Settings should load correctly from YAML files."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "server": {"port": 8099},
            "queue": {"attempts": 5, "backoff_type": "fixed", "backoff_delay_secs": 0.5},
            "channels": {"email": {"api_key": "sg-key", "from_email": "ops@example.com"}},
            "logging": {"level": "DEBUG", "format": "console"},
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.server.port == 8099
        assert settings.queue.attempts == 5
        assert settings.queue.backoff_type == "fixed"
        assert settings.channels.email.api_key.get_secret_value() == "sg-key"
        assert settings.channels.email.from_email == "ops@example.com"
        assert settings.logging.level == "DEBUG"

    def test_load_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "nonexistent.yaml")
        assert settings.server.port == 3001
        assert settings.queue.attempts == 3

    def test_load_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        settings = load_settings(config_file)
        assert settings.server.port == 3001

    def test_rules_and_preferences_sections(self, tmp_path: Path) -> None:
        config_data = {
            "rules": [
                {
                    "event_type": "LOW_STOCK",
                    "thresholds": [
                        {
                            "condition": {"field": "stock", "op": "lt", "value": 2},
                            "severity": "CRITICAL",
                            "channels": ["SMS"],
                        }
                    ],
                }
            ],
            "preferences": [
                {
                    "userId": "u1",
                    "email": "u1@example.com",
                    "preferences": {"LOW_STOCK": ["EMAIL", "IN_APP"]},
                }
            ],
        }
        config_file = tmp_path / "settings.yaml"
        config_file.write_text(yaml.dump(config_data))

        settings = load_settings(config_file)

        assert settings.rules is not None
        rule = settings.rules[0].thresholds[0]
        assert settings.rules[0].event_type == EventType.LOW_STOCK
        assert rule.condition.op == Operator.LT
        assert rule.severity == Severity.CRITICAL
        pref = settings.preferences[0]
        assert pref.user_id == "u1"
        assert pref.is_enabled is True
        assert pref.preferences[EventType.LOW_STOCK] == [
            NotificationChannel.EMAIL,
            NotificationChannel.IN_APP,
        ]

    def test_example_config_parses(self) -> None:
        example = Path(__file__).resolve().parents[2] / "config" / "settings.example.yaml"
        settings = load_settings(example)
        assert {p.user_id for p in settings.preferences} == {"user1", "user2"}


class TestCaching:
    def test_get_settings_caches(self) -> None:
        first = get_settings()
        assert get_settings() is first

    def test_reset_clears_cache(self, tmp_path: Path) -> None:
        first = load_settings(tmp_path / "none.yaml")
        reset_settings()
        assert load_settings(tmp_path / "none.yaml") is not first


class TestSecretStr:
    def test_secret_str_repr_does_not_leak(self) -> None:
        cfg = EmailChannelConfig(api_key="super-secret")  # type: ignore[arg-type]
        assert "super-secret" not in repr(cfg)
        assert cfg.api_key.get_secret_value() == "super-secret"
