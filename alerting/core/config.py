"""Pydantic settings loaded from YAML configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, SecretStr

from alerting.core.types import ThresholdConfig, UserNotificationPreference

_settings: Settings | None = None

_DEFAULT_CONFIG_PATH = Path("config/settings.yaml")


class ServerConfig(BaseModel):
    """HTTP API configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    service_name: str = "alerting-service"


class QueueConfig(BaseModel):
    """Job queue configuration, shared by the event and notification queues."""

    event_concurrency: int = 5
    notification_concurrency: int = 5
    attempts: int = 3
    backoff_type: Literal["fixed", "exponential"] = "exponential"
    backoff_delay_secs: float = 2.0
    remove_on_complete: int = 100
    remove_on_fail: int = 50


class WorkerConfig(BaseModel):
    """Alert worker behaviour."""

    retry_failed_deliveries: bool = True
    dedupe_notifications: bool = False


class EmailChannelConfig(BaseModel):
    """Email delivery (simulated SendGrid-style provider)."""

    api_key: SecretStr = SecretStr("")
    from_email: str = "noreply@alerting.local"
    from_name: str = "Alerting Service"
    latency_ms: int = 100
    failure_rate: float = 0.10


class SmsChannelConfig(BaseModel):
    """SMS delivery (simulated)."""

    api_key: SecretStr = SecretStr("")
    latency_ms: int = 150
    failure_rate: float = 0.15


class PushChannelConfig(BaseModel):
    """Push delivery (simulated)."""

    api_key: SecretStr = SecretStr("")
    latency_ms: int = 50
    failure_rate: float = 0.05


class ChannelsConfig(BaseModel):
    """Container for all channel adapter configurations."""

    email: EmailChannelConfig = EmailChannelConfig()
    sms: SmsChannelConfig = SmsChannelConfig()
    push: PushChannelConfig = PushChannelConfig()
    timeout_secs: float = 5.0


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "json"


class Settings(BaseModel):
    """Root settings container."""

    server: ServerConfig = ServerConfig()
    queue: QueueConfig = QueueConfig()
    worker: WorkerConfig = WorkerConfig()
    channels: ChannelsConfig = ChannelsConfig()
    rules: list[ThresholdConfig] | None = None
    preferences: list[UserNotificationPreference] = Field(default_factory=list)
    logging: LoggingConfig = LoggingConfig()


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from a YAML file and cache globally.

    Args:
        path: Path to YAML config. Defaults to config/settings.yaml.

    Returns:
        Parsed Settings instance.
    """
    global _settings  # noqa: PLW0603

    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f)
            if isinstance(raw, dict):
                data = raw

    _settings = Settings(**data)
    return _settings


def get_settings() -> Settings:
    """Return the cached settings, loading defaults if not yet loaded."""
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Reset the cached settings (useful for testing)."""
    global _settings  # noqa: PLW0603
    _settings = None
