"""Client configuration for pywtrack."""

from __future__ import annotations

import dataclasses
import os
from datetime import UTC, tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pywtrack import _constants
from pywtrack.exceptions import (
    ConnectionFailureError,
    CorruptPayloadError,
    NoTagDetectedError,
    ScanCancelledError,
    ScanError,
    ScanTimeoutError,
    TooManyTagsError,
    UnconfiguredPointError,
    UnsupportedPointKindError,
    WTrackConfigError,
)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ScanMessages:
    """User-facing texts shown by the reader session.

    Each error text is used when a scan attempt is aborted for the
    matching reason; ``prompt`` is shown while the session is polling.
    """

    prompt: str = _constants.SCAN_PROMPT
    too_many_tags: str = _constants.TOO_MANY_TAGS_MESSAGE
    no_tag: str = _constants.NO_TAG_MESSAGE
    connection_error: str = _constants.CONNECTION_ERROR_MESSAGE
    unconfigured: str = _constants.UNCONFIGURED_MESSAGE
    corrupt: str = _constants.CORRUPT_MESSAGE
    unsupported_kind: str = _constants.UNSUPPORTED_KIND_MESSAGE
    cancelled: str = _constants.CANCELLED_MESSAGE
    timeout: str = _constants.TIMEOUT_MESSAGE

    def user_message_for(self, error: ScanError) -> str:
        """Return the configured text for *error*, or its own message."""
        mapping: dict[type[ScanError], str] = {
            TooManyTagsError: self.too_many_tags,
            NoTagDetectedError: self.no_tag,
            ConnectionFailureError: self.connection_error,
            UnconfiguredPointError: self.unconfigured,
            CorruptPayloadError: self.corrupt,
            UnsupportedPointKindError: self.unsupported_kind,
            ScanCancelledError: self.cancelled,
            ScanTimeoutError: self.timeout,
        }
        for error_cls, text in mapping.items():
            if isinstance(error, error_cls):
                return text
        return error.user_message


@dataclasses.dataclass(frozen=True)
class WTrackConfig:
    """Client configuration.

    Parameters
    ----------
    time_zone : str
        IANA time zone used when formatting check-in times.
    scan_timeout : float
        Seconds a scan session polls for a tag before giving up.
    location_fix_timeout : float
        Seconds to wait for a location fix newer than the scan before
        recording the event.  ``0`` records with whatever coordinate the
        location provider last knew, which may be stale or absent.
    strict_manual_entry : bool
        Raise :class:`~pywtrack.exceptions.EmptyNameError` for blank
        manual check-ins instead of silently ignoring them.
    messages : ScanMessages
        User-facing session texts.
    mqtt_enabled : bool
        Listen for a networked tag reader over MQTT.
    mqtt_host : str
        Broker host name.
    mqtt_port : int
        Broker port.
    mqtt_topic : str
        Topic the reader publishes scans and location fixes on.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    mqtt_tls : bool
        Connect to the broker over TLS.
    mqtt_username : str or None
        Broker user name.
    mqtt_password : str or None
        Broker password.
    """

    time_zone: str = "UTC"
    scan_timeout: float = _constants.DEFAULT_SCAN_TIMEOUT
    location_fix_timeout: float = 0.0
    strict_manual_entry: bool = False
    messages: ScanMessages = dataclasses.field(default_factory=ScanMessages)
    mqtt_enabled: bool = False
    mqtt_host: str = "localhost"
    mqtt_port: int = 1883
    mqtt_topic: str = _constants.DEFAULT_MQTT_TOPIC
    mqtt_keepalive: int = 60
    mqtt_tls: bool = False
    mqtt_username: str | None = None
    mqtt_password: str | None = None

    def __post_init__(self) -> None:
        if self.scan_timeout <= 0:
            raise WTrackConfigError(f"scan_timeout must be positive, got {self.scan_timeout}")
        if self.location_fix_timeout < 0:
            raise WTrackConfigError(f"location_fix_timeout must not be negative, got {self.location_fix_timeout}")
        if self.time_zone == "UTC":
            return
        try:
            ZoneInfo(self.time_zone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise WTrackConfigError(f"Unknown time zone: {self.time_zone!r}") from exc

    @property
    def tzinfo(self) -> tzinfo:
        """Time zone used for display formatting."""
        if self.time_zone == "UTC":
            return UTC
        return ZoneInfo(self.time_zone)

    @classmethod
    def from_env(cls, **overrides: Any) -> WTrackConfig:
        """Create configuration from environment variables.

        Reads optional ``WTRACK_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        WTrackConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "WTRACK_TIME_ZONE": "time_zone",
            "WTRACK_MQTT_HOST": "mqtt_host",
            "WTRACK_MQTT_TOPIC": "mqtt_topic",
            "WTRACK_MQTT_USERNAME": "mqtt_username",
            "WTRACK_MQTT_PASSWORD": "mqtt_password",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # Numeric fields, handled separately
        _ENV_FLOAT_MAP = {
            "WTRACK_SCAN_TIMEOUT": "scan_timeout",
            "WTRACK_LOCATION_FIX_TIMEOUT": "location_fix_timeout",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise WTrackConfigError(f"{env_key} must be a number, got {val!r}") from exc

        _ENV_INT_MAP = {
            "WTRACK_MQTT_PORT": "mqtt_port",
            "WTRACK_MQTT_KEEPALIVE": "mqtt_keepalive",
        }
        for env_key, field_name in _ENV_INT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = int(val)
                except ValueError as exc:
                    raise WTrackConfigError(f"{env_key} must be an integer, got {val!r}") from exc

        if "strict_manual_entry" not in overrides:
            config_kwargs["strict_manual_entry"] = _env_bool(env.get("WTRACK_STRICT_MANUAL_ENTRY"), False)
        if "mqtt_enabled" not in overrides:
            config_kwargs["mqtt_enabled"] = _env_bool(env.get("WTRACK_MQTT_ENABLED"), False)
        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("WTRACK_MQTT_TLS"), False)

        # Allow overriding messages via a nested dict
        message_overrides = overrides.pop("messages", None)
        if isinstance(message_overrides, dict):
            config_kwargs["messages"] = ScanMessages(**message_overrides)
        elif isinstance(message_overrides, ScanMessages):
            config_kwargs["messages"] = message_overrides

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
