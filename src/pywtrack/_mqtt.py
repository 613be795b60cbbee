"""Internal MQTT parsing and runtime helpers for networked tag readers.

Reader firmware publishes JSON objects on the configured topic::

    {"type": "tags", "tags": [{"kind": "mifare", "id": "04a2...",
                               "connected": true,
                               "records": [{"tnf": 1, "type": "T", "payload": "<base64>"}]}]}
    {"type": "invalidated", "reason": "..."}
    {"type": "location", "latitude": -33.8, "longitude": 151.2}

and listens on ``<topic>/status`` for session prompts and results.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, cast

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from pywtrack._redact import redact_for_log
from pywtrack.config import WTrackConfig
from pywtrack.exceptions import ReaderPayloadError
from pywtrack.models.event import Coordinate
from pywtrack.models.ndef import DetectedTag, NdefMessage, NdefRecord, TagKind


class ReaderMessageType(StrEnum):
    TAGS = "tags"
    INVALIDATED = "invalidated"
    LOCATION = "location"


@dataclass(frozen=True)
class ReaderMessage:
    """Normalized message from a networked reader."""

    type: ReaderMessageType
    topic: str
    tags: tuple[DetectedTag, ...] = ()
    reason: str | None = None
    coordinate: Coordinate | None = None
    payload: dict[str, Any] = field(default_factory=dict)


def status_topic(topic: str) -> str:
    return f"{topic.rstrip('/')}/status"


def _decode_bytes(value: Any, *, name: str) -> bytes:
    if value is None or value == "":
        return b""
    if not isinstance(value, str):
        raise ReaderPayloadError(f"Record {name} must be a base64 string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ReaderPayloadError(f"Record {name} is not valid base64") from exc


def _decode_record(raw: Any) -> NdefRecord:
    if not isinstance(raw, dict):
        raise ReaderPayloadError("NDEF record must be an object")
    record_type = raw.get("type", "")
    if not isinstance(record_type, str):
        raise ReaderPayloadError("NDEF record type must be a string")
    try:
        return NdefRecord(
            tnf=raw.get("tnf", 0),
            type=record_type.encode("ascii"),
            identifier=_decode_bytes(raw.get("id"), name="id"),
            payload=_decode_bytes(raw.get("payload"), name="payload"),
        )
    except (ValidationError, UnicodeEncodeError) as exc:
        raise ReaderPayloadError(f"Invalid NDEF record: {exc}") from exc


def _decode_tag(raw: Any) -> DetectedTag:
    if not isinstance(raw, dict):
        raise ReaderPayloadError("Tag entry must be an object")
    records = raw.get("records")
    message: NdefMessage | None = None
    if records is not None:
        if not isinstance(records, list):
            raise ReaderPayloadError("Tag records must be a list")
        message = NdefMessage(records=tuple(_decode_record(item) for item in records))
    connected = raw.get("connected", True)
    if not isinstance(connected, bool):
        raise ReaderPayloadError("Tag connected flag must be a boolean")
    return DetectedTag(
        kind=TagKind(str(raw.get("kind") or TagKind.UNKNOWN)),
        identifier=str(raw.get("id") or ""),
        message=message,
        connectable=connected,
    )


def decode_reader_payload(payload: bytes, topic: str = "") -> ReaderMessage:
    """Parse a reader's MQTT payload into a :class:`ReaderMessage`."""
    try:
        parsed = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ReaderPayloadError("Reader payload is not UTF-8 JSON") from exc
    if not isinstance(parsed, dict):
        raise ReaderPayloadError("Reader payload is not a JSON object")

    raw_type = parsed.get("type")
    try:
        message_type = ReaderMessageType(raw_type)
    except ValueError as exc:
        raise ReaderPayloadError(f"Unknown reader message type: {raw_type!r}") from exc

    if message_type == ReaderMessageType.TAGS:
        tags = parsed.get("tags")
        if not isinstance(tags, list):
            raise ReaderPayloadError("Tags message has no tag list")
        return ReaderMessage(
            type=message_type,
            topic=topic,
            tags=tuple(_decode_tag(item) for item in tags),
            payload=parsed,
        )

    if message_type == ReaderMessageType.LOCATION:
        try:
            coordinate = Coordinate(latitude=parsed.get("latitude"), longitude=parsed.get("longitude"))
        except ValidationError as exc:
            raise ReaderPayloadError(f"Invalid location fix: {exc}") from exc
        return ReaderMessage(type=message_type, topic=topic, coordinate=coordinate, payload=parsed)

    reason = parsed.get("reason")
    return ReaderMessage(
        type=message_type,
        topic=topic,
        reason=str(reason) if reason is not None else None,
        payload=parsed,
    )


class WTrackMqttRuntime:
    """Threaded paho-mqtt runtime that emits reader messages onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_message: Callable[[ReaderMessage], None],
        keepalive: int = 60,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_message = on_message
        self._keepalive = keepalive
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._topic: str | None = None

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def handle_payload(self, topic: str, payload: bytes) -> None:
        """Decode one message and schedule it on the loop (called from the network thread)."""
        try:
            message = decode_reader_payload(payload, topic)
        except ReaderPayloadError:
            self._logger.debug("Reader payload parse failure topic=%s", topic, exc_info=True)
            return
        self._logger.debug(
            "Reader message type=%s topic=%s payload=%s",
            message.type,
            topic,
            redact_for_log(message.payload, max_string=64),
        )
        self._loop.call_soon_threadsafe(self._on_message, message)

    def start(self, config: WTrackConfig) -> None:
        """Connect and subscribe to the configured reader topic."""
        self.stop()
        self._logger.debug(
            "MQTT runtime start requested host=%s port=%s topic=%s user=%s password=%s",
            config.mqtt_host,
            config.mqtt_port,
            config.mqtt_topic,
            config.mqtt_username,
            redact_for_log({"password": config.mqtt_password})["password"],
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=f"wtrack_{secrets.token_hex(6)}",
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if config.mqtt_username:
            client.username_pw_set(config.mqtt_username, config.mqtt_password)
        if config.mqtt_tls:
            client.tls_set()

        self._topic = config.mqtt_topic

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected successfully reason=%s", reason_code)
            if self._topic:
                c.subscribe(self._topic, qos=1)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            self.handle_payload(msg.topic, msg.payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(config.mqtt_host, config.mqtt_port, keepalive=self._keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def publish_status(self, payload: dict[str, Any]) -> None:
        """Publish a session prompt or result for the reader to display."""
        client = self._client
        if client is None or self._topic is None:
            return
        client.publish(status_topic(self._topic), json.dumps(payload), qos=1)

    def stop(self) -> None:
        """Stop and disconnect current MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._topic = None

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")
