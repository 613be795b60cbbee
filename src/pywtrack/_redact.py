"""Helpers for safe debug logging.

Reader messages carry base64 NDEF blobs and the configuration carries
broker credentials.  :func:`redact_for_log` masks the credentials,
summarizes record blobs by size and truncates long strings before
anything reaches a DEBUG log.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

# Compared after lower-casing and dropping "_" and "-".
_CREDENTIAL_KEYS: frozenset[str] = frozenset({"password", "mqttpassword", "username", "token", "authorization"})
_BLOB_KEYS: frozenset[str] = frozenset({"payload", "id"})

_MAX_DEPTH = 12


def _canonical_key(key: object) -> str:
    return str(key).lower().replace("_", "").replace("-", "")


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…<truncated>"


def _redact_mapping(value: Mapping[Any, Any], max_string: int, depth: int) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for raw_key, item in value.items():
        key = str(raw_key)
        canonical = _canonical_key(raw_key)
        if item is None:
            out[key] = None
        elif canonical in _CREDENTIAL_KEYS:
            out[key] = "<redacted>"
        elif canonical in _BLOB_KEYS and isinstance(item, str) and depth > 0:
            # Record blobs inside tag entries; top-level ids stay readable.
            out[key] = f"<b64:{len(item)}>"
        else:
            out[key] = redact_for_log(item, max_string=max_string, _depth=depth + 1)
    return out


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to put in a debug log."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _truncate(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, Mapping):
        return _redact_mapping(value, max_string, _depth)
    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)
