# activation/utils/token_codec.py
"""
Activation token codec.

A token is URL-safe base64 (padding optional) over a UTF-8 JSON object:

    {"device_id": "...", "uuid": "...",
     "start_date": "2025-01-01T00:00:00Z", "duration_seconds": 3600}

There is no signature; the token is an advisory, locally checked gate.
"""
import base64
import binascii
import json
import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from activation.clock import MAX_MILLIS, from_millis, to_millis
from activation.config import (
    KEY_DEVICE_ID,
    KEY_DEVICE_ID_LEGACY,
    KEY_DURATION,
    KEY_START_DATE,
    KEY_UUID,
)
from activation.errors import (
    BadTimestampError,
    EmptyTokenError,
    MalformedBase64Error,
    MalformedJsonError,
    MissingFieldError,
)
from activation.schemas import ClaimSet

_URLSAFE_RE = re.compile(r"[A-Za-z0-9_-]*={0,2}")
_FRACTION_RE = re.compile(r"\.(\d+)Z?$")


def _strptime_utc(fmt: str, fraction_digits: Optional[int] = None) -> Callable[[str], Optional[int]]:
    def parse(text: str) -> Optional[int]:
        match = _FRACTION_RE.search(text)
        found = len(match.group(1)) if match else None
        if found != fraction_digits:
            return None
        try:
            parsed = datetime.strptime(text, fmt)
        except ValueError:
            return None
        # the zone suffix is informational only; every shape is UTC
        return to_millis(parsed.replace(tzinfo=timezone.utc))

    return parse


# tried in order, first match wins
TIMESTAMP_PARSERS = (
    _strptime_utc("%Y-%m-%dT%H:%M:%SZ"),
    _strptime_utc("%Y-%m-%dT%H:%M:%S.%fZ", 3),
    _strptime_utc("%Y-%m-%dT%H:%M:%S.%fZ", 6),
    _strptime_utc("%Y-%m-%dT%H:%M:%S"),
    _strptime_utc("%Y-%m-%dT%H:%M:%S.%f", 3),
    _strptime_utc("%Y-%m-%dT%H:%M:%S.%f", 6),
)


def parse_timestamp(text: str) -> int:
    """ISO-8601 start date -> epoch millis (UTC)."""
    if isinstance(text, str):
        for parser in TIMESTAMP_PARSERS:
            millis = parser(text)
            if millis is not None:
                return millis
    raise BadTimestampError(f"Unsupported start date: {text!r}")


def format_timestamp(millis: int) -> str:
    return from_millis(millis).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def decode_payload(token: str) -> bytes:
    if token is None or not token.strip():
        raise EmptyTokenError()
    token = token.strip()
    if not _URLSAFE_RE.fullmatch(token):
        raise MalformedBase64Error("Token contains characters outside the URL-safe base64 alphabet")
    raw = token.rstrip("=")
    try:
        return base64.urlsafe_b64decode(raw + "=" * (-len(raw) % 4))
    except (binascii.Error, ValueError) as e:
        raise MalformedBase64Error(f"Token is not valid base64: {e}")


def load_payload(data: bytes) -> dict[str, Any]:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError) as e:
        raise MalformedJsonError(f"Token payload is not JSON: {e}")
    if not isinstance(payload, dict):
        raise MalformedJsonError("Token payload is not a JSON object")
    return payload


def _required_str(payload: dict, *keys: str) -> str:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            if not isinstance(value, str) or not value:
                raise MissingFieldError(key)
            return value
    raise MissingFieldError(keys[0])


def check_duration(start_time: int, duration: Any) -> int:
    """Duration must be a non-negative int whose window ends within datetime range."""
    # bool is an int subclass; reject it explicitly
    if isinstance(duration, bool) or not isinstance(duration, int) or duration < 0:
        raise MissingFieldError(KEY_DURATION)
    if start_time + duration * 1000 > MAX_MILLIS:
        raise MissingFieldError(KEY_DURATION, f"Token field out of range: {KEY_DURATION}")
    return duration


def claims_from_payload(payload: dict[str, Any]) -> ClaimSet:
    device_id = _required_str(payload, KEY_DEVICE_ID, KEY_DEVICE_ID_LEGACY)
    activation_uuid = _required_str(payload, KEY_UUID)
    start_date = _required_str(payload, KEY_START_DATE)

    start_time = parse_timestamp(start_date)
    duration = check_duration(start_time, payload.get(KEY_DURATION))

    return ClaimSet(
        device_id=device_id,
        activation_uuid=activation_uuid,
        start_time=start_time,
        duration_seconds=duration,
    )


def decode_token(token: str) -> ClaimSet:
    return claims_from_payload(load_payload(decode_payload(token)))


def encode_claims(claims: ClaimSet) -> str:
    payload = {
        KEY_DEVICE_ID: claims.device_id,
        KEY_UUID: claims.activation_uuid,
        KEY_START_DATE: format_timestamp(claims.start_time),
        KEY_DURATION: claims.duration_seconds,
    }
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")
