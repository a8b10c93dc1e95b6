"""Token builder producing the wire format directly (json + urlsafe base64)."""
import base64
import json

# 2025-01-01T00:00:00Z
JAN_1 = 1_735_689_600_000
MINUTE = 60_000
HOUR = 60 * MINUTE


def make_token(payload=None, padded=False, **fields) -> str:
    body = {
        "device_id": "D1",
        "uuid": "U1",
        "start_date": "2025-01-01T00:00:00Z",
        "duration_seconds": 3600,
    }
    if payload is not None:
        body = payload
    body.update(fields)
    token = base64.urlsafe_b64encode(json.dumps(body).encode("utf-8")).decode("ascii")
    return token if padded else token.rstrip("=")
