# activation/config.py
import os

ENV_DATABASE_URL = "ACTIVATION_DATABASE_URL"
ENV_DEVICE_ID = "ACTIVATION_DEVICE_ID"
ENV_LOG_LEVEL = "ACTIVATION_LOG_LEVEL"
ENV_LOG_DIR = "ACTIVATION_LOG_DIR"
ENV_GRACE_SECONDS = "ACTIVATION_GRACE_SECONDS"

DEFAULT_DATABASE_URL = "sqlite:///activation.db"
DEFAULT_GRACE_SECONDS = 30
DEBUG_LOG_FILENAME = "debug_activation.log"

# token payload keys
KEY_DEVICE_ID = "device_id"
KEY_DEVICE_ID_LEGACY = "imei"
KEY_UUID = "uuid"
KEY_START_DATE = "start_date"
KEY_DURATION = "duration_seconds"

MACHINE_ID_PATHS = ("/etc/machine-id", "/var/lib/dbus/machine-id")


def database_url() -> str:
    return os.environ.get(ENV_DATABASE_URL) or DEFAULT_DATABASE_URL


def grace_seconds() -> int:
    raw = os.environ.get(ENV_GRACE_SECONDS, "").strip()
    if not raw:
        return DEFAULT_GRACE_SECONDS
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{ENV_GRACE_SECONDS} must be an integer, got {raw!r}")
    if value < 0:
        raise RuntimeError(f"{ENV_GRACE_SECONDS} must not be negative")
    return value
