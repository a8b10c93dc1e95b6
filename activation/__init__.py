# activation/__init__.py
from activation.clock import FixedClock, SystemClock
from activation.device import DeviceIdentityProvider
from activation.engine import ActivationEngine
from activation.errors import (
    ActivationError,
    BadTimestampError,
    DeviceMismatchError,
    EmptyTokenError,
    ExpiredError,
    MalformedBase64Error,
    MalformedJsonError,
    MissingDeviceIdError,
    MissingFieldError,
    NotYetValidError,
    OutOfWindowError,
    StoreIOError,
    TokenValidationError,
)
from activation.schemas import ActivationRecord, ClaimSet, DebugReport
from activation.store import SqlAlchemyActivationStore

__all__ = [
    "ActivationEngine",
    "ActivationError",
    "ActivationRecord",
    "BadTimestampError",
    "ClaimSet",
    "DebugReport",
    "DeviceIdentityProvider",
    "DeviceMismatchError",
    "EmptyTokenError",
    "ExpiredError",
    "FixedClock",
    "MalformedBase64Error",
    "MalformedJsonError",
    "MissingDeviceIdError",
    "MissingFieldError",
    "NotYetValidError",
    "OutOfWindowError",
    "SqlAlchemyActivationStore",
    "StoreIOError",
    "SystemClock",
    "TokenValidationError",
]
