# activation/errors.py
"""
Activation failures.

TokenValidationError and its subclasses are rejections: the token or the
device did not pass. StoreIOError means the decision could not be read or
persisted at all and is kept outside that branch so callers can tell the two
apart.
"""


class ActivationError(Exception):
    code = "activation_error"
    message = "Activation failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class TokenValidationError(ActivationError):
    code = "invalid_token"
    message = "Token rejected"


class EmptyTokenError(TokenValidationError):
    code = "empty_token"
    message = "Token is empty"


class MalformedBase64Error(TokenValidationError):
    code = "malformed_base64"
    message = "Token is not valid URL-safe base64"


class MalformedJsonError(TokenValidationError):
    code = "malformed_json"
    message = "Token payload is not a JSON object"


class MissingFieldError(TokenValidationError):
    code = "missing_field"
    message = "Token payload is missing a field"

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Token field missing or invalid: {name}")


class BadTimestampError(TokenValidationError):
    code = "bad_timestamp"
    message = "Start date is not a supported ISO-8601 timestamp"


class MissingDeviceIdError(TokenValidationError):
    code = "missing_device_id"
    message = "Device identifier is unavailable"


class DeviceMismatchError(TokenValidationError):
    code = "device_mismatch"
    message = "Token is bound to another device"


class NotYetValidError(TokenValidationError):
    code = "not_yet_valid"
    message = "Token is not valid yet"


class ExpiredError(TokenValidationError):
    code = "expired"
    message = "Token has expired"


class OutOfWindowError(TokenValidationError):
    code = "out_of_window"
    message = "Current time is outside the activation window"


class StoreIOError(ActivationError):
    code = "store_io_error"
    message = "Activation state could not be read or written"
