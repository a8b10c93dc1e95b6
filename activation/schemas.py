# activation/schemas.py
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from activation.clock import format_millis


class ClaimSet(BaseModel):
    """Decoded token claims. Times are epoch millis, UTC."""

    model_config = ConfigDict(frozen=True)

    device_id: str
    activation_uuid: str
    start_time: int
    duration_seconds: int

    @property
    def expires_at(self) -> int:
        return self.start_time + self.duration_seconds * 1000


class ActivationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_active: bool = False
    activated_at: int = 0
    expires_at: int = 0
    bound_device_id: str = ""
    activation_uuid: str = ""

    @classmethod
    def empty(cls) -> "ActivationRecord":
        return cls()

    @property
    def is_empty(self) -> bool:
        return self == ActivationRecord()

    def is_expired_at(self, now_millis: int) -> bool:
        return self.is_active and now_millis > self.expires_at

    def describe(self) -> str:
        if not self.is_active:
            return "Not activated"
        return (
            f"Activated: {format_millis(self.activated_at)}\n"
            f"Expires: {format_millis(self.expires_at)}\n"
            f"Device ID: {self.bound_device_id}\n"
            f"UUID: {self.activation_uuid}"
        )


class DebugReport(BaseModel):
    """Outcome of every check the validator would run, without side effects."""

    device_id: Optional[str] = None
    token_length: int = 0
    decoded: bool = False
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    error_message: Optional[str] = None
    payload: Optional[dict[str, Any]] = None
    claim_device_id: Optional[str] = None
    activation_uuid: Optional[str] = None
    duration_seconds: Optional[int] = None
    device_match: Optional[bool] = None
    now: Optional[int] = None
    start_time: Optional[int] = None
    expires_at: Optional[int] = None
    window: Optional[str] = None
    skew_minutes: Optional[float] = None
    ok: bool = False

    def render(self) -> str:
        lines = ["=== TOKEN DEBUG ==="]
        lines.append(f"Device ID: {self.device_id or 'NULL'}")
        lines.append(f"Token length: {self.token_length}")
        if not self.decoded:
            lines.append(f"FAILED at {self.failed_stage}: {self.error} ({self.error_message})")
            if self.payload is not None:
                lines.append(f"Payload: {self.payload}")
            lines.append("=== END ===")
            return "\n".join(lines)

        lines.append("OK decoded")
        lines.append(f"Token device ID: {self.claim_device_id}")
        lines.append(f"UUID: {self.activation_uuid}")
        lines.append(f"Duration: {self.duration_seconds} s")
        lines.append("OK device ID matches" if self.device_match else "FAIL device ID does not match")
        lines.append(f"Now: {format_millis(self.now)}")
        lines.append(f"Start: {format_millis(self.start_time)}")
        lines.append(f"End: {format_millis(self.expires_at)}")
        lines.append(f"Skew: {self.skew_minutes:.1f} min")
        if self.window == "valid":
            lines.append("OK token is within its time window")
        elif self.window == "not_yet_valid":
            lines.append("FAIL token is not active yet")
        else:
            lines.append("FAIL token has expired")
        lines.append("=== END ===")
        return "\n".join(lines)
