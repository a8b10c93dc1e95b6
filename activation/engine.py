# activation/engine.py
"""
Activation engine.

Decides whether this device may run, for how long, and persists the decision
as a single activation record:

    Unactivated --validate/activate--> Active --now > expires_at--> Expired
    Expired collapses to Unactivated on the next is_active() call.

All times are epoch millis, UTC. A failing operation never writes.
"""
import threading
from datetime import datetime
from typing import Optional, Union

from activation.clock import Clock, SystemClock, to_millis
from activation.config import grace_seconds as configured_grace_seconds
from activation.device import DeviceIdentityProvider
from activation.errors import (
    DeviceMismatchError,
    EmptyTokenError,
    ExpiredError,
    MissingDeviceIdError,
    NotYetValidError,
    OutOfWindowError,
    TokenValidationError,
)
from activation.logger import get_logger
from activation.schemas import ActivationRecord, ClaimSet, DebugReport
from activation.store import ActivationStore
from activation.utils import token_codec

logger = get_logger(__name__)

WINDOW_VALID = "valid"
WINDOW_NOT_YET_VALID = "not_yet_valid"
WINDOW_EXPIRED = "expired"

StartTime = Union[int, str, datetime]


class ActivationEngine:
    def __init__(
        self,
        store: ActivationStore,
        clock: Optional[Clock] = None,
        device_provider: Optional[DeviceIdentityProvider] = None,
        grace_seconds: Optional[int] = None,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.device_provider = device_provider
        if grace_seconds is None:
            grace_seconds = configured_grace_seconds()
        self.grace_millis = grace_seconds * 1000
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # window checks
    # ------------------------------------------------------------------
    def _window(self, claims: ClaimSet, now: int) -> str:
        if now < claims.start_time - self.grace_millis:
            return WINDOW_NOT_YET_VALID
        if now > claims.expires_at:
            return WINDOW_EXPIRED
        return WINDOW_VALID

    def _check_token(self, device_id: Optional[str], token: Optional[str]) -> ClaimSet:
        if not device_id:
            raise MissingDeviceIdError()
        if token is None or not token.strip():
            raise EmptyTokenError()
        claims = token_codec.decode_token(token)
        if claims.device_id != device_id:
            raise DeviceMismatchError(
                f"Device ID mismatch: device={device_id}, token={claims.device_id}"
            )
        return claims

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------
    def validate(self, device_id: Optional[str], token: Optional[str]) -> ActivationRecord:
        """
        Check a user-supplied token for device_id and persist the activation.

        Raises a TokenValidationError subclass on rejection (prior state is
        left untouched) and StoreIOError if the record cannot be written.
        """
        try:
            claims = self._check_token(device_id, token)
            now = self.clock.now_millis()
            window = self._window(claims, now)
            if window == WINDOW_NOT_YET_VALID:
                raise NotYetValidError(
                    f"Token starts at {claims.start_time}, now is {now} "
                    f"(grace {self.grace_millis // 1000}s)"
                )
            if window == WINDOW_EXPIRED:
                raise ExpiredError(f"Token expired at {claims.expires_at}, now is {now}")
        except TokenValidationError as e:
            logger.warning("Token rejected [%s]: %s", e.code, e)
            raise

        record = ActivationRecord(
            is_active=True,
            activated_at=now,
            expires_at=claims.expires_at,
            bound_device_id=device_id,
            activation_uuid=claims.activation_uuid,
        )
        with self._lock:
            self.store.save(record)
        logger.info(
            "Activation successful: device_id=%s uuid=%s expires_at=%s",
            device_id, claims.activation_uuid, claims.expires_at,
        )
        return record

    def activate(
        self,
        device_id: Optional[str],
        claim_uuid: str,
        start_time: StartTime,
        duration_seconds: int,
    ) -> ActivationRecord:
        """Offline activation without a token; no grace buffer on this path."""
        if not device_id:
            logger.warning("Offline activation refused: no device identifier")
            raise MissingDeviceIdError()
        start = self._start_millis(start_time)
        expires_at = start + token_codec.check_duration(start, duration_seconds) * 1000
        now = self.clock.now_millis()
        if now < start or now > expires_at:
            logger.warning(
                "Offline activation out of range: now=%s start=%s end=%s", now, start, expires_at
            )
            raise OutOfWindowError(f"now={now} is outside [{start}, {expires_at}]")

        record = ActivationRecord(
            is_active=True,
            activated_at=now,
            expires_at=expires_at,
            bound_device_id=device_id,
            activation_uuid=claim_uuid,
        )
        with self._lock:
            self.store.save(record)
        logger.info("Offline activation saved: device_id=%s uuid=%s", device_id, claim_uuid)
        return record

    def is_active(self) -> bool:
        record = self.store.load()
        if not record.is_active:
            return False
        if not record.is_expired_at(self.clock.now_millis()):
            return True

        with self._lock:
            # another thread may have cleared or replaced it meanwhile
            current = self.store.load()
            if current == record:
                logger.warning("Activation expired at %s, clearing", record.expires_at)
                self.store.save(ActivationRecord.empty())
        return False

    def deactivate(self) -> None:
        with self._lock:
            self.store.save(ActivationRecord.empty())
        logger.info("Activation data cleared")

    def is_expired(self) -> bool:
        return self.store.load().is_expired_at(self.clock.now_millis())

    def record(self) -> ActivationRecord:
        """Current record after the lazy expiry check."""
        self.is_active()
        return self.store.load()

    def debug_report(self, device_id: Optional[str], token: Optional[str]) -> DebugReport:
        """Run every validate() check and report each outcome. Never writes."""
        report = DebugReport(device_id=device_id or None)
        if token is None or not token.strip():
            return self._failed(report, "token", EmptyTokenError())
        token = token.strip()
        report.token_length = len(token)

        try:
            data = token_codec.decode_payload(token)
        except TokenValidationError as e:
            return self._failed(report, "base64", e)
        try:
            payload = token_codec.load_payload(data)
        except TokenValidationError as e:
            return self._failed(report, "json", e)
        report.payload = payload
        try:
            claims = token_codec.claims_from_payload(payload)
        except TokenValidationError as e:
            return self._failed(report, "claims", e)

        report.decoded = True
        report.claim_device_id = claims.device_id
        report.activation_uuid = claims.activation_uuid
        report.duration_seconds = claims.duration_seconds
        report.device_match = bool(device_id) and claims.device_id == device_id

        now = self.clock.now_millis()
        report.now = now
        report.start_time = claims.start_time
        report.expires_at = claims.expires_at
        report.window = self._window(claims, now)
        report.skew_minutes = (now - claims.start_time) / 60000.0

        if not device_id:
            report.error, report.error_message = MissingDeviceIdError.code, MissingDeviceIdError.message
        elif not report.device_match:
            report.error, report.error_message = DeviceMismatchError.code, DeviceMismatchError.message
        elif report.window == WINDOW_NOT_YET_VALID:
            report.error, report.error_message = NotYetValidError.code, NotYetValidError.message
        elif report.window == WINDOW_EXPIRED:
            report.error, report.error_message = ExpiredError.code, ExpiredError.message
        report.ok = report.error is None
        logger.debug("Token debug report: ok=%s error=%s", report.ok, report.error)
        return report

    # ------------------------------------------------------------------
    # device-bound shortcuts
    # ------------------------------------------------------------------
    def current_device_id(self) -> str:
        device_id = self.device_provider.get_id() if self.device_provider else None
        if not device_id:
            raise MissingDeviceIdError()
        return device_id

    def validate_current_device(self, token: Optional[str]) -> ActivationRecord:
        try:
            device_id = self.current_device_id()
        except MissingDeviceIdError as e:
            logger.warning("Token rejected [%s]: %s", e.code, e)
            raise
        return self.validate(device_id, token)

    def debug_current_device(self, token: Optional[str]) -> DebugReport:
        device_id = self.device_provider.get_id() if self.device_provider else None
        return self.debug_report(device_id, token)

    # ------------------------------------------------------------------
    @staticmethod
    def _failed(report: DebugReport, stage: str, error: TokenValidationError) -> DebugReport:
        report.failed_stage = stage
        report.error = error.code
        report.error_message = str(error)
        report.ok = False
        logger.debug("Token debug report: failed at %s (%s)", stage, error.code)
        return report

    @staticmethod
    def _start_millis(start_time: StartTime) -> int:
        if isinstance(start_time, datetime):
            return to_millis(start_time)
        if isinstance(start_time, str):
            return token_codec.parse_timestamp(start_time)
        return int(start_time)
