import threading
from datetime import datetime, timezone

import pytest

from activation.engine import ActivationEngine
from activation.errors import (
    DeviceMismatchError,
    EmptyTokenError,
    ExpiredError,
    MalformedJsonError,
    MissingDeviceIdError,
    MissingFieldError,
    NotYetValidError,
    OutOfWindowError,
    StoreIOError,
)
from activation.device import DeviceIdentityProvider
from activation.schemas import ActivationRecord

from tests.helpers import HOUR, JAN_1, MINUTE, make_token


class RecordingStore:
    """In-memory store that counts writes."""

    def __init__(self, record=None):
        self.record = record or ActivationRecord.empty()
        self.saves = []

    def load(self):
        return self.record

    def save(self, record):
        self.saves.append(record)
        self.record = record


class BrokenStore:
    def load(self):
        raise StoreIOError("disk gone")

    def save(self, record):
        raise StoreIOError("disk gone")


class TestValidate:
    def test_scenario_success(self, engine, store, clock):
        record = engine.validate("D1", make_token())
        assert record.is_active
        assert record.activated_at == clock.now_millis()
        assert record.expires_at == JAN_1 + HOUR
        assert record.bound_device_id == "D1"
        assert record.activation_uuid == "U1"
        assert store.load() == record
        assert engine.is_active() is True

    def test_activated_at_is_now_not_start(self, engine, clock):
        clock.set(JAN_1 + 45 * MINUTE)
        assert engine.validate("D1", make_token()).activated_at == JAN_1 + 45 * MINUTE

    def test_device_mismatch_leaves_store_unchanged(self, engine, store):
        with pytest.raises(DeviceMismatchError):
            engine.validate("D2", make_token())
        assert store.load().is_empty
        assert engine.is_active() is False

    def test_device_id_is_compared_exactly(self, engine):
        with pytest.raises(DeviceMismatchError):
            engine.validate("d1", make_token())
        with pytest.raises(DeviceMismatchError):
            engine.validate("D1 ", make_token())

    def test_expired(self, engine, clock, store):
        clock.set(JAN_1 + 2 * HOUR)
        with pytest.raises(ExpiredError):
            engine.validate("D1", make_token())
        assert store.load().is_empty

    @pytest.mark.parametrize("device_id", ["", None])
    def test_missing_device_id_comes_first(self, engine, device_id):
        with pytest.raises(MissingDeviceIdError):
            engine.validate(device_id, "")

    @pytest.mark.parametrize("token", ["", "   ", None])
    def test_empty_token(self, engine, token):
        with pytest.raises(EmptyTokenError):
            engine.validate("D1", token)

    def test_decode_errors_propagate(self, engine):
        with pytest.raises(MalformedJsonError):
            engine.validate("D1", "aGVsbG8")

    def test_failure_keeps_previous_activation(self, engine, store):
        first = engine.validate("D1", make_token())
        with pytest.raises(DeviceMismatchError):
            engine.validate("D1", make_token(device_id="OTHER", uuid="U2"))
        assert store.load() == first
        assert engine.is_active() is True

    def test_out_of_range_duration_is_rejected_before_saving(self, engine, store):
        with pytest.raises(MissingFieldError):
            engine.validate("D1", make_token(duration_seconds=10**17))
        assert store.load().is_empty
        assert engine.record().describe() == "Not activated"

    def test_revalidation_overwrites_record(self, engine, store):
        engine.validate("D1", make_token())
        second = engine.validate("D1", make_token(uuid="U2", duration_seconds=7200))
        assert store.load() == second
        assert second.activation_uuid == "U2"
        assert second.expires_at == JAN_1 + 2 * HOUR


class TestValidateBoundaries:
    def test_lower_bound_with_grace_is_inclusive(self, engine, clock):
        clock.set(JAN_1 - 30_000)
        assert engine.validate("D1", make_token()).is_active

    def test_one_milli_before_grace_is_not_yet_valid(self, engine, clock, store):
        clock.set(JAN_1 - 30_000 - 1)
        with pytest.raises(NotYetValidError):
            engine.validate("D1", make_token())
        assert store.load().is_empty

    def test_upper_bound_is_inclusive(self, engine, clock):
        clock.set(JAN_1 + HOUR)
        record = engine.validate("D1", make_token())
        assert record.expires_at == record.activated_at
        assert engine.is_active() is True

    def test_one_milli_after_expiry_is_expired(self, engine, clock):
        clock.set(JAN_1 + HOUR + 1)
        with pytest.raises(ExpiredError):
            engine.validate("D1", make_token())

    def test_grace_is_configurable(self, store, clock):
        engine = ActivationEngine(store, clock=clock, grace_seconds=0)
        clock.set(JAN_1 - 1)
        with pytest.raises(NotYetValidError):
            engine.validate("D1", make_token())

    def test_grace_from_environment(self, store, clock, monkeypatch):
        monkeypatch.setenv("ACTIVATION_GRACE_SECONDS", "120")
        engine = ActivationEngine(store, clock=clock)
        clock.set(JAN_1 - 2 * MINUTE)
        assert engine.validate("D1", make_token()).is_active

    def test_no_zone_start_date_is_utc(self, engine, clock):
        clock.set(JAN_1 + 10 * MINUTE)
        token = make_token(start_date="2025-01-01T00:00:00.000000")
        assert engine.validate("D1", token).expires_at == JAN_1 + HOUR


class TestActivate:
    def test_offline_activation(self, engine, store, clock):
        record = engine.activate("D1", "U7", JAN_1, 3600)
        assert record == store.load()
        assert record.activated_at == clock.now_millis()
        assert record.expires_at == JAN_1 + HOUR
        assert record.activation_uuid == "U7"

    def test_accepts_iso_string_and_datetime(self, engine):
        a = engine.activate("D1", "U1", "2025-01-01T00:00:00Z", 3600)
        b = engine.activate("D1", "U1", datetime(2025, 1, 1, tzinfo=timezone.utc), 3600)
        assert a.expires_at == b.expires_at == JAN_1 + HOUR

    def test_no_grace_buffer(self, engine, clock, store):
        clock.set(JAN_1 - 1)
        with pytest.raises(OutOfWindowError):
            engine.activate("D1", "U1", JAN_1, 3600)
        assert store.load().is_empty

    def test_after_window(self, engine, clock):
        clock.set(JAN_1 + HOUR + 1)
        with pytest.raises(OutOfWindowError):
            engine.activate("D1", "U1", JAN_1, 3600)

    def test_requires_device_id(self, engine):
        with pytest.raises(MissingDeviceIdError):
            engine.activate("", "U1", JAN_1, 3600)

    @pytest.mark.parametrize("duration", [3600.9, -1, True, "3600", 10**17])
    def test_rejects_bad_duration(self, engine, store, duration):
        with pytest.raises(MissingFieldError):
            engine.activate("D1", "U1", JAN_1, duration)
        assert store.load().is_empty


class TestIsActiveAndDeactivate:
    def test_unactivated(self, engine):
        assert engine.is_active() is False

    def test_lazy_expiry_clears_once(self, clock):
        store = RecordingStore()
        engine = ActivationEngine(store, clock=clock, grace_seconds=30)
        engine.validate("D1", make_token())
        assert engine.is_active() is True
        assert len(store.saves) == 1

        clock.set(JAN_1 + HOUR + 1)
        assert engine.is_expired() is True
        assert engine.is_active() is False
        assert len(store.saves) == 2
        assert store.record.is_empty

        assert engine.is_active() is False
        assert engine.is_active() is False
        assert len(store.saves) == 2

    def test_active_until_expiry_instant(self, engine, clock):
        engine.validate("D1", make_token())
        clock.set(JAN_1 + HOUR)
        assert engine.is_active() is True
        clock.advance(1)
        assert engine.is_active() is False

    def test_deactivate_is_idempotent(self, engine, store):
        engine.validate("D1", make_token())
        engine.deactivate()
        once = store.load()
        engine.deactivate()
        assert store.load() == once == ActivationRecord.empty()
        assert engine.is_active() is False

    def test_record_reflects_expiry(self, engine, clock):
        engine.validate("D1", make_token())
        assert engine.record().is_active
        clock.set(JAN_1 + 3 * HOUR)
        assert engine.record() == ActivationRecord.empty()

    def test_state_survives_new_engine(self, engine, store, clock):
        engine.validate("D1", make_token())
        fresh = ActivationEngine(store, clock=clock)
        assert fresh.is_active() is True


class TestCurrentDevice:
    def test_validate_current_device(self, engine):
        assert engine.validate_current_device(make_token()).bound_device_id == "D1"

    def test_missing_provider_fails_closed(self, store, clock):
        engine = ActivationEngine(store, clock=clock)
        with pytest.raises(MissingDeviceIdError):
            engine.validate_current_device(make_token())
        assert store.load().is_empty

    def test_unavailable_identity_fails_closed(self, store, clock):
        provider = DeviceIdentityProvider(sources=[lambda: None])
        engine = ActivationEngine(store, clock=clock, device_provider=provider)
        with pytest.raises(MissingDeviceIdError):
            engine.validate_current_device(make_token())


class TestStoreFailures:
    def test_store_error_is_distinct(self, clock):
        engine = ActivationEngine(BrokenStore(), clock=clock)
        with pytest.raises(StoreIOError):
            engine.validate("D1", make_token())
        with pytest.raises(StoreIOError):
            engine.is_active()

    def test_rejection_never_touches_store(self, clock):
        engine = ActivationEngine(BrokenStore(), clock=clock)
        with pytest.raises(DeviceMismatchError):
            engine.validate("D2", make_token())


def test_concurrent_validate_and_deactivate_leave_a_consistent_record(engine, store):
    def worker(i):
        for _ in range(10):
            engine.validate("D1", make_token(uuid=f"U{i}"))
            engine.deactivate()

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    record = store.load()
    assert record.is_empty or (record.is_active and record.bound_device_id == "D1")
