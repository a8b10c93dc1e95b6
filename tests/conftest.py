"""Shared fixtures: an in-memory SQLite store and a manually driven clock."""
import pytest

from activation.clock import FixedClock
from activation.database import make_engine
from activation.device import DeviceIdentityProvider
from activation.engine import ActivationEngine
from activation.store import SqlAlchemyActivationStore

from tests.helpers import JAN_1, MINUTE


@pytest.fixture
def store():
    return SqlAlchemyActivationStore(make_engine("sqlite://"))


@pytest.fixture
def clock():
    return FixedClock(JAN_1 + 30 * MINUTE)


@pytest.fixture
def device_provider():
    return DeviceIdentityProvider(device_id="D1", sources=[])


@pytest.fixture
def engine(store, clock, device_provider):
    return ActivationEngine(store, clock=clock, device_provider=device_provider, grace_seconds=30)
