"""
Shared fixtures: a bridge with a fixed clock and a temp backup file,
and TestClients around it.
"""

import hashlib

import pytest
from fastapi.testclient import TestClient

from airgradient_bridge.auth import BasicAuthGate
from airgradient_bridge.main import create_app
from airgradient_bridge.services import BackupStore, LastValueCache, ReadingBridge

NOW = 1_700_000_000


class FakeClock:
    """Callable returning a settable epoch time."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backup_path(tmp_path):
    return tmp_path / "airgradient.json"


@pytest.fixture
def backup(backup_path):
    return BackupStore(backup_path)


@pytest.fixture
def bridge(backup, clock):
    return ReadingBridge(LastValueCache(), backup, max_time_delta=60, clock=clock)


@pytest.fixture
def client(bridge):
    return TestClient(create_app(bridge))


@pytest.fixture
def gate():
    return BasicAuthGate(
        hashlib.sha256(b"admin").digest(),
        hashlib.sha256(b"s3cret").digest(),
    )


@pytest.fixture
def auth_client(bridge, gate):
    return TestClient(create_app(bridge, gate=gate))
