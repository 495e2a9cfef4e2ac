"""
Pytest fixtures for the HTTP surface. Each client gets a fresh in-memory
store and a clock pinned to 2024-05-01 12:00.
"""
from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from oceanic_backend.api import main
from oceanic_backend.core_math.time_of_day import FixedClock
from oceanic_backend.repository.memory import InMemoryClearanceRepository, InMemoryTrackDirectory, Track
from oceanic_backend.repository.messaging import DatalinkMessagingGateway

NOW = datetime(2024, 5, 1, 12, 0)

ENV = {
    "RCL_LOWER_LIMIT": "15",
    "RCL_UPPER_LIMIT": "90",
    "RCL_TIME_CONSTRAINTS_ENABLED": "true",
    "RCL_AUTO_ACKNOWLEDGEMENT_ENABLED": "false",
}


def _client(monkeypatch, **overrides):
    for key, value in {**ENV, **overrides}.items():
        monkeypatch.setenv(key, value)
    monkeypatch.setattr(main, "repository", InMemoryClearanceRepository())
    monkeypatch.setattr(main, "track_directory",
                        InMemoryTrackDirectory([Track(1, "A", "DOGAL 54/20 54/30 53/40 52/50 BANTU")]))
    monkeypatch.setattr(main, "datalink", DatalinkMessagingGateway())
    monkeypatch.setattr(main, "atc_manager", None)

    # Entering the client runs the startup hook
    with TestClient(main.app) as client:
        main.atc_manager.clock = FixedClock(NOW)
        yield client


@pytest.fixture
def client(monkeypatch):
    yield from _client(monkeypatch)


@pytest.fixture
def auto_ack_client(monkeypatch):
    yield from _client(monkeypatch, RCL_AUTO_ACKNOWLEDGEMENT_ENABLED="true")


@pytest.fixture
def rcl_body():
    """A request that passes every rule when submitted at 12:00."""
    return {
        "callsign": "BAW14LA",
        "destination": "KJFK",
        "flight_level": "350",
        "max_flight_level": "370",
        "mach": "084",
        "entry_time": "1245",
        "tmi": 123,
        "random_routeing": "MALOT 53/20 52/30 51/40 50/50 DOVEY",
        "target_datalink_authority_id": "EGGX",
    }
