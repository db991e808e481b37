"""Shared fixtures."""

from datetime import datetime, timezone

import pytest
import structlog

from carlog import MemoryStore, ServiceEntry, StateManager, Vehicle


@pytest.fixture
def shared_entries():
    return [
        ServiceEntry(
            id="srv-hu-2022",
            vehicle_id="veh-1",
            date="2022-02-01",
            mileage=15000,
            type="HU/AU",
        ),
        ServiceEntry(
            id="srv-inspection-2023",
            vehicle_id="veh-1",
            date="2023-02-05",
            mileage=22000,
            type="Inspektion",
        ),
    ]


@pytest.fixture
def base_vehicle():
    return Vehicle(id="veh-1", name="Golf", current_mileage=24000, year=2020)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def manager(store, fixed_clock):
    return StateManager(store, clock=fixed_clock).load()


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo logging configuration done by CLI/web entry points."""
    yield
    structlog.reset_defaults()
