from datetime import datetime, timezone
from typing import Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from readings_api.errors import StorageError
from readings_api.main import create_app
from readings_api.models import SensorReading, ObjectSummary, PortSummary
from readings_api.services import ReadingRepository


class InMemoryReadingRepository(ReadingRepository):
    """ReadingRepository kept in a list. Records which methods were called."""

    def __init__(self, readings: Optional[list[SensorReading]] = None, fail_with: Optional[str] = None):
        self.readings = list(readings or [])
        self.fail_with = fail_with
        self.calls: list[str] = []
        self.saved_batches: list[list[SensorReading]] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with:
            raise StorageError(self.fail_with)

    def list_objects(self) -> list[ObjectSummary]:
        self._check("list_objects")
        return [ObjectSummary(object_id=i) for i in sorted({r.object_id for r in self.readings})]

    def list_ports(self, object_id: float) -> list[PortSummary]:
        self._check("list_ports")
        ports = {r.port_num for r in self.readings if r.object_id == object_id}
        return [PortSummary(port_num=p) for p in ports]

    def get_readings(self, object_id: float, port_num: Optional[float] = None):
        self._check("get_readings")
        matches = [
            r for r in self.readings
            if r.object_id == object_id and (port_num is None or r.port_num == port_num)
        ]
        return matches, len(matches)

    def save_readings(self, readings: Sequence[SensorReading]) -> None:
        self._check("save_readings")
        self.saved_batches.append(list(readings))
        self.readings.extend(readings)


def make_reading(object_id: float = 5, port_num: float = 1, **overrides) -> SensorReading:
    values = dict(
        timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
        object_id=object_id,
        port_num=port_num,
        voltage=3.3,
        current=0.1,
        supply_current=0.05,
        supply_volt=5.0,
        voltage_drop=0.2,
        voc=3.1,
        created_at=datetime(2024, 1, 2, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return SensorReading(**values)


@pytest.fixture
def repository() -> InMemoryReadingRepository:
    return InMemoryReadingRepository([
        make_reading(object_id=5, port_num=1),
        make_reading(object_id=5, port_num=2, voltage=3.0),
        make_reading(object_id=5, port_num=2, voltage=2.9),
        make_reading(object_id=2, port_num=1),
    ])


@pytest.fixture
def client(repository: InMemoryReadingRepository):
    with TestClient(create_app(repository=repository)) as test_client:
        yield test_client


@pytest.fixture
def reading_factory():
    return make_reading


@pytest.fixture
def failing_repository() -> InMemoryReadingRepository:
    return InMemoryReadingRepository(fail_with="connection refused")


@pytest.fixture
def failing_client(failing_repository: InMemoryReadingRepository):
    with TestClient(create_app(repository=failing_repository)) as test_client:
        yield test_client
