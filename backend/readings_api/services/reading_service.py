"""
Reading Service
===============

Sits between the routers and the repository. It doesn't do much on
purpose: take already-validated parameters, ask the repository, hand the
answer (or the error) back.
"""

from typing import Optional, Sequence

from readings_api.models import (
    SensorReading,
    ObjectSummary,
    PortSummary,
    ReadingsPage,
)
from readings_api.services.repository import ReadingRepository


class ReadingService:
    """Query/ingest operations over a ReadingRepository."""

    def __init__(self, repository: ReadingRepository):
        self.repository = repository

    def list_objects(self) -> list[ObjectSummary]:
        """Used to fill the object dropdown in the dashboard."""
        return self.repository.list_objects()

    def list_ports(self, object_id: float) -> list[PortSummary]:
        return self.repository.list_ports(object_id)

    def get_readings(self, object_id: float, port_num: Optional[float] = None) -> ReadingsPage:
        readings, total = self.repository.get_readings(object_id, port_num)
        return ReadingsPage(sensor_data=readings, total=total)

    def save_readings(self, readings: Sequence[SensorReading]) -> None:
        self.repository.save_readings(readings)
