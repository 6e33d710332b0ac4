"""
Reading Models
==============
Pydantic models for sensor readings and the API's response shapes.

WHAT'S IN HERE:
- SensorReading: one sample from one (object, port) pair at one timestamp.
  This is exactly what gets stored in MongoDB (one document per reading).
- ObjectSummary / PortSummary: distinct values computed on read, never stored
- ReadingsPage, UploadResponse: what the endpoints send back

JSON FIELD NAMES:
    Readings use snake_case (same as the CSV columns and the stored documents).
    The summaries and the readings page keep the camel/Pascal names the
    dashboard was built against: objectId, portNum, SensorData, Total.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# STORED READING
# =============================================================================

class SensorReading(BaseModel):
    """
    A single timestamped reading.

    Required fields are the nine CSV columns every upload must carry
    (timestamp, object_id, port_num, voltage, current, supply_current,
    supply_volt, voltage_drop, voc). Everything else is optional telemetry
    that defaults to zero / empty / False when the CSV doesn't have it.

    created_at is stamped by the server when the CSV is ingested.
    """
    id: Optional[str] = Field(None, description="MongoDB document id")

    # Required
    timestamp: datetime = Field(..., description="When the reading was taken")
    object_id: float = Field(..., description="Monitored object identifier")
    port_num: float = Field(..., description="Port (channel) on the object")
    voltage: float = Field(..., description="Current voltage")
    current: float = Field(..., description="Current amperage")
    supply_current: float = Field(..., description="Supply current")
    supply_volt: float = Field(..., description="Supply voltage")
    voltage_drop: float = Field(..., description="Voltage drop")
    voc: float = Field(..., description="Open-circuit voltage")
    created_at: datetime = Field(..., description="When the reading was ingested")

    # Optional telemetry
    state: float = 0
    controller_error: float = 0
    ai1: float = Field(0, description="Analog input 1")
    ai2: float = Field(0, description="Analog input 2")
    ai3: float = Field(0, description="Analog input 3")
    ai4: float = Field(0, description="Analog input 4")
    ai5: float = Field(0, description="Analog input 5")
    fw_version: str = Field("", description="Firmware version")
    vendor_id: str = Field("", description="Vendor identifier")
    lite_id: str = Field("", description="Lite identifier")
    q_charge: float = 0
    voltage_set_point: float = 0
    command: float = 0
    target_q: float = 0
    step_number: float = 0
    voc_mode: float = 0
    target_voc: float = 0
    voc_state: float = 0
    voc_exit: float = 0
    read_error: bool = Field(False, description="Was there an error reading the sensor?")

    def to_document(self) -> dict[str, Any]:
        """Convert to a MongoDB document (Mongo assigns _id on insert)."""
        return self.model_dump(exclude={"id"})

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "SensorReading":
        """Build a reading from a stored document."""
        data = dict(document)
        object_id = data.pop("_id", None)
        if object_id is not None:
            data["id"] = str(object_id)

        # pymongo hands back naive datetimes (they're UTC) unless tz_aware=True
        for key in ("timestamp", "created_at"):
            value = data.get(key)
            if isinstance(value, datetime) and value.tzinfo is None:
                data[key] = value.replace(tzinfo=timezone.utc)

        return cls(**data)


# =============================================================================
# DERIVED SUMMARIES
# =============================================================================

class ObjectSummary(BaseModel):
    """One distinct object identifier."""
    model_config = ConfigDict(populate_by_name=True)

    object_id: float = Field(..., alias="objectId")


class PortSummary(BaseModel):
    """One distinct port number for an object."""
    model_config = ConfigDict(populate_by_name=True)

    port_num: float = Field(..., alias="portNum")


# =============================================================================
# RESPONSE MODELS
# =============================================================================

class ReadingsPage(BaseModel):
    """
    Readings for an object (optionally one port).

    There's no pagination, so Total is always len(SensorData).
    """
    model_config = ConfigDict(populate_by_name=True)

    sensor_data: list[SensorReading] = Field(default_factory=list, alias="SensorData")
    total: int = Field(0, alias="Total")


class UploadResponse(BaseModel):
    """Returned by POST /api/upload when every row made it in."""
    success: bool = True
    message: str
    count: int = Field(..., description="Number of readings stored")
    warnings: list[str] = Field(
        default_factory=list,
        description="Optional values that couldn't be parsed and were stored as 0",
    )


class ErrorResponse(BaseModel):
    """Shape of every 4xx/5xx body."""
    error: str = Field(..., description="Short error code")
    message: str = Field(..., description="What went wrong")
