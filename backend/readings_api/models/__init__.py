"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from readings_api.models import SensorReading, ReadingsPage
"""

from .reading import (
    # What gets stored
    SensorReading,

    # Computed on read
    ObjectSummary,
    PortSummary,

    # What we send back to the frontend
    ReadingsPage,
    UploadResponse,
    ErrorResponse,
)

__all__ = [
    "SensorReading",
    "ObjectSummary",
    "PortSummary",
    "ReadingsPage",
    "UploadResponse",
    "ErrorResponse",
]
