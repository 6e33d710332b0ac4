"""
Readings API Router
===================

The read side of the API.

ALL ENDPOINTS:
-------------
GET /api/ping                        - Is the API up?
GET /api/objects                     - Every object id we have data for
GET /api/ports/{objectId}            - Every port we have data for on that object
GET /api/data/{objectId}?port_num=N  - The readings (port_num is optional)

Bad ids come back as 400 before we ever touch the database.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from readings_api.errors import ApiError, ClientInputError
from readings_api.models import ObjectSummary, PortSummary, ReadingsPage
from readings_api.services import ReadingService
from readings_api.utils.validation import parse_number, validate_number

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["readings"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================

def get_reading_service(request: Request) -> ReadingService:
    """
    Get the ReadingService the app was started with.

    main.py puts it on app.state (at startup, or straight away when a
    repository is passed to create_app).
    """
    service = getattr(request.app.state, "reading_service", None)
    if service is None:
        raise ApiError("Service unavailable", "Server not fully started yet")
    return service


def _parse_object_id(raw: str) -> float:
    if not validate_number(raw):
        raise ClientInputError("Invalid objectId", "invalid objectId: must be a number")
    return parse_number(raw)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/ping")
def ping():
    """Liveness check."""
    return {"status": "ok", "message": "API is running"}


@router.get("/objects", response_model=list[ObjectSummary])
def list_objects(service: ReadingService = Depends(get_reading_service)):
    """Every distinct object id, smallest first."""
    return service.list_objects()


@router.get("/ports/{object_id}", response_model=list[PortSummary])
def list_ports(object_id: str, service: ReadingService = Depends(get_reading_service)):
    """Every distinct port number recorded for one object."""
    return service.list_ports(_parse_object_id(object_id))


@router.get("/data/{object_id}", response_model=ReadingsPage)
def get_readings(
    object_id: str,
    port_num: Optional[str] = Query(None, description="Only return this port"),
    service: ReadingService = Depends(get_reading_service),
):
    """
    All readings for an object.

    Pass ?port_num=N to narrow to one port. Without it you get every port.
    Total is always the number of readings in SensorData.
    """
    object_id_value = _parse_object_id(object_id)

    port_value = None
    if port_num:
        if not validate_number(port_num):
            raise ClientInputError("Invalid port_num", "invalid port_num: must be a number")
        port_value = parse_number(port_num)

    return service.get_readings(object_id_value, port_value)
