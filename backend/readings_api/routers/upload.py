"""
CSV Upload Endpoint
===================

POST /api/upload     - multipart/form-data with the CSV in a field named "file"
OPTIONS /api/upload  - CORS preflight

WHAT HAPPENS:
------------
1. Make sure the body really is multipart/form-data (the #1 frontend bug is
   setting Content-Type by hand and losing the boundary)
2. Pull out the "file" field
3. Refuse anything over the size limit (10 MiB by default)
4. Refuse anything that doesn't look like a CSV
5. Parse + validate every row (see services/ingestion.py)
6. Save them all in one go

Example:
    curl -X POST http://localhost:8080/api/upload -F "file=@readings.csv"
"""

import logging

from fastapi import APIRouter, Depends, Request, Response
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from readings_api.config import Config
from readings_api.errors import ClientInputError
from readings_api.models import UploadResponse
from readings_api.routers.readings import get_reading_service
from readings_api.services import ReadingService, ingest_csv
from readings_api.utils.validation import is_csv_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["upload"])


@router.options("/upload")
def upload_preflight():
    """Browsers ask before POSTing a file cross-origin. The answer is yes."""
    return Response(status_code=200)


@router.post("/upload", response_model=UploadResponse)
async def upload_csv(request: Request, service: ReadingService = Depends(get_reading_service)):
    """
    Upload a CSV of sensor readings.

    Either every row is stored or none are. Optional numeric values that
    couldn't be parsed are stored as 0 and listed under "warnings".
    """
    content_type = request.headers.get("content-type", "")
    logger.info(f"Request Content-Type: {content_type}, Method: {request.method}")

    if "multipart/form-data" not in content_type.lower():
        raise ClientInputError(
            "Failed to parse form data",
            "request Content-Type isn't multipart/form-data",
        )

    try:
        form = await request.form()
    except MultiPartException as e:
        raise ClientInputError("Failed to parse form data", e.message)
    except StarletteHTTPException as e:
        # newer Starlette converts MultiPartException itself
        raise ClientInputError("Failed to parse form data", str(e.detail))

    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise ClientInputError(
                "Could not get file from request",
                "no file was sent in the 'file' field",
            )

        # Read one byte past the limit so we can tell "exactly at" from "over"
        content = await upload.read(Config.MAX_UPLOAD_BYTES + 1)
        if len(content) > Config.MAX_UPLOAD_BYTES:
            raise ClientInputError(
                "Failed to parse form data",
                f"file is larger than the {Config.MAX_UPLOAD_BYTES} byte upload limit",
            )

        logger.info(
            f"Received file: {upload.filename}, size: {len(content)}, "
            f"content type: {upload.content_type}"
        )

        if not is_csv_upload(upload.filename, upload.content_type):
            raise ClientInputError(
                "Invalid file type",
                f"Only CSV files are allowed. Received: {upload.content_type}",
            )
    finally:
        await form.close()

    result = await run_in_threadpool(ingest_csv, content, service)

    return UploadResponse(
        success=True,
        message=f"Successfully uploaded {result.count} sensor data records",
        count=result.count,
        warnings=result.warnings,
    )
