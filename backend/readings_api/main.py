"""
Sensor Readings - Backend API
=============================
FastAPI application for storing and querying time-series sensor readings.

ARCHITECTURE:
    Requests go through three layers:

    [Router] --> [ReadingService] --> [ReadingRepository] --> MongoDB
       |
       +--> [CSV ingestion] --> [ReadingService.save_readings]

    The repository gets its MongoDB collection handed to it at startup.
    Nothing holds a global connection.

HOW TO RUN:
    # Install
    pip install -e .

    # Point it at MongoDB (or put these in a .env file)
    export MONGO_URI=mongodb://localhost:27017
    export MONGO_DB=gomongoviz

    # Run the server
    readings-api
    # or: uvicorn readings_api.main:app --reload --port 8080

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8080/docs
    - ReDoc: http://localhost:8080/redoc
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo import MongoClient
from starlette.exceptions import HTTPException as StarletteHTTPException

from readings_api.config import Config
from readings_api.errors import ApiError
from readings_api.routers import readings_router, upload_router
from readings_api.services import MongoReadingRepository, ReadingRepository, ReadingService


logging.basicConfig(
    level=Config.LOG_LEVEL,
    format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Connect to MongoDB and ping it (unless a repository was injected)
        2. Build the ReadingService and put it on app.state

    SHUTDOWN:
        1. Close the MongoDB client
    """
    client = None

    print("=" * 60)
    print("SENSOR READINGS API - Starting Backend")
    print("=" * 60)

    if getattr(app.state, "reading_service", None) is None:
        client = MongoClient(
            Config.MONGO_URI,
            serverSelectionTimeoutMS=Config.MONGO_TIMEOUT_MS,
            tz_aware=True,
        )
        # Fail startup now rather than on the first request
        client.admin.command("ping")
        logger.info("Connected to MongoDB!")

        collection = client[Config.MONGO_DB][Config.MONGO_COLLECTION]
        app.state.reading_service = ReadingService(MongoReadingRepository(collection))

        print(f"   Database: {Config.MONGO_DB}.{Config.MONGO_COLLECTION}")

    print(f"   Upload limit: {Config.MAX_UPLOAD_BYTES} bytes")
    print(f"   CORS origins: {', '.join(Config.CORS_ORIGINS)}")
    print("=" * 60)

    yield  # Application runs here

    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

def create_app(repository: Optional[ReadingRepository] = None) -> FastAPI:
    """
    Build the FastAPI app.

    Args:
        repository: Storage to use. When None, the lifespan handler connects
                    to MongoDB using Config.
    """
    app = FastAPI(
        title="Sensor Readings API",
        description="Store, query and bulk-upload (CSV) time-series sensor readings.",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if repository is not None:
        app.state.reading_service = ReadingService(repository)

    # CORS - permissive, every response gets the headers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=Config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization", "X-Requested-With"],
        expose_headers=["Content-Length", "Content-Type"],
        max_age=86400,
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        response = await call_next(request)
        client_host = request.client.host if request.client else "-"
        logger.info(f"REQUEST: {client_host} {request.method} {request.url.path} -> {response.status_code}")
        return response

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.error}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # Unknown routes (404) and wrong methods (405) from the router itself
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail), "message": f"{request.method} {request.url.path}: {exc.detail}"},
            headers=getattr(exc, "headers", None),
        )

    app.include_router(readings_router)
    app.include_router(upload_router)

    @app.get(
        "/",
        summary="API Information",
        description="Get basic API information and available endpoints."
    )
    def root():
        return {
            "name": "Sensor Readings API",
            "version": API_VERSION,
            "documentation": {
                "swagger": "/docs",
                "redoc": "/redoc",
                "openapi": "/openapi.json"
            },
            "endpoints": {
                "ping": "GET /api/ping",
                "objects": "GET /api/objects",
                "ports": "GET /api/ports/{objectId}",
                "data": "GET /api/data/{objectId}?port_num=N",
                "upload": "POST /api/upload"
            }
        }

    return app


app = create_app()


def run():
    """Entry point for the readings-api console script."""
    import uvicorn

    uvicorn.run("readings_api.main:app", host=Config.HOST, port=Config.PORT)
