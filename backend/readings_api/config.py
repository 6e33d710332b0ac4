"""
Configuration
=============

Settings come from environment variables. A local .env file is loaded first,
so for development you can just drop one next to where you start the server.
"""

import os

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


def _env_list(name: str, default: str) -> list[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        MONGO_URI: MongoDB connection string
        MONGO_DB: Database holding the readings collection
        MONGO_COLLECTION: Collection the readings live in
        MONGO_TIMEOUT_MS: Server selection timeout for the driver
        CORS_ORIGINS: Comma-separated allowed origins ("*" for any)
        MAX_UPLOAD_MB: Largest CSV upload we accept
        LOG_LEVEL: Logging level name (DEBUG, INFO, ...)
        HOST / PORT: Where the uvicorn runner binds
    """

    # MongoDB
    MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
    MONGO_DB = os.getenv("MONGO_DB", "gomongoviz")
    MONGO_COLLECTION = os.getenv("MONGO_COLLECTION", "sensor_data")
    MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

    # CORS - wide open by default, the dashboard can be hosted anywhere
    CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")

    # Uploads (10 MiB unless told otherwise)
    MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_MB", "10")) << 20

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8080"))
