"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place.
"""

from .readings import router as readings_router, get_reading_service
from .upload import router as upload_router

__all__ = [
    "readings_router",
    "upload_router",
    "get_reading_service",
]
