"""
Services Package
================

These are the "workers" that do the actual work.

- ReadingRepository / MongoReadingRepository: talk to MongoDB
- ReadingService: what the routers call for queries and saves
- parse_readings_csv / ingest_csv: turn an uploaded CSV into readings
"""

from .repository import ReadingRepository, MongoReadingRepository
from .reading_service import ReadingService
from .ingestion import IngestionResult, parse_readings_csv, ingest_csv

__all__ = [
    "ReadingRepository",
    "MongoReadingRepository",
    "ReadingService",
    "IngestionResult",
    "parse_readings_csv",
    "ingest_csv",
]
