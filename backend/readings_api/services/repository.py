"""
Reading Repository
==================

The only code that talks to MongoDB.

WHAT IT DOES:
------------
1. Lists every distinct object_id (sorted, deduplicated by MongoDB)
2. Lists every distinct port_num for one object
3. Fetches all readings for an object, optionally one port
4. Bulk-inserts a batch of readings from a CSV upload

THE COLLECTION:
--------------
One document per reading, in <MONGO_DB>.<MONGO_COLLECTION>:

    {
        "_id": ObjectId(...),
        "timestamp": ISODate(...),
        "object_id": 5.0,
        "port_num": 1.0,
        "voltage": 3.3,
        ...
    }

Nothing here retries. If the driver raises, we wrap its message in a
StorageError and let it go up to the router unchanged.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from readings_api.errors import StorageError
from readings_api.models import SensorReading, ObjectSummary, PortSummary

logger = logging.getLogger(__name__)


class ReadingRepository(ABC):
    """
    Everything the rest of the app needs from storage.

    The MongoDB version is below. Tests plug in an in-memory one.
    """

    @abstractmethod
    def list_objects(self) -> list[ObjectSummary]:
        """Every distinct object_id, ascending."""

    @abstractmethod
    def list_ports(self, object_id: float) -> list[PortSummary]:
        """Every distinct port_num recorded for object_id (any order)."""

    @abstractmethod
    def get_readings(
        self, object_id: float, port_num: Optional[float] = None
    ) -> tuple[list[SensorReading], int]:
        """Readings for object_id (narrowed to port_num if given) and their count."""

    @abstractmethod
    def save_readings(self, readings: Sequence[SensorReading]) -> None:
        """Insert the whole batch in one call."""


# =============================================================================
# MONGODB IMPLEMENTATION
# =============================================================================

class MongoReadingRepository(ReadingRepository):
    """
    ReadingRepository backed by a pymongo collection.

    HOW TO USE:
    ----------
    client = MongoClient(Config.MONGO_URI)
    repo = MongoReadingRepository(client[Config.MONGO_DB][Config.MONGO_COLLECTION])

    The collection is handed in, so whoever creates the client owns
    its lifetime (main.py closes it on shutdown).
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    def list_objects(self) -> list[ObjectSummary]:
        pipeline = [
            {"$group": {"_id": "$object_id", "object_id": {"$first": "$object_id"}}},
            {"$project": {"_id": 0}},
            {"$sort": {"object_id": ASCENDING}},
        ]
        logger.debug(f"list_objects pipeline: {pipeline}")

        try:
            results = list(self.collection.aggregate(pipeline))
        except PyMongoError as e:
            logger.error(f"Failed to list object ids: {e}")
            raise StorageError(str(e), error="Failed to list objects")

        logger.info(f"Found {len(results)} unique object IDs")
        return [ObjectSummary(object_id=doc["object_id"]) for doc in results]

    def list_ports(self, object_id: float) -> list[PortSummary]:
        pipeline = [
            {"$match": {"object_id": float(object_id)}},
            {"$group": {"_id": "$port_num", "port_num": {"$first": "$port_num"}}},
            {"$project": {"_id": 0}},
        ]
        logger.debug(f"list_ports pipeline: {pipeline}")

        try:
            results = list(self.collection.aggregate(pipeline))
        except PyMongoError as e:
            logger.error(f"Failed to list ports for object {object_id}: {e}")
            raise StorageError(str(e), error="Failed to list ports")

        logger.info(f"Found {len(results)} unique ports for object {object_id}")
        return [PortSummary(port_num=doc["port_num"]) for doc in results]

    def get_readings(
        self, object_id: float, port_num: Optional[float] = None
    ) -> tuple[list[SensorReading], int]:
        query = {"object_id": float(object_id)}
        if port_num is not None:
            query["port_num"] = float(port_num)
        logger.info(f"MongoDB filter: {query}")

        try:
            cursor = self.collection.find(query).sort("timestamp", ASCENDING)
            readings = [SensorReading.from_document(doc) for doc in cursor]
        except PyMongoError as e:
            logger.error(f"Failed to fetch readings for {query}: {e}")
            raise StorageError(str(e), error="Failed to fetch sensor data")

        logger.info(f"Retrieved {len(readings)} documents")
        return readings, len(readings)

    def save_readings(self, readings: Sequence[SensorReading]) -> None:
        if not readings:
            return

        documents = [reading.to_document() for reading in readings]
        logger.info(f"Inserting {len(documents)} documents to MongoDB")

        try:
            # One call. If Mongo stops partway (BulkWriteError) the caller
            # just sees a failure; we don't try to undo what got written.
            self.collection.insert_many(documents, ordered=True)
        except PyMongoError as e:
            logger.error(f"Error inserting documents: {e}")
            raise StorageError(str(e), error="Failed to save sensor data")

        logger.info(f"Successfully inserted {len(documents)} documents")
