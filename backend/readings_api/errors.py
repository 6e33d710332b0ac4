"""
API Errors
==========

Every error the API reports on purpose is an ApiError. Each one knows its
HTTP status, a short error code and a human-readable message, and main.py
turns it into the JSON envelope the frontend expects:

    {"error": "Invalid voltage", "message": "Error at line 4: voltage should be a number"}

TWO FAMILIES:
------------
- ClientInputError (400): the caller sent something we can't use
- StorageError (500): MongoDB said no; the driver's message is passed through as-is
"""

from typing import Optional


class ApiError(Exception):
    """Base class for errors rendered as {"error", "message"} responses."""

    status_code = 500

    def __init__(self, error: str, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.error = error
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class ClientInputError(ApiError):
    """The request itself is at fault (bad id, bad file, bad CSV)."""

    status_code = 400


class StorageError(ApiError):
    """A query, aggregate or insert against the document store failed."""

    status_code = 500

    def __init__(self, message: str, error: str = "Storage error"):
        super().__init__(error, message)
