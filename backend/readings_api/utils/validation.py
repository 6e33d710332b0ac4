"""
Input Validation Utilities
===========================

Small validation/parsing helpers shared by the routers and the CSV ingestion.
"""

import math
from typing import Optional


# Content types browsers and tools actually send for .csv files
CSV_CONTENT_TYPES = frozenset({
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
    "application/octet-stream",
})


def parse_number(value: str) -> float:
    """
    Parse a numeric CSV / URL value.

    Args:
        value: Raw string (e.g., "3.3", "-1e-3")

    Returns:
        The value as a float

    Raises:
        ValueError: If the string is empty, padded, uses "_" separators or isn't a finite number
    """
    # float() also takes "1_000" and surrounding whitespace
    if value != value.strip() or "_" in value:
        raise ValueError(f"not a plain number: {value!r}")
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"not a finite number: {value!r}")
    return number


def validate_number(value: Optional[str]) -> bool:
    """
    Check whether a string is a usable number.

    Args:
        value: Raw string (path segment, query value, CSV cell)

    Returns:
        True if parse_number would accept it, False otherwise
    """
    if value is None:
        return False
    try:
        parse_number(value)
        return True
    except ValueError:
        return False


def is_csv_upload(filename: Optional[str], content_type: Optional[str]) -> bool:
    """
    Decide whether an uploaded file should be treated as CSV.

    Accepts any of the usual CSV content types, and falls back to the
    filename extension because some clients label everything
    application/octet-stream or send something odd.

    Args:
        filename: Name the client gave the file (may be None)
        content_type: Content-Type of the file part (may be None)

    Returns:
        True if the file looks like a CSV
    """
    if content_type:
        media_type = content_type.split(";", 1)[0].strip().lower()
        if media_type in CSV_CONTENT_TYPES:
            return True
    return bool(filename) and filename.lower().endswith(".csv")
