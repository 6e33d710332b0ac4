"""
Utility modules for the readings API.
"""

from readings_api.utils.validation import (
    CSV_CONTENT_TYPES,
    parse_number,
    validate_number,
    is_csv_upload,
)

__all__ = [
    "CSV_CONTENT_TYPES",
    "parse_number",
    "validate_number",
    "is_csv_upload",
]
