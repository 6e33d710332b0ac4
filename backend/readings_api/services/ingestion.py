"""
CSV Ingestion
=============

Turns an uploaded CSV file into SensorReading objects, or tells the caller
exactly which line and column is wrong.

THE RULES:
---------
1. The first non-blank row is the header. Column order doesn't matter,
   we look columns up by name.
2. These nine columns MUST be in the header:
       timestamp, object_id, port_num, voltage, current,
       supply_current, supply_volt, voltage_drop, voc
   If any are missing we say which ones (all of them, not just the first).
3. Every data row must have a value in every required column:
       - timestamp is RFC 3339 (2024-01-01T00:00:00Z)
       - the rest are numbers. Empty is NOT ok.
4. Optional columns (see OPTIONAL_COLUMNS) are forgiving:
       - empty numeric value  -> 0
       - garbage numeric value -> 0, plus a warning in the response
       - read_error is True only for the exact text "true"
5. One bad row = the whole upload is rejected. Nothing gets saved.
6. A header with no data rows is rejected too.

THE DATA FLOW:
-------------
    bytes --decode--> text --csv.reader--> rows --_parse_row--> SensorReading
                                                                      |
                                                 ReadingService.save_readings
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from readings_api.errors import ClientInputError
from readings_api.models import SensorReading
from readings_api.services.reading_service import ReadingService
from readings_api.utils.validation import parse_number

logger = logging.getLogger(__name__)


# =============================================================================
# COLUMN DEFINITIONS
# =============================================================================

REQUIRED_COLUMNS = (
    "timestamp", "object_id", "port_num", "voltage", "current",
    "supply_current", "supply_volt", "voltage_drop", "voc",
)

# RFC 3339: zero-padded fields, "T" separator, "Z" or "+HH:MM" offset
RFC3339_PATTERN = re.compile(
    r"(?P<date>\d{4}-\d{2}-\d{2})T(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?(?P<offset>Z|[+-]\d{2}:\d{2})"
)

# Stop collecting warnings after this many, a bad export can have thousands
MAX_WARNINGS = 100


class ColumnKind(str, Enum):
    STRING = "string"
    NUMERIC = "numeric"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class OptionalColumn:
    """
    How one optional CSV column maps onto a SensorReading.

    Fields:
        kind: How the raw text is converted
        target: SensorReading attribute that receives the value
        on_empty: Value used when the cell is empty
    """
    kind: ColumnKind
    target: str
    on_empty: Any


def _numeric(name: str) -> OptionalColumn:
    return OptionalColumn(ColumnKind.NUMERIC, name, 0.0)


def _string(name: str) -> OptionalColumn:
    return OptionalColumn(ColumnKind.STRING, name, "")


# Adding a column = adding a line here (and a field on SensorReading)
OPTIONAL_COLUMNS: dict[str, OptionalColumn] = {
    "state": _numeric("state"),
    "controller_error": _numeric("controller_error"),
    "ai1": _numeric("ai1"),
    "ai2": _numeric("ai2"),
    "ai3": _numeric("ai3"),
    "ai4": _numeric("ai4"),
    "ai5": _numeric("ai5"),
    "fw_version": _string("fw_version"),
    "vendor_id": _string("vendor_id"),
    "lite_id": _string("lite_id"),
    "q_charge": _numeric("q_charge"),
    "voltage_set_point": _numeric("voltage_set_point"),
    "command": _numeric("command"),
    "target_q": _numeric("target_q"),
    "step_number": _numeric("step_number"),
    "voc_mode": _numeric("voc_mode"),
    "target_voc": _numeric("target_voc"),
    "voc_state": _numeric("voc_state"),
    "voc_exit": _numeric("voc_exit"),
    "read_error": OptionalColumn(ColumnKind.BOOLEAN, "read_error", False),
}


# =============================================================================
# ERRORS
# =============================================================================

class InvalidEncoding(ClientInputError):
    def __init__(self):
        super().__init__("Invalid file encoding", "File must be UTF-8 encoded")


class MalformedHeader(ClientInputError):
    def __init__(self, detail: str):
        super().__init__("Failed to read CSV header", detail)


class MissingColumns(ClientInputError):
    def __init__(self, names: list[str]):
        self.names = names
        super().__init__(
            "Missing required fields in CSV",
            f"The following required fields are missing: {', '.join(names)}",
        )


class RowReadError(ClientInputError):
    def __init__(self, line: int, detail: str):
        self.line = line
        super().__init__("Failed to read CSV row", f"Error at line {line}: {detail}")


class InvalidField(ClientInputError):
    def __init__(self, line: int, field_name: str):
        self.line = line
        self.field = field_name
        if field_name == "timestamp":
            error = "Invalid timestamp format"
            message = f"Error at line {line}: timestamp should be in RFC3339 format"
        else:
            error = f"Invalid {field_name}"
            message = f"Error at line {line}: {field_name} should be a number"
        super().__init__(error, message)


class EmptyPayload(ClientInputError):
    def __init__(self):
        super().__init__(
            "No valid data found",
            "The CSV file contains a header but no valid data rows",
        )


# =============================================================================
# PARSING
# =============================================================================

@dataclass
class IngestionResult:
    """Readings parsed from one upload, plus any non-fatal warnings."""
    readings: list[SensorReading]
    warnings: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.readings)


def parse_timestamp(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp.

    Fractional seconds may have any number of digits (Go exports carry
    nanoseconds); anything past microseconds is dropped.

    Raises:
        ValueError: If value isn't RFC 3339 or names an impossible date/time
    """
    match = RFC3339_PATTERN.fullmatch(value)
    if match is None:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")

    fraction = (match.group("fraction") or "")[:6].ljust(6, "0")
    offset = match.group("offset")
    if offset == "Z":
        offset = "+00:00"
    return datetime.fromisoformat(f"{match.group('date')}T{match.group('time')}.{fraction}{offset}")


class _Warnings:
    """Collects warnings up to MAX_WARNINGS and counts the rest."""

    def __init__(self):
        self.items: list[str] = []
        self.dropped = 0

    def add(self, message: str) -> None:
        if len(self.items) < MAX_WARNINGS:
            self.items.append(message)
        else:
            self.dropped += 1

    def as_list(self) -> list[str]:
        if self.dropped:
            return self.items + [f"... and {self.dropped} more warnings"]
        return list(self.items)


def _parse_row(
    row: list[str],
    line: int,
    columns: dict[str, int],
    now: datetime,
    warnings: _Warnings,
) -> SensorReading:
    try:
        timestamp = parse_timestamp(row[columns["timestamp"]])
    except ValueError:
        raise InvalidField(line, "timestamp")

    values: dict[str, Any] = {"timestamp": timestamp, "created_at": now}

    for name in REQUIRED_COLUMNS[1:]:
        try:
            values[name] = parse_number(row[columns[name]])
        except ValueError:
            raise InvalidField(line, name)

    for name, column in OPTIONAL_COLUMNS.items():
        index = columns.get(name)
        if index is None:
            continue
        raw = row[index]

        if column.kind is ColumnKind.BOOLEAN:
            values[column.target] = raw == "true"
        elif column.kind is ColumnKind.STRING:
            values[column.target] = raw
        elif raw == "":
            values[column.target] = column.on_empty
        else:
            try:
                values[column.target] = parse_number(raw)
            except ValueError:
                values[column.target] = column.on_empty
                warnings.add(f"line {line}: {name} value {raw!r} is not a number, stored as 0")

    return SensorReading(**values)


def parse_readings_csv(content: bytes, now: Optional[datetime] = None) -> IngestionResult:
    """
    Parse a whole CSV upload.

    Args:
        content: Raw bytes of the uploaded file
        now: Ingestion time stamped on every reading (default: current UTC time)

    Returns:
        IngestionResult with at least one reading

    Raises:
        ClientInputError: One of the subclasses above, describing the first problem
    """
    if now is None:
        now = datetime.now(timezone.utc)

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise InvalidEncoding()

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)

    # Header: first non-blank row
    header: list[str] = []
    try:
        while not header:
            header = next(reader)
    except StopIteration:
        raise MalformedHeader("The CSV file is empty")
    except csv.Error as e:
        raise MalformedHeader(str(e))

    logger.info(f"CSV header: {header}")
    columns = {name: index for index, name in enumerate(header)}

    missing = [name for name in REQUIRED_COLUMNS if name not in columns]
    if missing:
        raise MissingColumns(missing)

    readings: list[SensorReading] = []
    warnings = _Warnings()

    while True:
        try:
            row = next(reader)
        except StopIteration:
            break
        except csv.Error as e:
            raise RowReadError(reader.line_num, str(e))

        if not row:
            continue
        line = reader.line_num
        if len(row) != len(header):
            raise RowReadError(
                line,
                f"wrong number of fields (expected {len(header)}, got {len(row)})",
            )

        readings.append(_parse_row(row, line, columns, now, warnings))

    if not readings:
        raise EmptyPayload()

    logger.info(f"Parsed {len(readings)} readings from CSV")
    return IngestionResult(readings=readings, warnings=warnings.as_list())


def ingest_csv(content: bytes, service: ReadingService) -> IngestionResult:
    """Parse an upload and store every reading in one batch."""
    result = parse_readings_csv(content)
    service.save_readings(result.readings)
    return result
