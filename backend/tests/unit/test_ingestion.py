from datetime import datetime, timedelta, timezone

import pytest

from readings_api.errors import ClientInputError, StorageError
from readings_api.services import ReadingService
from readings_api.services.ingestion import (
    MAX_WARNINGS,
    OPTIONAL_COLUMNS,
    REQUIRED_COLUMNS,
    ColumnKind,
    EmptyPayload,
    InvalidEncoding,
    InvalidField,
    MalformedHeader,
    MissingColumns,
    RowReadError,
    ingest_csv,
    parse_readings_csv,
    parse_timestamp,
)

HEADER = "timestamp,object_id,port_num,voltage,current,supply_current,supply_volt,voltage_drop,voc"
ROW = "2024-01-01T00:00:00Z,5,1,3.3,0.1,0.05,5.0,0.2,3.1"
NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def csv_bytes(*lines: str) -> bytes:
    return "\n".join(lines).encode("utf-8")


def test_single_row_example():
    result = parse_readings_csv(csv_bytes(HEADER, ROW))

    assert result.count == 1
    reading = result.readings[0]
    assert reading.object_id == 5
    assert reading.port_num == 1
    assert reading.voltage == 3.3
    assert reading.voc == 3.1
    assert reading.timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert abs(datetime.now(timezone.utc) - reading.created_at) < timedelta(minutes=1)
    assert result.warnings == []


def test_n_rows_give_n_readings_in_order():
    rows = [f"2024-01-01T00:00:{i:02d}Z,5,{i},1,1,1,1,1,1" for i in range(25)]
    result = parse_readings_csv(csv_bytes(HEADER, *rows), now=NOW)

    assert result.count == 25
    assert [r.port_num for r in result.readings] == list(range(25))
    assert all(r.created_at == NOW for r in result.readings)


def test_column_order_does_not_matter():
    header = "voc,voltage_drop,supply_volt,supply_current,current,voltage,port_num,object_id,timestamp"
    row = "3.1,0.2,5.0,0.05,0.1,3.3,1,5,2024-01-01T00:00:00Z"
    reading = parse_readings_csv(csv_bytes(header, row)).readings[0]

    assert reading.object_id == 5
    assert reading.voltage == 3.3
    assert reading.voc == 3.1


def test_optional_defaults_when_columns_absent():
    reading = parse_readings_csv(csv_bytes(HEADER, ROW)).readings[0]

    assert reading.state == 0
    assert reading.ai1 == 0
    assert reading.fw_version == ""
    assert reading.vendor_id == ""
    assert reading.read_error is False


# =============================================================================
# Header problems
# =============================================================================

def test_empty_file_is_malformed_header():
    with pytest.raises(MalformedHeader):
        parse_readings_csv(b"")


def test_blank_lines_only_is_malformed_header():
    with pytest.raises(MalformedHeader):
        parse_readings_csv(b"\n\n\n")


def test_missing_columns_lists_every_one():
    header = "timestamp,object_id,port_num,current,supply_current,supply_volt,voltage_drop"

    with pytest.raises(MissingColumns) as exc_info:
        parse_readings_csv(csv_bytes(header, "this row is never looked at"))

    assert exc_info.value.names == ["voltage", "voc"]
    assert "voltage" in exc_info.value.message
    assert "voc" in exc_info.value.message
    assert exc_info.value.status_code == 400


def test_header_only_is_empty_payload():
    with pytest.raises(EmptyPayload):
        parse_readings_csv(csv_bytes(HEADER))


def test_invalid_utf8_is_rejected():
    with pytest.raises(InvalidEncoding):
        parse_readings_csv(HEADER.encode() + b"\n\xff\xfe,5")


def test_byte_order_mark_is_tolerated():
    content = "\ufeff".encode("utf-8") + csv_bytes(HEADER, ROW)
    assert parse_readings_csv(content).count == 1


# =============================================================================
# Required fields
# =============================================================================

@pytest.mark.parametrize("timestamp", [
    "2024-01-01 00:00:00",
    "2024-01-01T00:00:00",
    "01/01/2024",
    "2024-1-1T0:0:0Z",
    "2024-01-01T00:00:00+0200",
    "2024-01-01T00:00:00.Z",
    "2024-13-01T00:00:00Z",
    "",
])
def test_bad_timestamp(timestamp):
    row = f"{timestamp},5,1,3.3,0.1,0.05,5.0,0.2,3.1"

    with pytest.raises(InvalidField) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, ROW, row))

    assert exc_info.value.field == "timestamp"
    assert exc_info.value.line == 3
    assert exc_info.value.error == "Invalid timestamp format"


@pytest.mark.parametrize("field_name", REQUIRED_COLUMNS[1:])
def test_non_numeric_required_field(field_name):
    values = dict(zip(REQUIRED_COLUMNS, ROW.split(",")))
    values[field_name] = "abc"
    row = ",".join(values[name] for name in REQUIRED_COLUMNS)

    with pytest.raises(InvalidField) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, row))

    assert exc_info.value.field == field_name
    assert exc_info.value.line == 2
    assert exc_info.value.message == f"Error at line 2: {field_name} should be a number"


def test_empty_required_numeric_rejects_row():
    row = "2024-01-01T00:00:00Z,5,1,,0.1,0.05,5.0,0.2,3.1"

    with pytest.raises(InvalidField) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, row))

    assert exc_info.value.field == "voltage"


def test_non_finite_required_numeric_rejects_row():
    row = "2024-01-01T00:00:00Z,5,1,nan,0.1,0.05,5.0,0.2,3.1"

    with pytest.raises(InvalidField):
        parse_readings_csv(csv_bytes(HEADER, row))


def test_one_bad_row_voids_batch():
    bad = "2024-01-01T00:00:00Z,5,1,3.3,0.1,0.05,5.0,0.2,x"

    with pytest.raises(InvalidField) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, ROW, ROW, bad, ROW))

    assert exc_info.value.line == 4


# =============================================================================
# Optional fields
# =============================================================================

def test_empty_optional_numeric_is_zero():
    header = HEADER + ",state,ai3"
    reading = parse_readings_csv(csv_bytes(header, ROW + ",,")).readings[0]

    assert reading.state == 0
    assert reading.ai3 == 0


def test_unparsable_optional_numeric_is_zero_with_warning():
    header = HEADER + ",state,q_charge"
    result = parse_readings_csv(csv_bytes(header, ROW + ",oops,4.5"))

    reading = result.readings[0]
    assert reading.state == 0
    assert reading.q_charge == 4.5
    assert len(result.warnings) == 1
    assert "line 2" in result.warnings[0]
    assert "state" in result.warnings[0]


def test_all_optional_columns_are_read():
    names = list(OPTIONAL_COLUMNS)
    values = []
    for index, name in enumerate(names):
        kind = OPTIONAL_COLUMNS[name].kind
        if kind is ColumnKind.BOOLEAN:
            values.append("true")
        elif kind is ColumnKind.STRING:
            values.append(f"v{index}")
        else:
            values.append(str(index + 1))

    header = HEADER + "," + ",".join(names)
    reading = parse_readings_csv(csv_bytes(header, ROW + "," + ",".join(values))).readings[0]

    for index, name in enumerate(names):
        column = OPTIONAL_COLUMNS[name]
        actual = getattr(reading, column.target)
        if column.kind is ColumnKind.BOOLEAN:
            assert actual is True
        elif column.kind is ColumnKind.STRING:
            assert actual == f"v{index}"
        else:
            assert actual == index + 1


def test_string_fields_copied_verbatim():
    header = HEADER + ",fw_version,vendor_id,lite_id"
    reading = parse_readings_csv(csv_bytes(header, ROW + ', 1.2.3 ,ACME,"a,b"')).readings[0]

    assert reading.fw_version == " 1.2.3 "
    assert reading.vendor_id == "ACME"
    assert reading.lite_id == "a,b"


@pytest.mark.parametrize("value,expected", [
    ("true", True),
    ("TRUE", False),
    ("True", False),
    ("1", False),
    ("yes", False),
    ("", False),
])
def test_read_error_is_true_only_for_literal_true(value, expected):
    header = HEADER + ",read_error"
    reading = parse_readings_csv(csv_bytes(header, f"{ROW},{value}")).readings[0]

    assert reading.read_error is expected


def test_warnings_are_capped():
    header = HEADER + ",state"
    rows = [ROW + ",bad"] * (MAX_WARNINGS + 50)
    result = parse_readings_csv(csv_bytes(header, *rows))

    assert result.count == MAX_WARNINGS + 50
    assert len(result.warnings) == MAX_WARNINGS + 1
    assert result.warnings[-1] == "... and 50 more warnings"


# =============================================================================
# Row structure
# =============================================================================

def test_wrong_field_count_is_row_read_error():
    with pytest.raises(RowReadError) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, ROW, ROW + ",extra"))

    assert exc_info.value.line == 3
    assert "wrong number of fields" in exc_info.value.message


def test_short_row_is_row_read_error():
    with pytest.raises(RowReadError):
        parse_readings_csv(csv_bytes(HEADER, "2024-01-01T00:00:00Z,5,1"))


def test_bad_quoting_is_row_read_error():
    with pytest.raises(RowReadError) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, '"2024-01-01T00:00:00Z"x,5,1,3.3,0.1,0.05,5.0,0.2,3.1'))

    assert exc_info.value.line == 2
    assert isinstance(exc_info.value, ClientInputError)


def test_blank_lines_between_rows_are_skipped():
    result = parse_readings_csv(csv_bytes(HEADER, ROW, "", ROW, ""))
    assert result.count == 2


def test_crlf_line_endings():
    content = "\r\n".join([HEADER, ROW, ROW]).encode("utf-8")
    assert parse_readings_csv(content).count == 2


# =============================================================================
# Timestamps
# =============================================================================

def test_parse_timestamp_with_offset_and_fraction():
    parsed = parse_timestamp("2024-03-05T10:20:30.250+02:00")

    assert parsed.utcoffset() == timedelta(hours=2)
    assert parsed.microsecond == 250000
    assert parsed.astimezone(timezone.utc).hour == 8


def test_parse_timestamp_nanoseconds_truncated_to_microseconds():
    parsed = parse_timestamp("2024-01-01T00:00:00.123456789Z")

    assert parsed == datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)


def test_nanosecond_timestamps_ingest():
    row = ROW.replace("00:00:00Z", "00:00:00.987654321Z")
    reading = parse_readings_csv(csv_bytes(HEADER, row)).readings[0]

    assert reading.timestamp.microsecond == 987654


def test_object_id_with_digit_separator_is_rejected():
    row = ROW.replace(",5,1,", ",1_000,1,")

    with pytest.raises(InvalidField) as exc_info:
        parse_readings_csv(csv_bytes(HEADER, row))

    assert exc_info.value.field == "object_id"
    assert exc_info.value.line == 2


# =============================================================================
# ingest_csv
# =============================================================================

def test_ingest_saves_whole_batch_in_one_call(repository):
    service = ReadingService(repository)
    result = ingest_csv(csv_bytes(HEADER, ROW, ROW, ROW), service)

    assert result.count == 3
    assert len(repository.saved_batches) == 1
    assert len(repository.saved_batches[0]) == 3


def test_ingest_validation_failure_saves_nothing(repository):
    service = ReadingService(repository)

    with pytest.raises(EmptyPayload):
        ingest_csv(csv_bytes(HEADER), service)

    assert repository.saved_batches == []


def test_ingest_storage_error_propagates(failing_repository):
    service = ReadingService(failing_repository)

    with pytest.raises(StorageError) as exc_info:
        ingest_csv(csv_bytes(HEADER, ROW), service)

    assert exc_info.value.message == "connection refused"
    assert exc_info.value.status_code == 500
