"""
fields.py

Fixed-width field codec for changetracker records.

Every record field occupies a constant number of bytes. This module holds
the primitive encoders and decoders used by the record codecs:

    Text   - UTF-16 big-endian code units, space padded to the field width
    Int    - 4-byte signed integer, network byte order
    Long   - 8-byte signed integer, network byte order
    Date   - 10 text units holding YYYY-MM-DD, or all spaces for "unset"

Widths of text fields are measured in text units (2 bytes each), so a
text field of width 10 occupies 20 bytes on disk.
"""

import struct
from datetime import date, datetime
from typing import Optional

from .exceptions import (
    CorruptedRecordError,
    FieldTooLongError,
    MalformedDateError,
    ShortReadError,
)

TEXT_ENCODING = "utf-16-be"
TEXT_UNIT_SIZE = 2
PAD_CHAR = " "

INT_FORMAT = "!i"
LONG_FORMAT = "!q"
INT_SIZE = struct.calcsize(INT_FORMAT)
LONG_SIZE = struct.calcsize(LONG_FORMAT)

DATE_WIDTH = 10
DATE_FORMAT = "%Y-%m-%d"

_PAD_UNIT = PAD_CHAR.encode(TEXT_ENCODING)


def text_size(width: int) -> int:
    """Return the number of bytes a text field of ``width`` units occupies."""
    return width * TEXT_UNIT_SIZE


def encode_text(value: str, width: int, field: str = None) -> bytes:
    """
    Encode a string into a fixed-width text field.

    The value is padded with trailing spaces up to ``width`` text units.
    Values longer than the field are rejected; they are never truncated.

    Args:
        value (str): Text to encode
        width (int): Field width in text units
        field (str, optional): Field name used in error messages

    Returns:
        bytes: Exactly ``text_size(width)`` bytes

    Raises:
        FieldTooLongError: If ``value`` needs more than ``width`` units
    """
    data = value.encode(TEXT_ENCODING)
    units = len(data) // TEXT_UNIT_SIZE
    if units > width:
        raise FieldTooLongError(value, width, field)
    return data + _PAD_UNIT * (width - units)


def decode_text(data: bytes, width: int) -> str:
    """
    Decode a fixed-width text field.

    The raw padded string is returned; callers trim trailing spaces when
    they need the semantic value.

    Raises:
        ShortReadError: If ``data`` is shorter than the field
        CorruptedRecordError: If the bytes are not valid UTF-16
    """
    expected = text_size(width)
    if len(data) < expected:
        raise ShortReadError(expected, len(data))
    try:
        return data[:expected].decode(TEXT_ENCODING)
    except UnicodeDecodeError as e:
        raise CorruptedRecordError("Invalid text field", details=str(e)) from e


def encode_date(value: Optional[date]) -> bytes:
    """
    Encode a date as YYYY-MM-DD text, or 10 spaces when ``value`` is None.

    Raises:
        TypeError: If ``value`` is a datetime rather than a date
    """
    if value is None:
        return encode_text("", DATE_WIDTH)
    if isinstance(value, datetime):
        raise TypeError(f"Expected a date, got datetime {value!r}")
    return encode_text(value.isoformat(), DATE_WIDTH, "date")


def decode_date(data: bytes) -> Optional[date]:
    """
    Decode a date field.

    Returns:
        date or None: None when the field is all spaces

    Raises:
        MalformedDateError: If the field holds anything but a YYYY-MM-DD date
    """
    text = decode_text(data, DATE_WIDTH)
    stripped = text.strip(PAD_CHAR)
    if not stripped:
        return None
    if len(stripped) != DATE_WIDTH:
        raise MalformedDateError(text)
    try:
        return datetime.strptime(stripped, DATE_FORMAT).date()
    except ValueError:
        raise MalformedDateError(text) from None


def _pack(fmt: str, value: int, kind: str) -> bytes:
    try:
        return struct.pack(fmt, value)
    except struct.error as e:
        raise ValueError(f"{value!r} does not fit a {kind} field: {e}") from None


def _unpack(fmt: str, data: bytes) -> int:
    size = struct.calcsize(fmt)
    if len(data) < size:
        raise ShortReadError(size, len(data))
    return struct.unpack(fmt, data[:size])[0]


def encode_int(value: int) -> bytes:
    """Encode a 4-byte signed integer (network byte order)."""
    return _pack(INT_FORMAT, value, "4-byte integer")


def decode_int(data: bytes) -> int:
    return _unpack(INT_FORMAT, data)


def encode_long(value: int) -> bytes:
    """Encode an 8-byte signed integer (network byte order)."""
    return _pack(LONG_FORMAT, value, "8-byte integer")


def decode_long(data: bytes) -> int:
    return _unpack(LONG_FORMAT, data)
