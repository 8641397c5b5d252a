"""
codec.py

Record codecs for the changetracker entities.

A RecordCodec maps one entity type to a fixed-size byte layout by listing
its fields in canonical order. Each field is described by a FieldSpec that
knows its kind, its width and therefore its byte size.

On-disk layouts (sizes in bytes, text widths in 2-byte units):

    Requester      email(24) name(30) phone_number(long) department(2)     = 120
    Product        product_name(10)                                         = 20
    Release        product_name(10) release_id(8) date(10)                 = 56
    ChangeItem     change_id(int) product_name(10) release_id(8)
                   description(30) priority(1) status(12)
                   anticipated_date(10)                                     = 146
    ChangeRequest  change_id(int) product_name(10) reported_release(8)
                   requester_email(24) reported_date(10)                   = 108

Classes:
    FieldSpec: Describes one fixed-width field
    RecordCodec: Encodes and decodes one entity type
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Sequence, Type, TypeVar

from . import fields
from .exceptions import CorruptedRecordError, ShortReadError
from .models import ChangeItem, ChangeRequest, Product, Release, Requester

T = TypeVar("T")

TEXT = "text"
INT = "int"
LONG = "long"
DATE = "date"

MAX_EMAIL = 24
MAX_NAME = 30
MAX_DEPARTMENT = 2
MAX_PRODUCT_NAME = 10
MAX_RELEASE_ID = 8
MAX_DESCRIPTION = 30
MAX_PRIORITY = 1
MAX_STATUS = 12


@dataclass(frozen=True)
class FieldSpec:
    """
    One fixed-width field of a record layout.

    Attributes:
        name (str): Attribute name on the entity dataclass
        kind (str): One of TEXT, INT, LONG, DATE
        width (int): Width in text units (TEXT only)
    """

    name: str
    kind: str
    width: int = 0

    @property
    def size(self) -> int:
        if self.kind == TEXT:
            return fields.text_size(self.width)
        if self.kind == INT:
            return fields.INT_SIZE
        if self.kind == LONG:
            return fields.LONG_SIZE
        if self.kind == DATE:
            return fields.text_size(fields.DATE_WIDTH)
        raise ValueError(f"Unknown field kind: {self.kind}")

    def encode(self, value: Any) -> bytes:
        if self.kind == TEXT:
            return fields.encode_text(value, self.width, self.name)
        if self.kind == INT:
            return fields.encode_int(value)
        if self.kind == LONG:
            return fields.encode_long(value)
        return fields.encode_date(value)

    def decode(self, data: bytes) -> Any:
        # Text comes back without its trailing pad
        if self.kind == TEXT:
            return fields.decode_text(data, self.width).rstrip(fields.PAD_CHAR)
        if self.kind == INT:
            return fields.decode_int(data)
        if self.kind == LONG:
            return fields.decode_long(data)
        return fields.decode_date(data)


def text(name: str, width: int) -> FieldSpec:
    return FieldSpec(name, TEXT, width)


def integer(name: str) -> FieldSpec:
    return FieldSpec(name, INT)


def long(name: str) -> FieldSpec:
    return FieldSpec(name, LONG)


def date(name: str) -> FieldSpec:
    return FieldSpec(name, DATE)


class RecordCodec(Generic[T]):
    """
    Encodes and decodes one entity type to a fixed-size byte record.

    Encoding is all-or-nothing: every field is encoded (and width checked)
    before any bytes are returned, so a rejected value never produces a
    partial record.

    Attributes:
        record_type (Type[T]): Entity dataclass this codec produces
        fields (List[FieldSpec]): Fields in on-disk order
        size (int): Total record size in bytes

    Example:
        >>> codec = CODECS[Product]
        >>> data = codec.encode(Product("Widget"))
        >>> len(data) == codec.size
        True
        >>> codec.decode(data)
        Product(product_name='Widget')
    """

    def __init__(self, record_type: Type[T], layout: Sequence[FieldSpec], size: int = None):
        """
        Initialize the codec.

        Args:
            record_type (Type[T]): Entity dataclass
            layout (Sequence[FieldSpec]): Fields in on-disk order
            size (int, optional): Expected total size, checked against the layout

        Raises:
            ValueError: If ``size`` disagrees with the layout
        """
        self.record_type = record_type
        self.fields: List[FieldSpec] = list(layout)
        self.offsets: Dict[str, int] = {}

        offset = 0
        for spec in self.fields:
            self.offsets[spec.name] = offset
            offset += spec.size
        self.size = offset

        if size is not None and size != self.size:
            raise ValueError(
                f"{record_type.__name__} layout is {self.size} bytes, expected {size}"
            )

    @property
    def entity(self) -> str:
        return getattr(self.record_type, "ENTITY", self.record_type.__name__)

    def encode(self, record: T) -> bytes:
        """
        Encode ``record`` into exactly ``size`` bytes.

        Raises:
            FieldTooLongError: If a text value exceeds its field width
            ValueError: If an integer does not fit its field
        """
        return b"".join(spec.encode(getattr(record, spec.name)) for spec in self.fields)

    def decode(self, data: bytes, offset: int = None) -> T:
        """
        Decode one record from ``data``.

        Args:
            data (bytes): At least ``size`` bytes; extra bytes are ignored
            offset (int, optional): File offset of the record, for error messages

        Returns:
            T: The decoded entity with text fields trimmed

        Raises:
            ShortReadError: If ``data`` holds fewer than ``size`` bytes
            CorruptedRecordError: If a text field is not valid UTF-16
            MalformedDateError: If a date field is not blank nor YYYY-MM-DD
        """
        if len(data) < self.size:
            raise ShortReadError(self.size, len(data), offset)

        values = {}
        for spec in self.fields:
            start = self.offsets[spec.name]
            try:
                values[spec.name] = spec.decode(data[start:start + spec.size])
            except CorruptedRecordError as e:
                location = f"{self.entity} at offset {offset}" if offset is not None else self.entity
                raise CorruptedRecordError(
                    f"Cannot decode field '{spec.name}'", location=location, details=e.details
                ) from e
        return self.record_type(**values)

    def normalize(self, record: T) -> T:
        """
        Return ``record`` as it would read back from disk.

        Validates every field width and trims text the same way decode does,
        so keys of new records compare equal to keys of stored ones.
        """
        return self.decode(self.encode(record))


REQUESTER_CODEC = RecordCodec(
    Requester,
    [
        text("email", MAX_EMAIL),
        text("name", MAX_NAME),
        long("phone_number"),
        text("department", MAX_DEPARTMENT),
    ],
    size=120,
)

PRODUCT_CODEC = RecordCodec(
    Product,
    [text("product_name", MAX_PRODUCT_NAME)],
    size=20,
)

RELEASE_CODEC = RecordCodec(
    Release,
    [
        text("product_name", MAX_PRODUCT_NAME),
        text("release_id", MAX_RELEASE_ID),
        date("date"),
    ],
    size=56,
)

CHANGE_ITEM_CODEC = RecordCodec(
    ChangeItem,
    [
        integer("change_id"),
        text("product_name", MAX_PRODUCT_NAME),
        text("release_id", MAX_RELEASE_ID),
        text("description", MAX_DESCRIPTION),
        text("priority", MAX_PRIORITY),
        text("status", MAX_STATUS),
        date("anticipated_date"),
    ],
    size=146,
)

CHANGE_REQUEST_CODEC = RecordCodec(
    ChangeRequest,
    [
        integer("change_id"),
        text("product_name", MAX_PRODUCT_NAME),
        text("reported_release", MAX_RELEASE_ID),
        text("requester_email", MAX_EMAIL),
        date("reported_date"),
    ],
    size=108,
)

CODECS = {
    Requester: REQUESTER_CODEC,
    Product: PRODUCT_CODEC,
    Release: RELEASE_CODEC,
    ChangeItem: CHANGE_ITEM_CODEC,
    ChangeRequest: CHANGE_REQUEST_CODEC,
}
