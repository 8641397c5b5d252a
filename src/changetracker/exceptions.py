"""
exceptions.py

Custom exceptions for the changetracker record store.

This file defines all custom exceptions raised by the field codec, the
record codecs, the file-backed stores and the tracker facade.

Exceptions:
    ChangeTrackerError: Base exception for all changetracker errors
    FieldTooLongError: Raised when a text value exceeds its fixed width
    MalformedDateError: Raised when a stored date cannot be parsed
    ShortReadError: Raised when a record is cut short by end-of-file
    CorruptedRecordError: Raised when a full record slot cannot be decoded
    AlreadyExistsError: Raised when an add would duplicate a natural key
    NotFoundError: Raised when a key cannot be located in a store
    MisalignedOffsetError: Raised when an update targets a non-slot offset
    StorageError: Raised for general file-system failures
    WriterError: Raised when write operations fail
    ReaderError: Raised when read operations fail
"""


class ChangeTrackerError(Exception):
    """
    Base exception class for all changetracker errors.

    Every exception raised deliberately by this package inherits from it,
    so callers can handle all store failures with a single except clause.

    Example:
        try:
            tracker.add_product("Widget")
        except ChangeTrackerError as e:
            print(f"Store error: {e}")
    """
    pass


class FieldTooLongError(ChangeTrackerError, ValueError):
    """
    Raised when a text value does not fit in its fixed-width field.

    Values are never truncated; the record is rejected before any byte
    is written.

    Attributes:
        field (str): Name of the offending field (or None if unknown)
        width (int): Field width in text units
        value (str): The rejected value
    """

    def __init__(self, value: str, width: int, field: str = None):
        self.field = field
        self.width = width
        self.value = value

        target = f"field '{field}'" if field else "field"
        super().__init__(
            f"Value of length {len(value)} does not fit {target} of width {width}: {value!r}"
        )


class MalformedDateError(ChangeTrackerError, ValueError):
    """
    Raised when a non-blank date field does not hold a YYYY-MM-DD date.

    Attributes:
        text (str): The raw text found in the field
    """

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Malformed date field: {text!r}")


class ShortReadError(ChangeTrackerError):
    """
    Raised when fewer bytes than a full record are available.

    This marks a torn trailing write. Scans treat it exactly like a clean
    end-of-file; it only reaches callers that decode buffers directly.

    Attributes:
        offset (int): Byte offset where the record was expected (or None)
        expected (int): Record size in bytes
        actual (int): Number of bytes actually available
    """

    def __init__(self, expected: int, actual: int, offset: int = None):
        self.offset = offset
        self.expected = expected
        self.actual = actual

        message = f"Short read: expected {expected} bytes, got {actual}"
        if offset is not None:
            message += f" (offset: {offset})"
        super().__init__(message)


class CorruptedRecordError(ChangeTrackerError):
    """
    Raised when a complete record slot holds bytes that cannot be decoded.

    This can occur due to:
    - Invalid UTF-16 code units in a text field
    - A file written by something other than this package

    Attributes:
        location (str, optional): Description of where corruption was found
        details (str, optional): Additional details about the corruption
    """

    def __init__(self, message: str, location: str = None, details: str = None):
        self.location = location
        self.details = details

        full_message = message
        if location:
            full_message += f" (location: {location})"
        if details:
            full_message += f" - {details}"

        super().__init__(full_message)


class AlreadyExistsError(ChangeTrackerError):
    """
    Raised when adding a record whose natural key is already stored.

    Attributes:
        entity (str): Entity name, e.g. "requester"
        key: The duplicated natural key
    """

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} already exists")


class NotFoundError(ChangeTrackerError, KeyError):
    """
    Raised when a key cannot be located by a linear scan.

    Inherits from KeyError so that lookups behave like mapping access.

    Attributes:
        entity (str): Entity name, e.g. "change item"
        key: The key that was searched for
    """

    def __init__(self, entity: str, key):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key!r} not found")


class MisalignedOffsetError(ChangeTrackerError, ValueError):
    """
    Raised when an in-place update does not target an existing record slot.

    Attributes:
        offset (int): The requested byte offset
        record_size (int): Record size of the store
    """

    def __init__(self, offset: int, record_size: int, file_size: int = None):
        self.offset = offset
        self.record_size = record_size

        message = f"Offset {offset} is not a record slot (record size: {record_size}"
        if file_size is not None:
            message += f", file size: {file_size}"
        super().__init__(message + ")")


class StorageError(ChangeTrackerError):
    """
    Raised for general storage-related issues.

    Examples include:
    - Directory creation failures
    - Files that cannot be opened
    - Permission problems
    """
    pass


class WriterError(StorageError):
    """
    Raised when write operations fail.

    This can occur due to disk space exhaustion, permission issues or
    other IO errors while appending or rewriting a record.

    Attributes:
        operation (str, optional): The write operation that failed
        file_path (str, optional): Path to the file being written
    """

    def __init__(self, message: str, operation: str = None, file_path: str = None):
        self.operation = operation
        self.file_path = file_path

        full_message = message
        if operation:
            full_message = f"{operation}: {full_message}"
        if file_path:
            full_message += f" (file: {file_path})"

        super().__init__(full_message)


class ReaderError(StorageError):
    """
    Raised when read operations fail for reasons other than corruption.

    Attributes:
        file_path (str, optional): Path of the file being read
        offset (int, optional): The byte offset where reading failed
    """

    def __init__(self, message: str, file_path: str = None, offset: int = None):
        self.file_path = file_path
        self.offset = offset

        full_message = message
        if file_path is not None:
            full_message += f" (file: {file_path}"
            if offset is not None:
                full_message += f", offset: {offset}"
            full_message += ")"
        elif offset is not None:
            full_message += f" (offset: {offset})"

        super().__init__(full_message)
