"""
store.py

File-backed record store for one changetracker entity type.

This file provides the RecordStore class which owns a single flat file of
fixed-size records. Records are appended at the end of the file and only
ever changed by rewriting a whole slot in place; there is no delete.
Lookups are linear scans from the start of the file.

Classes:
    RecordStore: Append, scan, lookup and in-place update over one file
"""

import logging
import os
from typing import IO, Callable, Iterator, Optional, Generic, Tuple, TypeVar

from .codec import RecordCodec
from .exceptions import (
    MisalignedOffsetError,
    NotFoundError,
    ReaderError,
    ShortReadError,
    StorageError,
    WriterError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecordStore(Generic[T]):
    """
    Stores records of one entity type in a flat file of fixed-size slots.

    The file has no header; its length divided by the record size is the
    record count. The file handle is opened once at construction and kept
    until close(). A trailing partial record (torn write) is ignored by
    scans and overwritten by the next append.

    Attributes:
        file_path (str): Path of the backing file
        codec (RecordCodec[T]): Codec for the stored entity
        record_size (int): Size of one record in bytes
        file_handle (IO): Open binary handle, None once closed

    Example:
        >>> store = RecordStore("./product.dat", PRODUCT_CODEC)
        >>> offset = store.append(Product("Widget"))
        >>> store.exists(lambda p: p.product_name == "Widget")
        True
        >>> store.close()
    """

    def __init__(self, file_path: str, codec: RecordCodec[T]):
        """
        Open (or create) the backing file.

        Args:
            file_path (str): Path of the record file
            codec (RecordCodec[T]): Codec for the stored entity

        Raises:
            StorageError: If the file cannot be opened or created
        """
        self.file_path = file_path
        self.codec = codec
        self.record_size = codec.size
        self.file_handle: Optional[IO] = None

        self._open_file()

    def _open_file(self) -> None:
        """
        Open the backing file for reading and writing.

        Raises:
            StorageError: If the file cannot be opened
        """
        mode = "r+b" if os.path.exists(self.file_path) else "w+b"
        try:
            self.file_handle = open(self.file_path, mode)
        except OSError as e:
            raise StorageError(f"Cannot open record file {self.file_path}: {e}") from e

        try:
            size = self.file_size()
        except StorageError:
            self.file_handle.close()
            self.file_handle = None
            raise
        if size % self.record_size:
            logger.warning(
                "%s ends with a partial record (%d of %d bytes)",
                self.file_path, size % self.record_size, self.record_size,
            )
        logger.debug("Opened %s with %d %s records", self.file_path, self.record_count(), self.codec.entity)

    def _handle(self) -> IO:
        if self.file_handle is None:
            raise StorageError(f"Record file is closed: {self.file_path}")
        return self.file_handle

    def file_size(self) -> int:
        """Return the size of the backing file in bytes."""
        handle = self._handle()
        try:
            return handle.seek(0, os.SEEK_END)
        except OSError as e:
            raise ReaderError(f"Cannot determine file size: {e}", file_path=self.file_path) from e

    def record_count(self) -> int:
        """Return the number of complete records in the file."""
        return self.file_size() // self.record_size

    def _check_alignment(self, offset: int) -> None:
        if offset < 0 or offset % self.record_size:
            raise MisalignedOffsetError(offset, self.record_size)

    def read_at(self, offset: int) -> T:
        """
        Read and decode the record starting at ``offset``.

        Args:
            offset (int): Record-aligned byte offset

        Returns:
            T: The decoded record

        Raises:
            MisalignedOffsetError: If ``offset`` is not a multiple of the record size
            ShortReadError: If fewer than ``record_size`` bytes remain
            ReaderError: If the underlying read fails
        """
        self._check_alignment(offset)
        handle = self._handle()

        try:
            handle.seek(offset)
            data = handle.read(self.record_size)
        except OSError as e:
            raise ReaderError(f"Failed to read record: {e}", file_path=self.file_path, offset=offset) from e

        if len(data) < self.record_size:
            raise ShortReadError(self.record_size, len(data), offset)
        return self.codec.decode(data, offset)

    def scan_from(self, offset: int = 0) -> Iterator[Tuple[int, T]]:
        """
        Lazily yield ``(offset, record)`` pairs in file order.

        The scan ends at end-of-file. A partial trailing record ends the scan
        the same way a clean end-of-file does.

        Args:
            offset (int): Record-aligned offset to start from

        Raises:
            MisalignedOffsetError: If ``offset`` is not record-aligned
        """
        self._check_alignment(offset)
        position = offset

        while True:
            try:
                record = self.read_at(position)
            except ShortReadError as e:
                if e.actual:
                    logger.debug("Ignoring partial record at offset %d of %s", position, self.file_path)
                return
            yield position, record
            position += self.record_size

    def find_offset(self, predicate: Callable[[T], bool]) -> Optional[int]:
        """Return the offset of the first record matching ``predicate``, or None."""
        for position, record in self.scan_from(0):
            if predicate(record):
                return position
        return None

    def find_first(self, predicate: Callable[[T], bool]) -> Optional[T]:
        """Return the first record matching ``predicate``, or None."""
        for _, record in self.scan_from(0):
            if predicate(record):
                return record
        return None

    def exists(self, predicate: Callable[[T], bool]) -> bool:
        """
        Check whether any record matches ``predicate``.

        The scan stops at the first match.
        """
        return self.find_offset(predicate) is not None

    def last_record(self) -> Optional[T]:
        """
        Decode only the trailing complete record.

        Returns:
            T or None: The last record, or None if the file holds no records
        """
        count = self.record_count()
        if count == 0:
            return None
        return self.read_at((count - 1) * self.record_size)

    def append(self, record: T) -> int:
        """
        Append ``record`` after the last complete record.

        No uniqueness checks are made here; callers check before appending.

        Args:
            record (T): Record to write

        Returns:
            int: Offset the record was written at

        Raises:
            FieldTooLongError: If a text value exceeds its width (nothing is written)
            WriterError: If the write fails
        """
        data = self.codec.encode(record)
        handle = self._handle()
        offset = self.record_count() * self.record_size

        try:
            handle.seek(offset)
            handle.write(data)
            handle.flush()
        except OSError as e:
            raise WriterError(
                f"Failed to append record: {e}",
                operation="append",
                file_path=self.file_path,
            ) from e

        logger.debug("Appended %s at offset %d of %s", self.codec.entity, offset, self.file_path)
        return offset

    def update_at(self, offset: int, record: T) -> None:
        """
        Overwrite the record slot starting at ``offset``.

        Args:
            offset (int): Offset of an existing record slot
            record (T): Replacement record

        Raises:
            MisalignedOffsetError: If ``offset`` is not an existing record slot
            FieldTooLongError: If a text value exceeds its width (nothing is written)
            WriterError: If the write fails
        """
        data = self.codec.encode(record)
        self._check_alignment(offset)
        size = self.file_size()
        if offset + self.record_size > size:
            raise MisalignedOffsetError(offset, self.record_size, size)

        handle = self._handle()
        try:
            handle.seek(offset)
            handle.write(data)
            handle.flush()
        except OSError as e:
            raise WriterError(
                f"Failed to update record at offset {offset}: {e}",
                operation="update_at",
                file_path=self.file_path,
            ) from e

        logger.debug("Rewrote %s at offset %d of %s", self.codec.entity, offset, self.file_path)

    def modify(self, predicate: Callable[[T], bool], record: T, key=None) -> int:
        """
        Replace the first record matching ``predicate`` in place.

        The replacement keeps the slot of the record it replaces, so file
        order and file length are unchanged.

        Args:
            predicate (Callable[[T], bool]): Locates the record to replace
            record (T): Replacement record
            key (optional): Key reported in NotFoundError

        Returns:
            int: Offset of the rewritten slot

        Raises:
            NotFoundError: If no record matches
        """
        offset = self.find_offset(predicate)
        if offset is None:
            raise NotFoundError(self.codec.entity, key)
        self.update_at(offset, record)
        return offset

    def close(self) -> None:
        """
        Close the file handle.

        Safe to call more than once.
        """
        if self.file_handle:
            try:
                self.file_handle.close()
            except OSError as e:
                logger.warning("Error closing %s: %s", self.file_path, e)
            finally:
                self.file_handle = None
            logger.debug("Closed %s", self.file_path)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensures the file handle is closed."""
        self.close()

    def get_stats(self) -> dict:
        """
        Get statistics about the store.

        Returns:
            dict: File path, record size, file size and record count
        """
        size = self.file_size()
        return {
            'file_path': self.file_path,
            'record_size': self.record_size,
            'file_size': size,
            'record_count': size // self.record_size,
            'partial_bytes': size % self.record_size,
        }
