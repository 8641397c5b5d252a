"""
pagination.py

Keyed, resumable pagination over a RecordStore.

A page is located by the natural key of the last record shown on the
previous page rather than by a page number, so filtered listings can be
resumed without an index. Nothing beyond the current page is held in
memory.

Classes:
    PageCursor: Produces pages of (optionally filtered) records
"""

import logging
from typing import Any, Callable, Generic, List, Optional, TypeVar

from . import config
from .models import Page
from .store import RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PageCursor(Generic[T]):
    """
    Produces fixed-size pages from a RecordStore.

    Attributes:
        store (RecordStore[T]): Store to page through
        key (Callable[[T], Any]): Returns the resume key of a record

    Example:
        >>> cursor = PageCursor(product_store)
        >>> first = cursor.page(None, 2)
        >>> second = cursor.page(first.next_key, 2)
    """

    def __init__(self, store: RecordStore[T], key: Callable[[T], Any] = None):
        """
        Initialize the cursor.

        Args:
            store (RecordStore[T]): Store to page through
            key (Callable[[T], Any], optional): Resume key of a record,
                defaults to the record's natural key
        """
        self.store = store
        self.key = key or (lambda record: record.key)

    def resume_offset(self, last_key: Any) -> int:
        """
        Compute where the page after ``last_key`` starts.

        Args:
            last_key: Key of the last record of the previous page, or None

        Returns:
            int: Offset just past the first record with that key. When no
                key is given, or the key is not in the file, the listing
                restarts at offset 0.
        """
        if last_key is None:
            return 0

        offset = self.store.find_offset(lambda record: self.key(record) == last_key)
        if offset is None:
            logger.warning(
                "Resume key %r not found in %s, restarting from the first page",
                last_key, self.store.file_path,
            )
            return 0
        return offset + self.store.record_size

    def page(
        self,
        last_key: Any = None,
        page_size: int = None,
        predicate: Callable[[T], bool] = None,
        resolve: Callable[[T], Optional[Any]] = None,
    ) -> Page:
        """
        Return the page following ``last_key``.

        Args:
            last_key: Resume key from the previous page's ``next_key``, or None
            page_size (int, optional): Number of slots, defaults to config.PAGE_SIZE
            predicate (Callable[[T], bool], optional): Keeps only matching records
            resolve (Callable[[T], Any], optional): Maps a matching record to the
                value placed in the page; records it maps to None are skipped

        Returns:
            Page: Exactly ``page_size`` slots, unfilled slots are None

        Raises:
            ValueError: If ``page_size`` is smaller than 1
        """
        if page_size is None:
            page_size = config.PAGE_SIZE
        if page_size < 1:
            raise ValueError(f"page_size must be at least 1, got {page_size}")

        slots: List[Optional[Any]] = []
        last_record = None
        has_more = False

        for _, record in self.store.scan_from(self.resume_offset(last_key)):
            if predicate is not None and not predicate(record):
                continue
            value = resolve(record) if resolve is not None else record
            if value is None:
                continue
            if len(slots) == page_size:
                has_more = True
                break
            slots.append(value)
            last_record = record

        slots.extend([None] * (page_size - len(slots)))
        next_key = self.key(last_record) if has_more else None
        return Page(slots=slots, has_more=has_more, next_key=next_key)
