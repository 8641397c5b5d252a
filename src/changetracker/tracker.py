"""
tracker.py

ChangeTracker facade over the five entity stores.

This file provides the ChangeTracker class used by the menu layer. It
opens one RecordStore per entity when constructed, enforces natural-key
uniqueness on add, assigns change IDs, rewrites records in place on
modify and serves the paginated listings.

Classes:
    ChangeTracker: Add, modify and list requesters, products, releases,
        change items and change requests
"""

import dataclasses
import datetime
import logging
import os
from typing import Dict, Optional

from . import config
from .codec import (
    CHANGE_ITEM_CODEC,
    CHANGE_REQUEST_CODEC,
    PRODUCT_CODEC,
    RELEASE_CODEC,
    REQUESTER_CODEC,
)
from .exceptions import AlreadyExistsError, NotFoundError, StorageError
from .models import ChangeItem, ChangeRequest, Page, Product, Release, Requester
from .pagination import PageCursor
from .store import RecordStore

logger = logging.getLogger(__name__)

REQUESTER = "requester"
PRODUCT = "product"
RELEASE = "release"
CHANGE_ITEM = "change_item"
CHANGE_REQUEST = "change_request"


def _trim(value: str) -> str:
    return value.rstrip(" ")


def _with_key_part(page: Page, index: int) -> Page:
    # Composite resume keys are exposed to callers by their varying part only
    if page.next_key is None:
        return page
    return dataclasses.replace(page, next_key=page.next_key[index])


class ChangeTracker:
    """
    Facade over the requester, product, release, change item and change
    request stores.

    All files live in one data directory and stay open until close().
    Adds raise AlreadyExistsError on a duplicate natural key; modifies raise
    NotFoundError when the key is not in the file.

    Attributes:
        data_dir (str): Directory holding the record files
        stores (Dict[str, RecordStore]): Open stores keyed by entity name

    Example:
        >>> with ChangeTracker("./data") as tracker:
        ...     tracker.add_product("Widget")
        ...     page = tracker.product_page()
    """

    def __init__(self, data_dir: str = None):
        """
        Open every entity store.

        Args:
            data_dir (str, optional): Data directory (created if missing),
                defaults to config.DATA_DIR

        Raises:
            StorageError: If the directory or a record file cannot be opened
        """
        self.data_dir = data_dir if data_dir is not None else config.DATA_DIR
        self.stores: Dict[str, RecordStore] = {}

        try:
            os.makedirs(self.data_dir, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self.data_dir}: {e}") from e

        layout = [
            (REQUESTER, config.REQUESTER_FILE, REQUESTER_CODEC),
            (PRODUCT, config.PRODUCT_FILE, PRODUCT_CODEC),
            (RELEASE, config.RELEASE_FILE, RELEASE_CODEC),
            (CHANGE_ITEM, config.CHANGE_ITEM_FILE, CHANGE_ITEM_CODEC),
            (CHANGE_REQUEST, config.CHANGE_REQUEST_FILE, CHANGE_REQUEST_CODEC),
        ]
        try:
            for name, file_name, codec in layout:
                self.stores[name] = RecordStore(os.path.join(self.data_dir, file_name), codec)
        except StorageError:
            self.close()
            raise

        self.requesters: RecordStore[Requester] = self.stores[REQUESTER]
        self.products: RecordStore[Product] = self.stores[PRODUCT]
        self.releases: RecordStore[Release] = self.stores[RELEASE]
        self.change_items: RecordStore[ChangeItem] = self.stores[CHANGE_ITEM]
        self.change_requests: RecordStore[ChangeRequest] = self.stores[CHANGE_REQUEST]

        logger.debug("Opened change tracker in %s", self.data_dir)

    def _store(self, entity: str) -> RecordStore:
        try:
            return self.stores[entity]
        except KeyError:
            raise ValueError(f"Unknown entity: {entity!r}") from None

    def _add_unique(self, store: RecordStore, record):
        record = store.codec.normalize(record)
        if store.exists(lambda existing: existing.key == record.key):
            logger.warning("Rejected duplicate %s %r", store.codec.entity, record.key)
            raise AlreadyExistsError(store.codec.entity, record.key)
        store.append(record)
        logger.info("Added %s %r", store.codec.entity, record.key)
        return record

    # File sizes

    def file_size(self, entity: str) -> int:
        """
        Return the size in bytes of an entity's record file.

        Args:
            entity (str): One of REQUESTER, PRODUCT, RELEASE, CHANGE_ITEM, CHANGE_REQUEST
        """
        return self._store(entity).file_size()

    def requester_file_size(self) -> int:
        return self.requesters.file_size()

    def product_file_size(self) -> int:
        return self.products.file_size()

    # Adds

    def add_requester(self, email: str, name: str, phone_number: int, department: str = "") -> Requester:
        """
        Add a requester with a unique email.

        Returns:
            Requester: The stored record

        Raises:
            AlreadyExistsError: If the email is already registered
            FieldTooLongError: If a text value exceeds its width
        """
        return self._add_unique(self.requesters, Requester(email, name, phone_number, department))

    def add_product(self, product_name: str) -> Product:
        """
        Add a product with a unique name.

        Raises:
            AlreadyExistsError: If the product already exists
        """
        return self._add_unique(self.products, Product(product_name))

    def add_release(self, product_name: str, release_id: str, date: Optional[datetime.date] = None) -> Release:
        """
        Add a release; the (product, release) pair must be unique.

        Raises:
            AlreadyExistsError: If the product already has this release
        """
        return self._add_unique(self.releases, Release(product_name, release_id, date))

    def next_change_id(self) -> int:
        """
        Return the change ID the next added change item will receive.

        Change items are only appended and their IDs never rewritten, so the
        trailing record holds the largest ID in the file.
        """
        last = self.change_items.last_record()
        if last is None:
            return 0
        return last.change_id + 1

    def add_change_item(
        self,
        product_name: str,
        release_id: str,
        description: str,
        priority: str,
        status: str,
        anticipated_date: Optional[datetime.date] = None,
    ) -> int:
        """
        Add a change item and assign it the next change ID.

        Returns:
            int: The assigned change ID

        Raises:
            FieldTooLongError: If a text value exceeds its width
        """
        change_id = self.next_change_id()
        item = ChangeItem(change_id, product_name, release_id, description, priority, status, anticipated_date)
        self.change_items.append(item)
        logger.info("Added change item %d for %s %s", change_id, _trim(product_name), _trim(release_id))
        return change_id

    def add_change_request(
        self,
        change_id: int,
        product_name: str,
        reported_release: str,
        requester_email: str,
        reported_date: Optional[datetime.date] = None,
    ) -> ChangeRequest:
        """
        Record that a requester reported a change item.

        Raises:
            AlreadyExistsError: If this requester already reported this change
        """
        request = ChangeRequest(change_id, product_name, reported_release, requester_email, reported_date)
        return self._add_unique(self.change_requests, request)

    # Lookups

    def find_requester_by_email(self, email: str) -> Optional[Requester]:
        email = _trim(email)
        return self.requesters.find_first(lambda requester: requester.email == email)

    def find_change_item(self, change_id: int) -> Optional[ChangeItem]:
        return self.change_items.find_first(lambda item: item.change_id == change_id)

    # Modifies

    def modify_change_item(self, change_id: int, item: ChangeItem) -> ChangeItem:
        """
        Rewrite the change item with ``change_id`` in place.

        The stored record keeps ``change_id`` whatever ``item.change_id`` holds.

        Returns:
            ChangeItem: The stored replacement

        Raises:
            NotFoundError: If no change item has ``change_id``
        """
        item = CHANGE_ITEM_CODEC.normalize(dataclasses.replace(item, change_id=change_id))
        offset = self.change_items.modify(lambda existing: existing.change_id == change_id, item, key=change_id)
        logger.info("Modified change item %d at offset %d", change_id, offset)
        return item

    def modify_release(self, product_name: str, release_id: str, release: Release) -> Release:
        """
        Rewrite the release identified by (product_name, release_id) in place.

        Raises:
            NotFoundError: If the release does not exist
            AlreadyExistsError: If ``release`` is renamed onto another existing release
        """
        key = (_trim(product_name), _trim(release_id))
        release = RELEASE_CODEC.normalize(release)

        offset = self.releases.find_offset(lambda existing: existing.key == key)
        if offset is None:
            raise NotFoundError(RELEASE_CODEC.entity, key)
        if release.key != key and self.releases.exists(lambda existing: existing.key == release.key):
            raise AlreadyExistsError(RELEASE_CODEC.entity, release.key)

        self.releases.update_at(offset, release)
        logger.info("Modified release %r at offset %d", key, offset)
        return release

    # Pages

    def requester_page(self, last_email: str = None, page_size: int = None) -> Page:
        """Page through all requesters in file order, resuming after ``last_email``."""
        return PageCursor(self.requesters).page(last_email, page_size)

    def product_page(self, last_product: str = None, page_size: int = None) -> Page:
        """Page through all products in file order, resuming after ``last_product``."""
        return PageCursor(self.products).page(last_product, page_size)

    def release_page(self, product_name: str, last_release_id: str = None, page_size: int = None) -> Page:
        """
        Page through the releases of one product.

        ``next_key`` of the returned page is a release ID.
        """
        product_name = _trim(product_name)
        last_key = (product_name, _trim(last_release_id)) if last_release_id is not None else None
        page = PageCursor(self.releases).page(
            last_key,
            page_size,
            predicate=lambda release: release.product_name == product_name,
        )
        return _with_key_part(page, 1)

    def change_item_page(
        self, product_name: str, release_id: str, last_change_id: int = None, page_size: int = None
    ) -> Page:
        """Page through the change items of one product release."""
        product_name, release_id = _trim(product_name), _trim(release_id)
        return PageCursor(self.change_items).page(
            last_change_id,
            page_size,
            predicate=lambda item: item.product_name == product_name and item.release_id == release_id,
        )

    def pending_changes_page(self, product_name: str, last_change_id: int = None, page_size: int = None) -> Page:
        """Page through the change items of a product that are neither completed nor cancelled."""
        product_name = _trim(product_name)
        return PageCursor(self.change_items).page(
            last_change_id,
            page_size,
            predicate=lambda item: item.product_name == product_name and item.is_pending,
        )

    def completed_changes_page(self, product_name: str, last_change_id: int = None, page_size: int = None) -> Page:
        """Page through the completed change items of a product."""
        product_name = _trim(product_name)
        return PageCursor(self.change_items).page(
            last_change_id,
            page_size,
            predicate=lambda item: item.product_name == product_name and item.is_completed,
        )

    def requesters_to_notify_page(self, change_id: int, last_email: str = None, page_size: int = None) -> Page:
        """
        Page through the requesters who reported ``change_id``.

        Change requests whose requester is not on file are skipped. Slots hold
        Requester records; ``next_key`` is the email of the last requester.
        """
        last_key = (change_id, _trim(last_email)) if last_email is not None else None
        page = PageCursor(self.change_requests).page(
            last_key,
            page_size,
            predicate=lambda request: request.change_id == change_id,
            resolve=lambda request: self.find_requester_by_email(request.requester_email),
        )
        return _with_key_part(page, 1)

    # Lifecycle

    def close(self) -> None:
        """Close every open store."""
        for store in self.stores.values():
            store.close()
        logger.debug("Closed change tracker in %s", self.data_dir)

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - ensures all files are closed."""
        self.close()

    def get_stats(self) -> Dict[str, dict]:
        """
        Get statistics for every store.

        Returns:
            Dict[str, dict]: RecordStore.get_stats() keyed by entity name
        """
        return {name: store.get_stats() for name, store in self.stores.items()}
