"""
models.py

Data models for the changetracker record store.

This file contains the five persisted entities and the page container
returned by paginated listings. Each entity exposes its natural key via
the ``key`` property; text values are held without their on-disk padding.

Classes:
    Requester: A person who submits change requests
    Product: A tracked product
    Release: A release of a product
    ChangeItem: A change to be made in a product release
    ChangeRequest: A requester's report that links to a change item
    Page: One page of records from a paginated scan
"""

from dataclasses import dataclass, field
import datetime
from typing import Any, ClassVar, Generic, Iterator, List, Optional, TypeVar

T = TypeVar("T")

STATUS_OPEN = "Open"
STATUS_ASSESSED = "Assessed"
STATUS_IN_PROGRESS = "In-Progress"
STATUS_COMPLETED = "Completed"
STATUS_CANCELLED = "Cancelled"

STATUSES = (
    STATUS_OPEN,
    STATUS_ASSESSED,
    STATUS_IN_PROGRESS,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
)
CLOSED_STATUSES = frozenset({STATUS_COMPLETED, STATUS_CANCELLED})


@dataclass
class Requester:
    """
    A person who reports change requests.

    Attributes:
        email (str): Unique email address (natural key)
        name (str): Full name
        phone_number (int): Phone number stored as an 8-byte integer
        department (str): Two-letter department code, may be empty

    Example:
        >>> requester = Requester("a@x.com", "A", 1234567890, "QA")
        >>> requester.key
        'a@x.com'
    """

    ENTITY: ClassVar[str] = "requester"

    email: str
    name: str
    phone_number: int
    department: str = ""

    @property
    def key(self) -> str:
        return self.email


@dataclass
class Product:
    """A tracked product, identified by its name."""

    ENTITY: ClassVar[str] = "product"

    product_name: str

    @property
    def key(self) -> str:
        return self.product_name


@dataclass
class Release:
    """
    A release of a product.

    The natural key is the (product_name, release_id) pair, so two products
    may use the same release identifier.
    """

    ENTITY: ClassVar[str] = "release"

    product_name: str
    release_id: str
    date: Optional[datetime.date] = None

    @property
    def key(self) -> tuple:
        return (self.product_name, self.release_id)


@dataclass
class ChangeItem:
    """
    A change to be made in a product release.

    ``change_id`` is assigned by the store when the item is added; it is
    strictly increasing across the change item file.

    Attributes:
        change_id (int): Store-assigned identifier (natural key)
        product_name (str): Product the change applies to
        release_id (str): Release the change was reported against
        description (str): Short description of the change
        priority (str): Single character priority, "1"-"5" or blank
        status (str): One of STATUSES
        anticipated_date (date, optional): Anticipated release date
    """

    ENTITY: ClassVar[str] = "change item"

    change_id: int
    product_name: str
    release_id: str
    description: str
    priority: str
    status: str
    anticipated_date: Optional[datetime.date] = None

    @property
    def key(self) -> int:
        return self.change_id

    @property
    def is_pending(self) -> bool:
        return self.status not in CLOSED_STATUSES

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED


@dataclass
class ChangeRequest:
    """A requester's report against a change item; one per (change, requester)."""

    ENTITY: ClassVar[str] = "change request"

    change_id: int
    product_name: str
    reported_release: str
    requester_email: str
    reported_date: Optional[datetime.date] = None

    @property
    def key(self) -> tuple:
        return (self.change_id, self.requester_email)


@dataclass
class Page(Generic[T]):
    """
    One page of a paginated listing.

    ``slots`` always holds exactly the requested page size; positions past
    the last record found are None. ``next_key`` is the cursor to pass for
    the following page and is None when nothing further matches.

    Attributes:
        slots (List[Optional[T]]): Records in file order, padded with None
        has_more (bool): True if at least one more matching record follows
        next_key (Any): Resume key for the next page, or None
    """

    slots: List[Optional[T]] = field(default_factory=list)
    has_more: bool = False
    next_key: Any = None

    @property
    def records(self) -> List[T]:
        return [record for record in self.slots if record is not None]

    @property
    def is_empty(self) -> bool:
        return all(record is None for record in self.slots)

    def __iter__(self) -> Iterator[Optional[T]]:
        return iter(self.slots)

    def __len__(self) -> int:
        return len(self.slots)
