"""
Storage Interfaces

Minimal contracts for the two remote collaborators of the ingestion
pipeline: an object store holding uploaded exports and a wide-column
table that can only be read through bounded page scans.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class StorageError(Exception):
    """Base class for remote storage failures"""


class ObjectNotFoundError(StorageError):
    """Requested object key does not exist"""

    def __init__(self, key: str):
        super().__init__(f"Object not found: {key}")
        self.key = key


class CapacityExceededError(StorageError):
    """The table backend rejected a request for lack of throughput"""


@dataclass(frozen=True)
class StoredObject:
    """Listing entry for one object"""
    key: str
    etag: str


@dataclass
class ScanPage:
    """One page of a table scan"""
    items: List[Dict[str, Any]] = field(default_factory=list)
    next_cursor: Optional[Dict[str, Any]] = None


class ObjectStore(ABC):
    """Abstract object store (S3 and test doubles)"""

    @abstractmethod
    async def list_objects(self, prefix: str) -> List[StoredObject]:
        """
        List every object under a prefix.

        Implementations follow continuation tokens themselves; callers
        always receive the complete listing.
        """

    @abstractmethod
    async def get_text(self, key: str) -> str:
        """Download an object body as UTF-8 text"""

    @abstractmethod
    async def put_text(self, key: str, body: str, content_type: str = "text/csv") -> None:
        """Upload a text object"""


class TableScanner(ABC):
    """Abstract paginated table reader (DynamoDB and test doubles)"""

    @abstractmethod
    async def scan_page(
        self,
        table: str,
        cursor: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> ScanPage:
        """
        Fetch one page of a table scan.

        Raises:
            CapacityExceededError: when the backend throttles the request
        """
