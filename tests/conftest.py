"""
Test Suite Configuration
"""
import hashlib
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

import pytest

from retail_analytics.config.settings import (
    CacheSettings,
    ScanSettings,
    Settings,
    StorageSettings,
)
from retail_analytics.storage.base import (
    ObjectNotFoundError,
    ObjectStore,
    ScanPage,
    StorageError,
    StoredObject,
    TableScanner,
)
from retail_analytics.transformation.cleaners import CleaningContext, build_context


class FakeObjectStore(ObjectStore):
    """In-memory object store; ETags are body hashes so rewrites change them"""

    def __init__(self, objects: Optional[Dict[str, str]] = None):
        self.objects: Dict[str, str] = dict(objects or {})
        self.content_types: Dict[str, str] = {}
        self.fail_listing = False
        self.failing_keys: set = set()
        self.list_calls = 0
        self.get_calls: List[str] = []

    async def list_objects(self, prefix: str) -> List[StoredObject]:
        self.list_calls += 1
        if self.fail_listing:
            raise StorageError("listing unavailable")
        return [
            StoredObject(key=key, etag=hashlib.md5(body.encode("utf-8")).hexdigest())
            for key, body in sorted(self.objects.items())
            if key.startswith(prefix)
        ]

    async def get_text(self, key: str) -> str:
        self.get_calls.append(key)
        if key in self.failing_keys:
            raise StorageError(f"download of {key} failed")
        if key not in self.objects:
            raise ObjectNotFoundError(key)
        return self.objects[key]

    async def put_text(self, key: str, body: str, content_type: str = "text/csv") -> None:
        self.objects[key] = body
        self.content_types[key] = content_type


class FakeTableScanner(TableScanner):
    """
    Replays scripted scan responses.

    Each response is either a list of items (one page) or an exception to
    raise. A page carries a ``{"page": n}`` cursor while any scripted
    response remains, so a trailing exception is reached; the last
    response has no cursor.
    """

    def __init__(self, responses: Sequence[Union[List[Dict[str, Any]], Exception]]):
        self.responses = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self._pages_served = 0

    async def scan_page(self, table, cursor=None, page_size=None) -> ScanPage:
        self.calls.append({"table": table, "cursor": cursor, "page_size": page_size})
        if not self.responses:
            raise AssertionError("scan_page called more often than scripted")

        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response

        self._pages_served += 1
        next_cursor = {"page": self._pages_served} if self.responses else None
        return ScanPage(items=response, next_cursor=next_cursor)


async def no_sleep(seconds: float) -> None:
    return None


SALES_CSV = """Date,Store,Net Sales,Customers Count,Tickets Count,Gross Margin %,Avg Order Value
01/15/2024,Grass Roots,"$1,250.00",12,14,62.5,89.29
01/16/2024,Grass Roots,$980.00,9,10,0.55,98.00
01/17/2024,Grass Roots,$400.00,3,3,50,133.33
"""

BRAND_CSV = """Brand,% of Total Net Sales,Gross Margin %,Avg Cost (w/o excise),Net Sales
Stiiizy,12.5,45.0,$10.00,"$5,000.00"
Stiiizy [DS],1.0,0,$0.00,$50.00
Raw Garden,8.0,35.0,$12.00,"$2,500.00"
"""

PRODUCT_CSV = """Product Type,% of Total Net Sales,Gross Margin %,Net Sales
Flower,40,52.0,"$8,000.00"
Vape,30,48.0,"$6,000.00"
"""

CUSTOMER_CSV = """Customer ID,Name,Lifetime Net Sales,Lifetime Transactions,Last Visit Date
C1,Ana,$6200.00,40,2024-01-10
C2,Ben,$150.00,3,2023-10-01
C3,Cam,$20.00,1,
"""

EMPLOYEE_CSV = """Employee Name,Store,Date,Tickets Count,Customers Count,Net Sales,Gross Margin %,Units Sold
Dana,Grass Roots,01/15/2024,20,18,$900.00,55,40
Eli,Barbary Coast,01/15/2024,10,10,$500.00,0.5,20
Dana,Grass Roots,01/16/2024,10,9,$300.00,45,12
"""


@pytest.fixture
def test_settings() -> Settings:
    """Settings with throttling delays disabled"""
    return Settings(
        APP_ENV="testing",
        storage=StorageSettings(bucket="test-bucket"),
        scan=ScanSettings(
            page_size=2,
            inter_page_delay_seconds=0,
            base_backoff_seconds=0.01,
            max_retries=3,
        ),
        cache=CacheSettings(data_ttl_seconds=300, invoice_ttl_seconds=1800),
    )


@pytest.fixture
def cleaning_context(test_settings) -> CleaningContext:
    return build_context(
        store_id="combined",
        store_aliases=test_settings.ingestion.store_aliases,
        as_of=date(2024, 1, 20),
    )


@pytest.fixture
def export_objects() -> Dict[str, str]:
    """A small upload bucket covering every record type"""
    return {
        "raw-uploads/grass_roots/sales_2024-01-15_2024-01-17_2024-01-18T10-00-00-000.csv": SALES_CSV,
        "raw-uploads/grass_roots/brand_20240101-20240131_2024-02-01T09-00-00-000.csv": BRAND_CSV,
        "raw-uploads/combined/product_2024-01-01_2024-01-31_2024-02-01T09-00-00-000.csv": PRODUCT_CSV,
        "raw-uploads/grass_roots/customers_2024-01-01_2024-01-31_2024-02-01T09-00-00-000.csv": CUSTOMER_CSV,
        "data/budtender_performance.csv": EMPLOYEE_CSV,
        "config/brand_product_mapping.json": '{"Stiiizy": "Vape", "Raw Garden": {"product_type": "Vape", "vendor": "RG"}}',
    }


@pytest.fixture
def object_store(export_objects) -> FakeObjectStore:
    return FakeObjectStore(export_objects)
