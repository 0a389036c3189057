"""
Paginated Scan Loader

Reads an entire remote table through bounded page scans:
- Throttled pages are retried on the same cursor with exponential backoff
- An optional pause between pages keeps consumption under provisioned capacity
- Items from pages that already succeeded are never discarded by a later failure
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

import structlog
from prometheus_client import Counter

from retail_analytics.config.settings import ScanSettings
from retail_analytics.models.records import InvoiceLineItem
from retail_analytics.storage.base import CapacityExceededError, TableScanner
from retail_analytics.transformation.aggregations import dedupe_line_items
from retail_analytics.transformation.cleaners import clean_invoice_line_item
from retail_analytics.transformation.schema import INVOICE_FIELDS, RawRow
from .exceptions import ScanFailedError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# METRICS
# =============================================================================

SCAN_PAGES = Counter(
    "retail_scan_pages_total",
    "Table scan pages fetched",
    ["table"],
)

SCAN_THROTTLES = Counter(
    "retail_scan_throttles_total",
    "Table scan requests rejected for capacity",
    ["table"],
)


class ScanState(str, Enum):
    """Scan state machine"""
    SCANNING = "scanning"
    THROTTLED = "throttled"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ScanConfig:
    """
    Throttling knobs for a scan.

    ``page_size=None`` lets the backend choose the page size; a zero
    ``inter_page_delay_seconds`` disables the pause between pages.
    """
    page_size: Optional[int] = 250
    inter_page_delay_seconds: float = 1.0
    base_backoff_seconds: float = 1.0
    max_retries: int = 7

    @classmethod
    def from_settings(cls, settings: ScanSettings) -> "ScanConfig":
        return cls(
            page_size=settings.page_size,
            inter_page_delay_seconds=settings.inter_page_delay_seconds,
            base_backoff_seconds=settings.base_backoff_seconds,
            max_retries=settings.max_retries,
        )

    def backoff_seconds(self, retry: int) -> float:
        """Delay before retry number ``retry`` (1-based)"""
        return self.base_backoff_seconds * (2 ** retry)


@dataclass
class ScanResult(Generic[T]):
    """Items read by one scan and how the scan ended"""
    items: List[T] = field(default_factory=list)
    pages: int = 0
    retries: int = 0
    final_state: ScanState = ScanState.SCANNING
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.final_state == ScanState.DONE


class PaginatedScanLoader:
    """
    Scan a whole table page by page.

    Example:
        loader = PaginatedScanLoader(scanner, "retail-invoice-line-items", ScanConfig())
        result = await loader.scan()
    """

    def __init__(
        self,
        scanner: TableScanner,
        table: str,
        config: Optional[ScanConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.scanner = scanner
        self.table = table
        self.config = config or ScanConfig()
        self._sleep = sleep

    async def scan(
        self,
        transform: Optional[Callable[[Dict[str, Any]], T]] = None,
    ) -> ScanResult:
        """
        Read every page of the table.

        Backend failures never raise: a throttled page that exhausts its
        retries, or any other error, ends the scan in ``FAILED`` and the
        result carries whatever earlier pages produced.

        Args:
            transform: Optional per-item conversion applied as pages arrive
        """
        result: ScanResult = ScanResult()
        cursor: Optional[Dict[str, Any]] = None
        retry = 0
        state = ScanState.SCANNING

        logger.info("Starting table scan", table=self.table, page_size=self.config.page_size)

        while state in (ScanState.SCANNING, ScanState.THROTTLED):
            try:
                page = await self.scanner.scan_page(self.table, cursor, self.config.page_size)
            except CapacityExceededError as e:
                SCAN_THROTTLES.labels(table=self.table).inc()
                if retry >= self.config.max_retries:
                    state = ScanState.FAILED
                    result.error = f"Retries exhausted after {retry} attempts: {e}"
                    break
                retry += 1
                result.retries += 1
                state = ScanState.THROTTLED
                delay = self.config.backoff_seconds(retry)
                logger.warning(
                    "Scan throttled, backing off",
                    table=self.table,
                    retry=retry,
                    max_retries=self.config.max_retries,
                    delay_seconds=delay,
                )
                await self._sleep(delay)
                continue
            except Exception as e:
                state = ScanState.FAILED
                result.error = str(e)
                break

            retry = 0
            state = ScanState.SCANNING
            result.pages += 1
            SCAN_PAGES.labels(table=self.table).inc()

            for item in page.items:
                result.items.append(transform(item) if transform else item)

            logger.debug(
                "Scan page fetched",
                table=self.table,
                page=result.pages,
                page_items=len(page.items),
                total_items=len(result.items),
            )

            cursor = page.next_cursor or None
            if cursor is None:
                state = ScanState.DONE
            elif self.config.inter_page_delay_seconds > 0:
                await self._sleep(self.config.inter_page_delay_seconds)

        result.final_state = state

        if state == ScanState.FAILED:
            logger.error(
                "Table scan failed, returning partial results",
                table=self.table,
                items=len(result.items),
                pages=result.pages,
                error=result.error,
            )
        else:
            logger.info(
                "Table scan complete",
                table=self.table,
                items=len(result.items),
                pages=result.pages,
                retries=result.retries,
            )

        return result


def to_line_item(item: Dict[str, Any]) -> InvoiceLineItem:
    return clean_invoice_line_item(RawRow(item, INVOICE_FIELDS))


@dataclass
class LineItemLoad:
    """Invoice line items from one scan"""
    items: List[InvoiceLineItem]
    complete: bool
    pages: int
    error: Optional[str] = None


class InvoiceLineItemLoader:
    """Scan the invoice line-item table into canonical records"""

    def __init__(self, scan_loader: PaginatedScanLoader):
        self.scan_loader = scan_loader

    async def load(self) -> LineItemLoad:
        """
        Load all line items.

        Raises:
            ScanFailedError: the scan failed without producing any item
        """
        result = await self.scan_loader.scan(transform=to_line_item)

        if not result.complete and not result.items:
            raise ScanFailedError(result.error or "Line item scan failed")

        return LineItemLoad(
            items=dedupe_line_items(result.items),
            complete=result.complete,
            pages=result.pages,
            error=result.error,
        )
