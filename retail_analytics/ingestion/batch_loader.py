"""
Batch Data Loader

Object-store batch ingestion for the retail CSV exports.
Supports:
- Per record type file selection by naming convention
- Bounded parallel downloads with in-order processing
- Per-file error isolation (a bad file never aborts the pass)
- Brand mapping documents in several JSON shapes
- Audit logging and load metrics
"""

import asyncio
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import structlog
from prometheus_client import Counter

from retail_analytics.config.settings import Settings
from retail_analytics.models.records import (
    BrandMapping,
    CleaningStats,
    DataSnapshot,
    EmployeePerformanceRecord,
    FileLoadResult,
    LoadStatus,
    RecordType,
)
from retail_analytics.storage.base import ObjectNotFoundError, ObjectStore, StoredObject
from retail_analytics.transformation.aggregations import (
    dedupe_customers,
    dedupe_sales,
    sort_by_net_sales,
)
from retail_analytics.transformation.cleaners import (
    CleaningContext,
    Cleaner,
    build_context,
    clean_brand_record,
    clean_customer_record,
    clean_employee_record,
    clean_product_record,
    clean_rows,
    clean_sales_record,
)
from retail_analytics.transformation.normalizers import parse_csv
from retail_analytics.transformation.schema import (
    BRAND_FIELDS,
    CUSTOMER_FIELDS,
    EMPLOYEE_FIELDS,
    PRODUCT_FIELDS,
    SALES_FIELDS,
    FieldAliases,
)
from .discovery import (
    compute_fingerprint,
    extract_date_range_from_key,
    extract_store_from_key,
    matches_record_type,
)
from .exceptions import DiscoveryError

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

FILES_PROCESSED = Counter(
    "retail_files_processed_total",
    "Export files processed",
    ["record_type", "status"],
)

ROWS_PROCESSED = Counter(
    "retail_rows_processed_total",
    "Export rows processed",
    ["record_type", "status"],
)


@dataclass(frozen=True)
class RecordPipeline:
    """How one record type is selected, mapped and cleaned"""
    record_type: RecordType
    aliases: FieldAliases
    cleaner: Cleaner
    uses_key_dates: bool = False


PIPELINES: Tuple[RecordPipeline, ...] = (
    RecordPipeline(RecordType.SALES, SALES_FIELDS, clean_sales_record),
    RecordPipeline(RecordType.BRAND, BRAND_FIELDS, clean_brand_record, uses_key_dates=True),
    RecordPipeline(RecordType.PRODUCT, PRODUCT_FIELDS, clean_product_record),
    RecordPipeline(RecordType.CUSTOMERS, CUSTOMER_FIELDS, clean_customer_record),
)


def parse_brand_mappings(document: Any) -> List[BrandMapping]:
    """
    Read a brand mapping document.

    Accepted shapes:
        [{"brand": ..., "product_type": ...}, ...]
        {"mappings": [...]}
        {"<brand>": "<product_type>", ...}
        {"<brand>": {"product_type": ..., "category": ..., "vendor": ...}, ...}
    """
    if isinstance(document, dict) and isinstance(document.get("mappings"), list):
        document = document["mappings"]

    if isinstance(document, list):
        return [
            BrandMapping(**entry)
            for entry in document
            if isinstance(entry, dict) and entry.get("brand")
        ]

    if isinstance(document, dict):
        mappings = []
        for brand, value in document.items():
            if isinstance(value, str):
                mappings.append(BrandMapping(brand=brand, product_type=value))
            elif isinstance(value, dict):
                mappings.append(BrandMapping(
                    brand=brand,
                    product_type=value.get("product_type") or "",
                    category=value.get("category"),
                    vendor=value.get("vendor"),
                ))
        return mappings

    raise ValueError(f"Unsupported brand mapping document: {type(document).__name__}")


class BatchLoader:
    """
    Loads every uploaded export into one immutable snapshot.

    Example:
        loader = BatchLoader(S3ObjectStore("retail-data-bcgr"), get_settings())
        snapshot = await loader.load_all()
    """

    def __init__(
        self,
        store: ObjectStore,
        settings: Settings,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.store = store
        self.settings = settings
        self._clock = clock

    def _context(self, store_id: str, date_range: Optional[Tuple[str, str]] = None) -> CleaningContext:
        ingestion = self.settings.ingestion
        return build_context(
            store_id=store_id,
            store_aliases=ingestion.store_aliases,
            date_range=date_range,
            segment_profile=ingestion.segment_profile,
            as_of=self._clock().date(),
        )

    async def _download_all(self, files: Sequence[StoredObject]) -> List[Any]:
        """Fetch bodies concurrently; results (or exceptions) in input order"""
        semaphore = asyncio.Semaphore(max(self.settings.ingestion.max_concurrent_downloads, 1))

        async def fetch(obj: StoredObject) -> str:
            async with semaphore:
                return await self.store.get_text(obj.key)

        return await asyncio.gather(*(fetch(f) for f in files), return_exceptions=True)

    async def _load_record_type(
        self,
        pipeline: RecordPipeline,
        files: Sequence[StoredObject],
    ) -> Tuple[List[Any], CleaningStats, List[FileLoadResult]]:
        record_type = pipeline.record_type.value
        selected = [f for f in files if matches_record_type(f.key, record_type)]

        records: List[Any] = []
        stats = CleaningStats(record_type=record_type)
        results: List[FileLoadResult] = []

        if not selected:
            return records, stats, results

        bodies = await self._download_all(selected)

        for obj, body in zip(selected, bodies):
            try:
                if isinstance(body, BaseException):
                    raise body

                date_range = extract_date_range_from_key(obj.key) if pipeline.uses_key_dates else None
                store_id = extract_store_from_key(obj.key, self.settings.ingestion.combined_store_id)
                file_records, file_stats = clean_rows(
                    parse_csv(body),
                    pipeline.aliases,
                    pipeline.cleaner,
                    self._context(store_id, date_range),
                )
            except Exception as e:
                logger.error(
                    "Failed to load file",
                    key=obj.key,
                    record_type=record_type,
                    error=str(e),
                )
                FILES_PROCESSED.labels(record_type=record_type, status=LoadStatus.FAILED.value).inc()
                results.append(FileLoadResult(
                    key=obj.key,
                    record_type=record_type,
                    status=LoadStatus.FAILED,
                    error_message=str(e),
                ))
                continue

            records.extend(file_records)
            stats = stats.merge(file_stats)
            FILES_PROCESSED.labels(record_type=record_type, status=LoadStatus.COMPLETED.value).inc()
            ROWS_PROCESSED.labels(record_type=record_type, status="accepted").inc(file_stats.accepted_rows)
            ROWS_PROCESSED.labels(record_type=record_type, status="rejected").inc(file_stats.rejected_rows)
            results.append(FileLoadResult(
                key=obj.key,
                record_type=record_type,
                status=LoadStatus.COMPLETED,
                rows_loaded=file_stats.accepted_rows,
                rows_rejected=file_stats.rejected_rows,
            ))

        logger.info(
            "Record type loaded",
            record_type=record_type,
            files=len(selected),
            accepted=stats.accepted_rows,
            rejected=stats.rejected_rows,
        )
        return records, stats, results

    async def load_employees(self) -> Tuple[List[EmployeePerformanceRecord], Optional[FileLoadResult]]:
        """Employee performance from its single configured export"""
        key = self.settings.storage.employee_key
        try:
            body = await self.store.get_text(key)
            records, stats = clean_rows(
                parse_csv(body),
                EMPLOYEE_FIELDS,
                clean_employee_record,
                self._context(self.settings.ingestion.default_store_id),
            )
        except ObjectNotFoundError:
            logger.info("No employee performance export", key=key)
            return [], None
        except Exception as e:
            logger.error("Failed to load employee performance", key=key, error=str(e))
            return [], FileLoadResult(
                key=key,
                record_type=EMPLOYEE_FIELDS.record_type,
                status=LoadStatus.FAILED,
                error_message=str(e),
            )

        ROWS_PROCESSED.labels(record_type="employee", status="accepted").inc(stats.accepted_rows)
        ROWS_PROCESSED.labels(record_type="employee", status="rejected").inc(stats.rejected_rows)
        return records, FileLoadResult(
            key=key,
            record_type=EMPLOYEE_FIELDS.record_type,
            status=LoadStatus.COMPLETED,
            rows_loaded=stats.accepted_rows,
            rows_rejected=stats.rejected_rows,
        )

    async def load_mappings(self) -> List[BrandMapping]:
        """Brand mappings; an unreadable document yields no mappings"""
        key = self.settings.storage.mapping_key
        try:
            body = await self.store.get_text(key)
            mappings = parse_brand_mappings(json.loads(body))
        except Exception as e:
            logger.warning("Brand mappings unavailable", key=key, error=str(e))
            return []

        logger.info("Brand mappings loaded", key=key, count=len(mappings))
        return mappings

    async def load_all(self) -> DataSnapshot:
        """
        Run one full ingestion pass.

        Returns:
            DataSnapshot: cleaned, deduplicated records plus the listing fingerprint

        Raises:
            DiscoveryError: the export listing failed
        """
        started_at = self._clock()
        prefix = self.settings.storage.raw_listing_prefix

        logger.info("Starting batch load", prefix=prefix)

        try:
            files = sorted(await self.store.list_objects(prefix), key=lambda f: f.key)
        except Exception as e:
            logger.error("Export listing failed", prefix=prefix, error=str(e))
            raise DiscoveryError(f"Could not list {prefix}: {e}") from e

        loaded: Dict[RecordType, List[Any]] = {}
        stats: List[CleaningStats] = []
        file_results: List[FileLoadResult] = []

        for pipeline in PIPELINES:
            records, type_stats, results = await self._load_record_type(pipeline, files)
            loaded[pipeline.record_type] = records
            stats.append(type_stats)
            file_results.extend(results)

        employees, employee_result = await self.load_employees()
        if employee_result is not None:
            file_results.append(employee_result)

        mappings = await self.load_mappings()

        failed = sum(1 for r in file_results if r.status == LoadStatus.FAILED)
        status = LoadStatus.PARTIAL if failed else LoadStatus.COMPLETED

        snapshot = DataSnapshot(
            sales=dedupe_sales(loaded[RecordType.SALES]),
            brands=sort_by_net_sales(loaded[RecordType.BRAND]),
            products=sort_by_net_sales(loaded[RecordType.PRODUCT]),
            customers=dedupe_customers(loaded[RecordType.CUSTOMERS]),
            employees=sort_by_net_sales(employees),
            mappings=mappings,
            fingerprint=compute_fingerprint(files),
            loaded_at=self._clock(),
            status=status,
            files=file_results,
            stats=stats,
        )

        logger.info(
            "Batch load completed",
            status=status.value,
            files=len(file_results),
            failed_files=failed,
            sales=len(snapshot.sales),
            brands=len(snapshot.brands),
            products=len(snapshot.products),
            customers=len(snapshot.customers),
            employees=len(snapshot.employees),
            duration_seconds=(snapshot.loaded_at - started_at).total_seconds(),
        )

        return snapshot
