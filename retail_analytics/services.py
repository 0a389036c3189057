"""
Service Wiring

Builds the object graph the API serves from: storage adapters, loaders,
the upload service and the two caches. Built once per application.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from retail_analytics.config.settings import Settings
from retail_analytics.ingestion.batch_loader import BatchLoader
from retail_analytics.ingestion.discovery import FileDiscovery
from retail_analytics.ingestion.scan_loader import (
    InvoiceLineItemLoader,
    LineItemLoad,
    PaginatedScanLoader,
    ScanConfig,
)
from retail_analytics.ingestion.uploads import UploadService
from retail_analytics.models.records import DataSnapshot
from retail_analytics.serving.cache import DataCache
from retail_analytics.storage.base import ObjectStore, TableScanner

logger = structlog.get_logger(__name__)


@dataclass
class ServiceContainer:
    """Everything a request handler needs"""
    settings: Settings
    discovery: FileDiscovery
    batch_loader: BatchLoader
    invoice_loader: InvoiceLineItemLoader
    uploads: UploadService
    data_cache: DataCache[DataSnapshot]
    invoice_cache: DataCache[LineItemLoad]


def build_services(
    settings: Settings,
    store: Optional[ObjectStore] = None,
    scanner: Optional[TableScanner] = None,
) -> ServiceContainer:
    """
    Wire the services.

    Args:
        settings: Application settings
        store: Object store override (defaults to S3)
        scanner: Table scanner override (defaults to DynamoDB)
    """
    if store is None:
        from retail_analytics.storage.s3 import S3ObjectStore
        store = S3ObjectStore(settings.storage.bucket, region=settings.storage.region)

    if scanner is None:
        from retail_analytics.storage.dynamodb import DynamoTableScanner
        scanner = DynamoTableScanner(region=settings.dynamodb.region or settings.storage.region)

    discovery = FileDiscovery(store, settings.storage.raw_listing_prefix)
    batch_loader = BatchLoader(store, settings)
    invoice_loader = InvoiceLineItemLoader(
        PaginatedScanLoader(
            scanner,
            settings.dynamodb.line_items_table,
            ScanConfig.from_settings(settings.scan),
        )
    )

    logger.info(
        "Services built",
        bucket=settings.storage.bucket,
        line_items_table=settings.dynamodb.line_items_table,
    )

    return ServiceContainer(
        settings=settings,
        discovery=discovery,
        batch_loader=batch_loader,
        invoice_loader=invoice_loader,
        uploads=UploadService(store, settings),
        data_cache=DataCache(
            "data",
            batch_loader.load_all,
            ttl_seconds=settings.cache.data_ttl_seconds,
            fingerprint=discovery.current_fingerprint,
        ),
        invoice_cache=DataCache(
            "invoices",
            invoice_loader.load,
            ttl_seconds=settings.cache.invoice_ttl_seconds,
        ),
    )
