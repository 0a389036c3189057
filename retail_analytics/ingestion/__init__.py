"""
Data Ingestion Module
"""
from .batch_loader import BatchLoader, parse_brand_mappings
from .discovery import FileDiscovery, compute_fingerprint
from .exceptions import DiscoveryError, IngestionError, ScanFailedError, UploadRejectedError
from .scan_loader import (
    InvoiceLineItemLoader,
    PaginatedScanLoader,
    ScanConfig,
    ScanResult,
    ScanState,
)
from .uploads import UploadResult, UploadService

__all__ = [
    "BatchLoader",
    "parse_brand_mappings",
    "FileDiscovery",
    "compute_fingerprint",
    "DiscoveryError",
    "IngestionError",
    "ScanFailedError",
    "UploadRejectedError",
    "InvoiceLineItemLoader",
    "PaginatedScanLoader",
    "ScanConfig",
    "ScanResult",
    "ScanState",
    "UploadResult",
    "UploadService",
]
