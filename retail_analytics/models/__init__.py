"""
Record Models Module
"""
from .records import (
    BrandMapping,
    BrandRecord,
    CleaningStats,
    CustomerRecord,
    DataSnapshot,
    EmployeePerformanceRecord,
    FileLoadResult,
    InvoiceLineItem,
    LoadStatus,
    ProductRecord,
    RecordType,
    SalesRecord,
    UploadMetadata,
)

__all__ = [
    "BrandMapping",
    "BrandRecord",
    "CleaningStats",
    "CustomerRecord",
    "DataSnapshot",
    "EmployeePerformanceRecord",
    "FileLoadResult",
    "InvoiceLineItem",
    "LoadStatus",
    "ProductRecord",
    "RecordType",
    "SalesRecord",
    "UploadMetadata",
]
