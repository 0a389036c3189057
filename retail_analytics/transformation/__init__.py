"""
Data Transformation Module
"""
from .aggregations import (
    calculate_brand_summary,
    calculate_customer_summary,
    calculate_employee_performance,
    calculate_product_summary,
    calculate_sales_summary,
    deduplicate,
)
from .cleaners import CleaningContext, build_context, clean_rows
from .normalizers import parse_csv, parse_number
from .schema import FieldAliases, RawRow
from .segmentation import SegmentTable, get_segment_tables, segment

__all__ = [
    "calculate_brand_summary",
    "calculate_customer_summary",
    "calculate_employee_performance",
    "calculate_product_summary",
    "calculate_sales_summary",
    "deduplicate",
    "CleaningContext",
    "build_context",
    "clean_rows",
    "parse_csv",
    "parse_number",
    "FieldAliases",
    "RawRow",
    "SegmentTable",
    "get_segment_tables",
    "segment",
]
