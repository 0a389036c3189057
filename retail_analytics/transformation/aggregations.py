"""
Deduplication and Aggregation

Merges records from overlapping uploads and reduces them into the
dashboard's summary metrics. Grouped reductions run on Polars frames.
"""

from typing import Callable, Dict, Hashable, Iterable, List, Optional, Sequence, TypeVar

import polars as pl
import structlog
from pydantic import BaseModel

from retail_analytics.models.records import (
    BrandMapping,
    BrandRecord,
    CustomerRecord,
    EmployeePerformanceRecord,
    InvoiceLineItem,
    ProductRecord,
    SalesRecord,
)
from .segmentation import SegmentTable

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UNMAPPED_CATEGORY = "Unmapped"


# =============================================================================
# DEDUPLICATION
# =============================================================================

def deduplicate(records: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """
    Last-write-wins merge by natural key.

    Output keeps the position where each key was first seen, holding the
    value from its last occurrence.
    """
    merged: Dict[Hashable, T] = {}
    for record in records:
        merged[key(record)] = record
    return list(merged.values())


def sort_sales_by_date(sales: Iterable[SalesRecord]) -> List[SalesRecord]:
    """Stable sort, so same-day rows keep file order"""
    return sorted(sales, key=lambda r: r.date)


def dedupe_sales(sales: Iterable[SalesRecord]) -> List[SalesRecord]:
    """Date-ordered sales with one record per (store_id, date)"""
    return deduplicate(sort_sales_by_date(sales), key=lambda r: r.dedup_key)


def dedupe_customers(customers: Iterable[CustomerRecord]) -> List[CustomerRecord]:
    return deduplicate(customers, key=lambda r: r.customer_id)


def dedupe_line_items(items: Iterable[InvoiceLineItem]) -> List[InvoiceLineItem]:
    return deduplicate(items, key=lambda r: r.dedup_key)


def sort_by_net_sales(records: Iterable[T]) -> List[T]:
    """Highest net sales first"""
    return sorted(records, key=lambda r: r.net_sales, reverse=True)


def top_n(records: Iterable[T], key: Callable[[T], float], n: int) -> List[T]:
    """The n records with the largest key, ties in input order"""
    return sorted(records, key=key, reverse=True)[:n]


def _to_frame(records: Sequence[BaseModel], schema: Dict[str, pl.DataType]) -> pl.DataFrame:
    if not records:
        return pl.DataFrame(schema=schema)
    return pl.DataFrame([r.model_dump(include=set(schema)) for r in records], schema=schema)


# =============================================================================
# SALES
# =============================================================================

class StoreMetrics(BaseModel):
    """Per-store sales metrics"""
    store_id: str
    revenue: float
    transactions: int
    customers: int
    days: int
    margin: float
    avg_order_value: float


class SalesSummary(BaseModel):
    """Headline sales metrics"""
    total_revenue: float
    total_transactions: int
    total_customers: int
    avg_order_value: float
    avg_margin: float
    by_store: List[StoreMetrics]


_SALES_SCHEMA = {
    "store_id": pl.Utf8,
    "net_sales": pl.Float64,
    "tickets_count": pl.Int64,
    "customers_count": pl.Int64,
    "gross_margin_pct": pl.Float64,
    "avg_order_value": pl.Float64,
}


def calculate_store_metrics(sales: Sequence[SalesRecord]) -> List[StoreMetrics]:
    """Revenue, traffic and mean margin/AOV per store"""
    df = _to_frame(sales, _SALES_SCHEMA)
    if df.is_empty():
        return []

    grouped = (
        df.group_by("store_id")
        .agg([
            pl.col("net_sales").sum().alias("revenue"),
            pl.col("tickets_count").sum().alias("transactions"),
            pl.col("customers_count").sum().alias("customers"),
            pl.len().alias("days"),
            pl.col("gross_margin_pct").mean().alias("margin"),
            pl.col("avg_order_value").mean().alias("avg_order_value"),
        ])
        .sort("store_id")
    )
    return [StoreMetrics(**row) for row in grouped.iter_rows(named=True)]


def calculate_sales_summary(
    sales: Sequence[SalesRecord],
    combined_store_id: str = "combined",
) -> SalesSummary:
    """
    Headline sales metrics.

    Totals are pooled over every record. Average order value and margin are
    the unweighted mean of the per-store means, so a small store counts as
    much as a large one. The combined pseudo-store only participates when no
    individual store has data.
    """
    by_store = calculate_store_metrics(sales)

    stores = [m for m in by_store if m.store_id != combined_store_id] or by_store
    count = len(stores) or 1

    return SalesSummary(
        total_revenue=sum(r.net_sales for r in sales),
        total_transactions=sum(r.tickets_count for r in sales),
        total_customers=sum(r.customers_count for r in sales),
        avg_order_value=sum(m.avg_order_value for m in stores) / count,
        avg_margin=sum(m.margin for m in stores) / count,
        by_store=by_store,
    )


# =============================================================================
# BRANDS & PRODUCTS
# =============================================================================

class CategoryBrands(BaseModel):
    """Brands grouped under one product type"""
    category: str
    net_sales: float
    brands: List[BrandRecord]


class BrandSummary(BaseModel):
    """Brand rankings and margin watch-list"""
    top_brands: List[BrandRecord]
    low_margin_brands: List[BrandRecord]
    by_category: List[CategoryBrands]


def calculate_brand_summary(
    brands: Sequence[BrandRecord],
    mappings: Sequence[BrandMapping] = (),
    top: int = 50,
    low_margin_threshold: float = 40.0,
    min_sales_for_analysis: float = 1000.0,
) -> BrandSummary:
    """Top brands, low-margin sellers and brands grouped by mapped product type"""
    lookup = {m.brand.lower(): m.product_type or UNMAPPED_CATEGORY for m in mappings}

    grouped: Dict[str, List[BrandRecord]] = {}
    for brand in sort_by_net_sales(brands):
        category = lookup.get(brand.brand.lower(), UNMAPPED_CATEGORY)
        grouped.setdefault(category, []).append(brand)

    by_category = sorted(
        (
            CategoryBrands(
                category=category,
                net_sales=sum(b.net_sales for b in members),
                brands=members,
            )
            for category, members in grouped.items()
        ),
        key=lambda c: c.net_sales,
        reverse=True,
    )

    return BrandSummary(
        top_brands=top_n(brands, key=lambda b: b.net_sales, n=top),
        low_margin_brands=[
            b for b in sort_by_net_sales(brands)
            if b.gross_margin_pct < low_margin_threshold and b.net_sales > min_sales_for_analysis
        ],
        by_category=by_category,
    )


class ProductTypeMetrics(BaseModel):
    """Sales for one product type across stores"""
    product_type: str
    net_sales: float
    margin: float
    share_of_total: float
    stores: int


_PRODUCT_SCHEMA = {
    "product_type": pl.Utf8,
    "net_sales": pl.Float64,
    "gross_margin_pct": pl.Float64,
    "store_id": pl.Utf8,
}


def calculate_product_summary(products: Sequence[ProductRecord]) -> List[ProductTypeMetrics]:
    """Product types by revenue, with their share of all product sales"""
    df = _to_frame(products, _PRODUCT_SCHEMA)
    if df.is_empty():
        return []

    total = df["net_sales"].sum()
    grouped = (
        df.group_by("product_type")
        .agg([
            pl.col("net_sales").sum().alias("net_sales"),
            pl.col("gross_margin_pct").mean().alias("margin"),
            pl.col("store_id").n_unique().alias("stores"),
        ])
        .with_columns((pl.col("net_sales") / total * 100).alias("share_of_total"))
        .sort(["net_sales", "product_type"], descending=[True, False])
    )
    return [ProductTypeMetrics(**row) for row in grouped.iter_rows(named=True)]


# =============================================================================
# CUSTOMERS
# =============================================================================

class CustomerSummary(BaseModel):
    """Customer base distribution"""
    total_customers: int
    segment_breakdown: Dict[str, int]
    recency_breakdown: Dict[str, int]
    avg_lifetime_value: float


def calculate_customer_summary(
    customers: Sequence[CustomerRecord],
    value_table: SegmentTable,
    recency_table: SegmentTable,
) -> CustomerSummary:
    """Counts per segment (every label listed, zeros included) and mean LTV"""
    segments = {label: 0 for label in value_table.labels}
    recency = {label: 0 for label in recency_table.labels}

    for customer in customers:
        segments[customer.customer_segment] = segments.get(customer.customer_segment, 0) + 1
        recency[customer.recency_segment] = recency.get(customer.recency_segment, 0) + 1

    total_ltv = sum(c.lifetime_net_sales for c in customers)

    return CustomerSummary(
        total_customers=len(customers),
        segment_breakdown=segments,
        recency_breakdown=recency,
        avg_lifetime_value=total_ltv / len(customers) if customers else 0.0,
    )


# =============================================================================
# EMPLOYEES
# =============================================================================

class EmployeeMetrics(BaseModel):
    """Aggregated performance for one employee at one store"""
    employee_name: str
    store_id: str
    days_worked: int
    net_sales: float
    tickets_count: int
    customers_count: int
    units_sold: int
    avg_margin: float
    avg_order_value: float


_EMPLOYEE_SCHEMA = {
    "employee_name": pl.Utf8,
    "store_id": pl.Utf8,
    "date": pl.Utf8,
    "net_sales": pl.Float64,
    "tickets_count": pl.Int64,
    "customers_count": pl.Int64,
    "units_sold": pl.Int64,
    "gross_margin_pct": pl.Float64,
}


def calculate_employee_performance(
    employees: Sequence[EmployeePerformanceRecord],
    top: Optional[int] = None,
) -> List[EmployeeMetrics]:
    """Per employee+store totals ranked by net sales"""
    df = _to_frame(employees, _EMPLOYEE_SCHEMA)
    if df.is_empty():
        return []

    grouped = (
        df.group_by(["employee_name", "store_id"])
        .agg([
            pl.col("date").n_unique().alias("days_worked"),
            pl.col("net_sales").sum().alias("net_sales"),
            pl.col("tickets_count").sum().alias("tickets_count"),
            pl.col("customers_count").sum().alias("customers_count"),
            pl.col("units_sold").sum().alias("units_sold"),
            pl.col("gross_margin_pct").mean().alias("avg_margin"),
        ])
        .with_columns(
            pl.when(pl.col("tickets_count") > 0)
            .then(pl.col("net_sales") / pl.col("tickets_count"))
            .otherwise(0.0)
            .alias("avg_order_value")
        )
        .sort(["net_sales", "employee_name"], descending=[True, False])
    )

    metrics = [EmployeeMetrics(**row) for row in grouped.iter_rows(named=True)]
    return metrics[:top] if top else metrics
