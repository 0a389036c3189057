"""
Record Cleaning Module

One cleaner per record type. Each cleaner is a pure function
``(RawRow, CleaningContext) -> record | None``:
- Resolves fields through the schema aliases
- Coerces numbers, dates and percentages
- Applies the record type's validation rules
- Derives computed fields (customer segments)

A ``None`` result is an expected row rejection, not an error.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar

import structlog

from retail_analytics.models.records import (
    BrandRecord,
    CleaningStats,
    CustomerRecord,
    EmployeePerformanceRecord,
    InvoiceLineItem,
    ProductRecord,
    SalesRecord,
)
from .normalizers import (
    format_date,
    parse_bool,
    parse_date,
    parse_int,
    parse_number,
    to_percentage,
)
from .schema import FieldAliases, RawRow
from .segmentation import SegmentTable, get_segment_tables, segment

logger = structlog.get_logger(__name__)

T = TypeVar("T")

SAMPLE_MARKERS = ("[DS]", "[SS]")
MIN_CUSTOMERS_PER_DAY = 5
UNKNOWN_VISIT_DAYS = 365

_default_value_table, _default_recency_table = get_segment_tables("default")


@dataclass(frozen=True)
class CleaningContext:
    """Parameters a row can't carry itself"""
    store_id: str
    date_range: Optional[Tuple[str, str]] = None
    as_of: date = field(default_factory=date.today)
    store_aliases: Mapping[str, str] = field(default_factory=dict)
    customer_segments: SegmentTable = _default_value_table
    recency_segments: SegmentTable = _default_recency_table

    def resolve_store(self, store_name: str) -> str:
        """Map a display name to a store id, falling back to the context store"""
        return self.store_aliases.get(store_name) or self.store_id


def clean_sales_record(row: RawRow, context: CleaningContext) -> Optional[SalesRecord]:
    """Clean a daily sales row; drops low-traffic and zero-revenue days"""
    record_date = format_date(row.get("date"))
    net_sales = parse_number(row.get_value("net_sales"))
    customers = parse_number(row.get_value("customers_count"))

    if not record_date or net_sales <= 0 or customers < MIN_CUSTOMERS_PER_DAY:
        return None

    store_name = row.text("store")

    return SalesRecord(
        date=record_date,
        store=store_name,
        store_id=context.resolve_store(store_name),
        week=row.text("week"),
        tickets_count=parse_int(row.get_value("tickets_count")),
        units_sold=parse_int(row.get_value("units_sold")),
        customers_count=int(customers),
        new_customers=parse_int(row.get_value("new_customers")),
        gross_sales=parse_number(row.get_value("gross_sales")),
        discounts=parse_number(row.get_value("discounts")),
        returns=parse_number(row.get_value("returns")),
        net_sales=net_sales,
        taxes=parse_number(row.get_value("taxes")),
        gross_receipts=parse_number(row.get_value("gross_receipts")),
        cogs_with_excise=parse_number(row.get_value("cogs_with_excise")),
        gross_income=parse_number(row.get_value("gross_income")),
        gross_margin_pct=to_percentage(parse_number(row.get_value("gross_margin_pct"))),
        discount_pct=parse_number(row.get_value("discount_pct")),
        cost_pct=parse_number(row.get_value("cost_pct")),
        avg_basket_size=parse_number(row.get_value("avg_basket_size")),
        avg_order_value=parse_number(row.get_value("avg_order_value")),
        avg_order_profit=parse_number(row.get_value("avg_order_profit")),
    )


def is_sample_brand(brand: str) -> bool:
    """Sample/display product lines are tagged in the brand name"""
    return any(marker in brand for marker in SAMPLE_MARKERS)


def clean_brand_record(row: RawRow, context: CleaningContext) -> Optional[BrandRecord]:
    """Clean a brand share row; drops samples and non-selling brands"""
    brand = row.text("brand")
    net_sales = parse_number(row.get_value("net_sales"))

    if not brand or is_sample_brand(brand) or net_sales <= 0:
        return None

    start, end = context.date_range or (None, None)

    return BrandRecord(
        brand=brand,
        pct_of_total_net_sales=parse_number(row.get_value("pct_of_total_net_sales")),
        gross_margin_pct=to_percentage(parse_number(row.get_value("gross_margin_pct"))),
        avg_cost_wo_excise=parse_number(row.get_value("avg_cost_wo_excise")),
        net_sales=net_sales,
        store=row.text("store"),
        store_id=context.store_id,
        upload_start_date=start,
        upload_end_date=end,
    )


def clean_product_record(row: RawRow, context: CleaningContext) -> Optional[ProductRecord]:
    """Clean a product category row"""
    net_sales = parse_number(row.get_value("net_sales"))
    if net_sales <= 0:
        return None

    return ProductRecord(
        product_type=row.text("product_type"),
        pct_of_total_net_sales=parse_number(row.get_value("pct_of_total_net_sales")),
        gross_margin_pct=to_percentage(parse_number(row.get_value("gross_margin_pct"))),
        avg_cost_wo_excise=parse_number(row.get_value("avg_cost_wo_excise")),
        net_sales=net_sales,
        store=row.text("store"),
        store_id=context.store_id,
    )


def days_since(visit: Optional[str], as_of: date) -> int:
    """Whole days between a visit date and as_of; unknown visits count as a year"""
    visited = parse_date(visit)
    if visited is None:
        return UNKNOWN_VISIT_DAYS
    return max((as_of - visited).days, 0)


def clean_customer_record(row: RawRow, context: CleaningContext) -> Optional[CustomerRecord]:
    """Clean a customer profile and derive its value/recency segments"""
    customer_id = row.text("customer_id")
    if not customer_id:
        return None

    lifetime_net_sales = parse_number(row.get_value("lifetime_net_sales"))
    last_visit = row.text("last_visit_date")
    age = row.get("age")

    return CustomerRecord(
        store_name=row.text("store_name"),
        customer_id=customer_id,
        name=row.text("name"),
        date_of_birth=row.get("date_of_birth"),
        age=parse_int(age) if age else None,
        lifetime_visits=parse_int(row.get_value("lifetime_visits")),
        lifetime_transactions=parse_int(row.get_value("lifetime_transactions")),
        lifetime_net_sales=lifetime_net_sales,
        lifetime_aov=parse_number(row.get_value("lifetime_aov")),
        signup_date=row.text("signup_date"),
        last_visit_date=last_visit,
        customer_segment=segment(lifetime_net_sales, context.customer_segments),
        recency_segment=segment(days_since(last_visit, context.as_of), context.recency_segments),
    )


def clean_employee_record(
    row: RawRow,
    context: CleaningContext,
) -> Optional[EmployeePerformanceRecord]:
    """Clean one employee's daily performance row"""
    employee_name = row.text("employee_name")
    if not employee_name:
        return None

    store_name = row.text("store")

    return EmployeePerformanceRecord(
        store=store_name,
        store_id=context.resolve_store(store_name),
        employee_name=employee_name,
        date=format_date(row.get("date")),
        tickets_count=parse_int(row.get_value("tickets_count")),
        customers_count=parse_int(row.get_value("customers_count")),
        net_sales=parse_number(row.get_value("net_sales")),
        gross_margin_pct=to_percentage(parse_number(row.get_value("gross_margin_pct"))),
        avg_order_value=parse_number(row.get_value("avg_order_value")),
        units_sold=parse_int(row.get_value("units_sold")),
    )


def clean_invoice_line_item(row: RawRow, context: Optional[CleaningContext] = None) -> InvoiceLineItem:
    """Coerce a line-item table item; never rejects"""
    return InvoiceLineItem(
        invoice_id=row.text("invoice_id"),
        line_item_id=row.text("line_item_id"),
        product_name=row.text("product_name"),
        product_type=row.text("product_type"),
        sku_units=parse_number(row.get_value("sku_units")),
        unit_cost=parse_number(row.get_value("unit_cost")),
        total_cost=parse_number(row.get_value("total_cost")),
        total_with_excise=parse_number(row.get_value("total_with_excise")),
        strain=row.get("strain"),
        unit_size=row.get("unit_size"),
        trace_id=row.get("trace_id"),
        is_promo=parse_bool(row.get_value("is_promo")),
    )


Cleaner = Callable[[RawRow, CleaningContext], Optional[T]]


def clean_rows(
    rows: Iterable[Mapping[str, str]],
    aliases: FieldAliases,
    cleaner: Cleaner,
    context: CleaningContext,
) -> Tuple[List[T], CleaningStats]:
    """
    Run a cleaner over raw rows.

    Returns:
        Accepted records in input order and accept/reject counts
    """
    records = []
    total = 0

    for values in rows:
        total += 1
        record = cleaner(RawRow(values, aliases), context)
        if record is not None:
            records.append(record)

    stats = CleaningStats(
        record_type=aliases.record_type,
        total_rows=total,
        accepted_rows=len(records),
        rejected_rows=total - len(records),
    )

    if stats.rejected_rows:
        logger.debug(
            "Rows rejected during cleaning",
            record_type=aliases.record_type,
            rejected=stats.rejected_rows,
            total=total,
        )

    return records, stats


def build_context(
    store_id: str,
    store_aliases: Optional[Dict[str, str]] = None,
    date_range: Optional[Tuple[str, str]] = None,
    segment_profile: str = "default",
    as_of: Optional[date] = None,
) -> CleaningContext:
    """Convenience constructor resolving the segment profile by name"""
    value_table, recency_table = get_segment_tables(segment_profile)
    return CleaningContext(
        store_id=store_id,
        date_range=date_range,
        as_of=as_of or date.today(),
        store_aliases=store_aliases or {},
        customer_segments=value_table,
        recency_segments=recency_table,
    )
