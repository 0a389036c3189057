"""
Canonical Records

Immutable value objects emitted by the record cleaners. Every ingestion
pass builds them from scratch; nothing mutates them afterwards.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecordType(str, Enum):
    """Upload record types, named after their file prefix"""
    SALES = "sales"
    BRAND = "brand"
    PRODUCT = "product"
    CUSTOMERS = "customers"


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class SalesRecord(_Record):
    """Daily store-level sales figures"""
    date: str
    store: str = ""
    store_id: str
    week: str = ""
    tickets_count: int = 0
    units_sold: int = 0
    customers_count: int = 0
    new_customers: int = 0
    gross_sales: float = 0.0
    discounts: float = 0.0
    returns: float = 0.0
    net_sales: float
    taxes: float = 0.0
    gross_receipts: float = 0.0
    cogs_with_excise: float = 0.0
    gross_income: float = 0.0
    gross_margin_pct: float = 0.0
    discount_pct: float = 0.0
    cost_pct: float = 0.0
    avg_basket_size: float = 0.0
    avg_order_value: float = 0.0
    avg_order_profit: float = 0.0

    @property
    def dedup_key(self) -> str:
        return f"{self.store_id}|{self.date}"


class BrandRecord(_Record):
    """Brand sales share for one store and upload window"""
    brand: str
    pct_of_total_net_sales: float = 0.0
    gross_margin_pct: float = 0.0
    avg_cost_wo_excise: float = 0.0
    net_sales: float
    store: str = ""
    store_id: str
    upload_start_date: Optional[str] = None
    upload_end_date: Optional[str] = None


class ProductRecord(_Record):
    """Product category sales for one store"""
    product_type: str
    pct_of_total_net_sales: float = 0.0
    gross_margin_pct: float = 0.0
    avg_cost_wo_excise: float = 0.0
    net_sales: float
    store: str = ""
    store_id: str


class CustomerRecord(_Record):
    """Customer lifetime profile with derived segments"""
    store_name: str = ""
    customer_id: str
    name: str = ""
    date_of_birth: Optional[str] = None
    age: Optional[int] = None
    lifetime_visits: int = 0
    lifetime_transactions: int = 0
    lifetime_net_sales: float = 0.0
    lifetime_aov: float = 0.0
    signup_date: str = ""
    last_visit_date: str = ""
    customer_segment: str
    recency_segment: str


class EmployeePerformanceRecord(_Record):
    """One employee's sales for a day"""
    store: str = ""
    store_id: str
    employee_name: str
    date: str = ""
    tickets_count: int = 0
    customers_count: int = 0
    net_sales: float = 0.0
    gross_margin_pct: float = 0.0
    avg_order_value: float = 0.0
    units_sold: int = 0


class InvoiceLineItem(_Record):
    """Vendor invoice line item from the line-item table"""
    invoice_id: str = ""
    line_item_id: str = ""
    product_name: str = ""
    product_type: str = ""
    sku_units: float = 0.0
    unit_cost: float = 0.0
    total_cost: float = 0.0
    total_with_excise: float = 0.0
    strain: Optional[str] = None
    unit_size: Optional[str] = None
    trace_id: Optional[str] = None
    is_promo: bool = False

    @property
    def dedup_key(self) -> str:
        return f"{self.invoice_id}|{self.line_item_id}"


class BrandMapping(_Record):
    """Brand to product type lookup"""
    brand: str
    product_type: str = ""
    category: Optional[str] = None
    vendor: Optional[str] = None


class LoadStatus(str, Enum):
    """Load status for a file or a whole pass"""
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL = "partial"


class CleaningStats(BaseModel):
    """Accepted/rejected row counts for one record type"""
    record_type: str
    total_rows: int = 0
    accepted_rows: int = 0
    rejected_rows: int = 0

    def merge(self, other: "CleaningStats") -> "CleaningStats":
        return CleaningStats(
            record_type=self.record_type,
            total_rows=self.total_rows + other.total_rows,
            accepted_rows=self.accepted_rows + other.accepted_rows,
            rejected_rows=self.rejected_rows + other.rejected_rows,
        )


class FileLoadResult(BaseModel):
    """Outcome of loading one object"""
    key: str
    record_type: str
    status: LoadStatus
    rows_loaded: int = 0
    rows_rejected: int = 0
    error_message: Optional[str] = None


class DataSnapshot(BaseModel):
    """Everything one batch load pass produced"""
    sales: List[SalesRecord] = Field(default_factory=list)
    brands: List[BrandRecord] = Field(default_factory=list)
    products: List[ProductRecord] = Field(default_factory=list)
    customers: List[CustomerRecord] = Field(default_factory=list)
    employees: List[EmployeePerformanceRecord] = Field(default_factory=list)
    mappings: List[BrandMapping] = Field(default_factory=list)
    fingerprint: str
    loaded_at: datetime
    status: LoadStatus = LoadStatus.COMPLETED
    files: List[FileLoadResult] = Field(default_factory=list)
    stats: List[CleaningStats] = Field(default_factory=list)


class UploadMetadata(BaseModel):
    """Sidecar metadata written next to every upload"""
    store: str
    data_type: RecordType
    start_date: str
    end_date: str
    uploaded_at: datetime
    filename: str
