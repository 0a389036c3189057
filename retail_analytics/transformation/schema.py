"""
Schema Mapping

Upload batches spell the same column several ways ("Net Sales",
"net_sales", "NetSales"). Each record type declares an ordered alias list
per canonical field; the first alias with a non-empty value wins.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple

from .normalizers import normalize_header


class FieldAliases:
    """
    Ordered header aliases for the canonical fields of one record type.

    Example:
        aliases = FieldAliases("sales", {"net_sales": ["net_sales", "Net Sales"]})
        aliases.for_field("net_sales")  # ("net_sales",) after normalization
    """

    def __init__(self, record_type: str, fields: Mapping[str, Sequence[str]]):
        self.record_type = record_type
        self._fields: Dict[str, Tuple[str, ...]] = {}
        for canonical, aliases in fields.items():
            normalized = []
            for alias in aliases:
                key = normalize_header(alias)
                if key not in normalized:
                    normalized.append(key)
            self._fields[canonical] = tuple(normalized)

    def for_field(self, canonical: str) -> Tuple[str, ...]:
        """Lookup order for a canonical field"""
        return self._fields.get(canonical, (normalize_header(canonical),))

    @property
    def fields(self) -> Tuple[str, ...]:
        return tuple(self._fields)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class RawRow:
    """
    A raw source row with alias-aware field access.

    Keys are normalized on construction so lookups are insensitive to the
    casing and punctuation drift between export batches.
    """

    __slots__ = ("_values", "_aliases")

    def __init__(self, values: Mapping[str, Any], aliases: FieldAliases):
        self._values = {normalize_header(str(k)): v for k, v in values.items()}
        self._aliases = aliases

    def get_value(self, canonical: str) -> Any:
        """First non-empty raw value for a field, or None"""
        for key in self._aliases.for_field(canonical):
            value = self._values.get(key)
            if not _is_empty(value):
                return value
        return None

    def get(self, canonical: str) -> Optional[str]:
        """First non-empty value for a field as trimmed text, or None"""
        value = self.get_value(canonical)
        if value is None:
            return None
        return str(value).strip()

    def text(self, canonical: str) -> str:
        """Like get(), with an empty string for missing fields"""
        return self.get(canonical) or ""

    def keys(self) -> Iterable[str]:
        return self._values.keys()

    def __repr__(self) -> str:
        return f"RawRow({self._aliases.record_type}, {self._values!r})"


# =============================================================================
# ALIAS TABLES
# =============================================================================

_STORE = ["store", "Store"]
_NET_SALES = ["net_sales", "Net Sales"]
_MARGIN = ["gross_margin_", "gross_margin", "Gross Margin %"]
_PCT_OF_TOTAL = ["_of_total_net_sales", "of_total_net_sales", "% of Total Net Sales"]
_AVG_COST = ["avg_cost_wo_excise", "Avg Cost (w/o excise)", "avg_cost_w/o_excise"]

SALES_FIELDS = FieldAliases("sales", {
    "date": ["date", "Date"],
    "store": _STORE,
    "week": ["week", "Week"],
    "tickets_count": ["tickets_count", "Tickets Count"],
    "units_sold": ["units_sold", "Units Sold"],
    "customers_count": ["customers_count", "Customers Count"],
    "new_customers": ["new_customers", "New Customers"],
    "gross_sales": ["gross_sales", "Gross Sales"],
    "discounts": ["discounts", "Discounts"],
    "returns": ["returns", "Returns"],
    "net_sales": _NET_SALES,
    "taxes": ["taxes", "Taxes"],
    "gross_receipts": ["gross_receipts", "Gross Receipts"],
    "cogs_with_excise": ["cogs_with_excise", "COGS (with excise)"],
    "gross_income": ["gross_income", "Gross Income"],
    "gross_margin_pct": _MARGIN,
    "discount_pct": ["discount_", "discount", "Discount %"],
    "cost_pct": ["cost_", "cost", "Cost %"],
    "avg_basket_size": ["avg_basket_size", "Avg Basket Size"],
    "avg_order_value": ["avg_order_value", "Avg Order Value"],
    "avg_order_profit": ["avg_order_profit", "Avg Order Profit"],
})

BRAND_FIELDS = FieldAliases("brand", {
    "brand": ["brand", "Brand", "product_brand", "Product Brand"],
    "pct_of_total_net_sales": _PCT_OF_TOTAL,
    "gross_margin_pct": _MARGIN,
    "avg_cost_wo_excise": _AVG_COST,
    "net_sales": _NET_SALES,
    "store": _STORE,
})

PRODUCT_FIELDS = FieldAliases("product", {
    "product_type": ["product_type", "Product Type"],
    "pct_of_total_net_sales": _PCT_OF_TOTAL,
    "gross_margin_pct": _MARGIN,
    "avg_cost_wo_excise": _AVG_COST,
    "net_sales": _NET_SALES,
    "store": _STORE,
})

CUSTOMER_FIELDS = FieldAliases("customers", {
    "store_name": ["store_name", "Store Name"],
    "customer_id": ["customer_id", "Customer ID"],
    "name": ["name", "Name"],
    "date_of_birth": ["date_of_birth", "Date of Birth"],
    "age": ["age", "Age"],
    "lifetime_visits": ["lifetime_visits", "Lifetime In-Store Visits"],
    "lifetime_transactions": ["lifetime_transactions", "Lifetime Transactions"],
    "lifetime_net_sales": ["lifetime_net_sales", "Lifetime Net Sales"],
    "lifetime_aov": ["lifetime_aov", "Lifetime Avg Order Value"],
    "signup_date": ["signup_date", "Sign-Up Date"],
    "last_visit_date": ["last_visit_date", "Last Visit Date"],
})

EMPLOYEE_FIELDS = FieldAliases("employee", {
    "employee_name": ["employee_name", "Employee Name", "employee", "Employee"],
    "store": _STORE,
    "date": ["date", "Date"],
    "tickets_count": ["tickets_count", "Tickets Count", "tickets", "Tickets"],
    "customers_count": ["customers_count", "Customers Count", "customers", "Customers"],
    "net_sales": _NET_SALES,
    "gross_margin_pct": _MARGIN,
    "avg_order_value": ["avg_order_value", "Avg Order Value", "aov", "AOV"],
    "units_sold": ["units_sold", "Units Sold", "units", "Units"],
})

INVOICE_FIELDS = FieldAliases("invoice", {
    "invoice_id": ["invoice_id", "InvoiceId", "PK"],
    "line_item_id": ["line_item_id", "LineItemId", "SK"],
    "product_name": ["product_name", "ProductName", "product"],
    "product_type": ["product_type", "ProductType", "category"],
    "sku_units": ["sku_units", "SkuUnits", "quantity", "units"],
    "unit_cost": ["unit_cost", "UnitCost", "cost"],
    "total_cost": ["total_cost", "TotalCost", "total"],
    "total_with_excise": ["total_with_excise", "TotalWithExcise", "total_excise"],
    "strain": ["strain", "Strain"],
    "unit_size": ["unit_size", "UnitSize"],
    "trace_id": ["trace_id", "TraceId", "metrc_id"],
    "is_promo": ["is_promo", "IsPromo", "promo"],
})
