"""
Unit Tests - Deduplication and Aggregation
"""
import pytest

from retail_analytics.models.records import (
    BrandMapping,
    BrandRecord,
    CustomerRecord,
    EmployeePerformanceRecord,
    ProductRecord,
    SalesRecord,
)
from retail_analytics.transformation.aggregations import (
    calculate_brand_summary,
    calculate_customer_summary,
    calculate_employee_performance,
    calculate_product_summary,
    calculate_sales_summary,
    dedupe_customers,
    dedupe_sales,
    deduplicate,
    top_n,
)
from retail_analytics.transformation.segmentation import get_segment_tables


def sale(store_id, day, net_sales, margin=50.0, aov=50.0, tickets=10, customers=10):
    return SalesRecord(
        date=day,
        store_id=store_id,
        net_sales=net_sales,
        gross_margin_pct=margin,
        avg_order_value=aov,
        tickets_count=tickets,
        customers_count=customers,
    )


def brand(name, net_sales, margin=50.0):
    return BrandRecord(brand=name, net_sales=net_sales, gross_margin_pct=margin, store_id="grass_roots")


class TestDeduplication:
    """Tests for last-write-wins merging"""

    def test_keeps_first_position_last_value(self):
        records = [("a", 1), ("b", 2), ("a", 3)]

        result = deduplicate(records, key=lambda r: r[0])

        assert result == [("a", 3), ("b", 2)]

    def test_sales_sorted_then_merged(self):
        sales = [
            sale("gr", "2024-01-16", 100),
            sale("gr", "2024-01-15", 200),
            sale("gr", "2024-01-16", 300),
            sale("bc", "2024-01-16", 400),
        ]

        result = dedupe_sales(sales)

        assert [(s.store_id, s.date, s.net_sales) for s in result] == [
            ("gr", "2024-01-15", 200),
            ("gr", "2024-01-16", 300),
            ("bc", "2024-01-16", 400),
        ]

    def test_customers_by_id(self):
        customers = [
            CustomerRecord(customer_id="C1", lifetime_net_sales=10, customer_segment="New/Low", recency_segment="Lost"),
            CustomerRecord(customer_id="C1", lifetime_net_sales=20, customer_segment="New/Low", recency_segment="Lost"),
        ]

        result = dedupe_customers(customers)

        assert len(result) == 1
        assert result[0].lifetime_net_sales == 20

    def test_top_n(self):
        assert top_n([3, 1, 2], key=lambda v: v, n=2) == [3, 2]


class TestSalesSummary:
    """Tests for calculate_sales_summary"""

    def test_average_of_store_averages(self):
        sales = [
            sale("gr", "2024-01-15", 1000, margin=60, aov=100),
            sale("gr", "2024-01-16", 1000, margin=40, aov=80),
            sale("bc", "2024-01-15", 500, margin=30, aov=40),
        ]

        summary = calculate_sales_summary(sales)

        assert summary.total_revenue == 2500
        assert summary.total_transactions == 30
        # gr averages 50/90, bc 30/40
        assert summary.avg_margin == pytest.approx(40.0)
        assert summary.avg_order_value == pytest.approx(65.0)
        assert [m.store_id for m in summary.by_store] == ["bc", "gr"]
        assert summary.by_store[1].days == 2

    def test_combined_excluded_when_stores_exist(self):
        sales = [
            sale("gr", "2024-01-15", 1000, margin=60),
            sale("combined", "2024-01-15", 3000, margin=10),
        ]

        summary = calculate_sales_summary(sales)

        assert summary.avg_margin == pytest.approx(60.0)
        assert summary.total_revenue == 4000

    def test_combined_only(self):
        summary = calculate_sales_summary([sale("combined", "2024-01-15", 3000, margin=10)])
        assert summary.avg_margin == pytest.approx(10.0)

    def test_empty(self):
        summary = calculate_sales_summary([])

        assert summary.total_revenue == 0
        assert summary.avg_order_value == 0
        assert summary.by_store == []


class TestBrandSummary:
    """Tests for calculate_brand_summary"""

    def test_top_low_margin_and_categories(self):
        brands = [
            brand("Stiiizy", 5000, margin=45),
            brand("Raw Garden", 2500, margin=35),
            brand("Tiny", 500, margin=20),
        ]
        mappings = [BrandMapping(brand="stiiizy", product_type="Vape")]

        summary = calculate_brand_summary(brands, mappings, top=2)

        assert [b.brand for b in summary.top_brands] == ["Stiiizy", "Raw Garden"]
        assert [b.brand for b in summary.low_margin_brands] == ["Raw Garden"]
        assert [c.category for c in summary.by_category] == ["Vape", "Unmapped"]
        assert summary.by_category[1].net_sales == 3000


class TestProductSummary:
    """Tests for calculate_product_summary"""

    def test_share_of_total(self):
        products = [
            ProductRecord(product_type="Flower", net_sales=600, gross_margin_pct=50, store_id="gr"),
            ProductRecord(product_type="Flower", net_sales=200, gross_margin_pct=40, store_id="bc"),
            ProductRecord(product_type="Vape", net_sales=200, gross_margin_pct=30, store_id="gr"),
        ]

        result = calculate_product_summary(products)

        assert [p.product_type for p in result] == ["Flower", "Vape"]
        assert result[0].share_of_total == pytest.approx(80.0)
        assert result[0].margin == pytest.approx(45.0)
        assert result[0].stores == 2

    def test_empty(self):
        assert calculate_product_summary([]) == []


class TestCustomerSummary:
    """Tests for calculate_customer_summary"""

    def test_every_label_present(self):
        value_table, recency_table = get_segment_tables("default")
        customers = [
            CustomerRecord(customer_id="C1", lifetime_net_sales=6000, customer_segment="Whale", recency_segment="Active"),
            CustomerRecord(customer_id="C2", lifetime_net_sales=200, customer_segment="Regular", recency_segment="Active"),
        ]

        summary = calculate_customer_summary(customers, value_table, recency_table)

        assert summary.total_customers == 2
        assert summary.segment_breakdown == {"New/Low": 0, "Regular": 1, "Good": 0, "VIP": 0, "Whale": 1}
        assert summary.recency_breakdown["Active"] == 2
        assert summary.recency_breakdown["Lost"] == 0
        assert summary.avg_lifetime_value == pytest.approx(3100.0)

    def test_empty(self):
        value_table, recency_table = get_segment_tables("default")
        assert calculate_customer_summary([], value_table, recency_table).avg_lifetime_value == 0.0


class TestEmployeePerformance:
    """Tests for calculate_employee_performance"""

    def test_grouped_and_ranked(self):
        employees = [
            EmployeePerformanceRecord(employee_name="Dana", store_id="gr", date="2024-01-15", net_sales=900, tickets_count=20, gross_margin_pct=55),
            EmployeePerformanceRecord(employee_name="Eli", store_id="bc", date="2024-01-15", net_sales=500, tickets_count=10, gross_margin_pct=50),
            EmployeePerformanceRecord(employee_name="Dana", store_id="gr", date="2024-01-16", net_sales=300, tickets_count=10, gross_margin_pct=45),
        ]

        result = calculate_employee_performance(employees)

        assert [e.employee_name for e in result] == ["Dana", "Eli"]
        assert result[0].net_sales == 1200
        assert result[0].days_worked == 2
        assert result[0].avg_margin == pytest.approx(50.0)
        assert result[0].avg_order_value == pytest.approx(40.0)

    def test_top(self):
        employees = [
            EmployeePerformanceRecord(employee_name=name, store_id="gr", net_sales=sales)
            for name, sales in [("A", 1), ("B", 3), ("C", 2)]
        ]

        result = calculate_employee_performance(employees, top=2)

        assert [e.employee_name for e in result] == ["B", "C"]

    def test_zero_tickets(self):
        result = calculate_employee_performance([
            EmployeePerformanceRecord(employee_name="A", store_id="gr", net_sales=100),
        ])
        assert result[0].avg_order_value == 0.0
