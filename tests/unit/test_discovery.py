"""
Unit Tests - File Discovery
"""
from datetime import datetime

import pytest

from retail_analytics.ingestion.discovery import (
    FileDiscovery,
    build_upload_key,
    compute_fingerprint,
    extract_date_range_from_key,
    extract_store_from_key,
    matches_record_type,
    metadata_key_for,
)
from retail_analytics.storage.base import StoredObject

from tests.conftest import FakeObjectStore


class TestFingerprint:
    """Tests for listing fingerprints"""

    def test_order_independent(self):
        a = StoredObject("a", "e1")
        b = StoredObject("b", "e2")

        assert compute_fingerprint([a, b]) == compute_fingerprint([b, a])

    def test_changes_with_etag(self):
        before = compute_fingerprint([StoredObject("a", "e1"), StoredObject("b", "e2")])
        after = compute_fingerprint([StoredObject("a", "e1"), StoredObject("b", "e3")])

        assert before != after

    def test_empty_listing(self):
        assert compute_fingerprint([]) == compute_fingerprint([])

    @pytest.mark.asyncio
    async def test_new_object_changes_fingerprint(self):
        store = FakeObjectStore({"raw-uploads/a/sales_x.csv": "x"})
        discovery = FileDiscovery(store, "raw-uploads/")

        before = await discovery.current_fingerprint()
        await store.put_text("raw-uploads/a/sales_y.csv", "y")
        after = await discovery.current_fingerprint()

        assert before != after

    @pytest.mark.asyncio
    async def test_listing_failure_yields_wall_clock_fingerprint(self):
        store = FakeObjectStore()
        store.fail_listing = True
        discovery = FileDiscovery(store, "raw-uploads/")

        fingerprint = await discovery.current_fingerprint()

        assert fingerprint.startswith("time-")


class TestKeyConventions:
    """Tests for object key helpers"""

    def test_matches_record_type(self):
        assert matches_record_type("raw-uploads/gr/sales_2024.csv", "sales")
        assert not matches_record_type("raw-uploads/gr/sales_2024.json", "sales")
        assert not matches_record_type("raw-uploads/gr/brand_2024.csv", "sales")

    def test_extract_store(self):
        assert extract_store_from_key("raw-uploads/grass_roots/sales_x.csv") == "grass_roots"
        assert extract_store_from_key("raw-uploads/sales_x.csv") == "combined"

    def test_extract_compact_date_range(self):
        key = "raw-uploads/gr/brand_20240101-20240131_2024-02-01T09-00-00-000.csv"
        assert extract_date_range_from_key(key) == ("2024-01-01", "2024-01-31")

    def test_extract_iso_date_range(self):
        key = "raw-uploads/gr/brand_2024-01-01_2024-01-31_2024-02-01T09-00-00-000.csv"
        assert extract_date_range_from_key(key) == ("2024-01-01", "2024-01-31")

    def test_no_date_range(self):
        assert extract_date_range_from_key("raw-uploads/gr/brand.csv") is None

    def test_upload_key_round_trips_through_helpers(self):
        key = build_upload_key(
            "raw-uploads",
            "grass_roots",
            "brand",
            "2024-01-01",
            "2024-01-31",
            datetime(2024, 2, 1, 9, 30, 15, 250000),
        )

        assert key == "raw-uploads/grass_roots/brand_2024-01-01_2024-01-31_2024-02-01T09-30-15-250.csv"
        assert matches_record_type(key, "brand")
        assert extract_store_from_key(key) == "grass_roots"
        assert extract_date_range_from_key(key) == ("2024-01-01", "2024-01-31")

    def test_metadata_key(self):
        assert metadata_key_for("raw-uploads/gr/sales_x.csv") == "raw-uploads/gr/sales_x_metadata.json"
