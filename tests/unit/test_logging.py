"""
Unit Tests - Logging Configuration
"""
from retail_analytics.config.logging import add_service_context


class TestServiceContext:
    """Tests for the service context processor"""

    def test_stamps_service_identity(self, test_settings):
        processor = add_service_context(test_settings)

        event = processor(None, "info", {"event": "Export uploaded"})

        assert event == {
            "event": "Export uploaded",
            "service": "retail-analytics",
            "environment": "testing",
            "bucket": "test-bucket",
        }

    def test_explicit_values_kept(self, test_settings):
        processor = add_service_context(test_settings)

        event = processor(None, "info", {"event": "Listed objects", "bucket": "other-bucket"})

        assert event["bucket"] == "other-bucket"
