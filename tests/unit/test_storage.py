"""
Unit Tests - boto3 Storage Adapters
"""
import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from retail_analytics.storage.base import (
    CapacityExceededError,
    ObjectNotFoundError,
    StorageError,
    StoredObject,
)
from retail_analytics.storage.dynamodb import DynamoTableScanner
from retail_analytics.storage.s3 import S3ObjectStore


def client_error(code: str, operation: str = "Operation") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestS3ObjectStore:
    """Tests for S3ObjectStore"""

    @pytest.mark.asyncio
    async def test_list_objects_across_pages(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "raw-uploads/a.csv", "ETag": '"e1"'}]},
            {"Contents": [{"Key": "raw-uploads/b.csv", "ETag": '"e2"'}, {"Key": "raw-uploads/c.csv"}]},
            {},
        ]
        store = S3ObjectStore("bucket", client=client)

        objects = await store.list_objects("raw-uploads/")

        assert objects == [
            StoredObject("raw-uploads/a.csv", '"e1"'),
            StoredObject("raw-uploads/b.csv", '"e2"'),
        ]
        client.get_paginator.return_value.paginate.assert_called_once_with(
            Bucket="bucket", Prefix="raw-uploads/"
        )

    @pytest.mark.asyncio
    async def test_get_text(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO("Brand,Net Sales\nÉclair,1\n".encode("utf-8"))}
        store = S3ObjectStore("bucket", client=client)

        assert await store.get_text("k") == "Brand,Net Sales\nÉclair,1\n"

    @pytest.mark.asyncio
    async def test_get_text_drops_byte_order_mark(self):
        client = MagicMock()
        client.get_object.return_value = {"Body": io.BytesIO("\ufeffDate,Net Sales\n".encode("utf-8"))}
        store = S3ObjectStore("bucket", client=client)

        assert await store.get_text("k") == "Date,Net Sales\n"

    @pytest.mark.asyncio
    async def test_missing_key(self):
        client = MagicMock()
        client.get_object.side_effect = client_error("NoSuchKey", "GetObject")
        store = S3ObjectStore("bucket", client=client)

        with pytest.raises(ObjectNotFoundError):
            await store.get_text("missing")

    @pytest.mark.asyncio
    async def test_other_errors_wrapped(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = client_error("AccessDenied", "ListObjectsV2")
        store = S3ObjectStore("bucket", client=client)

        with pytest.raises(StorageError):
            await store.list_objects("raw-uploads/")

    @pytest.mark.asyncio
    async def test_put_text(self):
        client = MagicMock()
        store = S3ObjectStore("bucket", client=client)

        await store.put_text("k.json", "{}", content_type="application/json")

        client.put_object.assert_called_once_with(
            Bucket="bucket", Key="k.json", Body=b"{}", ContentType="application/json"
        )


class TestDynamoTableScanner:
    """Tests for DynamoTableScanner"""

    @pytest.mark.asyncio
    async def test_scan_page_passes_cursor_and_limit(self):
        resource = MagicMock()
        table = resource.Table.return_value
        table.scan.return_value = {"Items": [{"PK": "INV-1"}], "LastEvaluatedKey": {"PK": "INV-1"}}
        scanner = DynamoTableScanner(resource=resource)

        page = await scanner.scan_page("line-items", {"PK": "INV-0"}, 25)

        resource.Table.assert_called_with("line-items")
        table.scan.assert_called_once_with(ExclusiveStartKey={"PK": "INV-0"}, Limit=25)
        assert page.items == [{"PK": "INV-1"}]
        assert page.next_cursor == {"PK": "INV-1"}

    @pytest.mark.asyncio
    async def test_last_page_has_no_cursor(self):
        resource = MagicMock()
        resource.Table.return_value.scan.return_value = {"Items": []}
        scanner = DynamoTableScanner(resource=resource)

        page = await scanner.scan_page("line-items")

        resource.Table.return_value.scan.assert_called_once_with()
        assert page.next_cursor is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", [
        "ProvisionedThroughputExceededException",
        "ThrottlingException",
        "RequestLimitExceeded",
    ])
    async def test_throttling_translated(self, code):
        resource = MagicMock()
        resource.Table.return_value.scan.side_effect = client_error(code, "Scan")
        scanner = DynamoTableScanner(resource=resource)

        with pytest.raises(CapacityExceededError):
            await scanner.scan_page("line-items")

    @pytest.mark.asyncio
    async def test_other_errors_are_storage_errors(self):
        resource = MagicMock()
        resource.Table.return_value.scan.side_effect = client_error("ResourceNotFoundException", "Scan")
        scanner = DynamoTableScanner(resource=resource)

        with pytest.raises(StorageError) as exc_info:
            await scanner.scan_page("line-items")

        assert not isinstance(exc_info.value, CapacityExceededError)
