"""
DynamoDB Table Scanner

boto3-backed TableScanner. Throughput errors are translated into
CapacityExceededError so the scan loader can back off.
"""

import asyncio
from typing import Any, Dict, Optional

import boto3
import structlog
from botocore.exceptions import ClientError

from .base import CapacityExceededError, ScanPage, StorageError, TableScanner

logger = structlog.get_logger(__name__)

THROTTLING_CODES = {
    "ProvisionedThroughputExceededException",
    "ThrottlingException",
    "RequestLimitExceeded",
}


class DynamoTableScanner(TableScanner):
    """Scan DynamoDB tables one page at a time"""

    def __init__(self, region: Optional[str] = None, resource=None):
        self._resource = resource or boto3.resource("dynamodb", region_name=region)

    def _scan_sync(
        self,
        table: str,
        cursor: Optional[Dict[str, Any]],
        page_size: Optional[int],
    ) -> ScanPage:
        kwargs: Dict[str, Any] = {}
        if cursor:
            kwargs["ExclusiveStartKey"] = cursor
        if page_size:
            kwargs["Limit"] = page_size

        response = self._resource.Table(table).scan(**kwargs)
        return ScanPage(
            items=response.get("Items", []),
            next_cursor=response.get("LastEvaluatedKey") or None,
        )

    async def scan_page(
        self,
        table: str,
        cursor: Optional[Dict[str, Any]] = None,
        page_size: Optional[int] = None,
    ) -> ScanPage:
        try:
            return await asyncio.to_thread(self._scan_sync, table, cursor, page_size)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in THROTTLING_CODES:
                raise CapacityExceededError(f"{code} while scanning {table}") from e
            raise StorageError(f"Scan of {table} failed: {e}") from e
