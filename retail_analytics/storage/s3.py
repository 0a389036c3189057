"""
S3 Object Store

boto3-backed implementation of ObjectStore. boto3 is synchronous, so every
call is pushed to a worker thread to keep the event loop free.
"""

import asyncio
from typing import List, Optional

import boto3
import structlog
from botocore.exceptions import ClientError

from .base import ObjectNotFoundError, ObjectStore, StorageError, StoredObject

logger = structlog.get_logger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "404", "NotFound"}


class S3ObjectStore(ObjectStore):
    """
    Object store over a single S3 bucket.

    Example:
        store = S3ObjectStore("retail-data-bcgr", region="us-west-1")
        files = await store.list_objects("raw-uploads/")
    """

    def __init__(self, bucket: str, region: Optional[str] = None, client=None):
        self.bucket = bucket
        self._client = client or boto3.client("s3", region_name=region)

    def _list_sync(self, prefix: str) -> List[StoredObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        objects = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                key = obj.get("Key")
                etag = obj.get("ETag")
                if key and etag:
                    objects.append(StoredObject(key=key, etag=etag))
        return objects

    def _get_sync(self, key: str) -> str:
        response = self._client.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read().decode("utf-8-sig")

    def _put_sync(self, key: str, body: str, content_type: str) -> None:
        self._client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=body.encode("utf-8"),
            ContentType=content_type,
        )

    async def list_objects(self, prefix: str) -> List[StoredObject]:
        try:
            objects = await asyncio.to_thread(self._list_sync, prefix)
        except ClientError as e:
            raise StorageError(f"Listing s3://{self.bucket}/{prefix} failed: {e}") from e

        logger.debug("Listed objects", bucket=self.bucket, prefix=prefix, count=len(objects))
        return objects

    async def get_text(self, key: str) -> str:
        try:
            return await asyncio.to_thread(self._get_sync, key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(key) from e
            raise StorageError(f"Download of s3://{self.bucket}/{key} failed: {e}") from e

    async def put_text(self, key: str, body: str, content_type: str = "text/csv") -> None:
        try:
            await asyncio.to_thread(self._put_sync, key, body, content_type)
        except ClientError as e:
            raise StorageError(f"Upload to s3://{self.bucket}/{key} failed: {e}") from e

        logger.info("Uploaded object", bucket=self.bucket, key=key, bytes=len(body))
