"""
S3 object store adapter.

boto3 clients are blocking, so every call is pushed to a worker thread with
asyncio.to_thread.
"""

import asyncio
import logging
from typing import Any

from botocore.exceptions import ClientError

from blobfs.constants import S3_NOT_FOUND_CODES
from blobfs.errors import NotFoundError
from blobfs.storage.base import ObjectStore
from blobfs.types.fs import ObjectInfo

logger = logging.getLogger(__name__)


def _is_not_found(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") in S3_NOT_FOUND_CODES


class S3ObjectStore(ObjectStore):
    """ObjectStore over a single S3 bucket."""

    def __init__(self, client: Any, bucket: str):
        """
        Args:
            client: A boto3 S3 client.
            bucket: Bucket holding every key of this store.
        """
        self._client = client
        self.bucket = bucket

    async def list(self, prefix: str) -> list[str]:
        return await asyncio.to_thread(self._list_sync, prefix)

    # Quoted: the class body binds "list" to the method above
    def _list_sync(self, prefix: str) -> "list[str]":
        paginator = self._client.get_paginator("list_objects_v2")
        keys: list[str] = []
        for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
            keys.extend(obj["Key"] for obj in page.get("Contents", []))
        return keys

    async def get(self, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(
                self._client.get_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(key) from e
            logger.error("S3 get error", extra={"key": key, "error": str(e)})
            raise
        return await asyncio.to_thread(response["Body"].read)

    async def put(self, key: str, data: bytes) -> None:
        try:
            await asyncio.to_thread(
                self._client.put_object, Bucket=self.bucket, Key=key, Body=data
            )
        except ClientError as e:
            logger.error("S3 put error", extra={"key": key, "error": str(e)})
            raise

    async def copy(self, src_key: str, dst_key: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.copy_object,
                Bucket=self.bucket,
                CopySource={"Bucket": self.bucket, "Key": src_key},
                Key=dst_key,
            )
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(src_key) from e
            logger.error(
                "S3 copy error",
                extra={"src_key": src_key, "dst_key": dst_key, "error": str(e)},
            )
            raise

    async def delete(self, key: str) -> None:
        try:
            await asyncio.to_thread(
                self._client.delete_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            logger.error("S3 delete error", extra={"key": key, "error": str(e)})
            raise

    async def head(self, key: str) -> ObjectInfo:
        try:
            response = await asyncio.to_thread(
                self._client.head_object, Bucket=self.bucket, Key=key
            )
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(key) from e
            logger.error("S3 head error", extra={"key": key, "error": str(e)})
            raise
        return ObjectInfo(
            key=key,
            size=response.get("ContentLength", 0),
            last_modified=response.get("LastModified"),
            etag=response.get("ETag"),
        )
