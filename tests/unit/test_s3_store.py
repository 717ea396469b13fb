"""
Unit tests for the S3 object store adapter.
"""

import io
import typing
from datetime import datetime, timezone

import boto3
import pytest
from botocore.exceptions import ClientError
from botocore.response import StreamingBody
from botocore.stub import ANY, Stubber

from blobfs.errors import NotFoundError
from blobfs.storage.s3 import S3ObjectStore

BUCKET = "test-bucket"


@pytest.fixture
def s3_client():
    return boto3.client(
        "s3",
        region_name="eu-west-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(s3_client):
    with Stubber(s3_client) as stub:
        yield stub
        stub.assert_no_pending_responses()


@pytest.fixture
def store(s3_client) -> S3ObjectStore:
    return S3ObjectStore(s3_client, BUCKET)


class TestS3ObjectStore:
    """Tests for S3ObjectStore."""

    def test_listing_helper_hints_resolve_to_builtin_list(self):
        """Test hints defined after the list() method still mean the builtin list."""
        hints = typing.get_type_hints(S3ObjectStore._list_sync)

        assert hints["return"] == list[str]

    async def test_list_follows_pagination(self, store: S3ObjectStore, stubber: Stubber):
        """Test listing collects keys across every page."""
        stubber.add_response(
            "list_objects_v2",
            {
                "Contents": [{"Key": "a/1"}, {"Key": "a/2"}],
                "IsTruncated": True,
                "NextContinuationToken": "page-2",
            },
            {"Bucket": BUCKET, "Prefix": "a"},
        )
        stubber.add_response(
            "list_objects_v2",
            {"Contents": [{"Key": "a/3"}], "IsTruncated": False},
            {"Bucket": BUCKET, "Prefix": "a", "ContinuationToken": "page-2"},
        )

        assert await store.list("a") == ["a/1", "a/2", "a/3"]

    async def test_list_empty_prefix(self, store: S3ObjectStore, stubber: Stubber):
        """Test a listing without Contents returns no keys."""
        stubber.add_response(
            "list_objects_v2",
            {"IsTruncated": False, "KeyCount": 0},
            {"Bucket": BUCKET, "Prefix": "none"},
        )

        assert await store.list("none") == []

    async def test_get_returns_body(self, store: S3ObjectStore, stubber: Stubber):
        """Test get reads the streamed body."""
        data = b"hello"
        stubber.add_response(
            "get_object",
            {"Body": StreamingBody(io.BytesIO(data), len(data))},
            {"Bucket": BUCKET, "Key": "greeting"},
        )

        assert await store.get("greeting") == data

    async def test_get_missing_raises_not_found(self, store: S3ObjectStore, stubber: Stubber):
        """Test NoSuchKey is translated to NotFoundError."""
        stubber.add_client_error(
            "get_object",
            service_error_code="NoSuchKey",
            http_status_code=404,
        )

        with pytest.raises(NotFoundError):
            await store.get("missing")

    async def test_get_other_errors_propagate(self, store: S3ObjectStore, stubber: Stubber):
        """Test errors other than not-found are raised unchanged."""
        stubber.add_client_error(
            "get_object",
            service_error_code="AccessDenied",
            http_status_code=403,
        )

        with pytest.raises(ClientError):
            await store.get("secret")

    async def test_put(self, store: S3ObjectStore, stubber: Stubber):
        """Test put sends the body to the configured bucket."""
        stubber.add_response(
            "put_object",
            {},
            {"Bucket": BUCKET, "Key": "k", "Body": b"v"},
        )

        await store.put("k", b"v")

    async def test_copy(self, store: S3ObjectStore, stubber: Stubber):
        """Test copy targets the new key in the same bucket."""
        stubber.add_response(
            "copy_object",
            {},
            {"Bucket": BUCKET, "CopySource": ANY, "Key": "new"},
        )

        await store.copy("old", "new")

    async def test_delete(self, store: S3ObjectStore, stubber: Stubber):
        stubber.add_response("delete_object", {}, {"Bucket": BUCKET, "Key": "k"})

        await store.delete("k")

    async def test_head(self, store: S3ObjectStore, stubber: Stubber):
        """Test head maps response metadata to ObjectInfo."""
        modified = datetime(2024, 1, 1, tzinfo=timezone.utc)
        stubber.add_response(
            "head_object",
            {"ContentLength": 12, "LastModified": modified, "ETag": '"abc"'},
            {"Bucket": BUCKET, "Key": "k"},
        )

        info = await store.head("k")

        assert info.key == "k"
        assert info.size == 12
        assert info.last_modified == modified
        assert info.etag == '"abc"'

    async def test_head_exists_false_on_404(self, store: S3ObjectStore, stubber: Stubber):
        """Test a 404 head probe means the object does not exist."""
        stubber.add_client_error("head_object", service_error_code="404", http_status_code=404)

        assert await store.head_exists("missing") is False

    async def test_head_exists_propagates_other_errors(
        self,
        store: S3ObjectStore,
        stubber: Stubber,
    ):
        """Test only not-found is swallowed by the existence probe."""
        stubber.add_client_error("head_object", service_error_code="403", http_status_code=403)

        with pytest.raises(ClientError):
            await store.head_exists("forbidden")
