"""S3/MinIO blob store backend."""

import logging
from typing import BinaryIO

from boto3 import client
from botocore.exceptions import ClientError

from deal_attachments.core.config import Settings
from deal_attachments.core.storage_keys import build_storage_key, validate_storage_key
from deal_attachments.services.blob_store import (
    BlobNotFoundError,
    BlobStore,
    BlobStream,
    BlobTooLargeError,
    LimitedReader,
    StoredBlob,
)

logger = logging.getLogger(__name__)

_MISSING_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_missing(error: ClientError) -> bool:
    return str(error.response.get("Error", {}).get("Code")) in _MISSING_CODES


def create_s3_client(settings: Settings):
    """Create a boto3 S3 client from settings."""
    return client(
        "s3",
        endpoint_url=settings.S3_ENDPOINT,
        aws_access_key_id=settings.S3_ACCESS_KEY,
        aws_secret_access_key=settings.S3_SECRET_KEY,
        region_name=settings.S3_REGION,
    )


class S3BlobStore(BlobStore):
    """Blob store backed by an S3 bucket.

    S3 only makes an object visible once the whole upload has completed, so
    a failed or cancelled put never leaves a partial object under the key.
    """

    def __init__(self, s3_client, bucket: str, *, create_bucket: bool = True):
        self.s3_client = s3_client
        self.bucket = bucket
        if create_bucket:
            # create the bucket if it doesn't exist
            existing_buckets = self.s3_client.list_buckets()
            if not any(b["Name"] == bucket for b in existing_buckets.get("Buckets", [])):
                self.s3_client.create_bucket(Bucket=bucket)

    def put(
        self,
        data: BinaryIO,
        suggested_name: str | None,
        *,
        namespace: str,
        content_type: str | None = None,
        max_bytes: int | None = None,
    ) -> StoredBlob:
        storage_key = build_storage_key(namespace, suggested_name)
        if self.exists(storage_key):
            raise FileExistsError(f"Blob already exists: {storage_key}")

        reader = LimitedReader(data, max_bytes)
        extra_args = {"ContentType": content_type} if content_type else None
        try:
            self.s3_client.upload_fileobj(reader, self.bucket, storage_key, ExtraArgs=extra_args)
        except Exception as e:
            # s3transfer may wrap errors raised by the reader
            if reader.exceeded:
                raise BlobTooLargeError(reader.max_bytes) from e
            logger.exception(f"Error uploading object to S3: {storage_key}")
            raise

        logger.info(f"Uploaded object: {storage_key} ({reader.bytes_read} bytes)")
        return StoredBlob(storage_key=storage_key, size_bytes=reader.bytes_read)

    def get(self, storage_key: str) -> BlobStream:
        validate_storage_key(storage_key)
        try:
            response = self.s3_client.get_object(Bucket=self.bucket, Key=storage_key)
        except ClientError as e:
            if _is_missing(e):
                raise BlobNotFoundError(storage_key) from e
            logger.exception(f"Error downloading object from S3: {storage_key}")
            raise
        return BlobStream(response["Body"])

    def exists(self, storage_key: str) -> bool:
        validate_storage_key(storage_key)
        try:
            self.s3_client.head_object(Bucket=self.bucket, Key=storage_key)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise
        return True

    def delete(self, storage_key: str) -> None:
        validate_storage_key(storage_key)
        # S3 delete_object succeeds for keys that do not exist
        try:
            self.s3_client.delete_object(Bucket=self.bucket, Key=storage_key)
        except ClientError:
            logger.exception(f"Error deleting object from S3: {storage_key}")
            raise
        logger.info(f"Deleted object: {storage_key}")
