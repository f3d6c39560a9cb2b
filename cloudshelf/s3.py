# s3.py
import io
import logging
from typing import Callable, List, Optional
from urllib.parse import quote

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from .exceptions import ConfigurationError, StoreIOError
from .storage.base import ObjectStoreClient
from .storage.dto import KeyFailure, ListPage, StoreEntry

STORE_ERRORS = (ClientError, BotoCoreError, S3UploadFailedError)


class S3StoreClient(ObjectStoreClient):
    """
    Client for an S3 (or S3-compatible) bucket, implementing the ObjectStoreClient interface.
    """

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        chunk_size: int = 8 * 1024 * 1024,
        page_size: int = 1000,
    ):
        if not bucket_name:
            raise ConfigurationError("S3 bucket name is not set")

        self.bucket_name = bucket_name
        self.region_name = region_name
        self.endpoint_url = endpoint_url
        self.page_size = page_size
        self.transfer_config = TransferConfig(
            multipart_threshold=chunk_size, multipart_chunksize=chunk_size
        )
        try:
            # With no explicit keys boto3 uses its default credential chain
            self.s3 = boto3.client(
                "s3",
                region_name=region_name,
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
            )
            logging.info(f"S3 client initialized for bucket '{bucket_name}'.")
        except BotoCoreError as e:
            logging.error(f"Failed to initialize S3 client. Check your configuration. Error: {e}")
            raise ConfigurationError(f"Could not create S3 client: {e}") from e

    @classmethod
    def from_settings(cls, settings) -> "S3StoreClient":
        return cls(
            bucket_name=settings.S3_BUCKET_NAME,
            region_name=settings.AWS_REGION,
            access_key_id=settings.AWS_ACCESS_KEY_ID,
            secret_access_key=settings.AWS_SECRET_ACCESS_KEY,
            endpoint_url=settings.S3_ENDPOINT_URL,
            chunk_size=settings.UPLOAD_CHUNK_SIZE,
            page_size=settings.LIST_PAGE_SIZE,
        )

    def list_page(
        self,
        prefix: str,
        delimiter: Optional[str] = None,
        continuation_token: Optional[str] = None,
    ) -> ListPage:
        """Returns one page of the listing for a prefix."""
        params = {"Bucket": self.bucket_name, "Prefix": prefix, "MaxKeys": self.page_size}
        if delimiter:
            params["Delimiter"] = delimiter
        if continuation_token:
            params["ContinuationToken"] = continuation_token

        try:
            logging.debug(f"Listing S3 prefix '{prefix}' (token: {continuation_token})")
            response = self.s3.list_objects_v2(**params)
        except STORE_ERRORS as e:
            logging.error(f"Failed to list S3 prefix '{prefix}': {e}")
            raise StoreIOError(
                f"Failed to list prefix '{prefix}': {e}", operation="list", key=prefix, cause=e
            ) from e

        # Convert the S3 response to our standardized DTO
        return ListPage(
            entries=[
                StoreEntry(
                    key=item["Key"],
                    size=item.get("Size", 0),
                    last_modified=item.get("LastModified"),
                )
                for item in response.get("Contents", [])
            ],
            common_prefixes=[
                item["Prefix"] for item in response.get("CommonPrefixes", [])
            ],
            next_continuation_token=response.get("NextContinuationToken"),
            is_truncated=response.get("IsTruncated", False),
        )

    def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        progress_callback: Optional[Callable[[int], None]] = None,
    ) -> str:
        """Uploads bytes, switching to multipart above the configured chunk size."""
        try:
            logging.info(f"Uploading {len(data)} bytes to s3://{self.bucket_name}/{key}...")
            self.s3.upload_fileobj(
                io.BytesIO(data),
                self.bucket_name,
                key,
                ExtraArgs={"ContentType": content_type},
                Callback=progress_callback,
                Config=self.transfer_config,
            )
        except STORE_ERRORS as e:
            logging.error(f"Failed to upload '{key}': {e}")
            raise StoreIOError(
                f"Failed to upload '{key}': {e}", operation="put", key=key, cause=e
            ) from e
        return self.object_location(key)

    def copy(self, source_key: str, dest_key: str):
        """Copies an object server-side."""
        try:
            logging.info(f"Copying {source_key} to {dest_key}...")
            self.s3.copy_object(
                Bucket=self.bucket_name,
                CopySource={"Bucket": self.bucket_name, "Key": source_key},
                Key=dest_key,
            )
        except STORE_ERRORS as e:
            logging.error(f"Failed to copy '{source_key}' to '{dest_key}': {e}")
            raise StoreIOError(
                f"Failed to copy '{source_key}' to '{dest_key}': {e}",
                operation="copy",
                key=source_key,
                cause=e,
            ) from e

    def delete(self, key: str):
        """Deletes a single object. S3 acknowledges deletes of missing keys."""
        try:
            logging.info(f"Deleting {key}...")
            self.s3.delete_object(Bucket=self.bucket_name, Key=key)
        except STORE_ERRORS as e:
            logging.error(f"Failed to delete '{key}': {e}")
            raise StoreIOError(
                f"Failed to delete '{key}': {e}", operation="delete", key=key, cause=e
            ) from e

    def bulk_delete(self, keys: List[str]) -> List[KeyFailure]:
        """Deletes up to 1000 keys in a single request and returns the per-key errors."""
        if not keys:
            return []
        try:
            logging.info(f"Deleting {len(keys)} objects in bulk...")
            response = self.s3.delete_objects(
                Bucket=self.bucket_name,
                Delete={"Objects": [{"Key": key} for key in keys], "Quiet": True},
            )
        except STORE_ERRORS as e:
            logging.error(f"Bulk delete of {len(keys)} objects failed: {e}")
            raise StoreIOError(
                f"Bulk delete failed: {e}", operation="bulk_delete", cause=e
            ) from e

        failures = [
            KeyFailure(key=err["Key"], error=f"{err.get('Code')}: {err.get('Message')}")
            for err in response.get("Errors", [])
        ]
        for failure in failures:
            logging.error(f"S3 refused to delete '{failure.key}': {failure.error}")
        return failures

    def signed_url(self, key: str, ttl_seconds: int) -> str:
        try:
            return self.s3.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=ttl_seconds,
            )
        except STORE_ERRORS as e:
            logging.error(f"Failed to sign URL for '{key}': {e}")
            raise StoreIOError(
                f"Failed to sign URL for '{key}': {e}", operation="sign", key=key, cause=e
            ) from e

    def object_location(self, key: str) -> str:
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quote(key)}"
        return f"https://{self.bucket_name}.s3.{self.region_name}.amazonaws.com/{quote(key)}"

    def verify_bucket(self):
        """
        Verifies the bucket exists and the credentials can reach it.
        Raises ConfigurationError otherwise.
        """
        try:
            self.s3.head_bucket(Bucket=self.bucket_name)
            logging.info(f"S3 bucket '{self.bucket_name}' is accessible.")
        except NoCredentialsError as e:
            logging.critical("No AWS credentials found.")
            raise ConfigurationError("No AWS credentials found") from e
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("404", "NoSuchBucket", "403", "AccessDenied"):
                logging.critical(f"Configured S3 bucket '{self.bucket_name}' does not exist or is inaccessible.")
                raise ConfigurationError(
                    f"Bucket '{self.bucket_name}' does not exist or is inaccessible ({code})"
                ) from e
            logging.error(f"Error accessing S3 bucket '{self.bucket_name}': {e}")
            raise StoreIOError(
                f"Error accessing bucket '{self.bucket_name}': {e}", operation="head_bucket", cause=e
            ) from e
        except BotoCoreError as e:
            logging.error(f"Error accessing S3 bucket '{self.bucket_name}': {e}")
            raise StoreIOError(
                f"Error accessing bucket '{self.bucket_name}': {e}", operation="head_bucket", cause=e
            ) from e
