"""
Object storage for submission photos: S3 and an in-memory test double.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from livewall.errors import StorageError

logger = logging.getLogger(__name__)

KEY_PREFIX = "uploads"

_REGION_IN_ENDPOINT = re.compile(r"s3[.-]([^.]+)\.amazonaws\.com")


def build_object_key(filename: Optional[str]) -> str:
    """Random object key under ``uploads/`` keeping the original extension."""
    extension = os.path.splitext(filename or "")[1].lower()
    return f"{KEY_PREFIX}/{uuid.uuid4()}{extension}"


class StorageClient(Protocol):
    """Defines the operations the services need from object storage."""

    def upload(self, data: bytes, filename: Optional[str], content_type: str) -> str:
        """Store ``data`` and return its public URL."""
        ...

    def delete(self, url: str) -> None:
        """Delete the object behind ``url``. Raises StorageError on failure."""
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"
    stored_objects: Dict[str, bytes] = field(default_factory=dict)
    content_types: Dict[str, str] = field(default_factory=dict)

    def upload(self, data: bytes, filename: Optional[str], content_type: str) -> str:
        key = build_object_key(filename)
        self.stored_objects[key] = bytes(data)
        self.content_types[key] = content_type
        return f"{self.base_url}/{key}"

    def delete(self, url: str) -> None:
        prefix = f"{self.base_url}/"
        if not url.startswith(prefix):
            return
        key = url[len(prefix) :]
        self.stored_objects.pop(key, None)
        self.content_types.pop(key, None)

    def get_bytes(self, url: str) -> bytes:
        key = url[len(self.base_url) + 1 :]
        stored = self.stored_objects.get(key)
        if stored is None:
            raise FileNotFoundError(url)
        return stored


@dataclass
class S3StorageClient:
    """
    S3 storage client. Objects are written under ``uploads/`` and served from
    the bucket's public URL, so the bucket policy must allow public reads.
    """

    bucket: str
    region: str
    access_key_id: str
    secret_access_key: str
    endpoint: Optional[str] = None
    public_base_url: Optional[str] = None

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def public_url(self, key: str) -> str:
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.region == "us-east-1":
            return f"https://{self.bucket}.s3.amazonaws.com/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def key_from_url(self, url: str) -> Optional[str]:
        """Return the object key for a URL we issued, or None for foreign URLs."""
        # Only URLs pointing into this bucket; keys from other buckets must
        # never be deleted here.
        for prefix in (self.public_url(""), f"s3://{self.bucket}/"):
            if url.startswith(prefix):
                return url[len(prefix) :] or None
        return None

    def upload(self, data: bytes, filename: Optional[str], content_type: str) -> str:
        key = build_object_key(filename)
        try:
            # No ACL: buckets with ACLs disabled reject it. Public reads come
            # from the bucket policy.
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as exc:
            raise StorageError(self._describe_upload_error(exc)) from exc
        except BotoCoreError as exc:
            raise StorageError(f"S3 upload failed: {exc}") from exc
        return self.public_url(key)

    def delete(self, url: str) -> None:
        key = self.key_from_url(url)
        if key is None:
            # Not one of ours (e.g. a legacy local path).
            return
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise StorageError(f"S3 delete failed for {key}: {exc}") from exc

    def _describe_upload_error(self, exc: ClientError) -> str:
        error = exc.response.get("Error", {})
        code = error.get("Code", "")
        if code == "PermanentRedirect":
            suggested = self._suggest_region(exc)
            return (
                f"S3 bucket region mismatch. The bucket '{self.bucket}' appears "
                f"to be in region '{suggested}', but AWS_REGION is set to "
                f"'{self.region}'. Please update AWS_REGION={suggested}."
            )
        if code == "NoSuchBucket":
            return (
                f"S3 bucket '{self.bucket}' does not exist. "
                "Please check AWS_S3_BUCKET_NAME."
            )
        if code in ("InvalidAccessKeyId", "SignatureDoesNotMatch"):
            return (
                "Invalid AWS credentials. Please check AWS_ACCESS_KEY_ID "
                "and AWS_SECRET_ACCESS_KEY."
            )
        if code == "AccessDenied":
            return (
                "Access denied. Please check that your AWS credentials have "
                "permission to upload to the S3 bucket."
            )
        return f"S3 upload failed: {error.get('Message') or code or exc}"

    def _suggest_region(self, exc: ClientError) -> str:
        headers = exc.response.get("ResponseMetadata", {}).get("HTTPHeaders", {})
        if headers.get("x-amz-bucket-region"):
            return headers["x-amz-bucket-region"]
        endpoint = exc.response.get("Error", {}).get("Endpoint", "")
        match = _REGION_IN_ENDPOINT.search(endpoint)
        if match:
            return match.group(1)
        return self.region
