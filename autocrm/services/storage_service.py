"""Object storage for attachment files.

Paths are bucket-relative keys such as ``<uploader_id>/<epoch_ms>-<random>.<ext>``.
Backends are synchronous; async callers offload them to a worker thread.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod

import boto3
from botocore.config import Config
from botocore.exceptions import ClientError

from autocrm.core.config import settings


class StorageError(Exception):
    """Storage backend failure."""


class ObjectStorage(ABC):
    bucket: str

    @abstractmethod
    def put(self, path: str, data: bytes, content_type: str) -> None:
        """Store an object. Fails if the path already exists."""

    @abstractmethod
    def get(self, path: str) -> bytes:
        """Read an object. Raises FileNotFoundError when missing."""

    @abstractmethod
    def remove(self, paths: list[str]) -> None:
        """Remove objects; missing paths are ignored."""

    @abstractmethod
    def signed_url(self, path: str, expires_in: int) -> str | None:
        """Time-limited direct URL, or None when objects are served by the API."""


# =============================================================================
# Local filesystem (dev and tests)
# =============================================================================

class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: str, bucket: str = "attachments"):
        self.root = root
        self.bucket = bucket

    def _full_path(self, path: str) -> str:
        base = os.path.realpath(os.path.join(self.root, self.bucket))
        full = os.path.realpath(os.path.join(base, path))
        if not full.startswith(base + os.sep):
            raise StorageError(f"Invalid storage path: {path}")
        return full

    def put(self, path: str, data: bytes, content_type: str) -> None:
        full = self._full_path(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        try:
            with open(full, "xb") as f:
                f.write(data)
        except FileExistsError as exc:
            raise StorageError(f"Object already exists: {path}") from exc

    def get(self, path: str) -> bytes:
        with open(self._full_path(path), "rb") as f:
            return f.read()

    def remove(self, paths: list[str]) -> None:
        for path in paths:
            full = self._full_path(path)
            if os.path.exists(full):
                os.remove(full)

    def signed_url(self, path: str, expires_in: int) -> str | None:
        return None


# =============================================================================
# S3 / S3-compatible
# =============================================================================

GCS_HOST = "storage.googleapis.com"


def build_s3_client():
    """boto3 client for AWS or an S3-compatible endpoint (MinIO, GCS interop)."""
    endpoint = settings.S3_ENDPOINT_URL.rstrip("/") or None
    region = settings.S3_REGION or None
    if endpoint and GCS_HOST in endpoint and region in (None, "us-east-1"):
        # GCS signs SigV4 requests against region "auto"
        region = "auto"

    style = settings.S3_URL_STYLE.strip().lower()
    return boto3.client(
        "s3",
        region_name=region,
        endpoint_url=endpoint,
        aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
        aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
        config=Config(s3={"addressing_style": style}) if style in ("path", "virtual") else None,
    )


class S3ObjectStorage(ObjectStorage):
    def __init__(self, bucket: str, client=None):
        self.bucket = bucket
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = build_s3_client()
        return self._client

    def put(self, path: str, data: bytes, content_type: str) -> None:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as exc:
            raise StorageError(f"Upload failed for {path}: {exc}") from exc

    def get(self, path: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=path)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in {"NoSuchKey", "404"}:
                raise FileNotFoundError(path) from exc
            raise StorageError(f"Download failed for {path}: {exc}") from exc
        return response["Body"].read()

    def remove(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self.client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": path} for path in paths], "Quiet": True},
            )
        except ClientError as exc:
            raise StorageError(f"Delete failed: {exc}") from exc

    def signed_url(self, path: str, expires_in: int) -> str:
        try:
            return self.client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=expires_in,
            )
        except ClientError as exc:
            raise StorageError(f"Could not sign URL for {path}: {exc}") from exc


def build_storage() -> ObjectStorage:
    """Storage backend selected by STORAGE_BACKEND."""
    if settings.STORAGE_BACKEND == "s3":
        return S3ObjectStorage(settings.ATTACHMENTS_BUCKET)
    return LocalObjectStorage(settings.LOCAL_STORAGE_PATH, settings.ATTACHMENTS_BUCKET)
