"""
Storage abstraction for S3-compatible object storage and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError


class StorageError(Exception):
    """Raised when the object store rejects an upload."""


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> None:
        ...

    def public_url(self, bucket: str, path: str) -> str:
        ...


@dataclass
class StoredObject:
    data: bytes
    content_type: str | None


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage/v1/object/public"
    stored_objects: dict = field(default_factory=dict)

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> None:
        key = (bucket, path)
        if key in self.stored_objects and not upsert:
            raise StorageError("The resource already exists")
        self.stored_objects[key] = StoredObject(data=bytes(data), content_type=content_type)

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/{bucket}/{path}"

    def get_bytes(self, bucket: str, path: str) -> bytes:
        stored = self.stored_objects.get((bucket, path))
        if stored is None:
            raise FileNotFoundError(f"{bucket}/{path}")
        return stored.data


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for the hosted object store.
    """

    endpoint: str
    region: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str

    def __post_init__(self):
        # Hosted S3 gateways expect path-style addressing.
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload_bytes(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str | None = None,
        upsert: bool = False,
    ) -> None:
        params = {
            "Bucket": bucket,
            "Key": path,
            "Body": data,
            "ContentType": content_type or "application/octet-stream",
        }
        if not upsert:
            params["IfNoneMatch"] = "*"
        try:
            self._client.put_object(**params)
        except (BotoCoreError, ClientError) as exc:
            raise StorageError(str(exc)) from exc

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/{bucket}/{path}"
