"""S3 (and S3-compatible) object storage provider."""

from __future__ import annotations

import logging
from typing import Any, Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from .base import StorageError, StorageObject, StorageProvider

logger = logging.getLogger(__name__)

_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


class S3StorageProvider(StorageProvider):
    def __init__(
        self,
        bucket: str,
        *,
        region: str = "us-east-1",
        endpoint: Optional[str] = None,
        prefix: str = "",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        custom_domain: Optional[str] = None,
        client: Any = None,
    ) -> None:
        self.bucket = bucket
        self.region = region
        self.endpoint = endpoint.rstrip("/") if endpoint else None
        self.prefix = prefix.strip("/") + "/" if prefix.strip("/") else ""
        self.custom_domain = custom_domain.rstrip("/") if custom_domain else None
        if client is None:
            session_kwargs: dict[str, Any] = {"region_name": region}
            if access_key_id and secret_access_key:
                session_kwargs["aws_access_key_id"] = access_key_id
                session_kwargs["aws_secret_access_key"] = secret_access_key
            client = boto3.Session(**session_kwargs).client(
                "s3",
                endpoint_url=self.endpoint,
                config=BotoConfig(retries={"max_attempts": 5, "mode": "standard"}),
            )
        self._client = client

    def _full_key(self, key: str) -> str:
        return f"{self.prefix}{key.lstrip('/')}"

    def _relative_key(self, full_key: str) -> str:
        if self.prefix and full_key.startswith(self.prefix):
            return full_key[len(self.prefix):]
        return full_key

    def read(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=self._full_key(key))
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                raise FileNotFoundError(key) from exc
            raise StorageError(f"S3 read failed for {key}: {exc}") from exc
        body = response["Body"]
        try:
            return body.read()
        finally:
            body.close()

    def write(self, key: str, data: bytes) -> None:
        try:
            self._client.put_object(Bucket=self.bucket, Key=self._full_key(key), Body=data)
        except ClientError as exc:
            raise StorageError(f"S3 write failed for {key}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._full_key(key))
        except ClientError as exc:
            raise StorageError(f"S3 delete failed for {key}: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=self._full_key(key))
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return False
            raise StorageError(f"S3 head failed for {key}: {exc}") from exc
        return True

    def list_objects(self, prefix: str = "") -> list[StorageObject]:
        paginator = self._client.get_paginator("list_objects_v2")
        objects: list[StorageObject] = []
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self._full_key(prefix)):
                for entry in page.get("Contents", []):
                    modified = entry.get("LastModified")
                    objects.append(
                        StorageObject(
                            key=self._relative_key(entry["Key"]),
                            size=entry.get("Size"),
                            last_modified=modified.isoformat() if modified else None,
                            etag=(entry.get("ETag") or "").strip('"') or None,
                        )
                    )
        except ClientError as exc:
            raise StorageError(f"S3 list failed for prefix {prefix!r}: {exc}") from exc
        logger.debug("S3 listed %d objects under %s/%s", len(objects), self.bucket, prefix)
        return objects

    def resolve_url(self, key: str) -> str:
        full_key = self._full_key(key)
        if self.custom_domain:
            return f"{self.custom_domain}/{full_key}"
        if self.endpoint:
            return f"{self.endpoint}/{self.bucket}/{full_key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{full_key}"
