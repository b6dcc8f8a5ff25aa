from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from afilmory_builder.core.env import env_str


class StorageError(RuntimeError):
    """Raised when a storage backend cannot complete an operation."""


class UnsupportedProviderError(StorageError):
    """Raised when no factory is registered for a storage provider tag."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Unsupported storage provider: {provider}")
        self.provider = provider


class StorageConfig(BaseModel):
    """Tagged storage configuration; ``provider`` selects the backend.

    Every other field is backend specific and kept as an extra attribute.
    """

    model_config = ConfigDict(extra="allow")

    provider: str

    def options(self) -> dict[str, Any]:
        """Backend-specific fields (everything except ``provider``)."""
        return dict(self.model_extra or {})

    def option(self, name: str, default: Any = None) -> Any:
        return self.options().get(name, default)

    @classmethod
    def from_env(cls) -> "StorageConfig":
        provider = (env_str("STORAGE_PROVIDER", "local") or "local").lower()
        if provider == "s3":
            fields = {
                "bucket": env_str("STORAGE_S3_BUCKET"),
                "region": env_str("STORAGE_S3_REGION", "us-east-1"),
                "endpoint": env_str("STORAGE_S3_ENDPOINT"),
                "prefix": env_str("STORAGE_S3_PREFIX", ""),
                "custom_domain": env_str("STORAGE_S3_CUSTOM_DOMAIN"),
                "access_key_id": env_str("AWS_ACCESS_KEY_ID"),
                "secret_access_key": env_str("AWS_SECRET_ACCESS_KEY"),
            }
        elif provider == "github":
            fields = {
                "owner": env_str("STORAGE_GITHUB_OWNER"),
                "repo": env_str("STORAGE_GITHUB_REPO"),
                "branch": env_str("STORAGE_GITHUB_BRANCH", "main"),
                "path": env_str("STORAGE_GITHUB_PATH", ""),
                "token": env_str("GITHUB_TOKEN"),
            }
        elif provider == "local":
            fields = {
                "root": env_str("STORAGE_LOCAL_ROOT", "photos"),
                "base_url": env_str("PHOTO_BASE_URL"),
            }
        else:
            fields = {}
        return cls(provider=provider, **{k: v for k, v in fields.items() if v is not None})


class StorageObject(BaseModel):
    key: str
    size: Optional[int] = None
    last_modified: Optional[str] = None
    etag: Optional[str] = None


class StorageProvider(ABC):
    """Key/value access to the bytes of one storage backend."""

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the bytes stored under ``key``; FileNotFoundError if absent."""
        ...

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""
        ...

    @abstractmethod
    def list_objects(self, prefix: str = "") -> list[StorageObject]:
        ...

    @abstractmethod
    def resolve_url(self, key: str) -> str:
        """Return a URL under which the object can be fetched."""
        ...

    def list_keys(self, prefix: str = "") -> list[str]:
        return [obj.key for obj in self.list_objects(prefix)]

    def exists(self, key: str) -> bool:
        try:
            self.read(key)
        except FileNotFoundError:
            return False
        return True
