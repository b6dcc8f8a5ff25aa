"""Storage providers and the registry that builds them from configuration."""

from .base import (
    StorageConfig,
    StorageError,
    StorageObject,
    StorageProvider,
    UnsupportedProviderError,
)
from .local import LocalStorageProvider
from .registry import ProviderRegistry, StorageProviderFactory, default_registry

__all__ = [
    "LocalStorageProvider",
    "ProviderRegistry",
    "StorageConfig",
    "StorageError",
    "StorageObject",
    "StorageProvider",
    "StorageProviderFactory",
    "UnsupportedProviderError",
    "default_registry",
]
