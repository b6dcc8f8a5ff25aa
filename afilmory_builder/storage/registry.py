"""Storage provider registry: maps provider tags to backend factories."""

from __future__ import annotations

import logging
from typing import Callable

from .base import StorageConfig, StorageError, StorageProvider, UnsupportedProviderError

logger = logging.getLogger(__name__)

StorageProviderFactory = Callable[[StorageConfig], StorageProvider]


class ProviderRegistry:
    """Name -> factory table for storage providers.

    Registration is expected at startup only; the registry is not locked.
    Registering a name twice replaces the earlier factory, which lets tests
    swap in doubles.
    """

    def __init__(self) -> None:
        self._factories: dict[str, StorageProviderFactory] = {}

    def register_provider(self, name: str, factory: StorageProviderFactory) -> None:
        if name in self._factories:
            logger.debug("Overriding storage provider factory %r", name)
        self._factories[name] = factory

    def create_provider(self, config: StorageConfig) -> StorageProvider:
        factory = self._factories.get(config.provider)
        if factory is None:
            raise UnsupportedProviderError(config.provider)
        return factory(config)

    def list_registered_providers(self) -> set[str]:
        return set(self._factories)

    def __contains__(self, name: object) -> bool:
        return name in self._factories


def _require(config: StorageConfig, *names: str) -> None:
    missing = [name for name in names if not config.option(name)]
    if missing:
        raise StorageError(
            f"Storage provider '{config.provider}' requires: {', '.join(missing)}"
        )


def _local_factory(config: StorageConfig) -> StorageProvider:
    from .local import LocalStorageProvider

    _require(config, "root")
    return LocalStorageProvider(
        config.option("root"),
        base_url=config.option("base_url"),
    )


def _s3_factory(config: StorageConfig) -> StorageProvider:
    from .s3 import S3StorageProvider

    _require(config, "bucket")
    return S3StorageProvider(
        bucket=config.option("bucket"),
        region=config.option("region", "us-east-1"),
        endpoint=config.option("endpoint"),
        prefix=config.option("prefix", ""),
        access_key_id=config.option("access_key_id"),
        secret_access_key=config.option("secret_access_key"),
        custom_domain=config.option("custom_domain"),
    )


def _github_factory(config: StorageConfig) -> StorageProvider:
    from .github import GitHubStorageProvider

    _require(config, "owner", "repo")
    return GitHubStorageProvider(
        owner=config.option("owner"),
        repo=config.option("repo"),
        branch=config.option("branch", "main"),
        path=config.option("path", ""),
        token=config.option("token"),
    )


def default_registry() -> ProviderRegistry:
    """Return a fresh registry with the built-in backends installed."""
    registry = ProviderRegistry()
    registry.register_provider("local", _local_factory)
    registry.register_provider("s3", _s3_factory)
    registry.register_provider("github", _github_factory)
    return registry
