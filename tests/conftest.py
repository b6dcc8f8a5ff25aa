from __future__ import annotations

import os

import pytest

_BUILDER_ENV_PREFIXES = ("STORAGE_", "MANIFEST_", "BUILD_", "PHOTO_")


@pytest.fixture(autouse=True)
def clean_builder_env(monkeypatch):
    """Keep a developer's .env / shell settings out of from_env() based tests."""
    for name in list(os.environ):
        if name.startswith(_BUILDER_ENV_PREFIXES):
            monkeypatch.delenv(name, raising=False)
    for name in ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "GITHUB_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    yield
