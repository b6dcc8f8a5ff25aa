"""Storage provider backed by a GitHub repository (REST contents API)."""

from __future__ import annotations

import base64
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from .base import StorageError, StorageObject, StorageProvider

logger = logging.getLogger(__name__)

GITHUB_API_BASE = "https://api.github.com"
RAW_BASE = "https://raw.githubusercontent.com"


class GitHubStorageProvider(StorageProvider):
    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        branch: str = "main",
        path: str = "",
        token: Optional[str] = None,
        api_base: str = GITHUB_API_BASE,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.root = path.strip("/")
        headers = {"Accept": "application/vnd.github+json", "X-GitHub-Api-Version": "2022-11-28"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = client or httpx.Client(base_url=api_base, timeout=timeout, headers=headers)

    def _repo_path(self, key: str) -> str:
        key = key.strip("/")
        return f"{self.root}/{key}" if self.root else key

    def _contents_url(self, key: str) -> str:
        return f"/repos/{self.owner}/{self.repo}/contents/{quote(self._repo_path(key))}"

    def _check(self, response: httpx.Response, action: str, key: str) -> None:
        if response.status_code == 404:
            raise FileNotFoundError(key)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(f"GitHub {action} failed for {key}: {exc}") from exc

    def _current_sha(self, key: str) -> Optional[str]:
        response = self.client.get(self._contents_url(key), params={"ref": self.branch})
        if response.status_code == 404:
            return None
        self._check(response, "lookup", key)
        payload = response.json()
        if isinstance(payload, list):
            raise StorageError(f"GitHub key is a directory: {key}")
        return payload.get("sha")

    def read(self, key: str) -> bytes:
        response = self.client.get(
            self._contents_url(key),
            params={"ref": self.branch},
            headers={"Accept": "application/vnd.github.raw"},
        )
        self._check(response, "read", key)
        return response.content

    def exists(self, key: str) -> bool:
        response = self.client.get(self._contents_url(key), params={"ref": self.branch})
        if response.status_code == 404:
            return False
        self._check(response, "lookup", key)
        return not isinstance(response.json(), list)

    def write(self, key: str, data: bytes) -> None:
        body: dict[str, Any] = {
            "message": f"Update {self._repo_path(key)}",
            "content": base64.b64encode(data).decode("ascii"),
            "branch": self.branch,
        }
        sha = self._current_sha(key)
        if sha:
            body["sha"] = sha
        response = self.client.put(self._contents_url(key), json=body)
        self._check(response, "write", key)

    def delete(self, key: str) -> None:
        sha = self._current_sha(key)
        if sha is None:
            return
        response = self.client.request(
            "DELETE",
            self._contents_url(key),
            json={"message": f"Delete {self._repo_path(key)}", "sha": sha, "branch": self.branch},
        )
        self._check(response, "delete", key)

    def list_objects(self, prefix: str = "") -> list[StorageObject]:
        response = self.client.get(
            f"/repos/{self.owner}/{self.repo}/git/trees/{quote(self.branch)}",
            params={"recursive": "1"},
        )
        self._check(response, "list", prefix)
        payload = response.json()
        if payload.get("truncated"):
            logger.warning("GitHub tree listing for %s/%s was truncated", self.owner, self.repo)

        root = f"{self.root}/" if self.root else ""
        objects: list[StorageObject] = []
        for entry in payload.get("tree", []):
            if entry.get("type") != "blob":
                continue
            path = entry.get("path", "")
            if root and not path.startswith(root):
                continue
            key = path[len(root):]
            if prefix and not key.startswith(prefix):
                continue
            objects.append(StorageObject(key=key, size=entry.get("size"), etag=entry.get("sha")))
        return objects

    def resolve_url(self, key: str) -> str:
        return f"{RAW_BASE}/{self.owner}/{self.repo}/{self.branch}/{quote(self._repo_path(key))}"
