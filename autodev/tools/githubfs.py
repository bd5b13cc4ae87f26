"""Read-only view of a GitHub repository through the REST API."""
from __future__ import annotations
import base64
import logging
from dataclasses import dataclass, asdict
from typing import Literal, Optional
from urllib.parse import quote

import httpx

from ..errors import AuthError, RemoteError, RemoteNotFound

logger = logging.getLogger(__name__)


@dataclass
class Entry:
    name: str
    path: str
    type: Literal["file", "dir"]
    size: int = 0

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"

    def to_dict(self) -> dict:
        return asdict(self)


def pick_default_branch(branches: list[str]) -> Optional[str]:
    for name in ("main", "master"):
        if name in branches:
            return name
    return branches[0] if branches else None


def split_repo(repo: str) -> tuple[str, str]:
    parts = repo.split("/")
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"invalid repository format: {repo}")
    return parts[0], parts[1]


class GitHubFS:
    def __init__(
        self,
        repo: str,
        token: Optional[str],
        api_url: str = "https://api.github.com",
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ):
        self.owner, self.name = split_repo(repo)
        if not token:
            raise AuthError("GITHUB_TOKEN environment variable is not set")
        self.client = client or httpx.Client(base_url=api_url, timeout=timeout)
        self.headers = {
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        }

    @classmethod
    def from_config(cls, cfg, repo: str) -> "GitHubFS":
        return cls(repo, cfg.github_token, api_url=cfg.github_api_url, timeout=cfg.github_timeout)

    @property
    def repo(self) -> str:
        return f"{self.owner}/{self.name}"

    def _get(self, path: str, **params):
        url = f"/repos/{self.owner}/{self.name}{path}"
        try:
            resp = self.client.get(url, headers=self.headers, params=params or None)
        except httpx.HTTPError as e:
            raise RemoteError(f"GitHub API request failed: {e}") from e
        if resp.status_code == 404:
            raise RemoteNotFound(f"not found: {self.repo}{path}")
        if resp.status_code in (401, 403):
            raise AuthError(f"GitHub API denied access ({resp.status_code}) for {self.repo}")
        if resp.status_code >= 400:
            raise RemoteError(f"GitHub API request failed with status: {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteError(f"GitHub API returned invalid JSON for {url}") from e

    def _contents(self, branch: str, path: str):
        clean = path.strip("/")
        suffix = f"/contents/{quote(clean)}" if clean else "/contents"
        return self._get(suffix, ref=branch)

    def branches(self) -> list[str]:
        return [b["name"] for b in self._get("/branches", per_page=100)]

    def default_branch(self) -> Optional[str]:
        return pick_default_branch(self.branches())

    def list_dir(self, branch: str, path: str = "") -> list[Entry]:
        data = self._contents(branch, path)
        if not isinstance(data, list):
            raise RemoteError(f"path is not a directory: {path}")
        entries = [
            Entry(
                name=item["name"],
                path=item["path"],
                type="dir" if item["type"] == "dir" else "file",
                size=item.get("size", 0),
            )
            for item in data
        ]
        logger.info("listed %s@%s:/%s (%d entries)", self.repo, branch, path, len(entries))
        return sorted(entries, key=lambda e: (not e.is_dir, e.name))

    def read_file(self, branch: str, path: str) -> str:
        data = self._contents(branch, path)
        if isinstance(data, list) or data.get("type") != "file":
            raise RemoteError(f"path is a directory, not a file: {path}")
        content = data.get("content", "")
        if data.get("encoding") == "base64":
            return base64.b64decode(content).decode("utf-8", errors="replace")
        return content

    def file_count(self, branch: str) -> int:
        tree = self._get(f"/git/trees/{quote(branch, safe='')}", recursive=1)
        if tree.get("truncated"):
            logger.warning("tree listing for %s@%s is truncated", self.repo, branch)
        return sum(1 for item in tree.get("tree", []) if item.get("type") == "blob")

    def close(self) -> None:
        self.client.close()
