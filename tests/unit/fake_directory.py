"""
In-memory directory service for unit tests.

Users, repositories and files are registered up front; every lookup is
recorded in `calls` so tests can assert what was (and was not) probed.
"""
from typing import Any

from flow_registry.core import DirectoryNotFoundError, DirectoryService, RequestSpec


class FakeDirectory(DirectoryService):
    """DirectoryService backed by dictionaries."""

    def __init__(self):
        self.users: set[str] = set()
        self.repositories: set[tuple[str, str]] = set()
        self.files: dict[tuple[str, str, str], str] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []

    @property
    def name(self) -> str:
        return "fake"

    def prepare_request(self, path: str, headers: dict[str, str] | None = None) -> RequestSpec:
        return RequestSpec(url=f"fake://{path}", headers=self.auth(headers))

    # Setup helpers

    def add_user(self, login: str) -> "FakeDirectory":
        self.users.add(login)
        return self

    def add_repository(self, owner: str, repo: str, files: dict[str, str] | None = None) -> "FakeDirectory":
        self.repositories.add((owner, repo))
        for path, text in (files or {}).items():
            self.files[(owner, repo, path)] = text
        return self

    def fail(self, target: str, error: Exception) -> "FakeDirectory":
        """Make the lookup of `target` raise `error`."""
        self.failures[target] = error
        return self

    def _lookup(self, kind: str, target: str) -> None:
        self.calls.append((kind, target))
        if target in self.failures:
            raise self.failures[target]

    # DirectoryService

    async def get_user(self, login: str) -> dict[str, Any]:
        self._lookup("user", login)
        if login not in self.users:
            raise DirectoryNotFoundError(login)
        return {"login": login}

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        target = f"{owner}/{repo}"
        self._lookup("repository", target)
        if (owner, repo) not in self.repositories:
            raise DirectoryNotFoundError(target)
        return {"full_name": target}

    async def get_file(self, owner: str, repo: str, path: str) -> str:
        target = f"{owner}/{repo}:{path}"
        self._lookup("file", target)
        if (owner, repo, path) not in self.files:
            raise DirectoryNotFoundError(target)
        return self.files[(owner, repo, path)]

    async def list_root(self, owner: str, repo: str) -> list[str]:
        target = f"{owner}/{repo}:/"
        self._lookup("listing", target)
        if (owner, repo) not in self.repositories:
            raise DirectoryNotFoundError(target)
        return sorted(
            path for (o, r, path) in self.files
            if (o, r) == (owner, repo) and "/" not in path
        )

    def file_calls(self) -> list[str]:
        return [target for kind, target in self.calls if kind == "file"]
