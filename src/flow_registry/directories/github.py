"""
GitHub directory service implementation.

Read-only lookups against the GitHub REST API: users, repositories, raw file
contents and root directory listings. One aiohttp session serves a whole
validation run; calls are awaited one at a time by the caller.
"""
# [CTX:PBI-1:1-2:GITHUB]

import asyncio
import logging
import time
from typing import Any
from urllib.parse import quote

import aiohttp
from aiohttp import ClientSession, ClientTimeout

from flow_registry.core import (
    DirectoryError,
    DirectoryNotFoundError,
    DirectoryService,
    LookupKind,
    LookupOutcome,
    RequestSpec,
    ValidatorConfig,
    create_event,
    get_recorder,
)

logger = logging.getLogger(__name__)


class GitHubDirectory(DirectoryService):
    """
    GitHub REST API client for registry validation.

    Use as an async context manager; the session is created on entry and
    closed on exit unless one was passed in.

    Example:
        async with GitHubDirectory(config) as github:
            await github.get_user("octocat")
    """

    API_VERSION = "2022-11-28"
    JSON_MEDIA_TYPE = "application/vnd.github+json"
    RAW_MEDIA_TYPE = "application/vnd.github.raw"

    def __init__(self, config: ValidatorConfig, session: ClientSession | None = None):
        self.config = config
        self.base_url = config.api_url.rstrip("/")
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "GitHubDirectory":
        if self._session is None:
            self._session = ClientSession(timeout=ClientTimeout(total=self.config.timeout))
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    @property
    def name(self) -> str:
        """Return the directory service name."""
        return "github"

    def auth(self, initial_headers: dict[str, str] | None = None) -> dict[str, str]:
        """Add a bearer token when one is configured."""
        headers = super().auth(initial_headers)
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def prepare_request(self, path: str, headers: dict[str, str] | None = None) -> RequestSpec:
        """
        Prepare a request to the GitHub API.

        Args:
            path: API path (e.g., "/users/octocat")
            headers: Extra headers, overriding the defaults

        Returns:
            RequestSpec with URL, method and headers
        """
        base_headers = {
            "Accept": self.JSON_MEDIA_TYPE,
            "User-Agent": self.config.user_agent,
            "X-GitHub-Api-Version": self.API_VERSION,
        }
        base_headers.update(headers or {})

        return RequestSpec(
            url=f"{self.base_url}{path}",
            method="GET",
            headers=self.auth(base_headers),
        )

    async def _get(
        self,
        kind: LookupKind,
        target: str,
        path: str,
        raw: bool = False,
    ) -> Any:
        """
        Perform one GET and record a telemetry event for it.

        Returns:
            Decoded JSON, or text when `raw` is set

        Raises:
            DirectoryNotFoundError: On 404
            DirectoryError: On any other non-200 status or transport failure
        """
        if self._session is None:
            raise RuntimeError("GitHubDirectory must be used as an async context manager")

        headers = {"Accept": self.RAW_MEDIA_TYPE} if raw else None
        request_spec = self.prepare_request(path, headers)
        recorder = get_recorder()
        start = time.monotonic()
        status = None

        try:
            async with self._session.request(
                request_spec.method,
                request_spec.url,
                headers=request_spec.headers,
                params=request_spec.query_params,
            ) as response:
                status = response.status
                if status == 200:
                    body = await response.text() if raw else await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            recorder.record(create_event(
                self.name, kind, target, LookupOutcome.ERROR,
                status=status, elapsed_ms=elapsed_ms,
            ))
            logger.warning(f"[CTX:PBI-1:1-2:GITHUB] {kind.value} lookup of {target} failed: {e!r}")
            raise DirectoryError(target, status=status, reason=str(e) or type(e).__name__) from e

        elapsed_ms = (time.monotonic() - start) * 1000

        if status == 404:
            recorder.record(create_event(
                self.name, kind, target, LookupOutcome.NOT_FOUND,
                status=status, elapsed_ms=elapsed_ms,
            ))
            raise DirectoryNotFoundError(target)

        if status != 200:
            recorder.record(create_event(
                self.name, kind, target, LookupOutcome.ERROR,
                status=status, elapsed_ms=elapsed_ms,
            ))
            raise DirectoryError(target, status=status)

        recorder.record(create_event(
            self.name, kind, target, LookupOutcome.FOUND,
            status=status, elapsed_ms=elapsed_ms,
        ))
        return body

    async def get_user(self, login: str) -> dict[str, Any]:
        return await self._get(LookupKind.USER, login, f"/users/{quote(login, safe='')}")

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._get(
            LookupKind.REPOSITORY,
            f"{owner}/{repo}",
            f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}",
        )

    async def get_file(self, owner: str, repo: str, path: str) -> str:
        return await self._get(
            LookupKind.FILE,
            f"{owner}/{repo}:{path}",
            f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/contents/{quote(path)}",
            raw=True,
        )

    async def list_root(self, owner: str, repo: str) -> list[str]:
        """List root entry names; a non-list payload is a lookup error."""
        target = f"{owner}/{repo}:/"
        entries = await self._get(
            LookupKind.LISTING,
            target,
            f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/contents/",
        )
        if not isinstance(entries, list):
            raise DirectoryError(target, status=200, reason="unexpected listing payload")
        return [
            entry["name"]
            for entry in entries
            if isinstance(entry, dict) and isinstance(entry.get("name"), str)
        ]
