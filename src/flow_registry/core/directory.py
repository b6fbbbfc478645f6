"""
Directory service interface and supporting types.

This module defines the core abstraction for the external directory that the
registry validator queries: user accounts, repositories, file contents and
root listings. Each implementation provides request preparation, authentication,
and the four read-only lookups.
"""
# [CTX:PBI-1:1-1:IFACE]

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestSpec:
    """
    Specification for an HTTP request.

    Attributes:
        url: Full URL to request
        method: HTTP method (GET, HEAD, etc.)
        headers: HTTP headers as key-value pairs
        query_params: Query string parameters
    """
    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, Any] = field(default_factory=dict)


class DirectoryError(Exception):
    """
    A directory lookup did not succeed.

    Attributes:
        target: What was being looked up (login, owner/repo, owner/repo:path)
        status: HTTP status code, or None when no response was received
    """

    def __init__(self, target: str, status: int | None = None, reason: str = ""):
        self.target = target
        self.status = status
        self.reason = reason
        if status is not None:
            detail = f"status {status}: {reason}" if reason else f"status {status}"
        else:
            detail = reason or "no response"
        super().__init__(f"Lookup of '{target}' failed ({detail})")


class DirectoryNotFoundError(DirectoryError):
    """The looked-up user, repository or path does not exist."""

    def __init__(self, target: str):
        super().__init__(target, status=404, reason="not found")


class DirectoryService(ABC):
    """
    Abstract base class for directory services.

    Every lookup either returns content or raises. Callers can tell a missing
    object (DirectoryNotFoundError) apart from any other failure (DirectoryError).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Unique identifier for this directory service.

        Returns:
            The name of the service (e.g., "github")
        """
        pass

    @abstractmethod
    def prepare_request(self, path: str, headers: dict[str, str] | None = None) -> RequestSpec:
        """
        Prepare an HTTP request specification for the given API path.

        Args:
            path: API path relative to the service base URL
            headers: Extra headers for this request

        Returns:
            A RequestSpec with url, method and headers
        """
        pass

    def auth(self, initial_headers: dict[str, str] | None = None) -> dict[str, str]:
        """
        Authentication hook to add auth headers to a request.

        Default implementation returns headers unchanged. Override to add
        access tokens.

        Args:
            initial_headers: Existing headers to augment

        Returns:
            Headers dict with authentication added
        """
        return initial_headers.copy() if initial_headers else {}

    @abstractmethod
    async def get_user(self, login: str) -> dict[str, Any]:
        """Return the account record for `login`."""
        pass

    @abstractmethod
    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """Return the repository record for `owner/repo`."""
        pass

    @abstractmethod
    async def get_file(self, owner: str, repo: str, path: str) -> str:
        """Return the text contents of `path` on the default branch."""
        pass

    @abstractmethod
    async def list_root(self, owner: str, repo: str) -> list[str]:
        """Return the entry names in the repository's root directory."""
        pass
