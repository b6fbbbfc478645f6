"""
Registry entry validator.
[CTX:PBI-1:1-3:VAL]

Validates the newest entry of the registry file: required fields, GitHub
handles, X handles, repository URLs, Flow ecosystem markers and wallet
addresses. Every problem found becomes one human-readable error; checks never
stop early, so a single run reports everything wrong with a submission.
"""
import inspect
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

import yaml

from flow_registry.core import DirectoryError, DirectoryNotFoundError, DirectoryService
from flow_registry.ecosystem import detect_flow_usage, requirement_error

logger = logging.getLogger(__name__)

GITHUB_REPO_URL = re.compile(r"^https://github\.com/([^/\s]+)/([^/\s]+?)(?:\.git)?/?$")
EVM_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")
FLOW_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{16}$")


@dataclass
class ValidationResult:
    """
    Outcome of one validation run.

    Attributes:
        is_valid: True iff no errors were found
        errors: Error messages in the order the checks ran
    """
    is_valid: bool
    errors: list[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors))

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON artifact shape consumed by CI."""
        return {"isValid": self.is_valid, "errors": self.errors}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass
class RepositoryRef:
    """A repository URL that parsed as github.com/<owner>/<repo>."""
    url: str
    owner: str
    repo: str


def parse_repository_url(url: str) -> RepositoryRef | None:
    """
    Parse a GitHub repository URL. A trailing ".git" or "/" is dropped.

    Returns:
        RepositoryRef, or None if the URL is not of that shape
    """
    match = GITHUB_REPO_URL.match(url.strip())
    if not match:
        return None
    owner, repo = match.groups()
    return RepositoryRef(url=url, owner=owner, repo=repo)


def _registry_records(content: str) -> list[dict]:
    """
    Parse registry text into its mapping records.

    Raises:
        yaml.YAMLError: If the text is not valid YAML
        ValueError: If the top-level value is not a list
    """
    data = yaml.safe_load(content)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"top-level value must be a list, got {type(data).__name__}")
    return [record for record in data if isinstance(record, dict)]


class RegistryValidator:
    """
    Validates the last entry appended to a registry file.

    Args:
        directory: Directory service used to confirm users and repositories exist
        require_wallets: Treat a missing wallets block, or missing evm/flow
            inside it, as required-field errors
        check_ecosystem: Require each repository to show a Flow marker
    """

    def __init__(
        self,
        directory: DirectoryService,
        require_wallets: bool = False,
        check_ecosystem: bool = True,
    ):
        self.directory = directory
        self.require_wallets = require_wallets
        self.check_ecosystem = check_ecosystem
        self.errors: list[str] = []

    async def validate_file(
        self,
        path: str | Path,
        base_path: str | Path | None = None,
    ) -> ValidationResult:
        """Read the registry (and optional base revision) from disk and validate."""
        try:
            content = Path(path).read_text(encoding="utf-8")
            base_content = Path(base_path).read_text(encoding="utf-8") if base_path else None
        except (OSError, UnicodeDecodeError) as e:
            return ValidationResult.from_errors([f"Failed to parse registry file: {e}"])
        return await self.validate(content, base_content)

    async def validate(self, content: str, base_content: str | None = None) -> ValidationResult:
        """
        Validate the newest entry in registry text.

        Args:
            content: Registry YAML text
            base_content: Registry YAML text of the base revision, if known.
                When given, exactly one entry must have been added.

        Returns:
            ValidationResult with every error found
        """
        self.errors = []

        try:
            entries = _registry_records(content)
        except (yaml.YAMLError, ValueError) as e:
            self.errors.append(f"Failed to parse registry file: {e}")
            return ValidationResult.from_errors(self.errors)

        if not entries:
            self.errors.append("No valid registry entries found")
            return ValidationResult.from_errors(self.errors)

        entry = entries[-1]
        logger.info(f"[CTX:PBI-1:1-3:VAL] Validating entry '{entry.get('name')}'")

        if base_content is not None:
            await self._run_step("new entries", self._check_single_addition, entries, base_content)

        await self._run_step("required fields", self._check_required_fields, entry)

        if isinstance(entry.get("github"), list):
            await self._run_step("GitHub handles", self._check_github_handles, entry["github"])

        if entry.get("x") is not None:
            await self._run_step("X handles", self._check_x_handles, entry["x"])

        repositories: list[RepositoryRef] = []
        if isinstance(entry.get("repos"), list):
            await self._run_step(
                "repository URLs", self._check_repository_urls, entry["repos"], repositories
            )

        if self.check_ecosystem:
            for repository in repositories:
                await self._run_step(
                    f"Flow usage of '{repository.url}'", self._check_flow_usage, repository
                )

        if isinstance(entry.get("wallets"), dict):
            await self._run_step("wallet addresses", self._check_wallet_addresses, entry["wallets"])

        result = ValidationResult.from_errors(self.errors)
        logger.info(
            f"[CTX:PBI-1:1-3:VAL] Validation {'passed' if result.is_valid else 'failed'} "
            f"with {len(result.errors)} error(s)"
        )
        return result

    async def _run_step(self, step: str, check: Callable[..., Awaitable[None] | None], *args) -> None:
        """Run one check; an unexpected exception becomes an error and later checks still run."""
        try:
            outcome = check(*args)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.exception(f"[CTX:PBI-1:1-3:VAL] Unexpected error while checking {step}")
            self.errors.append(f"Unexpected error while checking {step}: {e}")

    def _check_single_addition(self, entries: list[dict], base_content: str) -> None:
        try:
            base_entries = _registry_records(base_content)
        except (yaml.YAMLError, ValueError) as e:
            self.errors.append(f"Failed to parse base registry file: {e}")
            return

        # An edited record differs from every base record, so it counts too.
        changed = [entry for entry in entries if entry not in base_entries]
        if len(changed) != 1:
            self.errors.append(
                f"Expected exactly one new or changed registry entry, found {len(changed)}"
            )

    def _check_required_fields(self, entry: dict) -> None:
        name = entry.get("name")
        if not isinstance(name, str) or not name.strip():
            self.errors.append("Missing or invalid 'name' field")

        github = entry.get("github")
        if not isinstance(github, list) or not github:
            self.errors.append("Missing or invalid 'github' field - must be a non-empty array")

        repos = entry.get("repos")
        if not isinstance(repos, list) or not repos:
            self.errors.append("Missing or invalid 'repos' field - must be a non-empty array")

        wallets = entry.get("wallets")
        if wallets is None:
            if self.require_wallets:
                self.errors.append("Missing or invalid 'wallets' field")
        elif not isinstance(wallets, dict):
            self.errors.append("Missing or invalid 'wallets' field")

    async def _check_github_handles(self, handles: list) -> None:
        for handle in handles:
            await self._run_step(f"GitHub handle '{handle}'", self._check_github_handle, handle)

    async def _check_github_handle(self, handle: Any) -> None:
        if not isinstance(handle, str) or not handle.strip():
            self.errors.append(f"Invalid GitHub handle: '{handle}'")
            return

        try:
            await self.directory.get_user(handle.strip())
        except DirectoryNotFoundError:
            self.errors.append(f"GitHub handle '{handle}' is not valid or not found")
        except DirectoryError as e:
            self.errors.append(_lookup_failure(f"GitHub handle '{handle}'", e))

    def _check_x_handles(self, handles: Any) -> None:
        if not isinstance(handles, list):
            self.errors.append("Invalid 'x' field - must be an array of handles")
            return
        for handle in handles:
            if not isinstance(handle, str) or not handle.strip():
                self.errors.append(f"Invalid X handle: '{handle}'")

    async def _check_repository_urls(self, urls: list, verified: list[RepositoryRef]) -> None:
        """Check each URL; repositories confirmed to exist are appended to `verified`."""
        for url in urls:
            await self._run_step(
                f"repository URL '{url}'", self._check_repository_url, url, verified
            )

    async def _check_repository_url(self, url: Any, verified: list[RepositoryRef]) -> None:
        if not isinstance(url, str) or not url.strip():
            self.errors.append(f"Invalid repository URL: '{url}'")
            return

        repository = parse_repository_url(url)
        if repository is None:
            self.errors.append(f"Invalid GitHub URL format: '{url}'")
            return

        try:
            await self.directory.get_repository(repository.owner, repository.repo)
        except DirectoryNotFoundError:
            self.errors.append(f"Repository '{url}' is not valid or not found")
            return
        except DirectoryError as e:
            self.errors.append(_lookup_failure(f"Repository '{url}'", e))
            return

        verified.append(repository)

    async def _check_flow_usage(self, repository: RepositoryRef) -> None:
        marker = await detect_flow_usage(self.directory, repository.owner, repository.repo)
        if marker is None:
            self.errors.append(requirement_error(repository.url))

    def _check_wallet_addresses(self, wallets: dict) -> None:
        self._check_address(wallets.get("evm"), "evm", "EVM", EVM_ADDRESS, 40)
        self._check_address(wallets.get("flow"), "flow", "Flow", FLOW_ADDRESS, 16)

    def _check_address(
        self,
        value: Any,
        key: str,
        label: str,
        pattern: re.Pattern,
        hex_digits: int,
    ) -> None:
        if not isinstance(value, str):
            self.errors.append(f"Missing or invalid '{key}' wallet address")
            return

        address = value.strip()
        if not pattern.match(address):
            self.errors.append(
                f"Invalid {label} wallet address: '{address}' - must start with 0x and be "
                f"{hex_digits + 2} characters long (0x + {hex_digits} hex chars)"
            )


def _lookup_failure(subject: str, error: DirectoryError) -> str:
    if error.status is not None:
        return f"{subject} is not accessible (status: {error.status})"
    return f"{subject} could not be verified ({error.reason})"
