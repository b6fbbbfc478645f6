"""
Flow ecosystem detection for registered repositories.
[CTX:PBI-1:1-3:FLOW]

A repository satisfies the requirement when any one of these markers is found,
probed in order and stopping at the first hit:
- README.md mentions "on Flow" or "Flow blockchain"
- package.json depends on @onflow/fcl or @onflow/kit
- go.mod requires the Flow Go SDK
- a Solidity/EVM tooling config in the root points at a Flow EVM endpoint

Any lookup failure inside a probe means "not confirmed", never an error.
"""
import json
import logging
from typing import Awaitable, Callable

from flow_registry.core import DirectoryError, DirectoryService

logger = logging.getLogger(__name__)

README_MARKERS = ("on flow", "flow blockchain")
FLOW_JS_PACKAGES = ("@onflow/fcl", "@onflow/kit")
FLOW_GO_SDK = "github.com/onflow/flow-go-sdk"
EVM_CONFIG_FILES = (
    "hardhat.config.js",
    "hardhat.config.ts",
    "hardhat.config.cjs",
    "hardhat.config.mjs",
    "foundry.toml",
    "truffle-config.js",
    "truffle.js",
)
FLOW_EVM_ENDPOINTS = (
    "mainnet.evm.nodes.onflow.org",
    "testnet.evm.nodes.onflow.org",
)

Probe = Callable[[DirectoryService, str, str], Awaitable[bool]]


async def readme_mentions_flow(directory: DirectoryService, owner: str, repo: str) -> bool:
    try:
        text = await directory.get_file(owner, repo, "README.md")
    except DirectoryError:
        return False
    lowered = text.lower()
    return any(marker in lowered for marker in README_MARKERS)


async def package_json_uses_flow(directory: DirectoryService, owner: str, repo: str) -> bool:
    try:
        text = await directory.get_file(owner, repo, "package.json")
    except DirectoryError:
        return False

    try:
        manifest = json.loads(text)
    except ValueError:
        logger.debug(f"[CTX:PBI-1:1-3:FLOW] {owner}/{repo} package.json is not valid JSON")
        return False
    if not isinstance(manifest, dict):
        return False

    for section in ("dependencies", "devDependencies"):
        deps = manifest.get(section)
        if isinstance(deps, dict) and any(name in deps for name in FLOW_JS_PACKAGES):
            return True
    return False


async def go_mod_uses_flow(directory: DirectoryService, owner: str, repo: str) -> bool:
    try:
        text = await directory.get_file(owner, repo, "go.mod")
    except DirectoryError:
        return False
    return FLOW_GO_SDK in text


async def evm_config_uses_flow(directory: DirectoryService, owner: str, repo: str) -> bool:
    try:
        names = await directory.list_root(owner, repo)
    except DirectoryError:
        return False

    for config_name in [name for name in names if name in EVM_CONFIG_FILES]:
        try:
            text = await directory.get_file(owner, repo, config_name)
        except DirectoryError:
            continue
        if any(endpoint in text for endpoint in FLOW_EVM_ENDPOINTS):
            return True
    return False


PROBES: tuple[tuple[str, Probe], ...] = (
    ("README.md", readme_mentions_flow),
    ("package.json", package_json_uses_flow),
    ("go.mod", go_mod_uses_flow),
    ("EVM config", evm_config_uses_flow),
)


async def detect_flow_usage(directory: DirectoryService, owner: str, repo: str) -> str | None:
    """
    Run the probes in order.

    Returns:
        Name of the first probe that confirmed Flow usage, or None
    """
    for probe_name, probe in PROBES:
        if await probe(directory, owner, repo):
            logger.debug(f"[CTX:PBI-1:1-3:FLOW] {owner}/{repo} confirmed via {probe_name}")
            return probe_name
    return None


def requirement_error(url: str) -> str:
    """Error message for a repository with no Flow marker."""
    return (
        f"Repository '{url}' does not show that it is built on Flow. Either mention "
        f"'on Flow' or 'Flow blockchain' in its README.md, or use Flow in code: "
        f"depend on {' or '.join(FLOW_JS_PACKAGES)} in package.json, require "
        f"{FLOW_GO_SDK} in go.mod, or point a Hardhat/Foundry/Truffle config at a "
        f"Flow EVM endpoint ({', '.join(FLOW_EVM_ENDPOINTS)})"
    )
