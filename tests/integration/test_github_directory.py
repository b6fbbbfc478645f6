"""
Integration tests for the GitHub directory client using the stub server.
[CTX:PBI-1:1-2:STUB]

Tests verify client behavior against a real HTTP server:
1. Successful lookups decode JSON / return raw text
2. 404 maps to DirectoryNotFoundError, other statuses to DirectoryError
3. Transport failures and timeouts map to DirectoryError without a status
4. Auth and API headers are sent on every request
5. The validator runs end to end over the client
"""
import logging

import pytest

from flow_registry.core import (
    DirectoryError,
    DirectoryNotFoundError,
    TelemetryRecorder,
    ValidatorConfig,
    set_recorder,
)
from flow_registry.directories import GitHubDirectory
from flow_registry.validator import RegistryValidator

from .stub_server import GitHubStubServer, StubResponse, error_response, json_response

logger = logging.getLogger(__name__)

STUB_PORT = 18890
CLOSED_PORT = 18899


@pytest.fixture
async def stub_server():
    """Provide stub server for integration tests."""
    server = GitHubStubServer(host="127.0.0.1", port=STUB_PORT)
    await server.start()

    yield server

    await server.stop()


@pytest.fixture
def recorder():
    """Fresh global recorder so events from other tests do not leak in."""
    recorder = TelemetryRecorder(collect_stats=True)
    set_recorder(recorder)
    yield recorder
    set_recorder(TelemetryRecorder())


@pytest.fixture
def config(stub_server):
    return ValidatorConfig(api_url=stub_server.get_url(), token="ghs_test_token", timeout=5)


@pytest.fixture
async def github(config, recorder):
    async with GitHubDirectory(config) as directory:
        yield directory


class TestLookups:
    """Successful and failed lookups."""

    async def test_get_user(self, stub_server, github, recorder):
        stub_server.add_user("octocat")

        user = await github.get_user("octocat")

        assert user["login"] == "octocat"
        events = recorder.get_events()
        assert [(e.kind, e.target, e.outcome, e.status) for e in events] == [
            ("user", "octocat", "found", 200)
        ]

    async def test_missing_user(self, stub_server, github, recorder):
        with pytest.raises(DirectoryNotFoundError) as exc_info:
            await github.get_user("ghost")

        assert exc_info.value.status == 404
        assert recorder.get_events()[0].outcome == "not_found"

    async def test_server_error_is_not_not_found(self, stub_server, github, recorder):
        stub_server.set_route("/users/octocat", error_response(500))

        with pytest.raises(DirectoryError) as exc_info:
            await github.get_user("octocat")

        assert not isinstance(exc_info.value, DirectoryNotFoundError)
        assert exc_info.value.status == 500
        assert recorder.get_stats().outcomes == {"error": 1}

    async def test_get_repository(self, stub_server, github):
        stub_server.add_repository("acme", "widget")

        repo = await github.get_repository("acme", "widget")

        assert repo["full_name"] == "acme/widget"

    async def test_get_file_returns_text(self, stub_server, github):
        stub_server.add_repository("acme", "widget", {"README.md": "# Widget\nBuilt on Flow\n"})

        text = await github.get_file("acme", "widget", "README.md")

        assert text == "# Widget\nBuilt on Flow\n"
        assert stub_server.request_history[-1]["headers"]["Accept"] == GitHubDirectory.RAW_MEDIA_TYPE

    async def test_missing_file(self, stub_server, github):
        stub_server.add_repository("acme", "widget")

        with pytest.raises(DirectoryNotFoundError):
            await github.get_file("acme", "widget", "go.mod")

    async def test_list_root(self, stub_server, github):
        stub_server.add_repository("acme", "widget", {
            "README.md": "readme",
            "foundry.toml": "[profile.default]",
        })

        names = await github.list_root("acme", "widget")

        assert names == ["README.md", "foundry.toml"]
        assert stub_server.paths_requested() == ["/repos/acme/widget/contents/"]

    async def test_list_root_unexpected_payload(self, stub_server, github):
        stub_server.set_route("/repos/acme/widget/contents/", json_response({"name": "README.md"}))

        with pytest.raises(DirectoryError, match="unexpected listing payload"):
            await github.list_root("acme", "widget")

    async def test_malformed_json(self, stub_server, github):
        stub_server.set_route("/users/octocat", StubResponse(status=200, body="<html>"))

        with pytest.raises(DirectoryError) as exc_info:
            await github.get_user("octocat")

        assert exc_info.value.status == 200


class TestHeaders:
    """Auth and API headers."""

    async def test_auth_and_api_headers(self, stub_server, github):
        stub_server.add_user("octocat")

        await github.get_user("octocat")

        headers = stub_server.request_history[0]["headers"]
        assert headers["Authorization"] == "Bearer ghs_test_token"
        assert headers["X-GitHub-Api-Version"] == GitHubDirectory.API_VERSION
        assert headers["Accept"] == GitHubDirectory.JSON_MEDIA_TYPE
        assert headers["User-Agent"] == "flow-registry-validator"

    async def test_no_token_no_authorization(self, stub_server, recorder):
        stub_server.add_user("octocat")
        config = ValidatorConfig(api_url=stub_server.get_url())

        async with GitHubDirectory(config) as github:
            await github.get_user("octocat")

        assert "Authorization" not in stub_server.request_history[0]["headers"]

    def test_prepare_request(self):
        config = ValidatorConfig(api_url="https://api.github.com/", token="ghs_test_token")

        spec = GitHubDirectory(config).prepare_request("/users/octocat")

        assert spec.url == "https://api.github.com/users/octocat"
        assert spec.method == "GET"
        assert spec.headers["Authorization"] == "Bearer ghs_test_token"


class TestTransportFailures:
    """Failures with no usable HTTP response."""

    async def test_connection_refused(self, recorder):
        config = ValidatorConfig(api_url=f"http://127.0.0.1:{CLOSED_PORT}", timeout=5)

        async with GitHubDirectory(config) as github:
            with pytest.raises(DirectoryError) as exc_info:
                await github.get_user("octocat")

        assert exc_info.value.status is None
        assert recorder.get_events()[0].outcome == "error"

    async def test_timeout(self, stub_server, recorder):
        stub_server.set_route("/users/slow", StubResponse(status=200, body="{}", delay=1.0))
        config = ValidatorConfig(api_url=stub_server.get_url(), timeout=0.2)

        async with GitHubDirectory(config) as github:
            with pytest.raises(DirectoryError) as exc_info:
                await github.get_user("slow")

        assert exc_info.value.status is None

    async def test_requires_context_manager(self, config):
        with pytest.raises(RuntimeError, match="async context manager"):
            await GitHubDirectory(config).get_user("octocat")


class TestValidatorOverHttp:
    """RegistryValidator driven through GitHubDirectory."""

    REGISTRY = """
- name: Acme
  github: [alice]
  repos:
    - https://github.com/acme/widget.git
    - https://github.com/acme/evm-app
  wallets:
    evm: "0x1234567890abcdef1234567890abcdef12345678"
    flow: "0x1234567890abcdef"
"""

    async def test_valid_entry(self, stub_server, github):
        stub_server.add_user("alice")
        stub_server.add_repository("acme", "widget", {"README.md": "A dapp on Flow"})
        stub_server.add_repository("acme", "evm-app", {
            "hardhat.config.ts": 'url: "https://testnet.evm.nodes.onflow.org"',
        })

        result = await RegistryValidator(github).validate(self.REGISTRY)

        assert result.errors == []
        assert "/repos/acme/widget/contents/package.json" not in stub_server.paths_requested()
        assert stub_server.paths_requested()[-2:] == [
            "/repos/acme/evm-app/contents/",
            "/repos/acme/evm-app/contents/hardhat.config.ts",
        ]

    async def test_marker_lookup_errors_are_ignored(self, stub_server, github):
        stub_server.add_user("alice")
        stub_server.add_repository("acme", "widget", {"README.md": "A dapp on Flow"})
        stub_server.add_repository("acme", "evm-app")
        stub_server.set_route("/repos/acme/evm-app/contents/README.md", error_response(503))
        stub_server.set_route("/repos/acme/evm-app/contents/", error_response(500))

        result = await RegistryValidator(github).validate(self.REGISTRY)

        assert len(result.errors) == 1
        assert result.errors[0].startswith("Repository 'https://github.com/acme/evm-app' does not show")
