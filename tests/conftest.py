"""Pytest configuration: import path and scripted collaborators for the login flow.

This file ensures that:
- `src/` is importable
- tests never touch the real `~/.cflogin` directory
- the terminal, authenticator, directory and endpoint lookups can be scripted
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any

import httpx
import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from cflogin.config import ConfigStore  # noqa: E402
from cflogin.endpoint import normalize_endpoint  # noqa: E402
from cflogin.errors import (  # noqa: E402
    AuthenticationRejectedError,
    OrganizationNotFoundError,
    SpaceNotFoundError,
)
from cflogin.login import Backend  # noqa: E402
from cflogin.models import (  # noqa: E402
    Credentials,
    Endpoint,
    Organization,
    PromptCatalog,
    PromptKind,
    PromptSpec,
    Space,
)

AUTH_ENDPOINT = "https://login.example.com"


class ScriptedTerminal:
    """Terminal double answering prompts from queued scripts and recording output."""

    def __init__(self, answers: Iterable[str] = (), secrets: Iterable[str] = ()) -> None:
        self.answers = list(answers)
        self.secrets = list(secrets)
        self.asked: list[str] = []
        self.secret_prompts: list[str] = []
        self.said: list[str] = []
        self.warnings: list[str] = []
        self.ok_count = 0
        self.configurations_shown = 0

    def ask(self, label: str) -> str:
        self.asked.append(label)
        if not self.answers:
            raise AssertionError(f"Unexpected prompt {label!r}")
        return self.answers.pop(0)

    def ask_for_password(self, label: str) -> str:
        self.secret_prompts.append(label)
        if not self.secrets:
            raise AssertionError(f"Unexpected secret prompt {label!r}")
        return self.secrets.pop(0)

    def say(self, message: str) -> None:
        self.said.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def ok(self) -> None:
        self.ok_count += 1

    def confirm(self, message: str) -> bool:
        return self.ask(message).lower() in ("y", "yes")

    def show_configuration(self, config: ConfigStore) -> None:
        self.configurations_shown += 1


class FakeAuthenticator:
    """Authenticator double that fails or succeeds according to ``outcomes``.

    Each outcome is ``None`` (success) or an error message for a rejected
    attempt; once the outcomes run out every further attempt succeeds.
    """

    def __init__(
        self,
        prompts: PromptCatalog | None = None,
        outcomes: Iterable[str | None] = (),
        config: ConfigStore | None = None,
    ) -> None:
        self.prompts = prompts if prompts is not None else password_prompts()
        self.outcomes = list(outcomes)
        self.config = config
        self.fetch_count = 0
        self.calls: list[Credentials] = []

    def fetch_prompts(self) -> PromptCatalog:
        self.fetch_count += 1
        return dict(self.prompts)

    def authenticate(self, credentials: Credentials) -> None:
        self.calls.append(dict(credentials))
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if outcome is not None:
            raise AuthenticationRejectedError(outcome)
        if self.config is not None:
            self.config.set_tokens("bearer access-token", "refresh-token")


class FakeDirectory:
    """In-memory organizations and spaces keyed by organization guid."""

    def __init__(
        self,
        organizations: Iterable[Organization] = (),
        spaces: dict[str, list[Space]] | None = None,
    ) -> None:
        self.organizations = list(organizations)
        self.spaces = spaces or {}
        self.list_calls: list[tuple[str, int]] = []
        self.find_calls: list[tuple[str, str]] = []

    def list_organizations(self, limit: int) -> list[Organization]:
        self.list_calls.append(("organizations", limit))
        return self.organizations[:limit]

    def find_organization_by_name(self, name: str) -> Organization:
        self.find_calls.append(("organization", name))
        for organization in self.organizations:
            if organization.name == name:
                return organization
        raise OrganizationNotFoundError(name, f"Organization {name} not found")

    def list_spaces(self, organization_guid: str, limit: int) -> list[Space]:
        self.list_calls.append(("spaces", limit))
        return self.spaces.get(organization_guid, [])[:limit]

    def find_space_by_name(self, organization_guid: str, name: str) -> Space:
        self.find_calls.append(("space", name))
        for space in self.spaces.get(organization_guid, []):
            if space.name == name:
                return space
        raise SpaceNotFoundError(name, f"Space {name} not found")


class FakeEndpoints:
    """Endpoint lookup double that records what a `/v2/info` call would have stored."""

    def __init__(self, config: ConfigStore, api_version: str = "2.150.0") -> None:
        self.config = config
        self.api_version = api_version
        self.updated: list[Endpoint] = []

    def update_endpoint(self, endpoint: Endpoint) -> Endpoint:
        self.updated.append(endpoint)
        url = normalize_endpoint(endpoint.url)
        self.config.set_api_endpoint(
            url,
            api_version=self.api_version,
            authorization_endpoint=AUTH_ENDPOINT,
            doppler_endpoint="wss://doppler.example.com:443",
            log_cache_endpoint="https://log-cache.example.com",
            skip_ssl_validation=endpoint.skip_ssl_validation,
        )
        return Endpoint(url=url, skip_ssl_validation=endpoint.skip_ssl_validation)


Handler = Callable[..., httpx.Response]


class StubClient:
    """Minimal sync client surface used by the HTTP collaborators.

    ``handler(method, url, params, data)`` returns the response for each call.
    """

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self.calls: list[dict[str, Any]] = []

    def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        self.calls.append({"method": "GET", "url": url, "params": params, "headers": headers})
        return self._handler("GET", url, params, None)

    def post(
        self,
        url: str,
        *,
        data: dict[str, Any] | None = None,
        auth: tuple[str, str] | None = None,
    ) -> httpx.Response:
        self.calls.append({"method": "POST", "url": url, "data": data, "auth": auth})
        return self._handler("POST", url, None, data)


def respond(
    method: str,
    url: str,
    status: int,
    *,
    json: Any = None,
    text: str | None = None,
    params: dict[str, Any] | None = None,
) -> httpx.Response:
    """Build a response bound to its request so `raise_for_status` works."""
    request = httpx.Request(method, url, params=params)
    if json is not None:
        return httpx.Response(status, json=json, request=request)
    return httpx.Response(status, text=text or "", request=request)


def password_prompts(*extra: PromptSpec) -> PromptCatalog:
    catalog: PromptCatalog = {
        "username": PromptSpec(name="username", kind=PromptKind.TEXT, display_label="Email"),
        "password": PromptSpec(name="password", kind=PromptKind.SECRET, display_label="Password"),
    }
    for prompt in extra:
        catalog[prompt.name] = prompt
    return catalog


def make_organizations(count: int) -> list[Organization]:
    return [Organization(guid=f"org-guid-{i}", name=f"org{i}") for i in range(1, count + 1)]


def make_spaces(count: int) -> list[Space]:
    return [Space(guid=f"space-guid-{i}", name=f"space{i}") for i in range(1, count + 1)]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point CFLOGIN_HOME at a temp directory and drop CFLOGIN_* overrides."""
    home = tmp_path / "cflogin-home"
    monkeypatch.setenv("CFLOGIN_HOME", str(home))
    for name in ("CLIENT_ID", "CLIENT_SECRET", "REQUEST_TIMEOUT", "LOG_LEVEL", "MIN_API_VERSION"):
        monkeypatch.delenv(f"CFLOGIN_{name}", raising=False)
    return home


@pytest.fixture
def config_store(isolated_home: Path) -> ConfigStore:
    return ConfigStore(isolated_home)


@pytest.fixture
def terminal_factory() -> Callable[..., ScriptedTerminal]:
    return ScriptedTerminal


@pytest.fixture
def authenticator_factory() -> Callable[..., FakeAuthenticator]:
    return FakeAuthenticator


@pytest.fixture
def directory_factory() -> Callable[..., FakeDirectory]:
    return FakeDirectory


@pytest.fixture
def prompts_factory() -> Callable[..., PromptCatalog]:
    return password_prompts


@pytest.fixture
def organizations_factory() -> Callable[[int], list[Organization]]:
    return make_organizations


@pytest.fixture
def spaces_factory() -> Callable[[int], list[Space]]:
    return make_spaces


@pytest.fixture
def backend_factory(config_store: ConfigStore) -> Callable[..., Any]:
    """Build a connector returning fake collaborators bound to ``config_store``."""

    def build(
        authenticator: FakeAuthenticator, directory: FakeDirectory, api_version: str = "2.150.0"
    ) -> tuple[Callable[[Endpoint], Backend], FakeEndpoints]:
        endpoints = FakeEndpoints(config_store, api_version=api_version)
        connected: list[Endpoint] = []

        def connect(endpoint: Endpoint) -> Backend:
            connected.append(endpoint)
            return Backend(endpoints=endpoints, authenticator=authenticator, directory=directory)

        return connect, endpoints

    return build


@pytest.fixture
def stub_client_factory() -> Callable[[Handler], StubClient]:
    return StubClient


@pytest.fixture
def response_factory() -> Callable[..., httpx.Response]:
    return respond
