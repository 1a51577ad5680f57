"""Interactive login: endpoint, authentication, targeting and session history."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

import httpx
from loguru import logger

from .auth import AuthenticationClient
from .config import ConfigStore, Settings
from .credentials import Authenticator, CredentialNegotiator, CredentialStrategy
from .directory import DirectoryClient
from .endpoint import EndpointRepository, decide_endpoint, is_api_version_supported
from .errors import (
    AuthenticationFailedError,
    AuthenticationRejectedError,
    ConflictingAuthModeError,
    ServiceAccountActiveError,
)
from .models import Endpoint, LoginOptions, Session
from .targeting import Directory, TargetSelector
from .terminal import UI
from .transport import build_http_client

MAX_LOGIN_TRIES = 3
DEFAULT_MIN_API_VERSION = "2.128.0"


class AttemptOutcome(Enum):
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


class AuthenticationLoop:
    """Run up to ``max_tries`` authentication attempts with one credential strategy.

    Static credentials are collected once up front; each attempt then asks the
    strategy for a fresh credential set, so retry-scoped secrets are re-entered.
    """

    def __init__(self, authenticator: Authenticator, ui: UI, max_tries: int = MAX_LOGIN_TRIES):
        self._authenticator = authenticator
        self._ui = ui
        self._max_tries = max_tries

    def run(self, strategy: CredentialStrategy) -> AttemptOutcome:
        strategy.collect_static()

        for attempt in range(self._max_tries):
            credentials = strategy.credentials_for_attempt(attempt)

            self._ui.say("Authenticating...")
            try:
                self._authenticator.authenticate(dict(credentials))
            except AuthenticationRejectedError as exc:
                logger.info(f"Authentication attempt {attempt + 1}/{self._max_tries} failed")
                self._ui.say(exc.message)
                continue

            self._ui.ok()
            self._ui.say("")
            return AttemptOutcome.SUCCESS

        return AttemptOutcome.EXHAUSTED

    def authenticate(self, strategy: CredentialStrategy) -> None:
        """Run the loop; exhausting it raises a generic failure without the last cause."""
        if self.run(strategy) is AttemptOutcome.EXHAUSTED:
            raise AuthenticationFailedError()


class EndpointUpdater(Protocol):
    def update_endpoint(self, endpoint: Endpoint) -> Endpoint: ...


@dataclass
class Backend:
    """Remote collaborators of one login, bound to one endpoint's TLS setting."""

    endpoints: EndpointUpdater
    authenticator: Authenticator
    directory: Directory
    client: httpx.Client | None = None

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


Connector = Callable[[Endpoint], Backend]


def http_connector(
    config: ConfigStore, settings: Settings, transport: httpx.BaseTransport | None = None
) -> Connector:
    """Return a connector building httpx-backed collaborators for an endpoint."""

    def connect(endpoint: Endpoint) -> Backend:
        client = build_http_client(
            settings, skip_ssl_validation=endpoint.skip_ssl_validation, transport=transport
        )
        return Backend(
            endpoints=EndpointRepository(client, config),
            authenticator=AuthenticationClient(client, config, settings),
            directory=DirectoryClient(client, config),
            client=client,
        )

    return connect


class LoginFlow:
    """Entry point for ``perform interactive login``."""

    def __init__(
        self,
        config: ConfigStore,
        ui: UI,
        connect: Connector,
        *,
        min_api_version: str = DEFAULT_MIN_API_VERSION,
    ) -> None:
        self._config = config
        self._ui = ui
        self._connect = connect
        self._min_api_version = min_api_version

    def perform_login(self, options: LoginOptions) -> Session:
        """Log in, target an org and space, and remember the session.

        Raises:
            LoginError: a subclass describing which stage failed.
        """
        if options.sso and options.sso_passcode is not None:
            raise ConflictingAuthModeError()

        self._config.clear_session()
        endpoint = decide_endpoint(options, self._config, self._ui)

        backend = self._connect(endpoint)
        try:
            endpoint = backend.endpoints.update_endpoint(endpoint)
            try:
                self._check_endpoint(endpoint)
                self._authenticate(backend.authenticator, options)
                self._select_targets(backend.directory, options)
                self._config.update_instances()
                self._config.save()
            finally:
                self._ui.say("")
                self._ui.show_configuration(self._config)
        finally:
            backend.close()

        logger.info(f"Logged in to {endpoint.url}")
        return self._config.current_session()

    def _check_endpoint(self, endpoint: Endpoint) -> None:
        if endpoint.url.startswith("http://"):
            self._ui.warn(
                "Warning: Insecure http API endpoint detected: "
                "secure https API endpoints are recommended"
            )
        if not is_api_version_supported(self._config.api_version, self._min_api_version):
            self._ui.warn(
                "Your API version is no longer supported. Upgrade to a newer version of the API."
            )

    def _authenticate(self, authenticator: Authenticator, options: LoginOptions) -> None:
        negotiator = CredentialNegotiator(authenticator, self._ui)
        loop = AuthenticationLoop(authenticator, self._ui)

        if options.sso or options.sso_passcode is not None:
            logger.debug("Using single sign-on passcode flow")
            loop.authenticate(
                negotiator.passcode_strategy(
                    authentication_endpoint=self._config.authentication_endpoint,
                    passcode=options.sso_passcode,
                )
            )
            return

        if self._config.is_service_account():
            raise ServiceAccountActiveError()

        logger.debug("Using password flow")
        loop.authenticate(
            negotiator.password_strategy(username=options.username, password=options.password)
        )

    def _select_targets(self, directory: Directory, options: LoginOptions) -> None:
        selector = TargetSelector(directory, self._config, self._ui)
        organization = selector.select_organization(options.organization)
        if organization is not None:
            selector.select_space(organization, options.space)
