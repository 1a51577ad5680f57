"""Authentication server client: login prompts and the OAuth password grant."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx
from loguru import logger

from .config import ConfigStore, Settings
from .errors import AuthenticationRejectedError, RemoteUnavailableError
from .models import Credentials, PromptCatalog, PromptKind, PromptSpec
from .transport import get_json, read_json

SENSITIVE_MARKERS = ("password", "passcode", "secret", "token", "code")


def redact_credentials(credentials: Mapping[str, str]) -> dict[str, str]:
    """Copy ``credentials`` with secret-looking values replaced for logging."""
    return {
        key: "[REDACTED]" if any(marker in key.lower() for marker in SENSITIVE_MARKERS) else value
        for key, value in credentials.items()
    }


def parse_prompts(payload: Mapping[str, Any]) -> PromptCatalog:
    """Turn ``{"prompts": {"name": ["type", "label"]}}`` into a catalog, keeping order."""
    raw_prompts = payload.get("prompts") or {}
    if not isinstance(raw_prompts, Mapping):
        raise RemoteUnavailableError("Login server returned malformed prompts")

    catalog: PromptCatalog = {}
    for name, declaration in raw_prompts.items():
        if not isinstance(declaration, list | tuple) or len(declaration) < 2:
            logger.warning(f"Ignoring malformed login prompt {name!r}: {declaration!r}")
            continue
        catalog[str(name)] = PromptSpec(
            name=str(name),
            kind=PromptKind.from_wire(str(declaration[0])),
            display_label=str(declaration[1]),
        )
    return catalog


class AuthenticationClient:
    """Talk to the login/UAA server the current API endpoint advertises."""

    TOKEN_PATH = "/oauth/token"

    def __init__(self, client: httpx.Client, config: ConfigStore, settings: Settings) -> None:
        self._client = client
        self._config = config
        self._settings = settings

    def fetch_prompts(self) -> PromptCatalog:
        """Return the server-declared prompts and remember the UAA server URL."""
        login_url = f"{self._config.authentication_endpoint}/login"
        payload = get_json(self._client, login_url)

        links = payload.get("links") or {}
        uaa_url = links.get("uaa") if isinstance(links, Mapping) else None
        self._config.set_uaa_endpoint(
            str(uaa_url).rstrip("/") if uaa_url else self._config.authentication_endpoint
        )

        catalog = parse_prompts(payload)
        logger.debug(f"Login server declared prompts: {list(catalog)}")
        return catalog

    def authenticate(self, credentials: Credentials) -> None:
        """Exchange credentials for tokens and store them.

        Raises:
            AuthenticationRejectedError: with the server's explanation when the
                attempt fails for any reason.
        """
        token_url = f"{self._config.uaa_endpoint or self._config.authentication_endpoint}"
        token_url = f"{token_url}{self.TOKEN_PATH}"
        form = {"grant_type": "password", "scope": "", **credentials}
        logger.debug(f"POST {token_url} fields={redact_credentials(credentials)}")

        try:
            response = self._client.post(
                token_url,
                data=form,
                auth=(self._settings.client_id, self._settings.client_secret),
            )
        except httpx.HTTPError as exc:
            raise AuthenticationRejectedError(f"Request error: POST {token_url}: {exc}") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthenticationRejectedError("Credentials were rejected, please try again.")
        if response.is_error:
            raise AuthenticationRejectedError(self._describe_failure(response))

        try:
            body = read_json(response)
        except RemoteUnavailableError as exc:
            raise AuthenticationRejectedError(exc.message) from exc

        access_token = body.get("access_token")
        if not access_token:
            raise AuthenticationRejectedError("Authentication response did not include a token")

        token_type = str(body.get("token_type") or "bearer")
        self._config.set_tokens(
            f"{token_type} {access_token}",
            str(body.get("refresh_token") or ""),
        )
        logger.info("Authentication succeeded")

    @staticmethod
    def _describe_failure(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            description = body.get("error_description") or body.get("error")
            if description:
                return str(description)
        return f"Server error, status code: {response.status_code}: {response.text[:200]}"
