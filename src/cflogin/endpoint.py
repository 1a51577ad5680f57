"""Decide which API endpoint to log in to and record it in the config."""

from __future__ import annotations

import httpx
from loguru import logger

from .config import ConfigStore
from .errors import RemoteUnavailableError
from .models import Endpoint, LoginOptions
from .terminal import UI
from .transport import get_json


def decide_endpoint(options: LoginOptions, config: ConfigStore, ui: UI) -> Endpoint:
    """Pick the endpoint: explicit option, else the persisted one, else ask.

    Skipping SSL validation is on when either the persisted setting or the
    explicit flag asks for it, whichever endpoint is chosen.
    """
    skip_ssl = config.ssl_disabled or options.skip_ssl_validation
    endpoint = options.endpoint or ""
    if not endpoint:
        endpoint = config.api_endpoint

    if not endpoint:
        endpoint = ui.ask("API endpoint")
    else:
        ui.say(f"API endpoint: {endpoint}")

    return Endpoint(url=endpoint, skip_ssl_validation=skip_ssl)


def normalize_endpoint(url: str) -> str:
    url = url.strip().rstrip("/")
    if "://" not in url:
        url = f"https://{url}"
    return url


def parse_version(version: str) -> tuple[int, ...] | None:
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError:
        return None


def is_api_version_supported(version: str, minimum: str) -> bool:
    """Compare dotted versions; unparseable values are given the benefit of the doubt."""
    current = parse_version(version)
    required = parse_version(minimum)
    if current is None or required is None:
        return True
    return current >= required


class EndpointRepository:
    """Look up an API endpoint's service links and store them."""

    def __init__(self, client: httpx.Client, config: ConfigStore) -> None:
        self._client = client
        self._config = config

    def update_endpoint(self, endpoint: Endpoint) -> Endpoint:
        url = normalize_endpoint(endpoint.url)
        logger.info(f"Resolving API endpoint {url}")

        info = get_json(self._client, f"{url}/v2/info")
        authorization_endpoint = info.get("authorization_endpoint")
        if not authorization_endpoint:
            raise RemoteUnavailableError(f"API endpoint {url} did not advertise a login server")

        self._config.set_api_endpoint(
            url,
            api_version=str(info.get("api_version") or ""),
            authorization_endpoint=str(authorization_endpoint).rstrip("/"),
            doppler_endpoint=str(info.get("doppler_logging_endpoint") or ""),
            log_cache_endpoint=self._log_cache_link(url),
            skip_ssl_validation=endpoint.skip_ssl_validation,
        )
        return Endpoint(url=url, skip_ssl_validation=endpoint.skip_ssl_validation)

    def _log_cache_link(self, url: str) -> str:
        try:
            root = get_json(self._client, f"{url}/")
        except RemoteUnavailableError as exc:
            cause = exc.__cause__
            if isinstance(cause, httpx.HTTPStatusError) and cause.response.status_code == 404:
                logger.debug(f"{url} has no root document; skipping log cache link")
                return ""
            raise
        links = root.get("links") or {}
        log_cache = links.get("log_cache") or {}
        return str(log_cache.get("href") or "") if isinstance(log_cache, dict) else ""
