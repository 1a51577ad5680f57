"""Shared httpx plumbing for the API clients."""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from .config import Settings
from .errors import RemoteUnavailableError


def build_http_client(
    settings: Settings,
    *,
    skip_ssl_validation: bool = False,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create the synchronous client every collaborator shares for one command."""
    return httpx.Client(
        timeout=settings.request_timeout,
        verify=not skip_ssl_validation,
        headers={"Accept": "application/json"},
        follow_redirects=True,
        transport=transport,
    )


def read_json(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON object body or fail with a remote error."""
    try:
        body = response.json()
    except ValueError as exc:
        raise RemoteUnavailableError(
            f"Invalid JSON response from {response.request.url}: {response.text[:200]}"
        ) from exc
    if not isinstance(body, dict):
        raise RemoteUnavailableError(f"Unexpected response from {response.request.url}")
    return body


def get_json(
    client: httpx.Client,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> dict[str, Any]:
    """GET ``url`` and return its JSON body, translating transport failures."""
    logger.debug(f"GET {url} params={params}")
    try:
        response = client.get(url, params=params, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise RemoteUnavailableError(
            f"Server error, status code: {exc.response.status_code}, "
            f"request: GET {url}: {exc.response.text[:200]}"
        ) from exc
    except httpx.HTTPError as exc:
        raise RemoteUnavailableError(f"Request error: GET {url}: {exc}") from exc
    return read_json(response)
