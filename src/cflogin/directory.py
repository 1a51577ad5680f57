"""Cloud Controller v3 lookups for organizations and spaces."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from .config import ConfigStore
from .errors import OrganizationNotFoundError, RemoteUnavailableError, SpaceNotFoundError
from .models import Organization, Space
from .transport import get_json

ModelT = TypeVar("ModelT", bound=BaseModel)


class DirectoryClient:
    """List and find the organizations and spaces visible to the logged-in user."""

    def __init__(self, client: httpx.Client, config: ConfigStore) -> None:
        self._client = client
        self._config = config

    def list_organizations(self, limit: int) -> list[Organization]:
        """Return at most ``limit`` organizations ordered by name."""
        return self._collect("/v3/organizations", {"order_by": "name"}, limit, Organization)

    def find_organization_by_name(self, name: str) -> Organization:
        found = self._collect("/v3/organizations", {"names": name}, 1, Organization)
        if not found:
            raise OrganizationNotFoundError(name, f"Organization {name} not found")
        return found[0]

    def list_spaces(self, organization_guid: str, limit: int) -> list[Space]:
        """Return at most ``limit`` spaces of one organization ordered by name."""
        params = {"organization_guids": organization_guid, "order_by": "name"}
        return self._collect("/v3/spaces", params, limit, Space)

    def find_space_by_name(self, organization_guid: str, name: str) -> Space:
        params = {"organization_guids": organization_guid, "names": name}
        found = self._collect("/v3/spaces", params, 1, Space)
        if not found:
            raise SpaceNotFoundError(name, f"Space {name} not found")
        return found[0]

    def _headers(self) -> dict[str, str]:
        return {"Authorization": self._config.access_token}

    def _collect(
        self, path: str, params: dict[str, Any], limit: int, model: type[ModelT]
    ) -> list[ModelT]:
        """Follow ``pagination.next`` links until ``limit`` records are gathered."""
        url: str | None = f"{self._config.api_endpoint}{path}"
        query: dict[str, Any] | None = {**params, "per_page": limit}
        records: list[ModelT] = []

        while url and len(records) < limit:
            page = get_json(self._client, url, params=query, headers=self._headers())
            for resource in page.get("resources") or []:
                try:
                    records.append(model.model_validate(resource))
                except ValidationError as exc:
                    logger.error(f"{model.__name__} validation failed: {exc}")
                    raise RemoteUnavailableError(
                        f"Invalid {model.__name__.lower()} record received from {path}"
                    ) from exc

            pagination = page.get("pagination") or {}
            next_link = pagination.get("next") or {}
            url = next_link.get("href") if isinstance(next_link, dict) else None
            query = None

        logger.debug(f"Retrieved {len(records[:limit])} {model.__name__.lower()} records")
        return records[:limit]
