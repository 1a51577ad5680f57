"""Resolve the organization and space to target after logging in."""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Protocol

from loguru import logger

from .config import ConfigStore
from .errors import OrganizationNotFoundError, RemoteUnavailableError, SpaceNotFoundError
from .models import Organization, Space
from .terminal import UI

MAX_CHOICES = 50
MENU_NUMBER = re.compile(r"[+-]?[0-9]+")


class Directory(Protocol):
    def list_organizations(self, limit: int) -> list[Organization]: ...

    def find_organization_by_name(self, name: str) -> Organization: ...

    def list_spaces(self, organization_guid: str, limit: int) -> list[Space]: ...

    def find_space_by_name(self, organization_guid: str, name: str) -> Space: ...


def prompt_for_name(ui: UI, names: Sequence[str], list_prompt: str, item_prompt: str) -> str:
    """Ask the user to pick one of ``names``.

    A plain ASCII integer in range selects that entry, one out of range asks again, an
    empty answer returns ``""`` and any other answer is returned as a literal
    name without checking it against ``names``.
    """
    while True:
        ui.say(list_prompt)
        if len(names) < MAX_CHOICES:
            for position, name in enumerate(names, start=1):
                ui.say(f"{position}. {name}")
        else:
            ui.say("There are too many options to display, please type in the name.")

        answer = ui.ask(item_prompt)
        if answer == "":
            return ""

        if not MENU_NUMBER.fullmatch(answer):
            return answer

        index = int(answer)
        if 1 <= index <= len(names):
            return names[index - 1]


class TargetSelector:
    """Pick an organization, then a space inside it, and record them in the config."""

    def __init__(self, directory: Directory, config: ConfigStore, ui: UI) -> None:
        self._directory = directory
        self._config = config
        self._ui = ui

    def select_organization(self, name: str | None = None) -> Organization | None:
        """Target an organization; ``None`` means nothing was targeted."""
        if not name:
            try:
                organizations = self._directory.list_organizations(MAX_CHOICES)
            except RemoteUnavailableError as exc:
                raise RemoteUnavailableError(
                    f"Error finding available orgs\n{exc.message}"
                ) from exc

            if not organizations:
                logger.info("No organizations available to target")
                return None
            if len(organizations) == 1:
                return self._target_organization(organizations[0])

            name = prompt_for_name(
                self._ui,
                [organization.name for organization in organizations],
                "Select an org (or press enter to skip):",
                "Org",
            )
            if not name:
                self._ui.say("")
                return None

        try:
            organization = self._directory.find_organization_by_name(name)
        except RemoteUnavailableError as exc:
            raise OrganizationNotFoundError(name, exc.message) from exc
        return self._target_organization(organization)

    def select_space(self, organization: Organization, name: str | None = None) -> Space | None:
        """Target a space of ``organization``; ``None`` means nothing was targeted."""
        if not name:
            try:
                spaces = self._directory.list_spaces(organization.guid, MAX_CHOICES)
            except RemoteUnavailableError as exc:
                raise RemoteUnavailableError(
                    f"Error finding available spaces\n{exc.message}"
                ) from exc

            if not spaces:
                logger.info(f"No spaces available to target in {organization.name}")
                return None
            if len(spaces) == 1:
                return self._target_space(spaces[0])

            name = prompt_for_name(
                self._ui,
                [space.name for space in spaces],
                "Select a space (or press enter to skip):",
                "Space",
            )
            if not name:
                self._ui.say("")
                return None

        try:
            space = self._directory.find_space_by_name(organization.guid, name)
        except RemoteUnavailableError as exc:
            raise SpaceNotFoundError(name, exc.message) from exc
        return self._target_space(space)

    def _target_organization(self, organization: Organization) -> Organization:
        self._config.set_organization_fields(organization.fields)
        self._ui.say(f"Targeted org {organization.name}\n")
        return organization

    def _target_space(self, space: Space) -> Space:
        self._config.set_space_fields(space.fields)
        self._ui.say(f"Targeted space {space.name}\n")
        return space
