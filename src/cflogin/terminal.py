"""Interactive terminal used by the login flow."""

from __future__ import annotations

import getpass
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol, TextIO

if TYPE_CHECKING:
    from .config import ConfigStore


class UI(Protocol):
    """Terminal surface the login pipeline depends on."""

    def ask(self, label: str) -> str: ...

    def ask_for_password(self, label: str) -> str: ...

    def say(self, message: str) -> None: ...

    def warn(self, message: str) -> None: ...

    def ok(self) -> None: ...

    def confirm(self, message: str) -> bool: ...

    def show_configuration(self, config: ConfigStore) -> None: ...


class Terminal:
    """Line-oriented terminal over ``input``/``getpass``."""

    def __init__(
        self,
        stdout: TextIO | None = None,
        stderr: TextIO | None = None,
        read_line: Callable[[str], str] = input,
        read_secret: Callable[[str], str] = getpass.getpass,
    ) -> None:
        self._out = stdout or sys.stdout
        self._err = stderr or sys.stderr
        self._read_line = read_line
        self._read_secret = read_secret

    def ask(self, label: str) -> str:
        self._out.write("\n")
        self._out.flush()
        return self._read_line(f"{label}> ").strip()

    def ask_for_password(self, label: str) -> str:
        self._out.write("\n")
        self._out.flush()
        return self._read_secret(f"{label}> ")

    def say(self, message: str) -> None:
        print(message, file=self._out)

    def warn(self, message: str) -> None:
        print(message, file=self._err)

    def ok(self) -> None:
        self.say("OK")

    def confirm(self, message: str) -> bool:
        answer = self.ask(message).lower()
        return answer in ("y", "yes")

    def show_configuration(self, config: ConfigStore) -> None:
        rows = [
            ("API endpoint:", config.api_endpoint),
            ("API version:", config.api_version),
            ("user:", config.username()),
            ("org:", config.organization_fields.name),
            ("space:", config.space_fields.name),
        ]
        for label, value in rows:
            if not value and label in ("org:", "space:") and config.is_logged_in():
                value = f"No {label[:-1]} targeted"
            self.say(f"{label:<14}{value}")
