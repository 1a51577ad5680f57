"""Build per-attempt credentials from the server-declared prompt catalog.

Collection happens in two phases. Static fields (the username and any other
text prompt) are gathered once before the first attempt and reused verbatim.
Retry-scoped fields (the password and other secrets) are gathered again for
every attempt.
"""

from __future__ import annotations

from typing import Protocol

from loguru import logger

from .models import Credentials, PromptCatalog, PromptKind, PromptSpec
from .terminal import UI

USERNAME = "username"
PASSWORD = "password"
PASSCODE = "passcode"


class Authenticator(Protocol):
    def fetch_prompts(self) -> PromptCatalog: ...

    def authenticate(self, credentials: Credentials) -> None: ...


class CredentialStrategy(Protocol):
    """One way of turning prompts into credentials for successive attempts."""

    def collect_static(self) -> Credentials: ...

    def credentials_for_attempt(self, attempt: int) -> Credentials: ...


class PasswordCredentials:
    """Username/password flow, including any extra MFA-style prompts."""

    def __init__(
        self,
        catalog: PromptCatalog,
        ui: UI,
        *,
        username: str | None = None,
        password: str | None = None,
    ) -> None:
        self._catalog = catalog
        self._ui = ui
        self._username = username
        self._password = password
        self._static: Credentials = {}
        self._secret_keys: list[str] = []

    def collect_static(self) -> Credentials:
        static: Credentials = {}

        username_prompt = self._catalog.get(USERNAME)
        if username_prompt is not None:
            if username_prompt.kind is PromptKind.TEXT and self._username:
                static[USERNAME] = self._username
            else:
                static[USERNAME] = self._ui.ask(username_prompt.display_label)

        self._secret_keys = []
        for name, prompt in self._catalog.items():
            if name in (USERNAME, PASSWORD, PASSCODE):
                continue
            if prompt.kind is PromptKind.SECRET:
                self._secret_keys.append(name)
            else:
                static[name] = self._ui.ask(prompt.display_label)

        self._static = static
        return dict(static)

    def credentials_for_attempt(self, attempt: int) -> Credentials:
        credentials = dict(self._static)

        # password goes before other secrets such as an MFA code
        password_prompt = self._catalog.get(PASSWORD)
        if password_prompt is not None:
            if attempt == 0 and self._password:
                credentials[PASSWORD] = self._password
            else:
                credentials[PASSWORD] = self._ui.ask_for_password(password_prompt.display_label)

        for key in self._secret_keys:
            credentials[key] = self._ui.ask_for_password(self._catalog[key].display_label)

        return credentials


class PasscodeCredentials:
    """Single sign-on flow driven by a one-time passcode."""

    def __init__(
        self,
        catalog: PromptCatalog,
        ui: UI,
        *,
        authentication_endpoint: str,
        passcode: str | None = None,
    ) -> None:
        self._ui = ui
        self._passcode = passcode
        self._prompt = catalog.get(PASSCODE) or PromptSpec(
            name=PASSCODE,
            kind=PromptKind.SECRET,
            display_label=(
                "Temporary Authentication Code ( Get one at "
                f"{authentication_endpoint}/passcode )"
            ),
        )

    @property
    def prompt(self) -> PromptSpec:
        return self._prompt

    def collect_static(self) -> Credentials:
        return {}

    def credentials_for_attempt(self, attempt: int) -> Credentials:
        if attempt == 0 and self._passcode is not None:
            return {PASSCODE: self._passcode}
        return {PASSCODE: self._ui.ask_for_password(self._prompt.display_label)}


class CredentialNegotiator:
    """Fetch the prompt catalog and hand out the matching credential strategy."""

    def __init__(self, authenticator: Authenticator, ui: UI) -> None:
        self._authenticator = authenticator
        self._ui = ui

    def fetch_prompts(self) -> PromptCatalog:
        catalog = self._authenticator.fetch_prompts()
        logger.debug(f"Negotiating credentials for prompts {list(catalog)}")
        return catalog

    def password_strategy(
        self, *, username: str | None = None, password: str | None = None
    ) -> PasswordCredentials:
        return PasswordCredentials(
            self.fetch_prompts(), self._ui, username=username, password=password
        )

    def passcode_strategy(
        self, *, authentication_endpoint: str, passcode: str | None = None
    ) -> PasscodeCredentials:
        return PasscodeCredentials(
            self.fetch_prompts(),
            self._ui,
            authentication_endpoint=authentication_endpoint,
            passcode=passcode,
        )
