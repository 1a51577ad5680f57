"""Data model for endpoints, credential prompts, targets and sessions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PromptKind(str, Enum):
    """How a server-declared prompt is collected from the user."""

    TEXT = "text"
    SECRET = "password"

    @classmethod
    def from_wire(cls, value: str) -> PromptKind:
        """Map the authentication server's prompt type onto a kind.

        Anything that is not an explicit ``password`` type is read back as text.
        """
        return cls.SECRET if value == cls.SECRET.value else cls.TEXT


class PromptSpec(BaseModel):
    """A named credential field declared by the authentication server."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Credential key sent to the token endpoint", examples=["username"])
    kind: PromptKind = Field(description="Plain text or secret input")
    display_label: str = Field(description="Label shown to the user", examples=["Email"])


PromptCatalog = dict[str, PromptSpec]
Credentials = dict[str, str]


class Endpoint(BaseModel):
    """API endpoint to target; identity is the URL string."""

    model_config = ConfigDict(frozen=True)

    url: str
    skip_ssl_validation: bool = False


class OrganizationFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    guid: str = ""
    name: str = ""


class SpaceFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    guid: str = ""
    name: str = ""


class Organization(BaseModel):
    """Read-only organization snapshot returned by the directory."""

    model_config = ConfigDict(frozen=True)

    guid: str
    name: str

    @property
    def fields(self) -> OrganizationFields:
        return OrganizationFields(guid=self.guid, name=self.name)


class Space(BaseModel):
    """Read-only space snapshot returned by the directory."""

    model_config = ConfigDict(frozen=True)

    guid: str
    name: str

    @property
    def fields(self) -> SpaceFields:
        return SpaceFields(guid=self.guid, name=self.name)


class Session(BaseModel):
    """Authenticated state for one API endpoint, as remembered in the history.

    Sessions are immutable; a new login produces a new value that supersedes any
    remembered entry sharing the same ``auth_endpoint``.
    """

    model_config = ConfigDict(frozen=True)

    endpoint_url: str = ""
    access_token: str = ""
    refresh_token: str = ""
    api_version: str = ""
    auth_endpoint: str = Field(default="", description="Identity key of the session")
    uaa_endpoint: str = ""
    doppler_endpoint: str = ""
    log_cache_endpoint: str = ""
    organization_fields: OrganizationFields = Field(default_factory=OrganizationFields)
    space_fields: SpaceFields = Field(default_factory=SpaceFields)

    @property
    def identity(self) -> str:
        return self.auth_endpoint


class LoginOptions(BaseModel):
    """Raw inputs of an interactive login; ``None`` means the option was not supplied."""

    endpoint: str | None = None
    skip_ssl_validation: bool = False
    username: str | None = None
    password: str | None = None
    organization: str | None = None
    space: str | None = None
    sso: bool = False
    sso_passcode: str | None = None
