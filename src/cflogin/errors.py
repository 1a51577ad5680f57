"""Typed failures raised by the login pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Distinguishable failure categories so callers can branch on them."""

    USAGE = "usage"
    SERVICE_ACCOUNT_ACTIVE = "service_account_active"
    REMOTE_UNAVAILABLE = "remote_unavailable"
    AUTHENTICATION_FAILED = "authentication_failed"
    AUTHENTICATION_REJECTED = "authentication_rejected"
    ORGANIZATION_NOT_FOUND = "organization_not_found"
    SPACE_NOT_FOUND = "space_not_found"


class LoginError(Exception):
    """Base class for every user-facing login failure."""

    kind: ErrorKind = ErrorKind.USAGE

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ConflictingAuthModeError(LoginError):
    kind = ErrorKind.USAGE

    def __init__(self) -> None:
        super().__init__("Incorrect usage: --sso-passcode flag cannot be used with --sso")


class ServiceAccountActiveError(LoginError):
    kind = ErrorKind.SERVICE_ACCOUNT_ACTIVE

    def __init__(self) -> None:
        super().__init__(
            "Service account currently logged in. "
            "Use 'cflogin logout' to log out service account and try again."
        )


class RemoteUnavailableError(LoginError):
    """A prompt fetch, endpoint lookup or directory listing could not be completed."""

    kind = ErrorKind.REMOTE_UNAVAILABLE


class AuthenticationRejectedError(LoginError):
    """One authentication attempt failed; the message is the server's explanation.

    Never terminal on its own: the retry loop reports it and carries on.
    """

    kind = ErrorKind.AUTHENTICATION_REJECTED


class AuthenticationFailedError(LoginError):
    kind = ErrorKind.AUTHENTICATION_FAILED

    def __init__(self) -> None:
        super().__init__("Unable to authenticate.")


class OrganizationNotFoundError(LoginError):
    kind = ErrorKind.ORGANIZATION_NOT_FOUND

    def __init__(self, name: str, detail: str | None = None) -> None:
        self.name = name
        message = f"Error finding org {name}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)


class SpaceNotFoundError(LoginError):
    kind = ErrorKind.SPACE_NOT_FOUND

    def __init__(self, name: str, detail: str | None = None) -> None:
        self.name = name
        message = f"Error finding space {name}"
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
