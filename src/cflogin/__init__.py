"""Interactive login and org/space targeting for Cloud Foundry style platforms."""

from .config import ConfigStore, Settings, load_settings
from .errors import ErrorKind, LoginError
from .login import AuthenticationLoop, LoginFlow, http_connector
from .models import LoginOptions, Session
from .session_store import merge_current_session
from .version import __version__

__all__ = [
    "AuthenticationLoop",
    "ConfigStore",
    "ErrorKind",
    "LoginError",
    "LoginFlow",
    "LoginOptions",
    "Session",
    "Settings",
    "__version__",
    "http_connector",
    "load_settings",
    "merge_current_session",
]
