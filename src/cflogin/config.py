"""Persisted CLI configuration and user settings.

Two layers live in the configuration directory (``$CFLOGIN_HOME`` or
``~/.cflogin``):

* ``config.json`` holds the current target, tokens and the remembered session
  history. It is owned by :class:`ConfigStore` and rewritten atomically.
* ``settings.yml`` is optional and user-edited. It is loaded with OmegaConf so
  values may use ``${oc.env:...}`` interpolation, and ``CFLOGIN_*`` environment
  variables override it.
"""

from __future__ import annotations

import base64
import json
import os
import shutil
from pathlib import Path
from typing import Any

from loguru import logger
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field

from .models import OrganizationFields, Session, SpaceFields
from .session_store import merge_current_session

CONFIG_HOME_ENV = "CFLOGIN_HOME"
CONFIG_FILE_NAME = "config.json"
SETTINGS_FILE_NAME = "settings.yml"
SETTINGS_ENV_PREFIX = "CFLOGIN_"
CLIENT_CREDENTIALS_GRANT = "client_credentials"


def resolve_config_dir(config_dir: Path | str | None = None) -> Path:
    """Return the configuration directory, honouring ``CFLOGIN_HOME``."""
    if config_dir is not None:
        return Path(config_dir).expanduser()
    env_path = os.environ.get(CONFIG_HOME_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".cflogin"


class Settings(BaseModel):
    """User-tunable client settings."""

    client_id: str = Field(default="cf", description="OAuth client used for the password grant")
    client_secret: str = Field(default="", description="Secret of the OAuth client")
    request_timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds")
    log_level: str = Field(default="WARNING", description="loguru level for the stderr sink")
    min_api_version: str = Field(
        default="2.128.0", description="Oldest Cloud Controller API version still supported"
    )


def _settings_from_env() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in Settings.model_fields:
        value = os.environ.get(f"{SETTINGS_ENV_PREFIX}{name.upper()}")
        if value is not None:
            overrides[name] = value
    return overrides


def load_settings(config_dir: Path | str | None = None) -> Settings:
    """Merge defaults, ``settings.yml`` and ``CFLOGIN_*`` environment overrides."""
    layers: list[DictConfig] = [OmegaConf.create(Settings().model_dump())]

    location = resolve_config_dir(config_dir) / SETTINGS_FILE_NAME
    if location.exists():
        loaded = OmegaConf.load(location)
        if not isinstance(loaded, DictConfig):
            raise ValueError(f"Settings file must contain a mapping: {location}")
        layers.append(loaded)
        logger.debug(f"Loaded settings from {location}")

    layers.append(OmegaConf.create(_settings_from_env()))
    merged = OmegaConf.to_container(OmegaConf.merge(*layers), resolve=True)
    if not isinstance(merged, dict):
        raise ValueError("Settings must resolve to a mapping of option names.")
    return Settings.model_validate({str(key): value for key, value in merged.items()})


class ConfigData(BaseModel):
    """On-disk shape of ``config.json``."""

    config_version: int = 1
    target: str = ""
    api_version: str = ""
    authorization_endpoint: str = ""
    uaa_endpoint: str = ""
    doppler_logging_endpoint: str = ""
    log_cache_endpoint: str = ""
    access_token: str = ""
    refresh_token: str = ""
    uaa_grant_type: str = ""
    ssl_disabled: bool = False
    organization_fields: OrganizationFields = Field(default_factory=OrganizationFields)
    space_fields: SpaceFields = Field(default_factory=SpaceFields)
    instances: list[Session] = Field(default_factory=list)


class ConfigStore:
    """Read/write access to the persisted CLI configuration.

    One instance is created per command and handed to every component that
    needs it; nothing reads the configuration through module globals.
    """

    def __init__(self, config_dir: Path | str | None = None) -> None:
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = self.config_dir / CONFIG_FILE_NAME
        self._data = self._load()

    def _load(self) -> ConfigData:
        if not self.config_file.exists():
            return ConfigData()

        try:
            with open(self.config_file, encoding="utf-8") as f:
                return ConfigData.model_validate(json.load(f))
        except Exception as e:
            logger.error(f"Failed to load config: {e}. Backing up and starting fresh.")
            backup_path = self.config_file.with_suffix(".json.bak")
            try:
                shutil.copy(self.config_file, backup_path)
                logger.warning(f"Corrupted config backed up to {backup_path}")
            except OSError as backup_err:
                logger.error(f"Failed to backup corrupted config: {backup_err}")
            return ConfigData()

    def save(self) -> None:
        """Persist the configuration using an atomic write."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        temp_file = self.config_file.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                f.write(self._data.model_dump_json(indent=2))
                f.flush()
                os.fsync(f.fileno())
            temp_file.replace(self.config_file)
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            if temp_file.exists():
                temp_file.unlink()
            raise
        logger.debug(f"Saved config to {self.config_file}")

    # -- session reset -------------------------------------------------------

    def clear_session(self) -> None:
        """Forget tokens and targets of the current session.

        The grant type is kept so a logged-in service account is still detected.
        """
        self._data.access_token = ""
        self._data.refresh_token = ""
        self._data.organization_fields = OrganizationFields()
        self._data.space_fields = SpaceFields()

    # -- endpoint ------------------------------------------------------------

    @property
    def api_endpoint(self) -> str:
        return self._data.target

    @property
    def ssl_disabled(self) -> bool:
        return self._data.ssl_disabled

    @property
    def api_version(self) -> str:
        return self._data.api_version

    @property
    def authentication_endpoint(self) -> str:
        return self._data.authorization_endpoint

    @property
    def uaa_endpoint(self) -> str:
        return self._data.uaa_endpoint

    @property
    def doppler_endpoint(self) -> str:
        return self._data.doppler_logging_endpoint

    @property
    def log_cache_endpoint(self) -> str:
        return self._data.log_cache_endpoint

    def set_api_endpoint(
        self,
        url: str,
        *,
        api_version: str,
        authorization_endpoint: str,
        doppler_endpoint: str = "",
        log_cache_endpoint: str = "",
        skip_ssl_validation: bool = False,
    ) -> None:
        self._data.target = url
        self._data.api_version = api_version
        self._data.authorization_endpoint = authorization_endpoint
        self._data.doppler_logging_endpoint = doppler_endpoint
        self._data.log_cache_endpoint = log_cache_endpoint
        self._data.ssl_disabled = skip_ssl_validation

    def set_uaa_endpoint(self, url: str) -> None:
        self._data.uaa_endpoint = url

    # -- tokens --------------------------------------------------------------

    @property
    def access_token(self) -> str:
        return self._data.access_token

    @property
    def refresh_token(self) -> str:
        return self._data.refresh_token

    @property
    def uaa_grant_type(self) -> str:
        return self._data.uaa_grant_type

    def set_tokens(self, access_token: str, refresh_token: str, grant_type: str = "") -> None:
        self._data.access_token = access_token
        self._data.refresh_token = refresh_token
        self._data.uaa_grant_type = grant_type

    def is_service_account(self) -> bool:
        return self._data.uaa_grant_type == CLIENT_CREDENTIALS_GRANT

    def is_logged_in(self) -> bool:
        return bool(self._data.access_token)

    def token_claims(self) -> dict[str, Any]:
        """Decode the (unverified) JWT payload of the access token."""
        token = self._data.access_token.split(" ", 1)[-1]
        parts = token.split(".")
        if len(parts) != 3:
            return {}
        payload = parts[1] + "=" * (-len(parts[1]) % 4)
        try:
            claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
        except (ValueError, UnicodeDecodeError):
            return {}
        return claims if isinstance(claims, dict) else {}

    def username(self) -> str:
        claims = self.token_claims()
        return str(claims.get("user_name") or claims.get("client_id") or "")

    # -- targets -------------------------------------------------------------

    @property
    def organization_fields(self) -> OrganizationFields:
        return self._data.organization_fields

    @property
    def space_fields(self) -> SpaceFields:
        return self._data.space_fields

    def set_organization_fields(self, fields: OrganizationFields) -> None:
        self._data.organization_fields = fields
        self._data.space_fields = SpaceFields()

    def set_space_fields(self, fields: SpaceFields) -> None:
        self._data.space_fields = fields

    # -- history -------------------------------------------------------------

    @property
    def instances(self) -> list[Session]:
        return list(self._data.instances)

    def set_instances(self, instances: list[Session]) -> None:
        self._data.instances = list(instances)

    def current_session(self) -> Session:
        """Snapshot the current target and tokens as a history entry."""
        return Session(
            endpoint_url=self._data.target,
            access_token=self._data.access_token,
            refresh_token=self._data.refresh_token,
            api_version=self._data.api_version,
            auth_endpoint=self._data.authorization_endpoint,
            uaa_endpoint=self._data.uaa_endpoint,
            doppler_endpoint=self._data.doppler_logging_endpoint,
            log_cache_endpoint=self._data.log_cache_endpoint,
            organization_fields=self._data.organization_fields,
            space_fields=self._data.space_fields,
        )

    def update_instances(self) -> list[Session]:
        """Put the current session at the head of the remembered history."""
        history = merge_current_session(self.current_session(), self._data.instances)
        self._data.instances = history
        return list(history)
