"""Tests for the persisted configuration and user settings."""

from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from cflogin.config import ConfigStore, Settings, load_settings, resolve_config_dir
from cflogin.models import OrganizationFields, Session, SpaceFields


def _jwt(claims: dict[str, str]) -> str:
    payload = base64.urlsafe_b64encode(json.dumps(claims).encode()).decode().rstrip("=")
    return f"header.{payload}.signature"


def test_resolve_config_dir_prefers_explicit_path(tmp_path: Path) -> None:
    assert resolve_config_dir(tmp_path / "explicit") == tmp_path / "explicit"


def test_resolve_config_dir_uses_environment(isolated_home: Path) -> None:
    assert resolve_config_dir() == isolated_home


def test_save_and_reload_round_trips_target_and_history(isolated_home: Path) -> None:
    """Given a populated store, when saved and reloaded, then every field and
    the session history come back."""
    store = ConfigStore()
    store.set_api_endpoint(
        "https://api.example.com",
        api_version="2.164.0",
        authorization_endpoint="https://login.example.com",
        skip_ssl_validation=True,
    )
    store.set_tokens("bearer abc", "refresh")
    store.set_organization_fields(OrganizationFields(guid="o1", name="org1"))
    store.set_space_fields(SpaceFields(guid="s1", name="space1"))
    store.update_instances()
    store.save()

    reloaded = ConfigStore(isolated_home)

    assert reloaded.api_endpoint == "https://api.example.com"
    assert reloaded.ssl_disabled is True
    assert reloaded.access_token == "bearer abc"
    assert reloaded.space_fields.name == "space1"
    assert reloaded.instances == [store.current_session()]
    assert not (isolated_home / "config.tmp").exists()


def test_clear_session_keeps_grant_type_and_endpoint(config_store: ConfigStore) -> None:
    config_store.set_api_endpoint(
        "https://api.example.com", api_version="", authorization_endpoint=""
    )
    config_store.set_tokens("bearer svc", "r", grant_type="client_credentials")
    config_store.set_organization_fields(OrganizationFields(guid="o1", name="org1"))

    config_store.clear_session()

    assert config_store.access_token == ""
    assert config_store.refresh_token == ""
    assert config_store.organization_fields == OrganizationFields()
    assert config_store.is_service_account()
    assert config_store.api_endpoint == "https://api.example.com"


def test_corrupt_config_is_backed_up_and_replaced(isolated_home: Path) -> None:
    """Given an unreadable config.json, when loading, then it is copied to a
    .bak file and an empty configuration is used."""
    isolated_home.mkdir(parents=True)
    (isolated_home / "config.json").write_text("{not json", encoding="utf-8")

    store = ConfigStore(isolated_home)

    assert store.api_endpoint == ""
    assert store.instances == []
    assert (isolated_home / "config.json.bak").read_text(encoding="utf-8") == "{not json"


def test_username_is_read_from_token_claims(config_store: ConfigStore) -> None:
    config_store.set_tokens(f"bearer {_jwt({'user_name': 'alice'})}", "")
    assert config_store.username() == "alice"

    config_store.set_tokens(_jwt({"client_id": "robot"}), "")
    assert config_store.username() == "robot"

    config_store.set_tokens("bearer opaque-token", "")
    assert config_store.username() == ""


def test_set_organization_clears_space(config_store: ConfigStore) -> None:
    config_store.set_space_fields(SpaceFields(guid="s1", name="space1"))

    config_store.set_organization_fields(OrganizationFields(guid="o2", name="org2"))

    assert config_store.space_fields == SpaceFields()


def test_instances_are_copied_on_read(config_store: ConfigStore) -> None:
    config_store.set_instances([Session(auth_endpoint="https://login.x.com")])

    config_store.instances.clear()

    assert len(config_store.instances) == 1


def test_load_settings_defaults(isolated_home: Path) -> None:
    assert load_settings() == Settings()


def test_load_settings_reads_yaml_then_environment(
    isolated_home: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Given settings.yml and a CFLOGIN_ variable, when loading, then the
    environment wins over the file and the file over the defaults."""
    isolated_home.mkdir(parents=True)
    (isolated_home / "settings.yml").write_text(
        "client_id: custom-cli\nrequest_timeout: 5\nlog_level: INFO\n", encoding="utf-8"
    )
    monkeypatch.setenv("CFLOGIN_LOG_LEVEL", "DEBUG")

    settings = load_settings()

    assert settings.client_id == "custom-cli"
    assert settings.request_timeout == 5.0
    assert settings.log_level == "DEBUG"
    assert settings.min_api_version == "2.128.0"


def test_load_settings_rejects_non_mapping_file(isolated_home: Path) -> None:
    isolated_home.mkdir(parents=True)
    (isolated_home / "settings.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        load_settings()
