"""
Tests for environment driven configuration.
"""
import sys
from pathlib import Path

import httpx
import pytest

from toons_library.config import (
    DEFAULT_CALLBACK_URL,
    DEFAULT_SCOPES,
    EsiConfig,
    data_root,
    get_toons_file,
    logs_dir,
)
from toons_library.error_handler import ConfigValidationError


BASE_ENV = {"ESI_CLIENT_ID": "cid", "ESI_SECRET": "secret"}


def test_defaults(tmp_path):
    config = EsiConfig.from_env(BASE_ENV, tmp_path)

    assert config.client_id == "cid"
    assert config.client_secret == "secret"
    assert config.callback_url == DEFAULT_CALLBACK_URL
    assert config.scopes == DEFAULT_SCOPES
    assert config.user_agent == "eve-toons-agent"
    assert config.toons_file == tmp_path / "toons.json"
    assert config.request_timeout == 30.0


def test_callback_url_parts():
    config = EsiConfig("cid", "secret", callback_url="http://localhost:8123/sso/done")
    assert config.callback_host == "127.0.0.1"
    assert config.callback_port == 8123
    assert config.callback_path == "/sso/done"


def test_callback_url_without_port_defaults_to_80():
    config = EsiConfig("cid", "secret", callback_url="http://localhost/esi/callback")
    assert config.callback_port == 80


def test_callback_host_ignores_url_host():
    config = EsiConfig("cid", "secret", callback_url="http://example.com:5000/esi/callback")
    assert config.callback_host == "127.0.0.1"


def test_overrides(tmp_path):
    env = dict(
        BASE_ENV,
        ESI_CALLBACK_URL="http://localhost:6000/cb",
        ESI_SCOPES="  esi-skills.read_skills.v1   esi-skills.read_skillqueue.v1 ",
        ESI_USER_AGENT="my-agent/1.0",
        ESI_REQUEST_TIMEOUT="12.5",
        TOONS_FILE=str(tmp_path / "elsewhere.json"),
    )
    config = EsiConfig.from_env(env, tmp_path)

    assert config.callback_port == 6000
    assert config.scopes == ("esi-skills.read_skills.v1", "esi-skills.read_skillqueue.v1")
    assert config.scope_string == "esi-skills.read_skills.v1 esi-skills.read_skillqueue.v1"
    assert config.user_agent == "my-agent/1.0"
    assert config.request_timeout == 12.5
    assert config.toons_file == tmp_path / "elsewhere.json"
    assert isinstance(config.http_timeout(), httpx.Timeout)


def test_client_secret_fallback_name(tmp_path):
    config = EsiConfig.from_env({"ESI_CLIENT_ID": "cid", "ESI_CLIENT_SECRET": "alt"}, tmp_path)
    assert config.client_secret == "alt"


def test_all_problems_reported_together(tmp_path):
    with pytest.raises(ConfigValidationError) as excinfo:
        EsiConfig.from_env({"ESI_CALLBACK_URL": "https://localhost:5000/"}, tmp_path)

    problems = excinfo.value.problems
    assert any("ESI_CLIENT_ID" in p for p in problems)
    assert any("ESI_SECRET" in p for p in problems)
    assert any("ESI_CALLBACK_URL" in p for p in problems)
    assert "ESI_CLIENT_ID" in str(excinfo.value)


@pytest.mark.parametrize(
    "url",
    ["localhost:5000/esi/callback", "http://localhost:5000", "http://localhost:99999/cb"],
)
def test_bad_callback_url(url):
    with pytest.raises(ConfigValidationError):
        EsiConfig("cid", "secret", callback_url=url)


def test_invalid_timeout_falls_back_to_default(tmp_path, caplog):
    with caplog.at_level("WARNING", logger="toons_library"):
        config = EsiConfig.from_env(dict(BASE_ENV, ESI_REQUEST_TIMEOUT="soon"), tmp_path)
    assert config.request_timeout == 30.0
    assert "ESI_REQUEST_TIMEOUT" in caplog.text


def test_non_positive_timeout_rejected(tmp_path):
    with pytest.raises(ConfigValidationError):
        EsiConfig.from_env(dict(BASE_ENV, ESI_REQUEST_TIMEOUT="0"), tmp_path)


def test_config_is_immutable():
    config = EsiConfig("cid", "secret")
    with pytest.raises(AttributeError):
        config.client_id = "other"


def test_toons_file_does_not_need_credentials(tmp_path):
    assert get_toons_file({}, tmp_path) == tmp_path / "toons.json"
    assert get_toons_file({"TOONS_FILE": "~/x.json"}, tmp_path) == Path("~/x.json").expanduser()


def test_data_root_is_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert data_root() == tmp_path.resolve()
    assert EsiConfig("cid", "secret").toons_file == tmp_path.resolve() / "toons.json"


def test_data_root_of_frozen_build(tmp_path, monkeypatch):
    monkeypatch.setattr(sys, "frozen", True, raising=False)
    monkeypatch.setattr(sys, "executable", str(tmp_path / "eve-toons.exe"))
    assert data_root() == tmp_path.resolve()


def test_logs_dir_is_created(tmp_path):
    logs = logs_dir(tmp_path)
    assert logs == tmp_path / "logs"
    assert logs.is_dir()
