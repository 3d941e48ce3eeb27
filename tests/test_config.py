from __future__ import annotations

import pytest

from pyhasync.config import HaSyncConfig
from pyhasync.exceptions import HaConfigError


def test_from_env_reads_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HASYNC_BASE_URL", "http://ha.local:8123")
    monkeypatch.setenv("HASYNC_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("HASYNC_CALL_TIMEOUT", "2.5")
    monkeypatch.setenv("HASYNC_ECHO_WINDOW", "1")
    monkeypatch.setenv("HASYNC_VERIFY_SSL", "off")

    config = HaSyncConfig.from_env()

    assert config.base_url == "http://ha.local:8123"
    assert config.access_token == "tok"
    assert config.call_timeout == 2.5
    assert config.echo_window == 1.0
    assert config.verify_ssl is False
    assert config.connect_timeout == 60.0
    assert config.debounce_delay == 0.01


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HASYNC_BASE_URL", "http://ha.local:8123")
    monkeypatch.setenv("HASYNC_ACCESS_TOKEN", "tok")
    monkeypatch.setenv("HASYNC_DEBOUNCE_DELAY", "0.5")

    config = HaSyncConfig.from_env(debounce_delay=0.02, access_token="other")

    assert config.debounce_delay == 0.02
    assert config.access_token == "other"


def test_from_env_requires_url_and_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("HASYNC_BASE_URL", raising=False)
    monkeypatch.delenv("HASYNC_ACCESS_TOKEN", raising=False)

    with pytest.raises(HaConfigError):
        HaSyncConfig.from_env()


@pytest.mark.parametrize(
    ("base_url", "token"),
    [("", "tok"), ("ha.local", "tok"), ("ftp://ha.local", "tok"), ("https://ha.local", " ")],
)
def test_validate_rejects_unusable_config(base_url: str, token: str) -> None:
    with pytest.raises(HaConfigError):
        HaSyncConfig(base_url=base_url, access_token=token).validate()


def test_validate_accepts_websocket_url() -> None:
    HaSyncConfig(base_url="wss://ha.example.com/api/websocket", access_token="tok").validate()
