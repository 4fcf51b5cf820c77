from __future__ import annotations

import pytest

from pykaya.config import BrokerProfile, KayaConfig
from pykaya.exceptions import KayaConfigError

_ENV_KEYS = (
    "PORT",
    "AUTH_FILE_PATH",
    "LOG_LEVEL",
    "KAYA_VERSION_URL",
    "KAYA_VERSION_TIMEOUT",
    "KAYA_SHORT_RESTART_DELAY",
    "KAYA_LONG_RESTART_DELAY",
    "KAYA_BROKER_HOST",
    "KAYA_BROKER_PORT",
    "KAYA_BROKER_TLS",
    "KAYA_CLIENT_ID",
    "KAYA_TOPIC_PREFIX",
    "KAYA_MQTT_KEEPALIVE",
    "KAYA_BROWSER_NAME",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults() -> None:
    config = KayaConfig.from_env()
    assert config.listen_port == 3000
    assert config.auth_path == "./auth_info"
    assert config.log_level == "info"
    assert config.short_restart_delay == 2.0
    assert config.long_restart_delay == 5.0
    assert config.fallback_version == (2, 2204, 13)
    assert config.broker.host == "localhost"
    assert config.broker.client_id.startswith("kaya_")


def test_env_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("AUTH_FILE_PATH", "/data/auth.json")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("KAYA_VERSION_TIMEOUT", "2.5")
    monkeypatch.setenv("KAYA_BROKER_HOST", "broker.internal")
    monkeypatch.setenv("KAYA_BROKER_PORT", "8883")
    monkeypatch.setenv("KAYA_BROKER_TLS", "yes")
    monkeypatch.setenv("KAYA_CLIENT_ID", "kaya_fixed")
    monkeypatch.setenv("KAYA_BROWSER_NAME", "Render")

    config = KayaConfig.from_env()

    assert config.listen_port == 8080
    assert config.auth_path == "/data/auth.json"
    assert config.log_level_number == 10
    assert config.version_timeout == 2.5
    assert config.broker == BrokerProfile(host="broker.internal", port=8883, tls=True, client_id="kaya_fixed")
    assert config.browser[0] == "Render"


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("KAYA_BROKER_HOST", "env-host")

    config = KayaConfig.from_env(listen_port=9000, broker={"port": 1884})

    assert config.listen_port == 9000
    assert config.broker.host == "env-host"
    assert config.broker.port == 1884


@pytest.mark.parametrize(
    ("key", "value"),
    [("PORT", "http"), ("PORT", "70000"), ("KAYA_LONG_RESTART_DELAY", "-1"), ("LOG_LEVEL", "chatty")],
)
def test_invalid_values_raise_config_error(monkeypatch: pytest.MonkeyPatch, key: str, value: str) -> None:
    monkeypatch.setenv(key, value)
    with pytest.raises(KayaConfigError):
        KayaConfig.from_env()
