"""Process configuration for pykaya."""

from __future__ import annotations

import dataclasses
import logging
import os
import secrets
from typing import Any

from pykaya._constants import (
    DEFAULT_AUTH_PATH,
    DEFAULT_BROKER_HOST,
    DEFAULT_BROKER_PORT,
    DEFAULT_BROWSER,
    DEFAULT_LISTEN_PORT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_TOPIC_PREFIX,
    DEFAULT_VERSION_TIMEOUT,
    FALLBACK_VERSION,
    LONG_RESTART_DELAY,
    SHORT_RESTART_DELAY,
    VERSION_URL,
)
from pykaya.exceptions import KayaConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _default_client_id() -> str:
    return f"kaya_{secrets.token_hex(6)}"


@dataclasses.dataclass(frozen=True)
class BrokerProfile:
    """Connection details for the broker relaying the link protocol."""

    host: str = DEFAULT_BROKER_HOST
    port: int = DEFAULT_BROKER_PORT
    tls: bool = False
    client_id: str = dataclasses.field(default_factory=_default_client_id)
    topic_prefix: str = DEFAULT_TOPIC_PREFIX
    keepalive: int = 60


@dataclasses.dataclass(frozen=True)
class KayaConfig:
    """Process configuration.

    Parameters
    ----------
    listen_port : int
        Port the status page listens on.
    auth_path : str
        Path of the credential store file.
    log_level : str
        Logging level name (``"debug"``, ``"info"``, ...).
    version_url : str
        URL of the JSON document advertising the latest protocol version.
    version_timeout : float
        Seconds to wait for the version lookup before falling back.
    fallback_version : tuple of int
        Version used when the lookup fails.
    short_restart_delay : float
        Delay before restarting after a recoverable disconnect.
    long_restart_delay : float
        Delay before retrying after an unclassified failure.
    browser : tuple of str
        Client description advertised to the network on connect.
    broker : BrokerProfile
        Link socket broker settings.
    """

    listen_port: int = DEFAULT_LISTEN_PORT
    auth_path: str = DEFAULT_AUTH_PATH
    log_level: str = DEFAULT_LOG_LEVEL
    version_url: str = VERSION_URL
    version_timeout: float = DEFAULT_VERSION_TIMEOUT
    fallback_version: tuple[int, int, int] = FALLBACK_VERSION
    short_restart_delay: float = SHORT_RESTART_DELAY
    long_restart_delay: float = LONG_RESTART_DELAY
    browser: tuple[str, str, str] = DEFAULT_BROWSER
    broker: BrokerProfile = dataclasses.field(default_factory=BrokerProfile)

    def __post_init__(self) -> None:
        if not 0 < self.listen_port < 65536:
            raise KayaConfigError(f"listen_port must be between 1 and 65535, got {self.listen_port}")
        if not self.auth_path:
            raise KayaConfigError("auth_path must not be empty")
        if self.version_timeout <= 0:
            raise KayaConfigError(f"version_timeout must be positive, got {self.version_timeout}")
        if self.short_restart_delay < 0 or self.long_restart_delay < 0:
            raise KayaConfigError("restart delays must not be negative")
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise KayaConfigError(f"Unknown log level: {self.log_level!r}")

    @property
    def log_level_number(self) -> int:
        """Numeric logging level for :func:`logging.basicConfig`."""
        level: int = logging.getLevelName(self.log_level.upper())
        return level

    @classmethod
    def from_env(cls, **overrides: Any) -> KayaConfig:
        """Create configuration from environment variables.

        Reads ``PORT``, ``AUTH_FILE_PATH`` and ``LOG_LEVEL`` plus the
        optional ``KAYA_*`` variables. Explicit keyword arguments override
        environment values.

        Raises
        ------
        KayaConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        def _number(key: str, convert: type) -> Any:
            raw = env.get(key)
            if raw is None:
                return None
            try:
                return convert(raw)
            except ValueError as exc:
                raise KayaConfigError(f"{key} must be a number, got {raw!r}") from exc

        broker_kwargs: dict[str, Any] = {}
        _ENV_BROKER_MAP = {
            "KAYA_BROKER_HOST": "host",
            "KAYA_CLIENT_ID": "client_id",
            "KAYA_TOPIC_PREFIX": "topic_prefix",
        }
        for env_key, field_name in _ENV_BROKER_MAP.items():
            val = env.get(env_key)
            if val is not None:
                broker_kwargs[field_name] = val
        port = _number("KAYA_BROKER_PORT", int)
        if port is not None:
            broker_kwargs["port"] = port
        keepalive = _number("KAYA_MQTT_KEEPALIVE", int)
        if keepalive is not None:
            broker_kwargs["keepalive"] = keepalive
        if "KAYA_BROKER_TLS" in env:
            broker_kwargs["tls"] = _env_bool(env.get("KAYA_BROKER_TLS"), False)

        broker_overrides = overrides.pop("broker", None)
        if isinstance(broker_overrides, dict):
            broker_kwargs.update(broker_overrides)
        elif isinstance(broker_overrides, BrokerProfile):
            broker_kwargs = dataclasses.asdict(broker_overrides)

        config_kwargs: dict[str, Any] = {"broker": BrokerProfile(**broker_kwargs)}

        _ENV_CONFIG_MAP = {
            "AUTH_FILE_PATH": "auth_path",
            "LOG_LEVEL": "log_level",
            "KAYA_VERSION_URL": "version_url",
        }
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "PORT": ("listen_port", int),
            "KAYA_VERSION_TIMEOUT": ("version_timeout", float),
            "KAYA_SHORT_RESTART_DELAY": ("short_restart_delay", float),
            "KAYA_LONG_RESTART_DELAY": ("long_restart_delay", float),
        }
        for env_key, (field_name, convert) in _ENV_NUMERIC_MAP.items():
            value = _number(env_key, convert)
            if value is not None:
                config_kwargs[field_name] = value

        browser_name = env.get("KAYA_BROWSER_NAME")
        if browser_name:
            config_kwargs["browser"] = (browser_name, *DEFAULT_BROWSER[1:])

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
