"""Link socket: the network-layer connection the session manager drives.

The production socket relays the linked-device protocol over MQTT. On
connect it publishes a hello carrying the protocol version and current
credentials, then turns every message on its events topic into a
:data:`~pykaya.models.events.SocketEvent` handed to the asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, Protocol, cast

import paho.mqtt.client as mqtt
from pydantic import ValidationError

from pykaya._auth_store import buffer_json_dumps, buffer_json_loads
from pykaya._constants import CONNECTION_CLOSE, CONNECTION_CONNECTING
from pykaya._redact import redact_for_log
from pykaya.config import BrokerProfile, KayaConfig
from pykaya.exceptions import SocketEstablishmentError
from pykaya.models.auth import AuthState
from pykaya.models.events import (
    ConnectionUpdate,
    DisconnectInfo,
    DisconnectReason,
    SocketEvent,
    parse_socket_event,
)
from pykaya.models.version import ProtocolVersion

_logger = logging.getLogger(__name__)

EventCallback = Callable[[SocketEvent], None]


class LinkSocket(Protocol):
    """Handle on one live connection attempt."""

    @property
    def is_open(self) -> bool: ...

    async def close(self) -> None: ...


class SocketFactory(Protocol):
    """Opens a socket that reports lifecycle events through *on_event*."""

    async def __call__(
        self,
        version: ProtocolVersion,
        auth_state: AuthState,
        on_event: EventCallback,
    ) -> LinkSocket: ...


def events_topic(broker: BrokerProfile) -> str:
    return f"{broker.topic_prefix}/{broker.client_id}/events"


def hello_topic(broker: BrokerProfile) -> str:
    return f"{broker.topic_prefix}/{broker.client_id}/hello"


class MqttLinkSocket:
    """Threaded paho-mqtt socket that emits parsed events onto an asyncio loop."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        broker: BrokerProfile,
        on_event: EventCallback,
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._broker = broker
        self._on_event = on_event
        self._logger = logger or _logger
        self._client: mqtt.Client | None = None
        self._running = False
        self._close_reported = False
        self._hello: dict[str, Any] = {}

    @property
    def is_open(self) -> bool:
        return self._running

    def _emit(self, event: SocketEvent) -> None:
        self._loop.call_soon_threadsafe(self._on_event, event)

    def _report_close(self, info: DisconnectInfo) -> None:
        if self._close_reported:
            return
        self._close_reported = True
        self._emit(ConnectionUpdate(connection=CONNECTION_CLOSE, last_disconnect=info))

    def start(self, version: ProtocolVersion, auth_state: AuthState, browser: tuple[str, str, str]) -> None:
        """Connect to the broker and start the network loop. Blocking."""
        broker = self._broker
        self._logger.debug(
            "Link socket start requested host=%s port=%s client_id=%s version=%s",
            broker.host,
            broker.port,
            broker.client_id,
            version,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=broker.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if broker.tls:
            client.tls_set()

        self._hello = {
            "version": version.as_list(),
            "browser": list(browser),
            "creds": auth_state.creds,
        }
        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        client.connect(broker.host, broker.port, keepalive=broker.keepalive)
        self._client = client
        self._running = True
        client.loop_start()
        self._logger.debug("Link socket network loop started")

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.is_failure:
            self._logger.warning("Broker refused link connection: %s", reason_code)
            self._report_close(DisconnectInfo(reason=str(reason_code), message="broker refused connection"))
            client.disconnect()
            return
        self._logger.debug("Link socket connected, subscribing topic=%s", events_topic(self._broker))
        client.subscribe(events_topic(self._broker), qos=1)
        self._logger.debug("Publishing hello %s", redact_for_log(self._hello))
        client.publish(hello_topic(self._broker), buffer_json_dumps(self._hello), qos=1)
        self._emit(ConnectionUpdate(connection=CONNECTION_CONNECTING))

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        try:
            body = buffer_json_loads(msg.payload)
            if not isinstance(body, dict):
                self._logger.debug("Ignoring non-object link payload on %s", msg.topic)
                return
            name = str(body.get("event") or "")
            event = parse_socket_event(name, body.get("data"))
        except (ValueError, ValidationError):
            self._logger.debug("Link payload parse failure", exc_info=True)
            return
        if event is None:
            self._logger.debug("Ignoring unhandled link event %r", name)
            return
        self._emit(event)

    def _on_disconnect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if not self._running:
            return
        self._logger.debug("Link socket disconnected: %s", reason_code)
        self._running = False
        self._report_close(
            DisconnectInfo(
                status_code=int(DisconnectReason.CONNECTION_LOST),
                reason="connectionLost",
                message=str(reason_code),
            )
        )
        # Reconnects are the session manager's decision, not paho's.
        client.disconnect()

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        self._close_reported = True

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("Link socket disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("Link socket network loop stopped")

    async def close(self) -> None:
        await self._loop.run_in_executor(None, self.stop)


class MqttSocketFactory:
    """Opens :class:`MqttLinkSocket` instances for a given configuration."""

    def __init__(self, config: KayaConfig) -> None:
        self._config = config

    async def __call__(
        self,
        version: ProtocolVersion,
        auth_state: AuthState,
        on_event: EventCallback,
    ) -> MqttLinkSocket:
        loop = asyncio.get_running_loop()
        socket = MqttLinkSocket(loop=loop, broker=self._config.broker, on_event=on_event)
        try:
            await loop.run_in_executor(None, socket.start, version, auth_state, self._config.browser)
        except (OSError, ValueError) as exc:
            raise SocketEstablishmentError(
                f"Could not connect to {self._config.broker.host}:{self._config.broker.port}: {exc}"
            ) from exc
        return socket
