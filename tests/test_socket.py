from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from pykaya._socket import MqttLinkSocket, MqttSocketFactory, events_topic, hello_topic
from pykaya.config import BrokerProfile, KayaConfig
from pykaya.exceptions import SocketEstablishmentError
from pykaya.models.auth import AuthState
from pykaya.models.events import (
    ConnectionUpdate,
    CredentialsUpdate,
    DisconnectReason,
    MessagesUpsert,
    SocketEvent,
)
from pykaya.models.version import ProtocolVersion


def test_topics_are_scoped_to_client_id() -> None:
    broker = BrokerProfile(client_id="kaya_abc", topic_prefix="kaya/link")
    assert events_topic(broker) == "kaya/link/kaya_abc/events"
    assert hello_topic(broker) == "kaya/link/kaya_abc/hello"


@pytest.mark.asyncio
async def test_unreachable_broker_raises_establishment_error() -> None:
    config = KayaConfig(broker=BrokerProfile(host="127.0.0.1", port=1))
    factory = MqttSocketFactory(config)

    with pytest.raises(SocketEstablishmentError):
        await factory(
            ProtocolVersion(major=2, minor=2204, patch=13),
            AuthState(),
            lambda _event: None,
        )


@pytest.mark.asyncio
async def test_stop_without_start_is_a_noop() -> None:
    socket = MqttLinkSocket(
        loop=asyncio.get_running_loop(),
        broker=BrokerProfile(),
        on_event=lambda _event: None,
    )
    await socket.close()
    assert not socket.is_open


class _StubClient:
    def __init__(self) -> None:
        self.subscribed: list[str] = []
        self.published: list[tuple[str, str]] = []
        self.disconnects = 0

    def subscribe(self, topic: str, qos: int = 0) -> None:
        self.subscribed.append(topic)

    def publish(self, topic: str, payload: str, qos: int = 0) -> None:
        self.published.append((topic, payload))

    def disconnect(self) -> None:
        self.disconnects += 1


class _ReasonCode:
    def __init__(self, name: str, *, failure: bool) -> None:
        self._name = name
        self.is_failure = failure

    def __str__(self) -> str:
        return self._name


def _message(payload: bytes) -> SimpleNamespace:
    return SimpleNamespace(payload=payload, topic="kaya/link/kaya_abc/events")


def _socket(events: list[SocketEvent]) -> MqttLinkSocket:
    return MqttLinkSocket(
        loop=asyncio.get_running_loop(),
        broker=BrokerProfile(client_id="kaya_abc", topic_prefix="kaya/link"),
        on_event=events.append,
    )


@pytest.mark.asyncio
async def test_on_message_parses_known_events() -> None:
    events: list[SocketEvent] = []
    socket = _socket(events)
    client = _StubClient()

    socket._on_message(client, None, _message(b'{"event":"creds.update","data":{"registered":true}}'))
    socket._on_message(
        client,
        None,
        _message(
            b'{"event":"connection.update","data":{"connection":"close",'
            b'"lastDisconnect":{"error":{"output":{"statusCode":401}}}}}'
        ),
    )
    socket._on_message(
        client,
        None,
        _message(b'{"event":"messages.upsert","data":{"messages":[{"key":{}}],"type":"notify"}}'),
    )
    await asyncio.sleep(0)

    assert events[0] == CredentialsUpdate(creds={"registered": True})
    update = events[1]
    assert isinstance(update, ConnectionUpdate)
    assert update.connection == "close"
    assert update.last_disconnect is not None
    assert update.last_disconnect.code is DisconnectReason.LOGGED_OUT
    assert isinstance(events[2], MessagesUpsert)
    assert events[2].type == "notify"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        b"[1, 2, 3]",
        b'"connection.update"',
        b"{not json",
        b'{"event":"presence.update","data":{}}',
        b'{"data":{"connection":"open"}}',
        b'{"event":"messages.upsert","data":{"messages":"nope"}}',
        b'{"event":"connection.update","data":{"connection":5}}',
    ],
)
async def test_on_message_drops_unusable_payloads(payload: bytes) -> None:
    events: list[SocketEvent] = []
    socket = _socket(events)

    socket._on_message(_StubClient(), None, _message(payload))
    await asyncio.sleep(0)

    assert events == []


@pytest.mark.asyncio
async def test_on_connect_subscribes_and_announces() -> None:
    events: list[SocketEvent] = []
    socket = _socket(events)
    socket._hello = {"version": [2, 2204, 13], "browser": ["KAYA-MD"], "creds": {"registered": False}}
    client = _StubClient()

    socket._on_connect(client, None, None, _ReasonCode("Success", failure=False), None)
    await asyncio.sleep(0)

    assert client.subscribed == ["kaya/link/kaya_abc/events"]
    assert [topic for topic, _body in client.published] == ["kaya/link/kaya_abc/hello"]
    assert '"version":[2,2204,13]' in client.published[0][1]
    assert events == [ConnectionUpdate(connection="connecting")]


@pytest.mark.asyncio
async def test_refused_connection_is_reported_once() -> None:
    events: list[SocketEvent] = []
    socket = _socket(events)
    socket._running = True
    client = _StubClient()

    socket._on_connect(client, None, None, _ReasonCode("Not authorized", failure=True), None)
    socket._on_connect(client, None, None, _ReasonCode("Not authorized", failure=True), None)
    socket._on_disconnect(client, None, None, _ReasonCode("Not authorized", failure=True), None)
    await asyncio.sleep(0)

    assert client.subscribed == []
    assert len(events) == 1
    update = events[0]
    assert isinstance(update, ConnectionUpdate)
    assert update.connection == "close"
    assert update.last_disconnect is not None
    assert update.last_disconnect.reason == "Not authorized"


@pytest.mark.asyncio
async def test_unexpected_broker_drop_becomes_connection_lost() -> None:
    events: list[SocketEvent] = []
    socket = _socket(events)
    socket._running = True
    client = _StubClient()

    socket._on_disconnect(client, None, None, _ReasonCode("Keep alive timeout", failure=True), None)
    socket._on_disconnect(client, None, None, _ReasonCode("Keep alive timeout", failure=True), None)
    await asyncio.sleep(0)

    assert not socket.is_open
    assert client.disconnects == 1
    assert len(events) == 1
    update = events[0]
    assert isinstance(update, ConnectionUpdate)
    assert update.connection == "close"
    assert update.last_disconnect is not None
    assert update.last_disconnect.status_code == 408
    assert update.last_disconnect.reason == "connectionLost"
    assert update.last_disconnect.code is DisconnectReason.CONNECTION_LOST


@pytest.mark.asyncio
async def test_disconnect_after_stop_is_silent() -> None:
    events: list[SocketEvent] = []
    socket = _socket(events)
    client = _StubClient()

    socket._on_disconnect(client, None, None, _ReasonCode("Normal disconnection", failure=False), None)
    await asyncio.sleep(0)

    assert events == []
    assert client.disconnects == 0
