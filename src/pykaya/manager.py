"""Session manager: owns the connection lifecycle of the linked device."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import aiohttp

from pykaya._auth_store import AuthStore, SingleFileAuthStore
from pykaya._constants import (
    CONNECTION_OPEN,
    STATUS_CLOSED,
    STATUS_FETCHING_VERSION,
    STATUS_STARTING,
    STATUS_STARTING_SOCKET,
)
from pykaya._pairing import pairing_code_data_uri
from pykaya._redact import redact_for_log
from pykaya._socket import LinkSocket, MqttSocketFactory, SocketFactory
from pykaya._version import resolve_version
from pykaya.config import KayaConfig
from pykaya.exceptions import (
    CredentialDeletionError,
    CredentialPersistenceError,
    DisconnectError,
    PairingCodeError,
)
from pykaya.models.events import ConnectionUpdate, CredentialsUpdate, MessagesUpsert, SocketEvent
from pykaya.models.status import StatusSnapshot
from pykaya.models.version import ProtocolVersion, VersionResolution
from pykaya.state.policy import RestartBucket, RestartDecision, decide_restart
from pykaya.state.status import StatusState

_logger = logging.getLogger(__name__)

VersionResolver = Callable[[], Awaitable[VersionResolution]]
PairingEncoder = Callable[[str], str]


@dataclass
class PendingRestart:
    """A scheduled restart and the attempt generation it belongs to."""

    generation: int
    decision: RestartDecision
    handle: asyncio.TimerHandle
    due: float

    @property
    def delay(self) -> float:
        return self.decision.delay

    @property
    def bucket(self) -> RestartBucket:
        return self.decision.bucket


class SessionManager:
    """Drives one connection attempt at a time and recovers from every failure.

    Usage::

        async with SessionManager(config) as manager:
            await manager.start()
            ...

    Each call into :meth:`start` that opens a socket begins a new attempt
    *generation*, and handling a disconnect retires it. Events from retired
    sockets and restarts scheduled for older generations are dropped, so at
    most one session is ever live.
    """

    def __init__(
        self,
        config: KayaConfig,
        *,
        http_session: aiohttp.ClientSession | None = None,
        auth_store: AuthStore | None = None,
        socket_factory: SocketFactory | None = None,
        version_resolver: VersionResolver | None = None,
        state: StatusState | None = None,
        pairing_encoder: PairingEncoder = pairing_code_data_uri,
    ) -> None:
        self._config = config
        self._external_http = http_session is not None
        self._http_session = http_session
        self._auth_store: AuthStore = auth_store or SingleFileAuthStore(config.auth_path)
        self._socket_factory: SocketFactory = socket_factory or MqttSocketFactory(config)
        self._version_resolver: VersionResolver = version_resolver or self._fetch_version
        self._state = state or StatusState()
        self._pairing_encoder = pairing_encoder

        self._generation = 0
        self._socket: LinkSocket | None = None
        self._start_lock = asyncio.Lock()
        self._events: asyncio.Queue[tuple[int, SocketEvent]] = asyncio.Queue()
        self._consumer: asyncio.Task[None] | None = None
        self._pending_restart: PendingRestart | None = None
        self._restart_task: asyncio.Task[Any] | None = None
        self._last_version: VersionResolution | None = None
        self.last_disconnect: DisconnectError | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SessionManager:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def state(self) -> StatusState:
        return self._state

    def snapshot(self) -> StatusSnapshot:
        return self._state.snapshot()

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def socket(self) -> LinkSocket | None:
        return self._socket

    @property
    def pending_restart(self) -> PendingRestart | None:
        return self._pending_restart

    @property
    def last_version(self) -> VersionResolution | None:
        return self._last_version

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> LinkSocket | None:
        """Open a connection unless one is already live.

        Returns the live socket, or ``None`` when the attempt failed and a
        retry has been scheduled.
        """
        async with self._start_lock:
            if self._socket is not None and self._socket.is_open:
                return self._socket
            return await self._start_attempt()

    async def stop(self) -> None:
        """Cancel pending restarts, stop event handling and close the socket."""
        self._cancel_pending_restart()
        self._generation += 1

        restart_task = self._restart_task
        self._restart_task = None
        if restart_task is not None and not restart_task.done():
            restart_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await restart_task

        consumer = self._consumer
        self._consumer = None
        if consumer is not None:
            consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await consumer

        await self._close_socket()
        self._state.set_status(STATUS_CLOSED)

        if not self._external_http and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        await self._events.join()

    async def _start_attempt(self) -> LinkSocket | None:
        self._cancel_pending_restart()
        self._generation += 1
        generation = self._generation
        await self._close_socket()

        self._state.set_status(STATUS_STARTING)
        try:
            self._state.set_status(STATUS_FETCHING_VERSION)
            resolution = await self._resolve_version()

            loop = asyncio.get_running_loop()
            auth_state = await loop.run_in_executor(None, self._auth_store.load)

            self._state.set_status(STATUS_STARTING_SOCKET)
            socket = await self._socket_factory(
                resolution.version,
                auth_state,
                self._event_callback(generation),
            )
        except Exception as exc:
            _logger.error("Session start failed: %s", exc, exc_info=True)
            self._schedule_restart(
                RestartDecision(bucket=RestartBucket.RETRY_WAITING, delay=self._config.long_restart_delay),
                generation,
            )
            return None

        self._socket = socket
        self._ensure_consumer()
        _logger.info("Session attempt %d started with version %s", generation, resolution.version)
        return socket

    async def _close_socket(self) -> None:
        socket = self._socket
        self._socket = None
        if socket is None:
            return
        try:
            await socket.close()
        except Exception:
            _logger.debug("Closing previous socket failed", exc_info=True)

    async def _fetch_version(self) -> VersionResolution:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        return await resolve_version(
            self._http_session,
            url=self._config.version_url,
            timeout=self._config.version_timeout,
            fallback=self._config.fallback_version,
        )

    async def _resolve_version(self) -> VersionResolution:
        """Resolve the protocol version, never waiting past the configured timeout."""
        try:
            async with asyncio.timeout(self._config.version_timeout):
                resolution = await self._version_resolver()
        except Exception as exc:
            fallback = ProtocolVersion.from_sequence(self._config.fallback_version)
            _logger.warning("Version resolution failed, using fallback %s: %r", fallback, exc)
            resolution = VersionResolution(version=fallback, is_latest=False, error=repr(exc))
        self._last_version = resolution
        return resolution

    # ------------------------------------------------------------------
    # Restart scheduling
    # ------------------------------------------------------------------

    def _schedule_restart(self, decision: RestartDecision, generation: int) -> None:
        self._cancel_pending_restart()
        loop = asyncio.get_running_loop()
        handle = loop.call_later(decision.delay, self._fire_restart, generation)
        self._pending_restart = PendingRestart(
            generation=generation,
            decision=decision,
            handle=handle,
            due=loop.time() + decision.delay,
        )
        _logger.info("Restart scheduled in %.1fs (%s)", decision.delay, decision.bucket)

    def _cancel_pending_restart(self) -> None:
        pending = self._pending_restart
        self._pending_restart = None
        if pending is not None:
            pending.handle.cancel()

    def _fire_restart(self, generation: int) -> None:
        pending = self._pending_restart
        if pending is not None and pending.generation == generation:
            self._pending_restart = None
        if generation != self._generation:
            _logger.debug("Dropping stale restart for attempt %d (current %d)", generation, self._generation)
            return
        self._restart_task = asyncio.get_running_loop().create_task(self._restart(generation))

    async def _restart(self, generation: int) -> None:
        async with self._start_lock:
            if generation != self._generation:
                _logger.debug("Attempt %d superseded before restart ran", generation)
                return
            await self._start_attempt()

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _event_callback(self, generation: int) -> Callable[[SocketEvent], None]:
        def _enqueue(event: SocketEvent) -> None:
            self._events.put_nowait((generation, event))

        return _enqueue

    def _ensure_consumer(self) -> None:
        if self._consumer is None or self._consumer.done():
            self._consumer = asyncio.get_running_loop().create_task(self._consume_events())

    async def _consume_events(self) -> None:
        while True:
            generation, event = await self._events.get()
            try:
                if generation != self._generation:
                    _logger.debug("Ignoring %s from stale attempt %d", type(event).__name__, generation)
                    continue
                await self.handle_event(event)
            except Exception:
                _logger.error("Event handler failed for %s", type(event).__name__, exc_info=True)
            finally:
                self._events.task_done()

    async def handle_event(self, event: SocketEvent) -> None:
        """Apply one lifecycle event from the current socket."""
        if isinstance(event, CredentialsUpdate):
            await self._persist_credentials(event.creds)
        elif isinstance(event, ConnectionUpdate):
            await self._handle_connection_update(event)
        elif isinstance(event, MessagesUpsert):
            self._log_messages(event)

    async def _persist_credentials(self, delta: dict[str, Any]) -> None:
        _logger.debug("Credential update %s", redact_for_log(delta))
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._auth_store.apply_delta, delta)
        except CredentialPersistenceError as exc:
            _logger.error("Could not persist credentials: %s", exc)

    async def _handle_connection_update(self, update: ConnectionUpdate) -> None:
        if update.qr:
            try:
                image = self._pairing_encoder(update.qr)
            except PairingCodeError as exc:
                _logger.error("Could not render pairing code: %s", exc)
            else:
                self._state.set_pairing_image(image)
                _logger.info("Pairing code generated and published")

        if update.connection:
            self._state.set_status(update.connection)
            _logger.info("Connection update: %s", update.connection)
            if update.connection == CONNECTION_OPEN:
                _logger.info("Connection open, authentication succeeded")
                self._state.clear_pairing_image()

        if update.is_disconnect:
            if not update.connection:
                self._state.set_status(STATUS_CLOSED)
            await self._handle_disconnect(update)

    async def _handle_disconnect(self, update: ConnectionUpdate) -> None:
        # Retire the attempt so anything still queued from its socket is dropped.
        self._generation += 1
        info = update.last_disconnect
        decision = decide_restart(
            info,
            short_delay=self._config.short_restart_delay,
            long_delay=self._config.long_restart_delay,
        )
        description = info.describe() if info is not None else "connection closed without reason"
        self.last_disconnect = DisconnectError(
            description,
            status_code=info.status_code if info is not None else None,
            reason=info.reason if info is not None else None,
        )
        _logger.warning("Session closed: %s", description)
        if info is not None and info.payload:
            _logger.debug("Disconnect payload %s", redact_for_log(info.payload))

        if decision.destroy_credentials:
            _logger.warning("Session invalid, deleting credential store to force re-pairing")
            await self._destroy_credentials()

        await self._close_socket()
        self._schedule_restart(decision, self._generation)

    async def _destroy_credentials(self) -> None:
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, self._auth_store.delete)
        except CredentialDeletionError as exc:
            _logger.error("Could not delete credential store: %s", exc)

    def _log_messages(self, upsert: MessagesUpsert) -> None:
        for message in upsert.messages:
            content = message.get("message")
            if not isinstance(content, dict) or not content:
                continue
            key = message.get("key")
            sender = key.get("remoteJid") if isinstance(key, dict) else None
            _logger.info("Message received from=%s content=%s", sender, next(iter(content)))
