"""
Playcast Server - Main Server Module

This module contains the PlaybackServer class that owns the listening
socket and routes every accepted connection.

One TCP port serves two kinds of clients:
- Plain HTTP requests get the current playback info as a JSON document.
- WebSocket upgrade requests are answered with the handshake, receive the
  current playback info immediately, and then one frame per update for as
  long as they stay connected. Anything they send is read and discarded.
"""

import asyncio
import contextlib
import logging
import signal
from enum import Enum

from playcast.clients.client import ClientConnection, ConnectionKind
from playcast.clients.registry import ConnectionRegistry
from playcast.config import PluginConfig
from playcast.context import ServerContext
from playcast.core.broadcast import BroadcastCoordinator
from playcast.core.events import (
    ClientConnectedEvent,
    ClientDisconnectedEvent,
    ElapsedTimeEvent,
    Event,
    EventBus,
    TrackChangedEvent,
    event_bus,
)
from playcast.core.playback import PlaybackStateStore
from playcast.exceptions import HandshakeError, RequestError, ServerBindError
from playcast.protocol.handshake import (
    KEY_HEADER,
    build_handshake_response,
    build_rejection_response,
    is_upgrade_request,
)
from playcast.protocol.http import HttpRequest, build_json_response, read_request

logger = logging.getLogger(__name__)

# Read size for discarding inbound WebSocket data
INBOUND_READ_SIZE = 4096


class ServerState(Enum):
    """Lifecycle states of the server."""

    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"


class PlaybackServer:
    """
    Playback info server for overlays and remote displays.

    The server is driven by the host application through three calls:
    start(), stop() and on_config_change(). Playback updates arrive as
    TrackChangedEvent / ElapsedTimeEvent on the event bus while the server
    is listening, or directly through `store`.

    All state lives in the ServerContext, so a test can inject a fresh
    context and inspect it afterwards.
    """

    def __init__(
        self,
        config: PluginConfig | None = None,
        *,
        context: ServerContext | None = None,
        bus: EventBus | None = None,
    ) -> None:
        """
        Initialize the server.

        Args:
            config: Initial configuration (disabled defaults if omitted).
            context: Shared state (created if not provided).
            bus: Event bus to subscribe to (global bus if not provided).
        """
        self._config = config if config is not None else PluginConfig()
        self.context = context if context is not None else ServerContext()
        self._event_bus = bus if bus is not None else event_bus

        self.broadcaster = BroadcastCoordinator(self.context)
        self.store = PlaybackStateStore(self.context, self.broadcaster)

        self._server: asyncio.Server | None = None
        self._state = ServerState.STOPPED
        self._connection_tasks: set[asyncio.Task[None]] = set()
        self._shutdown_event: asyncio.Event | None = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self, config: PluginConfig | None = None) -> None:
        """
        Bind the listening socket and begin accepting connections.

        Args:
            config: Replaces the held configuration when given.

        Raises:
            ServerBindError: If the socket cannot be bound. The server stays
                stopped and not ready.
        """
        if config is not None:
            self._config = config

        if self._state != ServerState.STOPPED:
            logger.warning("Playcast server already running")
            return

        if not self._config.enabled:
            logger.info("Playcast server disabled in configuration, not starting")
            return

        self._state = ServerState.STARTING
        host, port = self._config.host, self._config.port

        try:
            self._server = await asyncio.start_server(
                self._handle_connection,
                host=host,
                port=port,
                reuse_address=True,
            )
        except OSError as e:
            self._state = ServerState.STOPPED
            logger.error("Could not bind Playcast server to %s:%d: %s", host, port, e)
            raise ServerBindError(f"Could not bind to {host}:{port}: {e}") from e

        self.context.listening = True
        self.context.ready = True
        self._state = ServerState.LISTENING

        await self._event_bus.subscribe(TrackChangedEvent.event_type, self._on_track_changed)
        await self._event_bus.subscribe(ElapsedTimeEvent.event_type, self._on_elapsed_time)

        logger.info("Playcast server listening on %s:%d", host, self.bound_port)

    async def stop(self) -> None:
        """Stop the server and forcibly close all connections."""
        if self._state == ServerState.STOPPED:
            return

        logger.info("Stopping Playcast server...")

        await self._event_bus.unsubscribe(TrackChangedEvent.event_type, self._on_track_changed)
        await self._event_bus.unsubscribe(ElapsedTimeEvent.event_type, self._on_elapsed_time)

        self.context.ready = False

        if self._server:
            self._server.close()

        await self.context.registry.close_all()

        # Connection handlers notice EOF on their own; cancel any that are
        # still waiting so shutdown does not depend on peers
        tasks = list(self._connection_tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._connection_tasks.clear()

        if self._server:
            await self._server.wait_closed()
            self._server = None

        self.context.listening = False
        self._state = ServerState.STOPPED

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Playcast server stopped")

    def on_config_change(self, config: PluginConfig) -> None:
        """
        Apply a new configuration from the host application.

        The current playback info, if any, is pushed again so clients see
        the result immediately. Listening address changes take effect on the
        next start().
        """
        self._config = config
        current = self.context.last_playback_info
        if current is not None:
            self.store.update(current)

    async def run(self) -> None:
        """
        Run the server until shutdown is requested.

        This method starts the server and waits for a shutdown signal
        (SIGINT or SIGTERM).
        """
        await self.start()
        if not self.is_running:
            return

        self._shutdown_event = asyncio.Event()
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Signal handlers not supported on Windows
                pass

        await self._shutdown_event.wait()
        await self.stop()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def config(self) -> PluginConfig:
        return self._config

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Check if the server is currently listening."""
        return self._state == ServerState.LISTENING

    @property
    def ready(self) -> bool:
        return self.context.ready

    @property
    def registry(self) -> ConnectionRegistry:
        return self.context.registry

    @property
    def bound_port(self) -> int | None:
        """Get the actual listening port (useful when configured with port 0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    # -------------------------------------------------------------------------
    # Event handlers
    # -------------------------------------------------------------------------

    async def _on_track_changed(self, event: Event) -> None:
        if isinstance(event, TrackChangedEvent):
            self.store.on_track_changed(event.info)

    async def _on_elapsed_time(self, event: Event) -> None:
        if isinstance(event, ElapsedTimeEvent):
            self.store.on_elapsed_time(event.seconds)

    # -------------------------------------------------------------------------
    # Connection handling
    # -------------------------------------------------------------------------

    async def _handle_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """
        Handle a new incoming connection.

        This is called by asyncio for each accepted socket. The connection
        is tracked as plain until a request asks for an upgrade.
        """
        registry = self.context.registry
        connection = ClientConnection(registry.next_id(), reader, writer)
        registry.register(ConnectionKind.PLAIN, connection.id, connection)

        task = asyncio.current_task()
        if task:
            self._connection_tasks.add(task)

        logger.debug("New HTTP connection %d from %s", connection.id, connection.remote_address)
        await self._publish_connected(connection)

        try:
            while True:
                request = await read_request(reader)
                if request is None:
                    break

                if is_upgrade_request(request):
                    connection = self._upgrade(connection, request)
                    await self._publish_connected(connection)
                    await self._discard_inbound(connection)
                    break

                await self._serve_plain(connection, request)
                if not request.keep_alive:
                    break
        except asyncio.CancelledError:
            logger.debug("Connection handler cancelled for %d", connection.id)
        except HandshakeError as e:
            logger.warning("Rejected upgrade from %s: %s", connection.remote_address, e)
            with contextlib.suppress(ConnectionError):
                connection.send(build_rejection_response())
        except RequestError as e:
            logger.warning("Bad request from %s: %s", connection.remote_address, e)
        except (ConnectionError, asyncio.IncompleteReadError) as e:
            logger.debug("Connection %d lost: %s", connection.id, e)
        except Exception as e:
            logger.exception("Error handling connection from %s: %s", connection.remote_address, e)
        finally:
            # Unregister before any await so no broadcast hits a closed stream
            registry.unregister(connection.kind, connection.id)
            if task:
                self._connection_tasks.discard(task)

            await connection.close()
            logger.debug("%s connection closed: %d", connection.kind.value.capitalize(), connection.id)
            await self._event_bus.publish(
                ClientDisconnectedEvent(connection_id=connection.id, kind=connection.kind.value)
            )

    def _upgrade(self, connection: ClientConnection, request: HttpRequest) -> ClientConnection:
        """
        Complete the WebSocket handshake and move the stream to the upgraded map.

        The handshake response and the initial state frame are written
        before control returns to the event loop, so no broadcast can reach
        the client ahead of them.

        Raises:
            HandshakeError: If the request has no Sec-WebSocket-Key.
        """
        response = build_handshake_response(request.header(KEY_HEADER) or None)

        registry = self.context.registry
        registry.unregister(ConnectionKind.PLAIN, connection.id)

        upgraded = ClientConnection(
            registry.next_id(),
            connection.reader,
            connection.writer,
            ConnectionKind.UPGRADED,
        )
        registry.register(ConnectionKind.UPGRADED, upgraded.id, upgraded)
        logger.info("New WebSocket upgrade %d from %s", upgraded.id, upgraded.remote_address)

        upgraded.send(response)
        self.broadcaster.send_current(upgraded)
        return upgraded

    async def _discard_inbound(self, connection: ClientConnection) -> None:
        """Read from an upgraded connection until EOF, ignoring the data."""
        while True:
            data = await connection.reader.read(INBOUND_READ_SIZE)
            if not data:
                logger.info("WebSocket client disconnected %d", connection.id)
                return
            logger.debug("Got WebSocket client data from %d (%d bytes)", connection.id, len(data))

    async def _serve_plain(self, connection: ClientConnection, request: HttpRequest) -> None:
        """Answer a plain request with the current playback info."""
        if request.content_length:
            await connection.reader.readexactly(request.content_length)

        info = self.context.last_playback_info
        body = {"songInfo": info.to_dict() if info is not None else None}

        logger.debug("HTTP %s %s from %d", request.method, request.target, connection.id)
        connection.send(build_json_response(body))
        await connection.flush()

    async def _publish_connected(self, connection: ClientConnection) -> None:
        await self._event_bus.publish(
            ClientConnectedEvent(
                connection_id=connection.id,
                kind=connection.kind.value,
                remote_address=connection.remote_address,
            )
        )
