from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK
from websockets.sync.server import Server, ServerConnection, serve

from threecard.models import Disposition, ServerConfig, TableConfig
from threecard.protocol import ProtocolError, decode, encode
from threecard.session import GameSession

from .registry import ClientRegistry, RegistryError

LOGGER = logging.getLogger("threecard_host")

# PokerServer glues GameSessions to WebSocket clients. The websockets sync
# server runs the accept loop and gives each connection its own thread; every
# network concern lives here and the sessions stay pure.

TRY_AGAIN_LATER = 1013


class ClientConnection:
    """A GameSession bound to one socket, driven by that socket's thread.

    Only the thread in ``run()`` touches the session. ``disconnect()`` may be
    called from any thread: it closes the socket, which makes the pending
    ``recv()`` or ``send()`` fail, and ``run()`` closes the session on its way out.
    """

    def __init__(
        self,
        client_id: int,
        websocket: ServerConnection,
        table: TableConfig,
        on_disconnect: Callable[["ClientConnection"], None],
    ) -> None:
        self.client_id = client_id
        self.websocket = websocket
        self.session = GameSession(client_id, table)
        self._on_disconnect = on_disconnect
        self._state_lock = threading.Lock()
        self._disconnecting = False

    def run(self) -> None:
        try:
            while not self.session.closed:
                raw = self.websocket.recv()
                try:
                    message = decode(raw)
                except ProtocolError as exc:
                    LOGGER.warning("Client %s: invalid message [%s] %s", self.client_id, exc.code, exc.msg)
                    break
                result = self.session.handle(message)
                if result.has_reply:
                    self.websocket.send(encode(result.reply))
                elif result.disposition == Disposition.DISCONNECT:
                    break
        except ConnectionClosedOK:
            if not self._disconnecting:
                LOGGER.info("Client %s closed the connection", self.client_id)
        except (ConnectionClosed, OSError) as exc:
            if not self._disconnecting:
                LOGGER.warning("Client %s connection error: %s", self.client_id, exc)
        finally:
            self.session.close()
            self.disconnect()

    def disconnect(self, reason: str = "Disconnected") -> None:
        with self._state_lock:
            if self._disconnecting:
                return
            self._disconnecting = True
        # Waits at most close_timeout for a peer that never answers the close frame.
        self.websocket.close(reason=reason)
        self._on_disconnect(self)


class PokerServer:
    def __init__(self, config: Optional[ServerConfig] = None) -> None:
        self.config = config or ServerConfig()
        self.registry: ClientRegistry[ClientConnection] = ClientRegistry(self.config.max_clients)
        self._lifecycle_lock = threading.Lock()
        self._running = False
        self._server: Optional[Server] = None
        self._accept_thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def client_count(self) -> int:
        return len(self.registry)

    @property
    def rejected_count(self) -> int:
        with self.registry.lock:
            return self.registry.rejected

    @property
    def port(self) -> int:
        server = self._server
        if server is None:
            return self.config.port
        return server.socket.getsockname()[1]

    def start(self) -> None:
        with self._lifecycle_lock:
            if self._running:
                LOGGER.info("Server is already running")
                return
            self._server = serve(
                self._handle_connection,
                self.config.host,
                self.config.port,
                close_timeout=self.config.close_timeout,
            )
            self.registry.open()
            self._running = True
            self._accept_thread = threading.Thread(
                target=self._server.serve_forever,
                name="threecard-accept",
                daemon=True,
            )
            self._accept_thread.start()
        LOGGER.info("Server started on %s:%s", self.config.host, self.port)

    def stop(self) -> None:
        with self._lifecycle_lock:
            if not self._running:
                return
            self._running = False
            server, accept_thread = self._server, self._accept_thread
            self._accept_thread = None
        LOGGER.info("Stopping server...")

        # Closing each socket unblocks the session thread waiting in recv().
        # Closes run in parallel, each bounded by close_timeout.
        closers = [
            threading.Thread(
                target=client.disconnect,
                args=("Server shutting down",),
                name=f"threecard-close-{client.client_id}",
                daemon=True,
            )
            for client in self.registry.close()
        ]
        for closer in closers:
            closer.start()
        deadline = time.monotonic() + self.config.shutdown_timeout
        for closer in closers:
            closer.join(max(0.0, deadline - time.monotonic()))
        if any(closer.is_alive() for closer in closers):
            LOGGER.warning("Some client sockets did not close within %.1fs", self.config.shutdown_timeout)
        if server is not None:
            server.shutdown()
        if accept_thread is not None:
            accept_thread.join(self.config.shutdown_timeout)
            if accept_thread.is_alive():
                LOGGER.warning("Accept loop did not exit within %.1fs", self.config.shutdown_timeout)
        with self._lifecycle_lock:
            if not self._running:
                self._server = None
        LOGGER.info("Server stopped")

    def __enter__(self) -> "PokerServer":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _handle_connection(self, websocket: ServerConnection) -> None:
        try:
            client = self.registry.register(
                lambda client_id: ClientConnection(client_id, websocket, self.config.table, self._deregister)
            )
        except RegistryError as exc:
            LOGGER.warning("%s. Rejecting connection from %s", exc, websocket.remote_address)
            websocket.close(code=TRY_AGAIN_LATER, reason=str(exc))
            return

        LOGGER.info(
            "Client %s connected from %s. Total clients: %s",
            client.client_id,
            websocket.remote_address,
            self.client_count,
        )
        client.run()

    def _deregister(self, client: ClientConnection) -> None:
        if self.registry.remove(client.client_id, client):
            LOGGER.info("Client %s disconnected. Total clients: %s", client.client_id, self.client_count)
