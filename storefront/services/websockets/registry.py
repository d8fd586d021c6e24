# storefront/services/websockets/registry.py
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

from storefront.core.enums import ConnectionState
from storefront.core.exceptions import InvalidHandshakeError
from storefront.core.utils import utc_now
from storefront.schemas.realtime import AuthenticatedEvent, PingEvent

logger = logging.getLogger(__name__)

WS_CLOSE_INTERNAL_ERROR = 1011


class Transport(Protocol):
    """
    Anything that can push a JSON frame to one client (a FastAPI WebSocket fits).
    An async ``close(code=...)`` is used as well when the transport has one.
    """

    async def send_json(self, data: Any) -> None: ...


@dataclass(eq=False)
class Connection:
    transport: Transport
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    identity: Optional[str] = None
    state: ConnectionState = ConnectionState.UNAUTHENTICATED
    connected_at: Any = field(default_factory=utc_now)
    last_pong_at: Optional[Any] = None
    heartbeat_task: Optional[asyncio.Task] = None
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.state == ConnectionState.AUTHENTICATED and self.identity is not None

    async def send(self, message: dict) -> None:
        # Frames to one client are written one at a time, in call order
        async with self._send_lock:
            await self.transport.send_json(message)


class ConnectionRegistry:
    """
    Tracks live connections and groups authenticated ones by identity.

    One instance per process, created at startup and shut down with the app.
    Group changes are visible to the broadcast channel immediately.
    """

    def __init__(self, heartbeat_interval: float = 25.0, liveness_timeout: float = 60.0):
        self.heartbeat_interval = heartbeat_interval
        self.liveness_timeout = liveness_timeout
        self.active_connections: Dict[str, Connection] = {}
        self.groups: Dict[str, Dict[str, Connection]] = {}

    def accept(self, transport: Transport) -> Connection:
        connection = Connection(transport=transport)
        self.active_connections[connection.id] = connection
        logger.info(
            f"Connection {connection.id} accepted. Total connections: {len(self.active_connections)}"
        )
        return connection

    async def authenticate(self, connection: Connection, identity: Any) -> AuthenticatedEvent:
        """
        Bind a connection to an identity, start its heartbeat and acknowledge.

        Re-authenticating moves the connection to the new identity's group.
        """
        if connection.state == ConnectionState.CLOSED:
            raise InvalidHandshakeError("Connection is closed")
        if identity is None or isinstance(identity, bool) or not str(identity).strip():
            raise InvalidHandshakeError("User ID is required for authentication")
        identity = str(identity).strip()

        self._leave_group(connection)
        self.groups.setdefault(identity, {})[connection.id] = connection
        connection.identity = identity
        connection.state = ConnectionState.AUTHENTICATED
        connection.last_pong_at = utc_now()

        self._cancel_heartbeat(connection)
        connection.heartbeat_task = asyncio.create_task(
            self._heartbeat(connection), name=f"heartbeat-{connection.id}"
        )

        logger.info(
            f"Connection {connection.id} authenticated as {identity}. "
            f"Connections for identity: {len(self.groups[identity])}"
        )

        ack = AuthenticatedEvent(identity=identity, connection_id=connection.id, timestamp=utc_now())
        await connection.send(ack.to_wire())
        return ack

    def record_pong(self, connection: Connection) -> None:
        connection.last_pong_at = utc_now()

    def is_stale(self, connection: Connection, now=None) -> bool:
        """Liveness signal only: no pong within the timeout. Nothing is disconnected."""
        if connection.last_pong_at is None:
            return False
        now = now or utc_now()
        return (now - connection.last_pong_at).total_seconds() > self.liveness_timeout

    def close(self, connection: Connection, reason: Optional[str] = None) -> None:
        """Remove a connection and stop its heartbeat. Safe to call more than once."""
        if connection.state == ConnectionState.CLOSED:
            return
        self._leave_group(connection)
        self._cancel_heartbeat(connection)
        self.active_connections.pop(connection.id, None)
        connection.state = ConnectionState.CLOSED
        logger.info(
            f"Connection {connection.id} closed ({reason or 'no reason'}). "
            f"Total connections: {len(self.active_connections)}"
        )

    async def drop(self, connection: Connection, reason: str) -> None:
        """
        Close a connection whose transport failed, and shut the transport too
        when it can be closed, so the client sees the disconnect.
        """
        self.close(connection, reason=reason)
        close_transport = getattr(connection.transport, "close", None)
        if close_transport is None:
            return
        try:
            await close_transport(code=WS_CLOSE_INTERNAL_ERROR)
        except Exception as e:
            logger.debug(f"Transport for connection {connection.id} already gone: {e}")

    def peers(self, identity: str, exclude: Optional[str] = None) -> List[Connection]:
        """Live connections of an identity, optionally leaving one out."""
        group = self.groups.get(identity, {})
        return [c for cid, c in group.items() if cid != exclude]

    def connections_for(self, identity: str) -> List[Connection]:
        return list(self.groups.get(identity, {}).values())

    async def shutdown(self) -> None:
        """Close every connection and wait for heartbeat tasks to finish."""
        tasks = [c.heartbeat_task for c in self.active_connections.values() if c.heartbeat_task]
        for connection in list(self.active_connections.values()):
            self.close(connection, reason="server shutdown")
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def _leave_group(self, connection: Connection) -> None:
        if connection.identity is None:
            return
        group = self.groups.get(connection.identity)
        if group is not None:
            group.pop(connection.id, None)
            if not group:
                del self.groups[connection.identity]

    @staticmethod
    def _cancel_heartbeat(connection: Connection) -> None:
        task = connection.heartbeat_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        connection.heartbeat_task = None

    async def _heartbeat(self, connection: Connection) -> None:
        """Ping on a fixed interval; never waits for the pong."""
        try:
            while connection.state == ConnectionState.AUTHENTICATED:
                await asyncio.sleep(self.heartbeat_interval)
                if connection.state != ConnectionState.AUTHENTICATED:
                    break
                if self.is_stale(connection):
                    logger.warning(
                        f"Connection {connection.id} ({connection.identity}) has not answered "
                        f"a ping since {connection.last_pong_at.isoformat()}"
                    )
                await connection.send(PingEvent(timestamp=utc_now()).to_wire())
        except Exception as e:
            logger.error(f"Heartbeat to connection {connection.id} failed: {e}")
            await self.drop(connection, reason="heartbeat send failed")
