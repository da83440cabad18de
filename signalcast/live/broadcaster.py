"""Fan-out of signal events to every live connection.

Delivery is at-most-once with no backlog: an event reaches the connections
registered when it is published, in publish order, and nobody else. Clients
treat the listing endpoint as the source of truth and pushes as hints.
"""

import asyncio
import logging
from typing import Optional

from fastapi import WebSocket, WebSocketDisconnect, status

from ..auth.service import verify_token
from ..core.errors import AuthError
from ..core.settings import settings
from .registry import ConnectionRegistry, LiveConnection

logger = logging.getLogger(__name__)

SIGNAL_CREATED = "signal:created"
SIGNAL_DELETED = "signal:deleted"


class Broadcaster:
    """Owns the live connection registry and pushes events to it.

    Example::

        connection = await broadcaster.handshake(websocket, token)
        if connection is not None:
            await broadcaster.serve(connection)

        # elsewhere, after a durable write
        broadcaster.publish_created(record.to_wire())
    """

    def __init__(self, max_pending: Optional[int] = None):
        self.max_pending = max_pending or settings.LIVE_QUEUE_SIZE
        self.registry = ConnectionRegistry()

    async def handshake(self, websocket: WebSocket, token: Optional[str]) -> Optional[LiveConnection]:
        """Verify ``token`` and admit the connection, or refuse it.

        The connection is registered before the accept is sent, so a client
        that sees the accept is already part of the audience.
        """
        try:
            identity = verify_token(token)
        except AuthError as exc:
            logger.info("Refused live connection: %s", exc.detail)
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.detail)
            return None

        connection = LiveConnection(
            websocket=websocket,
            identity=identity,
            loop=asyncio.get_running_loop(),
            queue=asyncio.Queue(maxsize=self.max_pending),
        )
        self.registry.register(connection)
        try:
            await websocket.accept()
        except Exception:
            self.registry.unregister(connection.connection_id)
            raise
        return connection

    async def serve(self, connection: LiveConnection) -> None:
        """Pump queued events out until the client leaves or falls behind."""
        connection.sender = asyncio.create_task(self._send_loop(connection))
        receiver = asyncio.create_task(self._receive_loop(connection))
        try:
            await asyncio.wait({connection.sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            self.disconnect(connection)
            for task in (connection.sender, receiver):
                task.cancel()
            await asyncio.gather(connection.sender, receiver, return_exceptions=True)

        for name, task in (("send", connection.sender), ("receive", receiver)):
            if not task.cancelled() and task.exception() is not None:
                logger.info(
                    "Connection %s %s failed: %s", connection.connection_id, name, task.exception()
                )
        if connection.overflowed:
            await self._close(connection, status.WS_1013_TRY_AGAIN_LATER, "Too slow")

    def disconnect(self, connection: LiveConnection) -> None:
        self.registry.unregister(connection.connection_id)

    def publish_created(self, record: dict) -> None:
        self._publish({"event": SIGNAL_CREATED, "data": record})

    def publish_deleted(self, record_id: str) -> None:
        self._publish({"event": SIGNAL_DELETED, "data": {"id": record_id}})

    def _publish(self, message: dict) -> None:
        # Never awaits: enqueueing is scheduled on each connection's loop.
        audience = self.registry.snapshot()
        for connection in audience:
            try:
                connection.loop.call_soon_threadsafe(self._enqueue, connection, message)
            except RuntimeError:
                # The connection's event loop is closed; it cannot receive anything.
                self.registry.unregister(connection.connection_id)
        logger.debug("Published %s to %d connection(s)", message["event"], len(audience))

    def _enqueue(self, connection: LiveConnection, message: dict) -> None:
        if connection.overflowed:
            return
        try:
            connection.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Dropping slow connection %s (%d pending events)",
                connection.connection_id,
                connection.queue.qsize(),
            )
            connection.overflowed = True
            self.registry.unregister(connection.connection_id)
            if connection.sender is not None:
                connection.sender.cancel()

    async def _send_loop(self, connection: LiveConnection) -> None:
        while True:
            message = await connection.queue.get()
            await connection.websocket.send_json(message)

    async def _receive_loop(self, connection: LiveConnection) -> None:
        # Clients send nothing we act on; reading only detects the close.
        try:
            while True:
                message = await connection.websocket.receive()
                if message["type"] == "websocket.disconnect":
                    return
        except WebSocketDisconnect:
            return

    async def _close(self, connection: LiveConnection, code: int, reason: str) -> None:
        try:
            await connection.websocket.close(code=code, reason=reason)
        except RuntimeError as exc:
            logger.debug("Connection %s already closed: %s", connection.connection_id, exc)


broadcaster = Broadcaster()


def get_broadcaster() -> Broadcaster:
    return broadcaster
