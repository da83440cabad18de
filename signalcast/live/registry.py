"""Registry of authenticated live connections (the broadcast audience)."""

import asyncio
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import WebSocket

from ..models.JWTAuthToken import Identity

logger = logging.getLogger(__name__)


@dataclass
class LiveConnection:
    """One accepted push channel and its pending outbound events."""

    websocket: WebSocket
    identity: Identity
    loop: asyncio.AbstractEventLoop
    queue: asyncio.Queue
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    sender: Optional[asyncio.Task] = None
    overflowed: bool = False


class ConnectionRegistry:
    """Thread-safe map of connection id to live connection.

    Every add, remove and iteration of the audience goes through here.
    """

    def __init__(self):
        self._connections: Dict[str, LiveConnection] = {}
        self._lock = threading.Lock()

    def register(self, connection: LiveConnection) -> LiveConnection:
        with self._lock:
            self._connections[connection.connection_id] = connection
        logger.info(
            "Registered connection %s for %s",
            connection.connection_id,
            connection.identity.email,
        )
        return connection

    def unregister(self, connection_id: str) -> bool:
        """Remove a connection. Returns True if it was present."""
        with self._lock:
            connection = self._connections.pop(connection_id, None)
        if connection is None:
            return False
        logger.info("Unregistered connection %s", connection_id)
        return True

    def snapshot(self) -> List[LiveConnection]:
        """The audience at this instant; later joiners are not included."""
        with self._lock:
            return list(self._connections.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections
