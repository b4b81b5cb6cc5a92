"""Who is watching which vault, and delivery of events to them.

The hub is shared by every WebSocket handler and by the HTTP write path,
which runs on worker threads, so all access to the registry goes through a
single ``threading.Lock``. Delivery never blocks: each connection has its
own outbox, and the hub only enqueues onto it.
"""
import asyncio
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

Event = Dict[str, Any]


class Connection(ABC):
    """Transport-side endpoint the hub delivers events to."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    def send(self, event: Event) -> None:
        """Hand ``event`` to the transport without waiting for it to be written."""

    @abstractmethod
    def close(self) -> None:
        ...


class QueuedConnection(Connection):
    """A WebSocket connection with a bounded outbox drained by ``drain``.

    Must be created on the event loop that serves the socket. ``send`` may be
    called from any thread.
    """

    def __init__(self, maxsize: int = 256):
        self._loop = asyncio.get_running_loop()
        self._outbox: "asyncio.Queue[Event]" = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    def send(self, event: Event) -> None:
        if self._closed:
            return
        try:
            self._loop.call_soon_threadsafe(self._enqueue, event)
        except RuntimeError:
            # loop already shut down
            self._closed = True

    def _enqueue(self, event: Event) -> None:
        if self._closed:
            return
        try:
            self._outbox.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("Outbox full, dropping %s event", event.get("type"))

    def close(self) -> None:
        self._closed = True

    async def drain(self, websocket: WebSocket) -> None:
        """Write queued events to ``websocket`` in order until closed."""
        while True:
            event = await self._outbox.get()
            if self._closed:
                return
            try:
                await websocket.send_json(event)
            except (WebSocketDisconnect, RuntimeError) as exc:
                logger.debug("Dropping connection after failed send: %r", exc)
                self._closed = True
                return


class PresenceHub:
    def __init__(self):
        self._lock = threading.Lock()
        self._vaults: Dict[str, Set[Connection]] = {}
        self._subscriptions: Dict[Connection, str] = {}

    def join(self, connection: Connection, vault_hash: str) -> int:
        """Subscribe ``connection`` to ``vault_hash``, leaving its previous vault.

        Returns the number of subscribers after the join, or 0 when the
        connection is already closed and was not registered.
        """
        with self._lock:
            self._leave_locked(connection)
            if not connection.is_open:
                return 0
            members = self._vaults.setdefault(vault_hash, set())
            members.add(connection)
            self._subscriptions[connection] = vault_hash
            count = len(members)
        logger.debug("Connection joined vault %s (%d watching)", vault_hash, count)
        return count

    def leave(self, connection: Connection) -> Optional[str]:
        """Unsubscribe ``connection``; returns the vault it left, if any."""
        with self._lock:
            vault_hash = self._leave_locked(connection)
        if vault_hash is not None:
            logger.debug("Connection left vault %s", vault_hash)
        return vault_hash

    def _leave_locked(self, connection: Connection) -> Optional[str]:
        vault_hash = self._subscriptions.pop(connection, None)
        if vault_hash is None:
            return None
        members = self._vaults.get(vault_hash)
        if members is not None:
            members.discard(connection)
            if not members:
                del self._vaults[vault_hash]
        return vault_hash

    def broadcast(self, vault_hash: str, event: Event, exclude: Optional[Connection] = None) -> int:
        """Send ``event`` to every open subscriber of ``vault_hash`` but ``exclude``.

        Enumeration and enqueueing both happen under the lock, so every
        connection sees events in the order the hub issued them.
        """
        delivered = 0
        with self._lock:
            for connection in self._vaults.get(vault_hash, ()):
                if connection is exclude or not connection.is_open:
                    continue
                connection.send(event)
                delivered += 1
        return delivered

    def count(self, vault_hash: str) -> int:
        with self._lock:
            return len(self._vaults.get(vault_hash, ()))

    def subscription_of(self, connection: Connection) -> Optional[str]:
        with self._lock:
            return self._subscriptions.get(connection)

    def vault_count(self) -> int:
        with self._lock:
            return len(self._vaults)

    def connection_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)
