import asyncio
import enum
import logging
import threading
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class SendResult(NamedTuple):
    """Outcome of one send attempt. The relay discards failures."""
    connection: "Connection"
    ok: bool
    error: Optional[BaseException] = None


class Connection:
    """A single client socket moving through CONNECTING -> OPEN -> CLOSED.

    Outbound messages go through ``deliver``, which queues them for a writer
    task owned by the connection, so a peer that stops reading only backs up
    its own queue.
    """

    _next_id = 1
    _id_lock = threading.Lock()

    def __init__(self, ws, remote=None):
        with Connection._id_lock:
            self.id = Connection._next_id
            Connection._next_id += 1
        self.ws = ws
        self.remote = remote
        self.state = ConnectionState.CONNECTING
        self._state_lock = threading.Lock()
        self.outbox = asyncio.Queue()
        self.failed_sends = 0
        self._writer = None

    def __repr__(self):
        return f"<Connection {self.id} {self.state.value}>"

    @property
    def is_open(self):
        return self.state is ConnectionState.OPEN

    def mark_open(self):
        with self._state_lock:
            if self.state is not ConnectionState.CONNECTING:
                return False
            self.state = ConnectionState.OPEN
            return True

    def mark_closed(self):
        """Move to CLOSED and stop the writer. Only the first call returns True."""
        with self._state_lock:
            if self.state is ConnectionState.CLOSED:
                return False
            self.state = ConnectionState.CLOSED
        if self._writer is not None:
            self._writer.cancel()
        return True

    def deliver(self, payload):
        """Queue ``payload`` for sending without waiting on the peer."""
        if not self.is_open:
            return False
        self.outbox.put_nowait(payload)
        if self._writer is None:
            self._writer = asyncio.create_task(self._write_outbox())
        return True

    async def wait_delivered(self):
        await self.outbox.join()

    async def _write_outbox(self):
        while True:
            payload = await self.outbox.get()
            try:
                result = await self.send(payload)
            finally:
                self.outbox.task_done()
            if not result.ok:
                self.failed_sends += 1
                logger.debug(f"Send to {self!r} failed: {result.error}")

    async def send(self, payload):
        if not self.is_open:
            return SendResult(self, False, ConnectionError(f"connection {self.id} is {self.state.value}"))
        try:
            if isinstance(payload, (bytes, bytearray)):
                await self.ws.send_bytes(bytes(payload))
            else:
                await self.ws.send_str(payload)
        except Exception as e:
            return SendResult(self, False, e)
        return SendResult(self, True)


class ConnectionRegistry:
    """Set of live connections, guarded by a single lock."""

    def __init__(self):
        self._connections = set()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._connections)

    def __contains__(self, conn):
        with self._lock:
            return conn in self._connections

    def add(self, conn):
        with self._lock:
            self._connections.add(conn)
        logger.debug(f"Registered {conn!r}")

    def remove(self, conn):
        with self._lock:
            self._connections.discard(conn)

    def snapshot(self):
        with self._lock:
            return list(self._connections)

    def for_each(self, fn):
        # Iterate a copy so callbacks may remove connections mid-iteration
        for conn in self.snapshot():
            fn(conn)
