import logging

logger = logging.getLogger(__name__)


class BroadcastRelay:
    """Appends each inbound message to the log and fans it out to every client."""

    def __init__(self, registry, message_log):
        self.registry = registry
        self.message_log = message_log

    def on_message(self, source, payload):
        """Record ``payload`` and queue it for all live connections, the source included.

        Never waits on a recipient. Each connection's writer task sends from
        its own outbox, so a peer that stops reading holds up nobody else.
        Send failures stay with that connection; it remains registered until
        its own close/error event removes it. Returns the connections the
        payload was queued for.
        """
        if isinstance(payload, (bytes, bytearray)):
            entry = bytes(payload).decode('utf-8', errors='replace')
        else:
            entry = payload
        position = self.message_log.append(entry)

        queued = [conn for conn in self.registry.snapshot() if conn.deliver(payload)]
        logger.debug(f"Message #{position} from {source!r} queued for {len(queued)} clients")
        return queued
