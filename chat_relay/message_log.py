import json
import logging
import os
import tempfile
import threading

logger = logging.getLogger(__name__)


class MessageLog:
    """Append-only, arrival-ordered record of every relayed message.

    Loaded once from ``path`` at startup and written back once at shutdown.
    """

    def __init__(self, path=None, messages=None):
        self.path = path
        self._messages = list(messages or [])
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path):
        """Read the persisted log; a missing or malformed file gives an empty log."""
        if not os.path.exists(path):
            logger.info(f"No message file at {path}, starting with an empty log")
            return cls(path)

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read message file {path}: {e}")
            return cls(path)

        if not isinstance(data, list):
            logger.warning(f"Message file {path} does not hold a JSON array, ignoring it")
            return cls(path)

        logger.info(f"📜 Loaded {len(data)} messages from {path}")
        return cls(path, data)

    def __len__(self):
        with self._lock:
            return len(self._messages)

    def append(self, message):
        with self._lock:
            self._messages.append(message)
            return len(self._messages)

    def snapshot(self):
        with self._lock:
            return list(self._messages)

    def to_json(self):
        return json.dumps(self.snapshot())

    def flush(self, path=None):
        """Overwrite the message file with the full log.

        The JSON is written to a sibling temp file first and then moved into
        place, so the old file stays intact if writing fails.
        """
        path = path or self.path
        if path is None:
            raise ValueError("MessageLog has no file path to flush to")

        body = self.to_json()
        directory = os.path.dirname(os.path.abspath(path))
        fd, tmp_path = tempfile.mkstemp(prefix='.messages-', suffix='.json', dir=directory)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(body)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"💾 Saved {len(self)} messages to {path}")
