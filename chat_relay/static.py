import logging
import mimetypes
import os

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = 'application/octet-stream'


def guess_content_type(filename):
    content_type, _ = mimetypes.guess_type(filename)
    return content_type or DEFAULT_CONTENT_TYPE


class StaticFiles:
    """Resolves request paths to files under a content root."""

    def __init__(self, root):
        self.root = os.path.realpath(root)

    def resolve(self, path):
        """Return the absolute file path for ``path`` or None if it is not servable."""
        if path in ('', '/'):
            path = '/index.html'
        if '\x00' in path:
            return None

        # Block path traversal out of the content root
        candidate = os.path.realpath(os.path.join(self.root, path.lstrip('/')))
        if candidate != self.root and not candidate.startswith(self.root + os.sep):
            logger.warning(f"Rejected path outside static root: {path}")
            return None

        if not os.path.isfile(candidate):
            return None
        return candidate

    def load(self, path):
        """Return ``(body, content_type)`` for ``path``, or None when missing."""
        filepath = self.resolve(path)
        if filepath is None:
            return None

        with open(filepath, 'rb') as f:
            body = f.read()
        return body, guess_content_type(filepath)
