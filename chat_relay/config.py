import argparse
import os
from dataclasses import dataclass, fields
from typing import Optional


def _env_int(name, default):
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name, default):
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class RelayConfig:
    host: str = '0.0.0.0'
    port: int = 8080
    relay_path: str = '/ws'
    messages_path: str = '/messages'
    messages_file: str = 'messages.json'
    static_root: str = 'client'
    heartbeat: Optional[float] = None  # seconds between pings, None disables
    cors_origin: str = '*'
    log_level: str = 'INFO'

    @classmethod
    def from_env(cls, **overrides):
        """Read each field from the environment unless given in ``overrides``.

        Overridden fields never touch their environment variable, so a bad
        ``PORT`` does not matter when ``--port`` is passed.
        """
        loaders = {
            'host': lambda: os.environ.get('HOST', cls.host),
            'port': lambda: _env_int('PORT', cls.port),
            'relay_path': lambda: os.environ.get('RELAY_PATH', cls.relay_path),
            'messages_path': lambda: os.environ.get('MESSAGES_PATH', cls.messages_path),
            'messages_file': lambda: os.environ.get('MESSAGES_FILE', cls.messages_file),
            'static_root': lambda: os.environ.get('STATIC_ROOT', cls.static_root),
            'heartbeat': lambda: _env_float('WS_HEARTBEAT', cls.heartbeat),
            'cors_origin': lambda: os.environ.get('CORS_ORIGIN', cls.cors_origin),
            'log_level': lambda: os.environ.get('LOG_LEVEL', cls.log_level),
        }
        values = {
            name: overrides[name] if name in overrides else load()
            for name, load in loaders.items()
        }
        values['log_level'] = values['log_level'].upper()
        return cls(**values)

    @classmethod
    def from_args(cls, argv=None):
        """Command-line flags, falling back to the environment for anything not given."""
        args = build_parser().parse_args(argv)
        overrides = {
            f.name: getattr(args, f.name)
            for f in fields(cls)
            if getattr(args, f.name, None) is not None
        }
        return cls.from_env(**overrides)


def build_parser():
    parser = argparse.ArgumentParser(description="Real-time WebSocket message relay")
    parser.add_argument('--host', help="Interface to bind (env HOST)")
    parser.add_argument('--port', type=int, help="Port to listen on (env PORT)")
    parser.add_argument('--relay-path', dest='relay_path', help="WebSocket endpoint (env RELAY_PATH)")
    parser.add_argument('--messages-path', dest='messages_path', help="Message log endpoint (env MESSAGES_PATH)")
    parser.add_argument('--messages-file', dest='messages_file', help="JSON file the log is persisted to (env MESSAGES_FILE)")
    parser.add_argument('--static-root', dest='static_root', help="Directory with client assets (env STATIC_ROOT)")
    parser.add_argument('--heartbeat', type=float, help="WebSocket ping interval in seconds (env WS_HEARTBEAT)")
    parser.add_argument('--cors-origin', dest='cors_origin', help="Allowed CORS origin (env CORS_ORIGIN)")
    parser.add_argument('--log-level', dest='log_level', help="Logging level (env LOG_LEVEL)")
    return parser
