from .app import create_app
from .config import RelayConfig
from .message_log import MessageLog
from .registry import Connection, ConnectionRegistry, ConnectionState, SendResult
from .relay import BroadcastRelay

__all__ = [
    'BroadcastRelay',
    'Connection',
    'ConnectionRegistry',
    'ConnectionState',
    'MessageLog',
    'RelayConfig',
    'SendResult',
    'create_app',
]
