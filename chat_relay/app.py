import logging

import aiohttp_cors
from aiohttp import WSCloseCode, WSMsgType, web

from .config import RelayConfig
from .message_log import MessageLog
from .registry import Connection, ConnectionRegistry
from .relay import BroadcastRelay
from .static import StaticFiles

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey('config', RelayConfig)
REGISTRY_KEY = web.AppKey('registry', ConnectionRegistry)
MESSAGE_LOG_KEY = web.AppKey('message_log', MessageLog)
RELAY_KEY = web.AppKey('relay', BroadcastRelay)
STATIC_KEY = web.AppKey('static', StaticFiles)


def is_upgrade_request(request):
    return 'websocket' in request.headers.get('Upgrade', '').lower()


def upgrade_guard(relay_path):
    """Abort the socket of any WebSocket upgrade aimed outside ``relay_path``."""

    @web.middleware
    async def middleware(request, handler):
        if is_upgrade_request(request) and not request.path.startswith(relay_path):
            logger.warning(f"Rejected upgrade request for {request.path} from {request.remote}")
            if request.transport is not None:
                request.transport.abort()
            return web.Response(status=400)
        return await handler(request)

    return middleware


async def websocket_handler(request):
    """Relay endpoint: every message received is logged and sent to all clients"""
    app = request.app
    registry = app[REGISTRY_KEY]
    relay = app[RELAY_KEY]

    ws = web.WebSocketResponse(heartbeat=app[CONFIG_KEY].heartbeat)
    conn = Connection(ws, remote=request.remote)
    await ws.prepare(request)

    conn.mark_open()
    registry.add(conn)
    logger.info(f"✅ Client {conn.id} connected from {request.remote}")

    try:
        async for msg in ws:
            if msg.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                relay.on_message(conn, msg.data)
            elif msg.type == WSMsgType.ERROR:
                logger.error(f"WebSocket error on client {conn.id}: {ws.exception()}")
                break
    finally:
        if conn.mark_closed():
            registry.remove(conn)
            logger.info(f"❌ Client {conn.id} disconnected")

    return ws


async def messages_handler(request):
    """Full message log as a JSON array"""
    return web.json_response(request.app[MESSAGE_LOG_KEY].snapshot())


async def serve_static(request):
    """Static client files; anything unresolvable is a bare 404"""
    found = request.app[STATIC_KEY].load(request.path)
    if found is None:
        return web.Response(status=404)

    body, content_type = found
    return web.Response(body=body, content_type=content_type)


async def close_connections(app):
    registry = app[REGISTRY_KEY]
    for conn in registry.snapshot():
        if conn.mark_closed():
            registry.remove(conn)
        try:
            await conn.ws.close(code=WSCloseCode.GOING_AWAY, message=b"Server shutdown")
        except Exception as e:
            logger.warning(f"Failed to close client {conn.id} during shutdown: {e}")


async def persist_messages(app):
    app[MESSAGE_LOG_KEY].flush()


def create_app(config=None, message_log=None):
    """Build the aiohttp application with its registry, log and relay."""
    config = config or RelayConfig.from_env()
    if message_log is None:
        message_log = MessageLog.load(config.messages_file)

    app = web.Application(middlewares=[upgrade_guard(config.relay_path)])

    registry = ConnectionRegistry()
    app[CONFIG_KEY] = config
    app[REGISTRY_KEY] = registry
    app[MESSAGE_LOG_KEY] = message_log
    app[RELAY_KEY] = BroadcastRelay(registry, message_log)
    app[STATIC_KEY] = StaticFiles(config.static_root)

    cors = aiohttp_cors.setup(app, defaults={
        config.cors_origin: aiohttp_cors.ResourceOptions(
            allow_credentials=True,
            expose_headers="*",
            allow_headers="*",
            allow_methods="*"
        )
    })

    # Prefix matches, so /ws/lobby relays and /messages/ lists the log
    app.router.add_get(config.relay_path + "{tail:.*}", websocket_handler)
    app.router.add_get(config.messages_path + "{tail:.*}", messages_handler)
    app.router.add_get('/{tail:.*}', serve_static)

    for route in list(app.router.routes()):
        cors.add(route)

    app.on_shutdown.append(close_connections)
    app.on_cleanup.append(persist_messages)

    return app
