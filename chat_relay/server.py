#!/usr/bin/env python3
import asyncio
import logging
import signal
import sys

from aiohttp import web

from .app import create_app
from .config import RelayConfig

logger = logging.getLogger(__name__)


def setup_logging(level):
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def install_signal_handlers(loop, stop):
    """Have SIGINT/SIGTERM set ``stop``. Returns the signals actually hooked."""
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops lack add_signal_handler
            continue
        installed.append(sig)
    return installed


async def run(config, stop=None):
    """Serve until ``stop`` is set (SIGINT/SIGTERM by default), then shut down.

    Runner cleanup closes open sockets and flushes the message log once.
    """
    app = create_app(config)
    runner = web.AppRunner(app)
    await runner.setup()

    if stop is None:
        stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    hooked = install_signal_handlers(loop, stop)

    try:
        site = web.TCPSite(runner, config.host, config.port)
        await site.start()

        logger.info(f"🚀 Relay listening on http://{config.host}:{config.port}")
        logger.info(f"🔌 WebSocket: ws://{config.host}:{config.port}{config.relay_path}")
        logger.info(f"📜 Messages: http://{config.host}:{config.port}{config.messages_path}")

        await stop.wait()
        logger.info("🛑 Shutting down")
    finally:
        for sig in hooked:
            loop.remove_signal_handler(sig)
        await runner.cleanup()


def main(argv=None):
    try:
        config = RelayConfig.from_args(argv)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.log_level)

    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("🛑 Server stopped by user")
    except OSError as e:
        logger.error(f"Server failed or could not save messages: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
