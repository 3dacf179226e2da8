#!/usr/bin/env python3
"""Terminal client for the relay: prints everything relayed, sends each stdin line."""
import argparse
import asyncio
import logging
import os
import sys

import websockets

logger = logging.getLogger(__name__)


async def receive_loop(ws, out=sys.stdout):
    async for message in ws:
        if isinstance(message, bytes):
            message = message.decode('utf-8', errors='replace')
        print(message, file=out, flush=True)


async def send_loop(ws, readline=sys.stdin.readline):
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, readline)
        if not line:
            break
        line = line.rstrip('\n')
        if line:
            await ws.send(line)


async def run_client(uri):
    async with websockets.connect(uri) as ws:
        logger.info(f"Connected to {uri}")
        receiver = asyncio.create_task(receive_loop(ws))
        sender = asyncio.create_task(send_loop(ws))
        done, pending = await asyncio.wait(
            {receiver, sender}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, websockets.ConnectionClosed):
                raise exc


def main(argv=None):
    ap = argparse.ArgumentParser(description="Relay terminal client")
    ap.add_argument(
        "--server",
        default=os.getenv("RELAY_URL", "ws://127.0.0.1:8080/ws"),
        help="WebSocket URL of the relay",
    )
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        asyncio.run(run_client(args.server))
    except KeyboardInterrupt:
        pass
    except (OSError, websockets.InvalidURI, websockets.InvalidHandshake) as e:
        logger.error(f"Could not connect to {args.server}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
