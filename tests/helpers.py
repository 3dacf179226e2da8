import asyncio
import json


class FakeWebSocket:
    """Stands in for an aiohttp WebSocketResponse in unit tests."""

    def __init__(self, fail=False, gate=None, fail_close=False):
        self.fail = fail
        self.gate = gate
        self.fail_close = fail_close
        self.sent = []
        self.attempts = 0
        self.closed = False

    async def send_str(self, data):
        await self._send(data)

    async def send_bytes(self, data):
        await self._send(data)

    async def _send(self, data):
        self.attempts += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)

    async def close(self, code=None, message=b""):
        if self.fail_close:
            raise ConnectionResetError("Connection lost")
        self.closed = True


def write_messages(path, messages):
    path.write_text(json.dumps(messages), encoding="utf-8")


async def wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
