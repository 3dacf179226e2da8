import pytest

from chat_relay.app import create_app
from chat_relay.config import RelayConfig


@pytest.fixture
def static_root(tmp_path):
    root = tmp_path / "client"
    root.mkdir()
    (root / "index.html").write_text("<html><body>relay</body></html>", encoding="utf-8")
    (root / "style.css").write_text("body { color: white; }", encoding="utf-8")
    return root


@pytest.fixture
def messages_file(tmp_path):
    return tmp_path / "messages.json"


@pytest.fixture
def config(static_root, messages_file):
    return RelayConfig(
        host="127.0.0.1",
        port=0,
        messages_file=str(messages_file),
        static_root=str(static_root),
    )


@pytest.fixture
async def relay_client(aiohttp_client, config):
    return await aiohttp_client(create_app(config))
