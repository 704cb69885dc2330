from __future__ import annotations

import socket
from collections.abc import Generator

import pytest

from webtestkit.config import get_settings

pytest_plugins = ["pytester"]

_APP_ENV_VARS = ("APP_HOST", "APP_PORT", "APP_BASE_PATH", "APP_ENTRYPOINT")


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None]:
    """Every test starts from default settings and an empty APP_* environment."""
    for name in _APP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def listener() -> Generator[socket.socket]:
    """A TCP socket listening on an ephemeral localhost port."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    yield sock
    sock.close()


@pytest.fixture()
def free_port() -> int:
    """A localhost port nothing is listening on (at the time of the call)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port: int = sock.getsockname()[1]
    return port
