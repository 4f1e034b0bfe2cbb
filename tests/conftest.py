from typing import Callable

import httpx
import pytest

from link_preview.config import Settings
from link_preview.services.http import create_http_client

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        storage_url="https://storage.example.com",
    )


@pytest.fixture
async def make_client(settings):
    """Build shared-style clients whose network is a ``MockTransport``."""
    clients = []

    def factory(handler: Handler) -> httpx.AsyncClient:
        client = create_http_client(settings, transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        await client.aclose()
