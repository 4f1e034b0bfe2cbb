"""Shared outbound HTTP client."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from link_preview.config import Settings
from link_preview.services.url_guard import validate_url

logger = logging.getLogger(__name__)

HTML_ACCEPT = (
    "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8"
)
JSON_ACCEPT = "application/json"


async def guard_request(request: httpx.Request) -> None:
    """Event hook that screens every request, including redirect hops."""
    validate_url(str(request.url))


def create_http_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the client every handler, lookup and worker shares."""
    return httpx.AsyncClient(
        transport=transport,
        timeout=settings.fetch_timeout,
        follow_redirects=True,
        max_redirects=5,
        headers={
            "User-Agent": settings.user_agent,
            "Accept-Language": "en-US,en;q=0.9",
        },
        event_hooks={"request": [guard_request]},
    )


async def fetch_html(
    client: httpx.AsyncClient, url: str, timeout: float
) -> tuple[str, str]:
    """GET a page and return ``(html, final_url)``; raises on non-2xx."""
    response = await client.get(url, headers={"Accept": HTML_ACCEPT}, timeout=timeout)
    response.raise_for_status()
    return response.text, str(response.url)


async def fetch_json(client: httpx.AsyncClient, url: str, timeout: float, **params):
    response = await client.get(
        url, params=params or None, headers={"Accept": JSON_ACCEPT}, timeout=timeout
    )
    response.raise_for_status()
    return response.json()


async def head_image(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_size: Optional[int] = None,
    reject_empty: bool = False,
) -> bool:
    """Lightweight existence/type/size check for an image URL."""
    try:
        response = await client.head(url, timeout=timeout)
    except (httpx.HTTPError, ValueError) as exc:
        logger.debug("HEAD %s failed: %s", url, exc)
        return False
    if not response.is_success:
        return False
    content_type = response.headers.get("content-type", "")
    if not content_type.lower().startswith("image/"):
        return False
    length = response.headers.get("content-length")
    if length is not None and length.isdigit():
        size = int(length)
        if size == 0 and reject_empty:
            return False
        if max_size is not None and size > max_size:
            return False
    return True
