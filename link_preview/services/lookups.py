"""Single-purpose lookups backing the embed routes.

Each returns plain JSON-able data. Tweets raise :class:`LookupFailed` when
missing; the other lookups fall back to what can be read off the URL.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx

from link_preview.config import Settings
from link_preview.errors import LookupFailed
from link_preview.services.handlers import tiktok
from link_preview.services.handlers.reddit import json_endpoint, video_urls
from link_preview.services.http import fetch_json

logger = logging.getLogger(__name__)

TWEET_ENDPOINT = "https://cdn.syndication.twimg.com/tweet-result"
REDDIT_BY_ID_ENDPOINT = "https://www.reddit.com/by_id/t3_{id}.json"

TWEET_ID_RE = re.compile(r"^\d{5,40}$")
REDDIT_ID_RE = re.compile(r"^[a-z0-9]{1,12}$", re.IGNORECASE)
_REDDIT_PERMALINK_RE = re.compile(r"/r/([^/]+)/comments/([a-z0-9]+)", re.IGNORECASE)
_PIN_ID_RE = re.compile(r"/pin/([^/?#]+)")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_TOKEN_STRIP_RE = re.compile(r"(0+|\.)")


def _to_base36(value: float, fraction_digits: int = 11) -> str:
    integer = int(value)
    fraction = value - integer
    digits = ""
    while integer:
        integer, remainder = divmod(integer, 36)
        digits = _BASE36[remainder] + digits
    digits = digits or "0"
    if fraction:
        digits += "."
        for _ in range(fraction_digits):
            fraction *= 36
            digit = int(fraction)
            digits += _BASE36[digit]
            fraction -= digit
            if not fraction:
                break
    return digits


def syndication_token(tweet_id: str) -> str:
    """Token the syndication endpoint expects alongside a tweet id."""
    return _TOKEN_STRIP_RE.sub("", _to_base36(int(tweet_id) / 1e15 * math.pi))


async def fetch_tweet(client: httpx.AsyncClient, tweet_id: str, settings: Settings) -> dict:
    if not TWEET_ID_RE.match(tweet_id or ""):
        raise ValueError("Invalid tweet id")
    try:
        data = await fetch_json(
            client,
            TWEET_ENDPOINT,
            settings.handler_timeout,
            id=tweet_id,
            token=syndication_token(tweet_id),
            lang="en",
        )
    except httpx.HTTPStatusError as exc:
        logger.info("Tweet %s lookup returned %s", tweet_id, exc.response.status_code)
        raise LookupFailed("Tweet not found") from exc
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Tweet %s lookup failed: %s", tweet_id, exc)
        raise LookupFailed("Tweet not found") from exc

    if not isinstance(data, dict) or not data or data.get("__typename") == "TweetTombstone":
        raise LookupFailed("Tweet not found")
    return data


def reddit_fallback(url: str) -> Optional[dict[str, Any]]:
    """``{id, subreddit, permalink}`` read off a post URL, if it is one."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    if host == "redd.it":
        post_id = parts.path.strip("/").split("/")[0]
        return {"id": post_id, "subreddit": None, "permalink": None} if post_id else None
    match = _REDDIT_PERMALINK_RE.search(parts.path)
    if not match:
        return None
    return {
        "id": match.group(2),
        "subreddit": match.group(1),
        "permalink": parts.path,
    }


def _first_post(listing: Any) -> Optional[dict]:
    if isinstance(listing, list):
        listing = listing[0] if listing else None
    if not isinstance(listing, dict):
        return None
    children = (listing.get("data") or {}).get("children") or []
    if not children:
        return None
    return children[0].get("data")


async def fetch_reddit_post(
    client: httpx.AsyncClient,
    settings: Settings,
    post_id: Optional[str] = None,
    url: Optional[str] = None,
) -> dict:
    if not post_id and not url:
        raise ValueError("id or url is required")
    if post_id and not REDDIT_ID_RE.match(post_id):
        raise ValueError("Invalid post id")

    endpoint = REDDIT_BY_ID_ENDPOINT.format(id=post_id) if post_id else json_endpoint(url)
    post = None
    try:
        post = _first_post(await fetch_json(client, endpoint, settings.handler_timeout))
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Reddit lookup for %s failed: %s", post_id or url, exc)

    if post:
        videos = video_urls(post)
        return {**post, "video_urls": videos} if videos else post
    degraded = reddit_fallback(url) if url else None
    if degraded is None:
        raise LookupFailed("Reddit post not found")
    return degraded


async def fetch_tiktok(client: httpx.AsyncClient, url: str, settings: Settings) -> dict:
    try:
        return await tiktok.fetch_oembed(client, url, settings.oembed_timeout)
    except (httpx.HTTPError, ValueError) as exc:
        logger.info("TikTok oEmbed failed for %s: %s", url, exc)

    data: dict[str, Any] = {
        "title": "TikTok video",
        "provider_name": "TikTok",
        "embed_product_id": tiktok.extract_video_id(url),
    }
    author = tiktok.extract_author(url)
    if author:
        data["author_name"] = author
    return data


async def resolve_redirects(client: httpx.AsyncClient, url: str, timeout: float) -> str:
    """Final URL after redirects; the input URL when the request fails."""
    try:
        response = await client.get(url, timeout=timeout)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.info("Could not resolve %s: %s", url, exc)
        return url
    return str(response.url)


def pinterest_pin_id(url: str) -> Optional[str]:
    parts = urlsplit(url)
    if "pinterest." not in (parts.hostname or "").lower():
        return None
    match = _PIN_ID_RE.search(parts.path)
    return match.group(1) if match else None


async def fetch_pinterest(client: httpx.AsyncClient, url: str, settings: Settings) -> dict:
    resolved = url
    if (urlsplit(url).hostname or "").lower() == "pin.it":
        resolved = await resolve_redirects(client, url, settings.handler_timeout)
    data: dict[str, Any] = {"url": resolved}
    pin_id = pinterest_pin_id(resolved)
    if pin_id:
        data["id"] = pin_id
    return data


async def fetch_facebook(client: httpx.AsyncClient, url: str, settings: Settings) -> dict:
    return {"url": await resolve_redirects(client, url, settings.handler_timeout)}
