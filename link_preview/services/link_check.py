"""Link health checks.

Social platforms answer server-side HEAD requests with login walls or 4xx,
so their URLs are judged by shape alone. Everything else gets a HEAD request
without following redirects.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Optional
from urllib.parse import parse_qs, urljoin, urlsplit

import httpx

from link_preview.schemas.link_check import LinkCheckResult, LinkStatus

logger = logging.getLogger(__name__)

LINK_CHECK_USER_AGENT = "Mozilla/5.0 (compatible; LinkPreview LinkChecker/1.0)"

_TWEET_RE = re.compile(r"/status/\d+")
_SUBREDDIT_RE = re.compile(r"/r/[a-zA-Z0-9_]+")
_REDDIT_POST_RE = re.compile(r"/comments/[a-z0-9]+", re.IGNORECASE)
_TIKTOK_VIDEO_RE = re.compile(r"/@[\w.]+/video/\d+")
_TIKTOK_PROFILE_RE = re.compile(r"^/@[\w.]+/?$")
_INSTAGRAM_POST_RE = re.compile(r"^/(p|reel|tv|reels)/[\w-]+")
_INSTAGRAM_PROFILE_RE = re.compile(r"^/[\w.]+/?$")
_PIN_RE = re.compile(r"/pin/[\w-]+")
_YOUTUBE_PATH_RE = re.compile(r"^/(watch|shorts|embed)")


def _on(host: str, *domains: str) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def _twitter(host: str, parts) -> Optional[bool]:
    if _on(host, "twitter.com", "x.com"):
        return bool(_TWEET_RE.search(parts.path))
    return None


def _reddit(host: str, parts) -> Optional[bool]:
    if _on(host, "reddit.com", "redd.it"):
        return bool(
            _SUBREDDIT_RE.search(parts.path)
            or _REDDIT_POST_RE.search(parts.path)
            or (host == "redd.it" and len(parts.path) > 1)
        )
    return None


def _tiktok(host: str, parts) -> Optional[bool]:
    if _on(host, "tiktok.com"):
        path = parts.path
        return bool(
            _TIKTOK_VIDEO_RE.search(path)
            or path.startswith("/t/")
            or "/v/" in path
            or _TIKTOK_PROFILE_RE.match(path)
        )
    return None


def _instagram(host: str, parts) -> Optional[bool]:
    if _on(host, "instagram.com"):
        path = parts.path
        return bool(
            _INSTAGRAM_POST_RE.match(path)
            or (path != "/" and _INSTAGRAM_PROFILE_RE.match(path))
        )
    return None


def _facebook(host: str, parts) -> Optional[bool]:
    if _on(host, "facebook.com", "fb.watch", "fb.com"):
        return len(parts.path) > 1 or bool(parts.query)
    return None


def _pinterest(host: str, parts) -> Optional[bool]:
    if host.startswith("pinterest.") or ".pinterest." in host or host == "pin.it":
        return bool(_PIN_RE.search(parts.path) or (host == "pin.it" and len(parts.path) > 1))
    return None


def _youtube(host: str, parts) -> Optional[bool]:
    if _on(host, "youtube.com", "youtu.be"):
        return bool(
            "v" in parse_qs(parts.query)
            or _YOUTUBE_PATH_RE.match(parts.path)
            or (host == "youtu.be" and len(parts.path) > 1)
        )
    return None


SOCIAL_CHECKS: tuple[Callable, ...] = (
    _twitter,
    _reddit,
    _tiktok,
    _instagram,
    _facebook,
    _pinterest,
    _youtube,
)


def check_social_url(url: str) -> Optional[bool]:
    """Structural verdict for known social URLs; None for other sites."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    for check in SOCIAL_CHECKS:
        verdict = check(host, parts)
        if verdict is not None:
            return verdict
    return None


async def check_link(client: httpx.AsyncClient, url: str, timeout: float = 10.0) -> LinkCheckResult:
    social = check_social_url(url)
    if social is not None:
        return LinkCheckResult(status=LinkStatus.ok if social else LinkStatus.broken)

    try:
        response = await client.head(
            url,
            follow_redirects=False,
            headers={"User-Agent": LINK_CHECK_USER_AGENT},
            timeout=timeout,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Link check for %s failed: %s", url, exc)
        return LinkCheckResult(status=LinkStatus.broken)

    if response.is_redirect:
        location = response.headers.get("location")
        if location:
            return LinkCheckResult(
                status=LinkStatus.redirected, redirect_url=urljoin(url, location)
            )
    if response.is_success:
        return LinkCheckResult(status=LinkStatus.ok)
    if response.status_code >= 400:
        return LinkCheckResult(status=LinkStatus.broken)
    return LinkCheckResult(status=LinkStatus.ok)


async def check_links(
    client: httpx.AsyncClient, urls: list[str], timeout: float = 10.0
) -> Dict[str, LinkCheckResult]:
    """Check URLs one after another, keyed by URL in input order."""
    results: Dict[str, LinkCheckResult] = {}
    for url in urls:
        results[url] = await check_link(client, url, timeout)
    return results
