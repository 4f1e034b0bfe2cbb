"""YouTube handler.

The oEmbed lookup (title, channel) and the thumbnail quality probe are
independent, so they run concurrently and both results are awaited even if
one of them fails.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from link_preview.errors import UnsafeUrlError
from link_preview.schemas.metadata import MetadataResult
from link_preview.services.handlers.base import MetadataHandler
from link_preview.services.http import fetch_json, head_image
from link_preview.services.url_guard import validate_url

logger = logging.getLogger(__name__)

YOUTUBE_FAVICON = "https://www.youtube.com/favicon.ico"
OEMBED_ENDPOINT = "https://www.youtube.com/oembed"
THUMBNAIL_BASE = "https://i.ytimg.com/vi"
# Best to worst; the last one exists for every public video.
THUMBNAIL_QUALITIES = ("maxresdefault", "sddefault", "hqdefault")

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,20}$")
_PATH_ID_RE = re.compile(r"^/(?:shorts|embed|live|v)/([A-Za-z0-9_-]+)")


def extract_video_id(url: str) -> Optional[str]:
    """Video id from watch, shorts, embed, live and youtu.be URLs."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return None
    host = (parts.hostname or "").lower()
    candidate = None
    if host == "youtu.be" or host.endswith(".youtu.be"):
        candidate = parts.path.lstrip("/").split("/")[0]
    elif "youtube.com" in host:
        candidate = (parse_qs(parts.query).get("v") or [None])[0]
        if not candidate:
            match = _PATH_ID_RE.match(parts.path)
            candidate = match.group(1) if match else None
    if candidate and _VIDEO_ID_RE.match(candidate):
        return candidate
    return None


def thumbnail_url(video_id: str, quality: str) -> str:
    return f"{THUMBNAIL_BASE}/{video_id}/{quality}.jpg"


class YouTubeHandler(MetadataHandler):
    name = "youtube"

    async def fetch_oembed(self, url: str) -> Optional[dict]:
        data = await fetch_json(
            self.client,
            OEMBED_ENDPOINT,
            self.settings.oembed_timeout,
            url=url,
            format="json",
        )
        return {"title": data.get("title") or None, "author": data.get("author_name")}

    async def find_best_thumbnail(self, video_id: str) -> str:
        for quality in THUMBNAIL_QUALITIES:
            candidate = thumbnail_url(video_id, quality)
            if await head_image(
                self.client,
                candidate,
                timeout=self.settings.image_check_timeout,
                reject_empty=True,
            ):
                return candidate
        return thumbnail_url(video_id, THUMBNAIL_QUALITIES[-1])

    def tiers(self):
        return ()

    def fallback(self, url: str, video_id: Optional[str] = None) -> MetadataResult:
        image = thumbnail_url(video_id, THUMBNAIL_QUALITIES[-1]) if video_id else None
        return MetadataResult(
            title=f"YouTube Video - {video_id or 'unknown'}",
            image=image,
            images=[image] if image else None,
            favicon=YOUTUBE_FAVICON,
            domain="youtube.com",
            source="youtube-scrape",
            should_persist_image=False,
        )

    async def extract(self, url: str) -> MetadataResult:
        try:
            url = validate_url(url)
        except UnsafeUrlError as exc:
            logger.warning("youtube refused %s: %s", url, exc.reason)
            return self.fallback(url)

        video_id = extract_video_id(url)
        if not video_id:
            return self.fallback(url)

        oembed, thumbnail = await asyncio.gather(
            self.attempt("oembed", self.fetch_oembed, url),
            self.attempt("thumbnail", self.find_best_thumbnail, video_id),
        )
        if thumbnail is None:
            thumbnail = thumbnail_url(video_id, THUMBNAIL_QUALITIES[-1])

        author = oembed.get("author") if oembed else None
        return MetadataResult(
            title=(oembed or {}).get("title") or f"YouTube Video - {video_id}",
            description=f"by {author}" if author else None,
            image=thumbnail,
            images=[thumbnail],
            favicon=YOUTUBE_FAVICON,
            domain="youtube.com",
            source="youtube-oembed" if oembed else "youtube-scrape",
            # Thumbnails live on a stable CDN.
            should_persist_image=False,
        )
