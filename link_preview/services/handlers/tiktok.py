"""TikTok handler: oEmbed first, page scrape for photo posts or blocked oEmbed.

TikTok CDN thumbnails are signed and carry ``x-expires``; every result that
includes an image asks for persistence.
"""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

from link_preview.schemas.metadata import MetadataResult, extract_domain
from link_preview.services import html
from link_preview.services.handlers.base import MetadataHandler
from link_preview.services.http import fetch_html, fetch_json

TIKTOK_FAVICON = "https://www.tiktok.com/favicon.ico"
OEMBED_ENDPOINT = "https://www.tiktok.com/oembed"
IMAGE_META_KEYS = ("og:image", "twitter:image", "twitter:image:src")

_VIDEO_ID_RE = re.compile(r"/(?:video|photo)/(\d+)")
_AUTHOR_RE = re.compile(r"^/@([\w.]+)")


def extract_video_id(url: str) -> Optional[str]:
    match = _VIDEO_ID_RE.search(urlsplit(url).path)
    return match.group(1) if match else None


def extract_author(url: str) -> Optional[str]:
    match = _AUTHOR_RE.match(urlsplit(url).path)
    return match.group(1) if match else None


async def fetch_oembed(client, url: str, timeout: float) -> dict:
    data = await fetch_json(client, OEMBED_ENDPOINT, timeout, url=url)
    if not isinstance(data, dict):
        raise ValueError("unexpected oEmbed payload")
    return data


class TikTokHandler(MetadataHandler):
    name = "tiktok"

    async def fetch_oembed(self, url: str) -> Optional[MetadataResult]:
        data = await fetch_oembed(self.client, url, self.settings.handler_timeout)
        if not (data.get("thumbnail_url") or data.get("title")):
            return None
        author = data.get("author_name")
        image = data.get("thumbnail_url") or None
        return MetadataResult(
            title=data.get("title") or "TikTok Video",
            description=f"By {author}" if author else "Watch on TikTok",
            image=image,
            favicon=TIKTOK_FAVICON,
            domain=extract_domain(url),
            source="tiktok-oembed",
            should_persist_image=image is not None,
        )

    async def scrape_page(self, url: str) -> Optional[MetadataResult]:
        markup, _ = await fetch_html(self.client, url, self.settings.handler_timeout)
        soup = html.parse_html(markup)
        meta_map = html.build_meta_map(soup)
        title = html.pick_first(meta_map, ("og:title", "twitter:title")) or html.page_title(soup)
        image = html.resolve_url(url, html.pick_first(meta_map, IMAGE_META_KEYS))
        if not (title or image):
            return None
        return MetadataResult(
            title=title or "TikTok Content",
            description=html.pick_first(meta_map, html.DESCRIPTION_META_KEYS)
            or "View on TikTok",
            image=image,
            favicon=TIKTOK_FAVICON,
            domain=extract_domain(url),
            source="tiktok-scrape",
            should_persist_image=image is not None,
        )

    def tiers(self):
        return (
            ("oembed", self.fetch_oembed),
            ("scrape", self.scrape_page),
        )

    def fallback(self, url: str) -> MetadataResult:
        return MetadataResult(
            title="TikTok Content",
            description="View on TikTok",
            favicon=TIKTOK_FAVICON,
            domain=extract_domain(url),
            source="tiktok-fallback",
            should_persist_image=False,
        )
