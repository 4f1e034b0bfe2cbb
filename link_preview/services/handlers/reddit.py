"""Reddit handler: oEmbed, then the public JSON API, then an HTML scrape."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

import httpx

from link_preview.schemas.metadata import MetadataResult, extract_domain
from link_preview.services import html
from link_preview.services.handlers.base import MetadataHandler
from link_preview.services.http import fetch_html, fetch_json

logger = logging.getLogger(__name__)

REDDIT_FAVICON = "https://www.reddit.com/favicon.ico"
OEMBED_ENDPOINT = "https://www.reddit.com/oembed"

_IMAGE_EXT_RE = re.compile(r"\.(jpg|jpeg|png|gif|webp)(\?.*)?$", re.IGNORECASE)


def html_decode(value: str) -> str:
    """Reddit escapes ``&`` in media URLs."""
    return value.replace("&amp;", "&")


def is_image_url(url: Optional[str]) -> bool:
    if not url:
        return False
    return bool(_IMAGE_EXT_RE.search(url)) or "imgur.com" in url


def json_endpoint(url: str) -> str:
    parts = urlsplit(url)
    path = parts.path.rstrip("/") + "/.json"
    return urlunsplit((parts.scheme, parts.netloc, path, "", ""))


def _gallery_images(post: dict[str, Any]) -> list[str]:
    media = post.get("media_metadata") or {}
    items = (post.get("gallery_data") or {}).get("items") or []
    media_ids = [item.get("media_id") for item in items if item.get("media_id")]
    if not media_ids:
        media_ids = list(media.keys())

    images = []
    for media_id in media_ids:
        source = (media.get(media_id) or {}).get("s") or {}
        image_url = source.get("u") or source.get("gif")
        if image_url:
            images.append(html_decode(image_url))
    return images


def extract_post_images(post: dict[str, Any]) -> tuple[Optional[str], Optional[list[str]]]:
    """Pick the primary image (and gallery) for a post, by post shape."""
    if post.get("is_gallery") and post.get("media_metadata"):
        gallery = _gallery_images(post)
        if gallery:
            return gallery[0], gallery if len(gallery) > 1 else None

    url = post.get("url") or post.get("url_overridden_by_dest")
    if post.get("post_hint") == "image" and url:
        return url, None

    previews = (post.get("preview") or {}).get("images") or []
    if previews:
        source_url = (previews[0].get("source") or {}).get("url")
        if source_url:
            return html_decode(source_url), None

    thumbnail = post.get("thumbnail") or ""
    if post.get("is_video") and thumbnail.startswith("http"):
        return thumbnail, None

    if is_image_url(url):
        return url, None

    if thumbnail.startswith("http") and "default" not in thumbnail:
        return thumbnail, None

    return None, None


def video_urls(post: dict[str, Any]) -> dict[str, str]:
    """Playable URLs Reddit exposes alongside a video post's thumbnail."""
    media = post.get("secure_media") or post.get("media") or {}
    video = media.get("reddit_video") or {}
    found = {}
    for key in ("fallback_url", "hls_url", "dash_url"):
        if video.get(key):
            found[key] = html_decode(video[key])
    return found


class RedditHandler(MetadataHandler):
    name = "reddit"

    def _result(self, url: str, tier: str, **fields) -> MetadataResult:
        return MetadataResult(
            favicon=REDDIT_FAVICON,
            domain=extract_domain(url),
            source=f"reddit-{tier}",
            should_persist_image=False,
            **fields,
        )

    async def fetch_oembed(self, url: str) -> Optional[MetadataResult]:
        data = await fetch_json(
            self.client, OEMBED_ENDPOINT, self.settings.handler_timeout, url=url
        )
        # Only a thumbnail makes this tier worth returning.
        if not data.get("thumbnail_url"):
            return None
        author = data.get("author_name")
        return self._result(
            url,
            "oembed",
            title=data.get("title") or None,
            description=f"Posted by {author}" if author else None,
            image=data["thumbnail_url"],
        )

    async def fetch_post(self, url: str) -> Optional[MetadataResult]:
        try:
            data = await fetch_json(
                self.client, json_endpoint(url), self.settings.handler_timeout
            )
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 429:
                logger.warning("Reddit JSON API rate limited")
            raise
        post = data[0]["data"]["children"][0]["data"]
        image, images = extract_post_images(post)
        title = post.get("title") or None
        if not (image or title):
            return None
        subreddit = post.get("subreddit_name_prefixed")
        return self._result(
            url,
            "json",
            title=title,
            description=f"Posted in {subreddit}" if subreddit else None,
            image=image,
            images=images,
        )

    async def scrape_page(self, url: str) -> Optional[MetadataResult]:
        markup, _ = await fetch_html(self.client, url, self.settings.handler_timeout)
        title = (
            html.regex_meta_content(markup, "og:title")
            or html.regex_meta_content(markup, "twitter:title")
            or html.regex_title(markup)
        )
        description = (
            html.regex_meta_content(markup, "og:description")
            or html.regex_meta_content(markup, "twitter:description")
            or html.regex_meta_content(markup, "description")
        )
        image = html.regex_meta_content(markup, "og:image") or html.regex_meta_content(
            markup, "twitter:image"
        )
        if not (title or image):
            return None
        return self._result(
            url, "scrape", title=title, description=description, image=image
        )

    def fallback(self, url: str) -> MetadataResult:
        return self._result(
            url, "fallback", title="Reddit Post", description="View on Reddit"
        )

    def tiers(self):
        return (
            ("oembed", self.fetch_oembed),
            ("json", self.fetch_post),
            ("scrape", self.scrape_page),
        )
