"""Amazon product pages, including the a.co / amzn.to short links."""

from __future__ import annotations

import json
from typing import Optional

from bs4 import BeautifulSoup

from link_preview.schemas.metadata import MetadataResult, extract_domain
from link_preview.services import html
from link_preview.services.handlers.base import MetadataHandler
from link_preview.services.http import fetch_html

AMAZON_IMAGE_SELECTORS = (
    "#landingImage",
    "#imgBlkFront",
    "#ebooksImgBlkFront",
    ".a-dynamic-image",
    "img[data-old-hires]",
    "img[data-a-dynamic-image]",
)


def largest_dynamic_image(raw: str) -> Optional[str]:
    """Pick the biggest entry of ``{"url": [width, height], ...}``."""
    try:
        sizes = json.loads(raw)
    except ValueError:
        return None
    if not isinstance(sizes, dict) or not sizes:
        return None

    best_url, best_area = None, -1
    for url, dims in sizes.items():
        if not isinstance(dims, list) or len(dims) < 2:
            continue
        width, height = dims[0], dims[1]
        if not isinstance(width, (int, float)) or not isinstance(height, (int, float)):
            continue
        if width * height > best_area:
            best_url, best_area = url, width * height
    return best_url


def extract_amazon_image(soup: BeautifulSoup) -> Optional[str]:
    for selector in AMAZON_IMAGE_SELECTORS:
        img = soup.select_one(selector)
        if img is None:
            continue
        dynamic = img.get("data-a-dynamic-image")
        if dynamic and dynamic.startswith("{"):
            parsed = largest_dynamic_image(dynamic)
            if parsed:
                return parsed
        hires = img.get("data-old-hires")
        if hires and not hires.startswith("{"):
            return hires
        src = img.get("src")
        if src and not src.startswith("{"):
            return src
    return None


def _text(soup: BeautifulSoup, selector: str) -> Optional[str]:
    element = soup.select_one(selector)
    if element is None:
        return None
    return element.get_text(strip=True) or None


class AmazonHandler(MetadataHandler):
    name = "amazon"

    async def fetch_product(self, url: str) -> Optional[MetadataResult]:
        markup, final_url = await fetch_html(self.client, url, self.settings.fetch_timeout)
        soup = html.parse_html(markup)
        meta_map = html.build_meta_map(soup)

        image = html.resolve_url(final_url, extract_amazon_image(soup))
        if not image:
            image = html.resolve_url(
                final_url, html.pick_first(meta_map, ("og:image", "og:image:url"))
            )

        title = (
            html.pick_first(meta_map, html.TITLE_META_KEYS)
            or _text(soup, "#productTitle")
            or html.page_title(soup)
        )
        description = html.pick_first(meta_map, html.DESCRIPTION_META_KEYS) or _text(
            soup, "#productDescription p"
        )
        return MetadataResult(
            title=title or "Amazon Product",
            description=description or "View on Amazon",
            image=image,
            images=[image] if image else None,
            favicon=html.find_favicon(soup, final_url),
            domain=extract_domain(final_url),
            source="amazon-handler",
            should_persist_image=False,
        )

    def tiers(self):
        return (("page", self.fetch_product),)

    def fallback(self, url: str) -> MetadataResult:
        return MetadataResult(
            title="Amazon Product",
            description="View on Amazon",
            favicon=html.favicon_service_url(url),
            domain=extract_domain(url),
            source="amazon-fallback",
            should_persist_image=False,
        )
