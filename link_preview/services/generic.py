"""Generic OG / Twitter card / JSON-LD extractor.

Universal fallback for any URL without a dedicated platform handler, and the
target the pipeline falls back to when a handler fails outright.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

import httpx

from link_preview.config import Settings
from link_preview.schemas.metadata import MetadataResult, extract_domain
from link_preview.services import html
from link_preview.services.http import fetch_html, head_image

logger = logging.getLogger(__name__)


class GenericExtractor:
    source = "generic"

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    async def fetch_page(self, url: str) -> Optional[tuple[str, str]]:
        try:
            return await fetch_html(self.client, url, self.settings.fetch_timeout)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Generic fetch failed for %s: %s", url, exc)
            return None

    async def validate_image(self, image_url: str) -> Optional[str]:
        """Return the (https-upgraded) URL when it looks like a usable image."""
        if image_url.startswith("http://"):
            image_url = "https://" + image_url[len("http://"):]
        ok = await head_image(
            self.client,
            image_url,
            timeout=self.settings.image_check_timeout,
            max_size=self.settings.max_image_size,
        )
        return image_url if ok else None

    async def validate_images(self, candidates: List[str]) -> List[str]:
        limited = candidates[: self.settings.max_image_candidates]
        checked = await asyncio.gather(*(self.validate_image(c) for c in limited))
        validated: List[str] = []
        for image_url in checked:
            if image_url and image_url not in validated:
                validated.append(image_url)
        return validated

    def collect_images(self, soup, meta_map: dict[str, str], base_url: str) -> List[str]:
        images = html.og_images(soup, base_url)
        images = html.json_ld_product_images(soup, base_url, images)
        if not images:
            twitter_image = html.pick_first(meta_map, html.TWITTER_IMAGE_KEYS)
            resolved = html.resolve_url(base_url, twitter_image)
            if resolved:
                images.append(resolved)
        return images

    async def extract(self, url: str) -> MetadataResult:
        domain = extract_domain(url)
        page = await self.fetch_page(url)
        if page is None:
            return MetadataResult(
                favicon=html.favicon_service_url(url),
                domain=domain,
                source=self.source,
                should_persist_image=False,
            )

        markup, final_url = page
        soup = html.parse_html(markup)
        meta_map = html.build_meta_map(soup)

        title = html.pick_first(meta_map, html.TITLE_META_KEYS) or html.page_title(soup)
        description = html.pick_first(meta_map, html.DESCRIPTION_META_KEYS)

        candidates = self.collect_images(soup, meta_map, final_url)
        validated = await self.validate_images(candidates)
        image = validated[0] if validated else None

        return MetadataResult(
            title=title,
            description=description,
            image=image,
            images=validated if len(validated) > 1 else None,
            favicon=html.find_favicon(soup, final_url),
            domain=domain,
            source=self.source,
            should_persist_image=image is not None,
        )
