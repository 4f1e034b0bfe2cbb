"""Metadata pipeline: guard, detect, dispatch, fall back."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from link_preview.config import Settings
from link_preview.schemas.metadata import MetadataResult, extract_domain
from link_preview.services.detector import SiteType, detect_site
from link_preview.services.generic import GenericExtractor
from link_preview.services.handlers import (
    AmazonHandler,
    EcommerceHandler,
    MetadataHandler,
    RedditHandler,
    TikTokHandler,
    YouTubeHandler,
)
from link_preview.services.url_guard import validate_url

logger = logging.getLogger(__name__)

DEFAULT_HANDLERS: dict[SiteType, type[MetadataHandler]] = {
    SiteType.youtube: YouTubeHandler,
    SiteType.reddit: RedditHandler,
    SiteType.tiktok: TikTokHandler,
    SiteType.amazon: AmazonHandler,
    SiteType.ecommerce: EcommerceHandler,
}


class HandlerRegistry:
    """Table of site type to handler instance."""

    def __init__(self):
        self._handlers: dict[SiteType, MetadataHandler] = {}

    def register(self, site: SiteType, handler: MetadataHandler) -> None:
        if site is SiteType.generic:
            raise ValueError("generic always resolves to the generic extractor")
        self._handlers[site] = handler

    def get(self, site: SiteType) -> Optional[MetadataHandler]:
        return self._handlers.get(site)

    def __contains__(self, site: SiteType) -> bool:
        return site in self._handlers

    @classmethod
    def default(cls, client: httpx.AsyncClient, settings: Settings) -> "HandlerRegistry":
        registry = cls()
        for site, handler_cls in DEFAULT_HANDLERS.items():
            registry.register(site, handler_cls(client, settings))
        return registry


class MetadataPipeline:
    def __init__(
        self,
        client: httpx.AsyncClient,
        settings: Settings,
        registry: Optional[HandlerRegistry] = None,
    ):
        self.settings = settings
        self.generic = GenericExtractor(client, settings)
        self.registry = registry or HandlerRegistry.default(client, settings)

    async def fetch(self, url: str) -> MetadataResult:
        """
        Produce preview metadata for ``url``.

        Raises UnsafeUrlError for malformed or internal URLs before any
        request is made. Every other failure ends in a well-formed result.
        """
        url = validate_url(url)
        return await self.fetch_with(url, detect_site(url))

    async def fetch_with(self, url: str, site: SiteType) -> MetadataResult:
        handler = self.registry.get(site) if site is not SiteType.generic else None
        if handler is not None:
            try:
                return await handler.extract(url)
            except Exception:  # pylint: disable=broad-except
                logger.exception("%s handler failed for %s, using generic", site.value, url)
        return await self._generic(url)

    async def _generic(self, url: str) -> MetadataResult:
        try:
            return await self.generic.extract(url)
        except Exception:  # pylint: disable=broad-except
            logger.exception("Generic extraction failed for %s", url)
            return MetadataResult(domain=extract_domain(url), source="generic")
