from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

import httpx

from link_preview.config import Settings
from link_preview.errors import UnsafeUrlError
from link_preview.schemas.metadata import MetadataResult
from link_preview.services.url_guard import validate_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

Tier = tuple[str, Callable[[str], Awaitable[Optional[MetadataResult]]]]


class MetadataHandler(ABC):
    """
    Abstract base class for platform-specific metadata handlers.

    A handler walks its own ordered list of tiers (oEmbed, public API,
    HTML scrape, ...) and always produces a MetadataResult:

    - A tier that raises, times out or returns nothing usable is a miss and
      the next tier runs.
    - When every tier misses, the handler returns its deterministic stub.
    - Handlers never raise to their caller.
    """

    name: str = "handler"

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self.client = client
        self.settings = settings

    @abstractmethod
    def tiers(self) -> Sequence[Tier]:
        """Ordered ``(tier name, coroutine function)`` pairs."""

    @abstractmethod
    def fallback(self, url: str) -> MetadataResult:
        """Result returned when every tier misses."""

    async def extract(self, url: str) -> MetadataResult:
        """Extract preview metadata for ``url``."""
        try:
            url = validate_url(url)
        except UnsafeUrlError as exc:
            logger.warning("%s refused %s: %s", self.name, url, exc.reason)
            return self.fallback(url)

        for tier, func in self.tiers():
            result = await self.attempt(tier, func, url)
            if result is not None:
                logger.debug("%s resolved %s via %s", self.name, url, tier)
                return result
        logger.info("%s tiers exhausted for %s, using stub", self.name, url)
        return self.fallback(url)

    async def attempt(
        self, tier: str, func: Callable[..., Awaitable[T]], *args
    ) -> Optional[T]:
        """Run one tier, converting any failure into a miss."""
        try:
            return await func(*args)
        except (httpx.HTTPError, ValueError, LookupError, TypeError, AttributeError) as exc:
            logger.warning("%s %s tier missed: %s", self.name, tier, exc)
        except Exception:  # pylint: disable=broad-except
            logger.exception("%s %s tier crashed", self.name, tier)
        return None
