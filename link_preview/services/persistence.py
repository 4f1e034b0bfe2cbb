"""Background persistence of expiring image URLs.

Signed CDN links (TikTok, Instagram, Discord attachments, ...) stop working
after a while, so once a preview has been stored its image is copied to
durable storage and the stored record is repointed at the copy. Callers only
ever call :meth:`ImagePersistenceQueue.enqueue`, which returns immediately;
the work runs on the event loop with at most ``concurrency`` items in flight.
The queue state is only touched from the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, deque
from dataclasses import dataclass
from functools import lru_cache
from typing import Awaitable, Callable, Iterable, Optional
from urllib.parse import parse_qs, urlsplit

import httpx

from link_preview.config import Settings, get_settings
from link_preview.services.http import create_http_client
from link_preview.services.link_store import update_link_image
from link_preview.services.storage import DurableStorage, download_image

logger = logging.getLogger(__name__)

SubjectUpdater = Callable[[str, str], Awaitable[object]]


@dataclass
class QueueItem:
    subject_id: str
    image_url: str
    retry_count: int = 0


def is_durable_url(url: str, durable_hosts: Iterable[str]) -> bool:
    return any(host in url for host in durable_hosts)


def needs_persistence(url: Optional[str], settings: Settings) -> bool:
    """True when ``url`` is expected to expire and is not already durable."""
    if not url:
        return False
    if is_durable_url(url, settings.durable_storage_hosts):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if not parts.hostname:
        return False

    params = parse_qs(parts.query, keep_blank_values=True)
    if any(param in params for param in settings.expiry_params):
        return True

    hostname = parts.hostname.lower()
    for domain in settings.expiring_image_domains:
        if hostname == domain or hostname.endswith("." + domain):
            return True
        # Loose on purpose: p16-sign-va.tiktokcdn-us.com and similar variants.
        if hostname_stem(domain) in hostname:
            return True
    return False


def hostname_stem(domain: str) -> str:
    """``tiktokcdn.com`` -> ``tiktokcdn``; drops the final label only."""
    head, _, _tld = domain.rpartition(".")
    return head or domain


class ProcessedSet:
    """Subject ids already handled, with TTL expiry and an LRU size cap."""

    def __init__(self, ttl: float, max_size: int, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.max_size = max_size
        self._clock = clock
        self._entries: OrderedDict[str, float] = OrderedDict()

    def _evict(self) -> None:
        now = self._clock()
        while self._entries:
            subject_id, added = next(iter(self._entries.items()))
            if now - added < self.ttl and len(self._entries) <= self.max_size:
                break
            self._entries.popitem(last=False)

    def add(self, subject_id: str) -> None:
        self._entries.pop(subject_id, None)
        self._entries[subject_id] = self._clock()
        self._evict()

    def discard(self, subject_id: str) -> None:
        self._entries.pop(subject_id, None)

    def __contains__(self, subject_id: str) -> bool:
        self._evict()
        return subject_id in self._entries

    def __len__(self) -> int:
        self._evict()
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()


class ImagePersistenceQueue:
    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[], httpx.AsyncClient],
        updater: Optional[SubjectUpdater] = None,
        storage_factory: Optional[Callable[[httpx.AsyncClient], Optional[DurableStorage]]] = None,
    ):
        self.settings = settings
        self.concurrency = settings.persistence_concurrency
        self.max_retries = settings.persistence_max_retries
        self._client_factory = client_factory
        self._updater = updater
        self._storage_factory = storage_factory or self._default_storage
        self._queue: deque[QueueItem] = deque()
        self._processed = ProcessedSet(
            settings.processed_ttl_seconds, settings.processed_max_size
        )
        self._tasks: set[asyncio.Task] = set()
        self._active_ids: set[str] = set()
        self.active_count = 0
        self._idle: Optional[asyncio.Event] = None

    def _default_storage(self, client: httpx.AsyncClient) -> Optional[DurableStorage]:
        if not self.settings.storage_url:
            return None
        return DurableStorage(client, str(self.settings.storage_url))

    def enqueue(self, subject_id: str, image_url: str) -> bool:
        """Queue ``image_url`` for persistence; returns False when skipped."""
        if subject_id in self._active_ids:
            logger.debug("Skipping in-flight subject %s", subject_id)
            return False
        if subject_id in self._processed:
            logger.debug("Skipping already processed subject %s", subject_id)
            return False
        if any(item.subject_id == subject_id for item in self._queue):
            logger.debug("Skipping already queued subject %s", subject_id)
            return False
        if not needs_persistence(image_url, self.settings):
            logger.debug("Image does not need persistence: %.60s", image_url)
            return False

        logger.info("Queuing image persistence for %s: %.60s", subject_id, image_url)
        self._queue.append(QueueItem(subject_id=subject_id, image_url=image_url))
        self._drain()
        return True

    def _drain(self) -> None:
        while self.active_count < self.concurrency and self._queue:
            item = self._queue.popleft()
            if item.subject_id in self._processed and item.retry_count == 0:
                continue
            self._processed.add(item.subject_id)
            self._active_ids.add(item.subject_id)
            self.active_count += 1
            task = asyncio.get_running_loop().create_task(self._run(item))
            self._tasks.add(task)
            task.add_done_callback(self._on_done)
        if self.active_count == 0 and not self._queue and self._idle is not None:
            self._idle.set()

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        self.active_count -= 1
        self._drain()

    async def _run(self, item: QueueItem) -> None:
        try:
            await self.process_item(item)
        except Exception as exc:  # pylint: disable=broad-except
            if item.retry_count < self.max_retries:
                item.retry_count += 1
                logger.warning(
                    "Persisting image for %s failed (%s), retry %d/%d",
                    item.subject_id,
                    exc,
                    item.retry_count,
                    self.max_retries,
                )
                self._queue.append(item)
            else:
                logger.error("Dropping image persistence for %s: %s", item.subject_id, exc)
        finally:
            self._active_ids.discard(item.subject_id)

    async def process_item(self, item: QueueItem) -> str:
        """Download, upload and write back one image; returns the durable URL."""
        async with self._client_factory() as client:
            storage = self._storage_factory(client)
            if storage is None:
                raise RuntimeError("no durable storage configured")
            image = await download_image(
                client,
                item.image_url,
                max_size=self.settings.max_image_size,
                timeout=self.settings.fetch_timeout,
            )
            durable_url = await storage.store(image)

        updater = self._updater or update_link_image
        await updater(item.subject_id, durable_url)
        logger.info("Persisted image for %s -> %.60s", item.subject_id, durable_url)
        return durable_url

    def status(self) -> dict[str, int]:
        return {
            "queueLength": len(self._queue),
            "activeUploads": self.active_count,
            "processedCount": len(self._processed),
        }

    def reset(self) -> None:
        """Forget processed subjects so they can be queued again."""
        self._processed.clear()

    async def wait_idle(self) -> None:
        """Wait until nothing is queued or in flight."""
        while self.active_count or self._queue:
            self._idle = asyncio.Event()
            await self._idle.wait()
        self._idle = None


@lru_cache()
def get_persistence_queue() -> ImagePersistenceQueue:
    settings = get_settings()
    return ImagePersistenceQueue(settings, lambda: create_http_client(settings))
