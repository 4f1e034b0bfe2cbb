"""Client for the durable image storage service.

Uploading is a three step exchange: ask the service for a one-time upload
URL, POST the bytes there (the response names the stored object), and
derive the permanent serving URL from the returned storage id.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)


class StorageError(Exception):
    pass


@dataclass
class DownloadedImage:
    content: bytes
    content_type: str


class DurableStorage:
    def __init__(self, client: httpx.AsyncClient, base_url: str, timeout: float = 15.0):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def serving_url(self, storage_id: str) -> str:
        return f"{self.base_url}/api/storage/{storage_id}"

    async def request_upload_url(self) -> str:
        response = await self.client.post(
            f"{self.base_url}/api/storage/upload-url", timeout=self.timeout
        )
        response.raise_for_status()
        upload_url = response.json().get("uploadUrl")
        if not upload_url:
            raise StorageError("storage service returned no upload URL")
        return upload_url

    async def upload(self, upload_url: str, image: DownloadedImage) -> str:
        response = await self.client.post(
            upload_url,
            content=image.content,
            headers={"Content-Type": image.content_type},
            timeout=self.timeout,
        )
        response.raise_for_status()
        storage_id = response.json().get("storageId")
        if not storage_id:
            raise StorageError("upload response carried no storageId")
        return storage_id

    async def store(self, image: DownloadedImage) -> str:
        """Upload ``image`` and return its permanent URL."""
        upload_url = await self.request_upload_url()
        storage_id = await self.upload(upload_url, image)
        return self.serving_url(storage_id)


async def download_image(
    client: httpx.AsyncClient, url: str, max_size: int, timeout: float
) -> DownloadedImage:
    """GET an image, enforcing an ``image/*`` type and a size ceiling."""
    async with client.stream("GET", url, timeout=timeout) as response:
        response.raise_for_status()
        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            raise StorageError(f"not an image: {content_type or 'unknown type'}")
        chunks = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > max_size:
                raise StorageError(f"image larger than {max_size} bytes")
            chunks.append(chunk)
    return DownloadedImage(content=b"".join(chunks), content_type=content_type)
