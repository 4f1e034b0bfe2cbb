import httpx
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from link_preview.config import Settings, get_settings
from link_preview.database import get_db
from link_preview.services.persistence import ImagePersistenceQueue, get_persistence_queue
from link_preview.services.pipeline import MetadataPipeline


async def get_session(session: AsyncSession = Depends(get_db)) -> AsyncSession:
    return session


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The shared outbound client opened in the app lifespan."""
    return request.app.state.http_client


def get_pipeline(
    client: httpx.AsyncClient = Depends(get_http_client),
    settings: Settings = Depends(get_settings),
) -> MetadataPipeline:
    return MetadataPipeline(client, settings)


def get_queue() -> ImagePersistenceQueue:
    return get_persistence_queue()
