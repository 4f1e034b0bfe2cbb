import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from link_preview.api.deps import get_pipeline, get_queue, get_session
from link_preview.models import Link
from link_preview.schemas import LinkCreate, LinkRead, LinkUpdate
from link_preview.services.persistence import ImagePersistenceQueue
from link_preview.services.pipeline import MetadataPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/links", tags=["links"])


async def _get_or_404(db: AsyncSession, link_id: UUID) -> Link:
    link = await db.get(Link, link_id)
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Link not found"
        )
    return link


@router.get("", response_model=list[LinkRead])
async def list_links(
    db: Annotated[AsyncSession, Depends(get_session)],
) -> list[LinkRead]:
    """List stored links, newest first."""
    result = await db.execute(select(Link).order_by(Link.created_at.desc()))
    links = result.scalars().all()
    return [LinkRead.model_validate(link) for link in links]


@router.post("", response_model=LinkRead, status_code=status.HTTP_201_CREATED)
async def create_link(
    payload: LinkCreate,
    db: Annotated[AsyncSession, Depends(get_session)],
    pipeline: Annotated[MetadataPipeline, Depends(get_pipeline)],
    queue: Annotated[ImagePersistenceQueue, Depends(get_queue)],
) -> LinkRead:
    """Store a link with freshly extracted preview metadata.

    Expiring images are handed to the persistence queue once the row exists.
    """
    metadata = await pipeline.fetch(str(payload.url))
    link = Link(
        url=str(payload.url),
        title=payload.title or metadata.title,
        description=payload.description or metadata.description,
        image=metadata.image,
        images=metadata.images,
        favicon=metadata.favicon,
        domain=metadata.domain,
        source=metadata.source,
    )
    db.add(link)
    await db.commit()
    await db.refresh(link)

    if metadata.should_persist_image and metadata.image:
        queue.enqueue(str(link.id), metadata.image)
    return LinkRead.model_validate(link)


@router.get("/{link_id}", response_model=LinkRead)
async def get_link(
    link_id: UUID,
    db: Annotated[AsyncSession, Depends(get_session)],
) -> LinkRead:
    return LinkRead.model_validate(await _get_or_404(db, link_id))


@router.patch("/{link_id}", response_model=LinkRead)
async def update_link(
    link_id: UUID,
    payload: LinkUpdate,
    db: Annotated[AsyncSession, Depends(get_session)],
) -> LinkRead:
    """Update a link's title, description and/or image."""
    link = await _get_or_404(db, link_id)

    # Update only provided fields
    if payload.title is not None:
        link.title = payload.title
    if payload.description is not None:
        link.description = payload.description
    if payload.image is not None:
        link.image = payload.image

    await db.commit()
    await db.refresh(link)
    return LinkRead.model_validate(link)
