"""Write-back of persisted image URLs onto stored links."""

from __future__ import annotations

import logging
from uuid import UUID

from link_preview.database import get_session_factory
from link_preview.models import Link

logger = logging.getLogger(__name__)


async def update_link_image(subject_id: str, image_url: str) -> bool:
    """Point a link's primary image at its durable copy."""
    try:
        link_id = UUID(subject_id)
    except ValueError:
        logger.warning("Not a link id, skipping image update: %s", subject_id)
        return False

    session_factory = get_session_factory()
    async with session_factory() as session:
        link = await session.get(Link, link_id)
        if link is None:
            logger.warning("Link %s no longer exists, dropping durable image", subject_id)
            return False
        previous = link.image
        link.image = image_url
        if link.images:
            link.images = [image_url if img == previous else img for img in link.images]
        await session.commit()
    return True
