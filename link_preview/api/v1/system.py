from typing import Annotated

from fastapi import APIRouter, Depends

from link_preview.api.deps import get_queue
from link_preview.services.persistence import ImagePersistenceQueue

router = APIRouter(tags=["system"])


@router.get("/persistence/status")
async def persistence_status(
    queue: Annotated[ImagePersistenceQueue, Depends(get_queue)],
) -> dict[str, int]:
    return queue.status()
