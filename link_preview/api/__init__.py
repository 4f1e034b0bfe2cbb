from fastapi import APIRouter

from link_preview.api.v1 import links, lookups, metadata, system

api_router = APIRouter(prefix="/api")
api_router.include_router(metadata.router)
api_router.include_router(lookups.router)
api_router.include_router(links.router)
api_router.include_router(system.router)

__all__ = ["api_router"]
