import logging
from typing import Annotated

import httpx
from fastapi import APIRouter, Depends, HTTPException, status

from link_preview.api.deps import get_http_client, get_pipeline
from link_preview.config import Settings, get_settings
from link_preview.errors import UnsafeUrlError
from link_preview.schemas import (
    ArticleResponse,
    LinkCheckRequest,
    MetadataResult,
    UrlRequest,
)
from link_preview.services.article import extract_article
from link_preview.services.link_check import check_link, check_links
from link_preview.services.pipeline import MetadataPipeline
from link_preview.services.url_guard import validate_url

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metadata"])


@router.post("/metadata", response_model=MetadataResult)
async def fetch_metadata(
    payload: UrlRequest,
    pipeline: Annotated[MetadataPipeline, Depends(get_pipeline)],
) -> MetadataResult:
    """Preview metadata for a URL, routed to the matching site handler."""
    return await pipeline.fetch(payload.url)


@router.post(
    "/article", response_model=ArticleResponse, response_model_exclude_none=True
)
async def fetch_article(
    payload: UrlRequest,
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> ArticleResponse:
    """Readable article body for reader mode."""
    url = validate_url(payload.url)
    article = await extract_article(client, url, settings)
    return ArticleResponse(success=True, article=article)


@router.post("/link-check")
async def link_check(
    payload: LinkCheckRequest,
    client: Annotated[httpx.AsyncClient, Depends(get_http_client)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict:
    """Check one URL (``url``) or a batch (``urls``) for broken links."""
    if payload.url:
        url = validate_url(payload.url)
        result = await check_link(client, url, settings.fetch_timeout)
        return {"url": payload.url, **result.model_dump(by_alias=True, exclude_none=True, mode="json")}

    if payload.urls is not None:
        limit = settings.link_check_batch_limit
        to_check = []
        for candidate in payload.urls[:limit]:
            if not isinstance(candidate, str):
                continue
            try:
                to_check.append(validate_url(candidate))
            except UnsafeUrlError as exc:
                logger.debug("Skipping %s in batch: %s", candidate, exc.reason)
        if not to_check:
            raise HTTPException(status.HTTP_400_BAD_REQUEST, "No valid URLs provided")

        results = await check_links(client, to_check, settings.fetch_timeout)
        return {
            "results": {
                url: result.model_dump(by_alias=True, exclude_none=True, mode="json")
                for url, result in results.items()
            },
            "checked": len(to_check),
            "truncated": len(payload.urls) > limit,
        }

    raise HTTPException(
        status.HTTP_400_BAD_REQUEST, "Either url or urls parameter is required"
    )
