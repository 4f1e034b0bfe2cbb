from typing import Annotated, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, status

from link_preview.api.deps import get_http_client
from link_preview.config import Settings, get_settings
from link_preview.services import lookups
from link_preview.services.url_guard import validate_url

router = APIRouter(tags=["lookups"])

Client = Annotated[httpx.AsyncClient, Depends(get_http_client)]
AppSettings = Annotated[Settings, Depends(get_settings)]


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.get("/tweet")
async def tweet(client: Client, settings: AppSettings, id: Optional[str] = Query(default=None)) -> dict:
    if not id or not lookups.TWEET_ID_RE.match(id):
        raise _bad_request("Invalid tweet id")
    return {"data": await lookups.fetch_tweet(client, id, settings)}


@router.get("/reddit")
async def reddit(
    client: Client,
    settings: AppSettings,
    id: Optional[str] = Query(default=None),
    url: Optional[str] = Query(default=None),
) -> dict:
    if not id and not url:
        raise _bad_request("id or url is required")
    if id and not lookups.REDDIT_ID_RE.match(id):
        raise _bad_request("Invalid post id")
    if url:
        url = validate_url(url)
    return {"data": await lookups.fetch_reddit_post(client, settings, post_id=id, url=url)}


@router.get("/tiktok")
async def tiktok(client: Client, settings: AppSettings, url: str = Query(...)) -> dict:
    return {"data": await lookups.fetch_tiktok(client, validate_url(url), settings)}


@router.get("/pinterest")
async def pinterest(client: Client, settings: AppSettings, url: str = Query(...)) -> dict:
    return {"data": await lookups.fetch_pinterest(client, validate_url(url), settings)}


@router.get("/facebook")
async def facebook(client: Client, settings: AppSettings, url: str = Query(...)) -> dict:
    return {"data": await lookups.fetch_facebook(client, validate_url(url), settings)}
