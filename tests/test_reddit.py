import httpx

from link_preview.services.handlers.reddit import (
    RedditHandler,
    extract_post_images,
    json_endpoint,
)

from tests.helpers import html_response, offline

POST_URL = "https://www.reddit.com/r/pics/comments/abc123/a_title/?utm_source=share"


def test_json_endpoint_drops_query_and_trailing_slash():
    assert json_endpoint(POST_URL) == (
        "https://www.reddit.com/r/pics/comments/abc123/a_title/.json"
    )


def test_gallery_images_follow_gallery_order_and_decode_entities():
    post = {
        "is_gallery": True,
        "gallery_data": {"items": [{"media_id": "b"}, {"media_id": "a"}]},
        "media_metadata": {
            "a": {"s": {"u": "https://preview.redd.it/a.jpg?w=1&amp;s=x"}},
            "b": {"s": {"u": "https://preview.redd.it/b.jpg?w=1&amp;s=y"}},
        },
    }

    image, images = extract_post_images(post)

    assert image == "https://preview.redd.it/b.jpg?w=1&s=y"
    assert images == [
        "https://preview.redd.it/b.jpg?w=1&s=y",
        "https://preview.redd.it/a.jpg?w=1&s=x",
    ]


def test_post_image_preference():
    assert extract_post_images(
        {"post_hint": "image", "url": "https://i.redd.it/x.png"}
    ) == ("https://i.redd.it/x.png", None)
    assert extract_post_images(
        {"preview": {"images": [{"source": {"url": "https://p.redd.it/y.jpg?a=1&amp;b=2"}}]}}
    ) == ("https://p.redd.it/y.jpg?a=1&b=2", None)
    assert extract_post_images({"thumbnail": "default"}) == (None, None)


async def test_oembed_tier_wins_when_it_has_a_thumbnail(make_client, settings):
    def handler(request):
        assert request.url.path == "/oembed"
        return httpx.Response(
            200,
            json={
                "title": "A cat",
                "author_name": "someone",
                "thumbnail_url": "https://b.thumbs.redditmedia.com/cat.jpg",
            },
        )

    result = await RedditHandler(make_client(handler), settings).extract(POST_URL)

    assert result.source == "reddit-oembed"
    assert result.title == "A cat"
    assert result.description == "Posted by someone"
    assert result.image == "https://b.thumbs.redditmedia.com/cat.jpg"
    assert result.should_persist_image is False


async def test_json_tier_runs_after_thumbnail_less_oembed(make_client, settings):
    requested = []

    def handler(request):
        requested.append(request.url.path)
        if request.url.path == "/oembed":
            return httpx.Response(200, json={"title": "No thumb"})
        return httpx.Response(
            200,
            json=[
                {
                    "data": {
                        "children": [
                            {
                                "data": {
                                    "title": "Gallery post",
                                    "subreddit_name_prefixed": "r/pics",
                                    "is_gallery": True,
                                    "gallery_data": {"items": [{"media_id": "m1"}, {"media_id": "m2"}]},
                                    "media_metadata": {
                                        "m1": {"s": {"u": "https://preview.redd.it/1.jpg"}},
                                        "m2": {"s": {"u": "https://preview.redd.it/2.jpg"}},
                                    },
                                }
                            }
                        ]
                    }
                }
            ],
        )

    result = await RedditHandler(make_client(handler), settings).extract(POST_URL)

    assert requested == ["/oembed", "/r/pics/comments/abc123/a_title/.json"]
    assert result.source == "reddit-json"
    assert result.title == "Gallery post"
    assert result.description == "Posted in r/pics"
    assert result.images == ["https://preview.redd.it/1.jpg", "https://preview.redd.it/2.jpg"]


async def test_scrape_tier_after_rate_limited_json(make_client, settings):
    requested = []
    page = (
        '<html><head><meta content="Scraped &amp; title" property="og:title">'
        '<meta property="og:image" content="https://i.redd.it/s.jpg"></head></html>'
    )

    def handler(request):
        requested.append(request.url.path)
        if request.url.path == "/oembed":
            return httpx.Response(503)
        if request.url.path.endswith("/.json"):
            return httpx.Response(429)
        return html_response(page)

    result = await RedditHandler(make_client(handler), settings).extract(POST_URL)

    assert requested == [
        "/oembed",
        "/r/pics/comments/abc123/a_title/.json",
        "/r/pics/comments/abc123/a_title/",
    ]
    assert result.source == "reddit-scrape"
    assert result.title == "Scraped & title"
    assert result.image == "https://i.redd.it/s.jpg"


async def test_every_tier_missing_returns_stub(make_client, settings):
    result = await RedditHandler(make_client(offline), settings).extract(POST_URL)

    assert result.title == "Reddit Post"
    assert result.description == "View on Reddit"
    assert result.image is None
    assert result.domain == "reddit.com"
    assert result.source == "reddit-fallback"


async def test_malformed_json_payload_is_a_miss(make_client, settings):
    def handler(request):
        if request.url.path == "/oembed":
            return httpx.Response(404)
        if request.url.path.endswith("/.json"):
            return httpx.Response(200, json={"unexpected": True})
        return html_response("<html></html>")

    result = await RedditHandler(make_client(handler), settings).extract(POST_URL)

    assert result.source == "reddit-fallback"
