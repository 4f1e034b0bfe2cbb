import httpx
import pytest

from link_preview.services.handlers.youtube import YouTubeHandler, extract_video_id

from tests.helpers import image_response, offline


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://youtu.be/dQw4w9WgXcQ?t=42", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/shorts/abcDEF12345", "abcDEF12345"),
        ("https://www.youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/live/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/watch?v=bad", None),
        ("https://www.youtube.com/watch?v=<script>", None),
        ("https://www.youtube.com/feed/subscriptions", None),
    ],
)
def test_extract_video_id(url, expected):
    assert extract_video_id(url) == expected


async def test_invalid_video_id_returns_stub_without_requests(make_client, settings):
    sent = []

    def handler(request):
        sent.append(request.url)
        return httpx.Response(500)

    result = await YouTubeHandler(make_client(handler), settings).extract(
        "https://www.youtube.com/watch?v=bad"
    )

    assert sent == []
    assert result.title == "YouTube Video - unknown"
    assert result.image is None
    assert result.source == "youtube-scrape"
    assert result.domain == "youtube.com"


async def test_oembed_and_best_thumbnail(make_client, settings):
    def handler(request):
        if request.url.host == "www.youtube.com":
            return httpx.Response(
                200, json={"title": "Never Gonna Give You Up", "author_name": "Rick Astley"}
            )
        if request.url.path.endswith("/maxresdefault.jpg"):
            return httpx.Response(404)
        return image_response()

    result = await YouTubeHandler(make_client(handler), settings).extract(
        "https://youtu.be/dQw4w9WgXcQ"
    )

    assert result.title == "Never Gonna Give You Up"
    assert result.description == "by Rick Astley"
    assert result.image == "https://i.ytimg.com/vi/dQw4w9WgXcQ/sddefault.jpg"
    assert result.images == [result.image]
    assert result.source == "youtube-oembed"
    assert result.should_persist_image is False


async def test_empty_thumbnail_is_skipped(make_client, settings):
    def handler(request):
        if request.url.host == "www.youtube.com":
            return httpx.Response(404)
        if request.url.path.endswith("/maxresdefault.jpg"):
            return image_response(size=0)
        return image_response()

    result = await YouTubeHandler(make_client(handler), settings).extract(
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    )

    assert result.image == "https://i.ytimg.com/vi/dQw4w9WgXcQ/sddefault.jpg"
    assert result.title == "YouTube Video - dQw4w9WgXcQ"
    assert result.source == "youtube-scrape"


async def test_offline_still_returns_lowest_quality_thumbnail(make_client, settings):
    result = await YouTubeHandler(make_client(offline), settings).extract(
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
    )

    assert result.title == "YouTube Video - dQw4w9WgXcQ"
    assert result.image == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
    assert result.source == "youtube-scrape"
