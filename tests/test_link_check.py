import httpx
import pytest

from link_preview.schemas import LinkStatus
from link_preview.services.link_check import check_link, check_links, check_social_url

from tests.helpers import offline


@pytest.mark.parametrize(
    "url, expected",
    [
        ("https://x.com/user/status/1234567890", True),
        ("https://twitter.com/user", False),
        ("https://www.reddit.com/r/python/", True),
        ("https://redd.it/abc12", True),
        ("https://www.reddit.com/", False),
        ("https://www.tiktok.com/@user/video/123", True),
        ("https://www.tiktok.com/foryou", False),
        ("https://www.instagram.com/p/Cabc123/", True),
        ("https://www.instagram.com/", False),
        ("https://www.facebook.com/somepage", True),
        ("https://www.pinterest.com/pin/12345/", True),
        ("https://pin.it/abc", True),
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ", True),
        ("https://www.youtube.com/", False),
        ("https://example.com/", None),
        ("https://www.dropbox.com/s/abc", None),
    ],
)
def test_social_urls_are_judged_by_shape(url, expected):
    assert check_social_url(url) is expected


async def test_social_urls_skip_the_network(make_client):
    sent = []

    def handler(request):
        sent.append(request.url)
        return httpx.Response(500)

    result = await check_link(make_client(handler), "https://x.com/user/status/1")

    assert result.status is LinkStatus.ok
    assert sent == []


async def test_redirect_is_reported_with_absolute_location(make_client):
    def handler(request):
        assert request.method == "HEAD"
        return httpx.Response(301, headers={"location": "/new-home"})

    result = await check_link(make_client(handler), "https://example.com/old")

    assert result.status is LinkStatus.redirected
    assert result.redirect_url == "https://example.com/new-home"


@pytest.mark.parametrize(
    "status_code, expected",
    [(200, LinkStatus.ok), (204, LinkStatus.ok), (404, LinkStatus.broken), (503, LinkStatus.broken)],
)
async def test_status_codes(make_client, status_code, expected):
    result = await check_link(
        make_client(lambda request: httpx.Response(status_code)), "https://example.com/"
    )
    assert result.status is expected


async def test_network_error_is_broken(make_client):
    result = await check_link(make_client(offline), "https://example.com/")
    assert result.status is LinkStatus.broken


async def test_check_links_keys_results_by_url(make_client):
    def handler(request):
        return httpx.Response(404 if request.url.path == "/dead" else 200)

    results = await check_links(
        make_client(handler), ["https://example.com/ok", "https://example.com/dead"]
    )

    assert list(results) == ["https://example.com/ok", "https://example.com/dead"]
    assert results["https://example.com/dead"].status is LinkStatus.broken
