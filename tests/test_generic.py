import httpx

from link_preview.services.generic import GenericExtractor
from link_preview.services.html import favicon_service_url

from tests.helpers import html_response, image_response, offline

ARTICLE_PAGE = """
<html>
<head>
  <title>Fallback title</title>
  <meta property="og:title" content="An OG title">
  <meta name="description" content="Plain description">
  <meta property="og:image" content="http://cdn.example.com/hero.jpg">
  <meta property="og:image" content="/huge.jpg">
  <meta name="twitter:image" content="https://cdn.example.com/twitter.jpg">
  <link rel="icon" href="/favicon.png">
  <script type="application/ld+json">
    {"@type": "Product", "image": ["https://cdn.example.com/page.html"]}
  </script>
</head>
<body></body>
</html>
"""


def article_site(request: httpx.Request) -> httpx.Response:
    url = str(request.url)
    if request.method == "GET" and url == "https://example.com/post":
        return html_response(ARTICLE_PAGE)
    if request.method == "HEAD" and url == "https://cdn.example.com/hero.jpg":
        return image_response(4096)
    if request.method == "HEAD" and url == "https://example.com/huge.jpg":
        return image_response(50 * 1024 * 1024)
    if request.method == "HEAD" and url == "https://cdn.example.com/page.html":
        return httpx.Response(200, headers={"content-type": "text/html"})
    return httpx.Response(404)


async def test_extracts_meta_and_validates_images(make_client, settings):
    extractor = GenericExtractor(make_client(article_site), settings)

    result = await extractor.extract("https://example.com/post")

    assert result.title == "An OG title"
    assert result.description == "Plain description"
    # http upgraded to https; oversized and non-image candidates dropped
    assert result.image == "https://cdn.example.com/hero.jpg"
    assert result.images is None
    assert result.favicon == "https://example.com/favicon.png"
    assert result.domain == "example.com"
    assert result.source == "generic"
    assert result.should_persist_image is True


async def test_keeps_gallery_order_when_several_images_pass(make_client, settings):
    page = """
    <meta property="og:image" content="https://img.example.com/a.jpg">
    <meta property="og:image" content="https://img.example.com/b.jpg">
    <meta property="og:image" content="https://img.example.com/a.jpg">
    """

    def handler(request):
        if request.method == "GET":
            return html_response(page)
        return image_response()

    result = await GenericExtractor(make_client(handler), settings).extract(
        "https://www.example.org/"
    )

    assert result.image == "https://img.example.com/a.jpg"
    assert result.images == ["https://img.example.com/a.jpg", "https://img.example.com/b.jpg"]
    assert result.domain == "example.org"


async def test_twitter_image_only_used_without_other_candidates(make_client, settings):
    page = '<meta name="twitter:image" content="https://img.example.com/t.png"><title>T</title>'

    def handler(request):
        if request.method == "GET":
            return html_response(page)
        return image_response(content_type="image/png")

    result = await GenericExtractor(make_client(handler), settings).extract(
        "https://example.com/"
    )

    assert result.title == "T"
    assert result.image == "https://img.example.com/t.png"


async def test_fetch_failure_returns_domain_only_result(make_client, settings):
    result = await GenericExtractor(make_client(offline), settings).extract(
        "https://www.example.com/missing"
    )

    assert result.title is None
    assert result.description is None
    assert result.image is None
    assert result.domain == "example.com"
    assert result.source == "generic"
    assert result.favicon == favicon_service_url("https://www.example.com/missing")
    assert result.should_persist_image is False


async def test_http_error_status_counts_as_fetch_failure(make_client, settings):
    result = await GenericExtractor(
        make_client(lambda request: html_response("gone", status_code=410)), settings
    ).extract("https://example.com/gone")

    assert result.title is None
    assert result.source == "generic"


async def test_relative_urls_resolve_against_redirect_target(make_client, settings):
    page = """
    <meta property="og:image" content="cover.jpg">
    <link rel="icon" href="favicon.ico">
    """

    def handler(request):
        url = str(request.url)
        if url == "https://short.example/p/1":
            return httpx.Response(301, headers={"location": "https://blog.example.com/posts/1/"})
        if request.method == "GET" and url == "https://blog.example.com/posts/1/":
            return html_response(page)
        if request.method == "HEAD" and url == "https://blog.example.com/posts/1/cover.jpg":
            return image_response()
        return httpx.Response(404)

    result = await GenericExtractor(make_client(handler), settings).extract(
        "https://short.example/p/1"
    )

    assert result.image == "https://blog.example.com/posts/1/cover.jpg"
    assert result.favicon == "https://blog.example.com/posts/1/favicon.ico"
    assert result.domain == "short.example"
