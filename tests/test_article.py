import httpx
import pytest

from link_preview.errors import ExtractionFailed
from link_preview.services.article import (
    extract_article,
    is_low_quality,
    make_excerpt,
    reading_time,
)

from tests.helpers import html_response

SENTENCE = (
    "The quick brown fox, having considered the matter carefully, jumps over the "
    "lazy dog while the farmer watches from the porch. "
)

ARTICLE_PAGE = f"""
<html>
<head>
  <title>Foxes and dogs - The Daily Example</title>
  <meta property="og:title" content="Foxes and dogs">
  <meta property="og:site_name" content="The Daily Example">
  <meta name="author" content="Jane Writer">
  <meta property="article:published_time" content="2024-05-01T10:00:00Z">
</head>
<body>
  <nav><a href="/">Home</a> <a href="/news">News</a></nav>
  <article>
    <h1>Foxes and dogs</h1>
    <p>{SENTENCE * 8}</p>
    <p>{SENTENCE * 8}</p>
    <p>{SENTENCE * 8}</p>
  </article>
  <script>window.tracking = true;</script>
</body>
</html>
"""


def test_reading_time_rounds_up():
    assert reading_time(0) == 0
    assert reading_time(1) == 1
    assert reading_time(225) == 1
    assert reading_time(226) == 2


def test_excerpt_breaks_on_word_boundary():
    excerpt = make_excerpt("word " * 100, length=22)
    assert excerpt == "word word word word..."
    assert make_excerpt("   ") is None


def test_low_quality_detection():
    assert is_low_quality(None, None)
    assert is_low_quality("<p>Loading... Loading... Loading...</p>", "Loading... Loading... Loading...")
    links = " ".join(f'<a href="/{n}">Link{n}</a>' for n in range(20))
    assert is_low_quality(links, " ".join(f"Link{n}" for n in range(20)))
    assert not is_low_quality("<p>" + SENTENCE * 20 + "</p>", SENTENCE * 20)


async def test_extracts_readable_article(make_client, settings):
    client = make_client(lambda request: html_response(ARTICLE_PAGE))

    article = await extract_article(client, "https://news.example.com/foxes", settings)

    assert article.title == "Foxes and dogs"
    assert article.byline == "Jane Writer"
    assert article.site_name == "The Daily Example"
    assert article.published_time == "2024-05-01T10:00:00Z"
    assert "quick brown fox" in article.text_content
    assert "window.tracking" not in article.content
    assert article.word_count > 400
    assert article.reading_time == reading_time(article.word_count)
    assert article.excerpt.startswith("Foxes and dogs") or article.excerpt.startswith("The quick")


async def test_http_error_raises_extraction_failed(make_client, settings):
    client = make_client(lambda request: httpx.Response(404))

    with pytest.raises(ExtractionFailed, match="HTTP 404"):
        await extract_article(client, "https://news.example.com/missing", settings)


async def test_script_shell_is_rejected(make_client, settings):
    shell = "<html><body><div>" + "<p>Loading...</p>" * 5 + "</div></body></html>"
    client = make_client(lambda request: html_response(shell))

    with pytest.raises(ExtractionFailed):
        await extract_article(client, "https://app.example.com/", settings)
