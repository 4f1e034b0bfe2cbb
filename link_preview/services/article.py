"""Reader-mode article extraction built on readability-lxml."""

from __future__ import annotations

import logging
import math
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup
from readability import Document

from link_preview.config import Settings
from link_preview.errors import ExtractionFailed
from link_preview.schemas.article import ArticleContent
from link_preview.services import html
from link_preview.services.http import fetch_html

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 225
EXCERPT_LENGTH = 200

BYLINE_META_KEYS = ("author", "article:author", "twitter:creator")
SITE_NAME_META_KEYS = ("og:site_name", "application-name")
PUBLISHED_META_KEYS = ("article:published_time", "og:published_time", "date", "pubdate")

_LOADING_RE = re.compile(r"loading\.\.\.", re.IGNORECASE)
_SKIP_TO_RE = re.compile(r"skip to (main content|footer|navigation)", re.IGNORECASE)
_ANCHOR_RE = re.compile(r"<a\s", re.IGNORECASE)


def _clean_content(soup: BeautifulSoup) -> BeautifulSoup:
    for tag in soup(["script", "style", "noscript", "form"]):
        tag.decompose()
    return soup


def count_words(text: str) -> int:
    return len(text.split())


def reading_time(word_count: int) -> int:
    """Minutes at 225 wpm, never less than one for non-empty text."""
    if word_count <= 0:
        return 0
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def make_excerpt(text: str, length: int = EXCERPT_LENGTH) -> Optional[str]:
    text = " ".join(text.split())
    if not text:
        return None
    if len(text) <= length:
        return text
    return text[:length].rsplit(" ", 1)[0] + "..."


def is_low_quality(content: Optional[str], text_content: Optional[str]) -> bool:
    """Detect JS placeholder shells and navigation-only extractions."""
    if not content and not text_content:
        return True
    text = text_content or content or ""
    markup = content or ""
    if text_content is not None and not text_content.strip():
        return True

    if len(_LOADING_RE.findall(text)) >= 3:
        return True
    if len(_SKIP_TO_RE.findall(text)) >= 2 and len(text) < 500:
        return True

    links = len(_ANCHOR_RE.findall(markup))
    words = len([word for word in text.split() if len(word) > 2])
    return words < 100 and links > words / 3


def parse_article(markup: str, url: str) -> ArticleContent:
    """Run readability over ``markup`` and collect reader metadata."""
    document = Document(markup, url=url)
    summary = _clean_content(
        BeautifulSoup(document.summary(html_partial=True), "html.parser")
    )
    text_content = "\n".join(summary.stripped_strings)

    meta_map = html.build_meta_map(html.parse_html(markup))
    words = count_words(text_content)
    return ArticleContent(
        title=html.pick_first(meta_map, ("og:title",)) or document.short_title() or None,
        content=summary.decode(),
        text_content=text_content,
        excerpt=html.pick_first(meta_map, html.DESCRIPTION_META_KEYS)
        or make_excerpt(text_content),
        byline=html.pick_first(meta_map, BYLINE_META_KEYS),
        site_name=html.pick_first(meta_map, SITE_NAME_META_KEYS),
        word_count=words,
        reading_time=reading_time(words),
        published_time=html.pick_first(meta_map, PUBLISHED_META_KEYS),
    )


async def extract_article(
    client: httpx.AsyncClient, url: str, settings: Settings
) -> ArticleContent:
    """Fetch ``url`` and return its readable content.

    Raises :class:`ExtractionFailed` when the page cannot be fetched or the
    extracted body looks like a script shell rather than an article.
    """
    try:
        markup, final_url = await fetch_html(client, url, settings.article_timeout)
    except httpx.HTTPStatusError as exc:
        raise ExtractionFailed(f"HTTP {exc.response.status_code}") from exc
    except httpx.HTTPError as exc:
        raise ExtractionFailed(f"Failed to fetch page: {exc}") from exc

    try:
        article = parse_article(markup, final_url)
    except (ValueError, TypeError) as exc:
        logger.warning("Readability failed for %s: %s", url, exc)
        raise ExtractionFailed("Could not parse article") from exc

    if is_low_quality(article.content, article.text_content):
        logger.info("Rejected low quality extraction for %s", url)
        raise ExtractionFailed(
            "Content quality too low (JS-rendered or navigation-heavy page)"
        )
    return article
