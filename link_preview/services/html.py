"""HTML metadata parsing utilities shared by the generic and platform extractors."""

from __future__ import annotations

import html as html_lib
import json
import logging
import re
from typing import Iterable, Iterator, List, Optional
from urllib.parse import quote, urljoin

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

TITLE_META_KEYS = ("og:title", "twitter:title", "title")
DESCRIPTION_META_KEYS = ("og:description", "twitter:description", "description")
TWITTER_IMAGE_KEYS = ("twitter:image", "twitter:image:src")

FAVICON_SERVICE = "https://www.google.com/s2/favicons?sz=128&domain_url={url}"


def parse_html(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def favicon_service_url(page_url: str) -> str:
    return FAVICON_SERVICE.format(url=quote(page_url, safe=""))


def resolve_url(base: str, candidate: Optional[str]) -> Optional[str]:
    """Absolute URL for ``candidate`` relative to ``base``; None when unusable."""
    if not candidate:
        return None
    candidate = candidate.strip()
    if not candidate or candidate.startswith("data:"):
        return None
    try:
        resolved = urljoin(base, candidate)
    except ValueError:
        return None
    if not resolved.startswith(("http://", "https://")):
        return None
    return resolved


def build_meta_map(soup: BeautifulSoup) -> dict[str, str]:
    """Map of lowercase ``property``/``name``/``itemprop`` to content; first wins."""
    meta_map: dict[str, str] = {}
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name") or tag.get("itemprop")
        content = tag.get("content")
        if not key or not content:
            continue
        key = key.strip().lower()
        if key not in meta_map:
            meta_map[key] = content.strip()
    return meta_map


def pick_first(meta_map: dict[str, str], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = meta_map.get(key)
        if value:
            return value
    return None


def page_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title and soup.title.string:
        title = soup.title.string.strip()
        return title or None
    return None


def og_images(soup: BeautifulSoup, base_url: str) -> List[str]:
    """Every ``og:image``/``og:image:url`` in document order, deduplicated."""
    images: List[str] = []
    for tag in soup.find_all("meta"):
        key = (tag.get("property") or tag.get("name") or "").strip().lower()
        if key not in ("og:image", "og:image:url"):
            continue
        resolved = resolve_url(base_url, tag.get("content"))
        if resolved and resolved not in images:
            images.append(resolved)
    return images


def _is_product_type(item_type) -> bool:
    types = item_type if isinstance(item_type, list) else [item_type]
    return any(
        isinstance(t, str) and ("Product" in t or t == "ItemPage") for t in types
    )


def iter_json_ld(soup: BeautifulSoup) -> Iterator[dict]:
    """Yield JSON-LD objects, flattening top-level lists and ``@graph`` arrays."""
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        text = script.string or script.get_text()
        if not text or not text.strip():
            continue
        try:
            data = json.loads(text)
        except ValueError:
            logger.debug("Skipping invalid JSON-LD block")
            continue
        roots = data if isinstance(data, list) else [data]
        for root in roots:
            if not isinstance(root, dict):
                continue
            graph = root.get("@graph")
            items = graph if isinstance(graph, list) else [root]
            for item in items:
                if isinstance(item, dict):
                    yield item


def json_ld_product_images(
    soup: BeautifulSoup, base_url: str, existing: Optional[List[str]] = None
) -> List[str]:
    """Append images of ``Product``/``ItemPage`` JSON-LD items to ``existing``."""
    images = list(existing or [])
    for item in iter_json_ld(soup):
        if not _is_product_type(item.get("@type")):
            continue
        raw = item.get("image")
        if not raw:
            continue
        for entry in raw if isinstance(raw, list) else [raw]:
            candidate = entry.get("url") if isinstance(entry, dict) else entry
            if not isinstance(candidate, str):
                continue
            resolved = resolve_url(base_url, candidate)
            if resolved and resolved not in images:
                images.append(resolved)
    return images


def find_favicon(soup: BeautifulSoup, base_url: str) -> str:
    """First ``<link rel*=icon>`` or the favicon-service fallback."""
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = [rel]
        if any("icon" in value.lower() for value in rel):
            resolved = resolve_url(base_url, link["href"])
            if resolved:
                return resolved
            break
    return favicon_service_url(base_url)


# Regex-based extraction is used where a page is only needed for a handful of
# meta tags and may be malformed.
_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


def regex_meta_content(markup: str, key: str) -> Optional[str]:
    """Content of ``<meta property|name=key>`` in either attribute order."""
    escaped = re.escape(key)
    patterns = (
        rf"<meta[^>]*property=[\"']{escaped}[\"'][^>]*content=[\"']([^\"']+)[\"']",
        rf"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*property=[\"']{escaped}[\"']",
        rf"<meta[^>]*name=[\"']{escaped}[\"'][^>]*content=[\"']([^\"']+)[\"']",
        rf"<meta[^>]*content=[\"']([^\"']+)[\"'][^>]*name=[\"']{escaped}[\"']",
    )
    for pattern in patterns:
        match = re.search(pattern, markup, re.IGNORECASE)
        if match:
            return html_lib.unescape(match.group(1).strip())
    return None


def regex_title(markup: str) -> Optional[str]:
    match = _TITLE_RE.search(markup)
    if match:
        return html_lib.unescape(match.group(1).strip()) or None
    return None
