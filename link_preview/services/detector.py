"""Hostname based site detection."""

from __future__ import annotations

import re
from enum import Enum
from urllib.parse import urlsplit

from link_preview.services.handlers.ecommerce import is_ecommerce_host


class SiteType(str, Enum):
    youtube = "youtube"
    reddit = "reddit"
    tiktok = "tiktok"
    amazon = "amazon"
    ecommerce = "ecommerce"
    generic = "generic"


_AMAZON_TLDS = r"com|co\.uk|de|fr|es|it|ca|com\.au|co\.jp|in|nl|se|pl|com\.mx|com\.br"

# First match wins: Amazon is listed before the generic retailer check.
SITE_PATTERNS: list[tuple[re.Pattern, SiteType]] = [
    (re.compile(r"^((www|m|music)\.)?youtube\.com$"), SiteType.youtube),
    (re.compile(r"^(www\.)?youtu\.be$"), SiteType.youtube),
    (re.compile(r"^((www|old|new|np|m)\.)?reddit\.com$"), SiteType.reddit),
    (re.compile(r"^(www\.)?redd\.it$"), SiteType.reddit),
    (re.compile(r"^((www|vm|vt|m)\.)?tiktok\.com$"), SiteType.tiktok),
    (re.compile(rf"^((www|smile)\.)?amazon\.({_AMAZON_TLDS})$"), SiteType.amazon),
    (re.compile(r"^(a\.co|amzn\.to|(www\.)?amzn\.com)$"), SiteType.amazon),
]


def detect_site(url: str) -> SiteType:
    """Map a URL to a known platform, or ``SiteType.generic``."""
    try:
        hostname = (urlsplit(url).hostname or "").lower()
    except ValueError:
        return SiteType.generic
    if not hostname:
        return SiteType.generic

    for pattern, site in SITE_PATTERNS:
        if pattern.match(hostname):
            return site
    if is_ecommerce_host(hostname):
        return SiteType.ecommerce
    return SiteType.generic
