"""Product page handler for retailers and Shopify storefronts."""

from __future__ import annotations

from typing import List, Optional

from bs4 import BeautifulSoup, Tag

from link_preview.schemas.metadata import MetadataResult, extract_domain
from link_preview.services import html
from link_preview.services.handlers.base import MetadataHandler
from link_preview.services.http import fetch_html

ECOMMERCE_DOMAINS = (
    "bestbuy.com",
    "target.com",
    "walmart.com",
    "ebay.com",
    "etsy.com",
    "wayfair.com",
    "homedepot.com",
    "lowes.com",
    "ikea.com",
    "newegg.com",
    "lg.com",
    "samsung.com",
    "apple.com",
    "nike.com",
    "adidas.com",
    "vans.com",
    "aliexpress.com",
    "alibaba.com",
    "makerworld.com",
    "thingiverse.com",
    "printables.com",
    "myshopify.com",
)

SHOPIFY_URL_MARKERS = ("cdn.shopify.com", "shopify.com")

# Most specific first; platform gallery classes before generic patterns.
PRODUCT_IMAGE_SELECTORS = (
    # schema.org markup
    '[itemprop="image"] img',
    '[itemprop="image"]',
    'meta[itemprop="image"]',
    # common product image classes
    ".product-image img",
    ".product-img img",
    ".main-product-image img",
    "#primary-product-image",
    ".primary-image img",
    ".main-image img",
    "#product-image img",
    "#main-image img",
    # galleries / carousels
    ".product-gallery img",
    ".gallery-image img",
    ".carousel-item.active img",
    # Shopify
    ".product__media img",
    ".product-featured-image img",
    ".featured-image img",
    # WooCommerce
    ".woocommerce-product-gallery__image img",
    ".woocommerce-main-image img",
    # BigCommerce
    ".productView-image img",
    # Magento
    ".gallery-placeholder img",
    ".fotorama__stage img",
    # Best Buy
    ".shop-media-gallery img",
    # Target
    ".slideDeckPicture img",
    # Walmart
    ".hover-zoom-hero-image img",
    # eBay
    ".ux-image-magnify__image img",
    ".img-wrapper img",
    # Etsy
    ".listing-page-image-container img",
    ".carousel-image img",
    # 3D printing sites
    ".model-image img",
    ".model-preview img",
    ".thumbnail img",
    # electronics brands
    ".visual-product img",
    ".product-visual img",
    ".hero-product-image img",
    # generic class patterns
    'img[class*="product"]',
    'img[class*="model"]',
    'img[class*="hero"]',
    'img[class*="main"]',
    'img[class*="primary"]',
    # any image in the main content
    "main img",
    "#content img",
    ".content img",
)

IMG_SRC_ATTRS = (
    "src",
    "data-src",
    "data-lazy-src",
    "data-original",
    "data-zoom-image",
    "data-large",
)

TITLE_META_KEYS = (*html.TITLE_META_KEYS, "product:title")
DESCRIPTION_META_KEYS = (*html.DESCRIPTION_META_KEYS, "product:description")


def is_ecommerce_host(hostname: str) -> bool:
    hostname = hostname.lower()
    return any(hostname == d or hostname.endswith("." + d) for d in ECOMMERCE_DOMAINS)


def is_shopify_store(soup: BeautifulSoup, url: str) -> bool:
    if any(marker in url for marker in SHOPIFY_URL_MARKERS):
        return True
    if soup.find("meta", attrs={"name": "shopify-checkout-api-token"}):
        return True
    if soup.select_one('script[src*="shopify"]'):
        return True
    return soup.select_one('link[href*="cdn.shopify.com"]') is not None


def _usable_src(value: Optional[str]) -> bool:
    return bool(value) and "placeholder" not in value and "spinner" not in value


def _image_src(tag: Tag, attrs=IMG_SRC_ATTRS) -> Optional[str]:
    for attr in attrs:
        value = tag.get(attr)
        if value:
            return value
    return None


def extract_product_image(soup: BeautifulSoup, base_url: str) -> Optional[str]:
    """First image found by walking the selector list in priority order."""
    for selector in PRODUCT_IMAGE_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        if element.name == "meta":
            if element.get("content"):
                return html.resolve_url(base_url, element["content"])
        elif element.name == "img":
            src = _image_src(element)
            if _usable_src(src):
                return html.resolve_url(base_url, src)
        else:
            if element.get("content"):
                return html.resolve_url(base_url, element["content"])
            img = element.find("img")
            if img is not None:
                src = _image_src(img, IMG_SRC_ATTRS[:3])
                if _usable_src(src):
                    return html.resolve_url(base_url, src)
    return None


class EcommerceHandler(MetadataHandler):
    name = "ecommerce"

    async def fetch_product(self, url: str) -> Optional[MetadataResult]:
        markup, final_url = await fetch_html(self.client, url, self.settings.fetch_timeout)
        soup = html.parse_html(markup)
        meta_map = html.build_meta_map(soup)

        images: List[str] = html.json_ld_product_images(soup, final_url)
        dom_image = extract_product_image(soup, final_url)
        if dom_image and dom_image not in images:
            images.append(dom_image)
        if not images:
            og_image = html.pick_first(meta_map, ("og:image", "og:image:url"))
            resolved = html.resolve_url(final_url, og_image)
            if resolved:
                images.append(resolved)
        if not images:
            resolved = html.resolve_url(
                final_url, html.pick_first(meta_map, html.TWITTER_IMAGE_KEYS)
            )
            if resolved:
                images.append(resolved)

        title = html.pick_first(meta_map, TITLE_META_KEYS) or html.page_title(soup)
        source = "shopify-handler" if is_shopify_store(soup, final_url) else "ecommerce-handler"
        return MetadataResult(
            title=title or "Product",
            description=html.pick_first(meta_map, DESCRIPTION_META_KEYS) or "View product",
            image=images[0] if images else None,
            images=images or None,
            favicon=html.find_favicon(soup, final_url),
            domain=extract_domain(url),
            source=source,
            # Retailer CDNs serve stable URLs.
            should_persist_image=False,
        )

    def tiers(self):
        return (("page", self.fetch_product),)

    def fallback(self, url: str) -> MetadataResult:
        return MetadataResult(
            title="Product",
            description="View product",
            favicon=html.favicon_service_url(url),
            domain=extract_domain(url),
            source="ecommerce-fallback",
            should_persist_image=False,
        )
