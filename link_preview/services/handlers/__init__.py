from link_preview.services.handlers.amazon import AmazonHandler
from link_preview.services.handlers.base import MetadataHandler
from link_preview.services.handlers.ecommerce import EcommerceHandler
from link_preview.services.handlers.reddit import RedditHandler
from link_preview.services.handlers.tiktok import TikTokHandler
from link_preview.services.handlers.youtube import YouTubeHandler

__all__ = [
    "AmazonHandler",
    "EcommerceHandler",
    "MetadataHandler",
    "RedditHandler",
    "TikTokHandler",
    "YouTubeHandler",
]
