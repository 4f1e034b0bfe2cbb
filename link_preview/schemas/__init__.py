from link_preview.schemas.article import ArticleContent, ArticleResponse
from link_preview.schemas.link import LinkCreate, LinkRead, LinkUpdate
from link_preview.schemas.link_check import LinkCheckRequest, LinkCheckResult, LinkStatus
from link_preview.schemas.metadata import MetadataResult, UrlRequest, extract_domain

__all__ = [
    "ArticleContent",
    "ArticleResponse",
    "LinkCheckRequest",
    "LinkCheckResult",
    "LinkCreate",
    "LinkRead",
    "LinkStatus",
    "LinkUpdate",
    "MetadataResult",
    "UrlRequest",
    "extract_domain",
]
