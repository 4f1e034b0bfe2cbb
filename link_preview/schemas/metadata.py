from typing import Optional
from urllib.parse import urlsplit

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


def extract_domain(url: str) -> str:
    """Hostname without a leading ``www.``; ``"unknown"`` when unparseable."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return "unknown"
    if not host:
        return "unknown"
    return host[4:] if host.startswith("www.") else host


class MetadataResult(BaseModel):
    """Normalized preview metadata produced by every handler."""

    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    images: Optional[list[str]] = None
    favicon: Optional[str] = None
    domain: str = "unknown"
    source: str = "generic"
    should_persist_image: bool = False

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="after")
    def _primary_image_leads_gallery(self) -> "MetadataResult":
        if self.image and self.images:
            rest = [img for img in self.images if img != self.image]
            self.images = [self.image, *rest]
        if not self.domain:
            self.domain = "unknown"
        return self


class UrlRequest(BaseModel):
    url: str = Field(min_length=1)
