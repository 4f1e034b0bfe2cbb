from link_preview.models.base import Base
from link_preview.models.link import Link

__all__ = ["Base", "Link"]
