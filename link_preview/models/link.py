from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import JSON, func
from sqlalchemy.orm import Mapped, mapped_column

from link_preview.models.base import Base


class Link(Base):
    """A bookmarked URL and the preview metadata extracted for it."""

    __tablename__ = "links"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    url: Mapped[str] = mapped_column(index=True)
    title: Mapped[Optional[str]]
    description: Mapped[Optional[str]]
    image: Mapped[Optional[str]]
    images: Mapped[Optional[list[str]]] = mapped_column(JSON)
    favicon: Mapped[Optional[str]]
    domain: Mapped[Optional[str]]
    source: Mapped[Optional[str]]
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now()
    )
