from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ArticleContent(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    text_content: Optional[str] = None
    excerpt: Optional[str] = None
    byline: Optional[str] = None
    site_name: Optional[str] = None
    word_count: int = 0
    reading_time: int = 0
    published_time: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ArticleResponse(BaseModel):
    success: bool
    article: Optional[ArticleContent] = None
    error: Optional[str] = None
