from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LinkStatus(str, Enum):
    ok = "ok"
    broken = "broken"
    redirected = "redirected"
    error = "error"


class LinkCheckResult(BaseModel):
    status: LinkStatus
    redirect_url: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkCheckRequest(BaseModel):
    url: Optional[str] = None
    urls: Optional[list] = Field(default=None)
