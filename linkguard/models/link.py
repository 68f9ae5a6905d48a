"""Link check Pydantic models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

LinkStatus = Literal["working", "warning", "broken"]


class LinkCheckResult(BaseModel):
    """Reachability classification of one URL."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    url: str
    status: LinkStatus
    status_code: int = Field(default=0, ge=0)
