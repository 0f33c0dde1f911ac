"""Pydantic models for the management API."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from textindex.models.content import SourceType


class RemoteCreate(BaseModel):
    """Model for registering a remote URL."""

    # Any JSON value; non-strings are rejected as invalid URLs.
    url: Any = None


class CreateResponse(BaseModel):
    """Model for a newly created content endpoint."""

    id: str
    url: str


class StatusResponse(BaseModel):
    """Model for status lookup response."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    type: SourceType
    source_url: Optional[str] = Field(default=None, serialization_alias="sourceUrl")
    created_at: datetime = Field(serialization_alias="createdAt")
    last_updated: Optional[datetime] = Field(
        default=None, serialization_alias="lastUpdated")
    content: str
