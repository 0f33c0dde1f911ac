"""Content models for indexed text and its derived chunks."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceType(str, Enum):
    """Where the content of a record came from."""

    UPLOAD = "upload"
    REMOTE = "remote"


class ActorState(BaseModel):
    """Durable per-id snapshot owned by a content actor."""

    id: str
    content: str
    name: str
    type: SourceType
    source_url: Optional[str] = None
    created_at: datetime
    last_updated: datetime
    storage_key: Optional[str] = None

    @property
    def is_remote(self) -> bool:
        """Whether this record is refreshed from a remote source."""
        return self.type == SourceType.REMOTE and bool(self.source_url)


class ContentMetadata(BaseModel):
    """Metadata object stored next to the raw content in the blob store."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type: SourceType
    created_at: datetime = Field(alias="createdAt")
    source_url: Optional[str] = Field(default=None, alias="sourceUrl")


class ChunkDocument(BaseModel):
    """Chunk model representing one indexed fragment of content."""

    chunk_index: int = Field(ge=0)
    text: str
    source_name: str


class SearchHit(BaseModel):
    """A ranked match for a query."""

    document: ChunkDocument
    score: float


class SearchResult(BaseModel):
    """Outcome of running a query against a search index."""

    count: int
    hits: List[SearchHit] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
