"""Pydantic models for the feed service."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Video(BaseModel):
    """A stored video, serialized with the public field names."""

    title: str = Field(..., description="Video title")
    description: str = Field(default="", description="Video description")
    publish_time: datetime = Field(
        ...,
        serialization_alias="publishTime",
        description="Timezone-aware publish time (RFC 3339 on the wire)",
    )
    thumbnail: str = Field(default="", description="Default thumbnail URL")


class SearchPage(BaseModel):
    """One page of search.list results. Never persisted."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    next_page_token: str | None = Field(
        default=None, description="Token for the next page, None on the last page"
    )


class IngestionState(str, Enum):
    """States of the ingestion loop."""

    QUERYING = "querying"  # fresh search, no page token
    PAGINATING = "paginating"  # following nextPageToken
    IDLE = "idle"  # result set exhausted, waiting
    STOPPED = "stopped"


class IngestionStats(BaseModel):
    """Counters kept by the ingestion loop."""

    state: IngestionState = IngestionState.QUERYING
    cycles_completed: int = 0
    pages_fetched: int = 0
    videos_inserted: int = 0
    items_skipped: int = 0
    insert_failures: int = 0
    credential_rotations: int = 0
    transient_failures: int = 0
    exhaustion_backoffs: int = 0  # every key out of quota, waited retry_backoff
    active_credential_index: int = 0
    last_success_at: datetime | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    timestamp: datetime = Field(..., description="Check timestamp")
    ingestion: IngestionStats | None = Field(
        default=None, description="Ingestion loop counters, None before startup"
    )
