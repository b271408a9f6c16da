from __future__ import annotations

from typing import List
from uuid import UUID

from pydantic import BaseModel, Field


class SyncRunSummary(BaseModel):
    """Outcome of one scheduler pass over all tenants."""

    synced: List[UUID] = Field(default_factory=list)
    skipped: List[UUID] = Field(default_factory=list)  # already mid-sync
    failed: List[UUID] = Field(default_factory=list)
    games_synced: int = 0
    games_failed: int = 0
