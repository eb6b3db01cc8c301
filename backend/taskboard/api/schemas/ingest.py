"""Schemas for natural-language parsing and ingestion."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from taskboard.api.schemas.task import TaskResponse


class ParseRequest(BaseModel):
    message: str = Field(..., max_length=4000)
    timezone: Optional[str] = None


class IngestRequest(BaseModel):
    message: str = Field(..., max_length=4000)
    owner: UUID
    timezone: Optional[str] = None


class FailedDraft(BaseModel):
    title: str
    error: str


class IngestResponse(BaseModel):
    created: List[TaskResponse] = Field(default_factory=list)
    failed: List[FailedDraft] = Field(default_factory=list)
    message: str
