"""Automation run schemas (DTOs)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .models import RunStatus


class AutomationRunCreateRequest(BaseModel):
    workflow_name: str = Field(..., min_length=1, max_length=100)
    workflow_id: str | None = Field(None, max_length=100)
    execution_id: str | None = Field(None, max_length=100)
    production_id: UUID | None = None
    status: RunStatus = RunStatus.RUNNING
    error_message: str | None = Field(None, max_length=500)


class AutomationRunUpdateRequest(BaseModel):
    """Only the fields present in the request body are applied."""

    status: RunStatus | None = None
    error_message: str | None = Field(None, max_length=500)


class AutomationRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workflow_name: str
    workflow_id: str | None
    execution_id: str | None
    production_id: UUID | None
    status: RunStatus
    error_message: str | None
    started_at: datetime
    completed_at: datetime | None
