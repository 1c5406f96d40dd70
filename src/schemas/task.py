"""Task schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class TaskCreate(BaseModel):
    """Create a new task."""

    title: str | None = Field(None, max_length=500)
    description: str | None = Field(None, max_length=2000)


class TaskResponse(BaseModel):
    """Task response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    description: str | None
    completed: bool
    created_at: datetime


class TaskEnvelope(BaseModel):
    """Success envelope carrying one task."""

    success: bool = True
    message: str
    data: TaskResponse
