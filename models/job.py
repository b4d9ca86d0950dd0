"""
Upload job schemas for in-memory progress tracking.
"""

from pydantic import Field
from typing import Optional
from enum import Enum
from datetime import datetime

from models.base import BaseSchema


class JobStatus(str, Enum):
    PENDING = "pending"
    UPLOADING = "uploading"
    COMPLETED = "completed"
    FAILED = "failed"


class UploadJob(BaseSchema):
    """Progress of one upload run."""

    id: str = Field(..., description="Job identifier")
    name: str = Field(..., description="Human-readable job name")
    status: JobStatus = JobStatus.PENDING
    progress: int = Field(0, ge=0, le=100, description="Percent complete")
    total_files: int = Field(0, ge=0)
    processed_files: int = Field(0, ge=0)
    error: Optional[str] = None
    created_at: datetime
    updated_at: datetime
