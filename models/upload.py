"""
Upload API request/response schemas.
"""

from pydantic import Field, model_validator
from typing import Optional

from models.base import BaseSchema
from models.transfer import AssetCategory, RunSummary


class UploadRequest(BaseSchema):
    """
    Start a sync run.

    Exactly one of folder_id or file_ids selects the source files.
    """

    folder_id: Optional[str] = Field(None, description="Drive folder to sync")
    file_ids: list[str] = Field(default_factory=list, description="Explicit Drive file ids")
    access_token: str = Field(..., min_length=1, description="Drive OAuth access token")
    refresh_token: Optional[str] = Field(None, description="Drive OAuth refresh token")
    dry_run: bool = Field(False, description="Match only; nothing is uploaded or written")

    @model_validator(mode="after")
    def check_source(self) -> "UploadRequest":
        if bool(self.folder_id) == bool(self.file_ids):
            raise ValueError("Provide either folder_id or file_ids")
        return self


class UploadRunResponse(BaseSchema):
    """Run summary plus the job that tracked it."""

    job_id: str
    summary: RunSummary


class FolderFileCount(BaseSchema):
    """How many files of a category a Drive folder holds."""

    folder_id: str
    folder_name: str
    category: AssetCategory
    count: int = Field(..., ge=0)
    total_bytes: int = Field(0, ge=0)
