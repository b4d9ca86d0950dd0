"""
Transfer schemas: candidates, per-file results and run summaries.
"""

from pydantic import Field, computed_field
from typing import Optional
from enum import Enum

from models.base import FrozenSchema
from models.catalog import Variant
from models.matching import MatchTier


class AssetCategory(str, Enum):
    """
    Kind of asset being synced.

    Each category has its own mime gate, dedup namespace and
    metadata update strategy.
    """
    IMAGE = "image"
    SPEC = "spec"

    def accepts_mime_type(self, mime_type: Optional[str]) -> bool:
        """Check whether a source mime type belongs to this category."""
        if not mime_type:
            return False
        mime_type = mime_type.lower()
        if self is AssetCategory.IMAGE:
            return mime_type.startswith("image/")
        return "pdf" in mime_type

    @property
    def drive_mime_filter(self) -> str:
        """Drive query fragment selecting this category's files."""
        if self is AssetCategory.IMAGE:
            return "mimeType contains 'image/'"
        return "mimeType contains 'pdf'"

    @property
    def destination_content_type(self) -> str:
        """Content type used when committing the staged resource."""
        return "IMAGE" if self is AssetCategory.IMAGE else "FILE"


class TransferStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class TransferState(str, Enum):
    """Pipeline states, in the order a successful transfer visits them."""
    FETCHED = "fetched"
    VALIDATED = "validated"
    MATCHED = "matched"
    SKIPPED = "skipped"
    DOWNLOADING = "downloading"
    STAGED = "staged"
    COMMITTED = "committed"
    METADATA_UPDATED = "metadata_updated"
    DONE = "done"
    ERRORED = "errored"


class AssetCandidate(FrozenSchema):
    """
    A source file queued for transfer.

    Candidates built from an explicit id list carry only the id;
    the pipeline fills in the rest from file metadata.
    """

    source_file_id: str = Field(..., min_length=1)
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size_bytes: int = Field(0, ge=0)


class FileMetadata(FrozenSchema):
    """Source file metadata."""

    id: str
    name: str
    mime_type: Optional[str] = None
    size_bytes: int = 0


class StagedTarget(FrozenSchema):
    """
    Temporary upload target returned by the destination.

    form_fields keeps the server's declared order; it is sent
    before the file part.
    """

    upload_url: str
    resource_ref: str
    form_fields: tuple[tuple[str, str], ...] = ()


class CommittedAsset(FrozenSchema):
    """Permanent destination asset created from a staged resource."""

    asset_id: str
    status: Optional[str] = None
    public_url: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return (self.status or "").upper() == "READY"


class TransferResult(FrozenSchema):
    """Outcome of one file. Created once, never updated."""

    source_file_id: str
    file_name: Optional[str] = None
    status: TransferStatus
    destination_asset_id: Optional[str] = None
    destination_url: Optional[str] = None
    matched_variant: Optional[Variant] = None
    match_tier: Optional[MatchTier] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None
    states: tuple[TransferState, ...] = ()


class RunSummary(FrozenSchema):
    """
    Result of one orchestration run.

    total is the number of candidates submitted; when a run is
    cancelled, total exceeds succeeded + failed + skipped.
    """

    run_id: str
    category: AssetCategory
    total: int
    succeeded: int
    failed: int
    skipped: int
    cancelled: bool = False
    dry_run: bool = False
    catalog_partial: bool = False
    results: tuple[TransferResult, ...] = ()

    @computed_field
    @property
    def processed(self) -> int:
        return self.succeeded + self.failed + self.skipped

    @classmethod
    def from_results(
        cls,
        run_id: str,
        category: AssetCategory,
        total: int,
        results: list[TransferResult],
        cancelled: bool = False,
        dry_run: bool = False,
        catalog_partial: bool = False,
    ) -> "RunSummary":
        """Tally results into a summary."""
        return cls(
            run_id=run_id,
            category=category,
            total=total,
            succeeded=sum(1 for r in results if r.status == TransferStatus.SUCCESS),
            failed=sum(1 for r in results if r.status == TransferStatus.ERROR),
            skipped=sum(1 for r in results if r.status == TransferStatus.SKIPPED),
            cancelled=cancelled,
            dry_run=dry_run,
            catalog_partial=catalog_partial,
            results=tuple(results),
        )
