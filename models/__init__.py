"""
Pydantic models and value types for validation and serialization.
"""

from models.base import BaseSchema, FrozenSchema
from models.catalog import Variant, CatalogPage, CatalogSummary
from models.matching import (
    MatchTier,
    MatchConfidence,
    AssetRole,
    ParsedFilename,
    MatchResult,
    NoMatch,
    MatchOutcome,
)
from models.transfer import (
    AssetCategory,
    TransferStatus,
    TransferState,
    AssetCandidate,
    FileMetadata,
    StagedTarget,
    CommittedAsset,
    TransferResult,
    RunSummary,
)
from models.credentials import Credentials, TokenGrant
from models.job import JobStatus, UploadJob
from models.upload import UploadRequest, UploadRunResponse, FolderFileCount

__all__ = [
    "BaseSchema",
    "FrozenSchema",
    "Variant",
    "CatalogPage",
    "CatalogSummary",
    "MatchTier",
    "MatchConfidence",
    "AssetRole",
    "ParsedFilename",
    "MatchResult",
    "NoMatch",
    "MatchOutcome",
    "AssetCategory",
    "TransferStatus",
    "TransferState",
    "AssetCandidate",
    "FileMetadata",
    "StagedTarget",
    "CommittedAsset",
    "TransferResult",
    "RunSummary",
    "Credentials",
    "TokenGrant",
    "JobStatus",
    "UploadJob",
    "UploadRequest",
    "UploadRunResponse",
    "FolderFileCount",
]
