"""
Custom exceptions module.

Skip outcomes derive from TransferSkipped; everything else derives from AppError.
"""

from exceptions.errors import (
    # Base exceptions
    AppError,
    NotFoundError,
    ExternalServiceError,

    # Transfer skips
    TransferSkipped,
    InvalidFilenameError,
    NoCatalogMatchError,
    AlreadyProcessedError,
    WrongAssetTypeError,

    # Source API
    TransientNetworkError,
    QuotaExceededError,
    RateLimitExceededError,
    AuthExpiredError,

    # Destination
    StagedUploadError,
    AssetCommitError,
    MetadataUpdateError,

    # Run-level
    CatalogFetchError,
    FolderLookupError,

    # Jobs
    UploadJobNotFoundError,
)

__all__ = [
    # Base
    "AppError",
    "NotFoundError",
    "ExternalServiceError",

    # Transfer skips
    "TransferSkipped",
    "InvalidFilenameError",
    "NoCatalogMatchError",
    "AlreadyProcessedError",
    "WrongAssetTypeError",

    # Source API
    "TransientNetworkError",
    "QuotaExceededError",
    "RateLimitExceededError",
    "AuthExpiredError",

    # Destination
    "StagedUploadError",
    "AssetCommitError",
    "MetadataUpdateError",

    # Run-level
    "CatalogFetchError",
    "FolderLookupError",

    # Jobs
    "UploadJobNotFoundError",
]
