"""
Custom exception classes for the application.

Per-file outcomes (skips and transfer failures) are caught at the pipeline
boundary and turned into TransferResult entries. Run-level errors
(CatalogFetchError, FolderLookupError) propagate to the caller.
"""

from typing import Optional, Any
from datetime import datetime, timezone


class AppError(Exception):
    """
    Base exception for all application errors.

    All custom exceptions inherit from this.

    Attributes:
        code: Error code (e.g., "CATALOG_FETCH_FAILED")
        message: Human-readable message
        status_code: HTTP status code
        details: Additional context
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Optional[dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to API response format."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
                "timestamp": self.timestamp
            }
        }


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(
        self,
        resource: str,
        identifier: str,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found",
            status_code=404,
            details={"id": identifier}
        )


class ExternalServiceError(AppError):
    """External service failure (503)."""

    def __init__(
        self,
        service: str,
        message: str,
        details: Optional[dict] = None,
        code: Optional[str] = None
    ):
        super().__init__(
            code=code or f"{service.upper()}_ERROR",
            message=message,
            status_code=503,
            details={"service": service, **(details or {})}
        )


# ===================
# TRANSFER SKIPS
# ===================

class TransferSkipped(AppError):
    """
    A file was deliberately not transferred.

    Not a failure: the pipeline records these as status=skipped.
    The message doubles as the result's reason.
    """

    def __init__(
        self,
        code: str,
        reason: str,
        details: Optional[dict] = None
    ):
        super().__init__(
            code=code,
            message=reason,
            status_code=200,
            details=details
        )


class InvalidFilenameError(TransferSkipped):
    """Filename does not follow PREFIX-PRODUCT-COLOR[-SIZE]<suffix>."""

    def __init__(self, file_name: str):
        super().__init__(
            code="INVALID_FILENAME",
            reason="invalid filename format",
            details={"file_name": file_name}
        )


class NoCatalogMatchError(TransferSkipped):
    """No catalog variant satisfied any matching tier."""

    def __init__(
        self,
        file_name: str,
        searched_color: Optional[str] = None,
        searched_product: Optional[str] = None
    ):
        super().__init__(
            code="NO_CATALOG_MATCH",
            reason="no SKU match",
            details={
                "file_name": file_name,
                "searched_color": searched_color,
                "searched_product": searched_product,
            }
        )


class AlreadyProcessedError(TransferSkipped):
    """(product, color) already received an asset of this category in this run."""

    def __init__(self, product_id: str, color_code: str, category: str):
        super().__init__(
            code="ALREADY_PROCESSED",
            reason="already processed",
            details={
                "product_id": product_id,
                "color_code": color_code,
                "category": category,
            }
        )


class WrongAssetTypeError(TransferSkipped):
    """Mime type does not belong to the requested asset category."""

    def __init__(self, file_name: str, mime_type: Optional[str], category: str):
        super().__init__(
            code="WRONG_ASSET_TYPE",
            reason="wrong type",
            details={
                "file_name": file_name,
                "mime_type": mime_type,
                "category": category,
            }
        )


# ===================
# NETWORK / SOURCE API
# ===================

class TransientNetworkError(ExternalServiceError):
    """Timeout, connection reset or 5xx. Retried with backoff."""

    def __init__(self, service: str, message: str, details: Optional[dict] = None):
        super().__init__(
            service=service,
            message=message,
            details=details,
            code="TRANSIENT_NETWORK_ERROR"
        )


class QuotaExceededError(ExternalServiceError):
    """Server-side quota hit (429 / rateLimitExceeded / THROTTLED)."""

    def __init__(
        self,
        service: str,
        message: str,
        retry_after: Optional[float] = None
    ):
        self.retry_after = retry_after
        super().__init__(
            service=service,
            message=message,
            details={"retry_after": retry_after},
            code="QUOTA_EXCEEDED"
        )


class RateLimitExceededError(AppError):
    """Local rate limiter could not admit a call within its attempt budget."""

    def __init__(self, attempts: int, operation: Optional[str] = None):
        super().__init__(
            code="RATE_LIMIT_EXCEEDED",
            message=f"Rate limit exceeded after {attempts} attempts",
            status_code=429,
            details={"attempts": attempts, "operation": operation}
        )


class AuthExpiredError(ExternalServiceError):
    """Access credential rejected by the source API (401)."""

    def __init__(self, service: str, message: str = "Access token expired or invalid", details: Optional[dict] = None):
        super().__init__(
            service=service,
            message=message,
            details=details,
            code="AUTH_EXPIRED"
        )
        self.status_code = 401


# ===================
# DESTINATION
# ===================

class StagedUploadError(ExternalServiceError):
    """Staging target could not be created or the bytes upload failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="shopify",
            message=message,
            details=details,
            code="STAGED_UPLOAD_FAILED"
        )


class AssetCommitError(ExternalServiceError):
    """Staged resource could not be committed into a permanent asset."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="shopify",
            message=message,
            details=details,
            code="ASSET_COMMIT_FAILED"
        )


class MetadataUpdateError(ExternalServiceError):
    """Product attribute write was rejected."""

    def __init__(self, product_id: str, message: str, details: Optional[dict] = None):
        super().__init__(
            service="shopify",
            message=message,
            details={"product_id": product_id, **(details or {})},
            code="METADATA_UPDATE_FAILED"
        )


# ===================
# RUN-LEVEL ERRORS
# ===================

class CatalogFetchError(ExternalServiceError):
    """First catalog page could not be fetched. Fatal for the run."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            service="shopify",
            message=f"Catalog fetch failed: {message}",
            details=details,
            code="CATALOG_FETCH_FAILED"
        )


class FolderLookupError(ExternalServiceError):
    """Source folder could not be resolved or listed. Fatal for the run."""

    def __init__(self, folder_id: str, message: str):
        super().__init__(
            service="google_drive",
            message=f"Folder lookup failed: {message}",
            details={"folder_id": folder_id},
            code="FOLDER_LOOKUP_FAILED"
        )


class UploadJobNotFoundError(NotFoundError):
    """Upload job not found."""

    def __init__(self, job_id: str):
        super().__init__(
            resource="Upload job",
            identifier=job_id,
            code="UPLOAD_JOB_NOT_FOUND"
        )
