"""
Google Drive v3 REST client (source storage).

Thin HTTP wrapper: it maps responses onto the error taxonomy and leaves
rate limiting, refresh and retries to services.source_gateway.
"""

import email.utils
from datetime import datetime, timezone
from typing import Optional

import requests
import structlog

from models.credentials import TokenGrant
from models.transfer import AssetCandidate, FileMetadata
from exceptions import (
    AuthExpiredError,
    ExternalServiceError,
    QuotaExceededError,
    TransientNetworkError,
)

logger = structlog.get_logger(__name__)

SERVICE = "google_drive"

# 403 reasons Drive uses for quota rather than permission problems
RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"}

LIST_PAGE_SIZE = 1000


def parse_retry_after(value: Optional[str]) -> Optional[float]:
    """Retry-After header (seconds or HTTP date) -> seconds, or None."""
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = email.utils.parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


def _error_reason(response: requests.Response) -> tuple[Optional[str], str]:
    """(reason, message) from a Drive error body."""
    try:
        error = response.json().get("error", {})
    except ValueError:
        return None, response.text[:200]
    if not isinstance(error, dict):
        return None, str(error)
    errors = error.get("errors") or [{}]
    return errors[0].get("reason"), error.get("message", "")


def raise_for_drive_status(response: requests.Response, operation: str) -> None:
    """
    Translate a failed Drive response into an application error.

    Raises:
        AuthExpiredError: 401
        QuotaExceededError: 429, or 403 with a rate-limit reason
        TransientNetworkError: 5xx
        ExternalServiceError: anything else that is not 2xx
    """
    if response.ok:
        return

    status = response.status_code
    reason, message = _error_reason(response)
    details = {"status": status, "operation": operation, "reason": reason}

    if status == 401:
        raise AuthExpiredError(SERVICE, details=details)
    if status == 429 or (status == 403 and reason in RATE_LIMIT_REASONS):
        raise QuotaExceededError(
            SERVICE,
            message or "Drive quota exceeded",
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )
    if status >= 500:
        raise TransientNetworkError(SERVICE, f"Drive {operation} failed with {status}", details=details)
    raise ExternalServiceError(SERVICE, message or f"Drive {operation} failed with {status}", details=details)


class GoogleDriveClient:
    """
    Drive v3 operations used by the sync.

    Access tokens are passed per call so the caller owns refresh.
    """

    def __init__(
        self,
        api_url: str = "https://www.googleapis.com/drive/v3",
        token_url: str = "https://oauth2.googleapis.com/token",
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings) -> "GoogleDriveClient":
        return cls(
            api_url=settings.drive_api_url,
            token_url=settings.google_token_url,
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            timeout=settings.http_timeout_seconds,
        )

    # ===================
    # HTTP
    # ===================

    def _get(self, path: str, access_token: str, operation: str, **kwargs) -> requests.Response:
        url = f"{self.api_url}{path}"
        try:
            response = self.session.get(
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
                **kwargs
            )
        except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
            logger.warning("drive_request_failed", operation=operation, error=str(e))
            raise TransientNetworkError(SERVICE, f"Drive {operation} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error("drive_request_failed", operation=operation, error=str(e))
            raise ExternalServiceError(SERVICE, f"Drive {operation} failed: {e}") from e

        raise_for_drive_status(response, operation)
        return response

    # ===================
    # OPERATIONS
    # ===================

    def list_files(self, folder_id: str, access_token: str, mime_filter: str) -> list[AssetCandidate]:
        """
        List non-trashed files directly inside a folder.

        Args:
            folder_id: Drive folder ID
            access_token: OAuth access token
            mime_filter: Drive query fragment, e.g. "mimeType contains 'pdf'"
        """
        escaped = folder_id.replace("\\", "\\\\").replace("'", "\\'")
        query = f"'{escaped}' in parents and ({mime_filter}) and trashed=false"

        candidates: list[AssetCandidate] = []
        page_token: Optional[str] = None
        while True:
            params = {
                "q": query,
                "fields": "nextPageToken, files(id, name, mimeType, size)",
                "pageSize": LIST_PAGE_SIZE,
                "supportsAllDrives": "true",
                "includeItemsFromAllDrives": "true",
            }
            if page_token:
                params["pageToken"] = page_token

            data = self._get("/files", access_token, "list_files", params=params).json()
            for item in data.get("files", []):
                candidates.append(AssetCandidate(
                    source_file_id=item["id"],
                    file_name=item.get("name"),
                    mime_type=item.get("mimeType"),
                    size_bytes=int(item.get("size") or 0),
                ))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.debug("drive_files_listed", folder_id=folder_id, count=len(candidates))
        return candidates

    def get_folder_name(self, folder_id: str, access_token: str) -> str:
        data = self._get(
            f"/files/{folder_id}",
            access_token,
            "get_folder_name",
            params={"fields": "id, name", "supportsAllDrives": "true"},
        ).json()
        return data.get("name") or folder_id

    def get_metadata(self, file_id: str, access_token: str) -> FileMetadata:
        data = self._get(
            f"/files/{file_id}",
            access_token,
            "get_metadata",
            params={"fields": "id, name, mimeType, size", "supportsAllDrives": "true"},
        ).json()
        return FileMetadata(
            id=data.get("id", file_id),
            name=data.get("name") or "",
            mime_type=data.get("mimeType"),
            size_bytes=int(data.get("size") or 0),
        )

    def download_bytes(self, file_id: str, access_token: str) -> bytes:
        response = self._get(
            f"/files/{file_id}",
            access_token,
            "download_bytes",
            params={"alt": "media", "supportsAllDrives": "true"},
        )
        return response.content

    def refresh_credential(self, refresh_token: str) -> TokenGrant:
        """
        Exchange a refresh token for a new access token.

        Raises:
            ExternalServiceError: If OAuth is not configured or Google rejects the exchange
        """
        if not self.client_id or not self.client_secret:
            raise ExternalServiceError(SERVICE, "Google OAuth credentials not configured")

        try:
            response = self.session.post(
                self.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": refresh_token,
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise ExternalServiceError(SERVICE, f"Token refresh failed: {e}") from e

        if not response.ok:
            _, message = _error_reason(response)
            raise ExternalServiceError(
                SERVICE,
                f"Token refresh rejected: {message or response.status_code}",
                details={"status": response.status_code},
            )

        data = response.json()
        if not data.get("access_token"):
            raise ExternalServiceError(SERVICE, "No access token returned from refresh")

        return TokenGrant(
            access_token=data["access_token"],
            expires_in=data.get("expires_in"),
        )
