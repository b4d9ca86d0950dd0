"""
Unit tests for SourceGateway.

Tests cover transient retry, quota waits, token refresh and admission.
"""

import pytest

from models.transfer import AssetCategory
from services.rate_limiter import SlidingWindowRateLimiter
from services.source_gateway import SourceGateway
from exceptions import (
    AuthExpiredError,
    ExternalServiceError,
    FolderLookupError,
    QuotaExceededError,
    RateLimitExceededError,
    TransientNetworkError,
)


@pytest.fixture
def drive_file(source_client):
    source_client.add_file("f1", "WP-SCAL-DUS_spec.pdf", "application/pdf", b"%PDF", folder_id="folder-1")
    return "f1"


class TestTransientRetry:
    """Tests for retrying TransientNetworkError"""

    def test_retries_until_success(self, gateway, source_client, drive_file, clock):
        """Should retry transient failures with backoff."""
        # Arrange
        source_client.fail_next(
            "get_metadata",
            TransientNetworkError("google_drive", "timeout"),
            TransientNetworkError("google_drive", "reset"),
        )

        # Act
        metadata = gateway.get_metadata(drive_file)

        # Assert
        assert metadata.name == "WP-SCAL-DUS_spec.pdf"
        assert len(source_client.calls_to("get_metadata")) == 3
        assert len(clock.sleeps) == 2
        assert all(0 <= s <= 0.05 for s in clock.sleeps)

    def test_gives_up_after_max_attempts(self, gateway, source_client, drive_file):
        source_client.fail_next(
            "download_bytes",
            *[TransientNetworkError("google_drive", "timeout") for _ in range(3)]
        )

        with pytest.raises(TransientNetworkError):
            gateway.download_bytes(drive_file)

        assert len(source_client.calls_to("download_bytes")) == 3

    def test_permanent_errors_are_not_retried(self, gateway, source_client, drive_file):
        source_client.fail_next("download_bytes", ExternalServiceError("google_drive", "forbidden"))

        with pytest.raises(ExternalServiceError):
            gateway.download_bytes(drive_file)

        assert len(source_client.calls_to("download_bytes")) == 1


class TestQuotaWait:
    """Tests for server-side quota handling"""

    def test_waits_retry_after_then_succeeds(self, gateway, source_client, drive_file, clock, limiter):
        """Should sleep for Retry-After and try again."""
        # Arrange
        source_client.fail_next("get_metadata", QuotaExceededError("google_drive", "slow down", retry_after=2))

        # Act
        gateway.get_metadata(drive_file)

        # Assert
        assert clock.sleeps == [2.0]
        assert limiter.rejection_count == 1

    def test_exhaustion_raises_rate_limit_exceeded(self, source_client, credentials, clock, drive_file):
        """Should give up after the limiter's attempt budget."""
        # Arrange
        limiter = SlidingWindowRateLimiter(
            limit=100,
            window_ms=60000,
            max_attempts=2,
            clock=clock.now_ms,
            sleep=clock.sleep,
        )
        gateway = SourceGateway(source_client, credentials, limiter, sleep=clock.sleep)
        source_client.fail_next(
            "get_metadata",
            QuotaExceededError("google_drive", "slow down"),
            QuotaExceededError("google_drive", "slow down"),
        )

        # Act & Assert
        with pytest.raises(RateLimitExceededError):
            gateway.get_metadata(drive_file)

        assert len(source_client.calls_to("get_metadata")) == 2


class TestRefreshAndAdmission:
    """Tests for auth refresh and limiter bookkeeping"""

    def test_expired_token_is_refreshed(self, gateway, source_client, credentials, drive_file):
        """Should refresh once and keep using the new token."""
        # Arrange
        source_client.expired_tokens.add("token-1")

        # Act
        gateway.get_metadata(drive_file)
        gateway.download_bytes(drive_file)

        # Assert
        assert credentials.access_token == "token-2"
        assert len(source_client.calls_to("refresh_credential")) == 1
        assert source_client.calls_to("download_bytes")[0][2] == "token-2"

    def test_refreshes_at_most_once_per_call(self, gateway, source_client, drive_file):
        """Should treat an auth failure after a refresh as fatal, even across retries."""
        # Arrange
        source_client.fail_next(
            "get_metadata",
            AuthExpiredError("google_drive"),
            TransientNetworkError("google_drive", "reset"),
            AuthExpiredError("google_drive"),
        )

        # Act & Assert
        with pytest.raises(AuthExpiredError):
            gateway.get_metadata(drive_file)

        assert len(source_client.calls_to("refresh_credential")) == 1
        assert len(source_client.calls_to("get_metadata")) == 3

    def test_auth_failure_after_quota_wait_refreshes_once(self, gateway, source_client, drive_file, clock):
        source_client.expired_tokens.add("token-1")
        source_client.fail_next("download_bytes", QuotaExceededError("google_drive", "slow down", retry_after=1))

        gateway.download_bytes(drive_file)

        assert len(source_client.calls_to("refresh_credential")) == 1
        assert [c[2] for c in source_client.calls_to("download_bytes")] == ["token-1", "token-1", "token-2"]

    def test_successful_calls_are_recorded(self, gateway, limiter, drive_file):
        gateway.get_metadata(drive_file)
        gateway.download_bytes(drive_file)

        assert limiter.execution_count == 2
        assert limiter.remaining_in_window() == 98


class TestFolderOperations:
    """Tests for list_files() and get_folder_name()"""

    def test_list_files_passes_category_filter(self, gateway, source_client, drive_file):
        files = gateway.list_files("folder-1", AssetCategory.SPEC)

        assert [f.source_file_id for f in files] == ["f1"]
        assert source_client.calls_to("list_files")[0][3] == "mimeType contains 'pdf'"

    def test_listing_failure_becomes_folder_lookup_error(self, gateway, source_client):
        source_client.fail_next("list_files", ExternalServiceError("google_drive", "File not found"))

        with pytest.raises(FolderLookupError) as exc_info:
            gateway.list_files("missing", AssetCategory.IMAGE)

        assert exc_info.value.details["folder_id"] == "missing"

    def test_folder_name(self, gateway, drive_file):
        assert gateway.get_folder_name("folder-1") == "Folder folder-1"
