"""
Unit tests for GoogleDriveClient.

HTTP is replaced by a mocked requests session.
"""

import pytest
import requests
from unittest.mock import MagicMock

from integrations.google_drive import GoogleDriveClient, parse_retry_after
from exceptions import (
    AuthExpiredError,
    ExternalServiceError,
    QuotaExceededError,
    TransientNetworkError,
)


def _response(status=200, body=None, headers=None, content=b""):
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.json.return_value = body if body is not None else {}
    response.headers = headers or {}
    response.content = content
    response.text = ""
    return response


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def drive(session):
    return GoogleDriveClient(client_id="cid", client_secret="secret", session=session)


class TestErrorMapping:
    """Tests for Drive status -> error translation"""

    def test_401_is_auth_expired(self, drive, session):
        session.get.return_value = _response(401)

        with pytest.raises(AuthExpiredError):
            drive.get_metadata("f1", "token")

    def test_403_rate_limit_reason_is_quota(self, drive, session):
        """Should treat a 403 with userRateLimitExceeded as quota, not permission."""
        # Arrange
        session.get.return_value = _response(
            403,
            {"error": {"errors": [{"reason": "userRateLimitExceeded"}], "message": "slow down"}},
            headers={"Retry-After": "7"},
        )

        # Act & Assert
        with pytest.raises(QuotaExceededError) as exc_info:
            drive.download_bytes("f1", "token")

        assert exc_info.value.retry_after == 7.0

    def test_403_permission_is_not_quota(self, drive, session):
        session.get.return_value = _response(
            403,
            {"error": {"errors": [{"reason": "insufficientFilePermissions"}], "message": "no access"}},
        )

        with pytest.raises(ExternalServiceError) as exc_info:
            drive.download_bytes("f1", "token")

        assert not isinstance(exc_info.value, QuotaExceededError)

    def test_5xx_is_transient(self, drive, session):
        session.get.return_value = _response(503)

        with pytest.raises(TransientNetworkError):
            drive.get_metadata("f1", "token")

    def test_timeout_is_transient(self, drive, session):
        session.get.side_effect = requests.exceptions.Timeout("read timed out")

        with pytest.raises(TransientNetworkError):
            drive.get_metadata("f1", "token")


class TestOperations:
    """Tests for list_files/get_metadata/download_bytes/refresh_credential"""

    def test_list_files_follows_pages(self, drive, session):
        """Should keep requesting until nextPageToken is absent."""
        # Arrange
        session.get.side_effect = [
            _response(200, {"files": [{"id": "a", "name": "A.png", "mimeType": "image/png"}], "nextPageToken": "p2"}),
            _response(200, {"files": [{"id": "b", "name": "B.png", "mimeType": "image/png", "size": "12"}]}),
        ]

        # Act
        files = drive.list_files("folder-1", "token", "mimeType contains 'image/'")

        # Assert
        assert [f.source_file_id for f in files] == ["a", "b"]
        assert files[1].size_bytes == 12
        second_params = session.get.call_args_list[1].kwargs["params"]
        assert second_params["pageToken"] == "p2"
        assert "'folder-1' in parents" in second_params["q"]

    def test_list_files_escapes_folder_id(self, drive, session):
        session.get.return_value = _response(200, {"files": []})

        drive.list_files("it's", "token", "mimeType contains 'pdf'")

        assert "'it\\'s' in parents" in session.get.call_args.kwargs["params"]["q"]

    def test_download_uses_alt_media_and_bearer(self, drive, session):
        session.get.return_value = _response(200, content=b"%PDF")

        data = drive.download_bytes("f1", "token-1")

        assert data == b"%PDF"
        kwargs = session.get.call_args.kwargs
        assert kwargs["params"]["alt"] == "media"
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"

    def test_refresh_credential(self, drive, session):
        session.post.return_value = _response(200, {"access_token": "new", "expires_in": 3599})

        grant = drive.refresh_credential("refresh-1")

        assert grant.access_token == "new"
        assert grant.expires_in == 3599
        assert session.post.call_args.kwargs["data"]["grant_type"] == "refresh_token"

    def test_refresh_rejected(self, drive, session):
        session.post.return_value = _response(400, {"error": "invalid_grant"})

        with pytest.raises(ExternalServiceError) as exc_info:
            drive.refresh_credential("refresh-1")

        assert "invalid_grant" in exc_info.value.message

    def test_refresh_without_oauth_config(self, session):
        drive = GoogleDriveClient(session=session)

        with pytest.raises(ExternalServiceError):
            drive.refresh_credential("refresh-1")

        session.post.assert_not_called()


class TestParseRetryAfter:
    def test_seconds(self):
        assert parse_retry_after("3") == 3.0

    def test_missing_or_garbage(self):
        assert parse_retry_after(None) is None
        assert parse_retry_after("soon") is None

    def test_past_http_date_is_zero(self):
        assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
