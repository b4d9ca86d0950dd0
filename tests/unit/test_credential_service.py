"""
Unit tests for automatic access-token refresh.
"""

import pytest
from unittest.mock import MagicMock

from models.credentials import Credentials, TokenGrant
from services.credential_service import apply_grant, with_auto_refresh
from exceptions import AuthExpiredError, ExternalServiceError


@pytest.fixture
def refresher():
    """Refresher that always issues token-2."""
    return MagicMock(return_value=TokenGrant(access_token="token-2", expires_in=3600))


class TestWithAutoRefresh:
    """Tests for with_auto_refresh()"""

    def test_success_without_refresh(self, credentials, refresher):
        result = with_auto_refresh(credentials, lambda token: f"ok:{token}", refresher)

        assert result == "ok:token-1"
        refresher.assert_not_called()

    def test_single_auth_failure_refreshes_once(self, credentials, refresher):
        """Should refresh once and retry with the new token."""
        # Arrange
        seen = []

        def operation(token):
            seen.append(token)
            if token == "token-1":
                raise AuthExpiredError("google_drive")
            return "ok"

        # Act
        result = with_auto_refresh(credentials, operation, refresher)

        # Assert
        assert result == "ok"
        assert seen == ["token-1", "token-2"]
        refresher.assert_called_once_with("refresh-1")
        assert credentials.access_token == "token-2"
        assert credentials.expires_at is not None

    def test_second_auth_failure_propagates(self, credentials, refresher):
        """Should surface the second failure without refreshing again."""
        # Arrange
        operation = MagicMock(side_effect=AuthExpiredError("google_drive"))

        # Act & Assert
        with pytest.raises(AuthExpiredError):
            with_auto_refresh(credentials, operation, refresher)

        assert operation.call_count == 2
        assert refresher.call_count == 1

    def test_no_refresh_token_reraises(self, refresher):
        credentials = Credentials(access_token="token-1")
        operation = MagicMock(side_effect=AuthExpiredError("google_drive"))

        with pytest.raises(AuthExpiredError):
            with_auto_refresh(credentials, operation, refresher)

        assert operation.call_count == 1
        refresher.assert_not_called()

    def test_refresh_failure_raises_auth_expired(self, credentials):
        """Should report a failed refresh as an auth failure."""
        # Arrange
        refresher = MagicMock(side_effect=ExternalServiceError("google_drive", "invalid_grant"))
        operation = MagicMock(side_effect=AuthExpiredError("google_drive"))

        # Act & Assert
        with pytest.raises(AuthExpiredError) as exc_info:
            with_auto_refresh(credentials, operation, refresher)

        assert exc_info.value.message == "Authentication failed and token refresh failed"
        assert exc_info.value.details["refresh_error"] == "invalid_grant"
        assert operation.call_count == 1

    def test_other_errors_are_not_refreshed(self, credentials, refresher):
        operation = MagicMock(side_effect=ExternalServiceError("google_drive", "404"))

        with pytest.raises(ExternalServiceError):
            with_auto_refresh(credentials, operation, refresher)

        refresher.assert_not_called()


class TestApplyGrant:
    """Tests for apply_grant()"""

    def test_grant_without_expiry_clears_expiry(self, credentials):
        apply_grant(credentials, TokenGrant(access_token="token-3"))

        assert credentials.access_token == "token-3"
        assert credentials.expires_at is None
