"""
Automatic access-token refresh for source API calls.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, TypeVar

import structlog

from models.credentials import Credentials, TokenGrant
from exceptions import AppError, AuthExpiredError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def with_auto_refresh(
    credentials: Credentials,
    operation: Callable[[str], T],
    refresher: Callable[[str], TokenGrant],
) -> T:
    """
    Run an operation, refreshing the access token once on an auth failure.

    At most two attempts: the initial call and one retry after a refresh.
    The new token is written back to `credentials` so later calls reuse it.

    Args:
        credentials: In-flight credential holder (mutated on refresh)
        operation: Callable taking the current access token
        refresher: Exchanges a refresh token for a TokenGrant

    Returns:
        Whatever operation returns

    Raises:
        AuthExpiredError: If there is no refresh token, the refresh fails,
            or the retried call is rejected again
    """
    try:
        return operation(credentials.access_token)
    except AuthExpiredError as first_error:
        if not credentials.can_refresh:
            logger.warning("auth_expired_no_refresh_token")
            raise

        logger.info("refreshing_access_token")
        try:
            grant = refresher(credentials.refresh_token)
        except AppError as refresh_error:
            logger.error("access_token_refresh_failed", error=refresh_error.message)
            raise AuthExpiredError(
                service=first_error.details.get("service", "google_drive"),
                message="Authentication failed and token refresh failed",
                details={"refresh_error": refresh_error.message},
            ) from refresh_error

        apply_grant(credentials, grant)
        logger.info("access_token_refreshed", expires_in=grant.expires_in)

    # Second failure propagates as-is
    return operation(credentials.access_token)


def apply_grant(credentials: Credentials, grant: TokenGrant) -> None:
    """Write a refreshed token into the holder."""
    credentials.access_token = grant.access_token
    if grant.expires_in:
        credentials.expires_at = datetime.now(timezone.utc) + timedelta(seconds=grant.expires_in)
    else:
        credentials.expires_at = None
