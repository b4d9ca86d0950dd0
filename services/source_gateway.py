"""
Guarded access to the source storage API.

Every source call goes through four layers, outermost first:

    auto refresh      one token refresh per call; a second 401 is fatal
    transient retry   tenacity, random-exponential backoff, bounded attempts
    quota wait        server said "slow down": wait through the limiter and retry
    admission         sliding-window limiter slot before the request leaves
"""

import time
from typing import Callable, Optional, TypeVar

import structlog

from config.settings import Settings
from integrations.base import SourceStorageClient
from integrations.google_drive import GoogleDriveClient
from models.credentials import Credentials
from models.transfer import AssetCandidate, AssetCategory, FileMetadata
from services.credential_service import with_auto_refresh
from services.rate_limiter import SlidingWindowRateLimiter
from services.retry_policy import create_transient_retry
from exceptions import (
    AppError,
    FolderLookupError,
    QuotaExceededError,
    RateLimitExceededError,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class SourceGateway:
    """
    Rate-limited, self-refreshing facade over a SourceStorageClient.

    Holds the run's credentials and limiter; constructed per run and
    passed into the pipeline.
    """

    def __init__(
        self,
        client: SourceStorageClient,
        credentials: Credentials,
        limiter: SlidingWindowRateLimiter,
        retry_max_attempts: int = 4,
        retry_base_delay_seconds: float = 1.0,
        retry_max_delay_seconds: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.credentials = credentials
        self.limiter = limiter
        self.retry_max_attempts = retry_max_attempts
        self.retry_base_delay_seconds = retry_base_delay_seconds
        self.retry_max_delay_seconds = retry_max_delay_seconds
        self._sleep = sleep

    # ===================
    # CALL WRAPPING
    # ===================

    def call(self, operation: str, fn: Callable[[str], T]) -> T:
        """
        Execute fn(access_token) with refresh, retry, quota waits and admission.

        Refresh wraps the whole retry stack, so a call refreshes at most
        once no matter how many transient or quota retries it takes.

        Raises:
            TransientNetworkError: Retries exhausted
            RateLimitExceededError: Quota or local limiter never cleared
            AuthExpiredError: Token refresh did not help
        """
        return with_auto_refresh(
            self.credentials,
            lambda token: self._with_retry(operation, fn, token),
            self.client.refresh_credential,
        )

    def _with_retry(self, operation: str, fn: Callable[[str], T], token: str) -> T:
        retrying = create_transient_retry(
            max_attempts=self.retry_max_attempts,
            base_delay_seconds=self.retry_base_delay_seconds,
            max_delay_seconds=self.retry_max_delay_seconds,
            sleep=self._sleep,
        )
        for attempt in retrying:
            with attempt:
                return self._with_quota_wait(operation, fn, token)

    def _with_quota_wait(self, operation: str, fn: Callable[[str], T], token: str) -> T:
        for attempt in range(1, self.limiter.max_attempts + 1):
            try:
                return self._admitted(operation, fn, token)
            except QuotaExceededError as e:
                self.limiter.record_rejection()
                if attempt == self.limiter.max_attempts:
                    break
                wait_ms = self._quota_wait_ms(e.retry_after, attempt)
                logger.warning(
                    "source_quota_exceeded",
                    operation=operation,
                    attempt=attempt,
                    wait_ms=round(wait_ms),
                )
                self._sleep(wait_ms / 1000.0)

        raise RateLimitExceededError(self.limiter.max_attempts, operation)

    def _quota_wait_ms(self, retry_after: Optional[float], attempt: int) -> float:
        if retry_after is not None:
            wait_ms = retry_after * 1000.0
        else:
            wait_ms = max(self.limiter.ms_until_next_slot(), attempt * 1000.0)
        return min(wait_ms, self.limiter.max_wait_ms)

    def _admitted(self, operation: str, fn: Callable[[str], T], token: str) -> T:
        self.limiter.acquire(operation)
        result = fn(token)
        self.limiter.record_execution()
        return result

    # ===================
    # OPERATIONS
    # ===================

    def get_metadata(self, file_id: str) -> FileMetadata:
        return self.call(
            "get_metadata",
            lambda token: self.client.get_metadata(file_id, token),
        )

    def download_bytes(self, file_id: str) -> bytes:
        return self.call(
            "download_bytes",
            lambda token: self.client.download_bytes(file_id, token),
        )

    def get_folder_name(self, folder_id: str) -> str:
        """
        Resolve a folder's display name.

        Raises:
            FolderLookupError: If the folder cannot be read
        """
        try:
            return self.call(
                "get_folder_name",
                lambda token: self.client.get_folder_name(folder_id, token),
            )
        except AppError as e:
            logger.error("folder_lookup_failed", folder_id=folder_id, error=e.message)
            raise FolderLookupError(folder_id, e.message) from e

    def list_files(self, folder_id: str, category: AssetCategory) -> list[AssetCandidate]:
        """
        List the folder's files of the given category.

        Raises:
            FolderLookupError: If the listing fails
        """
        try:
            files = self.call(
                "list_files",
                lambda token: self.client.list_files(folder_id, token, category.drive_mime_filter),
            )
        except AppError as e:
            logger.error("folder_listing_failed", folder_id=folder_id, error=e.message)
            raise FolderLookupError(folder_id, e.message) from e

        logger.info("folder_listed", folder_id=folder_id, category=category.value, files=len(files))
        return files


def create_source_gateway(
    settings: Settings,
    credentials: Credentials,
    sleep: Callable[[float], None] = time.sleep,
) -> SourceGateway:
    """Wire a Drive-backed gateway with its own limiter for one run."""
    limiter = SlidingWindowRateLimiter(
        limit=settings.rate_limit_calls,
        window_ms=settings.rate_limit_window_ms,
        max_wait_ms=settings.rate_limit_max_wait_ms,
        max_attempts=settings.rate_limit_max_attempts,
        sleep=sleep,
    )
    return SourceGateway(
        client=GoogleDriveClient.from_settings(settings),
        credentials=credentials,
        limiter=limiter,
        retry_max_attempts=settings.retry_max_attempts,
        retry_base_delay_seconds=settings.retry_base_delay_seconds,
        retry_max_delay_seconds=settings.retry_max_delay_seconds,
        sleep=sleep,
    )
