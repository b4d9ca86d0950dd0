"""
Guarded access to the destination catalog API.

Same shape as the source gateway minus admission and refresh: the
destination token is static and the destination meters calls itself.

    transient retry   tenacity, random-exponential backoff, bounded attempts
    quota wait        throttled: wait Retry-After (or back off) and retry
"""

import time
from typing import Callable, Optional, TypeVar

import structlog

from config.settings import Settings
from integrations.base import DestinationCatalogClient
from models.catalog import CatalogPage
from models.transfer import AssetCategory, CommittedAsset, StagedTarget
from services.retry_policy import create_transient_retry
from exceptions import QuotaExceededError, RateLimitExceededError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class DestinationGateway:
    """
    Retrying facade over a DestinationCatalogClient.

    Exposes the client's interface, so the pipeline and the catalog
    index take either one.
    """

    def __init__(
        self,
        client: DestinationCatalogClient,
        retry_max_attempts: int = 4,
        retry_base_delay_seconds: float = 1.0,
        retry_max_delay_seconds: float = 10.0,
        quota_max_attempts: int = 5,
        quota_max_wait_ms: float = 30000.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.retry_max_attempts = retry_max_attempts
        self.retry_base_delay_seconds = retry_base_delay_seconds
        self.retry_max_delay_seconds = retry_max_delay_seconds
        self.quota_max_attempts = quota_max_attempts
        self.quota_max_wait_ms = quota_max_wait_ms
        self._sleep = sleep

    # ===================
    # CALL WRAPPING
    # ===================

    def call(self, operation: str, fn: Callable[[], T]) -> T:
        """
        Execute fn() with transient retry and quota waits.

        Raises:
            TransientNetworkError: Retries exhausted
            RateLimitExceededError: Still throttled after quota_max_attempts
        """
        retrying = create_transient_retry(
            max_attempts=self.retry_max_attempts,
            base_delay_seconds=self.retry_base_delay_seconds,
            max_delay_seconds=self.retry_max_delay_seconds,
            sleep=self._sleep,
        )
        for attempt in retrying:
            with attempt:
                return self._with_quota_wait(operation, fn)

    def _with_quota_wait(self, operation: str, fn: Callable[[], T]) -> T:
        for attempt in range(1, self.quota_max_attempts + 1):
            try:
                return fn()
            except QuotaExceededError as e:
                if attempt == self.quota_max_attempts:
                    break
                wait_ms = self._quota_wait_ms(e.retry_after, attempt)
                logger.warning(
                    "destination_quota_exceeded",
                    operation=operation,
                    attempt=attempt,
                    wait_ms=round(wait_ms),
                )
                self._sleep(wait_ms / 1000.0)

        raise RateLimitExceededError(self.quota_max_attempts, operation)

    def _quota_wait_ms(self, retry_after: Optional[float], attempt: int) -> float:
        # No Retry-After: 1s, 2s, 4s...
        if retry_after is not None:
            wait_ms = retry_after * 1000.0
        else:
            wait_ms = 1000.0 * 2 ** (attempt - 1)
        return min(wait_ms, self.quota_max_wait_ms)

    # ===================
    # OPERATIONS
    # ===================

    def fetch_variants(self, query: str, page_size: int, after: Optional[str] = None) -> CatalogPage:
        return self.call(
            "fetch_variants",
            lambda: self.client.fetch_variants(query, page_size, after),
        )

    def create_staged_upload(self, filename: str, mime_type: str, size: int) -> StagedTarget:
        return self.call(
            "create_staged_upload",
            lambda: self.client.create_staged_upload(filename, mime_type, size),
        )

    def upload_to_staged_target(self, target: StagedTarget, filename: str, mime_type: str, data: bytes) -> None:
        return self.call(
            "upload_to_staged_target",
            lambda: self.client.upload_to_staged_target(target, filename, mime_type, data),
        )

    def commit_staged_asset(self, resource_ref: str, alt_text: str, content_type: str = "FILE") -> CommittedAsset:
        return self.call(
            "commit_staged_asset",
            lambda: self.client.commit_staged_asset(resource_ref, alt_text, content_type),
        )

    def poll_asset_until_ready(self, asset_id: str) -> Optional[str]:
        return self.call(
            "poll_asset_until_ready",
            lambda: self.client.poll_asset_until_ready(asset_id),
        )

    def set_product_attribute(self, product_id: str, key: str, value: str, category: AssetCategory) -> None:
        """
        Retried as a whole (read, merge, write). Image entries are keyed
        so a repeat is harmless.
        """
        return self.call(
            "set_product_attribute",
            lambda: self.client.set_product_attribute(product_id, key, value, category),
        )


def create_destination_gateway(
    client: DestinationCatalogClient,
    settings: Settings,
    sleep: Callable[[float], None] = time.sleep,
) -> DestinationGateway:
    return DestinationGateway(
        client=client,
        retry_max_attempts=settings.retry_max_attempts,
        retry_base_delay_seconds=settings.retry_base_delay_seconds,
        retry_max_delay_seconds=settings.retry_max_delay_seconds,
        quota_max_attempts=settings.destination_quota_max_attempts,
        quota_max_wait_ms=settings.destination_quota_max_wait_ms,
        sleep=sleep,
    )
