"""
Run-level upload orchestration.

Builds the catalog index, feeds candidates through the transfer
pipeline one by one and tallies a RunSummary.
"""

import threading
import time
import uuid
from typing import Callable, Iterable, Optional

import structlog

from config.settings import Settings
from integrations.base import DestinationCatalogClient
from integrations.shopify import ShopifyClient
from models.credentials import Credentials
from models.transfer import AssetCandidate, AssetCategory, RunSummary, TransferResult
from services.catalog_index import CatalogIndex
from services.dedup_tracker import DedupTracker
from services.name_matcher import NameMatcher
from services.destination_gateway import create_destination_gateway
from services.source_gateway import SourceGateway, create_source_gateway
from services.transfer_pipeline import AssetTransferPipeline

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[int, int, TransferResult], None]


class UploadOrchestrator:
    """
    Sequential driver for one sync run.

    Collaborators are injected; use create_upload_orchestrator() to
    wire the production clients from settings.
    """

    def __init__(
        self,
        gateway: SourceGateway,
        destination: DestinationCatalogClient,
        catalog_query: str,
        catalog_max_products: int = 250,
        catalog_page_size: int = 50,
        matcher: Optional[NameMatcher] = None,
    ):
        self.gateway = gateway
        self.destination = destination
        self.catalog_query = catalog_query
        self.catalog_max_products = catalog_max_products
        self.catalog_page_size = catalog_page_size
        self.matcher = matcher or NameMatcher()

    # ===================
    # ENTRY POINTS
    # ===================

    def build_catalog_index(self) -> CatalogIndex:
        """
        Raises:
            CatalogFetchError: If the first catalog page fails
        """
        return CatalogIndex.build(
            self.destination,
            query=self.catalog_query,
            max_records=self.catalog_max_products,
            page_size=self.catalog_page_size,
        )

    def run_folder(
        self,
        folder_id: str,
        category: AssetCategory,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RunSummary:
        """
        Sync every file of the category found in a source folder.

        Raises:
            FolderLookupError: If the folder cannot be read or listed
            CatalogFetchError: If the catalog cannot be fetched
        """
        folder_name = self.gateway.get_folder_name(folder_id)
        candidates = self.gateway.list_files(folder_id, category)
        logger.info(
            "folder_run_starting",
            folder_id=folder_id,
            folder_name=folder_name,
            category=category.value,
            files=len(candidates),
        )

        catalog_index = self.build_catalog_index()
        return self.run(candidates, catalog_index, category, dry_run, cancel_event, on_progress)

    def run_file_ids(
        self,
        file_ids: Iterable[str],
        category: AssetCategory,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> RunSummary:
        """
        Sync an explicit list of source file ids.

        Name and mime type are looked up per file by the pipeline.

        Raises:
            CatalogFetchError: If the catalog cannot be fetched
        """
        candidates = [AssetCandidate(source_file_id=file_id) for file_id in file_ids]
        catalog_index = self.build_catalog_index()
        return self.run(candidates, catalog_index, category, dry_run, cancel_event, on_progress)

    def run(
        self,
        candidates: list[AssetCandidate],
        catalog_index: CatalogIndex,
        category: AssetCategory,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[ProgressCallback] = None,
        dedup: Optional[DedupTracker] = None,
    ) -> RunSummary:
        """
        Process candidates in order and summarize.

        Cancellation is checked before each file; a file already in
        flight always finishes.

        Args:
            candidates: Files to transfer
            catalog_index: Catalog snapshot for matching
            category: Asset category for the whole run
            dry_run: Match and dedup only, no writes
            cancel_event: Set to stop before the next file
            on_progress: Called as (processed, total, result) after each file
            dedup: Tracker to share across runs; a fresh one by default

        Returns:
            RunSummary with one result per processed file
        """
        run_id = uuid.uuid4().hex
        total = len(candidates)
        pipeline = AssetTransferPipeline(
            gateway=self.gateway,
            destination=self.destination,
            catalog_index=catalog_index,
            dedup=dedup if dedup is not None else DedupTracker(),
            category=category,
            matcher=self.matcher,
            dry_run=dry_run,
        )

        logger.info(
            "upload_run_started",
            run_id=run_id,
            category=category.value,
            total=total,
            dry_run=dry_run,
            catalog_variants=len(catalog_index),
            catalog_partial=catalog_index.partial,
        )

        results: list[TransferResult] = []
        cancelled = False
        for candidate in candidates:
            if cancel_event is not None and cancel_event.is_set():
                cancelled = True
                logger.warning("upload_run_cancelled", run_id=run_id, processed=len(results), total=total)
                break

            result = pipeline.process(candidate)
            results.append(result)
            if on_progress is not None:
                on_progress(len(results), total, result)

        summary = RunSummary.from_results(
            run_id=run_id,
            category=category,
            total=total,
            results=results,
            cancelled=cancelled,
            dry_run=dry_run,
            catalog_partial=catalog_index.partial,
        )
        logger.info(
            "upload_run_finished",
            run_id=run_id,
            succeeded=summary.succeeded,
            failed=summary.failed,
            skipped=summary.skipped,
            cancelled=cancelled,
        )
        return summary


def create_upload_orchestrator(
    settings: Settings,
    credentials: Credentials,
    sleep: Callable[[float], None] = time.sleep,
) -> UploadOrchestrator:
    """
    Wire production clients for one run.

    The limiter and gateways are per run, so concurrent requests never
    share a rate window or a credential holder.

    Raises:
        ExternalServiceError: If Shopify is not configured
    """
    destination = create_destination_gateway(ShopifyClient.from_settings(settings), settings, sleep=sleep)
    return UploadOrchestrator(
        gateway=create_source_gateway(settings, credentials, sleep=sleep),
        destination=destination,
        catalog_query=settings.catalog_query,
        catalog_max_products=settings.catalog_max_products,
        catalog_page_size=settings.catalog_page_size,
    )
