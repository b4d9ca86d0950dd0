"""
Per-file transfer from source storage into the destination catalog.

    FETCHED -> VALIDATED -> MATCHED -> SKIPPED
                                    -> DOWNLOADING -> STAGED -> COMMITTED
                                       -> METADATA_UPDATED -> DONE
    any step -> ERRORED

Every visited state is recorded on the TransferResult. Skips and
failures are raised inside the pipeline and turned into results at
process(), so one bad file never stops a run.
"""

from typing import Optional

import structlog

from integrations.base import DestinationCatalogClient
from models.catalog import Variant
from models.matching import INVALID_FILENAME_REASON, MatchResult, MatchTier, NoMatch
from models.transfer import (
    AssetCandidate,
    AssetCategory,
    CommittedAsset,
    TransferResult,
    TransferState,
    TransferStatus,
)
from services.catalog_index import CatalogIndex
from services.dedup_tracker import DedupTracker
from services.name_matcher import NameMatcher
from services.source_gateway import SourceGateway
from exceptions import (
    AlreadyProcessedError,
    AppError,
    InvalidFilenameError,
    NoCatalogMatchError,
    TransferSkipped,
    WrongAssetTypeError,
)

logger = structlog.get_logger(__name__)

DRY_RUN_REASON = "dry run"


class _Trace:
    """Mutable scratchpad for one file; frozen into a TransferResult at the end."""

    def __init__(self, candidate: AssetCandidate):
        self.source_file_id = candidate.source_file_id
        self.file_name: Optional[str] = candidate.file_name
        self.states: list[TransferState] = []
        self.variant: Optional[Variant] = None
        self.tier: Optional[MatchTier] = None
        self.asset_id: Optional[str] = None
        self.url: Optional[str] = None

    def visit(self, state: TransferState) -> None:
        self.states.append(state)

    def result(
        self,
        status: TransferStatus,
        reason: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> TransferResult:
        return TransferResult(
            source_file_id=self.source_file_id,
            file_name=self.file_name,
            status=status,
            destination_asset_id=self.asset_id,
            destination_url=self.url,
            matched_variant=self.variant,
            match_tier=self.tier,
            reason=reason,
            error_code=error_code,
            states=tuple(self.states),
        )


class AssetTransferPipeline:
    """
    Moves one file at a time for a single run and category.

    The catalog index is shared read-only; the dedup tracker is owned
    by the run and only grows after a successful metadata update (or a
    dry-run match).
    """

    def __init__(
        self,
        gateway: SourceGateway,
        destination: DestinationCatalogClient,
        catalog_index: CatalogIndex,
        dedup: DedupTracker,
        category: AssetCategory,
        matcher: Optional[NameMatcher] = None,
        dry_run: bool = False,
    ):
        self.gateway = gateway
        self.destination = destination
        self.catalog_index = catalog_index
        self.dedup = dedup
        self.category = category
        self.matcher = matcher or NameMatcher()
        self.dry_run = dry_run

    def process(self, candidate: AssetCandidate) -> TransferResult:
        """
        Run one candidate through the pipeline.

        Never raises: skips become status=skipped, failures status=error.
        """
        trace = _Trace(candidate)
        try:
            return self._transfer(candidate, trace)
        except TransferSkipped as e:
            trace.visit(TransferState.SKIPPED)
            logger.info(
                "transfer_skipped",
                file_id=trace.source_file_id,
                file_name=trace.file_name,
                reason=e.message,
            )
            return trace.result(TransferStatus.SKIPPED, reason=e.message)
        except AppError as e:
            trace.visit(TransferState.ERRORED)
            logger.error(
                "transfer_failed",
                file_id=trace.source_file_id,
                file_name=trace.file_name,
                code=e.code,
                error=e.message,
            )
            return trace.result(TransferStatus.ERROR, reason=e.message, error_code=e.code)
        except Exception as e:
            trace.visit(TransferState.ERRORED)
            logger.error(
                "transfer_failed_unexpected",
                file_id=trace.source_file_id,
                file_name=trace.file_name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return trace.result(TransferStatus.ERROR, reason=str(e), error_code="INTERNAL_ERROR")

    # ===================
    # STEPS
    # ===================

    def _transfer(self, candidate: AssetCandidate, trace: _Trace) -> TransferResult:
        file_name, mime_type = self._resolve_metadata(candidate, trace)
        trace.visit(TransferState.FETCHED)

        if not self.category.accepts_mime_type(mime_type):
            raise WrongAssetTypeError(file_name, mime_type, self.category.value)
        trace.visit(TransferState.VALIDATED)

        match = self._match(file_name)
        trace.variant = match.variant
        trace.tier = match.tier
        trace.visit(TransferState.MATCHED)

        product_id = match.variant.product_id
        color_code = match.color_code
        if self.dedup.contains(self.category, product_id, color_code):
            raise AlreadyProcessedError(product_id, color_code, self.category.value)

        if self.dry_run:
            self.dedup.register(self.category, product_id, color_code)
            trace.visit(TransferState.DONE)
            logger.info(
                "transfer_dry_run",
                file_name=file_name,
                sku=match.variant.sku,
                tier=match.tier.name,
            )
            return trace.result(TransferStatus.SUCCESS, reason=DRY_RUN_REASON)

        trace.visit(TransferState.DOWNLOADING)
        data = self.gateway.download_bytes(candidate.source_file_id)

        target = self.destination.create_staged_upload(file_name, mime_type, len(data))
        self.destination.upload_to_staged_target(target, file_name, mime_type, data)
        trace.visit(TransferState.STAGED)

        asset = self.destination.commit_staged_asset(
            target.resource_ref,
            alt_text=match.parsed.base_name,
            content_type=self.category.destination_content_type,
        )
        trace.asset_id = asset.asset_id
        trace.url = asset.public_url
        trace.visit(TransferState.COMMITTED)
        logger.info(
            "transfer_committed",
            file_name=file_name,
            asset_id=asset.asset_id,
            status=asset.status,
        )

        reference = self._attachment_reference(asset, trace)
        self.destination.set_product_attribute(product_id, color_code, reference, self.category)
        trace.visit(TransferState.METADATA_UPDATED)
        self.dedup.register(self.category, product_id, color_code)

        trace.visit(TransferState.DONE)
        logger.info(
            "transfer_completed",
            file_name=file_name,
            sku=match.variant.sku,
            tier=match.tier.name,
            asset_id=asset.asset_id,
        )
        return trace.result(TransferStatus.SUCCESS)

    def _resolve_metadata(self, candidate: AssetCandidate, trace: _Trace) -> tuple[str, Optional[str]]:
        """Use listing data when complete, otherwise ask the source."""
        if candidate.file_name and candidate.mime_type:
            return candidate.file_name, candidate.mime_type

        metadata = self.gateway.get_metadata(candidate.source_file_id)
        trace.file_name = metadata.name
        return metadata.name, metadata.mime_type

    def _match(self, file_name: str) -> MatchResult:
        outcome = self.matcher.match(file_name, self.catalog_index)
        if isinstance(outcome, NoMatch):
            if outcome.reason == INVALID_FILENAME_REASON:
                raise InvalidFilenameError(file_name)
            raise NoCatalogMatchError(file_name, outcome.searched_color, outcome.searched_product)
        return outcome

    def _attachment_reference(self, asset: CommittedAsset, trace: _Trace) -> str:
        """
        Value written under the color key.

        Spec sheets reference the file id. Images reference the public
        URL, waiting for processing if needed, and fall back to the id.
        """
        if self.category is AssetCategory.SPEC:
            return asset.asset_id

        url = asset.public_url if asset.is_ready else None
        if not url:
            url = self.destination.poll_asset_until_ready(asset.asset_id)
        if url:
            trace.url = url
            return url
        logger.warning("asset_url_unavailable", asset_id=asset.asset_id)
        return asset.asset_id
