"""
Business logic services.

Each service handles one part of the sync: matching, catalog indexing,
rate limiting, source access, per-file transfer and run orchestration.
"""

from services.name_matcher import NameMatcher, match, parse_filename, extract_sku_base
from services.catalog_index import CatalogIndex
from services.dedup_tracker import DedupTracker
from services.rate_limiter import SlidingWindowRateLimiter, Granted, Deferred
from services.credential_service import with_auto_refresh
from services.source_gateway import SourceGateway, create_source_gateway
from services.destination_gateway import DestinationGateway, create_destination_gateway
from services.transfer_pipeline import AssetTransferPipeline
from services.upload_orchestrator import UploadOrchestrator, create_upload_orchestrator
from services.upload_job_service import UploadJobService, get_upload_job_service

__all__ = [
    "NameMatcher",
    "match",
    "parse_filename",
    "extract_sku_base",
    "CatalogIndex",
    "DedupTracker",
    "SlidingWindowRateLimiter",
    "Granted",
    "Deferred",
    "with_auto_refresh",
    "SourceGateway",
    "create_source_gateway",
    "DestinationGateway",
    "create_destination_gateway",
    "AssetTransferPipeline",
    "UploadOrchestrator",
    "create_upload_orchestrator",
    "UploadJobService",
    "get_upload_job_service",
]
