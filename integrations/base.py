"""
Collaborator interfaces consumed by the transfer pipeline.

Google Drive and Shopify implement these; tests use in-memory fakes.
"""

from typing import Optional, Protocol

from models.catalog import CatalogPage
from models.credentials import TokenGrant
from models.transfer import (
    AssetCandidate,
    AssetCategory,
    CommittedAsset,
    FileMetadata,
    StagedTarget,
)


class SourceStorageClient(Protocol):
    """Where assets come from. Every call takes the current access token."""

    def list_files(self, folder_id: str, access_token: str, mime_filter: str) -> list[AssetCandidate]: ...

    def get_folder_name(self, folder_id: str, access_token: str) -> str: ...

    def get_metadata(self, file_id: str, access_token: str) -> FileMetadata: ...

    def download_bytes(self, file_id: str, access_token: str) -> bytes: ...

    def refresh_credential(self, refresh_token: str) -> TokenGrant: ...


class DestinationCatalogClient(Protocol):
    """Where assets go, and where the catalog comes from."""

    def fetch_variants(self, query: str, page_size: int, after: Optional[str] = None) -> CatalogPage: ...

    def create_staged_upload(self, filename: str, mime_type: str, size: int) -> StagedTarget: ...

    def upload_to_staged_target(self, target: StagedTarget, filename: str, mime_type: str, data: bytes) -> None: ...

    def commit_staged_asset(self, resource_ref: str, alt_text: str, content_type: str = "FILE") -> CommittedAsset: ...

    def poll_asset_until_ready(self, asset_id: str) -> Optional[str]: ...

    def set_product_attribute(self, product_id: str, key: str, value: str, category: AssetCategory) -> None: ...
