"""
Drive API routes.

Lets an operator check what a folder holds before starting a run.
"""

from typing import Callable, Optional

from fastapi import APIRouter, Depends, Header, Query
import structlog

from config import get_settings
from config.settings import Settings
from models.credentials import Credentials
from models.transfer import AssetCategory
from models.upload import FolderFileCount
from services.source_gateway import SourceGateway, create_source_gateway
from routes.uploads import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/drive", tags=["Drive"])

GatewayFactory = Callable[[Settings, Credentials], SourceGateway]


def get_source_gateway_factory() -> GatewayFactory:
    """Dependency: builds a fresh gateway per request."""
    return create_source_gateway


@router.get("/folders/{folder_id}/count", response_model=FolderFileCount)
def count_folder_files(
    folder_id: str,
    category: AssetCategory = Query(AssetCategory.IMAGE, description="image or spec"),
    access_token: str = Header(..., alias="X-Drive-Access-Token"),
    refresh_token: Optional[str] = Header(None, alias="X-Drive-Refresh-Token"),
    settings: Settings = Depends(get_settings),
    factory: GatewayFactory = Depends(get_source_gateway_factory),
):
    """
    Count the images or PDFs directly inside a folder.

    Raises:
        422: Missing access token header
        503: Folder cannot be read or listed
    """
    try:
        gateway = factory(settings, Credentials(access_token=access_token, refresh_token=refresh_token))
        folder_name = gateway.get_folder_name(folder_id)
        files = gateway.list_files(folder_id, category)
        return FolderFileCount(
            folder_id=folder_id,
            folder_name=folder_name,
            category=category,
            count=len(files),
            total_bytes=sum(f.size_bytes for f in files),
        )
    except Exception as e:
        return handle_error(e)
