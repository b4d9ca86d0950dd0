"""
Catalog API routes.

Read-only view of what the matcher would see for a run.
"""

from typing import Callable

from fastapi import APIRouter, Depends
import structlog

from config import get_settings
from config.settings import Settings
from integrations.shopify import ShopifyClient
from models.catalog import CatalogSummary
from services.catalog_index import CatalogIndex, VariantPageFetcher
from services.destination_gateway import create_destination_gateway
from routes.uploads import handle_error

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["Catalog"])


def get_catalog_client_factory() -> Callable[[Settings], VariantPageFetcher]:
    """Dependency: builds the destination client from settings."""
    return ShopifyClient.from_settings


@router.get("/skus", response_model=CatalogSummary)
def get_catalog_skus(
    settings: Settings = Depends(get_settings),
    client_factory: Callable[[Settings], VariantPageFetcher] = Depends(get_catalog_client_factory),
):
    """
    Build the catalog index and report its counts.

    Raises:
        503: Shopify not configured or first catalog page failed
    """
    try:
        client = create_destination_gateway(client_factory(settings), settings)
        index = CatalogIndex.build(
            client,
            query=settings.catalog_query,
            max_records=settings.catalog_max_products,
            page_size=settings.catalog_page_size,
        )
        return index.summary()
    except Exception as e:
        return handle_error(e)
