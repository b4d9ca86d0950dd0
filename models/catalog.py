"""
Catalog schemas: variants fetched from the destination store.
"""

from pydantic import Field
from typing import Optional

from models.base import FrozenSchema


class Variant(FrozenSchema):
    """
    A sellable variant with its parent product context.

    Immutable once fetched. Only variants with a SKU and a color
    option end up in a CatalogIndex.
    """

    id: str = Field(..., description="Variant GID")
    sku: str = Field(..., description="Variant SKU, e.g. WP-SCALLOPS-SKY-2748")
    title: str = Field("", description="Variant title")
    price: Optional[str] = Field(None, description="Price as returned by the store")
    inventory_quantity: Optional[int] = Field(None, description="Units on hand")
    color: Optional[str] = Field(None, description="Value of the color option")
    product_id: str = Field(..., description="Parent product GID")
    product_handle: str = Field("", description="Parent product handle")
    product_title: str = Field("", description="Parent product title")
    product_type: str = Field("", description="Parent product type")
    tags: frozenset[str] = Field(default_factory=frozenset, description="Parent product tags")


class CatalogPage(FrozenSchema):
    """One page of the paginated catalog query."""

    variants: tuple[Variant, ...] = ()
    product_count: int = 0
    has_next_page: bool = False
    end_cursor: Optional[str] = None


class CatalogSummary(FrozenSchema):
    """Counts reported after an index build."""

    total_products: int
    products_with_skus: int
    total_variants: int
    color_codes: int
    partial: bool = False
    sample_skus: tuple[str, ...] = ()
