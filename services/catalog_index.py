"""
In-memory catalog snapshot used by the matcher.

Built once per run from the destination store's paginated product
query, then shared read-only by every pipeline invocation.
"""

from collections import defaultdict
from typing import Optional, Protocol, Sequence

import structlog

from models.catalog import CatalogPage, CatalogSummary, Variant
from services.name_matcher import get_color_code, get_product_part
from exceptions import AppError, CatalogFetchError

logger = structlog.get_logger(__name__)

# Constants
MAX_PAGE_SIZE = 250


class VariantPageFetcher(Protocol):
    def fetch_variants(
        self,
        query: str,
        page_size: int,
        after: Optional[str] = None,
    ) -> CatalogPage: ...


class CatalogIndex:
    """
    Read-only view over a list of variants.

    Groupings (keys uppercase):
        by_color: color code -> variants, catalog order preserved
        by_product_base: SKU-base minus last segment -> variants
    """

    def __init__(
        self,
        variants: Sequence[Variant],
        total_products: int = 0,
        partial: bool = False,
    ):
        self._variants: tuple[Variant, ...] = tuple(v for v in variants if v.sku and v.sku.strip())
        self.total_products = total_products
        self.partial = partial

        by_color: dict[str, list[Variant]] = defaultdict(list)
        by_product_base: dict[str, list[Variant]] = defaultdict(list)
        for variant in self._variants:
            color_code = get_color_code(variant.sku)
            if color_code:
                by_color[color_code].append(variant)
            product_base = get_product_part(variant.sku).upper()
            if product_base:
                by_product_base[product_base].append(variant)

        self._by_color = {k: tuple(v) for k, v in by_color.items()}
        self._by_product_base = {k: tuple(v) for k, v in by_product_base.items()}

    @property
    def variants(self) -> tuple[Variant, ...]:
        return self._variants

    def by_color(self, color_code: str) -> tuple[Variant, ...]:
        return self._by_color.get((color_code or "").upper(), ())

    def by_product_base(self, product_base: str) -> tuple[Variant, ...]:
        return self._by_product_base.get((product_base or "").upper(), ())

    @property
    def color_codes(self) -> list[str]:
        return sorted(self._by_color)

    def __len__(self) -> int:
        return len(self._variants)

    def summary(self) -> CatalogSummary:
        return CatalogSummary(
            total_products=self.total_products,
            products_with_skus=len({v.product_id for v in self._variants}),
            total_variants=len(self._variants),
            color_codes=len(self._by_color),
            partial=self.partial,
            sample_skus=tuple(v.sku for v in self._variants[:5]),
        )

    # ===================
    # CONSTRUCTION
    # ===================

    @classmethod
    def build(
        cls,
        fetcher: VariantPageFetcher,
        query: str,
        max_records: int = 250,
        page_size: int = 50,
    ) -> "CatalogIndex":
        """
        Fetch the catalog page by page and index it.

        Keeps only variants with a non-empty SKU and a color option.
        A failure on the first page is fatal; a failure on a later
        page keeps what was fetched and marks the index partial.

        Args:
            fetcher: Destination client exposing fetch_variants()
            query: Product search filter for the target category
            max_records: Maximum products to fetch
            page_size: Products per request (capped at 250)

        Raises:
            CatalogFetchError: If the first page fails
        """
        page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        logger.info("building_catalog_index", query=query, max_records=max_records, page_size=page_size)

        variants: list[Variant] = []
        fetched_products = 0
        pages = 0
        partial = False
        cursor: Optional[str] = None
        has_next_page = True

        while has_next_page and fetched_products < max_records:
            first = min(page_size, max_records - fetched_products)
            try:
                page = fetcher.fetch_variants(query, first, cursor)
            except AppError as e:
                if pages == 0:
                    logger.error("catalog_fetch_failed", error=e.message, code=e.code)
                    raise CatalogFetchError(e.message, details={"code": e.code}) from e
                logger.warning(
                    "catalog_page_failed",
                    page=pages + 1,
                    fetched_products=fetched_products,
                    error=e.message,
                )
                partial = True
                break

            pages += 1
            fetched_products += page.product_count
            variants.extend(
                v for v in page.variants
                if v.sku and v.sku.strip() and v.color is not None
            )
            has_next_page = page.has_next_page and page.end_cursor is not None
            cursor = page.end_cursor

            logger.debug(
                "catalog_page_fetched",
                page=pages,
                products=page.product_count,
                total_products=fetched_products,
                has_more=has_next_page,
            )

            if page.product_count == 0:
                break

        index = cls(variants, total_products=fetched_products, partial=partial)
        logger.info(
            "catalog_index_built",
            products=fetched_products,
            variants=len(index),
            color_codes=len(index.color_codes),
            partial=partial,
        )
        return index
