"""
Filename-to-catalog matching.

Maps an asset filename such as "WP-SCALLOPS-SKY_1.png" or
"WP-SCAL-DUS_spec.pdf" to exactly one catalog variant.

Recognized shape:  PREFIX-PRODUCT-COLOR[-SIZE]<suffix>.<ext>
    suffix: _1, _2 (any _<n>), _spec, -spec, _specs, -specs (any case)

Tiers, first hit wins:
    1. Exact SKU-base: the variant SKU cut at its third dash equals the
       filename base (case-insensitive, dashes significant, so WP-SCAL-DUS
       never matches WP-SCALLOPS-DUS).
    2. Product-base: the filename's product part equals, or is a dash-bounded
       prefix of / prefixed by, the variant's product part.
    3. Color-first flexible: among variants with the same color code, product
       parts equal or contained (separators ignored), or at least half of the
       dash tokens shared.

Within a tier, catalog order decides. Matching never touches the network.
"""

import re
from typing import Iterable, Optional

import structlog

from models.catalog import Variant
from models.matching import (
    AssetRole,
    MatchOutcome,
    MatchResult,
    MatchTier,
    NoMatch,
    ParsedFilename,
    INVALID_FILENAME_REASON,
    NO_SKU_MATCH_REASON,
)

logger = structlog.get_logger(__name__)

# Constants
COLOR_CODE_LENGTH = 3
SKU_BASE_SEGMENTS = 3
WORD_MATCH_THRESHOLD = 0.5

_EXTENSION = re.compile(r"\.[^./\\]+$")
_ROLE_SUFFIX = re.compile(r"(?P<spec>[-_]specs?)$|_(?P<index>\d+)$", re.IGNORECASE)
_SEPARATORS = re.compile(r"[-_\s]")


# ===================
# SKU HELPERS
# ===================

def extract_sku_base(sku: Optional[str]) -> str:
    """
    Cut a SKU at its third dash.

    "WP-SCALLOPS-SKY-2748" -> "WP-SCALLOPS-SKY"
    "WP-SCALLOPS-SKY"      -> "WP-SCALLOPS-SKY" (fewer than 4 parts: unchanged)
    """
    if not sku:
        return ""
    parts = sku.split("-")
    if len(parts) <= SKU_BASE_SEGMENTS:
        return sku
    return "-".join(parts[:SKU_BASE_SEGMENTS])


def get_color_code(sku: Optional[str]) -> str:
    """
    Color code (third dash segment, uppercased) of a SKU.

    "WP-SCALLOPS-SKY-2748" -> "SKY"; "" when the SKU has fewer than 3 parts.
    """
    if not sku:
        return ""
    parts = sku.split("-")
    if len(parts) < 3:
        return ""
    return parts[2].upper()


def get_product_part(sku: Optional[str]) -> str:
    """SKU-base without its last segment: "WP-SCAL-BLU-2424" -> "WP-SCAL"."""
    base = extract_sku_base(sku)
    if not base:
        return ""
    return "-".join(base.split("-")[:-1])


def _strip_separators(value: str) -> str:
    return _SEPARATORS.sub("", value.lower())


# ===================
# FILENAME PARSING
# ===================

def detect_asset_role(file_name: str) -> AssetRole:
    """Role implied by the suffix before the extension."""
    stem = _EXTENSION.sub("", file_name or "")
    found = _ROLE_SUFFIX.search(stem)
    if not found:
        return AssetRole.UNSPECIFIED
    if found.group("spec"):
        return AssetRole.SPEC
    if found.group("index") == "1":
        return AssetRole.PRIMARY
    return AssetRole.SECONDARY


def parse_filename(file_name: Optional[str]) -> Optional[ParsedFilename]:
    """
    Split a filename into base name, color code and product base.

    Returns:
        ParsedFilename, or None if the name does not have the
        PREFIX-PRODUCT-COLOR[-SIZE] shape with a 3-character color.
    """
    if not file_name or not file_name.strip():
        return None

    stem = _EXTENSION.sub("", file_name.strip())
    base_name = _ROLE_SUFFIX.sub("", stem)

    parts = base_name.split("-")
    if len(parts) < 3 or any(not part for part in parts):
        return None

    color_code = parts[2]
    if len(color_code) != COLOR_CODE_LENGTH:
        return None

    return ParsedFilename(
        file_name=file_name,
        base_name=base_name,
        color_code=color_code.upper(),
        product_base="-".join(parts[:-1]),
        role=detect_asset_role(file_name),
    )


# ===================
# TIER PREDICATES
# ===================

def _exact_sku_base(parsed: ParsedFilename, variant: Variant) -> bool:
    return extract_sku_base(variant.sku).upper() == parsed.base_name.upper()


def _product_base(parsed: ParsedFilename, variant: Variant) -> bool:
    candidate = get_product_part(variant.sku).upper()
    if not candidate:
        return False
    product_base = parsed.product_base.upper()
    base_name = parsed.base_name.upper()

    if product_base == candidate:
        return True
    return base_name.startswith(candidate + "-") or candidate.startswith(product_base + "-")


def word_overlap_ratio(left: str, right: str) -> float:
    """Shared dash tokens divided by the larger token count."""
    left_words = [w for w in left.lower().split("-") if w]
    right_words = [w for w in right.lower().split("-") if w]
    if not left_words or not right_words:
        return 0.0
    shared = [w for w in left_words if w in right_words]
    return len(shared) / max(len(left_words), len(right_words))


def _color_first_flexible(parsed: ParsedFilename, variant: Variant) -> bool:
    if get_color_code(variant.sku) != parsed.color_code:
        return False

    candidate = get_product_part(variant.sku)
    candidate_clean = _strip_separators(candidate)
    product_clean = _strip_separators(parsed.product_base)
    if not candidate_clean or not product_clean:
        return False

    if candidate_clean == product_clean:
        return True
    if candidate_clean in product_clean or product_clean in candidate_clean:
        return True
    return word_overlap_ratio(parsed.product_base, candidate) >= WORD_MATCH_THRESHOLD


def _first(variants: Iterable[Variant], predicate, parsed: ParsedFilename) -> Optional[Variant]:
    for variant in variants:
        if predicate(parsed, variant):
            return variant
    return None


# ===================
# MATCHER
# ===================

class NameMatcher:
    """
    Resolve filenames against a CatalogIndex.

    Stateless; one instance can serve every file of a run.
    """

    def match(self, file_name: Optional[str], catalog_index) -> MatchOutcome:
        """
        Match a filename to a catalog variant.

        Args:
            file_name: Source filename, extension included
            catalog_index: CatalogIndex to search

        Returns:
            MatchResult on the first satisfied tier, otherwise NoMatch
        """
        parsed = parse_filename(file_name)
        if parsed is None:
            logger.debug("filename_invalid", file_name=file_name)
            return NoMatch(reason=INVALID_FILENAME_REASON)

        # Tier 1 only needs the variants sharing this product base
        variant = _first(
            catalog_index.by_product_base(parsed.product_base),
            _exact_sku_base,
            parsed,
        )
        if variant is not None:
            return self._matched(variant, MatchTier.EXACT_SKU_BASE, parsed)

        variant = _first(catalog_index.variants, _product_base, parsed)
        if variant is not None:
            return self._matched(variant, MatchTier.PRODUCT_BASE, parsed)

        variant = _first(
            catalog_index.by_color(parsed.color_code),
            _color_first_flexible,
            parsed,
        )
        if variant is not None:
            return self._matched(variant, MatchTier.COLOR_FIRST_FLEXIBLE, parsed)

        logger.info(
            "filename_not_matched",
            file_name=file_name,
            searched_color=parsed.color_code,
            searched_product=parsed.product_base,
            variants_with_color=len(catalog_index.by_color(parsed.color_code)),
        )
        return NoMatch(
            reason=NO_SKU_MATCH_REASON,
            searched_color=parsed.color_code,
            searched_product=parsed.product_base,
        )

    def _matched(self, variant: Variant, tier: MatchTier, parsed: ParsedFilename) -> MatchResult:
        logger.debug(
            "filename_matched",
            file_name=parsed.file_name,
            sku=variant.sku,
            tier=tier.name,
        )
        return MatchResult(variant=variant, tier=tier, parsed=parsed)


def match(file_name: Optional[str], catalog_index) -> MatchOutcome:
    """Module-level convenience for NameMatcher().match()."""
    return NameMatcher().match(file_name, catalog_index)
