"""
Filename matching results.
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

from models.catalog import Variant


class MatchTier(IntEnum):
    """
    Matching tiers in precedence order.

    Lower value wins; the ordering is total and never randomized.
    """
    EXACT_SKU_BASE = 1
    PRODUCT_BASE = 2
    COLOR_FIRST_FLEXIBLE = 3


class MatchConfidence(str, Enum):
    EXACT = "exact"
    FLEXIBLE = "flexible"


class AssetRole(str, Enum):
    """What a file is for, from its filename suffix."""
    PRIMARY = "primary"      # _1
    SECONDARY = "secondary"  # _2, _3, ...
    SPEC = "spec"            # _spec, -spec, _specs
    UNSPECIFIED = "unspecified"


@dataclass(frozen=True)
class ParsedFilename:
    """Pieces extracted from a well-formed asset filename."""
    file_name: str
    base_name: str
    color_code: str
    product_base: str
    role: AssetRole = AssetRole.UNSPECIFIED


@dataclass(frozen=True)
class MatchResult:
    """A filename resolved to exactly one variant."""
    variant: Variant
    tier: MatchTier
    parsed: ParsedFilename

    @property
    def confidence(self) -> MatchConfidence:
        if self.tier == MatchTier.EXACT_SKU_BASE:
            return MatchConfidence.EXACT
        return MatchConfidence.FLEXIBLE

    @property
    def color_code(self) -> str:
        return self.parsed.color_code


@dataclass(frozen=True)
class NoMatch:
    """Matching failed; reason is safe to show to operators."""
    reason: str
    searched_color: Optional[str] = None
    searched_product: Optional[str] = None


INVALID_FILENAME_REASON = "invalid filename format"
NO_SKU_MATCH_REASON = "no SKU match"

MatchOutcome = Union[MatchResult, NoMatch]
