"""
Per-run record of which (product, color) pairs already received an asset.
"""

from collections import defaultdict

from models.transfer import AssetCategory


class DedupTracker:
    """
    Set of (product_id, color_code) keys, one namespace per asset category.

    Created empty for each run and only ever grows. Owned by the single
    orchestrator worker, so it carries no lock.
    """

    def __init__(self):
        self._keys: dict[AssetCategory, set[tuple[str, str]]] = defaultdict(set)

    @staticmethod
    def _key(product_id: str, color_code: str) -> tuple[str, str]:
        return product_id, color_code.upper()

    def contains(self, category: AssetCategory, product_id: str, color_code: str) -> bool:
        return self._key(product_id, color_code) in self._keys[category]

    def register(self, category: AssetCategory, product_id: str, color_code: str) -> None:
        self._keys[category].add(self._key(product_id, color_code))

    def count(self, category: AssetCategory) -> int:
        return len(self._keys[category])
