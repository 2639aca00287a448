"""Category tree resolution with caching."""

import logging
from collections import deque
from collections.abc import Callable, Iterable
from typing import Any

from storefront.config import CATEGORY_CACHE_TTL
from storefront.db.catalog_repository import catalog_repository
from storefront.db.redis_client import redis_client

logger = logging.getLogger(__name__)

CATEGORIES_TAG = "categories"


def walk_descendants(root_id: str, fetch_children: Callable[[list[str]], Iterable[str]]) -> list[str]:
    """
    Breadth-first walk of a category tree, one batched children lookup per level.

    Args:
        root_id: Category to start from (included in the result)
        fetch_children: Returns the ids of the direct children of a batch of parents

    Returns:
        Ids of the root and all its descendants, root first, each id once
    """
    seen = {root_id}
    ordered = [root_id]
    frontier = deque([root_id])

    while frontier:
        level = list(frontier)
        frontier.clear()
        for child_id in fetch_children(level):
            # Parent links are not validated on write, so tolerate cycles
            if child_id in seen:
                continue
            seen.add(child_id)
            ordered.append(child_id)
            frontier.append(child_id)

    return ordered


class CategoryTreeService:
    def __init__(self, repository=None, cache=None):
        self.repository = repository if repository is not None else catalog_repository
        self.cache = cache if cache is not None else redis_client
        self.cache_ttl = CATEGORY_CACHE_TTL

    def find_category(self, identifier: str) -> dict[str, Any] | None:
        if not identifier:
            return None
        return self.repository.find_category(identifier)

    def resolve_descendant_ids(self, identifier: str | None) -> list[str]:
        """
        Resolve a category slug or id to its own id plus every nested child id.

        Unknown categories resolve to an empty list.
        """
        if not identifier:
            return []

        cache_key = f"category_tree:{identifier}"
        cached = self.cache.get_json(cache_key)
        if cached is not None:
            return cached

        category = self.find_category(identifier)
        if category is None:
            logger.info(f"Category not found: {identifier}")
            ids = []
        else:
            ids = walk_descendants(str(category["_id"]), self._child_ids)

        self.cache.set_json(cache_key, ids, self.cache_ttl, tags=[CATEGORIES_TAG])
        return ids

    def _child_ids(self, parent_ids: list[str]) -> list[str]:
        return [str(child["_id"]) for child in self.repository.find_child_categories(parent_ids)]

    def get_children(self, category_id: str) -> list[dict[str, Any]]:
        """Direct children of a category."""
        return self.repository.find_child_categories([category_id])
