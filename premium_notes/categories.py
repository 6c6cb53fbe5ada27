"""
Category manager: fixed defaults merged with user-defined categories.
"""

from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence

from .cache import LocalCache
from .connectivity import ConnectivityMonitor, requires_online
from .exceptions import AuthenticationError, ValidationError
from .logging import get_logger
from .remote import RemoteClient, parse_row
from .schemas import Category


logger = get_logger(__name__)

DEFAULT_CATEGORIES: tuple[str, ...] = ("General", "Work", "Device Repair", "Football", "Personal")

Confirm = Callable[[str], bool]


def merge_categories(defaults: Iterable[str], remote: Iterable[str]) -> List[str]:
    """Defaults first, then remote names, each name once, order preserved."""
    merged: List[str] = []
    seen = set()
    for name in list(defaults) + list(remote):
        if name not in seen:
            seen.add(name)
            merged.append(name)
    return merged


def is_default_category(name: str) -> bool:
    return name in DEFAULT_CATEGORIES


class CategoryManager:
    def __init__(
        self,
        remote: RemoteClient,
        cache: LocalCache,
        connectivity: ConnectivityMonitor,
        user_id: Callable[[], Optional[str]],
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.connectivity = connectivity
        self.user_id = user_id

    def fetch(self) -> Optional[List[str]]:
        """
        Return the merged category list, or None when offline.

        A successful fetch overwrites the category cache slot.
        """
        if not self.connectivity.is_online or self.user_id() is None:
            return None
        rows = self.remote.select(
            "categories",
            columns="name",
            filters={"user_id": self.user_id()},
            order=[("name", False)],
        )
        merged = merge_categories(DEFAULT_CATEGORIES, (parse_row(Category, row).name for row in rows))
        self.cache.write_categories(merged)
        logger.info("Categories fetched", count=len(merged))
        return merged

    @requires_online("Offline: Cannot add categories.")
    def add(self, name: str, existing: Sequence[str]) -> Optional[List[str]]:
        name = name.strip()
        if not name:
            raise ValidationError("Category name cannot be empty.")
        if name in existing:
            raise ValidationError(f'Category "{name}" already exists.')
        user_id = self.user_id()
        if user_id is None:
            raise AuthenticationError()
        self.remote.insert("categories", [{"name": name, "user_id": user_id}])
        logger.info("Category added", category=name)
        return self.fetch()

    def delete(self, name: str, confirm: Confirm) -> Optional[List[str]]:
        """
        Delete a user-defined category.

        Defaults are refused before the connectivity check so the answer is
        the same online and offline.
        """
        if is_default_category(name):
            raise ValidationError("Default categories cannot be deleted.")
        return self._delete_custom(name, confirm)

    @requires_online("Offline: Cannot delete categories.")
    def _delete_custom(self, name: str, confirm: Confirm) -> Optional[List[str]]:
        if not confirm(f'Delete category "{name}"?'):
            return None
        user_id = self.user_id()
        if user_id is None:
            raise AuthenticationError()
        self.remote.delete("categories", filters={"name": name, "user_id": user_id})
        logger.info("Category deleted", category=name)
        return self.fetch()


__all__ = [
    "DEFAULT_CATEGORIES",
    "CategoryManager",
    "merge_categories",
    "is_default_category",
]
