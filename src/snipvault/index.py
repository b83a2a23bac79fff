"""
The index — a derived summary of every live item.

.index is a flat run of (group, name, filename) codec records, one per
item file, in directory-listing order. It lets listing and lookup skip
opening every item file. It is a cache: any mutation must be followed
by ``rebuild()``, and it is never committed to git.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from .codec import FieldReader, encode_fields
from .errors import CorruptEntry, StoreIOError
from .models import Item

if TYPE_CHECKING:
    from .store import ItemStore

logger = logging.getLogger("snipvault.index")

INDEX_FILENAME = ".index"
IGNORE_FILENAME = ".gitignore"
RESERVED_FILENAMES = frozenset({INDEX_FILENAME, IGNORE_FILENAME})

INDEX_FIELDS = 3


class ItemIndex:
    """Builds and queries the .index file of a store."""

    def __init__(self, store: "ItemStore"):
        self.store = store

    @property
    def path(self) -> Path:
        return self.store.config.index_path

    def _item_filenames(self) -> list[str]:
        root = self.store.ensure_root()
        try:
            with os.scandir(root) as entries:
                return [
                    entry.name
                    for entry in entries
                    if entry.is_file(follow_symlinks=False)
                    and entry.name not in RESERVED_FILENAMES
                ]
        except OSError as exc:
            raise StoreIOError(f"Could not list {root}: {exc}", path=root) from exc

    def rebuild(self) -> int:
        """Rescan the store root and rewrite the index from scratch.

        Returns:
            Number of items indexed.
        """
        items = [self.store.read(filename) for filename in self._item_filenames()]
        data = b"".join(
            encode_fields(item.group, item.name, item.filename) for item in items
        )
        try:
            with open(self.path, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise StoreIOError(f"Could not write {self.path}: {exc}", path=self.path) from exc

        logger.info("Indexed %d item(s) in %s", len(items), self.store.root)
        return len(items)

    def load_all(self) -> list[Item]:
        """Read every index entry. Values are left empty.

        A store without an index yields an empty list.
        """
        if not self.path.exists():
            return []
        try:
            reader = FieldReader.open(self.path)
        except OSError as exc:
            raise StoreIOError(f"Could not read {self.path}: {exc}", path=self.path) from exc

        items = []
        while True:
            record = reader.read_record(INDEX_FIELDS)
            if record is None:
                break
            group, name, filename = record
            if not filename or "/" in filename or filename in RESERVED_FILENAMES:
                raise CorruptEntry(
                    f"Invalid or corrupt entry at {self.path}: bad filename {filename!r}",
                    path=self.path,
                    filename=filename,
                )
            items.append(Item(group=group, name=name, filename=filename))
        return items

    def find_by_group_and_name(self, group: str, name: str) -> Optional[Item]:
        """Exact lookup. The caller lower-cases ``name``."""
        for item in self.load_all():
            if item.group == group and item.name == name:
                return item
        return None

    def group_all(self, group: str) -> list[Item]:
        return [item for item in self.load_all() if item.group == group]

    def remove_item(self, group: str, name: str) -> Optional[Item]:
        """Delete one item and rebuild.

        Returns:
            The removed entry, or None if nothing matched.
        """
        item = self.find_by_group_and_name(group, name)
        if item is None:
            return None
        self.store.delete(item)
        self.rebuild()
        return item

    def remove_group(self, group: str) -> int:
        """Delete every item of a group and rebuild once.

        Returns:
            Number of items removed. Zero means the group did not exist.
        """
        items = self.group_all(group)
        if not items:
            return 0
        for item in items:
            self.store.delete(item)
        self.rebuild()
        logger.info("Removed group %s (%d item(s))", group, len(items))
        return len(items)


def group_items(items: list[Item]) -> list[tuple[str, list[Item]]]:
    """Partition items by group for display.

    Groups come out sorted by name, and items inside each group are
    sorted by item name.
    """
    buckets: dict[str, list[Item]] = {}
    for item in items:
        buckets.setdefault(item.group, []).append(item)
    return [
        (group, sorted(buckets[group], key=lambda i: i.name))
        for group in sorted(buckets)
    ]
