"""
Content-addressed item storage.

Each item is one file directly under the store root. The file holds
three codec fields (group, name, value) and is named by the SHA-1 hex
digest of exactly those bytes, so identical content always maps to the
same filename and a changed value always gets a new one.

Layout:
    ~/.snipvault.cache/
    ├── 3f786850e387550fdab836ed7e6dc881de23001b   # group\\0name\\0value\\0
    ├── 89e6c98d92887913cadf06b2adb97f26cde4849b
    ├── .index                                     # derived, never synced
    └── .gitignore                                 # only when synced
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from .codec import FieldReader, encode_fields
from .config import VaultConfig
from .errors import CorruptEntry, InvalidField, StoreIOError
from .index import ItemIndex
from .models import Item

logger = logging.getLogger("snipvault.store")

ITEM_FIELDS = 3


def content_address(data: bytes) -> str:
    """Filename for an encoded item: hex SHA-1 of its bytes."""
    return hashlib.sha1(data).hexdigest()


class ItemStore:
    """Reads, writes and deletes item files under the store root.

    Every mutation that goes through ``create`` leaves the index
    rebuilt. Callers deleting items directly with ``delete`` must call
    ``index.rebuild()`` themselves (ItemIndex.remove_* do).
    """

    def __init__(self, config: VaultConfig):
        self.config = config
        self.root = config.store_root
        self.index = ItemIndex(self)

    def ensure_root(self) -> Path:
        """Create the store root if missing.

        Raises:
            StoreIOError: If the path exists but is not a directory.
        """
        if self.root.exists():
            if not self.root.is_dir():
                raise StoreIOError(
                    f"{self.root} already exists and is not a directory.",
                    path=self.root,
                )
            return self.root
        try:
            self.root.mkdir(parents=True)
        except OSError as exc:
            raise StoreIOError(f"Could not create {self.root}: {exc}", path=self.root) from exc
        logger.info("Created store at %s", self.root)
        return self.root

    def path_for(self, filename: str) -> Path:
        return self.root / filename

    def create(self, group: str, name: str, value: str) -> Item:
        """Store a value under (group, name), replacing any previous one.

        Args:
            group: Group the item belongs to. Kept as given.
            name: Item name. Lower-cased before storing.
            value: The secret itself. May be empty or span several lines.

        Returns:
            The stored Item, including its content-addressed filename.
        """
        if not group or not name:
            raise InvalidField("Group and item names must not be empty")

        name = name.lower()
        data = encode_fields(group, name, value)
        filename = content_address(data)

        self.ensure_root()
        self.index.rebuild()

        existing = self.index.find_by_group_and_name(group, name)
        if existing is not None:
            logger.info("Replacing %s/%s (%s)", group, name, existing.filename)
            self.delete(existing)

        path = self.path_for(filename)
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as exc:
            raise StoreIOError(f"Could not write {path}: {exc}", path=path) from exc

        self.index.rebuild()
        logger.info("Stored %s/%s as %s", group, name, filename)
        return Item(group=group, name=name, value=value, filename=filename)

    def read(self, filename: str) -> Item:
        """Load a full item from its file.

        Raises:
            CorruptEntry: If the file holds fewer than three fields.
            StoreIOError: If the file cannot be read.
        """
        path = self.path_for(filename)
        try:
            reader = FieldReader.open(path)
        except OSError as exc:
            raise StoreIOError(f"Could not read {path}: {exc}", path=path) from exc

        fields = reader.read_record(ITEM_FIELDS)
        if fields is None:
            raise CorruptEntry(
                f"Invalid or corrupt entry at {path}: file is empty",
                path=path,
                expected=ITEM_FIELDS,
                actual=0,
            )
        group, name, value = fields
        return Item(group=group, name=name, value=value, filename=path.name)

    def fill_value(self, item: Item) -> Item:
        """Load the value of an index entry in place."""
        item.value = self.read(item.filename).value
        return item

    def delete(self, item: Item) -> bool:
        """Remove an item's file. Missing files are not an error.

        Returns:
            True if a file was removed.
        """
        path = self.path_for(item.filename)
        if not path.exists():
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StoreIOError(f"Could not remove {path}: {exc}", path=path) from exc
        logger.info("Removed %s/%s (%s)", item.group, item.name, item.filename)
        return True
