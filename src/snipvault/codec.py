"""
Binary codec — NUL-terminated UTF-8 fields.

Both item files and the index are flat sequences of fields:

    <utf-8 bytes> 0x00 <utf-8 bytes> 0x00 ...

There is no length prefix and no escaping, so a field can never
contain a NUL byte. Item files hold one record (group, name, value);
the index holds one record (group, name, filename) per item.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .errors import CorruptEntry, InvalidField

TERMINATOR = b"\x00"


def encode_fields(*fields: str) -> bytes:
    """Encode fields as consecutive NUL-terminated UTF-8 strings.

    Raises:
        InvalidField: If a field contains a NUL character.
    """
    chunks = []
    for position, field in enumerate(fields):
        if "\x00" in field:
            raise InvalidField(
                "Fields may not contain NUL bytes",
                field_position=position,
            )
        chunks.append(field.encode("utf-8"))
        chunks.append(TERMINATOR)
    return b"".join(chunks)


class FieldReader:
    """Sequential decoder over an encoded buffer.

    Args:
        data: Raw bytes of an item file or of the index.
        path: Where the bytes came from, for error reporting.
    """

    def __init__(self, data: bytes, path: Path | str):
        self._data = data
        self._pos = 0
        self.path = Path(path)

    @classmethod
    def open(cls, path: Path) -> "FieldReader":
        """Read a whole file into a reader. The handle is closed on return."""
        with open(path, "rb") as f:
            return cls(f.read(), path)

    @property
    def exhausted(self) -> bool:
        return self._pos >= len(self._data)

    def read_field(self) -> Optional[str]:
        """Decode the next field.

        Returns:
            The decoded string, or None when the input is exhausted.

        Raises:
            CorruptEntry: If the field has no terminator or is not UTF-8.
        """
        if self.exhausted:
            return None

        end = self._data.find(TERMINATOR, self._pos)
        if end == -1:
            raise CorruptEntry(
                f"Invalid or corrupt entry at {self.path}",
                path=self.path,
                offset=self._pos,
            )

        raw = self._data[self._pos:end]
        offset = self._pos
        self._pos = end + 1
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise CorruptEntry(
                f"Invalid UTF-8 value at {self.path}",
                path=self.path,
                offset=offset,
            ) from exc

    def read_record(self, size: int) -> Optional[list[str]]:
        """Decode a record of ``size`` fields.

        Returns:
            The fields, or None if the input ended cleanly before the record.

        Raises:
            CorruptEntry: If the input ends partway through the record.
        """
        first = self.read_field()
        if first is None:
            return None

        fields = [first]
        while len(fields) < size:
            field = self.read_field()
            if field is None:
                raise CorruptEntry(
                    f"Invalid or corrupt entry at {self.path}: "
                    f"expected {size} fields, found {len(fields)}",
                    path=self.path,
                    expected=size,
                    actual=len(fields),
                )
            fields.append(field)
        return fields
