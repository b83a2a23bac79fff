"""
Fuzzy name lookup over the index.

Used when only an item name is given: the entry whose name is closest
by Levenshtein distance wins, as long as it is within MAX_DISTANCE.
This is a linear scan, fine for the tens-to-hundreds of items a
personal store holds.
"""

from __future__ import annotations

from typing import Optional

from .index import ItemIndex
from .models import Item

MAX_DISTANCE = 2


def distance(a: str, b: str) -> int:
    """Levenshtein distance between two strings, by code point.

    Single rolling row, O(len(a) * len(b)) time and O(min(len)) space.
    """
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # inner loop runs over the shorter string
    if len(b) > len(a):
        a, b = b, a

    row = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        diagonal = row[0]
        row[0] = i
        for j, cb in enumerate(b, start=1):
            above = row[j]
            row[j] = min(
                above + 1,
                row[j - 1] + 1,
                diagonal + (ca != cb),
            )
            diagonal = above
    return row[-1]


def find_by_name(index: ItemIndex, name: str, max_distance: int = MAX_DISTANCE) -> Optional[Item]:
    """Return the index entry whose name is closest to ``name``.

    Among equally close entries the first in index order wins; index
    order follows directory listing order, which is not guaranteed to be
    stable. Returns None for an empty index or when the best match is
    further than ``max_distance`` edits away.
    """
    best: Optional[Item] = None
    best_distance = 0
    for item in index.load_all():
        d = distance(item.name, name)
        if best is None or d < best_distance:
            best, best_distance = item, d
            if d == 0:
                break

    if best is None or best_distance > max_distance:
        return None
    return best
