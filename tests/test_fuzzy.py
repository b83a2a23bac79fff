"""Tests for edit distance and fuzzy name lookup."""

from __future__ import annotations

import pytest

from snipvault.codec import encode_fields
from snipvault.fuzzy import MAX_DISTANCE, distance, find_by_name
from snipvault.store import ItemStore


class TestDistance:
    """Levenshtein distance properties."""

    @pytest.mark.parametrize(
        "a,b,expected",
        [
            ("kitten", "sitting", 3),
            ("flaw", "lawn", 2),
            ("token", "token", 0),
            ("", "abc", 3),
            ("abc", "", 3),
            ("", "", 0),
            ("a", "b", 1),
            ("github", "gihtub", 2),
        ],
    )
    def test_known_distances(self, a, b, expected):
        assert distance(a, b) == expected

    def test_symmetric(self):
        assert distance("password", "passwd") == distance("passwd", "password")

    def test_counts_code_points_not_bytes(self):
        assert distance("café", "cafe") == 1
        assert distance("ключ", "ключи") == 1


class TestFindByName:
    """Nearest-name lookup over the index."""

    def test_empty_index(self, store: ItemStore):
        assert find_by_name(store.index, "token") is None

    def test_exact_match(self, store: ItemStore):
        store.create("work", "token", "t")
        store.create("work", "tokens", "ts")
        item = find_by_name(store.index, "token")
        assert item is not None
        assert item.name == "token"

    def test_within_threshold(self, store: ItemStore):
        store.create("work", "github", "gh")
        store.create("home", "wifi", "w")
        item = find_by_name(store.index, "gthub")
        assert item is not None
        assert (item.group, item.name) == ("work", "github")

    def test_beyond_threshold(self, store: ItemStore):
        store.create("work", "github", "gh")
        assert MAX_DISTANCE == 2
        assert find_by_name(store.index, "githubxyz") is None

    def test_exactly_max_distance_resolves(self, store: ItemStore):
        store.create("work", "github", "gh")
        assert distance("github", "gthb") == MAX_DISTANCE
        item = find_by_name(store.index, "gthb")
        assert item is not None
        assert item.name == "github"

    def test_tie_goes_to_first_in_index_order(self, store: ItemStore):
        """Equally close names resolve to whichever comes first in .index."""
        store.ensure_root()
        store.index.path.write_bytes(
            encode_fields("b", "secrety", "f2") + encode_fields("a", "secretx", "f1")
        )
        assert distance("secrety", "secretz") == distance("secretx", "secretz") == 1

        item = find_by_name(store.index, "secretz")
        assert (item.group, item.name, item.filename) == ("b", "secrety", "f2")

        store.index.path.write_bytes(
            encode_fields("a", "secretx", "f1") + encode_fields("b", "secrety", "f2")
        )
        assert find_by_name(store.index, "secretz").name == "secretx"

    def test_exact_match_beats_earlier_near_match(self, store: ItemStore):
        store.ensure_root()
        store.index.path.write_bytes(
            encode_fields("a", "secret", "f1") + encode_fields("b", "secrets", "f2")
        )
        assert find_by_name(store.index, "secrets").name == "secrets"

    def test_custom_threshold(self, store: ItemStore):
        store.create("work", "github", "gh")
        assert find_by_name(store.index, "githubxyz", max_distance=3) is not None
