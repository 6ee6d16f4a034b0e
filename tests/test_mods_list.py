#!/usr/bin/env python3
"""
Unit tests for mods_list.py
Tests entry records, name derivation and folder scanning helpers.
"""

import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from mods_list import (
    ContentEntry,
    DataEntry,
    LoadOrderState,
    collapse_content,
    get_mod_name,
    list_archive_files,
    list_content_files,
    scan_folders,
)


class TestModName(unittest.TestCase):
    """Tests for get_mod_name."""

    def test_plain_folder(self):
        """Test that the last path segment is used."""
        self.assertEqual(get_mod_name("/mods/Tamriel Data"), "Tamriel Data")

    def test_variant_folder(self):
        """Test two-digit variant folders are shown with their parent."""
        self.assertEqual(
            get_mod_name("C:\\Mods\\Patch for Purists\\01 Core"),
            "Patch for Purists [01 Core]"
        )

    def test_single_digit_is_not_variant(self):
        """Test that one leading digit is not a variant."""
        self.assertEqual(get_mod_name("/mods/Pack/1 Core"), "1 Core")

    def test_trailing_separator(self):
        """Test that a trailing slash is ignored."""
        self.assertEqual(get_mod_name("/mods/Graphic Herbalism/"), "Graphic Herbalism")


class TestEntries(unittest.TestCase):
    """Tests for entry serialization."""

    def test_state_dict_uses_file_keys(self):
        """Test the persisted key names."""
        state = LoadOrderState(
            data=(DataEntry.for_folder("/mods/A", disabled=True),),
            content=(ContentEntry.for_file("A.esp", "/mods/A"),),
        )

        data = state.to_dict()

        self.assertEqual(data["data"][0], {
            "id": "/mods/A", "name": "A", "dataFolder": "/mods/A", "disabled": True,
        })
        self.assertEqual(data["content"][0], {
            "id": "A.esp", "dataID": "/mods/A", "name": "A.esp", "disabled": False,
        })

    def test_state_from_dict(self):
        """Test restoring a state from persisted data."""
        state = LoadOrderState.from_dict({
            "data": [{"id": "/mods/B", "name": "B", "dataFolder": "/mods/B", "disabled": False}],
            "content": [{"id": "B.esp", "dataID": "/mods/B", "name": "B.esp", "disabled": True}],
        })

        self.assertEqual(state.data[0].data_folder, "/mods/B")
        self.assertTrue(state.content[0].disabled)
        self.assertEqual(state.enabled_content_ids(), [])

    def test_from_dict_ignores_garbage(self):
        """Test that non-object records are skipped."""
        state = LoadOrderState.from_dict({"data": ["nope", 3], "content": [None]})
        self.assertEqual(state, LoadOrderState())

    def test_find_data(self):
        """Test locating a data entry by id."""
        state = LoadOrderState(data=(DataEntry.for_folder("/a"), DataEntry.for_folder("/b")))
        self.assertEqual(state.find_data("/b"), 1)
        self.assertEqual(state.find_data("/c"), -1)


class TestCollapseContent(unittest.TestCase):
    """Tests for the effective content view."""

    def test_last_entry_wins(self):
        """Test that a later entry with the same id replaces the earlier one."""
        first = ContentEntry.for_file("Shared.esp", "/mods/one")
        other = ContentEntry.for_file("Other.esp", "/mods/one")
        later = ContentEntry.for_file("Shared.esp", "/mods/two", disabled=True)

        collapsed = collapse_content([first, other, later])

        self.assertEqual(collapsed, (later, other))

    def test_no_duplicates_unchanged(self):
        """Test that a list without duplicates keeps its order."""
        entries = [ContentEntry.for_file(name, "/m") for name in ("C.esp", "A.esp", "B.esp")]
        self.assertEqual(list(collapse_content(entries)), entries)


class TestFolderListing(unittest.TestCase):
    """Tests for content/archive file filters."""

    FILES = ["Morrowind.ESM", "textures", "Patch.esp", "Morrowind.bsa", "readme.txt", "Merged.omwaddon"]

    def _list_dir(self, folder):
        return list(self.FILES)

    def test_content_files(self):
        """Test plugin extensions are matched case-insensitively."""
        self.assertEqual(
            list_content_files("/mods/x", self._list_dir),
            ["Morrowind.ESM", "Patch.esp", "Merged.omwaddon"]
        )

    def test_archive_files(self):
        """Test that only bsa archives are returned."""
        self.assertEqual(list_archive_files("/mods/x", self._list_dir), ["Morrowind.bsa"])

    def test_scan_folders_keeps_order(self):
        """Test concurrent scanning returns results in input order."""
        results = scan_folders([3, 1, 2], lambda n: n * 10)
        self.assertEqual(results, [30, 10, 20])

    def test_scan_folders_propagates_errors(self):
        """Test that a failing scan raises to the caller."""
        def scan(folder):
            if folder == "/missing":
                raise FileNotFoundError(folder)
            return []

        with self.assertRaises(FileNotFoundError):
            scan_folders(["/ok", "/missing"], scan)

    def test_scan_folders_empty(self):
        """Test scanning nothing."""
        self.assertEqual(scan_folders([], lambda n: n), [])


if __name__ == "__main__":
    unittest.main()
