#!/usr/bin/env python3
"""
Unit tests for config_merge.py
Tests projecting the mods list state onto openmw.cfg.
"""

import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from config_merge import apply_state_to_config
from mods_list import ContentEntry, DataEntry, LoadOrderState
from omw_config import OpenMWConfig


FOLDERS = {
    "/mods/Base": ["Base.bsa", "Base.esm"],
    "/mods/Textures": ["Textures.bsa", "textures"],
    "/mods/Quest": ["Quest.esp"],
}


def fake_list_dir(folder):
    return list(FOLDERS[folder])


class TestApplyStateToConfig(unittest.TestCase):
    """Tests for apply_state_to_config."""

    def setUp(self):
        self.cfg = OpenMWConfig.parse("\r\n".join([
            "# user config",
            'data="/vanilla/Data Files"',
            'data="/mods/Textures"',
            "fallback-archive=Morrowind.bsa",
            "fallback-archive=Textures.bsa",
            "content=Morrowind.esm",
            "encoding=win1252",
        ]))
        self.state = LoadOrderState(
            data=(
                DataEntry.for_folder("/mods/Base"),
                DataEntry.for_folder("/mods/Textures", disabled=True),
                DataEntry.for_folder("/mods/Quest"),
            ),
            content=(
                ContentEntry.for_file("Base.esm", "/mods/Base"),
                ContentEntry.for_file("Quest.esp", "/mods/Quest", disabled=True),
            ),
        )

    def _merge(self):
        return apply_state_to_config(self.state, self.cfg, fake_list_dir)

    def test_data_toggled(self):
        """Test enabled folders are added and disabled ones removed."""
        merged = self._merge()
        self.assertEqual(
            merged.get_values("data"),
            ["/vanilla/Data Files", "/mods/Base", "/mods/Quest"]
        )

    def test_archives_follow_their_folder(self):
        """Test bsa files are registered only while their folder is enabled."""
        merged = self._merge()
        self.assertEqual(merged.get_values("fallback-archive"), ["Morrowind.bsa", "Base.bsa"])

    def test_content_replaced_with_enabled_ids(self):
        """Test content lines are exactly the enabled content in order."""
        merged = self._merge()
        self.assertEqual(merged.get_values("content"), ["Base.esm"])

    def test_unrelated_lines_preserved(self):
        """Test comments and other keys survive the merge."""
        text = self._merge().serialize()

        self.assertTrue(text.startswith("# user config\r\n"))
        self.assertIn("encoding=win1252", text)
        self.assertIn('data="/mods/Quest"', text)

    def test_input_config_not_modified(self):
        """Test the merge works on a copy."""
        before = self.cfg.serialize()
        self._merge()
        self.assertEqual(self.cfg.serialize(), before)

    def test_content_order_kept(self):
        """Test the content list order is written as is."""
        self.state = LoadOrderState(
            data=self.state.data,
            content=(
                ContentEntry.for_file("Quest.esp", "/mods/Quest"),
                ContentEntry.for_file("Base.esm", "/mods/Base"),
            ),
        )
        self.assertEqual(self._merge().get_values("content"), ["Quest.esp", "Base.esm"])

    def test_missing_keys_created(self):
        """Test merging into an empty config."""
        self.cfg = OpenMWConfig.parse("")
        merged = self._merge()

        self.assertEqual(merged.get_values("data"), ["/mods/Base", "/mods/Quest"])
        self.assertEqual(merged.get_values("fallback-archive"), ["Base.bsa"])
        self.assertEqual(merged.get_values("content"), ["Base.esm"])

    def test_missing_folder_raises(self):
        """Test a data folder that cannot be listed aborts the merge."""
        self.state = LoadOrderState(data=(DataEntry.for_folder("/mods/Unknown"),))
        with self.assertRaises(KeyError):
            self._merge()


if __name__ == "__main__":
    unittest.main()
