"""
Mods List Manager for OMWModManager
Reconciles data folders and content files: every operation reads the
current state, derives the next one and commits it as a whole.
"""

import re
import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence, Union

from mods_list import (
    ContentEntry,
    DataEntry,
    ListDir,
    LoadOrderState,
    collapse_content,
    list_content_files,
    list_dir_sorted,
    scan_folders,
)
from state_store import LoadOrderStore, NotInitializedError
from omw_config import OpenMWConfig

# Module logger
log = logging.getLogger("omwmodmanager.mods_list_manager")

# Generated merge patches always load last
MERGED_PLUGIN_PATTERN = re.compile(r"\.omwaddon$", re.IGNORECASE)
MASTER_FILE_PATTERN = re.compile(r"\.esm$", re.IGNORECASE)


class ModsListError(LookupError):
    """Base error for mods list operations."""


class DataNotFoundError(ModsListError):
    def __init__(self, data_id: str):
        super().__init__(f"Data folder not found: {data_id}")
        self.data_id = data_id


class ContentNotFoundError(ModsListError):
    def __init__(self, content_id: str):
        super().__init__(f"Content file not found: {content_id}")
        self.content_id = content_id


def mlox_sort_key(entry: ContentEntry, positions: dict[str, int]) -> tuple[bool, bool, int]:
    """
    Sort key applied after mlox proposes an order.

    Precedence:
      1. merged plugins (.omwaddon) after everything else, keeping
         their current relative order
      2. masters (.esm) before plugins
      3. position in the mlox order, ids mlox did not list count as 0
    """
    if MERGED_PLUGIN_PATTERN.search(entry.id):
        return (True, False, 0)
    is_master = bool(MASTER_FILE_PATTERN.search(entry.id))
    return (False, not is_master, positions.get(entry.id, 0))


class ModsListManager:
    """Operations on the data/content lists held by a LoadOrderStore."""

    def __init__(self, store: LoadOrderStore, list_dir: ListDir = list_dir_sorted):
        self.store = store
        self._list_dir = list_dir

    def _current(self) -> LoadOrderState:
        if not self.store.is_loaded:
            raise NotInitializedError("ModsListManager")
        return self.store.state

    def _content_files(self, entry: DataEntry) -> list[str]:
        return list_content_files(entry.data_folder, self._list_dir)

    def init(self, cfg: OpenMWConfig) -> LoadOrderState:
        """Load persisted state and import from openmw.cfg on first run."""
        self.store.load()
        self.store.initialize_from_external_config(cfg)
        return self.store.state

    # ==================== DATA ====================

    def add_data(self, data_folder_paths: Sequence[str], insert_index: Optional[int] = None) -> None:
        """
        Add data folders, skipping ones already known.
        New entries start disabled; content is added when they are enabled.
        """
        state = self._current()
        known = {entry.data_folder for entry in state.data}

        new_entries = []
        for folder in data_folder_paths:
            if folder in known:
                continue
            known.add(folder)
            new_entries.append(DataEntry.for_folder(folder, disabled=True))

        if not new_entries:
            log.debug("add_data: nothing new to add")
            self.store.commit(state)
            return

        data = list(state.data)
        if insert_index is None:
            insert_index = len(data)
        data[insert_index:insert_index] = new_entries

        log.info(f"Added {len(new_entries)} data folder(s)")
        self.store.commit(replace(state, data=tuple(data)))

    def toggle_data(self, data_id: str) -> None:
        """
        Enable or disable a data folder.
        Disabling drops its content files from the content list,
        enabling appends them as enabled entries.
        """
        state = self._current()
        idx = state.find_data(data_id)
        if idx < 0:
            raise DataNotFoundError(data_id)

        entry = state.data[idx]
        content_files = self._content_files(entry)
        toggled = replace(entry, disabled=not entry.disabled)

        data = list(state.data)
        data[idx] = toggled

        if toggled.disabled:
            removed = set(content_files)
            content = tuple(c for c in state.content if c.id not in removed)
        else:
            content = state.content + tuple(
                ContentEntry.for_file(file_name, toggled.id) for file_name in content_files
            )

        log.info(f"{'Disabled' if toggled.disabled else 'Enabled'} {data_id} ({len(content_files)} content files)")
        self.store.commit(LoadOrderState(data=tuple(data), content=content))

    def remove_data(self, data_ids: Union[str, Sequence[str]]) -> None:
        """
        Remove data folders and every content entry they own.
        All ids are checked first; one unknown id leaves the state untouched.
        """
        if isinstance(data_ids, str):
            data_ids = [data_ids]

        state = self._current()
        for data_id in data_ids:
            if state.find_data(data_id) < 0:
                raise DataNotFoundError(data_id)

        removed = set(data_ids)
        self.store.commit(LoadOrderState(
            data=tuple(d for d in state.data if d.id not in removed),
            content=tuple(c for c in state.content if c.data_id not in removed),
        ))
        log.info(f"Removed {len(removed)} data folder(s)")

    def change_data_order(self, data: Sequence[DataEntry]) -> None:
        """Replace the data list; the caller passes a permutation."""
        state = self._current()
        self.store.commit(replace(state, data=tuple(data)))

    # ==================== CONTENT ====================

    def toggle_content(self, content_id: str) -> None:
        """Flip the disabled flag of a content file (every entry with that id)."""
        state = self._current()
        if not any(c.id == content_id for c in state.content):
            raise ContentNotFoundError(content_id)

        content = tuple(
            replace(c, disabled=not c.disabled) if c.id == content_id else c
            for c in state.content
        )
        self.store.commit(replace(state, content=content))

    def change_content_order(self, content: Sequence[ContentEntry]) -> None:
        """Replace the content list."""
        state = self._current()
        self.store.commit(replace(state, content=tuple(content)))

    def apply_content_order_from_mlox(self, ordered_ids: Sequence[str]) -> None:
        """Re-sort the content list using the order mlox proposed."""
        state = self._current()
        positions = {content_id: idx for idx, content_id in enumerate(ordered_ids)}
        content = sorted(state.content, key=lambda entry: mlox_sort_key(entry, positions))
        self.store.commit(replace(state, content=tuple(content)))

    # ==================== QUERIES ====================

    def get_state(self) -> LoadOrderState:
        """Effective view: content collapsed by id, last entry wins."""
        state = self._current()
        return LoadOrderState(data=state.data, content=collapse_content(state.content))

    def check_file_overrides(self, conflicts_only: bool = False) -> dict[str, list[str]]:
        """
        Map every file path (relative to its data folder) to the data
        folders that ship it. Read-only.
        """
        state = self._current()

        def scan(entry: DataEntry) -> list[str]:
            root = Path(entry.data_folder)
            if not root.is_dir():
                raise FileNotFoundError(f"Data folder missing: {root}")
            return [
                path.relative_to(root).as_posix()
                for path in sorted(root.rglob("*"))
                if path.is_file()
            ]

        files_per_folder = scan_folders(state.data, scan)

        overrides: dict[str, list[str]] = {}
        for entry, files in zip(state.data, files_per_folder):
            for rel_path in files:
                overrides.setdefault(rel_path, []).append(entry.id)

        if conflicts_only:
            overrides = {path: ids for path, ids in overrides.items() if len(ids) > 1}
        return overrides
