"""
Load-Order State Store for OMWModManager
Owns the current data/content state, persists it to JSON and
notifies subscribers on every commit.
"""

import os
import json
import logging
import tempfile
from itertools import count
from pathlib import Path
from typing import Callable, Optional

from mods_list import (
    ContentEntry,
    DataEntry,
    ListDir,
    LoadOrderState,
    list_content_files,
    list_dir_sorted,
    scan_folders,
)
from omw_config import CONTENT_KEY, DATA_KEY, OpenMWConfig

# Module logger
log = logging.getLogger("omwmodmanager.state_store")

StateListener = Callable[[LoadOrderState], None]


class NotInitializedError(RuntimeError):
    """Raised when a component is used before its load sequence finished."""

    def __init__(self, component: str):
        super().__init__(f"{component} is not initialized")
        self.component = component


class StateFileError(OSError):
    """Raised when the persisted state file cannot be read."""


class LoadOrderStore:
    """
    Holds the LoadOrderState.
    commit() is the only way to change it.
    """

    def __init__(self, state_file: Path, list_dir: ListDir = list_dir_sorted):
        self._state_file = Path(state_file)
        self._list_dir = list_dir
        self._state: Optional[LoadOrderState] = None
        self._subscribers: dict[int, StateListener] = {}
        self._tokens = count()

    @property
    def state_file(self) -> Path:
        return self._state_file

    @property
    def is_loaded(self) -> bool:
        return self._state is not None

    @property
    def state(self) -> LoadOrderState:
        """Current raw state."""
        if self._state is None:
            raise NotInitializedError("LoadOrderStore")
        return self._state

    def load(self) -> LoadOrderState:
        """
        Load the persisted state.
        A missing file is created with an empty state straight away.
        """
        if not self._state_file.exists():
            log.info(f"No state file at {self._state_file}, creating an empty one")
            self._state = LoadOrderState()
            self._save()
            return self._state

        try:
            with open(self._state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StateFileError(f"Invalid JSON in state file {self._state_file}: {e}") from e

        if not isinstance(data, dict):
            log.warning(f"State file {self._state_file} is not a JSON object, starting empty")
            data = {}

        self._state = LoadOrderState.from_dict(data)
        log.debug(f"Loaded state: {len(self._state.data)} data, {len(self._state.content)} content")
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """
        Register a listener called with the new state after every commit.
        Returns an unsubscribe function; calling it twice is harmless.
        """
        token = next(self._tokens)
        self._subscribers[token] = listener

        def unsubscribe() -> None:
            self._subscribers.pop(token, None)

        return unsubscribe

    def commit(self, next_state: LoadOrderState) -> None:
        """
        Swap in next_state and notify listeners if it is a new object,
        then always write the state file.
        """
        if self._state is None:
            raise NotInitializedError("LoadOrderStore")

        if next_state is not self._state:
            self._state = next_state
            for listener in list(self._subscribers.values()):
                listener(next_state)

        self._save()

    def initialize_from_external_config(self, cfg: OpenMWConfig) -> bool:
        """
        First-run import from openmw.cfg.
        Only runs while the stored data list is empty. Returns True if it ran.
        """
        state = self.state
        if state.data:
            return False

        # Folders listed in openmw.cfg are active there, so they start enabled
        data = tuple(DataEntry.for_folder(folder) for folder in cfg.get_values(DATA_KEY))
        cfg_content = cfg.get_values(CONTENT_KEY)
        positions = {content_id: idx for idx, content_id in enumerate(cfg_content)}

        enabled = [entry for entry in data if not entry.disabled]
        files_per_folder = scan_folders(
            enabled, lambda entry: list_content_files(entry.data_folder, self._list_dir)
        )

        content = [
            ContentEntry.for_file(file_name, entry.id, disabled=file_name not in positions)
            for entry, files in zip(enabled, files_per_folder)
            for file_name in files
        ]
        content.sort(key=lambda entry: positions.get(entry.id, 0))

        log.info(f"Imported {len(data)} data folders and {len(content)} content files from openmw.cfg")
        self.commit(LoadOrderState(data=data, content=tuple(content)))
        return True

    def _save(self) -> None:
        """Write the state file via a temp file and rename."""
        self._state_file.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            suffix='.json',
            prefix='mods_list_',
            dir=self._state_file.parent
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._state.to_dict(), f, indent=2)
            Path(temp_path).replace(self._state_file)
        except OSError:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise
