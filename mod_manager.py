"""
Mod Manager for OMWModManager
Ties the mods list, openmw.cfg and the external tools together.
This is the command surface the UI talks to.
"""

import shutil
import logging
from pathlib import Path
from typing import Callable, Optional, Sequence, Union

from config_handler import ConfigHandler
from config_merge import apply_state_to_config
from external_tools import ExternalTool
from mlox import MloxRunner
from mods_list import ContentEntry, DataEntry, ListDir, LoadOrderState, list_dir_sorted
from mods_list_manager import ModsListManager
from omw_config import OpenMWConfig, read_openmw_config, write_openmw_config
from state_store import LoadOrderStore, NotInitializedError

# Module logger
log = logging.getLogger("omwmodmanager.mod_manager")

BACKUP_SUFFIX = ".omwmm-backup"

# Asks the user for a path; returns None/"" when they cancel
PathRequest = Callable[[], Optional[str]]


class ToolPathError(FileNotFoundError):
    """A configured file is missing and no replacement was provided."""


class ModManager:
    """
    High-level commands: add/remove/toggle/reorder, mlox sorting,
    saving to openmw.cfg and launching the game.
    """

    def __init__(self, config: ConfigHandler,
                 request_openmw_config_path: Optional[PathRequest] = None,
                 request_mlox_path: Optional[PathRequest] = None,
                 request_launcher_path: Optional[PathRequest] = None,
                 list_dir: ListDir = list_dir_sorted):
        self.config = config
        self.store = LoadOrderStore(config.state_file, list_dir)
        self.mods_list = ModsListManager(self.store, list_dir)
        self._list_dir = list_dir
        self._request_openmw_config_path = request_openmw_config_path
        self._request_mlox_path = request_mlox_path
        self._request_launcher_path = request_launcher_path
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def _require_init(self) -> None:
        if not self._initialized:
            raise NotInitializedError("ModManager")

    # ==================== PATHS ====================

    def _resolve_path(self, key: str, label: str, request: Optional[PathRequest]) -> Path:
        """Configured path if it exists, otherwise ask and remember the answer."""
        configured = self.config.get(key, "")
        if configured and Path(configured).exists():
            return Path(configured)

        if request is None:
            raise ToolPathError(f"Cannot find {label}")

        log.info(f"{label} not found, asking for its location")
        answer = request()
        if not answer:
            raise ToolPathError(f"Cannot find {label}")

        self.config.set(key, str(answer))
        return Path(answer)

    def get_openmw_config_path(self) -> Path:
        return self._resolve_path("openmw_config_path", "openmw.cfg", self._request_openmw_config_path)

    def get_mlox_path(self) -> Path:
        return self._resolve_path("mlox_path", "mlox", self._request_mlox_path)

    def get_launcher_path(self) -> Path:
        return self._resolve_path("openmw_launcher_path", "OpenMW launcher", self._request_launcher_path)

    def update_openmw_config_path(self, new_path: str) -> None:
        self.config.set("openmw_config_path", str(new_path))

    def update_mlox_path(self, new_path: str) -> None:
        self.config.set("mlox_path", str(new_path))

    def update_launcher_path(self, new_path: str) -> None:
        self.config.set("openmw_launcher_path", str(new_path))

    # ==================== LIFECYCLE ====================

    def init(self) -> LoadOrderState:
        """
        Restore a backup left behind by a crash, load the mods list and
        import from openmw.cfg on first run.
        """
        log.info("Initializing mod manager...")
        if self.restore_openmw_config():
            log.warning("Restored openmw.cfg from a backup left by a previous session")

        self.mods_list.init(self.parse_openmw_config())
        self._initialized = True
        log.info("Mod manager initialized")
        return self.get_data_for_ui()

    def parse_openmw_config(self) -> OpenMWConfig:
        return read_openmw_config(self.get_openmw_config_path())

    def save_openmw_config(self, cfg: OpenMWConfig) -> None:
        write_openmw_config(self.get_openmw_config_path(), cfg)

    def get_data_for_ui(self) -> LoadOrderState:
        """Effective data/content view."""
        self._require_init()
        return self.mods_list.get_state()

    def add_mods_change_listener(self, callback: Callable[[LoadOrderState], None]) -> Callable[[], None]:
        """Call back with the effective view after every change; returns an unsubscribe function."""
        return self.store.subscribe(lambda _state: callback(self.mods_list.get_state()))

    # ==================== DATA ====================

    def add_data(self, data_folder_paths: Sequence[str], insert_index: Optional[int] = None) -> None:
        """Add dropped paths as data folders. Anything that is not a directory is skipped."""
        self._require_init()
        folders = sorted(str(path) for path in data_folder_paths if Path(path).is_dir())
        skipped = len(data_folder_paths) - len(folders)
        if skipped:
            log.warning(f"Skipped {skipped} path(s) that are not directories")
        log.info(f"Adding {len(folders)} mods...")
        self.mods_list.add_data(folders, insert_index)

    def remove_data(self, data_ids: Union[str, Sequence[str]]) -> None:
        self._require_init()
        log.info(f"Removing {data_ids}...")
        self.mods_list.remove_data(data_ids)

    def toggle_data(self, data_id: str) -> None:
        self._require_init()
        self.mods_list.toggle_data(data_id)

    def reorder_data(self, data: Sequence[DataEntry]) -> None:
        self._require_init()
        self.mods_list.change_data_order(data)

    # ==================== CONTENT ====================

    def toggle_content(self, content_id: str) -> None:
        self._require_init()
        self.mods_list.toggle_content(content_id)

    def reorder_content(self, content: Sequence[ContentEntry]) -> None:
        self._require_init()
        self.mods_list.change_content_order(content)

    def check_file_overrides(self, conflicts_only: bool = True) -> dict[str, list[str]]:
        self._require_init()
        return self.mods_list.check_file_overrides(conflicts_only=conflicts_only)

    # ==================== OPENMW.CFG ====================

    def update_openmw_config(self) -> None:
        """Merge the current state into openmw.cfg and save it."""
        self._require_init()
        log.info("Saving to OpenMW config...")
        cfg = apply_state_to_config(self.mods_list.get_state(), self.parse_openmw_config(), self._list_dir)
        self.save_openmw_config(cfg)
        log.info("Successfully saved to OpenMW config")

    def sort_content(self) -> bool:
        """
        Sort content with mlox and save the result to openmw.cfg.
        Returns False (state untouched) when mlox proposes no order.
        """
        self._require_init()
        runner = MloxRunner(
            self.get_mlox_path(),
            fail_on_stderr=self.config.get("mlox_fail_on_stderr", True),
        )
        game_files = runner.sort(self.mods_list.get_state(), self.config.work_dir)
        if not game_files:
            log.warning("mlox did not propose a load order, content order unchanged")
            return False

        log.info("Updating content order...")
        self.mods_list.apply_content_order_from_mlox(game_files)
        self.update_openmw_config()
        log.info("Successfully updated content order")
        return True

    @property
    def backup_path(self) -> Path:
        cfg_path = self.get_openmw_config_path()
        return cfg_path.with_name(cfg_path.name + BACKUP_SUFFIX)

    def backup_openmw_config(self) -> Path:
        """Copy openmw.cfg next to itself. An existing backup is kept as is."""
        backup = self.backup_path
        if backup.exists():
            log.info(f"Backup already exists: {backup}")
            return backup
        shutil.copy2(self.get_openmw_config_path(), backup)
        log.info(f"Created backup: {backup}")
        return backup

    def restore_openmw_config(self) -> bool:
        """Put the backup back in place and delete it. Returns False if there was none."""
        backup = self.backup_path
        if not backup.exists():
            return False
        shutil.copy2(backup, self.get_openmw_config_path())
        backup.unlink()
        log.info(f"Restored openmw.cfg from {backup}")
        return True

    def run_openmw(self) -> None:
        """
        Launch OpenMW with the current state written into openmw.cfg.
        The user's openmw.cfg is restored afterwards, also when the launch fails.
        """
        self._require_init()
        launcher = ExternalTool(self.get_launcher_path())
        self.backup_openmw_config()
        try:
            self.update_openmw_config()
            log.info(f"Launching {launcher.name}...")
            launcher.run(cwd=Path(launcher.executable).parent)
            log.info(f"{launcher.name} exited")
        finally:
            self.restore_openmw_config()
