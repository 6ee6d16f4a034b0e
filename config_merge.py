"""
Config Merge for OMWModManager
Projects the mods list state onto a parsed openmw.cfg.
"""

import logging

from mods_list import (
    ListDir,
    LoadOrderState,
    list_archive_files,
    list_dir_sorted,
    scan_folders,
)
from omw_config import CONTENT_KEY, DATA_KEY, FALLBACK_ARCHIVE_KEY, OpenMWConfig

# Module logger
log = logging.getLogger("omwmodmanager.config_merge")


def _toggle_values(pairs: list[tuple[str, bool]]):
    """Updater that adds enabled values and removes disabled ones, keeping the rest."""

    def updater(prev_values: list[str]) -> list[str]:
        next_values = list(prev_values)
        for value, disabled in pairs:
            if disabled:
                if value in next_values:
                    next_values.remove(value)
                continue
            if value not in next_values:
                next_values.append(value)
        return next_values

    return updater


def apply_state_to_config(state: LoadOrderState, cfg: OpenMWConfig,
                          list_dir: ListDir = list_dir_sorted) -> OpenMWConfig:
    """
    Return a copy of cfg updated from state.

    data and fallback-archive only toggle membership, so lines the
    manager does not know about survive. content is replaced outright
    with the enabled content ids in load order.
    """
    archives_per_folder = scan_folders(
        state.data, lambda entry: list_archive_files(entry.data_folder, list_dir)
    )

    archive_pairs = [
        (file_name, entry.disabled)
        for entry, file_names in zip(state.data, archives_per_folder)
        for file_name in file_names
    ]
    data_pairs = [(entry.data_folder, entry.disabled) for entry in state.data]
    content_ids = state.enabled_content_ids()

    updated = cfg.copy()
    updated.set_values(FALLBACK_ARCHIVE_KEY, _toggle_values(archive_pairs))
    updated.set_values(DATA_KEY, _toggle_values(data_pairs))
    updated.set_values(CONTENT_KEY, lambda _prev: content_ids)

    log.debug(
        f"Merged state into config: {len(data_pairs)} data, "
        f"{len(archive_pairs)} archives, {len(content_ids)} content"
    )
    return updated
