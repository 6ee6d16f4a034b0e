"""
mlox adapter for OMWModManager
Exports content files as a [Game Files] ini, runs mlox on it and reads
the proposed load order back.
"""

import logging
from pathlib import Path

from external_tools import ExternalTool
from mods_list import LoadOrderState

# Module logger
log = logging.getLogger("omwmodmanager.mlox")

GAME_FILES_INI_FILENAME = "game_files.ini"
START_LOAD_ORDER_MARKER = "[New Load Order]"
END_LOAD_ORDER_MARKER = "[END PROPOSED LOAD ORDER]"


def to_sorter_input(state: LoadOrderState) -> str:
    """Enabled content files as a Morrowind.ini style [Game Files] section."""
    lines = ["[Game Files]"]
    for idx, content_id in enumerate(state.enabled_content_ids()):
        lines.append(f"GameFile{idx}={content_id}")
    return "\r\n".join(lines) + "\r\n"


def from_sorter_output(output: str) -> list[str]:
    """
    Extract the proposed load order from mlox stdout.

    Each line between the start and end markers looks like
    "<index> <file name>". Returns [] when no load order block exists.
    """
    game_files = []
    found_load_order = False

    for line in output.splitlines():
        if START_LOAD_ORDER_MARKER in line:
            found_load_order = True
            continue
        if not found_load_order:
            continue
        if END_LOAD_ORDER_MARKER in line:
            break
        if not line.strip():
            continue
        game_files.append(line[line.find(" ") + 1:])

    return game_files


class MloxRunner:
    """Runs mlox against the current content list."""

    def __init__(self, executable: Path, fail_on_stderr: bool = True):
        self.tool = ExternalTool(Path(executable), fail_on_stderr=fail_on_stderr)

    def sort(self, state: LoadOrderState, work_dir: Path) -> list[str]:
        """
        Write the game files ini into work_dir, run mlox and return the
        proposed order. ExternalToolError propagates unchanged.
        """
        work_dir = Path(work_dir)
        work_dir.mkdir(parents=True, exist_ok=True)
        ini_path = work_dir / GAME_FILES_INI_FILENAME

        log.info("Exporting content to mlox-compatible format...")
        with open(ini_path, 'w', encoding='utf-8', errors='surrogateescape', newline='') as f:
            f.write(to_sorter_input(state))

        log.info("Running mlox...")
        stdout = self.tool.run(["-f", str(ini_path)])

        log.info("Parsing mlox output...")
        game_files = from_sorter_output(stdout)
        log.debug(f"mlox proposed {len(game_files)} files")
        return game_files
