#!/usr/bin/env python3
"""
OMWModManager
A mod manager for OpenMW: data folders, content load order, mlox sorting.

Command line front end over ModManager. The Qt window talks to the same
ModManager through ui.ModManagerBridge.

License: MIT
"""

import sys
import argparse
import logging
from pathlib import Path

# Ensure the project directory is in the path
project_dir = Path(__file__).parent.absolute()
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))

__version__ = "0.3.0"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="omwmodmanager",
        description="Manage OpenMW data folders and content load order.",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--openmw-config", type=Path, help="Path to openmw.cfg (remembered).")
    parser.add_argument("--mlox", type=Path, help="Path to mlox executable or mlox.py (remembered).")
    parser.add_argument("--launcher", type=Path, help="Path to the OpenMW launcher (remembered).")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("status", help="Show data folders and content files.")

    add = sub.add_parser("add", help="Add data folders (disabled until toggled).")
    add.add_argument("folders", nargs="+")
    add.add_argument("--index", type=int, default=None, help="Insert position.")

    remove = sub.add_parser("remove", help="Remove data folders.")
    remove.add_argument("data_ids", nargs="+")

    toggle_data = sub.add_parser("toggle-data", help="Enable/disable a data folder.")
    toggle_data.add_argument("data_id")

    toggle_content = sub.add_parser("toggle-content", help="Enable/disable a content file.")
    toggle_content.add_argument("content_id")

    sub.add_parser("sort", help="Sort content with mlox and save openmw.cfg.")
    sub.add_parser("save", help="Write the current state into openmw.cfg.")
    sub.add_parser("overrides", help="List files shipped by more than one data folder.")
    sub.add_parser("launch", help="Run the OpenMW launcher with the current state.")

    return parser.parse_args(argv)


def print_state(state) -> None:
    """Print the effective view."""
    print("Data folders:")
    for entry in state.data:
        flag = " " if entry.disabled else "x"
        print(f"  [{flag}] {entry.name}  ({entry.data_folder})")
    print("\nContent files:")
    for idx, entry in enumerate(state.content):
        flag = " " if entry.disabled else "x"
        print(f"  {idx:3d} [{flag}] {entry.name}")


def main(argv=None) -> int:
    """Main application entry point."""
    args = parse_args(argv)

    from config_handler import ConfigHandler
    from logger import setup_logging
    from external_tools import ExternalToolError
    from mod_manager import ModManager, ToolPathError
    from mods_list_manager import ModsListError
    from state_store import NotInitializedError, StateFileError

    config = ConfigHandler()
    setup_logging(config.config_dir, debug=args.debug or config.config.debug_logging)
    log = logging.getLogger("omwmodmanager.main")

    if args.openmw_config:
        config.set("openmw_config_path", str(args.openmw_config.expanduser().resolve()))
    if args.mlox:
        config.set("mlox_path", str(args.mlox.expanduser().resolve()))
    if args.launcher:
        config.set("openmw_launcher_path", str(args.launcher.expanduser().resolve()))

    manager = ModManager(config)

    try:
        manager.init()
        command = args.command or "status"

        if command == "add":
            folders = [str(Path(f).expanduser().resolve()) for f in args.folders]
            manager.add_data(folders, args.index)
        elif command == "remove":
            manager.remove_data(args.data_ids)
        elif command == "toggle-data":
            manager.toggle_data(args.data_id)
        elif command == "toggle-content":
            manager.toggle_content(args.content_id)
        elif command == "sort":
            if not manager.sort_content():
                print("mlox proposed no load order; nothing changed.")
        elif command == "save":
            manager.update_openmw_config()
        elif command == "overrides":
            for rel_path, data_ids in sorted(manager.check_file_overrides().items()):
                print(rel_path)
                for data_id in data_ids:
                    print(f"    {data_id}")
            return 0
        elif command == "launch":
            manager.run_openmw()
            return 0

        print_state(manager.get_data_for_ui())
        return 0

    except (ModsListError, NotInitializedError, StateFileError,
            ExternalToolError, ToolPathError, OSError, UnicodeError) as e:
        log.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
